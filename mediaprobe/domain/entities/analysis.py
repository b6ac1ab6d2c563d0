# mediaprobe/domain/entities/analysis.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple

from mediaprobe.domain.enums import HdrFormat


@dataclass(frozen=True)
class VideoAttributes:
    """
    Technical attributes of the (first) video stream.
    Optional fields are None when the probe could not tell us; never a coerced 0.
    """
    index: int
    codec: str
    width: int = 0
    height: int = 0
    profile: Optional[str] = None
    level: Optional[int] = None
    bitrate: Optional[int] = None          # kbps
    frame_rate: Optional[float] = None     # fps, 2 decimals
    bit_depth: Optional[int] = None
    pixel_format: Optional[str] = None
    color_space: Optional[str] = None
    color_transfer: Optional[str] = None
    color_primaries: Optional[str] = None
    hdr_format: Optional[HdrFormat] = None


@dataclass(frozen=True)
class AudioAttributes:
    index: int
    codec: str
    channels: int = 2
    profile: Optional[str] = None
    channel_layout: Optional[str] = None
    bitrate: Optional[int] = None          # kbps, reported or estimated
    sample_rate: Optional[int] = None
    bit_depth: Optional[int] = None
    language: Optional[str] = None
    title: Optional[str] = None
    is_default: bool = False               # container disposition only
    has_object_audio: bool = False


@dataclass(frozen=True)
class SubtitleAttributes:
    index: int
    codec: str
    language: Optional[str] = None
    title: Optional[str] = None
    is_default: bool = False
    is_forced: bool = False


@dataclass(frozen=True)
class EmbeddedArtwork:
    has_artwork: bool = True
    mime_type: Optional[str] = None
    stream_index: Optional[int] = None


@dataclass(frozen=True)
class EmbeddedMetadataTags:
    title: Optional[str] = None
    year: Optional[int] = None
    description: Optional[str] = None
    show_name: Optional[str] = None
    season_number: Optional[int] = None
    episode_number: Optional[int] = None
    episode_title: Optional[str] = None

    def is_empty(self) -> bool:
        return all(v is None for v in self.__dict__.values())


@dataclass(frozen=True)
class FileAnalysisResult:
    """
    Normalized result of analyzing one media file. Immutable once produced.
    Only technical attributes; identity, persistence and quality scoring live elsewhere.
    """
    success: bool
    file_path: str
    error: Optional[str] = None
    container: Optional[str] = None
    duration: Optional[int] = None         # ms
    file_size: Optional[int] = None        # bytes
    overall_bitrate: Optional[int] = None  # kbps
    video: Optional[VideoAttributes] = None
    audio_tracks: Tuple[AudioAttributes, ...] = field(default_factory=tuple)
    subtitle_tracks: Tuple[SubtitleAttributes, ...] = field(default_factory=tuple)
    embedded_artwork: Optional[EmbeddedArtwork] = None
    embedded_metadata: Optional[EmbeddedMetadataTags] = None

    @classmethod
    def failure(cls, file_path: str, message: str) -> "FileAnalysisResult":
        return cls(success=False, file_path=str(file_path), error=message)
