# mediaprobe/services/schemas/analysis.py
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Schema(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)


class VideoSchema(_Schema):
    index: int
    codec: str = Field(..., examples=["hevc"])
    profile: Optional[str] = None
    level: Optional[int] = None
    width: int = Field(0, ge=0)
    height: int = Field(0, ge=0)
    bitrate: Optional[int] = Field(None, description="kbps")
    frame_rate: Optional[float] = Field(None, alias="frameRate", examples=[23.98])
    bit_depth: Optional[int] = Field(None, alias="bitDepth")
    pixel_format: Optional[str] = Field(None, alias="pixelFormat")
    color_space: Optional[str] = Field(None, alias="colorSpace")
    color_transfer: Optional[str] = Field(None, alias="colorTransfer")
    color_primaries: Optional[str] = Field(None, alias="colorPrimaries")
    hdr_format: Optional[str] = Field(None, alias="hdrFormat", examples=["HDR10", "Dolby Vision"])


class AudioSchema(_Schema):
    index: int
    codec: str = Field(..., examples=["truehd"])
    profile: Optional[str] = None
    channels: int = Field(2, ge=1)
    channel_layout: Optional[str] = Field(None, alias="channelLayout")
    bitrate: Optional[int] = Field(None, description="kbps")
    sample_rate: Optional[int] = Field(None, alias="sampleRate")
    bit_depth: Optional[int] = Field(None, alias="bitDepth")
    language: Optional[str] = None
    title: Optional[str] = None
    is_default: bool = Field(False, alias="isDefault")
    has_object_audio: bool = Field(False, alias="hasObjectAudio")


class SubtitleSchema(_Schema):
    index: int
    codec: str
    language: Optional[str] = None
    title: Optional[str] = None
    is_default: bool = Field(False, alias="isDefault")
    is_forced: bool = Field(False, alias="isForced")


class ArtworkSchema(_Schema):
    has_artwork: bool = Field(True, alias="hasArtwork")
    mime_type: Optional[str] = Field(None, alias="mimeType", examples=["image/jpeg"])
    stream_index: Optional[int] = Field(None, alias="streamIndex")


class EmbeddedMetadataSchema(_Schema):
    title: Optional[str] = None
    year: Optional[int] = None
    description: Optional[str] = None
    show_name: Optional[str] = Field(None, alias="showName")
    season_number: Optional[int] = Field(None, alias="seasonNumber")
    episode_number: Optional[int] = Field(None, alias="episodeNumber")
    episode_title: Optional[str] = Field(None, alias="episodeTitle")


class FileAnalysisSchema(_Schema):
    success: bool
    error: Optional[str] = None
    file_path: str = Field(..., alias="filePath", examples=["/media/movies/film.mkv"])
    container: Optional[str] = None
    duration: Optional[int] = Field(None, description="milliseconds")
    file_size: Optional[int] = Field(None, alias="fileSize", description="bytes")
    overall_bitrate: Optional[int] = Field(None, alias="overallBitrate", description="kbps")
    video: Optional[VideoSchema] = None
    audio_tracks: List[AudioSchema] = Field(default_factory=list, alias="audioTracks")
    subtitle_tracks: List[SubtitleSchema] = Field(default_factory=list, alias="subtitleTracks")
    embedded_artwork: Optional[ArtworkSchema] = Field(None, alias="embeddedArtwork")
    embedded_metadata: Optional[EmbeddedMetadataSchema] = Field(None, alias="embeddedMetadata")
