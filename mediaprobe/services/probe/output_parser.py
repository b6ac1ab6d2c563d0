# mediaprobe/services/probe/output_parser.py
from __future__ import annotations

import dataclasses
import re
from typing import Any, Dict, List, Mapping, Optional

from mediaprobe.common.probe.ffprobe_helpers import (
    disposition_flag,
    get_tag,
    leading_int,
    parse_float,
    parse_int,
    round_half_up,
)
from mediaprobe.domain.entities.analysis import (
    AudioAttributes,
    EmbeddedArtwork,
    EmbeddedMetadataTags,
    FileAnalysisResult,
    SubtitleAttributes,
    VideoAttributes,
)
from mediaprobe.domain.enums import StreamType
from mediaprobe.domain.policies import (
    detect_hdr_format,
    detect_object_audio,
    estimate_audio_bitrate,
    extract_bit_depth,
    extract_bitrate,
    parse_frame_rate,
    reconcile_video_bitrate,
)

_ARTWORK_MIME = {
    "png": "image/png",
    "bmp": "image/bmp",
    "gif": "image/gif",
    "webp": "image/webp",
}
_YEAR = re.compile(r"^(\d{4})")

# Alternate tag keys per logical field; first present wins.
TITLE_KEYS = ("title", "TITLE")
YEAR_KEYS = ("date", "DATE", "year", "YEAR", "creation_time")
DESCRIPTION_KEYS = ("description", "DESCRIPTION", "synopsis", "SYNOPSIS", "comment", "COMMENT")
SHOW_KEYS = ("show", "SHOW", "WM/WMCollectionGroupID", "album")
SEASON_KEYS = ("season_number", "SEASON_NUMBER", "WM/MediaClassSeasonNumber", "season", "SEASON")
EPISODE_KEYS = (
    "episode_sort", "EPISODE_SORT", "episode", "EPISODE",
    "WM/MediaClassTrackNumber", "track", "TRACK",
)
EPISODE_TITLE_KEYS = ("episode_id", "EPISODE_ID")


def artwork_mime_type(codec_name: Optional[str]) -> str:
    return _ARTWORK_MIME.get((codec_name or "").lower(), "image/jpeg")


def _positive(v: Optional[int]) -> Optional[int]:
    return v if v is not None and v > 0 else None


def parse_embedded_metadata(fmt: Mapping[str, Any]) -> Optional[EmbeddedMetadataTags]:
    year = None
    date = get_tag(fmt, *YEAR_KEYS)
    if date:
        m = _YEAR.match(date)
        year = int(m.group(1)) if m else None

    tags = EmbeddedMetadataTags(
        title=get_tag(fmt, *TITLE_KEYS),
        year=year,
        description=get_tag(fmt, *DESCRIPTION_KEYS),
        show_name=get_tag(fmt, *SHOW_KEYS),
        season_number=_positive(leading_int(get_tag(fmt, *SEASON_KEYS))),
        episode_number=_positive(leading_int(get_tag(fmt, *EPISODE_KEYS))),
        episode_title=get_tag(fmt, *EPISODE_TITLE_KEYS),
    )
    return None if tags.is_empty() else tags


def parse_video_stream(stream: Mapping[str, Any], duration_ms: Optional[int] = None) -> VideoAttributes:
    return VideoAttributes(
        index=parse_int(stream.get("index")) or 0,
        codec=stream.get("codec_name") or "unknown",
        profile=stream.get("profile"),
        level=parse_int(stream.get("level")),
        width=parse_int(stream.get("width")) or parse_int(stream.get("coded_width")) or 0,
        height=parse_int(stream.get("height")) or parse_int(stream.get("coded_height")) or 0,
        bitrate=extract_bitrate(stream, duration_ms),
        frame_rate=parse_frame_rate(stream.get("avg_frame_rate") or stream.get("r_frame_rate")),
        bit_depth=extract_bit_depth(stream),
        pixel_format=stream.get("pix_fmt"),
        color_space=stream.get("color_space"),
        color_transfer=stream.get("color_transfer"),
        color_primaries=stream.get("color_primaries"),
        hdr_format=detect_hdr_format(stream),
    )


def parse_audio_stream(stream: Mapping[str, Any], duration_ms: Optional[int] = None) -> AudioAttributes:
    codec = stream.get("codec_name") or "unknown"
    profile = stream.get("profile")
    title = get_tag(stream, "title")
    channels = parse_int(stream.get("channels")) or 2

    bitrate = extract_bitrate(stream, duration_ms)
    if not bitrate:
        bitrate = estimate_audio_bitrate(codec, channels, profile, stream.get("sample_rate"))

    return AudioAttributes(
        index=parse_int(stream.get("index")) or 0,
        codec=codec,
        profile=profile,
        channels=channels,
        channel_layout=stream.get("channel_layout"),
        bitrate=bitrate,
        sample_rate=parse_int(stream.get("sample_rate")),
        bit_depth=parse_int(stream.get("bits_per_sample")) or parse_int(stream.get("bits_per_raw_sample")) or None,
        language=get_tag(stream, "language"),
        title=title,
        is_default=disposition_flag(stream, "default"),
        has_object_audio=detect_object_audio(codec, profile, title),
    )


def parse_subtitle_stream(stream: Mapping[str, Any]) -> SubtitleAttributes:
    return SubtitleAttributes(
        index=parse_int(stream.get("index")) or 0,
        codec=stream.get("codec_name") or "unknown",
        language=get_tag(stream, "language"),
        title=get_tag(stream, "title"),
        is_default=disposition_flag(stream, "default"),
        is_forced=disposition_flag(stream, "forced"),
    )


def parse_ffprobe_output(file_path: str, data: Dict[str, Any]) -> FileAnalysisResult:
    """
    Turn one ffprobe JSON document into a FileAnalysisResult.
    Safe to call in unit tests with fixture JSON.

    Streams are taken in encounter order. Attached pictures become artwork and
    are not classified further; only the first video stream is kept.
    """
    fmt = (data or {}).get("format") or {}
    streams = (data or {}).get("streams") or []

    duration_s = parse_float(fmt.get("duration"))
    duration_ms = round_half_up(duration_s * 1000) if duration_s is not None else None
    overall = parse_int(fmt.get("bit_rate"))

    video: Optional[VideoAttributes] = None
    audio: List[AudioAttributes] = []
    subs: List[SubtitleAttributes] = []
    artwork: Optional[EmbeddedArtwork] = None

    for stream in streams:
        if not isinstance(stream, dict):
            continue
        if disposition_flag(stream, "attached_pic"):
            artwork = EmbeddedArtwork(
                has_artwork=True,
                mime_type=artwork_mime_type(stream.get("codec_name")),
                stream_index=parse_int(stream.get("index")),
            )
            continue

        kind = stream.get("codec_type")
        if kind == StreamType.VIDEO:
            if video is None:
                video = parse_video_stream(stream, duration_ms)
        elif kind == StreamType.AUDIO:
            audio.append(parse_audio_stream(stream, duration_ms))
        elif kind == StreamType.SUBTITLE:
            subs.append(parse_subtitle_stream(stream))

    result = FileAnalysisResult(
        success=True,
        file_path=str(file_path),
        container=fmt.get("format_name"),
        duration=duration_ms,
        file_size=parse_int(fmt.get("size")),
        overall_bitrate=round_half_up(overall / 1000) if overall is not None else None,
        video=video,
        audio_tracks=tuple(audio),
        subtitle_tracks=tuple(subs),
        embedded_artwork=artwork,
        embedded_metadata=parse_embedded_metadata(fmt),
    )

    if result.video is not None:
        bitrate = reconcile_video_bitrate(
            result.video.bitrate,
            (t.bitrate for t in result.audio_tracks),
            file_size=result.file_size,
            duration_ms=result.duration,
            overall_bitrate=result.overall_bitrate,
        )
        if bitrate != result.video.bitrate:
            result = dataclasses.replace(result, video=dataclasses.replace(result.video, bitrate=bitrate))

    return result
