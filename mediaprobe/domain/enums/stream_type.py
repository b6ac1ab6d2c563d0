from __future__ import annotations

from enum import StrEnum


class StreamType(StrEnum):
    """ffprobe `codec_type` values we route on."""
    VIDEO = "video"
    AUDIO = "audio"
    SUBTITLE = "subtitle"
    DATA = "data"
    ATTACHMENT = "attachment"
