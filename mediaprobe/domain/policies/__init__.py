from mediaprobe.domain.policies.bitrate import (
    estimate_audio_bitrate,
    extract_bitrate,
    reconcile_video_bitrate,
)
from mediaprobe.domain.policies.stream_inference import (
    detect_hdr_format,
    detect_object_audio,
    extract_bit_depth,
    parse_frame_rate,
)
__all__ = [
    "estimate_audio_bitrate",
    "extract_bitrate",
    "reconcile_video_bitrate",
    "detect_hdr_format",
    "detect_object_audio",
    "extract_bit_depth",
    "parse_frame_rate",
]
