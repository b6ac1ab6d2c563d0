# mediaprobe/domain/policies/bitrate.py
"""
Bitrate inference. All values are kbps.

Probes often omit per-stream bitrates (Matroska in particular), so we fall
back in order: reported -> tag statistics -> reconstruction -> codec estimate,
and finally reconcile the video figure against the container's size/duration.
"""
from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional

from mediaprobe.common.probe.ffprobe_helpers import get_tag, parse_float, parse_int, round_half_up

# Share of the container bitrate audio is allowed to claim when deriving video.
AUDIO_SHARE_CAP = 0.30
# Reported video bitrate is kept if within this ratio of the computed one.
PLAUSIBLE_RATIO = (0.5, 1.5)

DEFAULT_SAMPLE_RATE = 48000


def extract_bitrate(stream: Mapping[str, Any], duration_ms: Optional[int] = None) -> Optional[int]:
    """
    1) stream bit_rate (bits/s)
    2) BPS / BPS-eng tag (mkvmerge statistics)
    3) NUMBER_OF_BYTES tag over stream duration (or container duration)
    """
    reported = parse_int(stream.get("bit_rate"))
    if reported and reported > 0:
        return round_half_up(reported / 1000)

    bps = parse_int(get_tag(stream, "BPS", "BPS-eng"))
    if bps and bps > 0:
        return round_half_up(bps / 1000)

    num_bytes = parse_int(get_tag(stream, "NUMBER_OF_BYTES", "NUMBER_OF_BYTES-eng"))
    stream_duration = parse_float(stream.get("duration"))
    dur_ms = stream_duration * 1000 if stream_duration is not None else duration_ms
    if num_bytes and dur_ms and dur_ms > 0:
        seconds = dur_ms / 1000
        return round_half_up(num_bytes * 8 / seconds / 1000)

    return None


def _bucket(channels: int, *rates: int) -> int:
    """Pick by channel bucket: <=2, <=6, <=8, >8 (missing tail entries reuse the last)."""
    limits = (2, 6, 8)
    for limit, rate in zip(limits, rates):
        if channels <= limit:
            return rate
    return rates[-1]


def estimate_audio_bitrate(
    codec: str,
    channels: int,
    profile: Optional[str] = None,
    sample_rate: Optional[int | str] = None,
) -> Optional[int]:
    """Typical bitrates for codecs that commonly don't report one."""
    codec = (codec or "").lower()
    rate = parse_int(sample_rate) or DEFAULT_SAMPLE_RATE

    if codec == "ac3":
        return _bucket(channels, 192, 448, 640)

    if codec == "eac3":
        return _bucket(channels, 256, 640, 1024, 1536)

    if codec == "truehd":
        base = 4000 if rate > 48000 else 2500
        return round_half_up(base * _bucket(channels, 0.4, 1, 1.6, 2))

    if codec == "dts":
        p = (profile or "").lower()
        if "ma" in p:
            return _bucket(channels, 1500, 3000, 4500, 6000)
        if "hra" in p:
            return 1500 if channels <= 6 else 2000
        return _bucket(channels, 768, 1509)

    if codec == "flac":
        # 16-bit, ~60% lossless compression
        return round_half_up(channels * rate * 16 * 0.6 / 1000)

    if "pcm" in codec:
        return round_half_up(channels * rate * 16 / 1000)

    return None


def _capped_audio(total: int, audio_bitrates: Iterable[Optional[int]]) -> int:
    audio = sum(b or 0 for b in audio_bitrates)
    return min(audio, round_half_up(total * AUDIO_SHARE_CAP))


def reconcile_video_bitrate(
    video_bitrate: Optional[int],
    audio_bitrates: Iterable[Optional[int]],
    *,
    file_size: Optional[int] = None,
    duration_ms: Optional[int] = None,
    overall_bitrate: Optional[int] = None,
) -> Optional[int]:
    """
    With size + duration: total = size*8/seconds; video = total - min(audio, 30% total).
    A reported video bitrate survives only within [0.5, 1.5] of that figure.
    Without size: derive from the container's overall bitrate, only if video has none.
    """
    audio_bitrates = list(audio_bitrates)

    if file_size and duration_ms:
        seconds = duration_ms / 1000
        total = round_half_up(file_size * 8 / seconds / 1000)
        computed = max(0, total - _capped_audio(total, audio_bitrates))
        if video_bitrate:
            lo, hi = PLAUSIBLE_RATIO
            if computed > 0 and lo <= video_bitrate / computed <= hi:
                return video_bitrate
        return computed

    if overall_bitrate and not video_bitrate:
        return max(0, overall_bitrate - _capped_audio(overall_bitrate, audio_bitrates))

    return video_bitrate
