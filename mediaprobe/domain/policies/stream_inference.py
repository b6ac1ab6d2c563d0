# mediaprobe/domain/policies/stream_inference.py
"""
Pure inference over one ffprobe stream dict: frame rate, bit depth, HDR
signalling and object-based audio. No I/O, no state.
"""
from __future__ import annotations

import math
from typing import Any, Mapping, Optional

from mediaprobe.common.probe.ffprobe_helpers import parse_int
from mediaprobe.domain.enums import HdrFormat


def parse_frame_rate(rate: Optional[str]) -> Optional[float]:
    """
    "24000/1001" -> 23.98, "25" -> 25.0, "0/0" / garbage / None -> None.
    """
    if not rate or rate == "0/0":
        return None

    parts = str(rate).split("/")
    if len(parts) == 2:
        try:
            num, den = float(parts[0]), float(parts[1])
        except ValueError:
            return None
        if den != 0:
            return _round2(num / den)

    try:
        v = float(rate)
    except ValueError:
        return None
    return _round2(v)


def _round2(v: float) -> Optional[float]:
    # inf, nan and values that overflow when scaled are not a rate
    scaled = v * 100 + 0.5
    if not math.isfinite(scaled):
        return None
    return math.floor(scaled) / 100


def extract_bit_depth(stream: Mapping[str, Any]) -> Optional[int]:
    raw = parse_int(stream.get("bits_per_raw_sample"))
    if raw:
        return raw

    pix_fmt = str(stream.get("pix_fmt") or "").lower()
    if "12le" in pix_fmt or "12be" in pix_fmt:
        return 12
    if "10le" in pix_fmt or "10be" in pix_fmt or "p010" in pix_fmt:
        return 10
    if any(tok in pix_fmt for tok in ("yuv420p", "yuv422p", "yuv444p")):
        return 8
    return None


def _side_data_types(stream: Mapping[str, Any]) -> list[str]:
    out = []
    for sd in stream.get("side_data_list") or []:
        if isinstance(sd, dict):
            out.append(str(sd.get("side_data_type") or "").lower())
    return out


def detect_hdr_format(stream: Mapping[str, Any]) -> Optional[HdrFormat]:
    """
    Side-data markers (Dolby Vision, HDR10+) win over transfer heuristics.
    PQ + BT.2020 is HDR10 only with mastering-display or content-light side data.
    """
    transfer = str(stream.get("color_transfer") or "").lower()
    primaries = str(stream.get("color_primaries") or "").lower()
    space = str(stream.get("color_space") or "").lower()
    side = _side_data_types(stream)

    if any("dolby vision" in s for s in side):
        return HdrFormat.DOLBY_VISION
    if any("hdr10+" in s or "dynamic hdr" in s for s in side):
        return HdrFormat.HDR10_PLUS

    is_pq = "smpte2084" in transfer or "pq" in transfer
    is_bt2020 = "bt2020" in primaries or "bt2020" in space
    if is_pq and is_bt2020:
        if any("mastering display" in s or "content light" in s for s in side):
            return HdrFormat.HDR10
        return HdrFormat.PQ

    if "arib-std-b67" in transfer or "hlg" in transfer:
        return HdrFormat.HLG
    return None


def detect_object_audio(codec: Optional[str], profile: Optional[str] = None, title: Optional[str] = None) -> bool:
    """TrueHD/E-AC-3 Atmos and DTS:X."""
    codec = (codec or "").lower()
    profile = (profile or "").lower()
    title = (title or "").lower()

    if codec in ("truehd", "eac3") and ("atmos" in profile or "atmos" in title):
        return True
    if "dts" in codec and ("x" in profile or "dts:x" in title or "dts-x" in title):
        return True
    return False
