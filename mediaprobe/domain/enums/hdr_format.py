from __future__ import annotations

from enum import StrEnum


class HdrFormat(StrEnum):
    DOLBY_VISION = "Dolby Vision"
    HDR10_PLUS = "HDR10+"
    HDR10 = "HDR10"
    PQ = "PQ"
    HLG = "HLG"
