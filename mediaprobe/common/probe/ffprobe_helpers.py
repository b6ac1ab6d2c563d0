# mediaprobe/common/probe/ffprobe_helpers.py
from __future__ import annotations

import math
import re
import shlex
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional

from mediaprobe.common.logging import get_logger

logger = get_logger(__name__)

_LEADING_INT = re.compile(r"^\s*(\d+)")
_VERSION_RE = re.compile(r"ffprobe version (\S+)")


def build_ffprobe_cmd(ffprobe_bin: str, input_path: str | Path) -> List[str]:
    """
    The fixed argument contract: quiet, JSON, full format + stream dump.
    """
    return [
        ffprobe_bin,
        "-v", "quiet",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        str(input_path),
    ]


def format_cmd(cmd: Iterable[str]) -> str:
    return " ".join(shlex.quote(p) for p in cmd)


# ---- binary discovery ----------------------------------------------------------
def default_ffprobe_candidates(configured: Optional[str] = None) -> List[str]:
    """Configured binary first, then PATH, then conventional install locations."""
    out: List[str] = []
    if configured:
        out.append(configured)
    out.append(shutil.which("ffprobe") or "ffprobe")
    if sys.platform == "win32":
        out += [
            r"C:\ffmpeg\bin\ffprobe.exe",
            r"C:\Program Files\ffmpeg\bin\ffprobe.exe",
            r"C:\Program Files (x86)\ffmpeg\bin\ffprobe.exe",
            r"C:\ProgramData\chocolatey\bin\ffprobe.exe",
        ]
    elif sys.platform == "darwin":
        out += ["/usr/local/bin/ffprobe", "/opt/homebrew/bin/ffprobe", "/opt/local/bin/ffprobe"]
    else:
        out += ["/usr/bin/ffprobe", "/usr/local/bin/ffprobe", "/snap/bin/ffprobe"]
    # de-dup, keep order
    return list(dict.fromkeys(out))


def _run_version(ffprobe_bin: str, timeout_sec: float) -> Optional[subprocess.CompletedProcess]:
    try:
        return subprocess.run(
            [ffprobe_bin, "-version"],
            capture_output=True,
            text=True,
            timeout=timeout_sec,
            check=False,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug("ffprobe candidate %s unusable: %s", ffprobe_bin, e)
        return None


def ffprobe_works(ffprobe_bin: str, timeout_sec: float = 5) -> bool:
    """True if `<bin> -version` runs and exits 0."""
    cp = _run_version(ffprobe_bin, timeout_sec)
    return cp is not None and cp.returncode == 0


def find_ffprobe(candidates: Iterable[str], timeout_sec: float = 5) -> Optional[str]:
    for cand in candidates:
        if ffprobe_works(cand, timeout_sec):
            logger.info("Found ffprobe at: %s", cand)
            return cand
    logger.info("ffprobe not found on system")
    return None


def ffprobe_version(ffprobe_bin: str, timeout_sec: float = 5) -> Optional[str]:
    cp = _run_version(ffprobe_bin, timeout_sec)
    if cp is None:
        return None
    m = _VERSION_RE.search(cp.stdout or "")
    return m.group(1) if m else "unknown"


# ---- tiny parse helpers -------------------------------------------------------
def parse_float(x: Any) -> Optional[float]:
    if x is None or isinstance(x, bool):
        return None
    try:
        v = float(x)
    except (TypeError, ValueError):
        return None
    return v if math.isfinite(v) else None


def parse_int(x: Any) -> Optional[int]:
    v = parse_float(x)
    return int(v) if v is not None else None


def leading_int(x: Any) -> Optional[int]:
    """Leading digits of a tag value: "3/12" -> 3, "07" -> 7, "abc" -> None."""
    if x is None:
        return None
    m = _LEADING_INT.match(str(x))
    return int(m.group(1)) if m else None


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def get_tag(obj: Mapping[str, Any] | None, *keys: str) -> Optional[str]:
    """First present, non-blank tag among `keys` (ffprobe `tags` dict)."""
    if not obj:
        return None
    tags = obj.get("tags") or {}
    if not isinstance(tags, dict):
        return None
    for key in keys:
        val = tags.get(key)
        if val is None:
            continue
        s = str(val).strip()
        if s:
            return s
    return None


def disposition_flag(stream: Mapping[str, Any], name: str) -> bool:
    disp = stream.get("disposition") or {}
    return isinstance(disp, dict) and disp.get(name) == 1
