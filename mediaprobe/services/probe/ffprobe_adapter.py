# mediaprobe/services/probe/ffprobe_adapter.py
from __future__ import annotations

import json
import subprocess
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from mediaprobe.common.logging import get_logger
from mediaprobe.common.probe.ffprobe_helpers import build_ffprobe_cmd, format_cmd
from mediaprobe.common.settings import get_settings
from mediaprobe.domain.errors import (
    ProbeExitError,
    ProbeParseError,
    ProbeSpawnError,
    ProbeTimeoutError,
)
from mediaprobe.domain.ports.probe import MediaProbePort

logger = get_logger(__name__)


class FFprobeAdapter(MediaProbePort):
    """
    Runs `ffprobe` for one file at a time and returns its raw JSON document.
    One instance per worker: `cancel()` kills whatever probe is in flight.
    """

    def __init__(self, ffprobe_bin: str, timeout_sec: Optional[float] = None):
        self.ffprobe_bin = ffprobe_bin
        self.timeout_sec = float(timeout_sec or get_settings().probe.timeout_sec)
        self._proc: Optional[subprocess.Popen] = None
        self._lock = threading.Lock()

    # ---- Port API -------------------------------------------------------------
    def probe(self, path: str | Path) -> Dict[str, Any]:
        cmd = build_ffprobe_cmd(self.ffprobe_bin, path)
        logger.debug("ffprobe cmd: %s", format_cmd(cmd))

        try:
            proc = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            raise ProbeSpawnError(f"Failed to run FFprobe: {e}", stderr=str(e)) from e

        with self._lock:
            self._proc = proc
        try:
            try:
                stdout, stderr = proc.communicate(timeout=self.timeout_sec)
            except subprocess.TimeoutExpired as e:
                proc.kill()
                proc.communicate()
                raise ProbeTimeoutError(f"FFprobe timed out after {self.timeout_sec:g}s", stderr=str(e)) from e
        finally:
            with self._lock:
                self._proc = None

        rc = proc.returncode
        if rc != 0 or not stdout:
            raise ProbeExitError(
                (stderr or "").strip() or f"FFprobe exited with code {rc}",
                stderr=stderr,
                rc=rc,
            )

        try:
            data = json.loads(stdout)
        except json.JSONDecodeError as e:
            raise ProbeParseError(f"Failed to parse FFprobe output: {e}", stderr=stdout) from e
        if not isinstance(data, dict):
            raise ProbeParseError("Failed to parse FFprobe output: expected a JSON object", stderr=stdout)
        return data

    def cancel(self) -> None:
        """Kill the in-flight probe, if any. Safe to call from another thread."""
        with self._lock:
            proc = self._proc
        if proc is not None and proc.poll() is None:
            logger.debug("Killing in-flight ffprobe (pid %s)", proc.pid)
            proc.kill()
