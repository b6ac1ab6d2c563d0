# mediaprobe/services/analysis/file_analyzer.py
from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

from mediaprobe.common.logging import get_logger
from mediaprobe.domain.entities.analysis import FileAnalysisResult
from mediaprobe.domain.errors import ProbeError
from mediaprobe.domain.ports.probe import MediaProbePort
from mediaprobe.services.probe.ffprobe_adapter import FFprobeAdapter
from mediaprobe.services.probe.output_parser import parse_ffprobe_output

logger = get_logger(__name__)


class FileAnalyzer:
    """
    Probe + parse for one path at a time. Owned by exactly one worker.

    Probe failures become `success=False` results; anything else (a parser bug,
    say) is left to propagate so the worker boundary can treat it as a fault.
    """

    def __init__(
        self,
        ffprobe_bin: str,
        *,
        timeout_sec: Optional[float] = None,
        prober: Optional[Callable[[], MediaProbePort]] = None,
    ) -> None:
        # prober is a factory returning a MediaProbePort (tests pass fakes)
        factory = prober or (lambda: FFprobeAdapter(ffprobe_bin, timeout_sec=timeout_sec))
        self.prober: MediaProbePort = factory()

    def analyze(self, file_path: str) -> FileAnalysisResult:
        if not Path(file_path).is_file():
            return FileAnalysisResult.failure(file_path, f"File not found: {file_path}")

        try:
            data = self.prober.probe(file_path)
        except ProbeError as e:
            logger.debug("probe failed for %s: %s", file_path, e)
            return FileAnalysisResult.failure(file_path, str(e) or "Failed to analyze file")

        return parse_ffprobe_output(file_path, data)

    def cancel(self) -> None:
        self.prober.cancel()
