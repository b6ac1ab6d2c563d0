# mediaprobe/services/analysis/service.py
from __future__ import annotations

import os
from concurrent.futures import Future
from typing import Dict, Iterable, Mapping, Optional

from mediaprobe.common.concurrency.worker_pool import PoolStats, ProbeWorkerPool, ProgressCallback
from mediaprobe.common.logging import get_logger
from mediaprobe.common.probe.ffprobe_helpers import (
    default_ffprobe_candidates,
    ffprobe_version,
    find_ffprobe,
)
from mediaprobe.common.settings import Settings, get_settings
from mediaprobe.domain.dataclasses.reports import AnalysisReport
from mediaprobe.domain.entities.analysis import FileAnalysisResult
from mediaprobe.domain.errors import PoolUninitializedError
from mediaprobe.services.analysis.file_analyzer import FileAnalyzer

logger = get_logger(__name__)

NOT_INSTALLED = "FFprobe is not installed"


class MediaAnalysisService:
    """
    Public surface of the analysis pipeline, owned by the application's
    composition root (one instance per app; pass it where it's needed).

    Resolves the ffprobe binary, owns a ProbeWorkerPool and delegates to it.
    """

    def __init__(
        self,
        *,
        pool: Optional[ProbeWorkerPool] = None,
        ffprobe_bin: Optional[str] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.cfg = settings or get_settings()
        self.pool = pool or ProbeWorkerPool(settings=self.cfg)
        self._ffprobe_bin = ffprobe_bin or self.cfg.probe.bin
        self._checked = False

    # ---- prober discovery ---------------------------------------------------
    def is_available(self) -> bool:
        if self._checked:
            return self._ffprobe_bin is not None
        timeout = self.cfg.probe.version_timeout_sec
        self._ffprobe_bin = find_ffprobe(default_ffprobe_candidates(self._ffprobe_bin), timeout)
        self._checked = True
        return self._ffprobe_bin is not None

    def get_version(self) -> Optional[str]:
        if not self.is_available():
            return None
        return ffprobe_version(self._ffprobe_bin, self.cfg.probe.version_timeout_sec)

    @property
    def ffprobe_bin(self) -> Optional[str]:
        return self._ffprobe_bin

    # ---- pool control ------------------------------------------------------
    def initialize(self, prober_path: Optional[str] = None) -> None:
        """Idempotent. With no path, discovers one; raises if none is usable."""
        if prober_path:
            self._ffprobe_bin = str(prober_path)
            self._checked = True
        elif not self.is_available():
            raise PoolUninitializedError(f"{NOT_INSTALLED}; set MEDIAPROBE_PROBE__BIN or install ffmpeg.")
        self.pool.initialize(self._ffprobe_bin)

    def set_max_workers(self, count: int) -> None:
        self.pool.set_max_workers(count)

    def get_stats(self) -> PoolStats:
        return self.pool.get_stats()

    def shutdown(self) -> None:
        self.pool.shutdown()

    def reset(self) -> None:
        self.pool.reset()
        self._ffprobe_bin = self.cfg.probe.bin
        self._checked = False

    # ---- analysis ----------------------------------------------------------
    def analyze_file(self, file_path: str | os.PathLike) -> "Future[FileAnalysisResult]":
        return self.pool.analyze_file(file_path)

    def analyze_files(
        self,
        file_paths: Iterable[str | os.PathLike],
        on_progress: Optional[ProgressCallback] = None,
    ) -> Dict[str, FileAnalysisResult]:
        paths = [os.fspath(p) for p in file_paths]
        if not self._ensure_ready():
            return {p: FileAnalysisResult.failure(p, NOT_INSTALLED) for p in paths}

        try:
            logger.info("Analyzing %d files in parallel", len(paths))
            return self.pool.analyze_files(paths, on_progress)
        except PoolUninitializedError as e:
            logger.warning("Worker pool unavailable, falling back to sequential: %s", e)
            return self.analyze_files_sequential(paths, on_progress)

    def analyze_batch(
        self,
        file_paths: Iterable[str | os.PathLike],
        concurrency: Optional[int] = None,
    ) -> Dict[str, FileAnalysisResult]:
        paths = [os.fspath(p) for p in file_paths]
        if not self._ensure_ready():
            return {p: FileAnalysisResult.failure(p, NOT_INSTALLED) for p in paths}
        return self.pool.analyze_batch(paths, concurrency)

    def analyze_files_sequential(
        self,
        file_paths: Iterable[str | os.PathLike],
        on_progress: Optional[ProgressCallback] = None,
    ) -> Dict[str, FileAnalysisResult]:
        """In-thread fallback; no pool involved."""
        paths = [os.fspath(p) for p in file_paths]
        if not self.is_available():
            return {p: FileAnalysisResult.failure(p, NOT_INSTALLED) for p in paths}

        analyzer = FileAnalyzer(self._ffprobe_bin, timeout_sec=self.cfg.probe.timeout_sec)
        out: Dict[str, FileAnalysisResult] = {}
        for i, p in enumerate(paths, start=1):
            try:
                out[p] = analyzer.analyze(p)
            except Exception as e:
                logger.exception("analysis failed for %s", p)
                out[p] = FileAnalysisResult.failure(p, str(e) or "Failed to analyze file")
            if on_progress is not None:
                on_progress(i, len(paths), os.path.basename(p))
        return out

    @staticmethod
    def summarize(results: Mapping[str, FileAnalysisResult]) -> AnalysisReport:
        rpt = AnalysisReport()
        rpt.start()
        rpt.add_results(results.values())
        rpt.stop()
        return rpt

    def _ensure_ready(self) -> bool:
        if self.pool.initialized:
            return True
        if not self.is_available():
            return False
        self.pool.initialize(self._ffprobe_bin)
        return True
