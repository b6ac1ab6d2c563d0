# mediaprobe/domain/errors.py
from __future__ import annotations

from typing import Optional


class AnalysisError(RuntimeError):
    """Root of every error raised by the analysis pipeline."""


class ProbeError(AnalysisError):
    """A single probe invocation failed. Carries stderr/rc when available."""

    def __init__(self, message: str, *, stderr: Optional[str] = None, rc: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.stderr = stderr
        self.rc = rc

    def __str__(self) -> str:
        return self.message


class ProbeSpawnError(ProbeError):
    """The probing executable could not be started."""


class ProbeTimeoutError(ProbeError):
    """The probe ran past its hard timeout and was killed."""


class ProbeExitError(ProbeError):
    """The probe exited with a non-zero code (or produced no output)."""


class ProbeParseError(ProbeError):
    """The probe's stdout was not valid JSON."""


class WorkerFault(AnalysisError):
    """Uncaught error inside a worker; the worker is discarded."""


class PoolUninitializedError(AnalysisError):
    """analyze_file() called before initialize()."""


class PoolShuttingDownError(AnalysisError):
    """Request arrived after shutdown() began."""


POOL_SHUTTING_DOWN = "Worker pool shutting down"
WORKER_TERMINATED = "Worker terminated during shutdown"
