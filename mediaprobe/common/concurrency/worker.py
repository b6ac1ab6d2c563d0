# mediaprobe/common/concurrency/worker.py
from __future__ import annotations

import queue
import threading
from dataclasses import dataclass
from typing import Optional, Protocol, Union

from mediaprobe.common.logging import get_logger
from mediaprobe.domain.entities.analysis import FileAnalysisResult
from mediaprobe.domain.entities.task import AnalysisTask
from mediaprobe.domain.errors import WorkerFault

log = get_logger(__name__)


class Analyzer(Protocol):
    def analyze(self, file_path: str) -> FileAnalysisResult: ...
    def cancel(self) -> None: ...


# -------------------------
# Outbound messages (worker -> coordinator)
# -------------------------
@dataclass(frozen=True)
class WorkerResult:
    worker_id: int
    task_id: str
    result: FileAnalysisResult


@dataclass(frozen=True)
class WorkerError:
    worker_id: int
    task_id: str
    error: WorkerFault


@dataclass(frozen=True)
class WorkerExited:
    worker_id: int
    code: int


WorkerMessage = Union[WorkerResult, WorkerError, WorkerExited]

_STOP = object()


class ProbeWorker:
    """
    One worker execution context: a daemon thread with a private inbox.

    The only shared surface is message passing: tasks come in through `post()`,
    and exactly one WorkerResult/WorkerError per task goes out to `outbox`,
    followed by a single WorkerExited when the thread ends (code 0 for a
    requested stop, 1 otherwise). A fault ends the worker.

    `current_task` is bookkeeping owned by the coordinator; the thread never reads it.
    """

    def __init__(
        self,
        worker_id: int,
        analyzer: Analyzer,
        outbox: "queue.Queue[object]",
        *,
        name_prefix: str = "probe-worker",
    ) -> None:
        self.worker_id = worker_id
        self.current_task: Optional[AnalysisTask] = None
        self._analyzer = analyzer
        self._inbox: "queue.Queue[object]" = queue.Queue()
        self._outbox = outbox
        self._thread = threading.Thread(
            target=self._run,
            name=f"{name_prefix}-{worker_id}",
            daemon=True,
        )

    # -------------------------
    # Coordinator-facing API
    # -------------------------
    @property
    def busy(self) -> bool:
        return self.current_task is not None

    def start(self) -> None:
        self._thread.start()

    def post(self, task: AnalysisTask) -> None:
        self._inbox.put(task)

    def stop(self) -> None:
        """Ask the worker to exit after its current task."""
        self._inbox.put(_STOP)

    def terminate(self) -> None:
        """Forced stop: kill the in-flight probe, then stop."""
        try:
            self._analyzer.cancel()
        except Exception:
            log.exception("worker %s: cancel failed", self.worker_id)
        self.stop()

    def join(self, timeout: Optional[float] = None) -> None:
        self._thread.join(timeout)

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    # -------------------------
    # Thread body
    # -------------------------
    def _run(self) -> None:
        code = 1
        try:
            while True:
                msg = self._inbox.get()
                if msg is _STOP:
                    code = 0
                    return
                assert isinstance(msg, AnalysisTask)
                try:
                    result = self._analyzer.analyze(msg.file_path)
                except Exception as e:
                    log.exception("worker %s task %s failed: %s", self.worker_id, msg.task_id, e)
                    fault = WorkerFault(str(e) or type(e).__name__)
                    fault.__cause__ = e
                    self._outbox.put(WorkerError(self.worker_id, msg.task_id, fault))
                    return
                self._outbox.put(WorkerResult(self.worker_id, msg.task_id, result))
        finally:
            self._outbox.put(WorkerExited(self.worker_id, code))
