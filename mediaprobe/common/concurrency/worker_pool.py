# mediaprobe/common/concurrency/worker_pool.py
from __future__ import annotations

import itertools
import os
import queue
import threading
import time
from collections import deque
from concurrent.futures import Future, InvalidStateError, as_completed
from dataclasses import dataclass
from typing import Callable, Deque, Dict, Iterable, List, Optional, Tuple

from mediaprobe.common.concurrency.worker import (
    Analyzer,
    ProbeWorker,
    WorkerError,
    WorkerExited,
    WorkerResult,
)
from mediaprobe.common.iter import chunked
from mediaprobe.common.logging import get_logger
from mediaprobe.common.settings import Settings, clamp_workers, get_settings
from mediaprobe.domain.entities.analysis import FileAnalysisResult
from mediaprobe.domain.entities.task import AnalysisTask
from mediaprobe.domain.errors import (
    POOL_SHUTTING_DOWN,
    WORKER_TERMINATED,
    PoolShuttingDownError,
    PoolUninitializedError,
)

log = get_logger(__name__)

ProgressCallback = Callable[[int, int, str], None]
AnalyzerFactory = Callable[[str], Analyzer]


@dataclass(frozen=True)
class PoolStats:
    max_workers: int
    active_workers: int
    queued_tasks: int


# -------------------------
# Inbound messages (callers -> coordinator)
# -------------------------
@dataclass(frozen=True)
class _Submit:
    task: AnalysisTask
    future: "Future[FileAnalysisResult]"


@dataclass(frozen=True)
class _StatsRequest:
    future: "Future[PoolStats]"


@dataclass(frozen=True)
class _ShutdownRequest:
    future: "Future[None]"


@dataclass(frozen=True)
class _SetMaxWorkers:
    count: int


def _default_analyzer_factory(prober_path: str) -> Analyzer:
    from mediaprobe.services.analysis.file_analyzer import FileAnalyzer  # local import

    return FileAnalyzer(prober_path, timeout_sec=get_settings().probe.timeout_sec)


def _resolve(fut: Future, value) -> None:
    try:
        fut.set_result(value)
    except InvalidStateError:
        # caller cancelled the handle; nothing to deliver
        log.debug("result dropped for cancelled future")


class ProbeWorkerPool:
    """
    Bounded, lazily grown pool of probe workers.

    Structure
    ---------
    - One coordinator thread owns the FIFO task queue and the worker registry.
      Every mutation of those happens inside its message handlers, in order.
    - Callers and workers only post messages to the coordinator's inbox.
    - Workers are created on demand up to `max_workers`; a faulted or exited
      worker is dropped and capacity regrows on the next dispatch pass.
    - `analyze_file()` returns a Future that always resolves (never raises),
      including during shutdown.

    Notes
    -----
    - Each worker runs one ffprobe subprocess at a time, so at most
      `max_workers` probes are in flight.
    - `_lock` only guards the coordinator's start/stop edges, so nothing is
      posted to an inbox nobody will read.
    """

    def __init__(
        self,
        *,
        max_workers: Optional[int] = None,
        analyzer_factory: Optional[AnalyzerFactory] = None,
        shutdown_timeout_sec: Optional[float] = None,
        settings: Optional[Settings] = None,
        name: str = "probe-pool",
    ) -> None:
        cfg = settings or get_settings()
        self._name = name
        self._cap = cfg.pool.max_workers_cap
        self._configured_max = max_workers
        self._max_workers = self._default_max(cfg)
        self._analyzer_factory: AnalyzerFactory = analyzer_factory or _default_analyzer_factory
        self._shutdown_timeout = float(shutdown_timeout_sec or cfg.pool.shutdown_timeout_sec)
        self._cfg = cfg

        self._lock = threading.Lock()
        self._prober_path: Optional[str] = None
        self._initialized = False
        self._closing = False
        self._inbox: "queue.Queue[object]" = queue.Queue()
        self._coordinator: Optional[threading.Thread] = None

        # ---- coordinator-owned state ----
        self._queue: Deque[AnalysisTask] = deque()
        self._pending: Dict[str, Future] = {}
        self._workers: Dict[int, ProbeWorker] = {}
        self._worker_ids = itertools.count(1)
        self._shutting_down = False
        self._shutdown_waiters: List[Future] = []
        self._deadlines: Dict[int, float] = {}

    def _default_max(self, cfg: Settings) -> int:
        return clamp_workers(self._configured_max or cfg.pool.max_workers, self._cap)

    # -------------------------
    # Lifecycle
    # -------------------------
    def initialize(self, prober_path: str) -> None:
        """Store configuration and start the coordinator. Idempotent; spawns no workers."""
        with self._lock:
            if self._closing:
                raise PoolShuttingDownError(f"{self._name} is shutting down; initialize() after shutdown() returns.")
            if self._initialized:
                return
            self._prober_path = str(prober_path)
            self._inbox = queue.Queue()
            self._coordinator = threading.Thread(
                target=self._coordinate,
                name=f"{self._name}-coordinator",
                daemon=True,
            )
            self._coordinator.start()
            self._initialized = True
        log.info("%s initialized with %d max workers, ffprobe: %s", self._name, self._max_workers, prober_path)

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def prober_path(self) -> Optional[str]:
        return self._prober_path

    @property
    def max_workers(self) -> int:
        return self._max_workers

    def set_max_workers(self, count: int) -> None:
        """
        Clamp to [1, cap]. The coordinator applies it in order with other
        messages: busy workers finish their task, surplus idle workers are stopped.
        """
        count = clamp_workers(count, self._cap)
        with self._lock:
            if self._initialized:
                self._inbox.put(_SetMaxWorkers(count))
            else:
                self._max_workers = count
        log.info("%s max workers set to %d", self._name, count)

    def get_stats(self) -> PoolStats:
        """Point-in-time snapshot, computed by the coordinator."""
        if threading.current_thread() is self._coordinator:
            return self._snapshot()
        fut: Future[PoolStats] = Future()
        if not self._post(_StatsRequest(fut)):
            return PoolStats(self._max_workers, 0, 0)
        return fut.result()

    def shutdown(self) -> None:
        """
        Fail every queued task with "pool shutting down", stop every worker
        (force-terminating any that outlive the grace period) and return once
        the registry is empty. The pool can be initialized again afterwards.
        """
        if threading.current_thread() is self._coordinator:
            raise RuntimeError(f"{self._name}: shutdown() called from the coordinator thread")
        fut: Future[None] = Future()
        with self._lock:
            if not self._initialized:
                return
            self._closing = True
            self._inbox.put(_ShutdownRequest(fut))
            coordinator = self._coordinator
        fut.result()
        if coordinator is not None:
            coordinator.join()
        log.info("%s shutdown complete", self._name)

    def reset(self) -> None:
        """shutdown() and drop configuration; next use must initialize() again."""
        self.shutdown()
        with self._lock:
            self._prober_path = None
            self._max_workers = self._default_max(self._cfg)

    def __enter__(self) -> "ProbeWorkerPool":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    # -------------------------
    # Submission
    # -------------------------
    def analyze_file(self, file_path: str | os.PathLike) -> "Future[FileAnalysisResult]":
        """
        Queue one file. The returned Future always resolves to a FileAnalysisResult.
        Raises PoolUninitializedError if initialize() was never called.
        """
        path = os.fspath(file_path)
        fut: Future[FileAnalysisResult] = Future()
        with self._lock:
            if not self._initialized:
                raise PoolUninitializedError(f"{self._name} not initialized. Call initialize() first.")
            if self._closing:
                fut.set_result(FileAnalysisResult.failure(path, POOL_SHUTTING_DOWN))
                return fut
            self._inbox.put(_Submit(AnalysisTask(path), fut))
        return fut

    # -------------------------
    # Bulk helpers
    # -------------------------
    def analyze_files(
        self,
        file_paths: Iterable[str | os.PathLike],
        on_progress: Optional[ProgressCallback] = None,
    ) -> Dict[str, FileAnalysisResult]:
        """
        Submit everything at once (the pool bounds concurrency) and wait.
        `on_progress(completed, total, basename)` fires once per finished file.
        """
        paths = [os.fspath(p) for p in file_paths]
        if not self._initialized:
            raise PoolUninitializedError(f"{self._name} not initialized. Call initialize() first.")
        if not paths:
            return {}

        futures = {self.analyze_file(p): p for p in paths}
        done: Dict[str, FileAnalysisResult] = {}
        total = len(futures)
        for completed, fut in enumerate(as_completed(futures), start=1):
            path = futures[fut]
            done[path] = fut.result()
            if on_progress is not None:
                on_progress(completed, total, os.path.basename(path))
        return {p: done[p] for p in paths}

    def analyze_batch(
        self,
        file_paths: Iterable[str | os.PathLike],
        concurrency: Optional[int] = None,
    ) -> Dict[str, FileAnalysisResult]:
        """
        Sequential chunks of `concurrency` (default max_workers); each chunk
        fully resolves before the next one is submitted.
        """
        size = concurrency or self._max_workers
        results: Dict[str, FileAnalysisResult] = {}
        for batch in chunked((os.fspath(p) for p in file_paths), size):
            pairs: List[Tuple[str, Future]] = [(p, self.analyze_file(p)) for p in batch]
            for path, fut in pairs:
                results[path] = fut.result()
        return results

    # -------------------------
    # Coordinator
    # -------------------------
    def _post(self, msg: object) -> bool:
        with self._lock:
            if not self._initialized:
                return False
            self._inbox.put(msg)
            return True

    def _coordinate(self) -> None:
        while True:
            timeout = None
            if self._deadlines:
                timeout = max(0.0, min(self._deadlines.values()) - time.monotonic())
            try:
                msg = self._inbox.get(timeout=timeout)
            except queue.Empty:
                msg = None

            if msg is not None:
                self._handle(msg)
            self._expire_deadlines()

            if self._shutting_down and not self._workers:
                self._finish_shutdown()
                return

    def _handle(self, msg: object) -> None:
        if isinstance(msg, _Submit):
            if self._shutting_down:
                _resolve(msg.future, FileAnalysisResult.failure(msg.task.file_path, POOL_SHUTTING_DOWN))
                return
            self._pending[msg.task.task_id] = msg.future
            self._queue.append(msg.task)
            self._dispatch()
        elif isinstance(msg, WorkerResult):
            self._on_result(msg)
        elif isinstance(msg, WorkerError):
            self._on_error(msg)
        elif isinstance(msg, WorkerExited):
            self._on_exit(msg)
        elif isinstance(msg, _StatsRequest):
            _resolve(msg.future, self._snapshot())
        elif isinstance(msg, _ShutdownRequest):
            self._begin_shutdown(msg.future)
        elif isinstance(msg, _SetMaxWorkers):
            self._max_workers = msg.count
            self._dispatch()
        else:
            log.warning("%s: unknown message %r", self._name, msg)

    def _snapshot(self) -> PoolStats:
        return PoolStats(
            max_workers=self._max_workers,
            active_workers=sum(1 for w in self._workers.values() if w.busy),
            queued_tasks=len(self._queue),
        )

    def _dispatch(self) -> None:
        """Hand queued tasks to idle workers, growing the registry up to max_workers."""
        self._retire_surplus()
        while self._queue and not self._shutting_down:
            busy = sum(1 for w in self._workers.values() if w.busy)
            if busy >= self._max_workers:
                return  # backpressure: task stays queued
            worker = next((w for w in self._workers.values() if not w.busy), None)
            if worker is None:
                try:
                    worker = self._create_worker()
                except Exception as e:
                    log.exception("%s: failed to create worker", self._name)
                    if not self._workers:
                        # no worker left to pick the queue up later
                        self._fail_queued(f"Failed to create worker: {e}")
                    return
            task = self._queue.popleft()
            worker.current_task = task
            worker.post(task)

    def _retire_surplus(self) -> None:
        """Stop idle workers above max_workers; busy ones are retired when they finish."""
        while len(self._workers) > self._max_workers:
            wid = next((i for i, w in self._workers.items() if not w.busy), None)
            if wid is None:
                return
            self._workers.pop(wid).stop()
            log.debug("%s retired worker %d (total: %d)", self._name, wid, len(self._workers))

    def _fail_queued(self, message: str) -> None:
        while self._queue:
            task = self._queue.popleft()
            fut = self._pending.pop(task.task_id, None)
            if fut is not None:
                _resolve(fut, FileAnalysisResult.failure(task.file_path, message))

    def _create_worker(self) -> ProbeWorker:
        wid = next(self._worker_ids)
        analyzer = self._analyzer_factory(self._prober_path or "ffprobe")
        worker = ProbeWorker(wid, analyzer, self._inbox, name_prefix=f"{self._name}-worker")
        worker.start()
        self._workers[wid] = worker
        log.debug("%s created worker %d (total: %d)", self._name, wid, len(self._workers))
        return worker

    def _complete(self, worker: ProbeWorker, result: FileAnalysisResult) -> None:
        task = worker.current_task
        worker.current_task = None
        if task is None:
            return
        fut = self._pending.pop(task.task_id, None)
        if fut is not None:
            _resolve(fut, result)

    def _on_result(self, msg: WorkerResult) -> None:
        worker = self._workers.get(msg.worker_id)
        if worker is None:
            return  # already force-terminated
        task = worker.current_task
        if task is not None and task.task_id == msg.task_id:
            self._complete(worker, msg.result)
        else:
            log.warning("%s: worker %d returned unexpected task %s", self._name, msg.worker_id, msg.task_id)
        self._dispatch()

    def _on_error(self, msg: WorkerError) -> None:
        worker = self._workers.pop(msg.worker_id, None)
        if worker is None:
            return
        log.error("%s: worker %d fault: %s", self._name, msg.worker_id, msg.error)
        if worker.current_task is not None:
            self._complete(worker, FileAnalysisResult.failure(worker.current_task.file_path, str(msg.error)))
        self._deadlines.pop(msg.worker_id, None)
        self._dispatch()

    def _on_exit(self, msg: WorkerExited) -> None:
        worker = self._workers.pop(msg.worker_id, None)
        self._deadlines.pop(msg.worker_id, None)
        if worker is None:
            return
        if msg.code != 0 and not self._shutting_down:
            log.warning("%s: worker %d exited with code %d", self._name, msg.worker_id, msg.code)
        if worker.current_task is not None:
            path = worker.current_task.file_path
            self._complete(worker, FileAnalysisResult.failure(path, f"Worker exited with code {msg.code}"))
        self._dispatch()

    # -------------------------
    # Shutdown (coordinator side)
    # -------------------------
    def _begin_shutdown(self, waiter: Future) -> None:
        self._shutdown_waiters.append(waiter)
        if self._shutting_down:
            return
        self._shutting_down = True

        self._fail_queued(POOL_SHUTTING_DOWN)

        deadline = time.monotonic() + self._shutdown_timeout
        for wid, worker in self._workers.items():
            worker.stop()
            self._deadlines[wid] = deadline

    def _expire_deadlines(self) -> None:
        now = time.monotonic()
        for wid in [w for w, d in self._deadlines.items() if d <= now]:
            del self._deadlines[wid]
            worker = self._workers.pop(wid, None)
            if worker is None:
                continue
            log.warning("%s: worker %d did not stop in %.1fs; terminating", self._name, wid, self._shutdown_timeout)
            worker.terminate()
            if worker.current_task is not None:
                self._complete(worker, FileAnalysisResult.failure(worker.current_task.file_path, WORKER_TERMINATED))

    def _finish_shutdown(self) -> None:
        with self._lock:
            leftovers = []
            while True:
                try:
                    leftovers.append(self._inbox.get_nowait())
                except queue.Empty:
                    break
            # every task was resolved when its worker stopped; start clean for the next initialize()
            self._pending.clear()
            self._deadlines.clear()
            self._shutting_down = False
            self._initialized = False
            self._closing = False
            waiters, self._shutdown_waiters = self._shutdown_waiters, []
            for msg in leftovers:
                if isinstance(msg, _SetMaxWorkers):
                    self._max_workers = msg.count
            max_workers = self._max_workers

        for msg in leftovers:
            if isinstance(msg, _Submit):
                _resolve(msg.future, FileAnalysisResult.failure(msg.task.file_path, POOL_SHUTTING_DOWN))
            elif isinstance(msg, _StatsRequest):
                _resolve(msg.future, PoolStats(max_workers, 0, 0))
            elif isinstance(msg, _ShutdownRequest):
                waiters.append(msg.future)

        for fut in waiters:
            _resolve(fut, None)
