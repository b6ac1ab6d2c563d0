import pytest

from mediaprobe.common.concurrency.worker_pool import ProbeWorkerPool
from mediaprobe.domain.entities.analysis import FileAnalysisResult
from mediaprobe.domain.errors import PoolUninitializedError
from mediaprobe.services.analysis import service as service_mod
from mediaprobe.services.analysis.service import NOT_INSTALLED, MediaAnalysisService


class _OkAnalyzer:
    def __init__(self, prober_path):
        self.prober_path = prober_path

    def analyze(self, file_path):
        if file_path.endswith(".bad"):
            return FileAnalysisResult.failure(file_path, "FFprobe exited with code 1")
        return FileAnalysisResult(success=True, file_path=file_path, container="mov,mp4")

    def cancel(self):
        pass


class _UnavailablePool:
    """Pool that claims to be up but refuses work, to drive the sequential fallback."""

    initialized = True

    def analyze_files(self, paths, on_progress=None):
        raise PoolUninitializedError("probe-pool not initialized. Call initialize() first.")

    def shutdown(self):
        pass


@pytest.fixture()
def found(monkeypatch):
    calls = []

    def _find(candidates, timeout):
        calls.append(list(candidates))
        return "/usr/bin/ffprobe"

    monkeypatch.setattr(service_mod, "find_ffprobe", _find)
    return calls


@pytest.fixture()
def missing(monkeypatch):
    monkeypatch.setattr(service_mod, "find_ffprobe", lambda candidates, timeout: None)


@pytest.fixture()
def svc(pool_settings):
    pool = ProbeWorkerPool(settings=pool_settings, analyzer_factory=_OkAnalyzer)
    s = MediaAnalysisService(pool=pool, settings=pool_settings)
    yield s
    s.shutdown()


# ---- prober discovery ------------------------------------------------------

def test_unavailable_prober_fails_every_path(svc, missing):
    out = svc.analyze_files(["/m/a.mkv", "/m/b.mkv"])
    assert list(out) == ["/m/a.mkv", "/m/b.mkv"]
    assert all(r.success is False and r.error == NOT_INSTALLED for r in out.values())
    assert svc.pool.initialized is False
    assert svc.get_version() is None


def test_initialize_without_prober_raises(svc, missing):
    with pytest.raises(PoolUninitializedError):
        svc.initialize()
    assert svc.pool.initialized is False


def test_discovery_is_cached(svc, found):
    assert svc.is_available() is True
    assert svc.is_available() is True
    assert len(found) == 1
    # configured binary is tried first
    assert found[0][0] == "/fake/ffprobe"
    assert svc.ffprobe_bin == "/usr/bin/ffprobe"


def test_initialize_with_explicit_path_skips_discovery(svc, found):
    svc.initialize("/opt/ffmpeg/bin/ffprobe")
    assert found == []
    assert svc.pool.initialized is True
    assert svc.pool.prober_path == "/opt/ffmpeg/bin/ffprobe"


def test_get_version(svc, found, monkeypatch):
    monkeypatch.setattr(service_mod, "ffprobe_version", lambda b, t: "6.1.1")
    assert svc.get_version() == "6.1.1"


def test_reset_forgets_discovered_binary(svc, found):
    svc.initialize()
    svc.reset()
    assert svc.pool.initialized is False
    assert svc.ffprobe_bin == "/fake/ffprobe"


# ---- analysis ----------------------------------------------------------------

def test_analyze_files_initializes_pool_lazily(svc, found):
    progress = []
    out = svc.analyze_files(["/m/a.mp4", "/m/b.bad"], lambda *a: progress.append(a))

    assert svc.pool.initialized is True
    assert out["/m/a.mp4"].success is True
    assert out["/m/b.bad"].error == "FFprobe exited with code 1"
    assert len(progress) == 2


def test_analyze_batch(svc, found):
    out = svc.analyze_batch([f"/m/{i}.mp4" for i in range(5)], concurrency=2)
    assert len(out) == 5
    assert all(r.success for r in out.values())


def test_set_max_workers_and_stats(svc, found):
    svc.initialize()
    svc.set_max_workers(3)
    stats = svc.get_stats()
    assert (stats.max_workers, stats.active_workers, stats.queued_tasks) == (3, 0, 0)


def test_sequential_fallback_when_pool_unavailable(pool_settings, found, monkeypatch):
    class _SeqAnalyzer(_OkAnalyzer):
        def __init__(self, ffprobe_bin, timeout_sec=None):
            super().__init__(ffprobe_bin)

        def analyze(self, file_path):
            if file_path.endswith(".boom"):
                raise RuntimeError("parser exploded")
            return super().analyze(file_path)

    monkeypatch.setattr(service_mod, "FileAnalyzer", _SeqAnalyzer)
    s = MediaAnalysisService(pool=_UnavailablePool(), settings=pool_settings)
    progress = []

    out = s.analyze_files(["/m/a.mp4", "/m/b.boom"], lambda *a: progress.append(a))

    assert out["/m/a.mp4"].success is True
    assert out["/m/b.boom"].success is False
    assert out["/m/b.boom"].error == "parser exploded"
    assert progress == [(1, 2, "a.mp4"), (2, 2, "b.boom")]


def test_summarize_counts_results():
    results = {
        "/m/a.mp4": FileAnalysisResult(success=True, file_path="/m/a.mp4"),
        "/m/b.mp4": FileAnalysisResult.failure("/m/b.mp4", "File not found: /m/b.mp4"),
    }
    rpt = MediaAnalysisService.summarize(results)
    assert (rpt.planned, rpt.probed_ok, rpt.errors) == (2, 1, 1)
    assert rpt.error_details == [("/m/b.mp4", "File not found: /m/b.mp4")]
    assert rpt.started_at is not None and rpt.finished_at >= rpt.started_at
