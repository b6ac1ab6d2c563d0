# tests/conftest.py
from __future__ import annotations

import time
from typing import Callable

import pytest

from mediaprobe.common import settings as settings_mod
from mediaprobe.common.settings import PoolConfig, ProbeConfig, Settings


@pytest.fixture(autouse=True)
def _fresh_settings_cache():
    settings_mod.get_settings.cache_clear()
    yield
    settings_mod.get_settings.cache_clear()


@pytest.fixture()
def pool_settings() -> Settings:
    """Small, fast pool config independent of the host's CPU count and env."""
    return Settings(
        probe=ProbeConfig(bin="/fake/ffprobe", timeout_sec=5),
        pool=PoolConfig(max_workers=2, shutdown_timeout_sec=2.0),
    )


@pytest.fixture()
def wait_until() -> Callable[..., bool]:
    def _wait(pred: Callable[[], bool], timeout: float = 5.0, interval: float = 0.01) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if pred():
                return True
            time.sleep(interval)
        return pred()
    return _wait
