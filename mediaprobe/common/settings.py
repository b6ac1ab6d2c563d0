# mediaprobe/common/settings.py
from __future__ import annotations

import os
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Hard ceiling for set_max_workers(); the default is derived from CPU count.
MAX_WORKERS_CAP = 16


def default_max_workers() -> int:
    """CPU cores minus one, at least 1, at most 8."""
    n = os.cpu_count() or 2
    return min(8, max(1, n - 1))


def clamp_workers(n: int, cap: int = MAX_WORKERS_CAP) -> int:
    return min(cap, max(1, int(n)))


class ProbeConfig(BaseModel):
    # Explicit binary; leave empty to discover one (PATH + conventional locations)
    bin: Optional[str] = Field(default=None, description="Path to the ffprobe executable")
    timeout_sec: int = Field(60, ge=1, description="Hard timeout for one probe invocation")
    version_timeout_sec: int = Field(5, ge=1, description="Timeout for `ffprobe -version` checks")


class PoolConfig(BaseModel):
    max_workers: int = Field(default_factory=default_max_workers)
    max_workers_cap: int = Field(MAX_WORKERS_CAP, ge=1)
    shutdown_timeout_sec: float = Field(5.0, gt=0, description="Per-worker grace period before forced termination")

    @field_validator("max_workers", mode="after")
    @classmethod
    def _clamp(cls, v: int) -> int:
        return clamp_workers(v)


class Settings(BaseSettings):
    # -------- App --------
    app_name: str = "mediaprobe"
    log_level: str = "INFO"

    # -------- Sub-configs --------
    probe: ProbeConfig = ProbeConfig()
    pool: PoolConfig = PoolConfig()

    model_config = SettingsConfigDict(
        env_prefix="MEDIAPROBE_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Global settings accessor (cached):
        from mediaprobe.common.settings import get_settings
        cfg = get_settings()
    Env examples: MEDIAPROBE_PROBE__BIN=/usr/bin/ffprobe, MEDIAPROBE_POOL__MAX_WORKERS=4
    """
    return Settings()
