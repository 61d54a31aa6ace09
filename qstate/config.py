# qstate/config.py
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Runtime settings for qstate, read from QSTATE_* environment variables.
    """

    # --- Kernels ---
    NUM_THREADS: Optional[int] = None  # numba pool size; None keeps numba's default

    # --- Layout ---
    NODE_COUNT: int = 1    # partitions used when a multi-node layout is requested
    DEVICE_ID: int = 0     # accelerator used when a device layout is requested

    # --- Logging ---
    LOG_LEVEL: str = "INFO"   # used by the benchmark CLI

    model_config = SettingsConfigDict(
        env_prefix="QSTATE_",
        env_file=".env",
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
