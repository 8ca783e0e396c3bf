# qregister/settings.py
from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Runtime settings for qregister.
    """

    # --- Backend settings ---
    BACKEND: str = "numpy"  # "numpy" | "qiskit" | "stim"

    # Seed of the default measurement generator (None = fresh entropy)
    SEED: int | None = None

    # Probabilities below -ATOL or sums off by more than ATOL are rejected
    ATOL: float = 1e-8

    # --- Logging ---
    LOG_LEVEL: str = "WARNING"

    model_config = SettingsConfigDict(
        env_prefix="QREG_",
        env_file=".env",
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
