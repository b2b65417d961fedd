from __future__ import annotations

from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).parent.parent.parent


class Settings(BaseSettings):
    """
    Central configuration.

    - Values loaded from `.env` or the process environment
    - Redis keys are all namespaced under `redis_prefix`
    """

    # ----------------------------
    # Service
    # ----------------------------
    SERVICE_NAME: str = "permission-store"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # ----------------------------
    # Redis
    # ----------------------------
    redis_url: str = "redis://localhost:6379/0"
    redis_prefix: str = "spinnaker:fiat"
    redis_socket_timeout: float = 5.0
    # send put() as a single MULTI/EXEC instead of a best-effort pipeline
    redis_atomic_writes: bool = False

    # Pydantic settings config (v2 style)
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
