"""Application Configuration - environment-driven settings via pydantic-settings.

Invariants:
    - get_settings() is cached (lru_cache): single instance per process
    - cache_enabled only affects performance, never conversion results

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - UNITGRAPH_ prefix: the engine is embedded in host processes with their own env
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="UNITGRAPH_", env_file=".env", case_sensitive=False,
    )

    # Conversion
    cache_enabled: bool = True
    tolerance_ulps: int = 3

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @field_validator("log_format")
    @classmethod
    def check_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("json", "text"):
            raise ValueError("log_format must be 'json' or 'text'")
        return v

    @field_validator("tolerance_ulps")
    @classmethod
    def check_tolerance_ulps(cls, v: int) -> int:
        if v < 0:
            raise ValueError("tolerance_ulps cannot be negative")
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()
