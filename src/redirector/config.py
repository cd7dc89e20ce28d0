"""Configuration for the campaign redirector service."""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class RedirectorSettings(BaseSettings):
    """Settings for the redirector.

    Read from the process environment (and ``.env``). Variable names match
    the deployment's existing ``REDIS_*`` / ``HTTP_*`` variables, so no
    prefix is applied.
    """

    # Redis Configuration
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str = ""
    redis_db: int = 0
    redis_tls: bool = True

    # HTTP Service
    http_host: str = "0.0.0.0"
    http_port: int = 8080
    http_domain: str = "http://localhost:8080"  # Base URL injected into tracking.js

    # Keys
    campaign_key_prefix: str = "campaign:"
    analytics_queue: str = "tasks"

    # Analytics
    event_timezone: str = "Europe/Paris"

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    model_config = {
        "env_prefix": "",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"unknown log level {value!r}, expected one of {', '.join(LOG_LEVELS)}")
        return level

    @property
    def redis_url(self) -> str:
        """Connection URL for logging and diagnostics (password masked)."""
        scheme = "rediss" if self.redis_tls else "redis"
        auth = ":***@" if self.redis_password else ""
        return f"{scheme}://{auth}{self.redis_host}:{self.redis_port}/{self.redis_db}"


@lru_cache
def get_settings() -> RedirectorSettings:
    """Get cached settings instance."""
    return RedirectorSettings()
