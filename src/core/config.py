"""
Application Configuration

Centralized configuration using Pydantic Settings for type-safe
environment variable management with validation.

The shared token secret is read here and handed to the auth layer;
the auth core itself never reads the environment.
"""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Get the directory containing this file, then go up to the project root
_CONFIG_DIR = Path(__file__).parent.parent.parent

# Secrets shorter than this are accepted but flagged at startup
MIN_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.
    Example: TOKEN_SECRET=... or token_secret=...
    """

    model_config = SettingsConfigDict(
        env_file=_CONFIG_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server Configuration
    server_host: str = "0.0.0.0"
    server_port: int = 3000
    debug: bool = False
    log_level: str = "INFO"

    # Storage Configuration
    data_path: str = "/data"
    screenshot_stale_minutes: int = 60

    # Token Configuration
    token_secret: str = ""
    token_ttl_hours: float = 24.0
    token_rotation_threshold_hours: float = 6.0

    # Rate Limiting Configuration
    # Validation attempts per device (brute-force guard)
    validation_max_attempts: int = 10
    validation_window_seconds: float = 60.0
    # Requests per device to the image endpoint itself
    request_max_attempts: int = 60
    request_window_seconds: float = 60.0
    # 0 disables the background sweep
    rate_limit_sweep_interval_seconds: float = 300.0

    @property
    def screenshot_dir(self) -> Path:
        return Path(self.data_path) / "screenshots"

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.debug else self.log_level


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses lru_cache to ensure settings are only loaded once
    and reused throughout the application lifecycle.
    """
    return Settings()


def check_token_secret(settings: Settings) -> list[str]:
    """Return human-readable problems with the configured secret (empty if fine)."""
    if not settings.token_secret:
        return ["TOKEN_SECRET is not set; every screenshot request will be denied"]
    if len(settings.token_secret.encode("utf-8")) < MIN_SECRET_LENGTH:
        return [f"TOKEN_SECRET is shorter than {MIN_SECRET_LENGTH} bytes"]
    return []
