"""Configuration settings for the workout file ingestor."""
import os
from typing import List, Literal


EnvironmentType = Literal["development", "staging", "production"]


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


class Settings:
    """Application settings."""

    # Environment
    ENVIRONMENT: EnvironmentType = "development"

    # Parsing
    DEFAULT_FTP_WATTS: int = 200  # Baseline for ERG files without an FTP header
    RAMP_SEGMENT_COUNT: int = 5  # Sub-segments per ZWO Warmup/Cooldown/Ramp

    # Uploads
    MAX_UPLOAD_BYTES: int = 1024 * 1024
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:3001"]

    def __init__(self):
        # Environment
        env = os.getenv("ENVIRONMENT", "development").lower()
        if env in ("development", "staging", "production"):
            self.ENVIRONMENT = env  # type: ignore
        else:
            self.ENVIRONMENT = "development"

        # Parsing
        self.DEFAULT_FTP_WATTS = max(1, _int_env("DEFAULT_FTP_WATTS", 200))
        self.RAMP_SEGMENT_COUNT = max(1, _int_env("RAMP_SEGMENT_COUNT", 5))

        # Uploads
        self.MAX_UPLOAD_BYTES = _int_env("MAX_UPLOAD_BYTES", 1024 * 1024)
        origins = os.getenv("CORS_ORIGINS")
        if origins:
            self.CORS_ORIGINS = [o.strip() for o in origins.split(",") if o.strip()]
        else:
            self.CORS_ORIGINS = ["http://localhost:3000", "http://localhost:3001"]


settings = Settings()
