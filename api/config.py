"""
Web service settings, read from BOOMERANG_* environment variables or .env
"""
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from worker import __version__

PROJECT_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Boomerang web service settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="BOOMERANG_",
        extra="ignore",
    )

    VERSION: str = Field(default=__version__)

    # Server
    HOST: str = Field(default="0.0.0.0", description="Bind address")
    PORT: int = Field(default=3000, description="Bind port")
    DEBUG: bool = Field(default=False, description="Human readable logs instead of JSON")
    LOG_LEVEL: str = Field(default="INFO")

    # Storage
    UPLOAD_DIR: Path = Field(default=PROJECT_ROOT / "uploads")
    OUTPUT_DIR: Path = Field(default=PROJECT_ROOT / "output")
    PUBLIC_DIR: Path = Field(default=PROJECT_ROOT / "public")
    MAX_UPLOAD_SIZE: int = Field(default=500 * 1024 * 1024, description="Upload limit in bytes")

    # Retention sweep
    RETENTION_SECONDS: int = Field(default=60 * 60, description="Delete files older than this")
    SWEEP_INTERVAL_SECONDS: int = Field(default=30 * 60, description="Time between sweeps")

    # Media engine
    FFMPEG_PATH: str = Field(default="ffmpeg")
    FFPROBE_PATH: str = Field(default="ffprobe")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return level

    @field_validator("RETENTION_SECONDS", "SWEEP_INTERVAL_SECONDS", "MAX_UPLOAD_SIZE")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be positive")
        return v


@lru_cache()
def get_settings() -> Settings:
    return Settings()
