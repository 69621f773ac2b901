"""
TreeSync Configuration Module.

Centralizes all configuration settings using Pydantic Settings.
Requires Python 3.11+.
"""

import codecs
from functools import lru_cache
from pathlib import Path
from typing import Annotated

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

# Load .env file into os.environ at module import time
# This ensures nested BaseSettings classes can read the values
_env_file = Path(__file__).parent.parent / ".env"
if _env_file.exists():
    load_dotenv(_env_file)
else:
    # Try current working directory
    load_dotenv()


class MirrorSettings(BaseSettings):
    """Watched root and scan settings."""

    model_config = SettingsConfigDict(env_prefix="MIRROR_")

    root_path: Path = Field(default=Path("."), description="Directory to mirror")
    root_name: str | None = Field(
        default=None,
        description="Display name of the root, defaults to the final path segment",
    )
    encoding: str = Field(default="utf-8", description="Encoding used to decode file contents")
    decode_errors: str = Field(default="replace", description="Codec error handler for file contents")

    ignore_patterns: Annotated[list[str], NoDecode] = Field(
        default=[],
        description="Glob patterns matched against entry names to leave out of the mirror",
    )

    @field_validator("encoding")
    @classmethod
    def validate_encoding(cls, v: str) -> str:
        """Reject encodings the codec registry does not know."""
        try:
            codecs.lookup(v)
        except LookupError as e:
            raise ValueError(f"Unknown encoding: {v}") from e
        return v

    @field_validator("decode_errors")
    @classmethod
    def validate_decode_errors(cls, v: str) -> str:
        """Reject unregistered codec error handlers."""
        try:
            codecs.lookup_error(v)
        except LookupError as e:
            raise ValueError(f"Unknown error handler: {v}") from e
        return v

    @field_validator("ignore_patterns", mode="before")
    @classmethod
    def parse_ignore_patterns(cls, v: str | list[str]) -> list[str]:
        """Parse ignore patterns from comma-separated string or list."""
        if isinstance(v, str):
            return [p.strip() for p in v.split(",") if p.strip()]
        return v

    @property
    def resolved_root(self) -> Path:
        """Absolute, symlink-free root path."""
        return self.root_path.expanduser().resolve()

    @property
    def display_name(self) -> str:
        """Name shown for the root directory."""
        return self.root_name or self.resolved_root.name or str(self.resolved_root)


class WatcherSettings(BaseSettings):
    """File watcher configuration settings."""

    model_config = SettingsConfigDict(env_prefix="WATCHER_")

    interval_ms: int = Field(
        default=100,
        ge=10,
        le=5000,
        description="Coalescing interval, at most one event is delivered per interval",
    )
    recursive: bool = Field(default=True)
    polling: bool = Field(default=False, description="Use the polling observer instead of native events")
    enabled: bool = Field(default=True)


class APISettings(BaseSettings):
    """API server configuration settings."""

    model_config = SettingsConfigDict(env_prefix="API_")

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3600, ge=1, le=65535)
    cors_origins: Annotated[list[str], NoDecode] = Field(
        default=["*"],
        description="Allowed CORS origins",
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: str | list[str]) -> list[str]:
        """Parse CORS origins from comma-separated string or list."""
        if isinstance(v, str):
            return [o.strip() for o in v.split(",") if o.strip()]
        return v


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = Field(default="INFO")
    format: str = Field(default="json")  # "json" or "console"


class Settings(BaseSettings):
    """Main application settings aggregating all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application metadata
    app_name: str = Field(default="TreeSync")
    app_version: str = Field(default="0.1.0")
    environment: str = Field(default="development")

    # Sub-settings
    mirror: MirrorSettings = Field(default_factory=MirrorSettings)
    watcher: WatcherSettings = Field(default_factory=WatcherSettings)
    api: APISettings = Field(default_factory=APISettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment.lower() in ("development", "dev", "local")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns singleton instance of Settings for performance.
    """
    return Settings()

