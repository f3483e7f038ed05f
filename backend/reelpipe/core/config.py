"""
Application Configuration

Settings class using pydantic-settings for environment variable loading.
Defines external-service endpoints, pipeline policy knobs and resource limits.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    For example, RENDER_API_KEY can be set via the RENDER_API_KEY env var.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="Reelpipe API", description="Application name")
    debug: bool = Field(default=False, description="Debug mode")
    version: str = Field(default="0.1.0", description="API version")
    public_base_url: str = Field(
        default="",
        description="Externally reachable base URL used for render callbacks "
                    "(falls back to the request base URL when empty)",
    )

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./reelpipe.db",
        description="Database connection URL",
    )

    # Redis
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
    )

    # Storage
    storage_path: str = Field(
        default="/data",
        alias="STORAGE_PATH",
        description="Root path for durable artifact storage",
    )
    storage_public_url: str = Field(
        default="http://localhost:8000/files",
        description="Public URL prefix under which stored artifacts are served",
    )

    # Model services
    openai_api_key: str = Field(default="", description="OpenAI API key")
    vision_model: str = Field(default="gpt-4o", description="Model used to score frames")
    selection_model: str = Field(default="gpt-4o", description="Model used to select segments")
    transcription_model: str = Field(default="whisper-1", description="Speech-to-text model")
    transcription_language: Optional[str] = Field(
        default=None,
        description="ISO-639-1 language hint for transcription (auto-detect when unset)",
    )

    # Render service
    render_api_url: str = Field(
        default="https://api.shotstack.io/edit/v1",
        description="Base URL of the external render service",
    )
    render_api_key: str = Field(default="", description="Render service API key")

    # Pipeline policy
    frame_analysis_delay_ms: int = Field(
        default=800,
        ge=0,
        description="Pause between vision calls issued by one worker slot",
    )
    frame_analysis_concurrency: int = Field(
        default=1,
        ge=1,
        le=16,
        description="Maximum number of frames scored concurrently",
    )
    default_target_duration_sec: int = Field(
        default=30,
        description="Target reel duration when the caller does not specify one",
    )
    duration_tolerance_sec: int = Field(
        default=3,
        description="Accepted deviation from the target reel duration",
    )

    # Timeouts and limits
    external_call_timeout_seconds: float = Field(
        default=60.0,
        description="Timeout for model and render service calls",
    )
    transcription_timeout_seconds: float = Field(
        default=300.0,
        description="Timeout for speech-to-text calls",
    )
    download_timeout_seconds: float = Field(
        default=120.0,
        description="Timeout for media downloads",
    )
    max_media_download_size: int = Field(
        default=500 * 1024 * 1024,  # 500MB
        description="Maximum size of a downloaded media file in bytes",
    )
    max_request_body_size: int = Field(
        default=50 * 1024 * 1024,  # 50MB
        description="Maximum request body size in bytes (frame batches carry images)",
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed CORS origins",
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string to list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings instance.

    Uses lru_cache to ensure settings are only loaded once per process.

    Example:
        >>> settings = get_settings()
        >>> settings.frame_analysis_delay_ms
        800
    """
    return Settings()


# Convenience function for direct access
settings = get_settings()
