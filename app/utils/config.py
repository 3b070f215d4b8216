from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Allow extra fields in .env file
    )

    # Storage Configuration
    store_backend: str = Field(
        default="sqlite",
        description="Post store backend (sqlite or memory)",
    )
    db_path: str = Field(
        default="board.db",
        description="SQLite database file holding post records",
    )
    upload_dir: str = Field(
        default="static",
        description="Directory where attachments are written and served from",
    )

    # Submission limits
    max_upload_bytes: int = Field(
        default=20 * 1024 * 1024,
        description="Maximum size of a whole multipart submission",
    )
    title_max_length: int = Field(
        default=30,
        description="Maximum title length in characters",
    )
    message_max_length: int = Field(
        default=50000,
        description="Maximum message length in characters",
    )

    # Listing
    posts_per_page: int = Field(
        default=30,
        description="Root posts shown per listing page",
    )
    listing_truncate_length: int = Field(
        default=2700,
        description="Message length after which the listing shows a read-more link",
    )

    # Server Configuration
    service_version: str = Field(
        default="1.0.0",
        description="Version reported by the service",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    enable_tracing: bool = Field(
        default=False,
        description="Export OpenTelemetry traces for HTTP requests",
    )


# Create global settings instance
settings = Settings()

