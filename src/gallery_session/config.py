"""Configuration management using pydantic-settings.

Loads from environment variables and .env file.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Attributes:
        api_base_url: Root URL of the image service.
        session_token: Value of the ``token`` cookie sent with each request.
        request_timeout: HTTP timeout for every request in seconds.
        page_size: Number of images requested per search page.
        search_debounce: Quiet interval in seconds before a query is committed.
        prefetch_threshold: Lightbox distance from the loaded end that requests a new page.
        column_count: Number of masonry columns.
        upload_concurrency: Maximum number of uploads in flight.
        default_quality: Initial lightbox quality tier (medium or original).
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_json: Output logs in JSON format for production.

    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Image service
    api_base_url: str = "http://localhost:3000"
    session_token: str = ""
    request_timeout: float = 30.0

    # Browsing
    page_size: int = 40
    search_debounce: float = 0.25  # seconds
    prefetch_threshold: int = 10
    column_count: int = 3
    default_quality: str = "medium"

    # Uploads
    upload_concurrency: int = 16

    # Logging
    log_level: str = "INFO"
    log_json: bool = False


# Global settings instance
settings = Settings()
