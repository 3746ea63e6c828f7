"""
Application settings for mdserver.
Uses pydantic-settings for environment variable management.
"""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Content root
    root_path: str = "."

    # Server Configuration
    host: str = "0.0.0.0"
    port: int = 5001
    debug: bool = False
    log_level: str = "INFO"
    cors_origins: list[str] = ["*"]

    # Scanning
    supported_extensions: list[str] = [".md", ".markdown", ".mdown", ".mkd"]
    scan_ignore_names: list[str] = ["node_modules"]
    search_max_results: int = 50

    # File watching
    watch_enabled: bool = False
    watch_ignore_pattern: str = r"node_modules|\.git"

    # Markdown rendering flags
    markdown_gfm: bool = True
    markdown_breaks: bool = True
    markdown_html: bool = True
    markdown_typographer: bool = False
    markdown_header_ids: bool = True

    # Cache Configuration
    cache_max_age: float = 300  # seconds
    cache_max_size: int = 100  # entries per cache

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_window: int = 15 * 60  # seconds
    rate_limit_max_requests: int = 1000

    @property
    def root(self) -> Path:
        """Return the content root as an absolute Path."""
        return Path(self.root_path).expanduser().resolve()


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
