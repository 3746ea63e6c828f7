"""
Configuration dataclasses for server components.
Provides immutable configuration objects for dependency injection.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mdserver.settings import Settings


DEFAULT_EXTENSIONS = (".md", ".markdown", ".mdown", ".mkd")


@dataclass(frozen=True)
class ScannerConfig:
    """Directory scanner configuration."""

    root_path: Path = field(default_factory=lambda: Path("."))
    supported_extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    ignore_names: tuple[str, ...] = ("node_modules",)
    cache_max_age: float = 300  # 5 minutes
    cache_max_size: int = 100
    search_max_results: int = 50


@dataclass(frozen=True)
class RendererConfig:
    """Markdown renderer configuration."""

    root_path: Path = field(default_factory=lambda: Path("."))
    gfm: bool = True
    breaks: bool = True
    html: bool = True
    typographer: bool = False
    header_ids: bool = True
    cache_max_size: int = 100


@dataclass(frozen=True)
class WatchConfig:
    """File watcher configuration."""

    root_path: Path = field(default_factory=lambda: Path("."))
    ignore_pattern: str = r"node_modules|\.git"
    supported_extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    enabled: bool = False


@dataclass(frozen=True)
class RateLimitConfig:
    """Fixed-window rate limiting configuration."""

    enabled: bool = True
    window_seconds: int = 15 * 60
    max_requests: int = 1000


@dataclass
class ServerConfig:
    """Complete server configuration."""

    scanner: ScannerConfig = field(default_factory=ScannerConfig)
    renderer: RendererConfig = field(default_factory=RendererConfig)
    watch: WatchConfig = field(default_factory=WatchConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ServerConfig":
        """Create config from application settings."""
        root = settings.root
        extensions = tuple(ext.lower() for ext in settings.supported_extensions)
        return cls(
            scanner=ScannerConfig(
                root_path=root,
                supported_extensions=extensions,
                ignore_names=tuple(settings.scan_ignore_names),
                cache_max_age=settings.cache_max_age,
                cache_max_size=settings.cache_max_size,
                search_max_results=settings.search_max_results,
            ),
            renderer=RendererConfig(
                root_path=root,
                gfm=settings.markdown_gfm,
                breaks=settings.markdown_breaks,
                html=settings.markdown_html,
                typographer=settings.markdown_typographer,
                header_ids=settings.markdown_header_ids,
                cache_max_size=settings.cache_max_size,
            ),
            watch=WatchConfig(
                root_path=root,
                ignore_pattern=settings.watch_ignore_pattern,
                supported_extensions=extensions,
                enabled=settings.watch_enabled,
            ),
            rate_limit=RateLimitConfig(
                enabled=settings.rate_limit_enabled,
                window_seconds=settings.rate_limit_window,
                max_requests=settings.rate_limit_max_requests,
            ),
        )
