"""Configuration module exports."""

from mdserver.settings import Settings, get_settings

from mdserver.config.server_config import (
    DEFAULT_EXTENSIONS,
    ScannerConfig,
    RendererConfig,
    WatchConfig,
    RateLimitConfig,
    ServerConfig,
)

__all__ = [
    "Settings",
    "get_settings",
    "DEFAULT_EXTENSIONS",
    "ScannerConfig",
    "RendererConfig",
    "WatchConfig",
    "RateLimitConfig",
    "ServerConfig",
]
