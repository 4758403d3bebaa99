"""Settings package exports."""

from .loader import (
    AppConfig,
    HttpSettings,
    PathSettings,
    S3Settings,
    TelegraphSettings,
    TwitterSettings,
    load_config,
)

__all__ = [
    "AppConfig",
    "HttpSettings",
    "PathSettings",
    "S3Settings",
    "TelegraphSettings",
    "TwitterSettings",
    "load_config",
]
