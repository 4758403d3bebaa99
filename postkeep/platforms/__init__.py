"""Platform integration package."""

from __future__ import annotations

from .base import FallbackUploader, PageAccount, PublishingHost

__all__ = [
    "FallbackUploader",
    "PageAccount",
    "PublishingHost",
]
