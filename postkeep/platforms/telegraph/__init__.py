"""Telegraph platform adapters."""

from __future__ import annotations

from .api import PLACEHOLDER_IMAGE_URL, TELEGRAPH_URL, TelegraphClient
from .credentials import TelegraphCredentialStore

__all__ = [
    "PLACEHOLDER_IMAGE_URL",
    "TELEGRAPH_URL",
    "TelegraphClient",
    "TelegraphCredentialStore",
]
