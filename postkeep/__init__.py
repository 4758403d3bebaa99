"""Archive social-media posts as Telegraph pages."""

from __future__ import annotations

from .errors import (
    ArchiveError,
    CannotAccess,
    ConfigError,
    CreateFailed,
    InvalidFormat,
    UploadFailed,
)
from .models import ContentRecord, MediaRef, PublishedPage, ResultRecord
from .services import Archiver, BackupOptions, JsonResultCache, backup

__version__ = "0.1.0"

__all__ = [
    "ArchiveError",
    "Archiver",
    "BackupOptions",
    "CannotAccess",
    "ConfigError",
    "ContentRecord",
    "CreateFailed",
    "InvalidFormat",
    "JsonResultCache",
    "MediaRef",
    "PublishedPage",
    "ResultRecord",
    "UploadFailed",
    "backup",
]
