"""Error taxonomy shared by extractors, uploaders and the backup pipeline."""

from __future__ import annotations

import json
from typing import Any, Mapping


class ArchiveError(RuntimeError):
    """Base failure for every archiving step.

    ``code`` is a stable numeric kind; negative codes mark errors that are
    caused by the operator's own setup rather than by the archived item.
    """

    code = 0
    label = "Archive failed"

    def __init__(
        self,
        context: str | None = None,
        *,
        cause: BaseException | None = None,
        details: Mapping[str, Any] | None = None,
    ) -> None:
        message = f"{self.label}: {context}" if context else self.label
        super().__init__(message)
        self.context = context
        self.cause = cause
        self.details = dict(details or {})
        if cause is not None:
            self.__cause__ = cause

    @property
    def is_private(self) -> bool:
        return self.code < 0

    def __str__(self) -> str:
        base = super().__str__()
        if not self.details:
            return base
        try:
            detail_repr = json.dumps(self.details, ensure_ascii=False)
        except TypeError:
            detail_repr = str(self.details)
        return f"{base} | details: {detail_repr}"


class ConfigError(ArchiveError):
    """Required configuration is missing or malformed."""

    code = -1
    label = "Config error"


class InvalidFormat(ArchiveError):
    """Locator or extracted data does not have the expected shape."""

    code = 1
    label = "Invalid format"


class CannotAccess(ArchiveError):
    """Source is inaccessible or already deleted."""

    code = 2
    label = "Cannot access or already deleted"


class CreateFailed(ArchiveError):
    """The publishing host rejected account or page creation."""

    code = 3
    label = "Create failed"


class UploadFailed(ArchiveError):
    """Media re-hosting failed and no further fallback was available."""

    code = 4
    label = "Upload failed"


__all__ = [
    "ArchiveError",
    "CannotAccess",
    "ConfigError",
    "CreateFailed",
    "InvalidFormat",
    "UploadFailed",
]
