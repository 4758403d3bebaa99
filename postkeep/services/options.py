"""Backup options and their defaults."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping

from ..errors import ConfigError
from ..settings import S3Settings

if TYPE_CHECKING:
    from ..models import ResultRecord

CheckExisting = Callable[[str, str], Awaitable["ResultRecord | None"]]


async def _no_existing(source_key: str, record_id: str) -> None:
    return None


async def _no_cookie(url: str) -> None:
    return None


async def _ignore_cookie(url: str, cookie: str) -> None:
    return None


@dataclass(slots=True)
class BackupOptions:
    """Per-call switches for one backup.

    Options only take effect for records that are actually archived; a
    cached result returned without ``force`` is handed back unchanged.
    """

    id: str | None = None
    source_key: str | None = None
    force: bool = False
    check_existing: CheckExisting = _no_existing
    get_cookie: Callable[[str], Awaitable[str | None]] = _no_cookie
    set_cookie: Callable[[str, str], Awaitable[None]] = _ignore_cookie
    create_pages: bool = True
    allow_missing_content: bool = True
    upload_videos: bool = False
    inline_images: bool = True
    inline_links: bool = False
    s3: S3Settings | None = None
    plain_text: bool = False
    text_length_limit: int = 3072
    backup_reposted: bool = True
    max_repost_depth: int = 5
    verbose: bool = False
    html_from_browser: str | None = None


_OPTION_NAMES = frozenset(item.name for item in fields(BackupOptions))


def prepare_options(
    options: BackupOptions | Mapping[str, Any] | None,
    *,
    defaults: BackupOptions | None = None,
) -> BackupOptions:
    """Merge caller options over ``defaults`` and return a fresh object."""
    base = defaults if defaults is not None else BackupOptions()
    if options is None:
        return replace(base)
    if isinstance(options, BackupOptions):
        return replace(options)
    return replace(base, **_coerce(options))


def _coerce(data: Mapping[str, Any]) -> dict[str, Any]:
    unknown = sorted(set(data) - _OPTION_NAMES)
    if unknown:
        raise ConfigError(f"unknown backup options: {', '.join(unknown)}")
    values = {key: value for key, value in data.items() if value is not None}
    s3 = values.get("s3")
    if isinstance(s3, Mapping):
        try:
            values["s3"] = S3Settings(**s3)
        except TypeError as exc:
            raise ConfigError("invalid s3 settings", cause=exc) from exc
    return values


__all__ = ["BackupOptions", "CheckExisting", "prepare_options"]
