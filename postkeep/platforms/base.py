"""Base contracts for publishing hosts and storage fallbacks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable, Protocol, Sequence

from ..models import ContentNode, DownloadedFile, PublishedPage


@dataclass(slots=True)
class PageAccount:
    """Credentials and default byline for the publishing host."""

    access_token: str
    short_name: str
    author_name: str | None = None
    author_url: str | None = None


# Uploads one downloaded file under an id and returns its public URL.
FallbackUploader = Callable[[DownloadedFile, str], Awaitable[str]]


class PublishingHost(Protocol):
    """Remote service that re-hosts media and publishes pages."""

    async def create_account(
        self,
        short_name: str,
        author_name: str | None = None,
        author_url: str | None = None,
    ) -> PageAccount:
        """Register a new account on the host."""

    async def upload_media(self, file: DownloadedFile, file_id: str) -> str:
        """Upload media bytes and return the absolute re-hosted URL."""

    async def create_page(
        self,
        title: str,
        content: Sequence[ContentNode],
        account: PageAccount,
        author_name: str | None = None,
        author_url: str | None = None,
    ) -> PublishedPage:
        """Publish ``content`` as a single page."""


__all__ = ["FallbackUploader", "PageAccount", "PublishingHost"]
