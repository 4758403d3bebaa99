"""Catch-all extractor for arbitrary web pages and files."""

from __future__ import annotations

import hashlib
import logging
import urllib.parse
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from bs4 import Tag

from ..core.browser import render_html
from ..core.http_client import HttpClient
from ..errors import CannotAccess
from ..models import ContentRecord, DownloadedFile, MediaRef
from ..utils.html import create_tag, get_inlines, normalize_tree, parse_html, select_text
from .base import BaseSource

if TYPE_CHECKING:
    from ..services.options import BackupOptions

_LOGGER = logging.getLogger(__name__)

_STRIPPED_TAGS = ("script", "style", "noscript", "template")


class OtherSource(BaseSource):
    """Archives any URL: HTML becomes a page, anything else an attachment."""

    key = "other"

    def test_locator(self, locator: str) -> str | None:
        return None

    def get_id(self, locator: str) -> str:
        return hashlib.sha256(locator.encode("utf-8")).hexdigest()

    async def extract(
        self, locator: str, options: BackupOptions, http: HttpClient
    ) -> ContentRecord[dict[str, Any]]:
        record_id = options.id or self.get_id(locator)
        if options.html_from_browser:
            return self._from_html(locator, record_id, options.html_from_browser, options)
        if http.settings.transport == "browser":
            html = await render_html(
                locator, user_agent=http.settings.user_agent, timeout=http.settings.timeout
            )
            return self._from_html(locator, record_id, html, options)

        response = await http.fetch_page(locator, options.get_cookie, options.set_cookie)
        if not response.ok:
            raise CannotAccess(locator, details={"status": response.status})
        content_type = response.content_type or ""
        if content_type and "text/" not in content_type:
            downloaded = DownloadedFile(
                url=response.url, content=response.body, content_type=content_type
            )
            return self._from_binary(locator, record_id, downloaded)
        return self._from_html(locator, record_id, response.text, options)

    def _from_html(
        self, locator: str, record_id: str, html: str, options: BackupOptions
    ) -> ContentRecord[dict[str, Any]]:
        soup = parse_html(html)
        title = select_text(soup, "title") or f"Archived page: {record_id}"
        for tag in soup(_STRIPPED_TAGS):
            tag.decompose()
        body = soup.body or soup
        tree = normalize_tree(body)
        if not isinstance(tree, Tag):
            tree = create_tag("div")
        inline_nodes = get_inlines(
            tree,
            images=options.inline_images,
            videos=options.upload_videos,
            links=options.inline_links,
        )
        _LOGGER.debug(
            "Parsed page %s",
            locator,
            extra={"event": "source.parsed", "source_key": self.key, "inlines": len(inline_nodes)},
        )
        return ContentRecord(
            id=record_id,
            title=title,
            source=locator,
            document_tree=tree,
            created_at=datetime.now(timezone.utc),
            data={},
            inline_nodes=inline_nodes,
        )

    def _from_binary(
        self, locator: str, record_id: str, downloaded: DownloadedFile
    ) -> ContentRecord[dict[str, Any]]:
        async def download() -> DownloadedFile:
            return downloaded

        path = urllib.parse.urlparse(locator).path
        file_name = path.rstrip("/").rsplit("/", 1)[-1] or locator
        return ContentRecord(
            id=record_id,
            title=f"Archived file: {file_name}",
            source=locator,
            document_tree=create_tag("div"),
            created_at=datetime.now(timezone.utc),
            data={"content_type": downloaded.content_type},
            other_files=[MediaRef(kind="auto", source=locator, download=download)],
        )


__all__ = ["OtherSource"]
