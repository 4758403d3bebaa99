"""Media re-hosting with primary host, storage fallback and placeholder."""

from __future__ import annotations

import asyncio
import logging
import mimetypes
import urllib.parse
from dataclasses import replace
from typing import Any

from bs4 import Tag

from ..core.http_client import HttpClient
from ..errors import ArchiveError, CannotAccess, UploadFailed
from ..models import ContentRecord, Downloader, DownloadedFile, MediaKind, MediaRef, UploadedFile
from ..platforms.base import FallbackUploader, PublishingHost
from ..platforms.telegraph import PLACEHOLDER_IMAGE_URL
from ..utils.html import get_downloadable, tag_name
from .options import BackupOptions

LOGGER = logging.getLogger(__name__)


def classify_uploaded(url: str) -> MediaKind:
    """Decide whether an ``auto`` item turned out to be an image."""
    path = urllib.parse.urlparse(url).path
    guessed, _ = mimetypes.guess_type(path)
    return "image" if guessed and guessed.startswith("image/") else "file"


class MediaUploader:
    """Re-hosts media referenced by a :class:`ContentRecord`.

    Every item goes to the publishing host first. A rejected upload is
    retried through the storage fallback when one is configured; a source
    that is gone is always replaced by the placeholder image. With
    ``allow_missing_content`` off, any other failure raises
    :class:`UploadFailed` instead of degrading.
    """

    def __init__(
        self,
        host: PublishingHost,
        http: HttpClient,
        *,
        placeholder_url: str = PLACEHOLDER_IMAGE_URL,
    ) -> None:
        self._host = host
        self._http = http
        self._placeholder_url = placeholder_url

    def placeholder(self, source: str, file_id: str) -> UploadedFile:
        return UploadedFile(id=file_id, path=self._placeholder_url, source=source)

    async def upload_media_from_source(
        self,
        source: str,
        cookie: str | None,
        file_id: str,
        fallback: FallbackUploader | None = None,
        *,
        allow_missing: bool = True,
    ) -> UploadedFile:
        async def download() -> DownloadedFile:
            return await self._http.adownload(source, cookie)

        return await self.upload_media_file(
            source, download, file_id, fallback, allow_missing=allow_missing
        )

    async def upload_media_file(
        self,
        source: str,
        download: Downloader,
        file_id: str,
        fallback: FallbackUploader | None = None,
        *,
        allow_missing: bool = True,
    ) -> UploadedFile:
        try:
            downloaded = await download()
        except CannotAccess:
            LOGGER.info(
                "Media source is gone; using placeholder",
                extra={"event": "upload.placeholder", "source": source},
            )
            return self.placeholder(source, file_id)

        try:
            path = await self._host.upload_media(downloaded, file_id)
        except UploadFailed as exc:
            if fallback is None:
                return self._give_up(source, file_id, exc, allow_missing)
            LOGGER.info(
                "Primary upload rejected; trying storage fallback",
                extra={"event": "upload.fallback", "source": source},
            )
            try:
                path = await self._fallback(fallback, await download(), file_id, source)
            except CannotAccess:
                return self.placeholder(source, file_id)
            except ArchiveError as fallback_exc:
                return self._give_up(source, file_id, fallback_exc, allow_missing)
        return UploadedFile(id=file_id, path=path, source=source)

    async def upload_inlines(
        self,
        record: ContentRecord[Any],
        options: BackupOptions,
        fallback: FallbackUploader | None = None,
    ) -> list[MediaRef]:
        """Upload inline media concurrently and rewrite the nodes in place."""
        results = await asyncio.gather(
            *(
                self._upload_inline(record, index, node, options, fallback)
                for index, node in enumerate(record.inline_nodes)
            )
        )
        return [item for item in results if item is not None]

    async def upload_files(
        self,
        record: ContentRecord[Any],
        options: BackupOptions,
        fallback: FallbackUploader | None = None,
    ) -> list[MediaRef]:
        """Upload attached files concurrently, keeping their order."""
        return list(
            await asyncio.gather(
                *(
                    self._upload_attached(record.id, index, ref, options, fallback)
                    for index, ref in enumerate(record.other_files)
                )
            )
        )

    async def _upload_inline(
        self,
        record: ContentRecord[Any],
        index: int,
        node: Tag,
        options: BackupOptions,
        fallback: FallbackUploader | None,
    ) -> MediaRef | None:
        name = tag_name(node)
        file_id = f"{record.id}-inline-{index}"
        if name in {"img", "video"}:
            src = get_downloadable(node.get("src"), record.source)
            if src is None:
                return None
            node["src"] = src
            try:
                uploaded = await self.upload_media_from_source(
                    src,
                    await options.get_cookie(src),
                    file_id,
                    fallback,
                    allow_missing=options.allow_missing_content,
                )
            except ArchiveError as exc:
                self._tolerate(src, exc, options)
                return None
            node["src"] = uploaded.path
            kind: MediaKind = "image" if name == "img" else "video"
            return MediaRef(kind=kind, source=src, uploaded_url=uploaded.path)

        if name == "a" and fallback is not None:
            href = get_downloadable(node.get("href"), record.source)
            if href is None:
                return None
            node["href"] = href
            try:
                downloaded = await self._http.adownload(href, await options.get_cookie(href))
                url = await self._fallback(fallback, downloaded, file_id, href)
            except CannotAccess:
                return None
            except ArchiveError as exc:
                self._tolerate(href, exc, options)
                return None
            node["href"] = url
            return MediaRef(kind="file", source=href, uploaded_url=url)
        return None

    async def _upload_attached(
        self,
        record_id: str,
        index: int,
        ref: MediaRef,
        options: BackupOptions,
        fallback: FallbackUploader | None,
    ) -> MediaRef:
        if ref.kind == "video" and not options.upload_videos:
            return replace(ref, download=None)

        file_id = f"{record_id}-{index}"
        download = ref.download or self._source_downloader(ref.source, options)
        if ref.kind in {"image", "video", "auto"}:
            try:
                uploaded = await self.upload_media_file(
                    ref.source,
                    download,
                    file_id,
                    fallback,
                    allow_missing=options.allow_missing_content,
                )
            except ArchiveError as exc:
                self._tolerate(ref.source, exc, options)
                return replace(ref, download=None)
            kind = classify_uploaded(uploaded.path) if ref.kind == "auto" else ref.kind
            return replace(ref, kind=kind, uploaded_url=uploaded.path, download=None)

        if ref.kind == "file" and fallback is not None:
            try:
                url = await self._fallback(fallback, await download(), file_id, ref.source)
            except ArchiveError as exc:
                self._tolerate(ref.source, exc, options)
                return replace(ref, download=None)
            return replace(ref, uploaded_url=url, download=None)
        return replace(ref, download=None)

    def _source_downloader(self, source: str, options: BackupOptions) -> Downloader:
        async def download() -> DownloadedFile:
            return await self._http.adownload(source, await options.get_cookie(source))

        return download

    async def _fallback(
        self, fallback: FallbackUploader, downloaded: DownloadedFile, file_id: str, source: str
    ) -> str:
        try:
            return await fallback(downloaded, file_id)
        except ArchiveError:
            raise
        except Exception as exc:
            raise UploadFailed(source, cause=exc) from exc

    def _give_up(
        self, source: str, file_id: str, exc: BaseException, allow_missing: bool
    ) -> UploadedFile:
        if not allow_missing:
            raise UploadFailed(source, cause=exc) from exc
        LOGGER.warning(
            "Media upload failed; using placeholder: %s",
            exc,
            extra={"event": "upload.placeholder", "source": source},
        )
        return self.placeholder(source, file_id)

    def _tolerate(self, source: str, exc: ArchiveError, options: BackupOptions) -> None:
        if not options.allow_missing_content:
            raise exc
        LOGGER.warning(
            "Keeping original media source after failed upload: %s",
            exc,
            extra={"event": "upload.skipped", "source": source},
        )


__all__ = ["MediaUploader", "classify_uploaded"]
