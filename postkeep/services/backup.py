"""Backup orchestration: extract, re-host, paginate, assemble."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from datetime import timezone, tzinfo
from typing import Any, Callable, Mapping

import requests

from ..core.http_client import HttpClient
from ..errors import CannotAccess, InvalidFormat
from ..models import ContentRecord, ResultRecord
from ..platforms.base import FallbackUploader, PageAccount, PublishingHost
from ..platforms.s3 import create_upload_function
from ..platforms.telegraph import TelegraphClient, TelegraphCredentialStore
from ..settings import AppConfig, S3Settings, load_config
from ..sources import BaseSource, SourceRegistry, build_default_registry
from ..utils.html import structured_text
from .nodes import dom_to_nodes
from .options import BackupOptions, prepare_options
from .pages import create_pages, render_page_nodes
from .uploader import MediaUploader

LOGGER = logging.getLogger(__name__)

FallbackFactory = Callable[[str, S3Settings], FallbackUploader]


def render_content(record: ContentRecord[Any], options: BackupOptions) -> str:
    """Textual form stored on the result: truncated, plain or markup."""
    text = structured_text(record.document_tree)
    if len(text) > options.text_length_limit:
        return text[: options.text_length_limit]
    if options.plain_text:
        return text
    return str(record.document_tree)


class Archiver:
    """Runs the backup pipeline for every registered source.

    The archiver owns no per-call state beyond the table of in-flight
    backups, so one instance can serve concurrent callers. Concurrent calls
    for the same ``(source_key, id)`` share a single pipeline run.
    """

    def __init__(
        self,
        host: PublishingHost,
        account: PageAccount,
        sources: SourceRegistry,
        http: HttpClient,
        *,
        fallback_factory: FallbackFactory = create_upload_function,
        defaults: BackupOptions | None = None,
        tz: tzinfo = timezone.utc,
        uploader: MediaUploader | None = None,
    ) -> None:
        self._host = host
        self._account = account
        self._sources = sources
        self._http = http
        self._fallback_factory = fallback_factory
        self._defaults = defaults or BackupOptions()
        self._tz = tz
        self._uploader = uploader or MediaUploader(host, http)
        self._inflight: dict[tuple[str, str], asyncio.Future[ResultRecord[Any]]] = {}

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        *,
        session: requests.Session | None = None,
    ) -> "Archiver":
        http = HttpClient(http_settings=config.http, session=session)
        account = TelegraphCredentialStore(config.telegraph).load_account()
        defaults = prepare_options(config.backup)
        if defaults.s3 is None:
            defaults.s3 = config.s3
        defaults.verbose = defaults.verbose or config.verbose
        return cls(
            TelegraphClient(http),
            account,
            build_default_registry(config),
            http,
            defaults=defaults,
        )

    @property
    def sources(self) -> SourceRegistry:
        return self._sources

    async def backup(
        self,
        locator: str,
        options: BackupOptions | Mapping[str, Any] | None = None,
    ) -> ResultRecord[Any]:
        opts = prepare_options(options, defaults=self._defaults)
        source = self._sources.select(locator, opts.source_key)
        opts.source_key = source.key
        if opts.id is None:
            opts.id = source.get_id(locator)

        if not opts.force:
            existing = await opts.check_existing(source.key, opts.id)
            if existing is not None:
                self._trace(opts, "Returning cached result", event="backup.cached", id=opts.id)
                return existing

        key = (source.key, opts.id)
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._run(source, locator, opts))
            self._inflight[key] = task
            task.add_done_callback(lambda done: self._forget(key, done))
        else:
            self._trace(opts, "Joining in-flight backup", event="backup.joined", id=opts.id)
        return await asyncio.shield(task)

    def _forget(self, key: tuple[str, str], task: asyncio.Future[ResultRecord[Any]]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    async def _run(
        self, source: BaseSource, locator: str, options: BackupOptions
    ) -> ResultRecord[Any]:
        fallback = self._fallback(source.key, options)
        self._trace(
            options,
            "Extracting",
            event="backup.extract",
            locator=locator,
            fallback=fallback is not None,
        )
        record = await source.extract(locator, options, self._http)
        result = await self._process(source, record, options, fallback, depth=0, lineage=frozenset())
        LOGGER.info(
            "Backup finished",
            extra={
                "event": "backup.done",
                "source_key": source.key,
                "id": result.id,
                "pages": len(result.pages),
                "files": len(result.files),
            },
        )
        return result

    def _fallback(self, source_key: str, options: BackupOptions) -> FallbackUploader | None:
        if options.s3 is None:
            return None
        return self._fallback_factory(source_key, options.s3)

    async def _process(
        self,
        source: BaseSource,
        record: ContentRecord[Any],
        options: BackupOptions,
        fallback: FallbackUploader | None,
        *,
        depth: int,
        lineage: frozenset[str],
    ) -> ResultRecord[Any]:
        lineage = lineage | {record.id}
        children: list[ContentRecord[Any]] = []
        if options.backup_reposted and record.reposted:
            if depth >= options.max_repost_depth:
                LOGGER.warning(
                    "Repost depth limit reached; dropping nested content",
                    extra={"event": "backup.depth_limit", "id": record.id, "depth": depth},
                )
            else:
                for child in record.reposted:
                    if child.id in lineage:
                        LOGGER.warning(
                            "Repost cycle detected",
                            extra={"event": "backup.cycle", "id": record.id, "child": child.id},
                        )
                        continue
                    children.append(child)

        processed = await asyncio.gather(
            *(
                self._process_repost(source, child, options, fallback, depth=depth + 1, lineage=lineage)
                for child in children
            )
        )
        reposted = [item for item in processed if item is not None]

        inline_files, attached_files = await asyncio.gather(
            self._uploader.upload_inlines(record, options, fallback),
            self._uploader.upload_files(record, options, fallback),
        )
        files = [*inline_files, *attached_files]

        pages = []
        if options.create_pages:
            body = dom_to_nodes(record.document_tree, source.dom_to_node_handler)
            nodes = render_page_nodes(record, body, reposted, attached_files, tz=self._tz)
            pages = await create_pages(
                self._host,
                record.title,
                nodes,
                self._account,
                record.author_name,
                record.author_url,
                files,
            )
            self._trace(options, "Published pages", event="backup.pages", id=record.id, pages=len(pages))

        return ResultRecord(
            id=record.id,
            source_key=source.key,
            source=record.source,
            title=record.title,
            content=render_content(record, options),
            data=record.data,
            created_at=record.created_at,
            updated_at=record.updated_at,
            author_name=record.author_name,
            author_url=record.author_url,
            meta_string=record.meta_string,
            files=[replace(item, download=None) for item in files],
            pages=pages,
            reposted=reposted,
        )

    async def _process_repost(
        self,
        source: BaseSource,
        record: ContentRecord[Any],
        options: BackupOptions,
        fallback: FallbackUploader | None,
        *,
        depth: int,
        lineage: frozenset[str],
    ) -> ResultRecord[Any] | None:
        try:
            return await self._process(source, record, options, fallback, depth=depth, lineage=lineage)
        except (CannotAccess, InvalidFormat) as exc:
            LOGGER.warning(
                "Skipping repost %s: %s",
                record.id,
                exc,
                extra={"event": "backup.repost_skipped", "id": record.id},
            )
            return None

    def _trace(self, options: BackupOptions, message: str, **extra: Any) -> None:
        LOGGER.log(logging.INFO if options.verbose else logging.DEBUG, message, extra=extra)


async def backup(
    locator: str,
    options: BackupOptions | Mapping[str, Any] | None = None,
    *,
    config: AppConfig | None = None,
) -> ResultRecord[Any]:
    """Archive ``locator`` with an archiver built from configuration."""
    archiver = Archiver.from_config(config or load_config())
    return await archiver.backup(locator, options)


__all__ = ["Archiver", "FallbackFactory", "backup", "render_content"]
