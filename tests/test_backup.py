"""Tests for the backup orchestrator."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Sequence

import pytest

from postkeep.errors import CannotAccess, ConfigError, InvalidFormat, UploadFailed
from postkeep.models import ContentRecord, DownloadedFile, PublishedPage, ResultRecord
from postkeep.platforms.base import PageAccount
from postkeep.platforms.telegraph import PLACEHOLDER_IMAGE_URL
from postkeep.services.backup import Archiver, render_content
from postkeep.services.options import BackupOptions
from postkeep.sources import OtherSource, SourceRegistry
from postkeep.sources.base import BaseSource
from postkeep.utils.html import create_tag, get_inlines, parse_html

ACCOUNT = PageAccount(access_token="token", short_name="tester")


class StubHost:
    def __init__(self, *, reject: bool = False, inaccessible: Sequence[str] = ()) -> None:
        self.reject = reject
        self.inaccessible = set(inaccessible)
        self.uploads: list[str] = []
        self.pages: list[tuple[str, list[Any]]] = []

    async def create_account(self, short_name, author_name=None, author_url=None) -> PageAccount:
        return ACCOUNT

    async def upload_media(self, file: DownloadedFile, file_id: str) -> str:
        self.uploads.append(file_id)
        if self.reject:
            raise UploadFailed(file.url)
        return f"https://telegra.ph/file/{file_id}.jpg"

    async def create_page(self, title, content, account, author_name=None, author_url=None):
        if title in self.inaccessible:
            raise CannotAccess(title)
        self.pages.append((title, list(content)))
        slug = title.lower().replace(" ", "-")
        return PublishedPage(path=slug, url=f"https://telegra.ph/{slug}", title=title)


class StubHttp:
    def __init__(self) -> None:
        self.downloads: list[str] = []

    async def adownload(self, url: str, cookie: str | None = None) -> DownloadedFile:
        self.downloads.append(url)
        return DownloadedFile(url=url, content=b"img", content_type="image/jpeg")


class StubSource(BaseSource):
    key = "stub"

    def __init__(self, record: ContentRecord[Any]) -> None:
        self.record = record
        self.extract_calls = 0

    def test_locator(self, locator: str) -> str | None:
        return locator.removeprefix("stub://") if locator.startswith("stub://") else None

    def get_id(self, locator: str) -> str:
        found = self.test_locator(locator)
        if found is None:
            raise InvalidFormat(locator)
        return found

    async def extract(self, locator, options, http) -> ContentRecord[Any]:
        self.extract_calls += 1
        await asyncio.sleep(0)
        return self.record


def _record(record_id: str, html: str = "<div><p>Hello</p></div>", **kwargs: Any) -> ContentRecord[Any]:
    tree = parse_html(html).div
    return ContentRecord(
        id=record_id,
        title=f"Post {record_id}",
        source=f"https://example.com/{record_id}",
        document_tree=tree,
        created_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
        data={"raw": record_id},
        inline_nodes=get_inlines(tree),
        **kwargs,
    )


def _archiver(source: StubSource, host: StubHost | None = None) -> tuple[Archiver, StubHost, StubHttp]:
    host = host or StubHost()
    http = StubHttp()
    registry = SourceRegistry([source, OtherSource()])
    return Archiver(host, ACCOUNT, registry, http), host, http


def test_cached_result_skips_every_collaborator() -> None:
    source = StubSource(_record("1"))
    archiver, host, http = _archiver(source)
    cached = ResultRecord(id="1", source_key="stub", source="s", title="t", content="c", data={})
    seen: list[tuple[str, str]] = []

    async def check_existing(source_key: str, record_id: str) -> ResultRecord[Any]:
        seen.append((source_key, record_id))
        return cached

    result = asyncio.run(archiver.backup("stub://1", {"check_existing": check_existing}))

    assert result is cached
    assert seen == [("stub", "1")]
    assert source.extract_calls == 0
    assert host.uploads == [] and host.pages == [] and http.downloads == []


def test_force_ignores_cache() -> None:
    source = StubSource(_record("1"))
    archiver, _, _ = _archiver(source)
    cached = ResultRecord(id="1", source_key="stub", source="s", title="t", content="c", data={})

    async def check_existing(source_key: str, record_id: str) -> ResultRecord[Any]:
        return cached

    result = asyncio.run(
        archiver.backup("stub://1", {"check_existing": check_existing, "force": True})
    )
    assert result is not cached
    assert source.extract_calls == 1


def test_single_image_end_to_end() -> None:
    record = _record("1", '<div><p>Hello</p><img src="https://cdn.example.com/a.png"></div>')
    archiver, host, _ = _archiver(StubSource(record))

    result = asyncio.run(archiver.backup("stub://1"))

    uploaded = "https://telegra.ph/file/1-inline-0.jpg"
    assert result.source_key == "stub"
    assert [item.uploaded_url for item in result.files] == [uploaded]
    assert len(result.pages) == 1
    assert result.pages[0].title == "Post 1"
    assert result.pages[0].files == result.files
    title, content = host.pages[0]
    assert content[0]["children"][0] == "Source: "
    assert {"tag": "figure", "children": [{"tag": "img", "attrs": {"src": uploaded}}]} in content
    assert uploaded in result.content
    assert result.data == {"raw": "1"}


def test_strict_mode_raises_upload_failed() -> None:
    record = _record("1", '<div><img src="https://cdn.example.com/a.png"></div>')
    archiver, host, _ = _archiver(StubSource(record), StubHost(reject=True))

    with pytest.raises(UploadFailed):
        asyncio.run(archiver.backup("stub://1", {"allow_missing_content": False}))
    assert host.pages == []


def test_tolerant_mode_substitutes_placeholder() -> None:
    record = _record("1", '<div><img src="https://cdn.example.com/a.png"></div>')
    archiver, _, _ = _archiver(StubSource(record), StubHost(reject=True))

    result = asyncio.run(archiver.backup("stub://1"))

    assert result.files[0].uploaded_url == PLACEHOLDER_IMAGE_URL
    assert len(result.pages) == 1


def test_reposts_are_published_before_parent() -> None:
    child = _record("2")
    parent = _record("1", reposted=[child])
    archiver, host, _ = _archiver(StubSource(parent))

    result = asyncio.run(archiver.backup("stub://1"))

    assert [title for title, _ in host.pages] == ["Post 2", "Post 1"]
    assert result.reposted[0].id == "2"
    repost_line = host.pages[1][1][1]
    assert repost_line["children"][0] == "Reposted from: "
    assert repost_line["children"][1]["attrs"] == {"href": "https://telegra.ph/post-2"}


def test_cyclic_reposts_terminate() -> None:
    first = _record("1")
    second = _record("2")
    first.reposted.append(second)
    second.reposted.append(first)
    archiver, _, _ = _archiver(StubSource(first))

    result = asyncio.run(archiver.backup("stub://1"))

    assert [child.id for child in result.reposted] == ["2"]
    assert result.reposted[0].reposted == []


def test_repost_depth_is_bounded() -> None:
    records = [_record(str(index)) for index in range(8)]
    for parent, child in zip(records, records[1:]):
        parent.reposted.append(child)
    archiver, _, _ = _archiver(StubSource(records[0]))

    result = asyncio.run(archiver.backup("stub://0", {"max_repost_depth": 2}))

    depth = 0
    node = result
    while node.reposted:
        node = node.reposted[0]
        depth += 1
    assert depth == 2


def test_inaccessible_repost_is_omitted() -> None:
    parent = _record("1", reposted=[_record("2"), _record("3")])
    archiver, _, _ = _archiver(StubSource(parent), StubHost(inaccessible=("Post 2",)))

    result = asyncio.run(archiver.backup("stub://1"))

    assert [child.id for child in result.reposted] == ["3"]


def test_reposts_can_be_disabled() -> None:
    parent = _record("1", reposted=[_record("2")])
    archiver, host, _ = _archiver(StubSource(parent))

    result = asyncio.run(archiver.backup("stub://1", BackupOptions(backup_reposted=False)))

    assert result.reposted == []
    assert [title for title, _ in host.pages] == ["Post 1"]


def test_no_pages_when_disabled() -> None:
    archiver, host, _ = _archiver(StubSource(_record("1")))
    result = asyncio.run(archiver.backup("stub://1", {"create_pages": False}))
    assert result.pages == []
    assert host.pages == []


def test_concurrent_backups_share_one_run() -> None:
    source = StubSource(_record("1"))
    archiver, _, _ = _archiver(source)

    async def run_both():
        return await asyncio.gather(archiver.backup("stub://1"), archiver.backup("stub://1"))

    first, second = asyncio.run(run_both())

    assert first is second
    assert source.extract_calls == 1


def test_fallback_factory_receives_source_key() -> None:
    record = _record("1", '<div><img src="https://cdn.example.com/a.png"></div>')
    source = StubSource(record)
    prefixes: list[str] = []

    def factory(prefix, settings):
        prefixes.append(prefix)

        async def upload(file, file_id):
            return f"https://bucket/{prefix}/{file_id}.png"

        return upload

    archiver = Archiver(
        StubHost(reject=True),
        ACCOUNT,
        SourceRegistry([source, OtherSource()]),
        StubHttp(),
        fallback_factory=factory,
    )
    s3 = {"access_point": "ap", "account_id": "1", "bucket": "b"}
    result = asyncio.run(archiver.backup("stub://1", {"s3": s3}))

    assert prefixes == ["stub"]
    assert result.files[0].uploaded_url == "https://bucket/stub/1-inline-0.png"


def test_unknown_option_is_config_error() -> None:
    archiver, _, _ = _archiver(StubSource(_record("1")))
    with pytest.raises(ConfigError):
        asyncio.run(archiver.backup("stub://1", {"no_such_option": True}))


def test_unknown_source_key_is_invalid_format() -> None:
    archiver, _, _ = _archiver(StubSource(_record("1")))
    with pytest.raises(InvalidFormat):
        asyncio.run(archiver.backup("stub://1", {"source_key": "missing"}))


def test_render_content_variants() -> None:
    record = _record("1", "<div><p>Hello</p><p>World</p></div>")
    assert render_content(record, BackupOptions()) == "<div><p>Hello</p><p>World</p></div>"
    assert render_content(record, BackupOptions(plain_text=True)) == "Hello\nWorld"
    assert render_content(record, BackupOptions(text_length_limit=4)) == "Hell"


def test_record_tree_can_be_plain_tag() -> None:
    record = ContentRecord(
        id="t",
        title="Tweet",
        source="https://twitter.com/a/status/1",
        document_tree=create_tag("p", "just text"),
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        data={},
    )
    archiver, host, _ = _archiver(StubSource(record))
    asyncio.run(archiver.backup("stub://t"))
    assert {"tag": "p", "children": ["just text"]} in host.pages[0][1]
