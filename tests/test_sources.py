"""Tests for the bundled extractors and their registry."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest

from postkeep.core.http_client import HttpRequest, HttpResponse
from postkeep.errors import CannotAccess, ConfigError, InvalidFormat
from postkeep.services.options import BackupOptions
from postkeep.settings import HttpSettings, TwitterSettings
from postkeep.sources import OtherSource, SourceRegistry, TwitterSource, build_default_registry


def _response(url: str, body: Any, *, status: int = 200, content_type: str = "application/json") -> HttpResponse:
    raw = body if isinstance(body, bytes) else json.dumps(body).encode("utf-8")
    return HttpResponse(
        url=url,
        status=status,
        headers={"Content-Type": content_type},
        body=raw,
        text=raw.decode("utf-8", errors="replace"),
        elapsed=0.0,
    )


class StubHttp:
    def __init__(self, responses: dict[str, HttpResponse] | None = None, *, transport: str = "requests") -> None:
        self.settings = HttpSettings(transport=transport)
        self.responses = responses or {}
        self.requests: list[HttpRequest] = []
        self.pages: list[str] = []

    async def afetch(self, request: HttpRequest) -> HttpResponse:
        self.requests.append(request)
        return self.responses[request.url]

    async def fetch_page(self, url, get_cookie, set_cookie, *, headers=None) -> HttpResponse:
        self.pages.append(url)
        return self.responses[url]


def _tweet_payload(tweet_id: str, *, nested: list[str] = (), media: list[dict[str, Any]] = ()) -> dict[str, Any]:
    return {
        "data": {
            "id": tweet_id,
            "author_id": "42",
            "text": f"tweet {tweet_id}",
            "created_at": "2024-03-01T10:00:00.000Z",
        },
        "includes": {
            "users": [{"id": "42", "name": "Jack", "username": "jack"}],
            "tweets": [{"id": item} for item in nested],
            "media": list(media),
        },
    }


def _twitter_http(payloads: dict[str, dict[str, Any]]) -> StubHttp:
    base = "https://api.twitter.com/2/tweets/"
    return StubHttp({base + key: _response(base + key, value) for key, value in payloads.items()})


def test_twitter_locator_parsing() -> None:
    source = TwitterSource()
    assert source.get_id("https://twitter.com/jack/status/20") == "20-jack"
    assert source.test_locator("x.com/jack/status/20/") == "20-jack"
    assert source.test_locator("https://example.com/jack/status/20") is None
    with pytest.raises(InvalidFormat):
        source.get_id("https://twitter.com/jack")


def test_twitter_requires_bearer_token() -> None:
    source = TwitterSource(TwitterSettings(bearer_token=None))
    with pytest.raises(ConfigError):
        asyncio.run(source.extract("https://twitter.com/jack/status/20", BackupOptions(), StubHttp()))


def test_twitter_extract_builds_record() -> None:
    media = [
        {"media_key": "m1", "type": "photo", "url": "https://pbs.twimg.com/media/a.jpg"},
        {
            "media_key": "m2",
            "type": "video",
            "preview_image_url": "https://pbs.twimg.com/p.jpg",
            "variants": [
                {"bit_rate": 100, "content_type": "video/mp4", "url": "https://video/low.mp4"},
                {"bit_rate": 900, "content_type": "video/mp4", "url": "https://video/high.mp4"},
                {"content_type": "application/x-mpegURL", "url": "https://video/list.m3u8"},
            ],
        },
    ]
    http = _twitter_http({"20": _tweet_payload("20", media=media)})
    source = TwitterSource(TwitterSettings(bearer_token="secret"))

    record = asyncio.run(
        source.extract("https://twitter.com/jack/status/20", BackupOptions(upload_videos=True), http)
    )

    assert record.id == "20-jack"
    assert record.source == "https://twitter.com/jack/status/20"
    assert record.author_name == "Jack"
    assert record.author_url == "https://twitter.com/jack"
    assert record.document_tree.get_text() == "tweet 20"
    assert record.created_at.year == 2024
    assert [(ref.kind, ref.source) for ref in record.other_files] == [
        ("image", "https://pbs.twimg.com/media/a.jpg"),
        ("video", "https://video/high.mp4"),
    ]
    request = http.requests[0]
    assert request.headers == {"Authorization": "Bearer secret"}
    assert "referenced_tweets.id" in request.params["expansions"]


def test_twitter_videos_skipped_by_default() -> None:
    media = [{"media_key": "m2", "type": "video", "variants": [{"url": "https://video/a.mp4"}]}]
    http = _twitter_http({"20": _tweet_payload("20", media=media)})
    source = TwitterSource(TwitterSettings(bearer_token="secret"))
    record = asyncio.run(source.extract("https://twitter.com/jack/status/20", BackupOptions(), http))
    assert record.other_files == []


def test_twitter_nested_tweets_respect_max_depth() -> None:
    http = _twitter_http(
        {
            "1": _tweet_payload("1", nested=["2"]),
            "2": _tweet_payload("2", nested=["3"]),
            "3": _tweet_payload("3", nested=["4"]),
            "4": _tweet_payload("4"),
        }
    )
    source = TwitterSource(TwitterSettings(bearer_token="secret", max_depth=3))
    record = asyncio.run(source.extract("https://twitter.com/jack/status/1", BackupOptions(), http))

    assert record.reposted[0].id == "2-jack"
    assert record.reposted[0].reposted[0].id == "3-jack"
    assert record.reposted[0].reposted[0].reposted == []


def test_twitter_unavailable_nested_tweet_is_skipped() -> None:
    base = "https://api.twitter.com/2/tweets/"
    http = _twitter_http({"1": _tweet_payload("1", nested=["2"])})
    http.responses[base + "2"] = _response(
        base + "2", {"errors": [{"title": "Not Found Error", "type": "not-found"}]}
    )
    source = TwitterSource(TwitterSettings(bearer_token="secret"))
    record = asyncio.run(source.extract("https://twitter.com/jack/status/1", BackupOptions(), http))
    assert record.reposted == []


def test_twitter_missing_tweet_is_cannot_access() -> None:
    base = "https://api.twitter.com/2/tweets/"
    http = StubHttp(
        {base + "9": _response(base + "9", {"errors": [{"title": "gone", "type": "not-found"}]})}
    )
    source = TwitterSource(TwitterSettings(bearer_token="secret"))
    with pytest.raises(CannotAccess):
        asyncio.run(source.extract("https://twitter.com/jack/status/9", BackupOptions(), http))


def test_other_source_parses_html() -> None:
    url = "https://blog.example.com/post"
    html = (
        "<html><head><title> A post </title><script>var x = 1;</script></head>"
        '<body><div><p>Body</p><img src="/a.png"></div></body></html>'
    )
    http = StubHttp({url: _response(url, html.encode(), content_type="text/html; charset=utf-8")})
    source = OtherSource()

    record = asyncio.run(source.extract(url, BackupOptions(), http))

    assert record.id == source.get_id(url)
    assert len(record.id) == 64
    assert record.title == "A post"
    assert "var x" not in str(record.document_tree)
    assert [node["src"] for node in record.inline_nodes] == ["/a.png"]


def test_other_source_wraps_binary_as_attachment() -> None:
    url = "https://files.example.com/report.pdf"
    http = StubHttp({url: _response(url, b"%PDF", content_type="application/pdf")})

    record = asyncio.run(OtherSource().extract(url, BackupOptions(), http))

    assert record.title == "Archived file: report.pdf"
    assert record.other_files[0].kind == "auto"
    downloaded = asyncio.run(record.other_files[0].download())
    assert downloaded.content == b"%PDF"


def test_other_source_uses_browser_html_when_given() -> None:
    http = StubHttp()
    options = BackupOptions(html_from_browser="<html><title>T</title><body><p>x</p></body></html>")
    record = asyncio.run(OtherSource().extract("https://example.com", options, http))
    assert record.title == "T"
    assert http.pages == []


def test_other_source_error_status_is_cannot_access() -> None:
    url = "https://example.com/missing"
    http = StubHttp({url: _response(url, b"nope", status=404, content_type="text/html")})
    with pytest.raises(CannotAccess):
        asyncio.run(OtherSource().extract(url, BackupOptions(), http))


def test_registry_selects_by_locator() -> None:
    registry = build_default_registry()
    assert registry.select("https://twitter.com/jack/status/20").key == "twitter"
    assert registry.select("https://example.com/anything").key == "other"
    assert registry.select("https://twitter.com/jack/status/20", "other").key == "other"


def test_registry_without_catch_all_rejects_unknown() -> None:
    registry = SourceRegistry([TwitterSource()])
    with pytest.raises(InvalidFormat):
        registry.select("https://example.com/")
