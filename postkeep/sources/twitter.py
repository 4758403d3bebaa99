"""Tweets through the Twitter API v2."""

from __future__ import annotations

import logging
import re
import urllib.parse
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Mapping

import requests

from ..core.http_client import HttpClient, HttpRequest
from ..errors import CannotAccess, ConfigError, InvalidFormat
from ..models import ContentRecord, MediaRef
from ..settings import TwitterSettings
from ..utils.html import create_tag
from .base import BaseSource

if TYPE_CHECKING:
    from ..services.options import BackupOptions

_LOGGER = logging.getLogger(__name__)

TWITTER_API_BASE = "https://api.twitter.com/2/tweets/"
DEFAULT_QUERY_PARAMETERS: dict[str, tuple[str, ...]] = {
    "expansions": ("attachments.media_keys", "author_id", "referenced_tweets.id"),
    "tweet.fields": ("created_at", "attachments", "text", "author_id", "referenced_tweets"),
    "media.fields": ("preview_image_url", "type", "url", "variants"),
    "user.fields": ("id", "name", "username"),
}

_HOST_PATTERN = re.compile(r"^(?:.*\.)?(?:twitter|x)\.com$", re.IGNORECASE)
_PATH_PATTERN = re.compile(r"^/(?P<user>[^/]+)/status/(?P<id>\d+)/?$")


class TwitterSource(BaseSource):
    """Builds records from tweets, including quoted and retweeted ones."""

    key = "twitter"

    def __init__(self, settings: TwitterSettings | None = None) -> None:
        self._settings = settings or TwitterSettings()

    def test_locator(self, locator: str) -> str | None:
        try:
            return self.get_id(locator)
        except InvalidFormat:
            return None

    def get_id(self, locator: str) -> str:
        url = locator if locator.startswith("http") else f"https://{locator}"
        parsed = urllib.parse.urlparse(url)
        match = _PATH_PATTERN.match(parsed.path)
        if not _HOST_PATTERN.match(parsed.hostname or "") or match is None:
            raise InvalidFormat(locator)
        return f"{match.group('id')}-{match.group('user')}"

    @staticmethod
    def standard_url(record_id: str) -> str:
        tweet_id, _, user = record_id.partition("-")
        return f"https://twitter.com/{user or 'i'}/status/{tweet_id}"

    async def extract(
        self, locator: str, options: BackupOptions, http: HttpClient
    ) -> ContentRecord[dict[str, Any]]:
        token = self._settings.bearer_token
        if not token:
            raise ConfigError("Twitter API bearer token is not configured")
        record_id = options.id or self.get_id(locator)
        tweet_id = record_id.split("-", 1)[0]
        return await self._extract_tweet(tweet_id, token, options, http, depth=1)

    async def _extract_tweet(
        self,
        tweet_id: str,
        token: str,
        options: BackupOptions,
        http: HttpClient,
        *,
        depth: int,
    ) -> ContentRecord[dict[str, Any]]:
        payload = await self._get_tweet(tweet_id, token, http)
        tweet = payload.get("data")
        if not tweet:
            raise CannotAccess(self.standard_url(tweet_id))
        includes = payload.get("includes") or {}

        reposted: list[ContentRecord[Any]] = []
        if options.backup_reposted and self._within_depth(depth, options):
            for nested in includes.get("tweets") or []:
                try:
                    reposted.append(
                        await self._extract_tweet(
                            str(nested["id"]), token, options, http, depth=depth + 1
                        )
                    )
                except (CannotAccess, InvalidFormat) as exc:
                    _LOGGER.warning(
                        "Skipping referenced tweet %s: %s",
                        nested.get("id"),
                        exc,
                        extra={"event": "source.repost_skipped", "source_key": self.key},
                    )

        user = next(
            (item for item in includes.get("users") or [] if item.get("id") == tweet.get("author_id")),
            None,
        )
        if user is None:
            record_id = str(tweet["id"])
            title = f"Tweet {tweet['id']}"
            author_name = tweet.get("author_id")
            author_url = None
        else:
            record_id = f"{tweet['id']}-{user['username']}"
            title = f"{user['name']}'s tweet {tweet['id']}"
            author_name = user["name"]
            author_url = f"https://twitter.com/{user['username']}"

        return ContentRecord(
            id=record_id,
            title=title,
            source=self.standard_url(record_id),
            document_tree=create_tag("p", str(tweet.get("text", ""))),
            created_at=_parse_created_at(tweet.get("created_at")),
            data=dict(tweet),
            author_name=author_name,
            author_url=author_url,
            other_files=self._media(includes.get("media") or [], options),
            reposted=reposted,
        )

    def _within_depth(self, depth: int, options: BackupOptions) -> bool:
        limit = self._settings.max_depth
        if limit > 0 and depth >= limit:
            return False
        return depth <= options.max_repost_depth

    async def _get_tweet(self, tweet_id: str, token: str, http: HttpClient) -> dict[str, Any]:
        url = TWITTER_API_BASE + tweet_id
        request = HttpRequest(
            url=url,
            params=self._query_parameters(),
            headers={"Authorization": f"Bearer {token}"},
        )
        try:
            response = await http.afetch(request)
        except requests.RequestException as exc:
            raise CannotAccess(url, cause=exc) from exc
        try:
            data = response.json()
        except ValueError as exc:
            raise CannotAccess(url, cause=exc, details={"status": response.status}) from exc
        if not isinstance(data, dict):
            raise InvalidFormat(url, details={"status": response.status})
        errors = data.get("errors")
        if errors and not data.get("data"):
            first = errors[0]
            raise CannotAccess(
                f"{url} ({first.get('type')})",
                details={"title": first.get("title"), "status": response.status},
            )
        return data

    def _query_parameters(self) -> dict[str, str]:
        merged: dict[str, list[str]] = {
            key: list(values) for key, values in DEFAULT_QUERY_PARAMETERS.items()
        }
        for key, value in self._settings.query_parameters.items():
            current = merged.setdefault(key, [])
            for item in value.split(","):
                item = item.strip()
                if item and item not in current:
                    current.append(item)
        return {key: ",".join(values) for key, values in merged.items()}

    def _media(
        self, media: list[Mapping[str, Any]], options: BackupOptions
    ) -> list[MediaRef]:
        refs: list[MediaRef] = []
        for each in media:
            kind = each.get("type")
            if kind == "photo":
                if each.get("url"):
                    refs.append(MediaRef(kind="image", source=each["url"]))
            elif kind == "video":
                variants = [item for item in each.get("variants") or [] if item.get("url")]
                if options.upload_videos and variants:
                    best = max(variants, key=lambda item: item.get("bit_rate", -1))
                    refs.append(
                        MediaRef(
                            kind="video",
                            source=best["url"],
                            preview_url=each.get("preview_image_url"),
                        )
                    )
            elif each.get("url"):
                refs.append(MediaRef(kind="auto", source=each["url"]))
        return refs


def _parse_created_at(value: Any) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


__all__ = ["DEFAULT_QUERY_PARAMETERS", "TWITTER_API_BASE", "TwitterSource"]
