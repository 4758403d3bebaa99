"""Page rendering and byte-bounded pagination for the publishing host."""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from datetime import datetime, timezone, tzinfo
from typing import Any, Iterable, Sequence

from ..errors import CreateFailed
from ..models import ContentNode, ContentRecord, MediaRef, PublishedPage, ResultRecord
from ..platforms.base import PageAccount, PublishingHost

LOGGER = logging.getLogger(__name__)

PAGE_BYTE_LIMIT = 64000
TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

SOURCE_LABEL = "Source: "
REPOSTED_LABEL = "Reposted from: "
ATTACHMENTS_LABEL = "Attachments:"

# Smallest budget that still fits one escaped character inside quotes.
_MIN_TEXT_BUDGET = 8


def node_size(node: Any) -> int:
    """Byte length of ``node`` as compact UTF-8 JSON."""
    return len(json.dumps(node, ensure_ascii=False, separators=(",", ":")).encode("utf-8"))


def format_timestamp(value: datetime, tz: tzinfo = timezone.utc) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(tz).strftime(TIME_FORMAT)


def render_page_nodes(
    record: ContentRecord[Any],
    body: Sequence[ContentNode],
    reposted: Sequence[ResultRecord[Any]],
    files: Sequence[MediaRef],
    *,
    tz: tzinfo = timezone.utc,
) -> list[ContentNode]:
    """Wrap ``body`` with the source, repost, meta and attachment blocks."""
    stamp = format_timestamp(record.created_at, tz)
    if record.updated_at is not None:
        stamp = f"{stamp}, updated {format_timestamp(record.updated_at, tz)}"
    nodes: list[ContentNode] = [
        {
            "tag": "p",
            "children": [SOURCE_LABEL, _link(record.source), f" ({stamp})"],
        }
    ]

    repost_links: list[ContentNode] = []
    for child in reposted:
        for page in child.pages:
            if repost_links:
                repost_links.append(" ")
            repost_links.append(_link(page.url or page.path, page.title))
    if repost_links:
        nodes.append({"tag": "p", "children": [REPOSTED_LABEL, *repost_links]})

    if record.meta_string:
        nodes.append({"tag": "p", "children": [record.meta_string]})

    nodes.extend(body)

    if files:
        nodes.append({"tag": "p", "children": [ATTACHMENTS_LABEL]})
        for item in files:
            if item.kind == "file":
                nodes.append({"tag": "p", "children": [_link(item.url)]})
            else:
                media = "video" if item.kind == "video" else "img"
                nodes.append(
                    {"tag": "figure", "children": [{"tag": media, "attrs": {"src": item.url}}]}
                )
    return nodes


async def create_pages(
    host: PublishingHost,
    title: str,
    nodes: Sequence[ContentNode],
    account: PageAccount,
    author_name: str | None = None,
    author_url: str | None = None,
    files: Sequence[MediaRef] = (),
) -> list[PublishedPage]:
    """Publish ``nodes`` across as many pages as the byte limit requires.

    Nodes are packed greedily in order. A single node larger than a page is
    split into pieces that keep its tag and attributes, so every page stays
    within :data:`PAGE_BYTE_LIMIT`. Pages are created sequentially; later
    pages are titled ``"{title} (n)"``.
    """
    if not nodes:
        return []
    empty = node_size([])
    pieces = _fit(list(nodes), PAGE_BYTE_LIMIT - empty)
    groups = _pack(pieces, PAGE_BYTE_LIMIT, empty)

    pages: list[PublishedPage] = []
    for index, group in enumerate(groups):
        page_title = title if index == 0 else f"{title} ({index + 1})"
        page = await host.create_page(
            page_title, group, account, author_name=author_name, author_url=author_url
        )
        embedded = _embedded_urls(group)
        page = replace(
            page,
            files=[item for item in files if item.uploaded_url and item.uploaded_url in embedded],
        )
        LOGGER.debug(
            "Created page %s",
            page.url,
            extra={"event": "pages.created", "index": index, "bytes": node_size(group)},
        )
        pages.append(page)
    return pages


def split_node(node: ContentNode, budget: int) -> list[ContentNode]:
    """Split ``node`` into pieces whose serialized size is at most ``budget``."""
    if node_size(node) <= budget:
        return [node]
    if isinstance(node, str):
        return _split_text(node, budget)

    shell = {key: value for key, value in node.items() if key != "children"}
    children = list(node.get("children") or [])
    base = node_size({**shell, "children": []})
    if not children or budget - base < _MIN_TEXT_BUDGET:
        raise CreateFailed(
            f"<{node.get('tag')}> node exceeds page byte limit",
            details={"bytes": node_size(node), "budget": budget},
        )
    groups = _pack(_fit(children, budget - base), budget, base)
    return [{**shell, "children": group} for group in groups]


def _fit(nodes: Iterable[ContentNode], budget: int) -> list[ContentNode]:
    fitted: list[ContentNode] = []
    for node in nodes:
        fitted.extend(split_node(node, budget))
    return fitted


def _pack(nodes: Sequence[ContentNode], limit: int, base: int) -> list[list[ContentNode]]:
    groups: list[list[ContentNode]] = []
    current: list[ContentNode] = []
    size = base
    for node in nodes:
        width = node_size(node)
        extra = width + (1 if current else 0)
        if current and size + extra > limit:
            groups.append(current)
            current, size, extra = [], base, width
        current.append(node)
        size += extra
    if current:
        groups.append(current)
    return groups


def _split_text(text: str, budget: int) -> list[ContentNode]:
    if budget < _MIN_TEXT_BUDGET:
        raise CreateFailed("text node exceeds page byte limit", details={"budget": budget})
    quotes = node_size("")
    chunks: list[ContentNode] = []
    current: list[str] = []
    size = quotes
    for char in text:
        width = node_size(char) - quotes
        if current and size + width > budget:
            chunks.append("".join(current))
            current, size = [], quotes
        current.append(char)
        size += width
    if current:
        chunks.append("".join(current))
    return chunks


def _embedded_urls(nodes: Iterable[ContentNode]) -> set[str]:
    urls: set[str] = set()
    stack = list(nodes)
    while stack:
        node = stack.pop()
        if isinstance(node, str):
            continue
        for key in ("src", "href"):
            value = (node.get("attrs") or {}).get(key)
            if value:
                urls.add(value)
        stack.extend(node.get("children") or [])
    return urls


def _link(href: str, text: str | None = None) -> ContentNode:
    return {"tag": "a", "attrs": {"href": href}, "children": [text or href]}


__all__ = [
    "PAGE_BYTE_LIMIT",
    "create_pages",
    "format_timestamp",
    "node_size",
    "render_page_nodes",
    "split_node",
]
