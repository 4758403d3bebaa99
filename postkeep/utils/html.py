"""Helpers for parsing, normalizing and walking HTML trees."""

from __future__ import annotations

import re
import urllib.parse
from typing import Iterable

from bs4 import BeautifulSoup, NavigableString, PageElement, Tag
from bs4.element import PreformattedString

_INDENT_PATTERN = re.compile(r"\n[^\S\n]+")
_BLANK_RUN_PATTERN = re.compile(r"\n\s*\n")

_MEDIA_TAGS = frozenset({"img", "video"})
_KEEP_IDENTITY_TAGS = frozenset({"a", "img", "video"})
_BLOCK_TAGS = frozenset(
    {
        "article",
        "blockquote",
        "div",
        "figcaption",
        "figure",
        "footer",
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
        "header",
        "hr",
        "li",
        "ol",
        "p",
        "pre",
        "section",
        "table",
        "tr",
        "ul",
    }
)


def parse_html(html: str, *, parser: str = "html.parser") -> BeautifulSoup:
    return BeautifulSoup(html, parser)


def create_tag(name: str, text: str | None = None, **attrs: str) -> Tag:
    """Build a detached tag, optionally holding a single text child."""
    tag = BeautifulSoup("", "html.parser").new_tag(name, attrs=attrs)
    if text is not None:
        tag.append(NavigableString(text))
    return tag


def is_text(node: PageElement) -> bool:
    return isinstance(node, NavigableString) and not isinstance(node, PreformattedString)


def tag_name(node: PageElement) -> str | None:
    if isinstance(node, Tag) and node.name:
        return node.name.lower()
    return None


def select_text(root: Tag, *selectors: str) -> str | None:
    """Return the stripped text of the first selector that matches."""
    for selector in selectors:
        found = root.select_one(selector)
        if found is not None:
            return found.get_text().strip()
    return None


def get_downloadable(url: str | None, base_url: str | None = None) -> str | None:
    """Resolve ``url`` against ``base_url`` and keep it only when it is http(s)."""
    if not url:
        return None
    try:
        absolute = urllib.parse.urljoin(base_url or "", url.strip())
        parsed = urllib.parse.urlparse(absolute)
    except ValueError:
        return None
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        return None
    return absolute


def get_inlines(
    root: Tag,
    images: bool = True,
    videos: bool = False,
    links: bool = False,
) -> list[Tag]:
    """Collect media and anchor tags in document order.

    A collected tag is not searched further, so an image wrapped in a link is
    reported once, as the link, when links are enabled.
    """
    wanted: set[str] = set()
    if images:
        wanted.add("img")
    if videos:
        wanted.add("video")
    if links:
        wanted.add("a")

    results: list[Tag] = []

    def walk(nodes: Iterable[PageElement]) -> None:
        for node in nodes:
            name = tag_name(node)
            if name is None:
                continue
            if name in wanted:
                results.append(node)  # type: ignore[arg-type]
            else:
                walk(node.contents)  # type: ignore[union-attr]

    walk(root.contents)
    return results


def normalize_tree(node: PageElement, recursive: bool = True) -> PageElement | None:
    """Trim blank text and empty wrappers from ``node``.

    Returns the node that should take ``node``'s place, which may be a
    same-tag descendant when redundant wrappers are elided, or ``None`` for
    comments and other non-content nodes. Normalizing twice is a no-op.
    """
    if is_text(node):
        text = _collapse_blank_lines(str(node))
        return _replace_text(node, text) if text != str(node) else node
    if not isinstance(node, Tag):
        return None

    children = list(node.contents)
    if recursive:
        children = [child for child in map(normalize_tree, children) if child is not None]
    else:
        children = [child for child in children if is_text(child) or isinstance(child, Tag)]

    while children and _is_empty(children[-1]):
        children.pop()
    while children and _is_empty(children[0]):
        children.pop(0)

    _set_children(node, children)

    if children and is_text(children[0]):
        children[0] = _replace_text(children[0], str(children[0]).lstrip())
    if children and is_text(children[-1]):
        children[-1] = _replace_text(children[-1], str(children[-1]).rstrip())

    name = tag_name(node)
    if len(children) == 1 and name not in _KEEP_IDENTITY_TAGS:
        only = children[0]
        if tag_name(only) == name:
            return only
    return node


def structured_text(node: PageElement) -> str:
    """Render ``node`` as plain text, one line per block element."""
    parts: list[str] = []
    _collect_text(node, parts)
    lines = (" ".join(line.split()) for line in "".join(parts).splitlines())
    return "\n".join(line for line in lines if line)


def _collect_text(node: PageElement, parts: list[str]) -> None:
    if is_text(node):
        parts.append(str(node))
        return
    if not isinstance(node, Tag):
        return
    name = tag_name(node)
    if name == "br":
        parts.append("\n")
        return
    block = name in _BLOCK_TAGS
    if block:
        parts.append("\n")
    for child in node.contents:
        _collect_text(child, parts)
    if block:
        parts.append("\n")


def _collapse_blank_lines(text: str) -> str:
    text = _INDENT_PATTERN.sub("\n", text)
    return _BLANK_RUN_PATTERN.sub("\n\n", text)


def _is_empty(node: PageElement) -> bool:
    if is_text(node):
        return not str(node).strip()
    if isinstance(node, Tag):
        if tag_name(node) in _MEDIA_TAGS:
            return False
        return len(node.contents) == 0
    return True


def _replace_text(node: PageElement, text: str) -> NavigableString:
    replacement = NavigableString(text)
    if node.parent is not None:
        node.replace_with(replacement)
    return replacement


def _set_children(node: Tag, children: list[PageElement]) -> None:
    for child in list(node.contents):
        child.extract()
    for child in children:
        node.append(child)


__all__ = [
    "create_tag",
    "get_downloadable",
    "get_inlines",
    "is_text",
    "normalize_tree",
    "parse_html",
    "select_text",
    "structured_text",
    "tag_name",
]
