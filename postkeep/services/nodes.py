"""Conversion of parsed HTML into portable publishing nodes."""

from __future__ import annotations

from typing import Callable

from bs4 import PageElement, Tag

from ..models import ContentNode
from ..utils.html import is_text, tag_name

DomToNodeHandler = Callable[[Tag], "list[ContentNode] | None"]

ALLOWED_TAGS = frozenset(
    {
        "a",
        "aside",
        "b",
        "blockquote",
        "br",
        "code",
        "em",
        "figcaption",
        "figure",
        "h3",
        "h4",
        "hr",
        "i",
        "iframe",
        "img",
        "li",
        "ol",
        "p",
        "pre",
        "s",
        "strong",
        "u",
        "ul",
        "video",
    }
)
_TAG_ALIASES = {
    "h1": "h3",
    "h2": "h3",
    "h5": "h4",
    "h6": "h4",
    "del": "s",
    "strike": "s",
    "ins": "u",
    "cite": "i",
    "q": "blockquote",
}
_CONTAINER_TAGS = frozenset({"article", "div", "footer", "header", "main", "section"})
_BLOCK_TAGS = frozenset(
    {"aside", "blockquote", "figure", "h3", "h4", "hr", "ol", "p", "pre", "ul"}
)


def dom_to_nodes(node: PageElement, handler: DomToNodeHandler | None = None) -> list[ContentNode]:
    """Convert ``node`` into a list of portable nodes.

    ``handler`` may claim any tag by returning a node list; returning ``None``
    falls through to the default conversion.
    """
    if is_text(node):
        return [str(node)]
    if not isinstance(node, Tag):
        return []
    if handler is not None:
        custom = handler(node)
        if custom is not None:
            return custom

    name = tag_name(node) or ""
    if name in {"img", "video"}:
        media: dict = {"tag": name}
        src = node.get("src")
        if src:
            media["attrs"] = {"src": str(src)}
        return [{"tag": "figure", "children": [media]}]

    children = convert_children(node, handler)
    if name == "a":
        anchor: dict = {"tag": "a"}
        href = node.get("href")
        if href:
            anchor["attrs"] = {"href": str(href)}
        if children:
            anchor["children"] = children
        return [anchor]

    if name == "figure":
        children = _flatten_figures(children)

    tag = _TAG_ALIASES.get(name, name)
    if tag not in ALLOWED_TAGS:
        if tag in _CONTAINER_TAGS and children and not _has_block(children):
            return [{"tag": "p", "children": children}]
        return children

    element: dict = {"tag": tag}
    if children:
        element["children"] = children
    return [element]


def convert_children(node: Tag, handler: DomToNodeHandler | None = None) -> list[ContentNode]:
    converted: list[ContentNode] = []
    for child in node.contents:
        converted.extend(dom_to_nodes(child, handler))
    return converted


def _has_block(nodes: list[ContentNode]) -> bool:
    return any(isinstance(item, dict) and item.get("tag") in _BLOCK_TAGS for item in nodes)


def _flatten_figures(nodes: list[ContentNode]) -> list[ContentNode]:
    flattened: list[ContentNode] = []
    for item in nodes:
        if isinstance(item, dict) and item.get("tag") == "figure":
            flattened.extend(item.get("children", []))
        else:
            flattened.append(item)
    return flattened


__all__ = ["ALLOWED_TAGS", "DomToNodeHandler", "convert_children", "dom_to_nodes"]
