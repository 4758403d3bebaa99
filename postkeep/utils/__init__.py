"""Utility exports."""

from .html import (
    create_tag,
    get_downloadable,
    get_inlines,
    normalize_tree,
    parse_html,
    select_text,
    structured_text,
)
from .logging import configure_logging, get_logger

__all__ = [
    "configure_logging",
    "create_tag",
    "get_downloadable",
    "get_inlines",
    "get_logger",
    "normalize_tree",
    "parse_html",
    "select_text",
    "structured_text",
]
