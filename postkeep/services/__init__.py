"""Backup pipeline services."""

from __future__ import annotations

from .backup import Archiver, backup, render_content
from .cache import JsonResultCache
from .nodes import dom_to_nodes
from .options import BackupOptions, prepare_options
from .pages import PAGE_BYTE_LIMIT, create_pages, render_page_nodes
from .uploader import MediaUploader

__all__ = [
    "Archiver",
    "BackupOptions",
    "JsonResultCache",
    "MediaUploader",
    "PAGE_BYTE_LIMIT",
    "backup",
    "create_pages",
    "dom_to_nodes",
    "prepare_options",
    "render_content",
    "render_page_nodes",
]
