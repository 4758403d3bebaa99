"""Core primitives for web fetching."""

from .browser import render_html
from .http_client import HttpClient, HttpRequest, HttpResponse

__all__ = [
    "HttpClient",
    "HttpRequest",
    "HttpResponse",
    "render_html",
]
