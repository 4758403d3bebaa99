"""Abstract extractor contract."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from bs4 import Tag

from ..core.http_client import HttpClient
from ..models import ContentNode, ContentRecord

if TYPE_CHECKING:
    from ..services.options import BackupOptions


class BaseSource(ABC):
    """Turns a locator into a :class:`ContentRecord` for one platform."""

    key: str = "base"

    @abstractmethod
    def test_locator(self, locator: str) -> str | None:
        """Return the item id when ``locator`` belongs to this source."""

    @abstractmethod
    def get_id(self, locator: str) -> str:
        """Derive the stable item id, raising ``InvalidFormat`` when impossible."""

    @abstractmethod
    async def extract(
        self, locator: str, options: BackupOptions, http: HttpClient
    ) -> ContentRecord[Any]:
        """Fetch and normalize the item behind ``locator``."""

    def dom_to_node_handler(self, node: Tag) -> list[ContentNode] | None:
        """Hook to override node conversion for individual tags."""
        _ = node
        return None


__all__ = ["BaseSource"]
