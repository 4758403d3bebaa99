"""On-disk cache of archived results."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from ..models import ResultRecord

LOGGER = logging.getLogger(__name__)


def _slugify(value: str) -> str:
    lowered = value.lower()
    safe = [ch if ch.isalnum() or ch in {"-", "_"} else "-" for ch in lowered]
    slug = "".join(safe).strip("-")
    return slug or "default"


class JsonResultCache:
    """Stores one JSON document per ``(source_key, id)`` under ``root``.

    ``check_existing`` matches the orchestrator's cache callback, so an
    instance can be passed straight into backup options.
    """

    def __init__(self, root: Path) -> None:
        self._root = root
        self._root.mkdir(parents=True, exist_ok=True)

    def path_for(self, source_key: str, record_id: str) -> Path:
        return self._root / _slugify(source_key) / f"{_slugify(record_id)}.json"

    def load(self, source_key: str, record_id: str) -> ResultRecord[Any] | None:
        path = self.path_for(source_key, record_id)
        if not path.exists():
            return None
        data = json.loads(path.read_text(encoding="utf-8"))
        return ResultRecord.from_dict(data)

    def save(self, result: ResultRecord[Any]) -> Path:
        path = self.path_for(result.source_key, result.id)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(result.to_dict(), ensure_ascii=False, indent=2, default=str),
            encoding="utf-8",
        )
        LOGGER.debug(
            "Cached result",
            extra={"event": "cache.saved", "source_key": result.source_key, "id": result.id},
        )
        return path

    def delete(self, source_key: str, record_id: str) -> None:
        path = self.path_for(source_key, record_id)
        if path.exists():
            path.unlink()

    async def check_existing(self, source_key: str, record_id: str) -> ResultRecord[Any] | None:
        return await asyncio.to_thread(self.load, source_key, record_id)


__all__ = ["JsonResultCache"]
