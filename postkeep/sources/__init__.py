"""Extractor registry."""

from __future__ import annotations

from typing import Iterable, Iterator

from ..errors import InvalidFormat
from ..settings import AppConfig
from .base import BaseSource
from .other import OtherSource
from .twitter import TwitterSource


class SourceRegistry:
    """Ordered set of extractors; ``other`` always answers last."""

    def __init__(self, sources: Iterable[BaseSource] = ()) -> None:
        self._sources: dict[str, BaseSource] = {}
        for source in sources:
            self.register(source)

    def register(self, source: BaseSource) -> None:
        self._sources[source.key] = source

    def get(self, key: str) -> BaseSource:
        try:
            return self._sources[key]
        except KeyError as exc:
            raise InvalidFormat(
                f"Unknown source '{key}'", details={"registered": list(self._sources)}
            ) from exc

    def select(self, locator: str, source_key: str | None = None) -> BaseSource:
        """Pick the extractor for ``locator``, honouring an explicit key."""
        if source_key:
            return self.get(source_key)
        fallback: BaseSource | None = None
        for source in self._sources.values():
            if source.key == OtherSource.key:
                fallback = source
                continue
            if source.test_locator(locator) is not None:
                return source
        if fallback is None:
            raise InvalidFormat(locator)
        return fallback

    def __iter__(self) -> Iterator[BaseSource]:
        return iter(self._sources.values())

    def __len__(self) -> int:
        return len(self._sources)


def build_default_registry(config: AppConfig | None = None) -> SourceRegistry:
    twitter = TwitterSource(config.twitter if config is not None else None)
    return SourceRegistry([twitter, OtherSource()])


__all__ = [
    "BaseSource",
    "OtherSource",
    "SourceRegistry",
    "TwitterSource",
    "build_default_registry",
]
