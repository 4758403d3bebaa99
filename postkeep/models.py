"""Document model for extracted content and published archives."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Generic, Literal, Mapping, TypeVar, Union

from bs4 import Tag

T = TypeVar("T")

MediaKind = Literal["image", "video", "file", "auto"]

# Portable node: plain text or ``{"tag": ..., "attrs": {...}, "children": [...]}``.
ContentNode = Union[str, dict[str, Any]]


@dataclass(slots=True)
class DownloadedFile:
    """Bytes fetched from a media source."""

    url: str
    content: bytes
    content_type: str | None = None


Downloader = Callable[[], Awaitable[DownloadedFile]]


@dataclass(slots=True)
class UploadedFile:
    """Outcome of re-hosting a single media source."""

    id: str
    path: str
    source: str


@dataclass(slots=True)
class MediaRef:
    """A media item attached to, or embedded in, an archived record."""

    kind: MediaKind
    source: str
    download: Downloader | None = field(default=None, repr=False, compare=False)
    preview_url: str | None = None
    uploaded_url: str | None = None

    @property
    def url(self) -> str:
        return self.uploaded_url or self.source

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"kind": self.kind, "source": self.source}
        if self.preview_url:
            data["preview_url"] = self.preview_url
        if self.uploaded_url:
            data["uploaded_url"] = self.uploaded_url
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MediaRef":
        return cls(
            kind=data.get("kind", "auto"),
            source=str(data["source"]),
            preview_url=data.get("preview_url"),
            uploaded_url=data.get("uploaded_url"),
        )


@dataclass(slots=True)
class PublishedPage:
    """A page created on the publishing host."""

    path: str
    url: str
    title: str
    description: str = ""
    files: list[MediaRef] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "url": self.url,
            "title": self.title,
            "description": self.description,
            "files": [item.to_dict() for item in self.files],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PublishedPage":
        return cls(
            path=str(data.get("path", "")),
            url=str(data.get("url", "")),
            title=str(data.get("title", "")),
            description=str(data.get("description", "")),
            files=[MediaRef.from_dict(item) for item in data.get("files", [])],
        )


@dataclass(slots=True)
class ContentRecord(Generic[T]):
    """Normalized representation of one archived item, produced by a source."""

    id: str
    title: str
    source: str
    document_tree: Tag
    created_at: datetime
    data: T
    author_name: str | None = None
    author_url: str | None = None
    updated_at: datetime | None = None
    meta_string: str | None = None
    inline_nodes: list[Tag] = field(default_factory=list)
    other_files: list[MediaRef] = field(default_factory=list)
    reposted: list["ContentRecord[Any]"] = field(default_factory=list)


@dataclass(slots=True)
class ResultRecord(Generic[T]):
    """Published form of a :class:`ContentRecord`."""

    id: str
    source_key: str
    source: str
    title: str
    content: str
    data: T
    created_at: datetime | None = None
    updated_at: datetime | None = None
    author_name: str | None = None
    author_url: str | None = None
    meta_string: str | None = None
    files: list[MediaRef] = field(default_factory=list)
    pages: list[PublishedPage] = field(default_factory=list)
    reposted: list["ResultRecord[Any]"] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "source_key": self.source_key,
            "source": self.source,
            "title": self.title,
            "content": self.content,
            "data": self.data,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "author_name": self.author_name,
            "author_url": self.author_url,
            "meta_string": self.meta_string,
            "files": [item.to_dict() for item in self.files],
            "pages": [page.to_dict() for page in self.pages],
            "reposted": [child.to_dict() for child in self.reposted],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ResultRecord[Any]":
        return cls(
            id=str(data["id"]),
            source_key=str(data.get("source_key", "")),
            source=str(data.get("source", "")),
            title=str(data.get("title", "")),
            content=str(data.get("content", "")),
            data=data.get("data"),
            created_at=_parse_datetime(data.get("created_at")),
            updated_at=_parse_datetime(data.get("updated_at")),
            author_name=data.get("author_name"),
            author_url=data.get("author_url"),
            meta_string=data.get("meta_string"),
            files=[MediaRef.from_dict(item) for item in data.get("files", [])],
            pages=[PublishedPage.from_dict(item) for item in data.get("pages", [])],
            reposted=[cls.from_dict(item) for item in data.get("reposted", [])],
        )


def _parse_datetime(value: Any) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(str(value))


__all__ = [
    "ContentNode",
    "ContentRecord",
    "DownloadedFile",
    "Downloader",
    "MediaKind",
    "MediaRef",
    "PublishedPage",
    "ResultRecord",
    "UploadedFile",
]
