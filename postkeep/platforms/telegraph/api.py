"""Telegraph API client."""

from __future__ import annotations

import asyncio
import json
import logging
import urllib.parse
from typing import Any, Mapping, Sequence

import requests

from ...core.http_client import HttpClient, HttpRequest, HttpResponse
from ...errors import CreateFailed, UploadFailed
from ...models import ContentNode, DownloadedFile, PublishedPage
from ..base import PageAccount

_LOGGER = logging.getLogger(__name__)

TELEGRAPH_URL = "https://telegra.ph"
TELEGRAPH_API = "https://api.telegra.ph"
TELEGRAPH_UPLOAD_API = "https://telegra.ph/upload"
# Pre-uploaded image shown in place of media whose source is gone.
PLACEHOLDER_IMAGE_URL = f"{TELEGRAPH_URL}/file/8294ffae080bc4534dddd.png"


class TelegraphClient:
    """Speaks the Telegraph wire protocol on top of :class:`HttpClient`."""

    def __init__(self, http: HttpClient) -> None:
        self._http = http

    async def create_account(
        self,
        short_name: str,
        author_name: str | None = None,
        author_url: str | None = None,
    ) -> PageAccount:
        payload = {
            "short_name": short_name,
            "author_name": author_name or "",
            "author_url": author_url or "",
        }
        result = await asyncio.to_thread(self._call, "createAccount", payload)
        return PageAccount(
            access_token=str(result["access_token"]),
            short_name=str(result.get("short_name", short_name)),
            author_name=result.get("author_name") or None,
            author_url=result.get("author_url") or None,
        )

    async def upload_media(self, file: DownloadedFile, file_id: str) -> str:
        return await asyncio.to_thread(self._upload, file, file_id)

    async def create_page(
        self,
        title: str,
        content: Sequence[ContentNode],
        account: PageAccount,
        author_name: str | None = None,
        author_url: str | None = None,
    ) -> PublishedPage:
        payload = {
            "access_token": account.access_token,
            "title": title,
            "content": list(content),
            "author_name": author_name if author_name is not None else account.author_name,
            "author_url": author_url if author_url is not None else account.author_url,
            "return_content": False,
        }
        result = await asyncio.to_thread(self._call, "createPage", payload)
        return PublishedPage(
            path=str(result.get("path", "")),
            url=str(result.get("url", "")),
            title=str(result.get("title", title)),
            description=str(result.get("description", "")),
        )

    def _call(self, method: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        request = HttpRequest(url=f"{TELEGRAPH_API}/{method}", method="POST", json=dict(payload))
        try:
            response = self._http.fetch(request)
        except requests.RequestException as exc:
            raise CreateFailed(method, cause=exc) from exc
        data = self._parse(response, error_type=CreateFailed, context=method)
        if not isinstance(data, dict) or not data.get("ok"):
            error = data.get("error") if isinstance(data, dict) else None
            raise CreateFailed(error or method, details={"status": response.status})
        return dict(data.get("result") or {})

    def _upload(self, file: DownloadedFile, file_id: str) -> str:
        content_type = (file.content_type or "application/octet-stream").split(";", 1)[0]
        request = HttpRequest(
            url=TELEGRAPH_UPLOAD_API,
            method="POST",
            files={"file": (file_id, file.content, content_type)},
        )
        try:
            response = self._http.fetch(request)
        except requests.RequestException as exc:
            raise UploadFailed(file.url, cause=exc) from exc
        data = self._parse(response, error_type=UploadFailed, context=file.url)
        if isinstance(data, dict) or not data:
            error = data.get("error") if isinstance(data, dict) else None
            raise UploadFailed(file.url, details={"error": error, "status": response.status})
        src = data[0].get("src")
        if not src:
            raise UploadFailed(file.url, details={"response": data})
        uploaded = urllib.parse.urljoin(TELEGRAPH_URL, src)
        _LOGGER.debug("Uploaded %s to %s", file.url, uploaded)
        return uploaded

    def _parse(
        self,
        response: HttpResponse,
        *,
        error_type: type[CreateFailed] | type[UploadFailed],
        context: str,
    ) -> Any:
        try:
            return response.json()
        except json.JSONDecodeError as exc:
            raise error_type(
                context,
                cause=exc,
                details={"status": response.status, "response": response.text[:200]},
            ) from exc


__all__ = ["PLACEHOLDER_IMAGE_URL", "TELEGRAPH_URL", "TelegraphClient"]
