"""HTTP client with retry support and cookie callbacks."""

from __future__ import annotations

import asyncio
import json
import logging
import random
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping

import requests

from ..errors import CannotAccess, UploadFailed
from ..models import DownloadedFile
from ..settings import HttpSettings

_LOGGER = logging.getLogger(__name__)

CookieGetter = Callable[[str], Awaitable[str | None]]
CookieSetter = Callable[[str, str], Awaitable[None]]


@dataclass(slots=True)
class HttpRequest:
    url: str
    method: str = "GET"
    headers: Mapping[str, str] | None = None
    params: Mapping[str, str] | None = None
    data: bytes | None = None
    json: Any = None
    files: Mapping[str, Any] | None = None
    cookie: str | None = None
    max_attempts: int | None = None
    backoff_factor: float | None = None
    timeout: float | None = None
    decode_text: bool = True


@dataclass(slots=True)
class HttpResponse:
    url: str
    status: int
    headers: Mapping[str, str]
    body: bytes
    text: str
    elapsed: float
    set_cookies: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def content_type(self) -> str | None:
        for key, value in self.headers.items():
            if key.lower() == "content-type":
                return value
        return None

    def json(self) -> Any:
        return json.loads(self.text)


class HttpClient:
    """Stateless HTTP client backed by a shared ``requests.Session``.

    Blocking calls are exposed as coroutines through ``asyncio.to_thread`` so
    the pipeline can fan out downloads and uploads.
    """

    def __init__(
        self,
        *,
        http_settings: HttpSettings,
        session: requests.Session | None = None,
    ) -> None:
        self._settings = http_settings
        self._session = session or requests.Session()
        self._session.headers["User-Agent"] = http_settings.user_agent

    @property
    def settings(self) -> HttpSettings:
        return self._settings

    def fetch(self, request: HttpRequest) -> HttpResponse:
        headers = dict(request.headers or {})
        if request.cookie:
            headers["Cookie"] = request.cookie
        timeout = request.timeout if request.timeout is not None else self._settings.timeout
        max_attempts = (
            request.max_attempts
            if request.max_attempts is not None
            else self._settings.max_attempts
        )
        backoff_factor = (
            request.backoff_factor
            if request.backoff_factor is not None
            else self._settings.backoff_factor
        )

        attempt = 0
        start_time = time.monotonic()
        while True:
            resp = self._session.request(
                request.method.upper(),
                request.url,
                headers=headers,
                params=request.params,
                data=request.data,
                json=request.json,
                files=request.files,
                timeout=timeout,
            )
            attempt += 1
            if resp.status_code == 429 and attempt < max_attempts:
                wait_seconds = self._compute_retry_wait(resp, attempt, backoff_factor)
                _LOGGER.warning(
                    "HTTP 429 from %s; retrying in %.1fs", request.url, wait_seconds
                )
                time.sleep(wait_seconds)
                continue
            return HttpResponse(
                url=resp.url,
                status=resp.status_code,
                headers=dict(resp.headers.items()),
                body=resp.content,
                text=resp.text if request.decode_text else "",
                elapsed=time.monotonic() - start_time,
                set_cookies=self._set_cookie_headers(resp),
            )

    async def afetch(self, request: HttpRequest) -> HttpResponse:
        return await asyncio.to_thread(self.fetch, request)

    def download(self, url: str, cookie: str | None = None) -> DownloadedFile:
        """Fetch ``url`` as bytes.

        Any non-200 answer means the source is gone and raises
        :class:`CannotAccess`; transport failures raise :class:`UploadFailed`.
        """
        try:
            response = self.fetch(HttpRequest(url=url, cookie=cookie, decode_text=False))
        except requests.RequestException as exc:
            raise UploadFailed(f"Cannot download the source file {url}", cause=exc) from exc
        if response.status != 200:
            raise CannotAccess(url, details={"status": response.status})
        return DownloadedFile(url=response.url, content=response.body, content_type=response.content_type)

    async def adownload(self, url: str, cookie: str | None = None) -> DownloadedFile:
        return await asyncio.to_thread(self.download, url, cookie)

    async def fetch_page(
        self,
        url: str,
        get_cookie: CookieGetter,
        set_cookie: CookieSetter,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> HttpResponse:
        """GET ``url`` with the stored cookie and hand back any new cookies."""
        cookie = await get_cookie(url)
        try:
            response = await self.afetch(HttpRequest(url=url, headers=headers, cookie=cookie))
        except requests.RequestException as exc:
            raise CannotAccess(url, cause=exc) from exc
        for each in response.set_cookies:
            await set_cookie(url, each)
        return response

    def _set_cookie_headers(self, resp: requests.Response) -> list[str]:
        raw_headers = getattr(resp.raw, "headers", None)
        if raw_headers is not None and hasattr(raw_headers, "getlist"):
            return list(raw_headers.getlist("Set-Cookie"))
        single = resp.headers.get("Set-Cookie")
        return [single] if single else []

    def _compute_retry_wait(
        self, resp: requests.Response, attempt: int, backoff_factor: float
    ) -> float:
        retry_after = resp.headers.get("Retry-After")
        wait_seconds = 0.0
        if retry_after:
            try:
                wait_seconds = float(retry_after)
            except (TypeError, ValueError):
                wait_seconds = 0.0
        if wait_seconds <= 0:
            wait_seconds = backoff_factor * attempt
        jitter = random.uniform(0, 0.25 * wait_seconds)
        return wait_seconds + jitter


__all__ = ["CookieGetter", "CookieSetter", "HttpClient", "HttpRequest", "HttpResponse"]
