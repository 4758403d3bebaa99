"""Headless browser rendering for pages that need JavaScript."""

from __future__ import annotations

import logging

from ..errors import CannotAccess, ConfigError

_LOGGER = logging.getLogger(__name__)


async def render_html(url: str, *, user_agent: str | None = None, timeout: float = 30.0) -> str:
    """Load ``url`` in headless Chromium and return the rendered markup."""
    try:
        from playwright.async_api import Error as PlaywrightError, async_playwright
    except ModuleNotFoundError as exc:  # pragma: no cover - Playwright optional in tests
        raise ConfigError("Playwright is required for browser transport", cause=exc) from exc

    timeout_ms = int(timeout * 1000)
    async with async_playwright() as p:
        browser = await p.chromium.launch(
            headless=True,
            chromium_sandbox=False,
            args=["--disable-dev-shm-usage"],
        )
        try:
            context = await browser.new_context(user_agent=user_agent) if user_agent else await browser.new_context()
            page = await context.new_page()
            try:
                response = await page.goto(url, wait_until="networkidle", timeout=timeout_ms)
            except PlaywrightError as exc:
                raise CannotAccess(url, cause=exc) from exc
            if response is not None and response.status >= 400:
                raise CannotAccess(url, details={"status": response.status})
            html = await page.content()
            _LOGGER.debug("Rendered %s in browser (%d chars)", url, len(html))
            return html
        finally:
            await browser.close()


__all__ = ["render_html"]
