"""Headless-browser rendering for pages whose listings are built by scripts.

The browser only loads the page and hands back the rendered DOM; extraction
runs through the same parsers as plain HTTP pages.
"""

from __future__ import annotations

import logging

from ..errors import FetchError

logger = logging.getLogger(__name__)


class PlaywrightRenderer:
    """Render pages with headless Chromium via Playwright.

    Use as an async context manager; every :meth:`render` call gets its own
    page so concurrent renders do not share navigation state.

    Args:
        timeout: Seconds to wait for navigation and for the target selector.
        user_agent: User-Agent for the browser context.
    """

    def __init__(self, timeout: float = 60.0, user_agent: str | None = None):
        self.timeout = timeout
        self.user_agent = user_agent
        self._playwright = None
        self._browser = None
        self._context = None

    async def __aenter__(self) -> "PlaywrightRenderer":
        from playwright.async_api import async_playwright

        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=True,
            args=["--no-sandbox", "--disable-setuid-sandbox"],
        )
        self._context = await self._browser.new_context(user_agent=self.user_agent)
        logger.info("Headless browser started")
        return self

    async def __aexit__(self, *exc) -> None:
        if self._context is not None:
            await self._context.close()
        if self._browser is not None:
            await self._browser.close()
        if self._playwright is not None:
            await self._playwright.stop()
        self._context = self._browser = self._playwright = None

    async def render(self, url: str, wait_for: str | None = None) -> str:
        """Navigate to ``url``, wait for network idle and ``wait_for``, return the DOM as HTML.

        Raises:
            FetchError: On navigation failure or selector timeout.
        """
        from playwright.async_api import Error as PlaywrightError

        if self._context is None:
            raise RuntimeError("PlaywrightRenderer used outside 'async with'")

        timeout_ms = self.timeout * 1000
        page = await self._context.new_page()
        try:
            logger.debug("Rendering %s", url)
            await page.goto(url, wait_until="networkidle", timeout=timeout_ms)
            if wait_for:
                await page.wait_for_selector(wait_for, timeout=timeout_ms)
            return await page.content()
        except PlaywrightError as e:
            raise FetchError(url, e) from e
        finally:
            await page.close()
