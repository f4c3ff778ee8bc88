"""Playwright-backed renderer.

One headless Chromium browser is launched per run. Every session is a fresh
browser context with a single page, so cookies and storage never leak from
one target attempt into the next. If the browser crashes between sessions it
is relaunched on the next ``new_session`` call.

Playwright errors are translated at this boundary:

- timeout while waiting for a selector → ``SelectorTimeoutError``
- timeout or failure while navigating → ``NavigationError``
- any other Playwright failure → ``NavigationError``
"""

from __future__ import annotations

import logging
from typing import Any

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from stat_ingest.errors import NavigationError, SelectorTimeoutError

logger = logging.getLogger(__name__)

# Chromium flags for containerized / headless operation
CHROMIUM_ARGS: list[str] = [
    "--no-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
]


class PlaywrightSession:
    """A browser context + page pair used for one target attempt."""

    def __init__(
        self,
        context: Any,
        page: Any,
        *,
        navigation_timeout_ms: int,
        selector_timeout_ms: int,
        wait_until: str,
    ) -> None:
        self._context = context
        self._page = page
        self._navigation_timeout_ms = navigation_timeout_ms
        self._selector_timeout_ms = selector_timeout_ms
        self._wait_until = wait_until

    async def navigate(self, url: str) -> None:
        try:
            await self._page.goto(
                url,
                wait_until=self._wait_until,
                timeout=self._navigation_timeout_ms,
            )
        except PlaywrightTimeoutError as exc:
            raise NavigationError(
                f"Navigation to {url} timed out after {self._navigation_timeout_ms}ms",
                url=url,
            ) from exc
        except PlaywrightError as exc:
            raise NavigationError(f"Navigation to {url} failed: {exc}", url=url) from exc

    async def wait_for(self, selector: str) -> None:
        try:
            await self._page.wait_for_selector(
                selector, timeout=self._selector_timeout_ms
            )
        except PlaywrightTimeoutError as exc:
            raise SelectorTimeoutError(
                f"Selector {selector!r} not found within {self._selector_timeout_ms}ms",
                selector=selector,
            ) from exc
        except PlaywrightError as exc:
            raise NavigationError(
                f"Page failed while waiting for {selector!r}: {exc}"
            ) from exc

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        try:
            return await self._page.evaluate(script, arg)
        except PlaywrightError as exc:
            raise NavigationError(f"In-page evaluation failed: {exc}") from exc

    async def close(self) -> None:
        """Close the page's browser context (and with it the page)."""
        try:
            await self._context.close()
        except PlaywrightError:
            logger.debug("Error closing browser context (may already be closed)", exc_info=True)


class PlaywrightRenderer:
    """Launches Chromium and hands out isolated page sessions.

    Lifecycle
    ---------
    1. ``start()``: start Playwright and launch the browser.
    2. ``new_session()``: open a fresh context + page.
    3. ``stop()``: close the browser and the Playwright process.

    Also usable as ``async with PlaywrightRenderer(...) as renderer:``.
    """

    def __init__(
        self,
        *,
        headless: bool = True,
        navigation_timeout_ms: int = 30_000,
        selector_timeout_ms: int = 30_000,
        wait_until: str = "networkidle",
    ) -> None:
        self._headless = headless
        self._navigation_timeout_ms = navigation_timeout_ms
        self._selector_timeout_ms = selector_timeout_ms
        self._wait_until = wait_until
        self._playwright: Any = None
        self._browser: Any = None

    async def __aenter__(self) -> "PlaywrightRenderer":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    async def start(self) -> None:
        self._playwright = await async_playwright().start()
        self._browser = await self._launch()
        logger.info(
            "Renderer started: headless=%s, wait_until=%s",
            self._headless,
            self._wait_until,
        )

    async def stop(self) -> None:
        if self._browser is not None:
            try:
                await self._browser.close()
            except PlaywrightError:
                logger.debug("Error closing browser (may already be closed)", exc_info=True)
            self._browser = None

        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

        logger.info("Renderer stopped")

    async def new_session(self) -> PlaywrightSession:
        if self._playwright is None:
            raise NavigationError("Renderer has not been started")

        if self._browser is None or not self._browser.is_connected():
            logger.warning("Browser disconnected, relaunching")
            self._browser = await self._launch()

        try:
            context = await self._browser.new_context()
            page = await context.new_page()
        except PlaywrightError as exc:
            raise NavigationError(f"Could not open a browser page: {exc}") from exc

        return PlaywrightSession(
            context,
            page,
            navigation_timeout_ms=self._navigation_timeout_ms,
            selector_timeout_ms=self._selector_timeout_ms,
            wait_until=self._wait_until,
        )

    async def _launch(self) -> Any:
        try:
            return await self._playwright.chromium.launch(
                headless=self._headless,
                args=CHROMIUM_ARGS,
            )
        except PlaywrightError as exc:
            raise NavigationError(f"Could not launch Chromium: {exc}") from exc
