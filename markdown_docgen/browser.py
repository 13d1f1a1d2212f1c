#!/usr/bin/env python3
"""
Headless Chromium lifecycle shared by diagram rendering and PDF printing.

A ``BrowserSession`` owns at most one browser process. It is created by
whoever runs the pipeline and handed to the components that need a page;
there is no module-level browser.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional, Sequence

from playwright.async_api import Browser, Page, Playwright, async_playwright

from .log import ConsoleLogger, get_logger

DEFAULT_BROWSER_ARGS = (
    '--disable-dev-shm-usage',  # Use /tmp instead of /dev/shm (prevents OOM crashes)
    '--disable-gpu',            # No GPU in headless mode
    '--no-sandbox',             # Required in some environments
)

# Error fragments that mean the browser process itself went away
CRASH_KEYWORDS = (
    "Connection closed",
    "Browser has been closed",
    "Target closed",
    "crashed",
    "Protocol error",
)


def is_browser_crash(error: BaseException) -> bool:
    message = str(error)
    return any(keyword in message for keyword in CRASH_KEYWORDS)


class BrowserSession:
    """Explicit handle over one lazily launched headless Chromium."""

    def __init__(self, log: Optional[ConsoleLogger] = None, headless: bool = True,
                 args: Sequence[str] = DEFAULT_BROWSER_ARGS):
        self.log = log or get_logger()
        self.headless = headless
        self.args: List[str] = list(args)
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    async def acquire(self) -> Browser:
        """Return the running browser, launching one if none is alive.

        Concurrent callers wait on the same launch and share the process.
        """
        async with self._lock:
            if self._browser is not None and self._browser.is_connected():
                return self._browser

            if self._browser is not None:
                self.log.warning("Browser connection lost, relaunching...")
                await self._close_quietly()

            self.log.debug("Initializing browser instance")
            if self._playwright is None:
                self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(headless=self.headless, args=self.args)
            return self._browser

    async def release(self) -> None:
        """Close the browser and the Playwright driver.

        Close failures are logged and never raised. A later ``acquire()``
        launches a fresh browser.
        """
        async with self._lock:
            await self._close_quietly()

    async def _close_quietly(self) -> None:
        # Grab references and null them out first to prevent double-close on crash
        browser, pw = self._browser, self._playwright
        self._browser = None
        self._playwright = None

        if browser is not None:
            try:
                if browser.is_connected():
                    await browser.close()
            except Exception as e:
                self.log.warning(f"Failed to close browser: {e}")
        if pw is not None:
            try:
                await pw.stop()
            except Exception as e:
                self.log.warning(f"Failed to stop Playwright: {e}")
            else:
                self.log.debug("Browser instance closed and cleaned up")

    @asynccontextmanager
    async def page(self) -> AsyncIterator[Page]:
        """Open a short-lived page, closed again when the block exits."""
        browser = await self.acquire()
        page = await browser.new_page()
        try:
            yield page
        finally:
            try:
                if not page.is_closed():
                    await page.close()
            except Exception as e:
                self.log.debug(f"Failed to close page: {e}")

    async def __aenter__(self) -> "BrowserSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.release()
