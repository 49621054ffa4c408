"""
Shared Chromium browser management.

A single Playwright browser process is launched lazily on first use and
reused by every conversion, avoiding the cost of starting Chromium per
request. If the process dies it is relaunched on the next acquire().
"""

import asyncio
import logging
from typing import Optional, Sequence

from playwright.async_api import Browser, Playwright, async_playwright

logger = logging.getLogger(__name__)

# The server may run unprivileged (containers), where the Chromium sandbox fails
DEFAULT_LAUNCH_ARGS = ("--no-sandbox", "--disable-setuid-sandbox")


class BrowserSessionManager:
    """
    Owns one lazily-created, health-checked headless browser.

    Renderers receive the manager explicitly and call acquire() for a
    connected browser. Launching is serialized with an asyncio.Lock so
    concurrent first requests never start two Chromium processes.
    """

    def __init__(
        self,
        headless: bool = True,
        launch_args: Optional[Sequence[str]] = None,
    ):
        """
        Initialize browser session manager.

        Args:
            headless: Launch Chromium without a window
            launch_args: Chromium command-line flags (defaults to sandbox disabled)
        """
        self.headless = headless
        self.launch_args = list(DEFAULT_LAUNCH_ARGS if launch_args is None else launch_args)
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._lock = asyncio.Lock()
        self.launch_count = 0

    @property
    def is_ready(self) -> bool:
        """True when a connected browser is currently held."""
        return self._browser is not None and self._browser.is_connected()

    async def acquire(self) -> Browser:
        """
        Return a live, connected browser, launching one if needed.

        Raises:
            Exception: Whatever Playwright raises when Chromium cannot start.
                Nothing is stored in that case.
        """
        browser = self._browser
        if browser is not None and browser.is_connected():
            return browser

        async with self._lock:
            # Another caller may have launched while we waited for the lock
            if self._browser is not None and self._browser.is_connected():
                return self._browser

            if self._browser is not None:
                logger.warning("Shared browser disconnected - relaunching Chromium")
                self._browser = None

            self._browser = await self._launch()
            return self._browser

    async def _launch(self) -> Browser:
        started_driver = False
        if self._playwright is None:
            self._playwright = await async_playwright().start()
            started_driver = True

        try:
            logger.info(f"Launching Chromium (headless={self.headless}, args={self.launch_args})")
            browser = await self._playwright.chromium.launch(
                headless=self.headless,
                args=self.launch_args,
            )
        except Exception:
            if started_driver:
                await self._stop_driver()
            raise

        self.launch_count += 1
        logger.info(f"Chromium launched (launch #{self.launch_count})")
        return browser

    async def _stop_driver(self) -> None:
        playwright, self._playwright = self._playwright, None
        if playwright is not None:
            await playwright.stop()

    async def close(self) -> None:
        """Close the browser and stop the Playwright driver (shutdown only)."""
        async with self._lock:
            browser, self._browser = self._browser, None
            if browser is not None:
                try:
                    await browser.close()
                except Exception as e:
                    logger.warning(f"Error closing browser: {e}")
            await self._stop_driver()
