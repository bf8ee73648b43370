"""Interactive surface used by the live executor.

The runner only needs three things from a surface: a way to connect, a way
to tell whether it is usable, and a way to evaluate a script and get the
value back. ``PlaywrightSurface`` provides these on top of a Chromium page,
either launched locally or attached over CDP when ``CDP_URL`` is set.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Optional, Protocol, runtime_checkable

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

log = logging.getLogger(__name__)


class ExecutionError(Exception):
    """Raised when a script cannot be evaluated on the surface."""


@runtime_checkable
class InteractiveSurface(Protocol):
    async def connect(self) -> bool:
        ...

    def is_available(self) -> bool:
        ...

    async def execute_script(self, script: str) -> Any:
        ...


class PlaywrightSurface:
    """Chromium page driven through Playwright."""

    def __init__(self, *, headless: bool = True, start_url: Optional[str] = None) -> None:
        self.playwright: Playwright | None = None
        self.browser: Browser | None = None
        self.context: BrowserContext | None = None
        self.page: Page | None = None
        self._headless = headless
        self._start_url = start_url

    async def connect(self) -> bool:
        """Launch or attach to a browser; returns ``False`` when that fails."""

        if self.is_available():
            return True

        try:
            self.playwright = await async_playwright().start()
            chromium = self.playwright.chromium

            cdp_endpoint = os.getenv("CDP_URL")
            if cdp_endpoint:
                try:
                    self.browser = await chromium.connect_over_cdp(cdp_endpoint)
                except Exception as exc:  # pragma: no cover - requires CDP target
                    log.warning("Failed to connect over CDP (%s), launching instead", exc)
                    self.browser = await chromium.launch(headless=self._headless)
            else:
                self.browser = await chromium.launch(headless=self._headless)

            if self.browser.contexts:
                self.context = self.browser.contexts[0]
            else:
                self.context = await self.browser.new_context()
            self.page = self.context.pages[0] if self.context.pages else await self.context.new_page()
            if self._start_url:
                await self.page.goto(self._start_url)
            return True
        except Exception as exc:
            log.warning("Interactive surface unavailable: %s", exc)
            await self.close()
            return False

    def is_available(self) -> bool:
        return self.page is not None and not self.page.is_closed()

    async def execute_script(self, script: str) -> Any:
        if not self.is_available():
            raise ExecutionError("Interactive surface is not connected")
        return await self.page.evaluate(script)

    async def close(self) -> None:
        """Close all Playwright objects."""

        try:
            if self.context:
                await self.context.close()
            if self.browser:
                await self.browser.close()
            if self.playwright:
                await self.playwright.stop()
        finally:
            self.playwright = None
            self.browser = None
            self.context = None
            self.page = None
