# source_scout/browser/session.py
"""
Shared Chromium process with race-safe lazy start and per-visit isolated sessions.
"""
from __future__ import annotations

import asyncio
import enum
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Sequence, Tuple

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from source_scout.config import DEFAULT_LAUNCH_ARGS, DEFAULT_USER_AGENT
from source_scout.logger import logger

Launcher = Callable[[], Awaitable[Any]]


class BrowserState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    CLOSED = "closed"


class BrowserSessionManager:
    """Owns the one browser process shared by all visits.

    The first caller of :meth:`get_browser` starts the launch; callers arriving
    while it is in flight await the same task. A closed or disconnected
    browser is launched again on the next call.

    ``launcher`` replaces the Playwright launch (used by tests); it must return
    an object with the ``Browser`` methods the visit uses.
    """

    def __init__(
        self,
        *,
        headless: bool = True,
        launch_args: Sequence[str] = DEFAULT_LAUNCH_ARGS,
        user_agent: str = DEFAULT_USER_AGENT,
        viewport: Tuple[int, int] = (1920, 1080),
        ignore_https_errors: bool = True,
        launcher: Optional[Launcher] = None,
    ) -> None:
        self.headless = headless
        self.launch_args = list(launch_args)
        self.user_agent = user_agent
        self.viewport = viewport
        self.ignore_https_errors = ignore_https_errors
        self._launcher = launcher
        self._state = BrowserState.UNINITIALIZED
        self._init_task: Optional[asyncio.Task[Any]] = None
        self._browser: Optional[Browser] = None
        self._playwright: Optional[Playwright] = None

    @classmethod
    def from_config(cls, config: Any, launcher: Optional[Launcher] = None) -> BrowserSessionManager:
        return cls(
            headless=config.headless,
            launch_args=config.launch_args,
            user_agent=config.user_agent,
            viewport=(config.viewport_width, config.viewport_height),
            ignore_https_errors=config.ignore_https_errors,
            launcher=launcher,
        )

    @property
    def state(self) -> BrowserState:
        return self._state

    async def get_browser(self) -> Browser:
        """Return the shared browser, launching it if needed."""
        if self._state is BrowserState.READY and self._browser is not None:
            if self._browser.is_connected():
                return self._browser
            logger.warning("Browser disconnected, relaunching")

        # no await between the state check and the task creation
        if self._state is not BrowserState.INITIALIZING or self._init_task is None:
            self._state = BrowserState.INITIALIZING
            self._init_task = asyncio.ensure_future(self._start())
        return await asyncio.shield(self._init_task)

    async def _start(self) -> Browser:
        try:
            # handles left by a disconnected browser
            await self._release()
            logger.info("Launching browser...")
            browser = await (self._launcher() if self._launcher else self._launch_chromium())
        except BaseException:
            self._state = BrowserState.UNINITIALIZED
            self._init_task = None
            await self._stop_playwright()
            raise
        self._browser = browser
        self._state = BrowserState.READY
        logger.info("Browser launched successfully")
        return browser

    async def _launch_chromium(self) -> Browser:
        self._playwright = await async_playwright().start()
        return await self._playwright.chromium.launch(headless=self.headless, args=self.launch_args)

    @asynccontextmanager
    async def page_session(self) -> AsyncIterator[Tuple[BrowserContext, Page]]:
        """Open an isolated context + page; both are closed on every exit path."""
        browser = await self.get_browser()
        context = await browser.new_context(
            user_agent=self.user_agent,
            viewport={"width": self.viewport[0], "height": self.viewport[1]},
            ignore_https_errors=self.ignore_https_errors,
        )
        page: Optional[Page] = None
        try:
            page = await context.new_page()
            yield context, page
        finally:
            if page is not None:
                await _close_quietly(page, "page")
            await _close_quietly(context, "context")

    async def close(self) -> None:
        """Close the browser process; the next visit will launch a new one."""
        if self._init_task is not None and not self._init_task.done():
            try:
                await self._init_task
            except Exception as exc:
                logger.debug("Pending launch failed during close: %s", exc)
        if self._browser is not None:
            logger.info("Shutting down browser...")
        await self._release()
        self._state = BrowserState.CLOSED
        self._init_task = None

    async def _release(self) -> None:
        browser, self._browser = self._browser, None
        if browser is not None:
            try:
                await browser.close()
            except PlaywrightError as exc:
                logger.debug("Browser close failed: %s", exc)
        await self._stop_playwright()

    async def _stop_playwright(self) -> None:
        pw, self._playwright = self._playwright, None
        if pw is not None:
            await pw.stop()

    async def __aenter__(self) -> BrowserSessionManager:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


async def _close_quietly(target: Any, what: str) -> None:
    try:
        await target.close()
    except PlaywrightError as exc:
        logger.debug("Failed to close %s: %s", what, exc)


__all__ = ["BrowserSessionManager", "BrowserState", "Launcher"]
