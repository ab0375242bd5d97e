# source_scout/browser/navigator.py
"""
PageNavigator: drives one visit with the timeout/fallback policy and assembles
the PageCapture.

Timing policy
-------------
* ``networkidle``: wait for network idle up to ``network_idle_timeout``; if
  that times out, settle for DOM-ready within the remaining budget and go on
  with whatever is rendered (``network_idle_reached=False``).
* ``load`` / ``domcontentloaded``: one attempt with the full ``timeout``;
  a timeout fails the visit.
* The selector wait and the settle delay never fail a visit.
"""
from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from source_scout.browser.models import CookieRecord, PageCapture
from source_scout.browser.recorder import NetworkRecorder
from source_scout.browser.session import BrowserSessionManager
from source_scout.config import NavigationRequest
from source_scout.logger import logger

SELECTOR_TIMEOUT_CAP_MS = 30_000
# Playwright treats 0 as "no timeout"
_MIN_WAIT_MS = 1


class NavigationError(RuntimeError):
    """The page could not be loaded."""


class NavigationTimeout(NavigationError):
    """Navigation timed out in a mode without fallback."""


class PageNavigator:
    """Runs visits on browsers provided by a :class:`BrowserSessionManager`."""

    def __init__(self, sessions: BrowserSessionManager, settle_timeout: float = 2.0) -> None:
        self.sessions = sessions
        self.settle_timeout = settle_timeout

    async def visit(self, request: NavigationRequest) -> PageCapture:
        start = time.monotonic()
        recorder = NetworkRecorder(request.url)

        async with self.sessions.page_session() as (context, page):
            recorder.attach(page)
            try:
                network_idle_reached = await self._navigate(page, request)
                await self._wait_for_selector(page, request)
                if request.additional_wait_ms > 0:
                    await page.wait_for_timeout(request.additional_wait_ms)

                await recorder.settle(self.settle_timeout)
                html = await page.content()
                title = await page.title()
                final_url = page.url
                cookies = await context.cookies()
            finally:
                await recorder.stop()

        load_time_ms = int((time.monotonic() - start) * 1000)
        return PageCapture(
            url=request.url,
            final_url=final_url,
            timestamp=datetime.now(timezone.utc).isoformat(),
            load_time_ms=load_time_ms,
            network_idle_reached=network_idle_reached,
            html=html,
            title=title,
            exchanges=recorder.exchange_list(),
            scripts=list(recorder.scripts),
            stylesheets=list(recorder.stylesheets),
            documents=list(recorder.documents),
            responses=list(recorder.responses),
            cookies=[
                CookieRecord(name=c["name"], value=c["value"], domain=c["domain"], path=c["path"])
                for c in cookies
            ],
            console=list(recorder.console),
            errors=list(recorder.errors),
        )

    async def _navigate(self, page: Any, request: NavigationRequest) -> bool:
        """Navigate per the timing policy; return whether network idle was reached."""
        if request.wait_until == "networkidle":
            try:
                response = await page.goto(
                    request.url, wait_until="networkidle", timeout=request.network_idle_timeout
                )
            except PlaywrightTimeoutError:
                logger.info(
                    "Network idle timeout after %d ms, falling back to domcontentloaded",
                    request.network_idle_timeout,
                )
                await self._wait_dom_ready(page, request.timeout - request.network_idle_timeout)
                return False
            except PlaywrightError as exc:
                raise NavigationError(f"Navigation to {request.url} failed: {exc}") from exc
        else:
            try:
                response = await page.goto(
                    request.url, wait_until=request.wait_until, timeout=request.timeout
                )
            except PlaywrightTimeoutError as exc:
                raise NavigationTimeout(
                    f"Navigation to {request.url} timed out after {request.timeout} ms"
                ) from exc
            except PlaywrightError as exc:
                raise NavigationError(f"Navigation to {request.url} failed: {exc}") from exc

        if response is None:
            raise NavigationError("No response received from page")
        return True

    @staticmethod
    async def _wait_dom_ready(page: Any, remaining_ms: int) -> None:
        try:
            await page.wait_for_load_state("domcontentloaded", timeout=max(remaining_ms, _MIN_WAIT_MS))
        except PlaywrightTimeoutError:
            logger.info("DOM not ready within remaining %d ms, using current content", remaining_ms)
        except PlaywrightError as exc:
            raise NavigationError(f"Page failed while waiting for DOM: {exc}") from exc

    @staticmethod
    async def _wait_for_selector(page: Any, request: NavigationRequest) -> Optional[bool]:
        """Return None when no selector was requested, else whether it appeared."""
        if not request.wait_for_selector:
            return None
        try:
            await page.wait_for_selector(
                request.wait_for_selector,
                timeout=min(request.timeout, SELECTOR_TIMEOUT_CAP_MS),
            )
        except PlaywrightTimeoutError:
            logger.info('Selector "%s" not found within timeout', request.wait_for_selector)
            return False
        except PlaywrightError as exc:
            logger.info('Selector "%s" could not be awaited: %s', request.wait_for_selector, exc)
            return False
        return True


__all__ = ["PageNavigator", "NavigationError", "NavigationTimeout", "SELECTOR_TIMEOUT_CAP_MS"]
