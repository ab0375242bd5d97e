# File: tests/test_session.py
from __future__ import annotations

import asyncio

import pytest
from playwright.async_api import Error as PlaywrightError

from source_scout.browser.session import BrowserSessionManager, BrowserState
from source_scout.config import ServiceConfig
from tests.conftest import CountingLauncher, FakeBrowser


@pytest.mark.asyncio()
async def test_concurrent_callers_share_one_launch():
    launcher = CountingLauncher(delay=0.05)
    sessions = BrowserSessionManager(launcher=launcher)

    browsers = await asyncio.gather(*(sessions.get_browser() for _ in range(10)))

    assert launcher.launches == 1
    assert all(b is browsers[0] for b in browsers)
    assert sessions.state is BrowserState.READY


@pytest.mark.asyncio()
async def test_ready_browser_is_reused(sessions, launcher):
    first = await sessions.get_browser()
    second = await sessions.get_browser()
    assert first is second
    assert launcher.launches == 1


@pytest.mark.asyncio()
async def test_failed_launch_can_be_retried():
    attempts = {"n": 0}

    def flaky_browser():
        attempts["n"] += 1
        if attempts["n"] == 1:
            raise PlaywrightError("Executable doesn't exist")
        return FakeBrowser()

    launcher = CountingLauncher(browser_factory=flaky_browser)
    sessions = BrowserSessionManager(launcher=launcher)

    with pytest.raises(PlaywrightError):
        await sessions.get_browser()
    assert sessions.state is BrowserState.UNINITIALIZED

    browser = await sessions.get_browser()
    assert isinstance(browser, FakeBrowser)
    assert launcher.launches == 2


@pytest.mark.asyncio()
async def test_concurrent_callers_all_see_launch_failure():
    def broken():
        raise PlaywrightError("launch failed")

    sessions = BrowserSessionManager(launcher=CountingLauncher(browser_factory=broken, delay=0.01))
    results = await asyncio.gather(*(sessions.get_browser() for _ in range(3)), return_exceptions=True)
    assert all(isinstance(r, PlaywrightError) for r in results)
    assert sessions.state is BrowserState.UNINITIALIZED


@pytest.mark.asyncio()
async def test_disconnected_browser_is_relaunched(sessions, launcher):
    first = await sessions.get_browser()
    first.connected = False

    second = await sessions.get_browser()
    assert second is not first
    assert launcher.launches == 2
    assert first.closed


class SlowClosingBrowser(FakeBrowser):
    async def close(self) -> None:
        await asyncio.sleep(0.01)
        await super().close()


@pytest.mark.asyncio()
async def test_concurrent_callers_share_one_relaunch():
    launcher = CountingLauncher(browser_factory=SlowClosingBrowser)
    sessions = BrowserSessionManager(launcher=launcher)
    first = await sessions.get_browser()
    first.connected = False

    browsers = await asyncio.gather(*(sessions.get_browser() for _ in range(5)))

    assert launcher.launches == 2
    assert len({id(b) for b in browsers}) == 1
    assert browsers[0] is not first
    assert browsers[0].is_connected()
    assert first.closed
    assert sessions.state is BrowserState.READY


@pytest.mark.asyncio()
async def test_close_then_reopen(sessions, launcher):
    first = await sessions.get_browser()
    await sessions.close()
    assert sessions.state is BrowserState.CLOSED
    assert first.closed

    second = await sessions.get_browser()
    assert second is not first
    assert sessions.state is BrowserState.READY
    assert launcher.launches == 2


@pytest.mark.asyncio()
async def test_close_without_launch_is_harmless(sessions, launcher):
    await sessions.close()
    await sessions.close()
    assert sessions.state is BrowserState.CLOSED
    assert launcher.launches == 0


@pytest.mark.asyncio()
async def test_close_waits_for_pending_launch():
    launcher = CountingLauncher(delay=0.05)
    sessions = BrowserSessionManager(launcher=launcher)
    pending = asyncio.ensure_future(sessions.get_browser())
    await asyncio.sleep(0)

    await sessions.close()
    browser = await pending
    assert browser.closed
    assert sessions.state is BrowserState.CLOSED


@pytest.mark.asyncio()
async def test_page_session_uses_context_options(launcher):
    config = ServiceConfig(user_agent="TestAgent/1.0", viewport_width=800, viewport_height=600)
    sessions = BrowserSessionManager.from_config(config, launcher=launcher)

    async with sessions.page_session() as (context, page):
        assert page is context.page

    browser = launcher.browsers[0]
    assert browser.context_kwargs == [
        {
            "user_agent": "TestAgent/1.0",
            "viewport": {"width": 800, "height": 600},
            "ignore_https_errors": True,
        }
    ]
    assert context.closed and page.closed


@pytest.mark.asyncio()
async def test_page_session_closes_on_error(sessions, launcher):
    with pytest.raises(RuntimeError):
        async with sessions.page_session() as (context, page):
            raise RuntimeError("boom")
    assert page.closed
    assert context.closed
    # browser stays up for the next visit
    assert not launcher.browsers[0].closed


@pytest.mark.asyncio()
async def test_page_sessions_are_isolated(sessions, launcher):
    async with sessions.page_session() as (first_ctx, _):
        async with sessions.page_session() as (second_ctx, _):
            assert first_ctx is not second_ctx
    assert launcher.launches == 1
    assert len(launcher.browsers[0].contexts) == 2


@pytest.mark.asyncio()
async def test_async_context_manager_closes(launcher):
    async with BrowserSessionManager(launcher=launcher) as sessions:
        browser = await sessions.get_browser()
    assert browser.closed
    assert sessions.state is BrowserState.CLOSED
