# File: tests/conftest.py
from __future__ import annotations

import asyncio
import json
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import pytest
from playwright.async_api import Error as PlaywrightError

from source_scout.browser.models import CapturedRequest, CapturedResponse, ExchangeRecord
from source_scout.browser.session import BrowserSessionManager
from source_scout.config import NavigationRequest


def pytest_configure(config):
    """Register custom markers so that `--strict-markers` does not fail."""
    config.addinivalue_line(
        "markers",
        "slow: marks tests as slow (deselect with '-m \"not slow\"')",
    )


# --------------------------------------------------------------------------- #
#                     Fakes mimicking the Playwright async API                #
# --------------------------------------------------------------------------- #


class FakeRequest:
    def __init__(
        self,
        url: str,
        method: str = "GET",
        resource_type: str = "xhr",
        headers: Optional[Dict[str, str]] = None,
        post_data: Optional[str] = None,
    ) -> None:
        self.url = url
        self.method = method
        self.resource_type = resource_type
        self.headers = headers or {"accept": "*/*"}
        self.post_data = post_data


class FakeResponse:
    def __init__(
        self,
        request: FakeRequest,
        body: Union[bytes, str, Exception, None] = b"",
        content_type: str = "application/json",
        status: int = 200,
        url: Optional[str] = None,
    ) -> None:
        self.request = request
        self.url = url or request.url
        self.status = status
        self.status_text = "OK" if status == 200 else ""
        self.headers = {"content-type": content_type} if content_type else {}
        self._body = body.encode("utf-8") if isinstance(body, str) else body

    async def body(self) -> bytes:
        if isinstance(self._body, Exception):
            raise self._body
        if self._body is None:
            raise PlaywrightError("Response body is unavailable for redirect responses")
        return self._body


class FakeConsoleMessage:
    def __init__(self, type_: str, text: str) -> None:
        self.type = type_
        self.text = text


NetworkEvent = Tuple[FakeRequest, Optional[FakeResponse]]


class FakePage:
    """Page whose ``goto`` replays scripted network events."""

    def __init__(
        self,
        html: str = "<html><head><title>Fake</title></head><body></body></html>",
        title: str = "Fake",
        network: Optional[List[NetworkEvent]] = None,
        goto: Optional[Callable[..., Any]] = None,
        load_state: Optional[Callable[..., Any]] = None,
        selector: Optional[Callable[..., Any]] = None,
    ) -> None:
        self.html = html
        self._title = title
        self.network = network or []
        self._goto = goto
        self._load_state = load_state
        self._selector = selector
        self.url = "about:blank"
        self.handlers: Dict[str, List[Callable[..., Any]]] = {}
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.closed = False

    def on(self, event: str, handler: Callable[..., Any]) -> None:
        self.handlers.setdefault(event, []).append(handler)

    def emit(self, event: str, payload: Any) -> None:
        for handler in self.handlers.get(event, []):
            handler(payload)

    async def goto(self, url: str, **kwargs: Any) -> Any:
        self.calls.append(("goto", kwargs))
        self.url = url
        for request, response in self.network:
            self.emit("request", request)
            if response is not None:
                self.emit("response", response)
        await asyncio.sleep(0)
        if self._goto is not None:
            return self._goto(url, **kwargs)
        return object()

    async def wait_for_load_state(self, state: str, **kwargs: Any) -> None:
        self.calls.append(("wait_for_load_state", {"state": state, **kwargs}))
        if self._load_state is not None:
            self._load_state(state, **kwargs)

    async def wait_for_selector(self, selector: str, **kwargs: Any) -> None:
        self.calls.append(("wait_for_selector", {"selector": selector, **kwargs}))
        if self._selector is not None:
            self._selector(selector, **kwargs)

    async def wait_for_timeout(self, ms: int) -> None:
        self.calls.append(("wait_for_timeout", {"ms": ms}))

    async def content(self) -> str:
        return self.html

    async def title(self) -> str:
        return self._title

    async def close(self) -> None:
        self.closed = True


class FakeContext:
    def __init__(self, page: FakePage, cookies: Optional[List[Dict[str, Any]]] = None) -> None:
        self.page = page
        self._cookies = cookies or []
        self.closed = False

    async def new_page(self) -> FakePage:
        return self.page

    async def cookies(self) -> List[Dict[str, Any]]:
        return self._cookies

    async def close(self) -> None:
        self.closed = True


class FakeBrowser:
    def __init__(self, page_factory: Optional[Callable[[], FakePage]] = None, cookies=None) -> None:
        self.page_factory = page_factory or FakePage
        self.cookies = cookies
        self.contexts: List[FakeContext] = []
        self.context_kwargs: List[Dict[str, Any]] = []
        self.connected = True
        self.closed = False

    async def new_context(self, **kwargs: Any) -> FakeContext:
        self.context_kwargs.append(kwargs)
        context = FakeContext(self.page_factory(), cookies=self.cookies)
        self.contexts.append(context)
        return context

    def is_connected(self) -> bool:
        return self.connected

    async def close(self) -> None:
        self.closed = True
        self.connected = False


class CountingLauncher:
    """Launcher returning FakeBrowser instances and counting launches."""

    def __init__(self, browser_factory: Callable[[], FakeBrowser] = FakeBrowser, delay: float = 0.0) -> None:
        self.browser_factory = browser_factory
        self.delay = delay
        self.launches = 0
        self.browsers: List[FakeBrowser] = []

    async def __call__(self) -> FakeBrowser:
        self.launches += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        browser = self.browser_factory()
        self.browsers.append(browser)
        return browser


# --------------------------------------------------------------------------- #
#                                  Fixtures                                   #
# --------------------------------------------------------------------------- #


@pytest.fixture()
def launcher() -> CountingLauncher:
    return CountingLauncher()


@pytest.fixture()
def sessions(launcher: CountingLauncher) -> BrowserSessionManager:
    return BrowserSessionManager(launcher=launcher)


@pytest.fixture()
def nav_request() -> NavigationRequest:
    return NavigationRequest(url="https://shop.example.com/", timeout=20_000, network_idle_timeout=5_000)


# --------------------------------------------------------------------------- #
#                         Builders for analysis tests                          #
# --------------------------------------------------------------------------- #


WIDGETS = {
    "items": [
        {"id": 1, "name": "Widget", "price": 9.5, "tags": ["a", "b"]},
        {"id": 2, "name": "Gadget", "price": 12, "tags": []},
    ],
    "total": 2,
}


def make_exchange(
    url: str,
    body: Any = WIDGETS,
    content_type: str = "application/json",
    method: str = "GET",
    resource_type: str = "xhr",
    post_data: Optional[str] = None,
) -> ExchangeRecord:
    """ExchangeRecord with a response; non-str bodies are JSON-encoded."""
    text = body if isinstance(body, str) or body is None else json.dumps(body)
    request = CapturedRequest(
        url=url,
        method=method,
        headers={"accept": "application/json"},
        resource_type=resource_type,
        timestamp=0.0,
        post_data=post_data,
    )
    response = CapturedResponse(
        url=url,
        status=200,
        status_text="OK",
        headers={"content-type": content_type},
        resource_type=resource_type,
        timestamp=0.0,
        content_type=content_type,
        body=text,
        size=len(text) if text is not None else None,
    )
    return ExchangeRecord(request=request, response=response)
