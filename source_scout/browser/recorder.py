# source_scout/browser/recorder.py
"""
NetworkRecorder: pairs request/response events of one visit into ExchangeRecords.

The recorder is owned by a single visit, so its tables need no locking. Page
events may still fire after navigation has moved on or while the page is
closing; body reads that fail at that point are recorded as an absent body.
"""
from __future__ import annotations

import asyncio
import time
from typing import Any, Dict, List, Optional, Set, Tuple

from playwright.async_api import Error as PlaywrightError

from source_scout.browser.models import (
    CapturedRequest,
    CapturedResponse,
    ConsoleRecord,
    DocumentCapture,
    ExchangeRecord,
    ScriptCapture,
    StylesheetCapture,
)
from source_scout.logger import logger

ExchangeKey = Tuple[str, str]

DATA_RESOURCE_TYPES = frozenset({"xhr", "fetch"})
_TEXT_MARKERS = ("json", "text", "javascript", "xml", "html")


def is_text_content(content_type: str) -> bool:
    """True when a body with this content type should be decoded to text."""
    ct = content_type.lower()
    return any(marker in ct for marker in _TEXT_MARKERS)


def _post_data(request: Any) -> Optional[str]:
    try:
        return request.post_data or None
    except UnicodeDecodeError:
        # binary payloads have no text form
        return None


def _capture_request(request: Any) -> CapturedRequest:
    return CapturedRequest(
        url=request.url,
        method=request.method,
        headers=dict(request.headers),
        resource_type=request.resource_type,
        timestamp=time.time(),
        post_data=_post_data(request),
    )


async def read_body(response: Any) -> Optional[bytes]:
    """Best-effort body read; None when the body is gone (redirect, stream, closed page)."""
    try:
        return await response.body()
    except PlaywrightError as exc:
        logger.debug("Body unavailable for %s: %s", response.url, exc)
        return None


class NetworkRecorder:
    """Collects the network activity of a single page visit."""

    def __init__(self, page_url: str) -> None:
        self.page_url = page_url
        self.exchanges: Dict[ExchangeKey, ExchangeRecord] = {}
        self.scripts: List[ScriptCapture] = []
        self.stylesheets: List[StylesheetCapture] = []
        self.documents: List[DocumentCapture] = []
        self.responses: List[CapturedResponse] = []
        self.console: List[ConsoleRecord] = []
        self.errors: List[str] = []
        self._pending: Set[asyncio.Task[None]] = set()
        self._stopped = False

    # -- page wiring --------------------------------------------------------

    def attach(self, page: Any) -> None:
        """Subscribe to page events. Must happen before navigation starts."""
        page.on("console", self.record_console)
        page.on("pageerror", self.record_page_error)
        page.on("request", self.record_request)
        page.on("response", self.on_response)

    def on_response(self, response: Any) -> None:
        if self._stopped:
            return
        task = asyncio.ensure_future(self.record_response(response))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def settle(self, timeout: float) -> None:
        """Wait up to *timeout* seconds for in-flight body reads, then stop recording.

        Reads still running after the timeout are cancelled, so the tables do
        not change once this returns.
        """
        if self._pending:
            done, pending = await asyncio.wait(set(self._pending), timeout=timeout)
            for task in done:
                if not task.cancelled() and task.exception() is not None:
                    logger.debug("Response capture failed: %s", task.exception())
            if pending:
                logger.debug("%d response bodies still pending after %.1f s, dropping", len(pending), timeout)
        await self.stop()

    async def stop(self) -> None:
        """Ignore further page events and cancel unfinished body reads."""
        self._stopped = True
        pending = list(self._pending)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    # -- event handlers -----------------------------------------------------

    def record_console(self, message: Any) -> None:
        if self._stopped:
            return
        self.console.append(ConsoleRecord(type=message.type, text=message.text, timestamp=time.time()))

    def record_page_error(self, error: Any) -> None:
        if self._stopped:
            return
        self.errors.append(str(error))

    def record_request(self, request: Any) -> None:
        if self._stopped or request.resource_type not in DATA_RESOURCE_TYPES:
            return
        captured = _capture_request(request)
        self.exchanges[(captured.url, captured.method)] = ExchangeRecord(request=captured)

    async def record_response(self, response: Any) -> None:
        request = response.request
        resource_type = request.resource_type
        url = response.url
        headers = dict(response.headers)
        content_type = headers.get("content-type", "")

        raw = await read_body(response)
        if self._stopped:
            return
        size = len(raw) if raw is not None else None
        body = raw.decode("utf-8", errors="replace") if raw is not None and is_text_content(content_type) else None

        captured = CapturedResponse(
            url=url,
            status=response.status,
            status_text=response.status_text,
            headers=headers,
            resource_type=resource_type,
            timestamp=time.time(),
            content_type=content_type,
            body=body,
            size=size,
        )
        self.responses.append(captured)

        if resource_type in DATA_RESOURCE_TYPES:
            key = (url, request.method)
            record = self.exchanges.get(key)
            if record is not None:
                record.response = captured
            else:
                # response without a prior request event (redirects, ordering)
                self.exchanges[key] = ExchangeRecord(request=_capture_request(request), response=captured)
        elif resource_type == "script":
            self.scripts.append(ScriptCapture(url=url, headers=headers, content=body, size=size))
        elif resource_type == "stylesheet":
            self.stylesheets.append(StylesheetCapture(url=url, content=body))
        elif resource_type == "document" and url != self.page_url:
            self.documents.append(DocumentCapture(url=url, content=body, content_type=content_type))

    def exchange_list(self) -> List[ExchangeRecord]:
        return list(self.exchanges.values())


__all__ = ["NetworkRecorder", "ExchangeKey", "is_text_content", "read_body", "DATA_RESOURCE_TYPES"]
