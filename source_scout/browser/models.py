# source_scout/browser/models.py
"""
Data models for one browser visit: captured requests/responses, their pairing
and the full page capture handed back to callers.
"""
from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(slots=True)
class CapturedRequest:
    """Outgoing request as observed by the page."""

    url: str
    method: str
    headers: Dict[str, str]
    resource_type: str
    timestamp: float
    post_data: Optional[str] = None


@dataclass(slots=True)
class CapturedResponse:
    """Incoming response; ``body`` is set only for text-like content types."""

    url: str
    status: int
    status_text: str
    headers: Dict[str, str]
    resource_type: str
    timestamp: float
    content_type: str = ""
    body: Optional[str] = None
    size: Optional[int] = None


@dataclass(slots=True)
class ExchangeRecord:
    """One xhr/fetch request paired with at most one response."""

    request: CapturedRequest
    response: Optional[CapturedResponse] = None


@dataclass(slots=True)
class ScriptCapture:
    url: str
    headers: Dict[str, str]
    content: Optional[str] = None
    size: Optional[int] = None


@dataclass(slots=True)
class StylesheetCapture:
    url: str
    content: Optional[str] = None


@dataclass(slots=True)
class DocumentCapture:
    url: str
    content: Optional[str] = None
    content_type: str = ""


@dataclass(slots=True)
class CookieRecord:
    name: str
    value: str
    domain: str
    path: str


@dataclass(slots=True)
class ConsoleRecord:
    type: str
    text: str
    timestamp: float


@dataclass(slots=True)
class PageCapture:
    """Everything observed during one visit."""

    url: str
    final_url: str
    timestamp: str
    load_time_ms: int
    network_idle_reached: bool
    html: str
    title: str
    exchanges: List[ExchangeRecord] = field(default_factory=list)
    scripts: List[ScriptCapture] = field(default_factory=list)
    stylesheets: List[StylesheetCapture] = field(default_factory=list)
    documents: List[DocumentCapture] = field(default_factory=list)
    responses: List[CapturedResponse] = field(default_factory=list)
    cookies: List[CookieRecord] = field(default_factory=list)
    console: List[ConsoleRecord] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def json(self, *, pretty: bool = False) -> str:
        """Возвращает JSON-представление захвата страницы."""
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2 if pretty else None)


__all__ = [
    "CapturedRequest",
    "CapturedResponse",
    "ExchangeRecord",
    "ScriptCapture",
    "StylesheetCapture",
    "DocumentCapture",
    "CookieRecord",
    "ConsoleRecord",
    "PageCapture",
]
