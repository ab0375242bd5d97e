"""source_scout.browser: запуск браузера, навигация и запись сетевой активности."""

from .models import (
    CapturedRequest,
    CapturedResponse,
    ExchangeRecord,
    PageCapture,
)
from .navigator import NavigationError, NavigationTimeout, PageNavigator
from .recorder import NetworkRecorder
from .session import BrowserSessionManager, BrowserState

__all__ = [
    "BrowserSessionManager",
    "BrowserState",
    "CapturedRequest",
    "CapturedResponse",
    "ExchangeRecord",
    "NavigationError",
    "NavigationTimeout",
    "NetworkRecorder",
    "PageCapture",
    "PageNavigator",
]
