# File: source_scout/engine.py
"""source_scout.engine: фасад над браузером и анализатором для CLI и HTTP-сервиса."""

from __future__ import annotations

import asyncio
import signal
import time
from typing import Awaitable, Callable, Optional, TypeVar

from source_scout.aggregator import AnalyzeReport, build_report
from source_scout.analysis.analyzer import analyze
from source_scout.browser.models import PageCapture
from source_scout.browser.navigator import PageNavigator
from source_scout.browser.session import BrowserSessionManager, Launcher
from source_scout.config import NavigationRequest, ServiceConfig, load_config
from source_scout.logger import logger

__all__ = ["Engine", "run_fetch", "run_analyze", "run_with_shutdown"]

T = TypeVar("T")


class Engine:
    """Фасад для CLI, сервера и тестов: один браузер, много визитов."""

    @staticmethod
    def load_config(path: Optional[str]) -> ServiceConfig:
        """Загружает конфиг из YAML/JSON или использует значения по умолчанию."""
        return load_config(path)

    def __init__(self, config: ServiceConfig, launcher: Optional[Launcher] = None) -> None:
        self.config = config
        self.sessions = BrowserSessionManager.from_config(config, launcher=launcher)
        self.navigator = PageNavigator(self.sessions, settle_timeout=config.settle_timeout)

    async def start(self) -> None:
        """Заранее запускает браузер (иначе он стартует при первом визите)."""
        await self.sessions.get_browser()

    async def fetch(self, request: NavigationRequest) -> PageCapture:
        logger.info("Fetching: %s", request.url)
        capture = await self.navigator.visit(request)
        logger.info("Completed: %s in %d ms", request.url, capture.load_time_ms)
        return capture

    async def analyze(self, request: NavigationRequest) -> AnalyzeReport:
        """Визит в режиме networkidle и классификация источников данных."""
        start = time.monotonic()
        if request.wait_until != "networkidle":
            request = request.model_copy(update={"wait_until": "networkidle"})
        logger.info("Analyzing: %s", request.url)
        capture = await self.navigator.visit(request)
        analysis = analyze(capture.html, capture.exchanges, capture.title)
        report = build_report(capture, analysis, load_time_ms=int((time.monotonic() - start) * 1000))
        logger.info("Analyzed: %s - %s (%s)", request.url, report.primary_source, report.confidence)
        return report

    async def close(self) -> None:
        await self.sessions.close()

    async def __aenter__(self) -> Engine:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


async def run_with_shutdown(coro: Awaitable[T]) -> T:
    """Run *coro* so that SIGINT/SIGTERM cancel it instead of killing the process."""
    task = asyncio.ensure_future(coro)
    loop = asyncio.get_running_loop()
    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, task.cancel)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            # no signal support on this loop/platform
            pass
    try:
        return await task
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)


async def _run(config: ServiceConfig, action: Callable[[Engine], Awaitable[T]]) -> T:
    async with Engine(config) as engine:
        return await run_with_shutdown(action(engine))


async def run_fetch(config: ServiceConfig, request: NavigationRequest) -> PageCapture:
    """Один визит с гарантированным закрытием браузера."""
    return await _run(config, lambda engine: engine.fetch(request))


async def run_analyze(config: ServiceConfig, request: NavigationRequest) -> AnalyzeReport:
    """Один анализ с гарантированным закрытием браузера."""
    return await _run(config, lambda engine: engine.analyze(request))
