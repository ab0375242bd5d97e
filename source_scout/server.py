# File: source_scout/server.py
"""source_scout.server: HTTP-сервис (aiohttp) с эндпоинтами /health, /fetch, /analyze.

Request bodies and query strings accept camelCase parameter names
(``waitUntil``, ``networkIdleTimeout``, ...) as well as snake_case.
When ``api_key`` is configured every route except ``/health`` requires either
``Authorization: Bearer <key>`` or ``x-api-key: <key>``.
"""
from __future__ import annotations

import asyncio
import hmac
import json
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

from aiohttp import web
from pydantic import ValidationError

from source_scout.browser.session import Launcher
from source_scout.config import NavigationRequest, ServiceConfig
from source_scout.engine import Engine
from source_scout.logger import logger

ENGINE_KEY = web.AppKey("engine", Engine)
CONFIG_KEY = web.AppKey("config", ServiceConfig)
_WARMUP_KEY = web.AppKey("warmup", asyncio.Task)

_PUBLIC_PATHS = frozenset({"/health"})
_QUERY_INT_FIELDS = ("timeout", "networkIdleTimeout", "additionalWaitMs")

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def _error(status: int, error: str, details: Optional[str] = None) -> web.Response:
    payload: Dict[str, Any] = {"success": False, "error": error}
    if details is not None:
        payload["details"] = details
    return web.json_response(payload, status=status)


def _validation_details(exc: ValidationError) -> str:
    return ", ".join(
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
    )


def _provided_key(request: web.Request) -> Optional[str]:
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        return auth[len("Bearer ") :]
    return request.headers.get("x-api-key")


def _key_matches(provided: Optional[str], expected: str) -> bool:
    if provided is None:
        return False
    # constant-time comparison
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


@web.middleware
async def api_key_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    api_key = request.app[CONFIG_KEY].api_key
    if api_key and request.path not in _PUBLIC_PATHS and not _key_matches(_provided_key(request), api_key):
        return _error(401, "Unauthorized", "Invalid or missing API key")
    return await handler(request)


async def _body_params(request: web.Request) -> Dict[str, Any]:
    if not request.can_read_body:
        return {}
    try:
        data = await request.json()
    except json.JSONDecodeError as exc:
        raise web.HTTPBadRequest(
            text=json.dumps({"success": False, "error": "Invalid request", "details": str(exc)}),
            content_type="application/json",
        ) from exc
    return data if isinstance(data, dict) else {}


def _query_params(request: web.Request) -> Dict[str, Any]:
    params: Dict[str, Any] = {k: v for k, v in request.query.items() if v != ""}
    for name in _QUERY_INT_FIELDS:
        # "abc" stays a string and fails validation with a clear message
        if name in params and params[name].lstrip("-").isdigit():
            params[name] = int(params[name])
    return params


async def health(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()})


async def _run_fetch(request: web.Request, params: Dict[str, Any]) -> web.Response:
    try:
        nav = NavigationRequest.model_validate(params)
    except ValidationError as exc:
        return _error(400, "Invalid request", _validation_details(exc))
    try:
        capture = await request.app[ENGINE_KEY].fetch(nav)
    except Exception as exc:
        logger.error("Fetch error for %s: %s", nav.url, exc)
        return _error(500, "Failed to fetch page", str(exc))
    return web.json_response({"success": True, **capture.to_dict()})


async def _run_analyze(request: web.Request, params: Dict[str, Any]) -> web.Response:
    params = {k: v for k, v in params.items() if k not in ("waitUntil", "wait_until")}
    try:
        nav = NavigationRequest.model_validate(params)
    except ValidationError as exc:
        return _error(400, "Invalid request", _validation_details(exc))
    try:
        report = await request.app[ENGINE_KEY].analyze(nav)
    except Exception as exc:
        logger.error("Analyze error for %s: %s", nav.url, exc)
        return _error(500, "Failed to analyze page", str(exc))
    return web.json_response({"success": True, **report.to_dict()})


async def fetch_post(request: web.Request) -> web.Response:
    return await _run_fetch(request, await _body_params(request))


async def fetch_get(request: web.Request) -> web.Response:
    if not request.query.get("url"):
        return _error(400, "Missing required parameter: url")
    return await _run_fetch(request, _query_params(request))


async def analyze_post(request: web.Request) -> web.Response:
    return await _run_analyze(request, await _body_params(request))


async def analyze_get(request: web.Request) -> web.Response:
    if not request.query.get("url"):
        return _error(400, "Missing required parameter: url")
    return await _run_analyze(request, _query_params(request))


async def _warm_up(app: web.Application) -> None:
    async def _launch() -> None:
        try:
            await app[ENGINE_KEY].start()
        except Exception as exc:
            # the next visit retries the launch
            logger.error("Failed to initialize browser: %s", exc)

    app[_WARMUP_KEY] = asyncio.ensure_future(_launch())


async def _shutdown(app: web.Application) -> None:
    warmup = app.get(_WARMUP_KEY)
    if warmup is not None and not warmup.done():
        warmup.cancel()
    await app[ENGINE_KEY].close()


def create_app(
    config: ServiceConfig,
    *,
    engine: Optional[Engine] = None,
    launcher: Optional[Launcher] = None,
    warm_up: bool = True,
) -> web.Application:
    """Собирает aiohttp-приложение. Браузер закрывается в on_cleanup."""
    app = web.Application(middlewares=[api_key_middleware], client_max_size=10 * 1024 * 1024)
    app[CONFIG_KEY] = config
    app[ENGINE_KEY] = engine or Engine(config, launcher=launcher)
    app.router.add_get("/health", health)
    app.router.add_post("/fetch", fetch_post)
    app.router.add_get("/fetch", fetch_get)
    app.router.add_post("/analyze", analyze_post)
    app.router.add_get("/analyze", analyze_get)
    if warm_up:
        app.on_startup.append(_warm_up)
    app.on_cleanup.append(_shutdown)
    return app


def serve(config: ServiceConfig, host: Optional[str] = None, port: Optional[int] = None) -> None:
    """Запускает сервис; SIGINT/SIGTERM закрывают браузер через on_cleanup."""
    host = host or config.host
    port = port or config.port
    logger.info("SourceScout API running on %s:%d", host, port)
    logger.info("API key auth: %s", "enabled" if config.api_key else "disabled")
    web.run_app(create_app(config), host=host, port=port, print=None)


__all__ = ["create_app", "serve", "api_key_middleware", "ENGINE_KEY", "CONFIG_KEY"]
