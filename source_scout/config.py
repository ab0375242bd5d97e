# === FILE: source_scout/config.py ===
"""
Модуль для загрузки и валидации конфигурации сервиса SourceScout
и параметров одного визита (NavigationRequest).
Используется Pydantic для описания схемы и проверки данных.
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Union
from urllib.parse import urlparse

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

WaitUntil = Literal["load", "domcontentloaded", "networkidle"]

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
DEFAULT_LAUNCH_ARGS = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
)


class NavigationRequest(BaseModel):
    """Параметры одного визита. Все таймауты в миллисекундах."""
    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    url: str = Field(..., description="Адрес страницы (http/https).")
    wait_until: WaitUntil = Field("networkidle", description="Событие завершения загрузки.")
    timeout: int = Field(60_000, ge=1_000, le=360_000, description="Общий таймаут визита.")
    network_idle_timeout: int = Field(
        10_000, ge=1_000, le=360_000, description="Таймаут ожидания networkidle."
    )
    wait_for_selector: Optional[str] = Field(None, description="CSS-селектор для ожидания.")
    additional_wait_ms: int = Field(0, ge=0, le=60_000, description="Пауза после загрузки.")

    @field_validator("url")
    def _check_http_url(cls, v: str) -> str:
        parsed = urlparse(v.strip())
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("Invalid URL provided")
        return v.strip()

    @field_validator("wait_for_selector")
    def _empty_selector_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def _idle_within_total(self) -> NavigationRequest:
        if self.network_idle_timeout > self.timeout:
            raise ValueError("networkIdleTimeout must not exceed timeout")
        return self


class ServiceConfig(BaseModel):
    """Конфигурация сервиса: браузер, HTTP-сервер, аутентификация."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    host: str = Field("0.0.0.0", min_length=1, description="Адрес HTTP-сервера.")
    port: int = Field(3000, ge=1, le=65535, description="Порт HTTP-сервера.")
    api_key: Optional[str] = Field(None, description="Ключ API; None отключает проверку.")
    headless: bool = Field(True, description="Запуск Chromium без окна.")
    user_agent: str = Field(DEFAULT_USER_AGENT, min_length=1, description="Заголовок User-Agent.")
    viewport_width: int = Field(1920, ge=1)
    viewport_height: int = Field(1080, ge=1)
    ignore_https_errors: bool = Field(True, description="Игнорировать ошибки TLS-сертификатов.")
    launch_args: List[str] = Field(default_factory=lambda: list(DEFAULT_LAUNCH_ARGS))
    settle_timeout: float = Field(
        2.0, ge=0, description="Сколько секунд ждать незавершённые чтения тел ответов."
    )

    @field_validator("api_key", mode="before")
    def _blank_key_is_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


_DEFAULT_CFG = Path("configs/default.yaml")
_ENV_OVERRIDES: Dict[str, str] = {"PORT": "port", "API_KEY": "api_key"}


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Неправильный YAML в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень YAML должен быть mapping, получено {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Неправильный JSON в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень JSON должен быть mapping, получено {type(data).__name__}")
    return data


def _apply_env(data: dict[str, Any]) -> dict[str, Any]:
    merged = dict(data)
    for env_name, field_name in _ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            merged[field_name] = value
    return merged


def load_config(path: Union[str, Path, None]) -> ServiceConfig:
    """
    Читает YAML или JSON и возвращает проверенный объект ServiceConfig.
    Без пути использует configs/default.yaml, а при его отсутствии значения
    по умолчанию. Переменные окружения PORT и API_KEY имеют приоритет.
    """
    if path is None:
        if not _DEFAULT_CFG.exists():
            return ServiceConfig(**_apply_env({}))
        path_obj = _DEFAULT_CFG
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data = _read_yaml(path_obj)
    elif suffix == ".json":
        data = _read_json(path_obj)
    else:
        raise ValueError(f"Неподдерживаемый формат конфига: {suffix}")

    return ServiceConfig(**_apply_env(data))


__all__ = ["NavigationRequest", "ServiceConfig", "WaitUntil", "load_config"]
