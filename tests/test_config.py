# File: tests/test_config.py
import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from source_scout.config import NavigationRequest, ServiceConfig, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("PORT", raising=False)
    monkeypatch.delenv("API_KEY", raising=False)


def write_file(tmp_path: Path, content: str, suffix: str) -> Path:
    path = tmp_path / f"config{suffix}"
    path.write_text(content, encoding="utf-8")
    return path


@pytest.mark.parametrize(
    "content,suffix,expect_exc",
    [
        ("port: 8080\nheadless: false", ".yaml", None),
        (json.dumps({"port": 8080, "headless": False}), ".json", None),
        ("port: 0", ".yaml", ValidationError),
        ("unknown_option: 1", ".yaml", ValidationError),
        ("not: a: mapping", ".yaml", ValueError),
        ("- just\n- a list", ".yaml", TypeError),
        ("{broken", ".json", ValueError),
        ("port = 1", ".toml", ValueError),
    ],
)
def test_load_config_variants(tmp_path, content, suffix, expect_exc):
    cfg_path = write_file(tmp_path, content, suffix)
    if expect_exc:
        with pytest.raises(expect_exc):
            load_config(cfg_path)
    else:
        cfg = load_config(cfg_path)
        assert isinstance(cfg, ServiceConfig)
        assert cfg.port == 8080
        assert cfg.headless is False


def test_load_config_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")


def test_load_config_defaults_without_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    cfg = load_config(None)
    assert cfg == ServiceConfig()
    assert cfg.port == 3000
    assert cfg.api_key is None
    assert "--no-sandbox" in cfg.launch_args


def test_load_config_reads_default_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "configs").mkdir()
    (tmp_path / "configs" / "default.yaml").write_text("port: 4000\n", encoding="utf-8")
    assert load_config(None).port == 4000


def test_env_overrides_file(tmp_path, monkeypatch):
    cfg_path = write_file(tmp_path, "port: 8080\napi_key: from-file", ".yaml")
    monkeypatch.setenv("PORT", "9090")
    monkeypatch.setenv("API_KEY", "secret")
    cfg = load_config(cfg_path)
    assert cfg.port == 9090
    assert cfg.api_key == "secret"


def test_blank_api_key_disables_auth():
    assert ServiceConfig(api_key="  ").api_key is None


def test_navigation_request_defaults():
    req = NavigationRequest(url="https://example.com")
    assert req.wait_until == "networkidle"
    assert req.timeout == 60_000
    assert req.network_idle_timeout == 10_000
    assert req.wait_for_selector is None
    assert req.additional_wait_ms == 0


def test_navigation_request_accepts_camel_case():
    req = NavigationRequest.model_validate(
        {
            "url": "https://example.com/p",
            "waitUntil": "load",
            "timeout": 30000,
            "networkIdleTimeout": 5000,
            "waitForSelector": "#app",
            "additionalWaitMs": 250,
            "somethingElse": True,
        }
    )
    assert req.wait_until == "load"
    assert req.network_idle_timeout == 5000
    assert req.wait_for_selector == "#app"
    assert req.additional_wait_ms == 250


@pytest.mark.parametrize(
    "params",
    [
        {"url": "ftp://example.com"},
        {"url": "example.com"},
        {"url": "https://"},
        {"url": "https://example.com", "timeout": 999},
        {"url": "https://example.com", "timeout": 360_001},
        {"url": "https://example.com", "additional_wait_ms": 60_001},
        {"url": "https://example.com", "wait_until": "commit"},
        {"url": "https://example.com", "timeout": 5000, "network_idle_timeout": 6000},
    ],
)
def test_navigation_request_rejects(params):
    with pytest.raises(ValidationError):
        NavigationRequest(**params)


def test_invalid_url_message():
    with pytest.raises(ValidationError, match="Invalid URL provided"):
        NavigationRequest(url="javascript:alert(1)")


def test_blank_selector_is_ignored():
    assert NavigationRequest(url="https://example.com", wait_for_selector="  ").wait_for_selector is None
