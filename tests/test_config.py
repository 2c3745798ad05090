# test_config.py
import json
import pathlib
import sys
from pathlib import Path

sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))

import pytest

from config import get_settings

CONFIG = Path(__file__).resolve().parents[1] / "config.json"


def _settings():
    get_settings.cache_clear()
    return get_settings()


@pytest.fixture(autouse=True)
def _fresh_settings():
    yield
    get_settings.cache_clear()


def test_defaults_from_config(monkeypatch):
    monkeypatch.delenv("REDIS_URL", raising=False)
    settings = _settings()
    assert settings.redis_url == json.loads(CONFIG.read_text())["redis_url"]
    assert settings.order_number_retries == 3
    assert settings.session_ttl_secs == 86400


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("REDIS_URL", "redis://override")
    monkeypatch.setenv("ORDER_NUMBER_RETRIES", "5")
    settings = _settings()
    assert settings.redis_url == "redis://override"
    assert settings.order_number_retries == 5


def test_missing_key_uses_default(monkeypatch):
    saved = CONFIG.read_text()
    monkeypatch.delenv("READ_RETRIES", raising=False)
    monkeypatch.setattr(
        Path,
        "read_text",
        lambda self: json.dumps(
            {k: v for k, v in json.loads(saved).items() if k != "read_retries"}
        ),
    )
    settings = _settings()
    assert settings.read_retries == 3
    assert not settings.production
