import json
import logging

import pytest
from pydantic import ValidationError

from dining_agent.config.settings import Settings
from dining_agent.infrastructure.logging.logger import JsonFormatter


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in ("OPENAI_API_KEY", "SERP_API_KEY", "HTTP_TIMEOUT", "SERVER_PORT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_yaml_source(clean_env, monkeypatch):
    cfg = clean_env / "custom.yaml"
    cfg.write_text("serp_api_key: serp-from-yaml-123\nhttp_timeout: 5\n", encoding="utf-8")
    monkeypatch.setenv("DINING_AGENT_CONFIG_FILE", str(cfg))
    s = Settings(_env_file=None)
    assert s.serp_api_key == "serp-from-yaml-123"
    assert s.http_timeout == 5.0
    assert s.openai_api_key is None


def test_env_overrides_yaml(clean_env, monkeypatch):
    cfg = clean_env / "config.yaml"
    cfg.write_text("openai_api_key: sk-from-yaml-123\n", encoding="utf-8")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-from-env-4567")
    assert Settings(_env_file=None).openai_api_key == "sk-from-env-4567"


def test_blank_key_is_missing(clean_env, monkeypatch):
    monkeypatch.setenv("SERP_API_KEY", "   ")
    assert Settings(_env_file=None).serp_api_key is None


def test_short_key_rejected(clean_env, monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "short")
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_defaults(clean_env):
    s = Settings(_env_file=None)
    assert s.serp_base_url == "https://serpapi.com/search"
    assert s.summary_model_reviews == "summary-reviews"


def test_json_formatter_merges_extra():
    record = logging.LogRecord("dining_agent", logging.INFO, __file__, 1, "Turn state changed", None, None)
    record.extra = {"trace_id": "tr-1", "to_state": "dispatched"}
    payload = json.loads(JsonFormatter().format(record))
    assert payload["msg"] == "Turn state changed"
    assert payload["level"] == "INFO"
    assert payload["trace_id"] == "tr-1"
    assert payload["to_state"] == "dispatched"
