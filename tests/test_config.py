from __future__ import annotations

import json
import logging

import pytest

from app.core import config as config_module
from app.core.exceptions import ConfigurationError
from app.core.logging_config import JsonFormatter


def test_defaults_are_valid(monkeypatch):
    for key in ("DATABASE_URL", "QUOTE_NUMBER_FORMAT", "QUOTE_DEFAULT_VALIDITY_DAYS", "DEFAULT_CURRENCY"):
        monkeypatch.delenv(key, raising=False)

    cfg = config_module._build_config("development")

    assert cfg.DATABASE_URL.startswith("sqlite")
    assert cfg.QUOTE_DEFAULT_VALIDITY_DAYS == 30
    assert cfg.DEFAULT_CURRENCY == "USD"
    assert cfg.QUOTE_NUMBER_FORMAT.format(year=2026, seq=7) == "2026-Q00007"
    assert cfg.is_production is False


@pytest.mark.parametrize(
    ("key", "value"),
    [
        ("DATABASE_URL", "mysql://db/pestflow"),
        ("QUOTE_DEFAULT_VALIDITY_DAYS", "0"),
        ("QUOTE_NUMBER_FORMAT", "Q-{year}"),
        ("DEFAULT_CURRENCY", "DOLLARS"),
        ("LOG_LEVEL", "chatty"),
    ],
)
def test_invalid_settings_are_rejected(monkeypatch, key, value):
    monkeypatch.setenv(key, value)

    with pytest.raises(ConfigurationError):
        config_module._build_config("development")


def test_json_formatter_copies_context_fields():
    record = logging.LogRecord("app.services.deal_service", logging.INFO, __file__, 1, "deal.created", None, None)
    record.event = "deal.created"
    record.deal_id = "d-1"
    record.unrelated = "dropped"

    payload = json.loads(JsonFormatter().format(record))

    assert payload["message"] == "deal.created"
    assert payload["event"] == "deal.created"
    assert payload["deal_id"] == "d-1"
    assert "unrelated" not in payload
