# backend/tests/test_config.py
import pytest

from callsim.config import ConfigValidationError, get_config_status, mask_url, settings, validate_config


def test_missing_key_is_a_warning_not_an_error():
    result = validate_config(raise_on_error=True)
    assert result["errors"] == []
    assert any("OPENAI_API_KEY" in w for w in result["warnings"])


@pytest.mark.parametrize("name,value", [
    ("MAX_SESSIONS", 0),
    ("HISTORY_WINDOW_TURNS", -1),
    ("SCORING_TIMEOUT_SECONDS", 0),
])
def test_invalid_settings_raise(monkeypatch, name, value):
    monkeypatch.setattr(settings, name, value)
    with pytest.raises(ConfigValidationError):
        validate_config(raise_on_error=True)
    assert validate_config(raise_on_error=False)["errors"]


def test_production_warnings(monkeypatch):
    monkeypatch.setattr(settings, "ENVIRONMENT", "production")
    warnings = validate_config(raise_on_error=False)["warnings"]
    assert any("SQLite" in w for w in warnings)


def test_config_status():
    status = get_config_status()
    assert status["environment"] == "test"
    assert status["database_configured"] is True
    assert status["openai_configured"] is False


@pytest.mark.parametrize("url,expected", [
    ("postgresql://user:secret@db:5432/callsim", "postgresql://user:****@db:5432/callsim"),
    ("sqlite:///./callsim.db", "sqlite:///./callsim.db"),
    ("", "[not set]"),
])
def test_mask_url(url, expected):
    assert mask_url(url) == expected
