import logging

import pytest

from cleartext.app import main
from cleartext.app.config import FALLBACK_ORIGINS, Settings, validate_settings


def test_allowed_origins_start_with_configured_origin():
    s = Settings(OPENAI_API_KEY="sk-test", ALLOWED_ORIGIN="https://cleartext.example", _env_file=None)
    assert s.allowed_origins[0] == "https://cleartext.example"
    assert s.allowed_origins[1:] == FALLBACK_ORIGINS


def test_allowed_origins_are_not_duplicated():
    s = Settings(OPENAI_API_KEY="sk-test", ALLOWED_ORIGIN="http://localhost:5500", _env_file=None)
    assert s.allowed_origins.count("http://localhost:5500") == 1


def test_defaults():
    s = Settings(OPENAI_API_KEY="sk-test", _env_file=None)
    assert s.PORT == 3000
    assert s.MODERATION_MODEL == "omni-moderation-latest"
    assert s.MAX_TEXT_LENGTH == 5000
    assert s.MAX_BODY_BYTES == 20480
    assert s.OPENAI_TIMEOUT_S is None


def test_settings_are_read_only():
    s = Settings(OPENAI_API_KEY="sk-test", _env_file=None)
    with pytest.raises(Exception):
        s.OPENAI_API_KEY = "sk-other"


@pytest.mark.parametrize("key", ["", "   "])
def test_missing_api_key_is_rejected(key):
    with pytest.raises(ValueError, match="OPENAI_API_KEY"):
        validate_settings(Settings(OPENAI_API_KEY=key, _env_file=None))


def test_run_exits_without_api_key(monkeypatch):
    def fail():
        raise ValueError("OPENAI_API_KEY is not set.")

    monkeypatch.setattr(main, "get_settings", fail)
    with pytest.raises(SystemExit) as exc_info:
        main.run()
    assert exc_info.value.code == 1


def test_run_serves_configured_port(monkeypatch):
    captured = {}

    def fake_run(app, **kwargs):
        captured["app"] = app
        captured.update(kwargs)

    monkeypatch.setattr(main, "get_settings", lambda: Settings(OPENAI_API_KEY="sk-test", PORT=8123, _env_file=None))
    monkeypatch.setattr(main.uvicorn, "run", fake_run)
    main.run()
    assert captured["port"] == 8123
    assert captured["app"].state.settings.PORT == 8123


def test_run_applies_configured_log_level(monkeypatch):
    root = logging.getLogger()
    previous = root.level
    monkeypatch.setattr(
        main, "get_settings", lambda: Settings(OPENAI_API_KEY="sk-test", LOG_LEVEL="WARNING", _env_file=None)
    )
    monkeypatch.setattr(main.uvicorn, "run", lambda app, **kwargs: None)
    try:
        main.run()
        assert root.level == logging.WARNING
    finally:
        root.setLevel(previous)
