from __future__ import annotations

from pathlib import Path

import pytest

from dealscout.config import DATA_DIR, get_settings


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_defaults(monkeypatch):
    for name in ("DEALSCOUT_DB_PATH", "DEALSCOUT_RANKING", "DEALSCOUT_HOST", "DEALSCOUT_PORT", "DEALSCOUT_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    settings = get_settings()
    assert settings.db_path == DATA_DIR / "dealscout.db"
    assert settings.ranking == "fixed"
    assert (settings.host, settings.port) == ("127.0.0.1", 8001)
    assert settings.log_level == "INFO"


def test_env_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("DEALSCOUT_DB_PATH", str(tmp_path / "x.db"))
    monkeypatch.setenv("DEALSCOUT_RANKING", "Composite")
    monkeypatch.setenv("DEALSCOUT_PORT", "9000")
    monkeypatch.setenv("DEALSCOUT_LOG_LEVEL", "debug")
    settings = get_settings()
    assert settings.db_path == Path(tmp_path / "x.db")
    assert settings.ranking == "composite"
    assert settings.port == 9000
    assert settings.log_level == "DEBUG"


def test_unknown_ranking(monkeypatch):
    monkeypatch.setenv("DEALSCOUT_RANKING", "random")
    with pytest.raises(ValueError):
        get_settings()
