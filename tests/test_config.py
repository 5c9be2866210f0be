"""Tests for settings and logging helpers."""

from pathlib import Path

from notecache.config import BASE_DIR, Settings
from notecache.logging import get_logger


def test_relative_database_path_resolves_against_backend_dir():
    settings = Settings(DATABASE_PATH="database/test.db")

    assert Path(settings.DATABASE_PATH) == (BASE_DIR / "database" / "test.db").resolve()


def test_absolute_database_path_is_kept(tmp_path):
    path = tmp_path / "notes.db"

    assert Settings(DATABASE_PATH=str(path)).DATABASE_PATH == str(path)


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("NOTECACHE_MOST_USED_TAGS_LIMIT", "3")
    monkeypatch.setenv("NOTECACHE_DEFAULT_INCLUDE_TRASH", "true")

    settings = Settings()

    assert settings.MOST_USED_TAGS_LIMIT == 3
    assert settings.DEFAULT_INCLUDE_TRASH is True


def test_module_loggers_share_package_root():
    logger = get_logger("services.bus")

    assert logger.name == "notecache.services.bus"
