"""Tests for environment-driven configuration."""

import pytest

from forms_db.config import FormsDBConfig, load_config
from forms_db.core import FormsDB


def test_defaults(monkeypatch):
    for name in (
        "FORMS_DB_BACKEND",
        "FORMS_DB_URI",
        "FORMS_DB_FORMS_ROOT",
        "FORMS_DB_CACHE_ROOT",
        "FORMS_DB_HASH_ALGO",
        "FORMS_DB_ENABLE_LOGGING",
    ):
        monkeypatch.delenv(name, raising=False)

    assert load_config() == FormsDBConfig()


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("FORMS_DB_URI", str(tmp_path / "x.db"))
    monkeypatch.setenv("FORMS_DB_FORMS_ROOT", str(tmp_path / "f"))
    monkeypatch.setenv("FORMS_DB_CACHE_ROOT", str(tmp_path / "c"))
    monkeypatch.setenv("FORMS_DB_HASH_ALGO", "sha256")
    monkeypatch.setenv("FORMS_DB_ENABLE_LOGGING", "Yes")

    cfg = load_config()

    assert cfg.db_uri == str(tmp_path / "x.db")
    assert cfg.forms_root == str(tmp_path / "f")
    assert cfg.cache_root == str(tmp_path / "c")
    assert cfg.hash_algo == "sha256"
    assert cfg.enable_logging is True


def test_from_config_creates_roots(tmp_path):
    cfg = FormsDBConfig(
        db_uri=":memory:",
        forms_root=str(tmp_path / "forms"),
        cache_root=str(tmp_path / "cache"),
    )

    db = FormsDB.from_config(cfg)
    try:
        assert (tmp_path / "forms").is_dir()
        assert (tmp_path / "cache").is_dir()
        assert db.list_forms() == []
    finally:
        db.close()


def test_unsupported_backend(tmp_path):
    cfg = FormsDBConfig(db_backend="oracle", forms_root=str(tmp_path), cache_root=str(tmp_path))

    with pytest.raises(ValueError):
        FormsDB.from_config(cfg)
