"""Pytest configuration and fixtures."""

import hashlib
from pathlib import Path

import pytest

from forms_db.config import FormsDBConfig
from forms_db.core import FormsDB


class FakeClock:
    """Epoch-millis clock that advances one second per reading."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        self.now += 1000
        return self.now


@pytest.fixture
def config(tmp_path: Path) -> FormsDBConfig:
    """Catalog rooted in a temporary directory."""
    return FormsDBConfig(
        db_uri=str(tmp_path / "db" / "forms.db"),
        forms_root=str(tmp_path / "forms"),
        cache_root=str(tmp_path / ".cache"),
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def db(config: FormsDBConfig, clock: FakeClock):
    forms_db = FormsDB.from_config(config, clock=clock)
    yield forms_db
    forms_db.close()


@pytest.fixture
def registry(db: FormsDB):
    return db.registry


@pytest.fixture
def forms_root(config: FormsDBConfig) -> Path:
    return Path(config.forms_root)


@pytest.fixture
def cache_root(config: FormsDBConfig) -> Path:
    return Path(config.cache_root)


@pytest.fixture
def write_form(forms_root: Path):
    """Write a form definition under the forms root and return its path."""

    def _write(name: str, body: str = None) -> Path:
        path = forms_root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        if body is None:
            body = f"<h:html><h:head><h:title>{name}</h:title></h:head></h:html>"
        path.write_text(body, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def md5():
    """md5 hex digest of a file's current bytes."""

    def _md5(path) -> str:
        return hashlib.md5(Path(path).read_bytes()).hexdigest()

    return _md5


@pytest.fixture
def recorder(db: FormsDB):
    """Collects every change notification as a list of scope names."""
    events = []
    db.subscribe("forms", events.append)
    db.subscribe("latest_by_form_id", events.append)
    return events
