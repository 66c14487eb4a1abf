"""
SQLite backend for forms_db.

Used for:
    - the on-device catalog (a single .db file)
    - tests
    - CLI tools

Implements:
    - connect()
    - helpers      (required by DBBackend abstract interface)
    - init_schema()

Passing ":memory:" gives a private in-process database. Because every
DBPool.get() opens a fresh connection, the in-memory variant is a named
shared-cache database kept alive by an anchor connection for as long as
the backend lives.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from pathlib import Path
from typing import Optional

from . import helpers
from .backend_base import DBBackend

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1


# ----------------------------------------------------------------------
# Canonical Schema
# ----------------------------------------------------------------------

SQL_SCHEMA = """
-- ------------------------------------------------------------
-- Schema version table
-- ------------------------------------------------------------
CREATE TABLE IF NOT EXISTS schema_version (
    version      INTEGER NOT NULL,
    applied_at   TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

-- ------------------------------------------------------------
-- Forms Table
--
-- Paths are stored relative to the forms root (form_file_path,
-- form_media_path) or the cache root (jrcache_file_path).
-- ------------------------------------------------------------
CREATE TABLE IF NOT EXISTS forms (
    _id                    INTEGER PRIMARY KEY AUTOINCREMENT,
    display_name           TEXT NOT NULL,
    description            TEXT,
    jr_form_id             TEXT NOT NULL,
    jr_version             TEXT,
    form_file_path         TEXT NOT NULL,
    submission_uri         TEXT,
    base64_rsa_public_key  TEXT,
    md5_hash               TEXT NOT NULL,
    date                   INTEGER NOT NULL,
    jrcache_file_path      TEXT NOT NULL,
    form_media_path        TEXT NOT NULL,
    language               TEXT,
    auto_send              TEXT,
    auto_delete            TEXT,
    geometry_xpath         TEXT,
    deleted_date           INTEGER
);

-- One live row per definition file; soft-deleted rows do not count.
CREATE UNIQUE INDEX IF NOT EXISTS idx_forms_live_file_path
    ON forms(form_file_path)
    WHERE deleted_date IS NULL;

CREATE INDEX IF NOT EXISTS idx_forms_jr_form_id
    ON forms(jr_form_id);

-- ------------------------------------------------------------
-- Initial schema version
-- ------------------------------------------------------------
INSERT INTO schema_version (version)
SELECT 1
WHERE NOT EXISTS (SELECT 1 FROM schema_version);
"""


# ----------------------------------------------------------------------
# Backend implementation
# ----------------------------------------------------------------------

class SQLiteBackend(DBBackend):
    """
    Minimal SQLite backend.

    Parameters
    ----------
    db_path : str
        Path to the SQLite database file, or ":memory:".
    timeout : float
        Seconds a connection waits on a locked database before failing.
    """

    def __init__(self, db_path: str, timeout: float = 5.0):
        self.timeout = timeout
        self._helpers = helpers
        self._anchor: Optional[sqlite3.Connection] = None

        if db_path == ":memory:":
            self.path = None
            self._uri = f"file:forms_db_{uuid.uuid4().hex}?mode=memory&cache=shared"
            self._anchor = sqlite3.connect(self._uri, uri=True)
        else:
            self.path = Path(db_path)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._uri = None

    @property
    def helpers(self):
        """
        Required by DBBackend.

        Returns the module containing query helpers and row mapping.
        """
        return self._helpers

    @property
    def in_memory(self) -> bool:
        return self._uri is not None

    # ------------------------------------------------------------------
    # Connection handling
    # ------------------------------------------------------------------

    def connect(self) -> sqlite3.Connection:
        """
        Open a SQLite3 connection with row_factory=dict-like access.

        Also ensures foreign keys are enforced.
        """
        if self._uri is not None:
            conn = sqlite3.connect(self._uri, uri=True, timeout=self.timeout)
        else:
            conn = sqlite3.connect(str(self.path), timeout=self.timeout)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def close(self) -> None:
        """
        Drop the anchor connection of an in-memory database.

        The database content is discarded once the last connection closes.
        """
        if self._anchor is not None:
            self._anchor.close()
            self._anchor = None

    # ------------------------------------------------------------------
    # Schema initializer
    # ------------------------------------------------------------------

    def init_schema(self, conn) -> None:
        """
        Create tables and indices if they do not exist.

        Idempotent – safe to call multiple times.
        """
        cur = conn.cursor()
        cur.executescript(SQL_SCHEMA)
        conn.commit()
        logger.debug("forms schema v%d ready at %s", SCHEMA_VERSION, self.path or self._uri)

    def __repr__(self) -> str:
        target = self.path if self.path is not None else ":memory:"
        return f"SQLiteBackend({str(target)!r})"
