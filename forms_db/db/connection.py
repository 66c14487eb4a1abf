"""
Connections to the forms database.

Every store call runs on its own short-lived connection:

    with pool.connection() as conn:            # read
        rows = conn.fetch_all("SELECT ...")

    with pool.connection(write=True) as conn:  # committed on clean exit
        conn.execute("UPDATE forms ...", params)

A write scope that raises is rolled back; the connection is closed either
way. Driver errors surface as Conflict / StorageFailure (see helpers).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from ..errors import StorageFailure

logger = logging.getLogger(__name__)


class DBConnection:
    """
    One open database handle plus the backend's helper module.

    Rows come back as plain dicts.
    """

    def __init__(self, raw_conn: Any, helpers: Any):
        self.raw = raw_conn
        self.helpers = helpers

    def execute(self, query: str, params: Optional[tuple] = None):
        return self.helpers.safe_execute(self.raw, query, params)

    def fetch_all(self, query: str, params: Optional[tuple] = None) -> List[Dict[str, Any]]:
        return [self.helpers.row_to_dict(r) for r in self.helpers.safe_fetch_all(self.raw, query, params)]

    def fetch_one(self, query: str, params: Optional[tuple] = None) -> Optional[Dict[str, Any]]:
        row = self.helpers.safe_fetch_one(self.raw, query, params)
        return self.helpers.row_to_dict(row) if row else None

    def commit(self) -> None:
        try:
            self.raw.commit()
        except Exception as e:
            raise StorageFailure(f"Commit failed: {e}") from e

    def rollback(self) -> None:
        try:
            self.raw.rollback()
        except Exception:
            logger.debug("Rollback failed", exc_info=True)

    def close(self) -> None:
        try:
            self.raw.close()
        except Exception:
            logger.debug("Close failed", exc_info=True)


class DBPool:
    """
    Hands out fresh DBConnections from a backend.

    There is no actual pooling: SQLite connections are cheap, and a
    connection per call keeps concurrent readers off each other's cursors.
    """

    def __init__(self, backend: Any):
        self.backend = backend

    def get(self) -> DBConnection:
        try:
            raw = self.backend.connect()
        except Exception as e:
            raise StorageFailure(f"Could not open forms database {self.backend!r}: {e}") from e
        return DBConnection(raw, self.backend.helpers)

    def connection(self, write: bool = False) -> "_Scope":
        return _Scope(self, write)


class _Scope:
    def __init__(self, pool: DBPool, write: bool):
        self.pool = pool
        self.write = write
        self.conn: Optional[DBConnection] = None

    def __enter__(self) -> DBConnection:
        self.conn = self.pool.get()
        return self.conn

    def __exit__(self, exc_type, exc, tb):
        try:
            if exc_type is not None:
                self.conn.rollback()
            elif self.write:
                self.conn.commit()
        finally:
            self.conn.close()
        return False


__all__ = ["DBConnection", "DBPool"]
