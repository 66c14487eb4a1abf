"""
forms_db.db

Database layer for forms_db:

- DBConnection / DBPool: per-call connections, committed on clean exit
  of a write scope
- helpers: statement execution, row mapping and driver-error translation
- SQLiteBackend: file-backed or in-memory catalog database
- DBBackend: the backend contract
"""

from .connection import DBConnection, DBPool
from .sqlite_backend import SQLiteBackend, SQL_SCHEMA, SCHEMA_VERSION
from .backend_base import DBBackend
from .helpers import (
    safe_execute,
    safe_fetch_all,
    safe_fetch_one,
    row_to_dict,
)

__all__ = [
    "DBConnection",
    "DBPool",
    "SQLiteBackend",
    "SQL_SCHEMA",
    "SCHEMA_VERSION",
    "DBBackend",
    "safe_execute",
    "safe_fetch_all",
    "safe_fetch_one",
    "row_to_dict",
]
