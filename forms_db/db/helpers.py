"""
Shared DB helper utilities.

These wrappers ensure:
    - consistent interfaces across backends
    - predictable row→dict mapping
    - structured error handling

Driver errors are translated into the forms_db taxonomy:
    - uniqueness ``IntegrityError``  -> Conflict
    - anything else                  -> StorageFailure

Backends import this module as `.helpers`
"""

from __future__ import annotations
from typing import Any, Optional

from ..errors import Conflict, StorageFailure


def _translate(exc: Exception, what: str, query: str, params: Any = None) -> Exception:
    """
    Map a driver exception onto Conflict / StorageFailure.

    DB-API 2.0 drivers all name their constraint error ``IntegrityError``,
    so the check is by name rather than by importing a specific driver.
    Only uniqueness violations are conflicts; NOT NULL and CHECK failures
    are rejected writes like any other.
    """
    if type(exc).__name__ == "IntegrityError" and "unique" in str(exc).lower():
        return Conflict(f"{what} violated a uniqueness constraint: {exc}")
    return StorageFailure(
        f"{what} failed: {exc} | Query: {query!r} | Params: {params!r}"
    )


# ----------------------------------------------------------------------
# Execution helpers
# ----------------------------------------------------------------------

def safe_execute(conn: Any, query: str, params: Optional[tuple] = None):
    """
    Execute a single SQL statement safely.
    Returns the raw cursor.

    Parameters
    ----------
    conn:
        DB-API compatible connection object (sqlite3, ...).
    query:
        SQL string with placeholders.
    params:
        Optional parameter tuple.

    Raises
    ------
    Conflict
        The statement violated a uniqueness constraint.
    StorageFailure
        Any other execution error, with query context.
    """
    cur = conn.cursor()
    try:
        cur.execute(query, params or ())
    except Exception as e:
        raise _translate(e, "DB execute", query, params) from e
    return cur



def safe_fetch_all(conn: Any, query: str, params: Optional[tuple] = None):
    """
    Execute a SELECT query and fetch all rows.

    Returns
    -------
    list
        List of backend-specific row records (e.g., sqlite3.Row).
    """
    cur = safe_execute(conn, query, params)
    return cur.fetchall()


def safe_fetch_one(conn: Any, query: str, params: Optional[tuple] = None):
    """
    Execute a SELECT query and fetch one row, or None.
    """
    cur = safe_execute(conn, query, params)
    return cur.fetchone()


# ----------------------------------------------------------------------
# Row mapping
# ----------------------------------------------------------------------

def row_to_dict(row: Any) -> dict:
    """
    Convert sqlite3.Row (or any mapping-like row) to a plain Python dict.

    Parameters
    ----------
    row:
        Backend-specific row object.

    Returns
    -------
    dict
        Plain Python dictionary representation of the row.
    """
    if row is None:
        return {}

    if hasattr(row, "keys"):
        return {k: row[k] for k in row.keys()}

    # Fallback: treat as a tuple-like sequence
    return dict(enumerate(row))


__all__ = [
    "safe_execute",
    "safe_fetch_all",
    "safe_fetch_one",
    "row_to_dict",
]
