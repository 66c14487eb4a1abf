"""
Error taxonomy for forms_db.

Every error raised by the registry layer derives from FormsDBError so
callers can catch the whole family at once:

    FormsDBError
    ├── InvalidInput     missing field, absent file, unknown column
    ├── Conflict         duplicate active form definition path
    ├── NotFound         single-target operation on a missing id
    └── StorageFailure   persistence layer unreachable or rejecting a write

File-removal failures are never raised; the janitor logs them instead.
"""

from __future__ import annotations


class FormsDBError(Exception):
    """Base class for all forms_db errors."""


class InvalidInput(FormsDBError, ValueError):
    """A request is malformed or references something that does not exist."""


class Conflict(FormsDBError):
    """A uniqueness invariant would be violated."""


class NotFound(FormsDBError, LookupError):
    """A single-record operation targeted an id with no live record."""


class StorageFailure(FormsDBError, RuntimeError):
    """The underlying database failed for a reason other than uniqueness."""


__all__ = [
    "FormsDBError",
    "InvalidInput",
    "Conflict",
    "NotFound",
    "StorageFailure",
]
