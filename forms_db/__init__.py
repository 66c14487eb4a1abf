"""
forms_db

Top-level package initializer for the forms catalog.

Submodules include:
    - registry/   form records, queries, FormRegistry, latest view
    - storage/    path resolution and artifact cleanup
    - hashing/    content hashing of definition files
    - db/         connection pool and SQLite backend
    - core        FormsDB façade
    - cli         forms-db command

This root package exports the config loader, the façade and the error
taxonomy for convenience.
"""

from .config import FormsDBConfig, load_config
from .core import FormsDB, create_forms_db
from .errors import Conflict, FormsDBError, InvalidInput, NotFound, StorageFailure

__all__ = [
    "FormsDBConfig",
    "load_config",
    "FormsDB",
    "create_forms_db",
    "FormsDBError",
    "InvalidInput",
    "Conflict",
    "NotFound",
    "StorageFailure",
]
