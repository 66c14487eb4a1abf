"""
Global configuration settings for forms_db.

This module centralizes configuration for:

    - database backend selection
    - database URI
    - forms root (definition files and media bundles)
    - cache root (compiled form definitions)
    - hashing algorithm
    - feature flags (logging)

It provides:
    FormsDBConfig  – structured config object
    load_config()  – load from environment variables or defaults
"""

from __future__ import annotations

from dataclasses import dataclass
import os


@dataclass
class FormsDBConfig:
    """
    Canonical configuration for the forms_db subsystem.

    Attributes
    ----------
    db_backend:
        Name of the backend. Only "sqlite" is supported.

    db_uri:
        Path to the SQLite .db file, or ":memory:" for a private
        in-process database.

    forms_root:
        Directory holding form definition files and their media folders.
        Paths stored in the database are relative to this root.

    cache_root:
        Directory holding compiled ``<hash>.cache`` cache artifacts.

    hash_algo:
        hashlib algorithm used to fingerprint definition files.

    enable_logging:
        Whether to configure basic INFO logging on construction.
    """

    db_backend: str = "sqlite"
    db_uri: str = "forms.db"

    forms_root: str = "./forms"
    cache_root: str = "./.cache"

    hash_algo: str = "md5"

    enable_logging: bool = False


def load_config() -> FormsDBConfig:
    """
    Load FormsDBConfig from environment variables, falling back to defaults.

    Recognized variables:
        FORMS_DB_BACKEND         (sqlite)
        FORMS_DB_URI             (path or ":memory:")
        FORMS_DB_FORMS_ROOT      (directory path)
        FORMS_DB_CACHE_ROOT      (directory path)
        FORMS_DB_HASH_ALGO       (md5, sha1, sha256, ...)
        FORMS_DB_ENABLE_LOGGING  ("true" / "false" / "1" / "0")

    Returns
    -------
    FormsDBConfig
    """

    def _env_flag(name: str, default: bool) -> bool:
        val = os.getenv(name)
        if val is None:
            return default
        return val.strip().lower() in ("1", "true", "yes", "on")

    return FormsDBConfig(
        db_backend=os.getenv("FORMS_DB_BACKEND", "sqlite"),
        db_uri=os.getenv("FORMS_DB_URI", "forms.db"),

        forms_root=os.getenv("FORMS_DB_FORMS_ROOT", "./forms"),
        cache_root=os.getenv("FORMS_DB_CACHE_ROOT", "./.cache"),

        hash_algo=os.getenv("FORMS_DB_HASH_ALGO", "md5"),

        enable_logging=_env_flag(
            "FORMS_DB_ENABLE_LOGGING",
            default=False
        ),
    )


__all__ = [
    "FormsDBConfig",
    "load_config",
]
