from __future__ import annotations

"""
Core façade for the forms_db subsystem.

FormsDB is the single, high-level entrypoint used by:

    - the form download / import code (to register definitions),
    - form lists (to query records and the newest-per-form-id view),
    - the forms-db command.

It wraps:

    - DB backend + pool
    - FormRecordStore
    - path resolver, content hasher, artifact janitor
    - FormRegistry and its change broadcaster

Design goals:
    - One explicitly constructed instance; no process-wide singleton
    - Minimal, explicit API
    - Easy to test (every collaborator can be injected)
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, Optional

from .config import FormsDBConfig, load_config
from .db import DBPool, SQLiteBackend
from .hashing import FileContentHasher
from .registry import (
    ChangeBroadcaster,
    DBFormRecordStore,
    Filter,
    FormRecord,
    FormRegistry,
    LatestByIdView,
)
from .registry.query import OrderSpec
from .storage import ArtifactJanitor, StoragePathResolver

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# FormsDB façade
# ---------------------------------------------------------------------------

@dataclass
class FormsDB:
    """
    High-level façade over the forms catalog.

    Attributes
    ----------
    config:
        FormsDBConfig used to construct this instance.

    backend:
        Database backend (owns the in-memory database, if any).

    db_pool:
        DBPool that provides DBConnection objects on-demand.

    store:
        DB-backed FormRecordStore.

    registry:
        FormRegistry enforcing the row/file invariants.

    notifier:
        ChangeBroadcaster told about every mutation.
    """

    config: FormsDBConfig
    backend: SQLiteBackend
    db_pool: DBPool
    store: DBFormRecordStore
    registry: FormRegistry
    notifier: ChangeBroadcaster

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_config(
        cls,
        config: Optional[FormsDBConfig] = None,
        *,
        init_schema: bool = True,
        clock: Optional[Callable[[], int]] = None,
    ) -> "FormsDB":
        """
        Construct a FormsDB instance from a FormsDBConfig.

        This:
            - selects the DB backend,
            - optionally bootstraps the schema,
            - creates the forms and cache roots,
            - wires up store, resolver, hasher, janitor and registry.
        """
        cfg = config or load_config()

        if cfg.enable_logging:
            logging.basicConfig(level=logging.INFO)
            logger.info("Initializing FormsDB with config: %s", cfg)

        backend = _create_backend_from_config(cfg)
        db_pool = DBPool(backend)

        if init_schema:
            with db_pool.connection() as conn:
                backend.init_schema(conn.raw)

        os.makedirs(cfg.forms_root, exist_ok=True)
        os.makedirs(cfg.cache_root, exist_ok=True)

        store = DBFormRecordStore(db_pool)
        notifier = ChangeBroadcaster()
        registry = FormRegistry(
            store=store,
            paths=StoragePathResolver(cfg.forms_root, cfg.cache_root),
            hasher=FileContentHasher(cfg.hash_algo),
            janitor=ArtifactJanitor(),
            notifier=notifier,
            clock=clock,
        )

        return cls(
            config=cfg,
            backend=backend,
            db_pool=db_pool,
            store=store,
            registry=registry,
            notifier=notifier,
        )

    @classmethod
    def from_env(cls, *, init_schema: bool = True) -> "FormsDB":
        """Construct FormsDB using environment variables."""
        return cls.from_config(load_config(), init_schema=init_schema)

    def close(self) -> None:
        self.backend.close()

    # ------------------------------------------------------------------
    # Pass-throughs
    # ------------------------------------------------------------------

    @property
    def latest_view(self) -> LatestByIdView:
        return self.registry.latest_view

    def insert_form(self, values: Mapping[str, Any]) -> int:
        return self.registry.insert(values)

    def get_form(self, form_pk: int, include_deleted: bool = False) -> FormRecord:
        return self.registry.get(form_pk, include_deleted=include_deleted)

    def list_forms(
        self,
        flt: Optional[Filter] = None,
        order_by: OrderSpec = "date DESC, _id DESC",
    ) -> List[FormRecord]:
        """List live forms, newest first by default."""
        return self.registry.scan(flt, order_by)

    def latest_forms(
        self,
        flt: Optional[Filter] = None,
        order_by: OrderSpec = None,
    ) -> List[FormRecord]:
        return self.registry.latest_by_form_id(flt, order_by)

    def update_form(self, form_pk: int, patch: Mapping[str, Any]) -> int:
        return self.registry.update_by_id(form_pk, patch)

    def delete_form(self, form_pk: int) -> int:
        return self.registry.delete_by_id(form_pk)

    def subscribe(self, scope: str, callback: Callable[[str], None]) -> Callable[[], None]:
        return self.notifier.subscribe(scope, callback)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _create_backend_from_config(config: FormsDBConfig):
    """
    Instantiate the appropriate DB backend for a given configuration.
    """
    name = (config.db_backend or "").lower()

    if name in ("sqlite", "sqlite3"):
        return SQLiteBackend(config.db_uri)

    raise ValueError(f"Unsupported forms_db backend: {config.db_backend!r}")


# ---------------------------------------------------------------------------
# Convenience
# ---------------------------------------------------------------------------

def create_forms_db(
    config: Optional[FormsDBConfig] = None,
    *,
    init_schema: bool = True,
) -> FormsDB:
    """
    Convenience constructor used by services / scripts.
    """
    return FormsDB.from_config(config, init_schema=init_schema)


__all__ = [
    "FormsDB",
    "create_forms_db",
]
