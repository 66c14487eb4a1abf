"""
Backend contract for forms_db.

A backend opens raw DB-API connections and names the helper module
(forms_db.db.helpers) that executes statements on them:

    backend.connect()          -> raw connection
    backend.helpers            -> safe_execute / safe_fetch_all /
                                  safe_fetch_one / row_to_dict
    backend.init_schema(conn)  -> create the forms table and indices
    backend.close()            -> release anything held for the backend's life
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class DBBackend(ABC):
    """
    Abstract base class for a forms_db backend.

    Concrete subclasses may define any constructor signature they want
    (e.g. SQLiteBackend(db_path)).
    """

    @property
    @abstractmethod
    def helpers(self) -> Any:
        raise NotImplementedError

    @abstractmethod
    def connect(self) -> Any:
        """
        Acquire and return a new raw DB-API 2.0 connection.
        """
        raise NotImplementedError

    @abstractmethod
    def init_schema(self, conn: Any) -> None:
        raise NotImplementedError

    def close(self) -> None:
        return None


__all__ = ["DBBackend"]
