"""
DB-backed form record store.

Persistent table of form metadata. The store persists exactly what it is
given (root-relative paths included) and never touches the filesystem;
all invariants except final uniqueness are the registry's business.

Uniqueness of live definition paths is also guaranteed here, by the
partial unique index on forms(form_file_path): two racing inserts of the
same path yield exactly one success and one Conflict.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Union

from ..db.connection import DBPool
from ..errors import InvalidInput, NotFound
from .models import COLUMNS, DELETED_DATE, ID, JR_FORM_ID, DATE, FormRecord
from .query import Filter, OrderSpec, column_name, compile_order, compile_where

Row = Union[FormRecord, Dict[str, Any]]


class FormRecordStore(Protocol):
    """Contract the registry relies on for persistence."""

    def scan(
        self,
        flt: Optional[Filter] = None,
        order_by: OrderSpec = None,
        projection: Optional[Sequence[str]] = None,
    ) -> List[Row]:
        ...

    def get(self, form_pk: int, include_deleted: bool = False) -> FormRecord:
        ...

    def insert(self, values: Mapping[str, Any]) -> int:
        ...

    def update_by_id(self, form_pk: int, values: Mapping[str, Any]) -> int:
        ...

    def delete_by_id(self, form_pk: int) -> int:
        ...

    def soft_delete_by_id(self, form_pk: int, when: int) -> int:
        ...

    def latest_by_form_id(
        self,
        flt: Optional[Filter] = None,
        order_by: OrderSpec = None,
    ) -> List[FormRecord]:
        ...


class DBFormRecordStore:
    """
    Database-backed FormRecordStore.

    Schema (canonical):
        forms(
            _id INTEGER PRIMARY KEY AUTOINCREMENT,
            ... one column per FormRecord field ...,
            deleted_date INTEGER
        )
        UNIQUE(form_file_path) WHERE deleted_date IS NULL
    """

    def __init__(self, pool: DBPool):
        self.pool = pool

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def scan(
        self,
        flt: Optional[Filter] = None,
        order_by: OrderSpec = None,
        projection: Optional[Sequence[str]] = None,
    ) -> List[Row]:
        """
        Return the rows matching a filter.

        With a projection, rows come back as dicts restricted to those
        columns; otherwise as FormRecord objects.
        """
        where, params = compile_where(flt)
        order = compile_order(order_by)

        if projection:
            select = ", ".join(column_name(c) for c in projection)
        else:
            select = "*"

        with self.pool.connection() as conn:
            rows = conn.fetch_all(f"SELECT {select} FROM forms{where}{order}", params)

        if projection:
            return rows
        return [FormRecord.from_row(r) for r in rows]

    def get(self, form_pk: int, include_deleted: bool = False) -> FormRecord:
        with self.pool.connection() as conn:
            row = conn.fetch_one("SELECT * FROM forms WHERE _id = ?", (form_pk,))

        if not row or (row.get(DELETED_DATE) is not None and not include_deleted):
            raise NotFound(f"No form with id {form_pk}")
        return FormRecord.from_row(row)

    def latest_by_form_id(
        self,
        flt: Optional[Filter] = None,
        order_by: OrderSpec = None,
    ) -> List[FormRecord]:
        """
        Newest live row per jr_form_id.

        Newest means greatest date; equal dates go to the greatest _id.
        The filter and order apply after the reduction.
        """
        where, params = compile_where(flt)
        where = f"{where} AND _rank = 1" if where else " WHERE _rank = 1"
        order = compile_order(order_by) or f" ORDER BY {JR_FORM_ID} ASC"

        query = f"""
            SELECT *
            FROM (
                SELECT
                    *,
                    ROW_NUMBER() OVER (
                        PARTITION BY {JR_FORM_ID}
                        ORDER BY {DATE} DESC, {ID} DESC
                    ) AS _rank
                FROM forms
                WHERE {DELETED_DATE} IS NULL
            ) AS latest{where}{order}
        """

        with self.pool.connection() as conn:
            rows = conn.fetch_all(query, params)

        return [FormRecord.from_row(r) for r in rows]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def insert(self, values: Mapping[str, Any]) -> int:
        """
        Insert a new row and return its assigned _id.

        Raises Conflict if a live row already uses the definition path.
        """
        columns = self._columns(values, allow_id=False)
        marks = ", ".join("?" for _ in columns)

        with self.pool.connection(write=True) as conn:
            cur = conn.execute(
                f"INSERT INTO forms ({', '.join(columns)}) VALUES ({marks})",
                tuple(values[c] for c in columns),
            )
            return int(cur.lastrowid)

    def update_by_id(self, form_pk: int, values: Mapping[str, Any]) -> int:
        columns = self._columns(values, allow_id=False)
        if not columns:
            return 0
        assignments = ", ".join(f"{c} = ?" for c in columns)

        with self.pool.connection(write=True) as conn:
            cur = conn.execute(
                f"UPDATE forms SET {assignments} WHERE _id = ?",
                tuple(values[c] for c in columns) + (form_pk,),
            )
            return cur.rowcount

    def delete_by_id(self, form_pk: int) -> int:
        with self.pool.connection(write=True) as conn:
            cur = conn.execute("DELETE FROM forms WHERE _id = ?", (form_pk,))
            return cur.rowcount

    def soft_delete_by_id(self, form_pk: int, when: int) -> int:
        with self.pool.connection(write=True) as conn:
            cur = conn.execute(
                "UPDATE forms SET deleted_date = ? WHERE _id = ? AND deleted_date IS NULL",
                (when, form_pk),
            )
            return cur.rowcount

    # ------------------------------------------------------------------
    # Internal helper
    # ------------------------------------------------------------------

    @staticmethod
    def _columns(values: Mapping[str, Any], allow_id: bool) -> List[str]:
        columns = []
        for key in values:
            if key not in COLUMNS:
                raise InvalidInput(f"Unknown form column: {key!r}")
            if key == ID and not allow_id:
                continue
            columns.append(key)
        return columns


__all__ = [
    "FormRecordStore",
    "DBFormRecordStore",
]
