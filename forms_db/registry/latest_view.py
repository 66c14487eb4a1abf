"""
Newest form per form id.

A form id can be downloaded several times over its life (new versions,
re-downloads). Form lists only show the most recent one: the live row
with the greatest date, the greatest _id winning ties.

The view is computed on every call from the live table; nothing is
cached, so it never lags the store.
"""

from __future__ import annotations

from typing import List, Optional

from .models import FormRecord
from .query import Filter, OrderSpec


class LatestByIdView:
    """
    Read-only projection over a FormRecordStore.

    Parameters
    ----------
    store : FormRecordStore
        Store to aggregate.
    to_absolute : callable, optional
        Converts a store record to the caller-facing form (absolute
        paths). The registry passes its own converter.
    map_filter : callable, optional
        Rewrites a caller filter into store terms (relative paths).
    """

    def __init__(self, store, to_absolute=None, map_filter=None):
        self.store = store
        self._to_absolute = to_absolute or (lambda record: record)
        self._map_filter = map_filter or (lambda flt: flt)

    def query(
        self,
        flt: Optional[Filter] = None,
        order_by: OrderSpec = None,
    ) -> List[FormRecord]:
        """
        One record per distinct form id, after the filter is applied to
        the reduced set.
        """
        rows = self.store.latest_by_form_id(self._map_filter(flt), order_by)
        return [self._to_absolute(r) for r in rows]

    def get(self, form_id: str) -> Optional[FormRecord]:
        """Newest live record for one form id, or None."""
        rows = self.query(Filter.where(jr_form_id=form_id))
        return rows[0] if rows else None

    __call__ = query


__all__ = ["LatestByIdView"]
