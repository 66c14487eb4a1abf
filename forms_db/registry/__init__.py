"""
forms_db - Registry package.

This package provides:
    - FormRecord and the forms column names
    - the query filter language (Filter, Condition, OrderBy)
    - FormRecordStore (contract) and DBFormRecordStore (SQLite-backed)
    - FormRegistry: the mutation engine keeping rows and files consistent
    - LatestByIdView: newest live form per form id
    - change notification (ChangeBroadcaster, scopes FORMS / LATEST_BY_FORM_ID)

The registry sits above the database backend and the storage helpers and
is used by the FormsDB façade and the forms-db command.
"""

from .models import FormRecord, COLUMNS, parse_tristate, normalize_values
from .query import Condition, Filter, OrderBy, parse_order_by
from .record_store import FormRecordStore, DBFormRecordStore
from .latest_view import LatestByIdView
from .notify import (
    FORMS,
    LATEST_BY_FORM_ID,
    ChangeNotifier,
    ChangeBroadcaster,
    NullNotifier,
)
from .form_registry import FormRegistry

__all__ = [
    # Data model
    "FormRecord",
    "COLUMNS",
    "parse_tristate",
    "normalize_values",

    # Queries
    "Condition",
    "Filter",
    "OrderBy",
    "parse_order_by",

    # Storage
    "FormRecordStore",
    "DBFormRecordStore",

    # Registry + views
    "FormRegistry",
    "LatestByIdView",

    # Notifications
    "FORMS",
    "LATEST_BY_FORM_ID",
    "ChangeNotifier",
    "ChangeBroadcaster",
    "NullNotifier",
]
