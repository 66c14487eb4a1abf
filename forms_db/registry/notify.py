"""
Change notification for the forms catalog.

Two addressable scopes exist:

    FORMS              "something in the forms table changed"
    LATEST_BY_FORM_ID  "the newest-per-form-id view may have changed"

Notifications carry no payload describing what changed; subscribers
re-query. Delivery is synchronous, in subscription order, and a failing
subscriber never prevents delivery to the others.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, List, Protocol

logger = logging.getLogger(__name__)

FORMS = "forms"
LATEST_BY_FORM_ID = "latest_by_form_id"
SCOPES = (FORMS, LATEST_BY_FORM_ID)

Subscriber = Callable[[str], None]


class ChangeNotifier(Protocol):
    def notify(self, scope: str) -> None:
        ...


class NullNotifier:
    """Notifier used when nobody is listening."""

    def notify(self, scope: str) -> None:
        return None


class ChangeBroadcaster:
    """
    In-process fan-out of change signals to subscribers.

    Usage:
        broadcaster = ChangeBroadcaster()
        unsubscribe = broadcaster.subscribe(FORMS, lambda scope: reload())
        ...
        unsubscribe()
    """

    def __init__(self):
        self._subscribers: Dict[str, List[Subscriber]] = {scope: [] for scope in SCOPES}
        self._lock = threading.Lock()

    def subscribe(self, scope: str, callback: Subscriber) -> Callable[[], None]:
        """
        Register a callback for a scope; returns a function that removes it.
        """
        if scope not in self._subscribers:
            raise ValueError(f"Unknown notification scope: {scope!r}")

        with self._lock:
            self._subscribers[scope].append(callback)

        def unsubscribe() -> None:
            with self._lock:
                try:
                    self._subscribers[scope].remove(callback)
                except ValueError:
                    pass

        return unsubscribe

    def notify(self, scope: str) -> None:
        if scope not in self._subscribers:
            raise ValueError(f"Unknown notification scope: {scope!r}")

        with self._lock:
            callbacks = list(self._subscribers[scope])

        for callback in callbacks:
            try:
                callback(scope)
            except Exception:
                logger.exception("Change subscriber %r failed for scope %s", callback, scope)


__all__ = [
    "FORMS",
    "LATEST_BY_FORM_ID",
    "SCOPES",
    "Subscriber",
    "ChangeNotifier",
    "NullNotifier",
    "ChangeBroadcaster",
]
