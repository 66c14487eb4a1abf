"""Tests for change notification fan-out."""

import logging

import pytest

from forms_db.registry import FORMS, LATEST_BY_FORM_ID, ChangeBroadcaster


def test_subscribers_receive_their_scope_only():
    broadcaster = ChangeBroadcaster()
    forms_events, latest_events = [], []
    broadcaster.subscribe(FORMS, forms_events.append)
    broadcaster.subscribe(LATEST_BY_FORM_ID, latest_events.append)

    broadcaster.notify(FORMS)

    assert forms_events == [FORMS]
    assert latest_events == []


def test_unsubscribe():
    broadcaster = ChangeBroadcaster()
    events = []
    unsubscribe = broadcaster.subscribe(FORMS, events.append)

    unsubscribe()
    unsubscribe()
    broadcaster.notify(FORMS)

    assert events == []


def test_failing_subscriber_does_not_block_others(caplog):
    broadcaster = ChangeBroadcaster()
    events = []

    def broken(scope):
        raise RuntimeError("listener crashed")

    broadcaster.subscribe(FORMS, broken)
    broadcaster.subscribe(FORMS, events.append)

    with caplog.at_level(logging.ERROR, logger="forms_db.registry.notify"):
        broadcaster.notify(FORMS)

    assert events == [FORMS]
    assert "listener crashed" in caplog.text


def test_unknown_scope():
    broadcaster = ChangeBroadcaster()

    with pytest.raises(ValueError):
        broadcaster.subscribe("instances", print)
    with pytest.raises(ValueError):
        broadcaster.notify("instances")
