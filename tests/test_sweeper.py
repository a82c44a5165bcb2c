"""
tests/test_sweeper.py -- BlacklistSweeper run_once and thread lifecycle.
"""

from __future__ import annotations

import threading
from datetime import timedelta

import pytest

from models.base_model import utcnow
from services.sweeper import BlacklistSweeper


def test_run_once_removes_only_expired_rows(db, revocations) -> None:
    revocations.blacklist_access("expired-1", utcnow() - timedelta(minutes=1))
    revocations.blacklist_access("expired-2", utcnow() - timedelta(hours=2))
    revocations.blacklist_access("live", utcnow() + timedelta(hours=1))

    sweeper = BlacklistSweeper(revocations, db, interval=60)
    assert sweeper.run_once() == 2
    assert revocations.is_blacklisted("live")
    assert not revocations.is_blacklisted("expired-1")


def test_rejects_non_positive_interval(db, revocations) -> None:
    with pytest.raises(ValueError):
        BlacklistSweeper(revocations, db, interval=0)


def test_start_stop_lifecycle(db, revocations) -> None:
    sweeper = BlacklistSweeper(revocations, db, interval=3600)
    assert not sweeper.running

    sweeper.start()
    try:
        assert sweeper.running
        thread = sweeper._thread
        sweeper.start()  # second start is a no-op
        assert sweeper._thread is thread
    finally:
        sweeper.stop()
    assert not sweeper.running


def test_loop_sweeps_on_interval_and_survives_failures(db) -> None:
    calls = threading.Event()
    attempts = []

    class FlakyRevocations:
        def sweep_expired_blacklist(self):
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("database went away")
            calls.set()
            return 0

        def sweep_expired_refresh(self):
            return 0

    sweeper = BlacklistSweeper(FlakyRevocations(), db, interval=0.01)
    sweeper.start()
    try:
        assert calls.wait(timeout=5)
    finally:
        sweeper.stop()
    assert len(attempts) >= 2
