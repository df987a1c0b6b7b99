"""
conftest.py - Shared pytest fixtures for bottle ledger tests

Provides common fixtures used across unit, conformance and functional tests:
- A manual clock pinned to a fixed start time
- Gated, open and untracked ledgers
- A ledger with one fresh bottle
- An event recorder subscribed to the ledger
"""

import pytest

from bottle_ledger import (
    BottleLedger, ManualClock, EventRecorder, LedgerPolicy, OpenPolicy,
)

from tests.helpers import WRITER, AUTHOR, T0, make_ledger


@pytest.fixture
def clock():
    """Manual clock starting at T0."""
    return ManualClock(T0)


@pytest.fixture
def ledger(clock):
    """Gated ledger with no bottles."""
    return make_ledger(clock)


@pytest.fixture
def open_ledger(clock):
    """Ledger accepting writes from any caller."""
    return BottleLedger("open", writer_policy=OpenPolicy(), clock=clock, verbose=False)


@pytest.fixture
def untracked_ledger(clock):
    """Ledger that trusts the caller's like accounting."""
    return make_ledger(clock, policy=LedgerPolicy(track_likes=False))


@pytest.fixture
def bottle(ledger):
    """Id of one fresh bottle created by AUTHOR at T0."""
    return ledger.create_bottle("Qm1", AUTHOR, caller=WRITER)


@pytest.fixture
def recorder(ledger):
    """Event recorder subscribed to the ledger's bus."""
    rec = EventRecorder()
    ledger.event_bus.subscribe(rec)
    return rec
