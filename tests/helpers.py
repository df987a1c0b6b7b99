"""
helpers.py - Shared constants and helpers for bottle ledger tests
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Tuple

from hypothesis import strategies as st

from bottle_ledger import (
    BottleLedger, ManualClock, LedgerPolicy, LedgerError,
    LIKES_THRESHOLD, COMMENTS_THRESHOLD,
)


WRITER = "relayer"
AUTHOR = "0xA11CE"
T0 = datetime(2025, 1, 1, 12, 0, 0)


def make_ledger(clock: ManualClock = None, **kwargs) -> BottleLedger:
    """Create a quiet gated ledger for testing."""
    return BottleLedger(
        "test",
        writer=kwargs.pop("writer", WRITER),
        clock=clock or ManualClock(T0),
        verbose=False,
        **kwargs,
    )


def add_likes(ledger: BottleLedger, bottle_id: int, count: int, prefix: str = "liker") -> None:
    """Like a bottle `count` times from distinct users."""
    for i in range(count):
        ledger.like_bottle(bottle_id, f"{prefix}_{i}", caller=WRITER)


def add_comments(ledger: BottleLedger, bottle_id: int, count: int, prefix: str = "commenter") -> None:
    """Comment on a bottle `count` times from distinct users."""
    for i in range(count):
        ledger.add_comment(bottle_id, f"QmComment_{prefix}_{i}", f"{prefix}_{i}", caller=WRITER)


def promote_by_engagement(ledger: BottleLedger, bottle_id: int) -> None:
    """Push a bottle across both reference thresholds."""
    add_comments(ledger, bottle_id, COMMENTS_THRESHOLD)
    add_likes(ledger, bottle_id, LIKES_THRESHOLD)


def snapshot(ledger: BottleLedger) -> Dict[str, Any]:
    """Capture every observable piece of ledger state."""
    bottles = {}
    for bottle_id in range(1, ledger.total_bottles + 1):
        bottles[bottle_id] = (
            ledger.get_bottle(bottle_id),
            tuple(ledger.get_bottle_comments(bottle_id)),
        )
    return {
        "bottles": bottles,
        "comments": {
            cid: ledger.get_comment(cid) for cid in range(1, ledger.total_comments + 1)
        },
        "likes": set(ledger._likes),
        "total_bottles": ledger.total_bottles,
        "total_comments": ledger.total_comments,
        "events": list(ledger.event_log),
    }


# ============================================================================
# RANDOM OPERATION DRIVER (conformance suite)
# ============================================================================

# Small thresholds and a short lifetime so random histories reach both
# promotion and expiration.
SMALL_POLICY = LedgerPolicy(
    expiration_period=timedelta(days=2),
    likes_threshold=3,
    comments_threshold=2,
)

USERS = ("alice", "bob", "carol", "dave", "")
OPERATIONS = ("create", "like", "unlike", "comment", "advance", "curate", "update", "promote")


def operations(max_size: int = 40):
    """
    Strategy for operation histories.

    Each operation is (kind, bottle_id, user, hours). bottle_id ranges past the
    bottles a history usually creates, and USERS includes an invalid identity,
    so histories mix accepted and rejected operations.
    """
    op = st.tuples(
        st.sampled_from(OPERATIONS),
        st.integers(min_value=0, max_value=6),
        st.sampled_from(USERS),
        st.integers(min_value=0, max_value=30),
    )
    return st.lists(op, max_size=max_size)


def apply_operation(ledger: BottleLedger, clock: ManualClock, op: Tuple) -> bool:
    """
    Apply one operation from `operations()`.

    Returns:
        True if the ledger accepted it, False if it raised LedgerError
    """
    kind, bottle_id, user, hours = op
    try:
        if kind == "create":
            ledger.create_bottle(f"Qm{hours}" if hours else "", user, caller=WRITER)
        elif kind == "like":
            ledger.like_bottle(bottle_id, user, caller=WRITER)
        elif kind == "unlike":
            ledger.unlike_bottle(bottle_id, user, caller=WRITER)
        elif kind == "comment":
            ledger.add_comment(bottle_id, f"QmC{hours}", user, caller=WRITER)
        elif kind == "advance":
            clock.advance(timedelta(hours=hours))
        elif kind == "curate":
            ledger.mark_forever(bottle_id, caller=WRITER)
        elif kind == "update":
            ledger.update_content_ref(bottle_id, f"QmU{hours}", caller=WRITER)
        elif kind == "promote":
            ledger.check_promotion(bottle_id, caller=WRITER)
    except LedgerError:
        return False
    return True
