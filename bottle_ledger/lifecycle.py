"""
lifecycle.py - Pure expiration and promotion rules

Functions here take plain records or a read-only BottleView and never mutate
anything. BottleLedger calls them to validate operations before committing.

Expiration is computed lazily: a bottle has no "expired" state transition,
only a deadline compared against the current clock reading.
"""

from __future__ import annotations
from datetime import datetime, timedelta
from typing import Optional

from .core import (
    Bottle, BottleView, LedgerPolicy,
    BottleExpired, DEFAULT_POLICY,
)


def compute_expires_at(created_at: datetime, policy: LedgerPolicy = DEFAULT_POLICY) -> datetime:
    """Deadline for a bottle created at `created_at`."""
    return created_at + policy.expiration_period


def is_expired(bottle: Bottle, now: datetime) -> bool:
    """
    Return True if the bottle is past its deadline.

    Forever bottles never expire. Otherwise the deadline instant itself is
    already expired: now < expires_at is live, now >= expires_at is expired.
    """
    if bottle.is_forever:
        return False
    return now >= bottle.expires_at


def time_remaining(bottle: Bottle, now: datetime) -> Optional[timedelta]:
    """
    Time left before the bottle expires.

    Returns:
        None for forever bottles, timedelta(0) once expired, otherwise
        expires_at - now.
    """
    if bottle.is_forever:
        return None
    if is_expired(bottle, now):
        return timedelta(0)
    return bottle.expires_at - now


def meets_thresholds(
    like_count: int,
    comment_count: int,
    policy: LedgerPolicy = DEFAULT_POLICY,
) -> bool:
    """Both counts must reach their thresholds (inclusive); partial never counts."""
    return (
        like_count >= policy.likes_threshold
        and comment_count >= policy.comments_threshold
    )


def should_promote(bottle: Bottle, policy: LedgerPolicy = DEFAULT_POLICY) -> bool:
    """True if the bottle is not yet forever and its own counters meet both thresholds."""
    if bottle.is_forever:
        return False
    return meets_thresholds(bottle.like_count, bottle.comment_count, policy)


def require_live(view: BottleView, bottle_id: int, now: Optional[datetime] = None) -> Bottle:
    """
    Fetch a bottle that can still accept engagement.

    Args:
        view: Read-only ledger access
        bottle_id: Bottle to fetch
        now: Clock reading of the calling operation (default: view.current_time)

    Raises:
        BottleNotFound: If the bottle does not exist
        BottleExpired: If the bottle is past its deadline and not forever
    """
    bottle = view.get_bottle(bottle_id)
    if now is None:
        now = view.current_time
    if is_expired(bottle, now):
        raise BottleExpired(
            f"Bottle {bottle_id} expired at {bottle.expires_at.isoformat()}"
        )
    return bottle
