"""
bottle_ledger - Ledger of Time-Limited Bottles

A single-writer ledger of user "bottle" posts. Bottles expire after a fixed
period unless likes and comments push them past the promotion thresholds,
which makes them permanent ("forever").

Usage:
    from bottle_ledger import BottleLedger, ManualClock

    clock = ManualClock(datetime(2025, 1, 1))
    ledger = BottleLedger("main", writer="relayer", clock=clock, verbose=False)

    bottle_id = ledger.create_bottle("QmMessageHash", "alice", caller="relayer")
    ledger.like_bottle(bottle_id, "bob", caller="relayer")
    ledger.add_comment(bottle_id, "QmCommentHash", "carol", caller="relayer")

    clock.advance(timedelta(days=31))
    ledger.is_expired(bottle_id)   # True unless promoted
"""

# Core types
from .core import (
    Bottle,
    Comment,
    BottleView,
    LedgerPolicy,
    EventType,
    PromotionSource,
    Identity,
    ContentRef,
    LedgerError,
    EmptyContent,
    InvalidIdentity,
    InvalidCreator,
    NotFound,
    BottleNotFound,
    CommentNotFound,
    Expired,
    BottleExpired,
    Unauthorized,
    AlreadyLiked,
    NotLiked,
    AlreadyForever,
    ThresholdsNotMet,
    CounterUnderflow,
    is_valid_identity,
    DEFAULT_POLICY,
    LIKES_THRESHOLD,
    COMMENTS_THRESHOLD,
    EXPIRATION_DAYS,
    SECONDS_PER_DAY,
    EXPIRATION_PERIOD,
    ZERO_IDENTITY,
)

# Ledger
from .ledger import BottleLedger

# Expiration and promotion rules
from .lifecycle import (
    compute_expires_at,
    is_expired,
    time_remaining,
    meets_thresholds,
    should_promote,
    require_live,
)

# Time sources
from .clock import Clock, SystemClock, ManualClock

# Authorization
from .access import WriterPolicy, SingleWriterPolicy, OpenPolicy

# Notifications
from .events import Event, EventSink, EventBus, EventRecorder, make_event

__all__ = [
    # Core
    'Bottle', 'Comment', 'BottleView', 'LedgerPolicy', 'EventType', 'PromotionSource',
    'Identity', 'ContentRef', 'is_valid_identity',
    'LedgerError', 'EmptyContent', 'InvalidIdentity', 'InvalidCreator',
    'NotFound', 'BottleNotFound', 'CommentNotFound', 'Expired', 'BottleExpired',
    'Unauthorized', 'AlreadyLiked', 'NotLiked', 'AlreadyForever',
    'ThresholdsNotMet', 'CounterUnderflow',
    'DEFAULT_POLICY', 'LIKES_THRESHOLD', 'COMMENTS_THRESHOLD',
    'EXPIRATION_DAYS', 'SECONDS_PER_DAY', 'EXPIRATION_PERIOD', 'ZERO_IDENTITY',
    # Ledger
    'BottleLedger',
    # Lifecycle
    'compute_expires_at', 'is_expired', 'time_remaining',
    'meets_thresholds', 'should_promote', 'require_live',
    # Clock
    'Clock', 'SystemClock', 'ManualClock',
    # Access
    'WriterPolicy', 'SingleWriterPolicy', 'OpenPolicy',
    # Events
    'Event', 'EventSink', 'EventBus', 'EventRecorder', 'make_event',
]

__version__ = '1.0.0'
