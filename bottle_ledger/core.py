"""
Core types and pure helpers for the bottle ledger.

This module provides the foundational data structures and protocols:
1. Constants: reference expiration period and promotion thresholds
2. Protocols: BottleView for read-only ledger access
3. Immutable data structures: Bottle, Comment, LedgerPolicy
4. Exceptions: LedgerError and the rejection taxonomy
5. Identity validation

Nothing in this module mutates ledger state.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional, Protocol, Tuple, runtime_checkable


# ============================================================================
# CONSTANTS
# ============================================================================

# Reference promotion policy: a bottle becomes permanent once it has at least
# this many likes AND at least this many comments.
LIKES_THRESHOLD = 100
COMMENTS_THRESHOLD = 4

# Reference lifetime of a bottle that has not been promoted.
EXPIRATION_DAYS = 30
SECONDS_PER_DAY = 86400
EXPIRATION_PERIOD = timedelta(seconds=EXPIRATION_DAYS * SECONDS_PER_DAY)

# Null identity. An all-zero address is never a valid creator, liker or author.
ZERO_IDENTITY = "0x" + "0" * 40

# Ids are allocated from 1; 0 is never a valid bottle or comment id.
FIRST_ID = 1


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Opaque account identity (wallet address, user id, ...).
Identity = str

# Opaque pointer to externally stored content (e.g. an IPFS hash).
ContentRef = str

# Membership key of the like relation.
LikeKey = Tuple[int, Identity]


# ============================================================================
# ENUMS
# ============================================================================

class EventType(Enum):
    """
    Kinds of notification the ledger emits after a committed operation.

    The values double as the `action` string of an Event.
    """
    BOTTLE_CREATED = "bottle_created"
    BOTTLE_LIKED = "bottle_liked"
    BOTTLE_UNLIKED = "bottle_unliked"
    COMMENT_ADDED = "comment_added"
    BOTTLE_FOREVER = "bottle_forever"
    CONTENT_UPDATED = "content_updated"


class PromotionSource(Enum):
    """How a bottle reached the forever state."""
    THRESHOLD = "threshold"     # Ledger's own counters crossed both thresholds
    CURATED = "curated"         # mark_forever() by the writer
    EXTERNAL = "external"       # check_and_promote() with caller-supplied counts


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Base exception for every rejected ledger operation."""
    pass


class EmptyContent(LedgerError):
    """Raised when a required content reference is empty."""
    pass


class InvalidIdentity(LedgerError):
    """Raised when a user identity is missing, blank or the zero identity."""
    pass


class InvalidCreator(InvalidIdentity):
    """Raised when create_bottle() receives an invalid creator."""
    pass


class NotFound(LedgerError):
    """Raised when a referenced bottle or comment does not exist."""
    pass


class BottleNotFound(NotFound):
    """Raised when a bottle id was never allocated."""
    pass


class CommentNotFound(NotFound):
    """Raised when a comment id was never allocated."""
    pass


class Expired(LedgerError):
    """Raised when engaging with a non-forever bottle past its deadline."""
    pass


class BottleExpired(Expired):
    """Raised by like/unlike/comment on an expired bottle."""
    pass


class Unauthorized(LedgerError):
    """Raised when the caller is not the permitted writer."""
    pass


class AlreadyLiked(LedgerError):
    """Raised when the same user likes the same bottle twice."""
    pass


class NotLiked(LedgerError):
    """Raised when a user unlikes a bottle they have not liked."""
    pass


class AlreadyForever(LedgerError):
    """Raised when promoting a bottle that is already permanent."""
    pass


class ThresholdsNotMet(LedgerError):
    """Raised when explicit promotion is attempted below either threshold."""
    pass


class CounterUnderflow(LedgerError):
    """Raised when unliking a bottle whose like count is already zero."""
    pass


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass(frozen=True, slots=True)
class LedgerPolicy:
    """
    Tunable rules of a BottleLedger.

    Attributes:
        expiration_period: Lifetime of a bottle from creation until it expires.
        likes_threshold: Minimum like count for automatic promotion (inclusive).
        comments_threshold: Minimum comment count for automatic promotion (inclusive).
        track_likes: Record who liked what, rejecting duplicate likes and unlikes
                     without a prior like. When False the ledger trusts the caller
                     and adjusts counts unconditionally.
        index_user_bottles: Maintain the creator -> bottle ids reverse index.
    """
    expiration_period: timedelta = EXPIRATION_PERIOD
    likes_threshold: int = LIKES_THRESHOLD
    comments_threshold: int = COMMENTS_THRESHOLD
    track_likes: bool = True
    index_user_bottles: bool = True

    def __post_init__(self):
        if not isinstance(self.expiration_period, timedelta):
            raise ValueError(
                f"expiration_period must be timedelta, got {type(self.expiration_period)}"
            )
        if self.expiration_period <= timedelta(0):
            raise ValueError("expiration_period must be positive")
        if self.likes_threshold < 0:
            raise ValueError(f"likes_threshold must be non-negative, got {self.likes_threshold}")
        if self.comments_threshold < 0:
            raise ValueError(
                f"comments_threshold must be non-negative, got {self.comments_threshold}"
            )


DEFAULT_POLICY = LedgerPolicy()


# ============================================================================
# RECORDS
# ============================================================================

@dataclass(frozen=True, slots=True)
class Bottle:
    """
    A time-limited post with engagement counters.

    Records are immutable; the ledger replaces a bottle wholesale on every
    change, so a reader never observes a half-updated record.

    Attributes:
        id: Sequential id, starting at 1.
        creator: Account that created the bottle.
        content_ref: Opaque reference to the externally stored message.
        created_at: Clock reading at creation.
        expires_at: created_at + expiration period, fixed at creation.
        like_count: Accepted likes minus accepted unlikes.
        comment_count: Accepted comments.
        is_forever: Set once, never cleared. Forever bottles never expire.
        exists: Existence marker. Stored bottles always carry True; there is
                no hard deletion.
    """
    id: int
    creator: Identity
    content_ref: ContentRef
    created_at: datetime
    expires_at: datetime
    like_count: int = 0
    comment_count: int = 0
    is_forever: bool = False
    exists: bool = True

    def __repr__(self) -> str:
        status = "forever" if self.is_forever else f"expires {self.expires_at.isoformat()}"
        return (
            f"Bottle(#{self.id} by {self.creator}, {self.content_ref!r}, "
            f"likes={self.like_count}, comments={self.comment_count}, {status})"
        )


@dataclass(frozen=True, slots=True)
class Comment:
    """
    A comment attached to a bottle. Created once and never changed.

    Attributes:
        id: Sequential id, starting at 1, independent of bottle ids.
        bottle_id: Parent bottle (existed and was live when the comment was accepted).
        author: Account that wrote the comment.
        content_ref: Opaque reference to the comment body.
        created_at: Clock reading at creation.
    """
    id: int
    bottle_id: int
    author: Identity
    content_ref: ContentRef
    created_at: datetime


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class BottleView(Protocol):
    """
    Read-only interface to ledger state.

    Helpers that accept a BottleView declare they only read. BottleLedger
    implements this protocol; tests use FakeView.
    """

    @property
    def current_time(self) -> datetime:
        """Return the current clock reading."""
        ...

    @property
    def policy(self) -> LedgerPolicy:
        """Return the rules the ledger enforces."""
        ...

    def get_bottle(self, bottle_id: int) -> Bottle:
        """Return the bottle record. Raises BottleNotFound for unknown ids."""
        ...

    def get_bottle_comments(self, bottle_id: int) -> List[int]:
        """Return the bottle's comment ids in acceptance order."""
        ...

    def has_user_liked(self, bottle_id: int, user: Identity) -> bool:
        """Return True if the user currently likes the bottle."""
        ...


# ============================================================================
# VALIDATION
# ============================================================================

def is_valid_identity(identity: Optional[Identity]) -> bool:
    """Return True unless the identity is None, blank or the zero identity."""
    if identity is None or not isinstance(identity, str):
        return False
    stripped = identity.strip()
    if not stripped:
        return False
    return stripped.lower() != ZERO_IDENTITY


def require_identity(identity: Optional[Identity], role: str, error=InvalidIdentity) -> None:
    """Raise `error` if identity is not a usable account identity."""
    if not is_valid_identity(identity):
        raise error(f"Invalid {role} identity: {identity!r}")


def require_content(content_ref: Optional[ContentRef]) -> None:
    """Raise EmptyContent if content_ref is missing or blank."""
    if content_ref is None or not isinstance(content_ref, str) or not content_ref.strip():
        raise EmptyContent("Content reference cannot be empty")
