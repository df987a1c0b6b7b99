"""
access.py - Writer authorization policies

Every mutating BottleLedger operation names its caller. The policy decides
whether that caller may write.

Classes:
- WriterPolicy: Protocol defining the authorization check
- SingleWriterPolicy: Only one fixed identity may write (default)
- OpenPolicy: Anyone may write; users self-identify as creator/liker/author
"""

from typing import Optional, Protocol, runtime_checkable

from .core import Identity, is_valid_identity


@runtime_checkable
class WriterPolicy(Protocol):
    """Protocol for authorization checks on mutating operations."""

    def is_authorized_writer(self, caller: Optional[Identity]) -> bool:
        """Return True if caller may perform mutations."""
        ...


class SingleWriterPolicy:
    """
    Restrict all mutations to one identity fixed at ledger initialization.

    The writer relays operations on behalf of users, who are passed as
    explicit parameters (creator, liker, author).
    """

    def __init__(self, writer: Identity):
        if not is_valid_identity(writer):
            raise ValueError(f"Writer identity is invalid: {writer!r}")
        self.writer = writer

    def is_authorized_writer(self, caller: Optional[Identity]) -> bool:
        return caller is not None and caller == self.writer

    def __repr__(self):
        return f"SingleWriterPolicy({self.writer})"


class OpenPolicy:
    """Accept any caller. Identities are still validated per operation."""

    def is_authorized_writer(self, caller: Optional[Identity]) -> bool:
        return True

    def __repr__(self):
        return "OpenPolicy()"
