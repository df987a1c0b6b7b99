"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the bottle ledger.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. expiration.py - Expired iff non-forever and now >= expires_at
2. counters.py - Counts match the likes and comments actually held
3. promotion.py - Promotion rule and irreversibility of forever
4. identifiers.py - Dense ids starting at 1
5. comment_order.py - Per-bottle comment order is acceptance order
6. atomicity.py - Rejected operations change nothing
7. replay.py - The event log rebuilds identical state

These tests use hypothesis for property-based testing.
"""
