"""
test_bottle_scenarios.py - End-to-end bottle lifecycle scenario tests

Tests complete bottle lifecycles:
- Creation to silent expiry
- Engagement to automatic permanence
- Rejections that leave the ledger untouched
- Curation and off-ledger promotion
- An indexer rebuilding the ledger from notifications
"""

import pytest
from datetime import timedelta

from bottle_ledger import (
    BottleLedger, ManualClock, OpenPolicy, EventRecorder, EventType,
    EmptyContent, AlreadyLiked, BottleExpired, AlreadyForever, Unauthorized,
    EXPIRATION_PERIOD, LIKES_THRESHOLD, COMMENTS_THRESHOLD,
)

from tests.helpers import WRITER, T0, make_ledger, add_likes, add_comments, snapshot


class TestExpiryLifecycle:
    """A bottle nobody engages with fades out."""

    def test_unengaged_bottle_expires(self):
        clock = ManualClock(T0)
        ledger = make_ledger(clock)
        bottle_id = ledger.create_bottle("Qm1", "0xA11CE", caller=WRITER)
        assert bottle_id == 1

        clock.advance(EXPIRATION_PERIOD + timedelta(seconds=1))
        assert ledger.is_expired(bottle_id)
        assert ledger.get_time_remaining(bottle_id) == timedelta(0)
        # Still readable after expiry
        assert ledger.get_bottle(bottle_id).content_ref == "Qm1"

    def test_expired_bottle_rejects_comment(self):
        clock = ManualClock(T0)
        ledger = make_ledger(clock)
        bottle_id = ledger.create_bottle("Qm1", "0xA11CE", caller=WRITER)
        clock.advance(EXPIRATION_PERIOD + timedelta(seconds=1))

        with pytest.raises(BottleExpired):
            ledger.add_comment(bottle_id, "QmLate", "0xB0B", caller=WRITER)
        assert ledger.get_bottle(bottle_id).comment_count == 0
        assert ledger.get_bottle_comments(bottle_id) == []


class TestPermanenceLifecycle:
    """Engagement makes a bottle permanent."""

    def test_four_comments_and_hundred_likes(self):
        clock = ManualClock(T0)
        ledger = make_ledger(clock)
        recorder = EventRecorder()
        ledger.event_bus.subscribe(recorder, actions={EventType.BOTTLE_FOREVER})
        bottle_id = ledger.create_bottle("Qm1", "0xA11CE", caller=WRITER)

        for day in range(COMMENTS_THRESHOLD):
            clock.advance(timedelta(days=1))
            ledger.add_comment(bottle_id, f"QmReply{day}", f"replier_{day}", caller=WRITER)
        add_likes(ledger, bottle_id, LIKES_THRESHOLD - 1)
        assert recorder.events == []

        ledger.like_bottle(bottle_id, "the_hundredth", caller=WRITER)
        bottle = ledger.get_bottle(bottle_id)
        assert bottle.is_forever
        assert bottle.like_count == LIKES_THRESHOLD
        assert bottle.comment_count == COMMENTS_THRESHOLD
        assert len(recorder.events) == 1

        # A year later the bottle is still live and still taking engagement
        clock.advance(timedelta(days=365))
        assert not ledger.is_expired(bottle_id)
        ledger.add_comment(bottle_id, "QmAnniversary", "replier_0", caller=WRITER)
        assert ledger.get_bottle(bottle_id).comment_count == COMMENTS_THRESHOLD + 1

    def test_race_against_the_deadline(self):
        clock = ManualClock(T0)
        ledger = make_ledger(clock)
        bottle_id = ledger.create_bottle("Qm1", "0xA11CE", caller=WRITER)
        add_comments(ledger, bottle_id, COMMENTS_THRESHOLD)
        add_likes(ledger, bottle_id, LIKES_THRESHOLD - 1)

        clock.advance(EXPIRATION_PERIOD)
        with pytest.raises(BottleExpired):
            ledger.like_bottle(bottle_id, "too_late", caller=WRITER)
        assert not ledger.get_bottle(bottle_id).is_forever

    def test_curator_rescues_expired_bottle(self):
        clock = ManualClock(T0)
        ledger = make_ledger(clock)
        bottle_id = ledger.create_bottle("Qm1", "0xA11CE", caller=WRITER)
        clock.advance(EXPIRATION_PERIOD * 2)

        ledger.mark_forever(bottle_id, caller=WRITER)
        ledger.like_bottle(bottle_id, "0xB0B", caller=WRITER)
        assert ledger.get_bottle(bottle_id).like_count == 1
        with pytest.raises(AlreadyForever):
            ledger.check_and_promote(bottle_id, 1000, 100, caller=WRITER)

    def test_off_ledger_engagement(self):
        ledger = make_ledger()
        bottle_id = ledger.create_bottle("Qm1", "0xA11CE", caller=WRITER)
        ledger.check_and_promote(bottle_id, 150, 12, caller=WRITER)
        bottle = ledger.get_bottle(bottle_id)
        assert bottle.is_forever
        assert (bottle.like_count, bottle.comment_count) == (0, 0)


class TestRejectionScenarios:
    """Rejected calls leave no trace."""

    def test_empty_create_rejected(self):
        ledger = make_ledger()
        before = snapshot(ledger)
        with pytest.raises(EmptyContent):
            ledger.create_bottle("", "0xA11CE", caller=WRITER)
        assert snapshot(ledger) == before
        assert ledger.total_bottles == 0

    def test_double_like_rejected(self):
        ledger = make_ledger()
        bottle_id = ledger.create_bottle("Qm1", "0xA11CE", caller=WRITER)
        ledger.like_bottle(bottle_id, "0xB0B", caller=WRITER)
        with pytest.raises(AlreadyLiked):
            ledger.like_bottle(bottle_id, "0xB0B", caller=WRITER)
        assert ledger.get_bottle(bottle_id).like_count == 1

    def test_impostor_cannot_write(self):
        ledger = make_ledger()
        bottle_id = ledger.create_bottle("Qm1", "0xA11CE", caller=WRITER)
        with pytest.raises(Unauthorized):
            ledger.mark_forever(bottle_id, caller="0xA11CE")
        assert not ledger.get_bottle(bottle_id).is_forever


class TestIndexerScenario:
    """An off-ledger indexer rebuilds the ledger from notifications."""

    def test_indexer_rebuilds_ledger(self):
        clock = ManualClock(T0)
        ledger = BottleLedger("live", writer_policy=OpenPolicy(), clock=clock, verbose=False)
        indexer = EventRecorder()
        ledger.event_bus.subscribe(indexer)

        first = ledger.create_bottle("Qm1", "alice", caller="alice")
        second = ledger.create_bottle("Qm2", "bob", caller="bob")
        ledger.like_bottle(first, "bob", caller="bob")
        clock.advance(timedelta(days=3))
        ledger.add_comment(first, "QmReply", "carol", caller="carol")
        ledger.unlike_bottle(first, "bob", caller="bob")
        ledger.update_content_ref(second, "Qm2b", caller="bob")

        # The indexer's copy of the log is enough to rebuild
        assert indexer.events == ledger.event_log
        replayed = ledger.replay(verbose=False)
        assert snapshot(replayed) == snapshot(ledger)
        assert replayed.get_user_bottles("alice") == [first]
        assert replayed.get_bottle(second).content_ref == "Qm2b"
