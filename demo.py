#!/usr/bin/env python3
"""
demo.py - Walkthrough: A Bottle From Creation to Forever

Each step builds on the previous one. Press Enter to advance.

WHAT YOU'LL SEE:
  1-2: Foundation  - The empty ledger, creating a bottle
  3-4: Engagement  - Likes, comments, rejections that change nothing
  5:   Expiration  - Time passes and an unpromoted bottle expires
  6:   Forever     - Crossing both thresholds makes a bottle permanent
  7:   Audit       - The event log and replay()

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
import sys

from bottle_ledger import (
    BottleLedger, ManualClock, EventRecorder, EventType,
    LedgerError, LIKES_THRESHOLD, COMMENTS_THRESHOLD, EXPIRATION_PERIOD,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the walkthrough. Modify these to experiment."""
    start_time: datetime = datetime(2025, 1, 1, 9, 0, 0)
    writer: str = "relayer"
    author: str = "0xA11CE"


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def step_01_empty_ledger():
    step_header(1, "The Empty Ledger",
        "A ledger starts with no bottles, a clock and one authorized writer.")
    clock = ManualClock(CONFIG.start_time)
    ledger = BottleLedger("demo", writer=CONFIG.writer, clock=clock, verbose=True)
    recorder = EventRecorder()
    ledger.event_bus.subscribe(recorder)
    print(f"Ledger:         {ledger!r}")
    print(f"Current time:   {ledger.current_time}")
    print(f"Thresholds:     {LIKES_THRESHOLD} likes AND {COMMENTS_THRESHOLD} comments")
    print(f"Lifetime:       {EXPIRATION_PERIOD.days} days")
    return ledger, clock, recorder


def step_02_create(ledger: BottleLedger) -> int:
    step_header(2, "Creating a Bottle",
        "The writer creates a bottle on behalf of its author.")
    bottle_id = ledger.create_bottle("QmDemoMessage", CONFIG.author, caller=CONFIG.writer)
    print(f"\n{ledger.get_bottle(bottle_id)!r}")
    return bottle_id


def step_03_engage(ledger: BottleLedger, bottle_id: int):
    step_header(3, "Likes and Comments",
        "Engagement is counted exactly; each user may like a bottle once.")
    ledger.like_bottle(bottle_id, "bob", caller=CONFIG.writer)
    ledger.add_comment(bottle_id, "QmNiceBottle", "carol", caller=CONFIG.writer)
    print(f"\n{ledger.get_bottle(bottle_id)!r}")
    print(f"Comments: {ledger.get_bottle_comments(bottle_id)}")


def step_04_rejections(ledger: BottleLedger, bottle_id: int):
    step_header(4, "Rejections",
        "A rejected operation changes nothing and consumes no id.")
    attempts = [
        lambda: ledger.like_bottle(bottle_id, "bob", caller=CONFIG.writer),
        lambda: ledger.create_bottle("", CONFIG.author, caller=CONFIG.writer),
        lambda: ledger.create_bottle("QmSneaky", "mallory", caller="mallory"),
    ]
    for attempt in attempts:
        try:
            attempt()
        except LedgerError:
            pass
    print(f"\nStill {ledger.total_bottles} bottle(s); {ledger.get_bottle(bottle_id)!r}")


def step_05_expiration(ledger: BottleLedger, clock: ManualClock, bottle_id: int):
    step_header(5, "Expiration",
        "Expiration is computed from the clock; nothing is deleted.")
    print(f"Time remaining: {ledger.get_time_remaining(bottle_id)}")
    clock.advance(EXPIRATION_PERIOD + timedelta(seconds=1))
    print(f"After {EXPIRATION_PERIOD.days} days: expired={ledger.is_expired(bottle_id)}")
    try:
        ledger.add_comment(bottle_id, "QmTooLate", "dave", caller=CONFIG.writer)
    except LedgerError:
        pass


def step_06_forever(ledger: BottleLedger) -> int:
    step_header(6, "Becoming Forever",
        "Both thresholds together make a bottle permanent.")
    verbose, ledger.verbose = ledger.verbose, False
    bottle_id = ledger.create_bottle("QmPopular", CONFIG.author, caller=CONFIG.writer)
    for i in range(COMMENTS_THRESHOLD):
        ledger.add_comment(bottle_id, f"QmComment{i}", f"fan_{i}", caller=CONFIG.writer)
    for i in range(LIKES_THRESHOLD - 1):
        ledger.like_bottle(bottle_id, f"liker_{i}", caller=CONFIG.writer)
    ledger.verbose = verbose
    print(f"One like short: {ledger.get_bottle(bottle_id)!r}")
    ledger.like_bottle(bottle_id, "the_last_liker", caller=CONFIG.writer)
    ledger.clock.advance(timedelta(days=365))
    print(f"\nA year later: expired={ledger.is_expired(bottle_id)}")
    return bottle_id


def step_07_audit(ledger: BottleLedger, recorder: EventRecorder):
    step_header(7, "The Event Log",
        "Every committed operation is logged; replay() rebuilds the same ledger.")
    print(f"Events logged:    {len(ledger.event_log)}")
    print(f"Events observed:  {len(recorder.events)}")
    print(f"Promotions:       {len(recorder.of_type(EventType.BOTTLE_FOREVER))}")
    replayed = ledger.replay(verbose=False)
    print(f"Replayed:         {replayed!r}")
    print(f"Identical log:    {replayed.event_log == ledger.event_log}")


def main():
    ledger, clock, recorder = step_01_empty_ledger()
    wait_for_enter()
    bottle_id = step_02_create(ledger)
    wait_for_enter()
    step_03_engage(ledger, bottle_id)
    wait_for_enter()
    step_04_rejections(ledger, bottle_id)
    wait_for_enter()
    step_05_expiration(ledger, clock, bottle_id)
    wait_for_enter()
    step_06_forever(ledger)
    wait_for_enter()
    step_07_audit(ledger, recorder)


if __name__ == "__main__":
    main()
