"""
Tests for ScanSession: confirmation, duplicate suppression, activation and
completion tracking.
"""
import threading

import pytest

from scan_matcher import OrderContext, RejectionReason
from scan_session import ScanSession, SubmitOutcome


@pytest.fixture
def context():
    return OrderContext.build("ORD-1", "C1", ["A", "B"])


@pytest.fixture
def session(context, clock):
    s = ScanSession(context, duplicate_window=3.0, clock=clock)
    s.activate()
    return s


# ── Scenarios ────────────────────────────────────────────────────────────────

def test_scan_all_items_with_duplicate_in_between(session):
    result = session.submit("C1_A")
    assert result.outcome is SubmitOutcome.ACCEPTED
    assert result.item_id == "A"
    assert session.remaining_count() == 1

    result = session.submit("C1_A")
    assert result.outcome is SubmitOutcome.IGNORED
    assert session.confirmed_item_ids == {"A"}
    assert session.remaining_count() == 1

    result = session.submit("C1_B")
    assert result.outcome is SubmitOutcome.ACCEPTED
    assert result.item_id == "B"
    assert session.is_complete()


def test_customer_mismatch_leaves_state_unchanged(session):
    result = session.submit("C2_A")
    assert result.outcome is SubmitOutcome.REJECTED
    assert result.reason is RejectionReason.CUSTOMER_MISMATCH
    assert session.confirmed_item_ids == frozenset()
    assert session.last_accepted_tag is None


def test_item_not_in_order(session):
    result = session.submit("C1_Z")
    assert result.reason is RejectionReason.ITEM_NOT_IN_ORDER


def test_malformed_tag(session):
    result = session.submit("nodelimiter")
    assert result.reason is RejectionReason.MALFORMED_TAG


def test_inactive_session_ignores_scans(context, clock):
    session = ScanSession(context, clock=clock)
    session.activate()
    session.deactivate()

    assert session.submit("C1_A").outcome is SubmitOutcome.IGNORED
    assert session.confirmed_count() == 0

    session.activate()
    result = session.submit("C1_A")
    assert result.outcome is SubmitOutcome.ACCEPTED
    assert result.item_id == "A"


def test_new_session_starts_inactive(context, clock):
    session = ScanSession(context, clock=clock)
    assert not session.is_active
    assert session.submit("C1_A").outcome is SubmitOutcome.IGNORED


# ── Duplicate suppression ────────────────────────────────────────────────────

def test_rescan_after_window_is_accepted_but_not_counted_twice(session, clock):
    session.submit("C1_A")
    clock.advance(3.0)

    result = session.submit("C1_A")

    assert result.outcome is SubmitOutcome.ACCEPTED
    assert not result.newly_confirmed
    assert session.confirmed_count() == 1


def test_window_restarts_on_each_acceptance(session, clock):
    session.submit("C1_A")
    clock.advance(2.0)
    session.submit("C1_B")
    clock.advance(2.0)

    # 4s after A, but B was the last accepted tag
    assert session.submit("C1_A").outcome is SubmitOutcome.ACCEPTED
    # 0s after A: suppressed again
    assert session.submit("C1_A").outcome is SubmitOutcome.IGNORED


def test_rejection_does_not_reset_suppression(session, clock):
    session.submit("C1_A")
    clock.advance(1.0)
    session.submit("C2_A")

    assert session.submit("C1_A").outcome is SubmitOutcome.IGNORED


def test_explicit_now_overrides_clock(session):
    session.submit("C1_A", now=10.0)
    assert session.submit("C1_A", now=12.9).outcome is SubmitOutcome.IGNORED
    assert session.submit("C1_A", now=13.0).outcome is SubmitOutcome.ACCEPTED


def test_deactivate_forgets_last_accepted_tag(session):
    session.submit("C1_A")
    session.deactivate()
    session.activate()

    assert session.submit("C1_A").outcome is SubmitOutcome.ACCEPTED


def test_zero_window_disables_suppression(context, clock):
    session = ScanSession(context, duplicate_window=0.0, clock=clock)
    session.activate()
    session.submit("C1_A")
    assert session.submit("C1_A").outcome is SubmitOutcome.ACCEPTED


# ── Errors and progress ──────────────────────────────────────────────────────

def test_last_error_set_on_rejection_and_cleared_on_acceptance(session):
    session.submit("C1_Z")
    assert session.last_error == "Product not found in this order: Z"
    assert session.last_rejection is RejectionReason.ITEM_NOT_IN_ORDER

    session.submit("C1_A")
    assert session.last_error is None
    assert session.last_rejection is None


def test_accepted_message_names_the_garment(clock):
    context = OrderContext.build("ORD-1", "C1", ["A", "B"], {"A": "Wool coat"})
    session = ScanSession(context, clock=clock)
    session.activate()

    assert session.submit("C1_A").message == "Successfully ticketed: Wool coat"
    # Falls back to the item id when no display name is known
    assert session.submit("C1_B").message == "Successfully ticketed: B"


def test_confirmed_never_shrinks(session, clock):
    sizes = []
    for raw in ["C1_A", "C2_A", "C1_A", "bad", "C1_Z", "C1_B", "C1_B", "C1_A"]:
        session.submit(raw)
        clock.advance(1.0)
        sizes.append(session.confirmed_count())

    assert sizes == sorted(sizes)
    assert session.confirmed_item_ids <= set(session.context.item_ids)


def test_complete_iff_nothing_remaining(session, clock):
    for raw in ["C1_A", "C1_B"]:
        assert session.is_complete() == (session.remaining_count() == 0)
        session.submit(raw)
        clock.advance(5)
    assert session.is_complete()
    assert session.remaining_count() == 0


def test_scan_stats(session):
    session.submit("C1_A")
    session.submit("C1_A")
    session.submit("C2_A")
    assert session.scan_stats == {'accepted': 1, 'rejected': 1, 'ignored': 1}


def test_empty_order_is_complete(clock):
    session = ScanSession(OrderContext.build("ORD-0", "C1", []), clock=clock)
    assert session.is_complete()
    assert session.remaining_count() == 0


def test_concurrent_duplicate_submissions_confirm_once(context):
    session = ScanSession(context, duplicate_window=60.0)
    session.activate()
    results = []
    barrier = threading.Barrier(8)

    def worker():
        barrier.wait()
        results.append(session.submit("C1_A"))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    accepted = [r for r in results if r.outcome is SubmitOutcome.ACCEPTED]
    assert len(accepted) == 1
    assert session.confirmed_count() == 1
