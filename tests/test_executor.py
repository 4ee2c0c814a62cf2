"""
tests/test_executor.py
======================

TransitionExecutor against the in‑memory registry: forced actions,
completion types, and the compare‑and‑swap behaviour under contention.
"""

import threading
from datetime import date, datetime, timezone

import pytest

from cadence.errors import ActiveConflict, InvalidTransition, StaleState, TransitionDenied, ValidationError
from cadence.executor import TransitionExecutor
from cadence.models import BatchStatus, CompletionType, Family, TermStatus

FIXED_NOW = datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc)


def _two_batches(service):
    a = service.create("batch", "A", date(2025, 1, 10), date(2025, 1, 20))
    b = service.create("batch", "B", date(2025, 2, 1), date(2025, 2, 10))
    return a, b


# ---------------------------------------------------------------------------
# activation
# ---------------------------------------------------------------------------
def test_plain_activation_before_start_is_forceable(service):
    a, _ = _two_batches(service)
    with pytest.raises(TransitionDenied) as exc:
        service.activate(a.id, today=date(2025, 1, 5))
    assert exc.value.forceable
    assert service.get(a.id).status is BatchStatus.DRAFT


def test_force_activate_rewrites_start_date_in_same_write(service):
    a, _ = _two_batches(service)
    out = service.force_activate(a.id, "kick-off moved up", today=date(2025, 1, 5))
    assert out.status is BatchStatus.ACTIVE
    assert out.start_date == date(2025, 1, 5)
    assert out.status_reason == "kick-off moved up"
    assert out.version == 2


def test_force_requires_reason(service):
    a, _ = _two_batches(service)
    with pytest.raises(ValidationError) as exc:
        service.force_activate(a.id, "   ", today=date(2025, 1, 5))
    assert exc.value.field == "reason"


def test_second_activation_in_family_conflicts(service):
    a, b = _two_batches(service)
    service.activate(a.id, today=date(2025, 1, 12))
    with pytest.raises(ActiveConflict):
        service.force_activate(b.id, "overlap test", today=date(2025, 1, 12))


def test_activating_active_entity_is_conflict(service):
    a, _ = _two_batches(service)
    service.activate(a.id, today=date(2025, 1, 12))
    with pytest.raises(ActiveConflict):
        service.activate(a.id, today=date(2025, 1, 12))


def test_unknown_target_status_is_invalid(service):
    a, _ = _two_batches(service)
    with pytest.raises(InvalidTransition):
        service.executor.transition(a.id, "archived", today=date(2025, 1, 12))


def test_unknown_id_raises_keyerror(service):
    with pytest.raises(KeyError):
        service.activate("BAT999", today=date(2025, 1, 12))


# ---------------------------------------------------------------------------
# closing
# ---------------------------------------------------------------------------
def test_manual_close_pulls_end_date_to_today(service):
    a, _ = _two_batches(service)
    service.activate(a.id, today=date(2025, 1, 12))
    closed = service.close(a.id, today=date(2025, 1, 15))
    assert closed.status is BatchStatus.CLOSED
    assert closed.end_date == date(2025, 1, 15)
    assert closed.completion_type is CompletionType.MANUAL


def test_force_close_of_draft_records_forced(service):
    a, _ = _two_batches(service)
    closed = service.force_close(a.id, "cancelled", today=date(2025, 1, 25))
    assert closed.status is BatchStatus.CLOSED
    assert closed.completion_type is CompletionType.FORCED
    assert closed.end_date == date(2025, 1, 20)


def test_sweep_close_records_automatic(service):
    term = service.create("term", "2025", date(2025, 1, 1), date(2025, 12, 31))
    service.refresh("term", date(2025, 1, 1))
    service.refresh("term", date(2026, 1, 1))
    done = service.get(term.id)
    assert done.status is TermStatus.COMPLETED
    assert done.completion_type is CompletionType.AUTOMATIC


def test_closing_clears_pause(service):
    a, _ = _two_batches(service)
    service.activate(a.id, today=date(2025, 1, 12))
    service.pause(a.id, "holiday")
    closed = service.close(a.id, today=date(2025, 1, 13))
    assert closed.paused_at is None and closed.paused_reason is None


# ---------------------------------------------------------------------------
# reopen
# ---------------------------------------------------------------------------
def test_reopen_after_extension(service):
    a, _ = _two_batches(service)
    service.activate(a.id, today=date(2025, 1, 12))
    service.refresh("batch", date(2025, 1, 21))
    assert service.get(a.id).status is BatchStatus.CLOSED

    service.extend(a.id, date(2025, 1, 25), reason="late responses")
    assert service.get(a.id).status is BatchStatus.CLOSED
    with pytest.raises(TransitionDenied):
        service.executor.transition(a.id, BatchStatus.ACTIVE, today=date(2025, 1, 22))

    reopened = service.reopen(a.id, "late responses", today=date(2025, 1, 22))
    assert reopened.status is BatchStatus.ACTIVE
    assert reopened.completion_type is None


# ---------------------------------------------------------------------------
# compare‑and‑swap
# ---------------------------------------------------------------------------
def test_plan_then_stale_commit(service):
    a, _ = _two_batches(service)
    first = service.executor.plan(a.id, BatchStatus.ACTIVE, today=date(2025, 1, 12))
    second = service.executor.plan(a.id, BatchStatus.ACTIVE, today=date(2025, 1, 12))
    service.executor.commit(first)
    with pytest.raises(StaleState):
        service.executor.commit(second)


def test_stale_sweep_proposal_rejected(service):
    a, _ = _two_batches(service)
    (proposal,) = service.preview_sweep("batch", date(2025, 1, 12))
    service.activate(a.id, today=date(2025, 1, 12))
    with pytest.raises(StaleState):
        service.executor.apply(proposal, date(2025, 1, 12))


@pytest.mark.parametrize("same_entity", [True, False])
def test_concurrent_activation_exactly_one_wins(service, same_entity):
    """Both writers pass the guard; only one commit may land."""
    a, b = _two_batches(service)
    if same_entity:
        plans = [service.executor.plan(a.id, BatchStatus.ACTIVE, today=date(2025, 1, 12))
                 for _ in range(2)]
    else:
        plans = [
            service.executor.plan(a.id, BatchStatus.ACTIVE, today=date(2025, 1, 12)),
            service.executor.plan(b.id, BatchStatus.ACTIVE, today=date(2025, 2, 2)),
        ]

    barrier = threading.Barrier(2)
    results, errors = [], []

    def commit(plan):
        barrier.wait()
        try:
            results.append(service.executor.commit(plan))
        except (StaleState, ActiveConflict) as exc:
            errors.append(exc)

    threads = [threading.Thread(target=commit, args=(p,)) for p in plans]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(results) == 1 and len(errors) == 1
    assert len(service.store.find_by_status(Family.BATCH, BatchStatus.ACTIVE)) == 1


def test_clock_is_injectable(registry):
    ex = TransitionExecutor(registry, clock=lambda: FIXED_NOW)
    ent = ex.create("term", "T", date(2025, 1, 1), date(2025, 6, 30))
    out = ex.transition(ent.id, TermStatus.ACTIVE, today=date(2025, 1, 1))
    assert out.updated_at == FIXED_NOW
