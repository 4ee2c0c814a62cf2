"""
tests/test_guards.py
====================

Guards are pure: every test builds a snapshot by hand and asks for a
verdict on a fixed day.
"""

from datetime import date, timedelta

import pytest

from cadence.errors import ActiveConflict, DateOverlap, InvalidTransition, TransitionDenied, ValidationError
from cadence.guards import (
    GuardResult,
    Verdict,
    check_creation,
    check_extension,
    check_update,
    check_transition,
    next_sibling,
)
from cadence.models import BatchStatus, Entity, Family, TermStatus


def _batch(id_, start, end, status=BatchStatus.DRAFT, name=None):
    return Entity(id_, Family.BATCH, name or id_, start, end, status=status)


def _term(id_, start, end, status=TermStatus.UPCOMING):
    return Entity(id_, Family.TERM, id_, start, end, status=status)


# ---------------------------------------------------------------------------
# creation
# ---------------------------------------------------------------------------
def test_creation_rejects_inverted_window():
    res = check_creation(Family.BATCH, "Q1", date(2025, 2, 1), date(2025, 2, 1), [])
    assert res.verdict is Verdict.DENY
    with pytest.raises(ValidationError):
        res.raise_for_denial()


def test_creation_rejects_overlap_with_live_sibling():
    existing = [_batch("BAT001", date(2025, 1, 10), date(2025, 1, 20))]
    res = check_creation(Family.BATCH, "Q2", date(2025, 1, 20), date(2025, 1, 30), existing)
    with pytest.raises(DateOverlap):
        res.raise_for_denial()


def test_creation_ignores_terminal_siblings():
    existing = [_batch("BAT001", date(2025, 1, 10), date(2025, 1, 20), BatchStatus.CLOSED)]
    assert check_creation(Family.BATCH, "Q2", date(2025, 1, 15), date(2025, 1, 30), existing).allowed


def test_creation_rejects_duplicate_name_case_insensitively():
    existing = [_batch("BAT001", date(2025, 1, 10), date(2025, 1, 20), name="Q1 Survey")]
    res = check_creation(Family.BATCH, "q1 survey ", date(2025, 3, 1), date(2025, 3, 9), existing)
    assert res.error is ValidationError and res.field == "name"


# ---------------------------------------------------------------------------
# activation
# ---------------------------------------------------------------------------
def test_activate_inside_window_allowed_without_rewrite():
    ent = _batch("BAT001", date(2025, 1, 10), date(2025, 1, 20))
    res = check_transition(ent, BatchStatus.ACTIVE, date(2025, 1, 10), [ent])
    assert res.allowed and res.rewrite == {}


def test_early_activation_is_forceable():
    ent = _batch("BAT001", date(2025, 1, 10), date(2025, 1, 20))
    res = check_transition(ent, BatchStatus.ACTIVE, date(2025, 1, 5), [ent])
    assert res.verdict is Verdict.FORCEABLE
    with pytest.raises(TransitionDenied) as exc:
        res.raise_for_denial()
    assert exc.value.forceable is True


def test_forced_activation_rewrites_start_date():
    ent = _batch("BAT001", date(2025, 1, 10), date(2025, 1, 20))
    res = check_transition(ent, BatchStatus.ACTIVE, date(2025, 1, 5), [ent], force=True)
    assert res.allowed
    assert res.rewrite == {"start_date": date(2025, 1, 5)}


def test_forced_activation_refused_when_new_start_overlaps():
    prior = _batch("BAT001", date(2025, 1, 1), date(2025, 1, 6))
    ent = _batch("BAT002", date(2025, 1, 10), date(2025, 1, 20))
    res = check_transition(ent, BatchStatus.ACTIVE, date(2025, 1, 5), [prior, ent], force=True)
    assert res.error is DateOverlap


def test_activation_blocked_by_active_sibling():
    live = _term("TRM001", date(2024, 1, 1), date(2025, 6, 30), TermStatus.ACTIVE)
    ent = _term("TRM002", date(2025, 7, 1), date(2026, 6, 30))
    res = check_transition(ent, TermStatus.ACTIVE, date(2025, 7, 1), [live, ent])
    with pytest.raises(ActiveConflict):
        res.raise_for_denial()


def test_activation_after_window_denied_even_with_force():
    ent = _batch("BAT001", date(2025, 1, 10), date(2025, 1, 20))
    res = check_transition(ent, BatchStatus.ACTIVE, date(2025, 1, 25), [ent], force=True)
    assert res.verdict is Verdict.DENY


def test_table_checked_before_dates():
    ent = _batch("BAT001", date(2025, 1, 10), date(2025, 1, 20), BatchStatus.ACTIVE)
    res = check_transition(ent, BatchStatus.DRAFT, date(2025, 1, 12), [ent])
    assert res.error is InvalidTransition


# ---------------------------------------------------------------------------
# closing
# ---------------------------------------------------------------------------
def test_close_of_active_waits_for_window_unless_close_now():
    ent = _batch("BAT001", date(2025, 1, 10), date(2025, 1, 20), BatchStatus.ACTIVE)
    assert not check_transition(ent, BatchStatus.CLOSED, date(2025, 1, 15), [ent]).allowed
    assert check_transition(ent, BatchStatus.CLOSED, date(2025, 1, 21), [ent]).rewrite == {}
    now = check_transition(ent, BatchStatus.CLOSED, date(2025, 1, 15), [ent], close_now=True)
    assert now.allowed and now.rewrite == {"end_date": date(2025, 1, 15)}


def test_direct_close_of_never_active_needs_force_after_window():
    ent = _batch("BAT001", date(2025, 1, 10), date(2025, 1, 20))
    assert check_transition(ent, BatchStatus.CLOSED, date(2025, 1, 21), [ent]).verdict is Verdict.FORCEABLE
    assert check_transition(ent, BatchStatus.CLOSED, date(2025, 1, 21), [ent], force=True).allowed
    assert check_transition(ent, BatchStatus.CLOSED, date(2025, 1, 15), [ent], force=True).verdict is Verdict.DENY


# ---------------------------------------------------------------------------
# extension
# ---------------------------------------------------------------------------
def test_extension_into_next_sibling_is_overlap():
    t1 = _term("TRM001", date(2024, 1, 1), date(2025, 6, 30), TermStatus.ACTIVE)
    t2 = _term("TRM002", date(2025, 7, 1), date(2027, 6, 30))
    assert next_sibling(t1, [t1, t2]) == t2
    res = check_extension(t1, date(2025, 7, 5), [t1, t2])
    assert res.error is DateOverlap


def test_extension_up_to_next_start_allowed():
    t1 = _term("TRM001", date(2024, 1, 1), date(2025, 6, 30), TermStatus.ACTIVE)
    t2 = _term("TRM002", date(2025, 7, 1), date(2027, 6, 30))
    res = check_extension(t1, date(2025, 7, 1), [t1, t2])
    assert res.allowed and res.rewrite == {"end_date": date(2025, 7, 1)}


def test_extension_must_move_forward():
    t1 = _term("TRM001", date(2024, 1, 1), date(2025, 6, 30))
    assert check_extension(t1, date(2025, 6, 30), [t1]).error is ValidationError


@pytest.mark.parametrize("offset", range(-3, 8))
def test_extension_collides_iff_new_end_past_next_start(offset):
    t1 = _term("TRM001", date(2024, 1, 1), date(2025, 6, 25))
    t2 = _term("TRM002", date(2025, 7, 1), date(2027, 6, 30))
    new_end = t2.start_date + timedelta(days=offset)
    res = check_extension(t1, new_end, [t1, t2])
    assert (res.error is DateOverlap) == (new_end > t2.start_date)


def test_boundary_day_shared_only_through_extension():
    """Extension may end on the next start day; creation may not start on a live end day."""
    t1 = _term("TRM001", date(2024, 1, 1), date(2025, 6, 30))
    t2 = _term("TRM002", date(2025, 7, 1), date(2027, 6, 30))
    assert check_extension(t1, t2.start_date, [t1, t2]).allowed
    res = check_creation(Family.TERM, "T3", t2.end_date, date(2028, 1, 1), [t1, t2])
    assert res.error is DateOverlap


# ---------------------------------------------------------------------------
# result object and edits
# ---------------------------------------------------------------------------
def test_guard_result_defaults():
    first, second = GuardResult(Verdict.ALLOW), GuardResult(Verdict.ALLOW)
    assert first.field is None and first.rewrite == {}
    assert first.rewrite is not second.rewrite
    first.raise_for_denial()


def test_update_ignores_the_record_itself():
    ent = _batch("BAT001", date(2025, 1, 10), date(2025, 1, 20), name="Q1")
    res = check_update(ent, "Q1", date(2025, 1, 12), date(2025, 1, 25), [ent])
    assert res.allowed


def test_update_still_checks_siblings():
    ent = _batch("BAT001", date(2025, 1, 10), date(2025, 1, 20))
    other = _batch("BAT002", date(2025, 2, 1), date(2025, 2, 10))
    assert check_update(ent, "BAT001", date(2025, 1, 10), date(2025, 2, 1), [ent, other]).error is DateOverlap
    assert check_update(ent, "bat002", date(2025, 1, 10), date(2025, 1, 20), [ent, other]).error is ValidationError


def test_update_refused_once_activated():
    ent = _batch("BAT001", date(2025, 1, 10), date(2025, 1, 20), BatchStatus.ACTIVE)
    res = check_update(ent, "BAT001", date(2025, 1, 10), date(2025, 1, 25), [ent])
    assert res.error is InvalidTransition
