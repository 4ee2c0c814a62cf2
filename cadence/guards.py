"""
cadence.guards
==============

Pure predicates deciding whether a requested change is legal.

Each guard receives the entity, the requested target, *today* and the
sibling snapshot as explicit arguments; none of them reads storage or
the clock.  They return a :class:`GuardResult` instead of raising so the
sweep can inspect verdicts cheaply; :pymeth:`GuardResult.raise_for_denial`
turns a denial into the matching :pymod:`cadence.errors` exception.

Verdicts
--------
``ALLOW``      go ahead (possibly with a date *rewrite*)
``DENY``       refused whatever the caller does
``FORCEABLE``  refused now, would pass with ``force=True`` + a reason
"""

from __future__ import annotations

from dataclasses import dataclass, field as dc_field
from datetime import date
from enum import Enum
from typing import Dict, Iterable, List, Optional, Type

from .clock import DayLike, as_day
from .errors import (
    ActiveConflict,
    DateOverlap,
    InvalidTransition,
    LifecycleError,
    TransitionDenied,
    ValidationError,
)
from .lifecycle import Lateral, can_transition, require_lateral
from .models import AnyStatus, Entity, Family


class Verdict(Enum):
    ALLOW = "allow"
    DENY = "deny"
    FORCEABLE = "forceable"


@dataclass(frozen=True)
class GuardResult:
    """Outcome of one guard evaluation."""
    verdict: Verdict
    message: str = ""
    error: Type[LifecycleError] = TransitionDenied
    field: Optional[str] = None
    rewrite: Dict[str, date] = dc_field(default_factory=dict)

    @property
    def allowed(self) -> bool:
        return self.verdict is Verdict.ALLOW

    def raise_for_denial(self) -> None:
        if self.allowed:
            return
        if self.error is TransitionDenied:
            raise TransitionDenied(
                self.message, field=self.field, forceable=self.verdict is Verdict.FORCEABLE
            )
        raise self.error(self.message, field=self.field)


def _allow(**rewrite: date) -> GuardResult:
    return GuardResult(Verdict.ALLOW, rewrite=rewrite)


def _deny(message: str, error: Type[LifecycleError] = TransitionDenied,
          field: Optional[str] = None) -> GuardResult:
    return GuardResult(Verdict.DENY, message, error, field)


def _forceable(message: str, field: Optional[str] = None) -> GuardResult:
    return GuardResult(Verdict.FORCEABLE, message, TransitionDenied, field)


# ---------------------------------------------------------------------
# Sibling queries
# ---------------------------------------------------------------------
def siblings_of(entity: Entity, snapshot: Iterable[Entity]) -> List[Entity]:
    """Same‑family records of *snapshot* other than *entity* itself."""
    return [e for e in snapshot if e.family is entity.family and e.id != entity.id]


def active_sibling(entity: Entity, snapshot: Iterable[Entity]) -> Optional[Entity]:
    for other in siblings_of(entity, snapshot):
        if other.is_active:
            return other
    return None


def overlapping(family: Family, start: date, end: date, snapshot: Iterable[Entity],
                exclude_id: Optional[str] = None) -> List[Entity]:
    """Non‑terminal *family* records whose window intersects ``[start, end]``."""
    return [
        e for e in snapshot
        if e.family is family
        and e.id != exclude_id
        and not e.is_terminal
        and e.overlaps(start, end)
    ]


def next_sibling(entity: Entity, snapshot: Iterable[Entity]) -> Optional[Entity]:
    """Chronologically next sibling starting on or after ``entity.end_date``."""
    later = [e for e in siblings_of(entity, snapshot) if e.start_date >= entity.end_date]
    if not later:
        return None
    return min(later, key=lambda e: (e.start_date, e.id))


def _names(entities: Iterable[Entity]) -> str:
    return ", ".join(e.name for e in entities)


# ---------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------
def check_creation(family: Family, name: str, start: date, end: date,
                   snapshot: Iterable[Entity]) -> GuardResult:
    """Window sanity, name uniqueness and overlap for a new draft/upcoming record."""
    snapshot = list(snapshot)
    if not name or not name.strip():
        return _deny("name is required", ValidationError, "name")
    if start >= end:
        return _deny("end date must be after start date", ValidationError, "end_date")
    wanted = name.strip().lower()
    for other in snapshot:
        if other.family is family and other.name.strip().lower() == wanted:
            return _deny(f'a {family.label} named "{name.strip()}" already exists',
                         ValidationError, "name")
    clashes = overlapping(family, start, end, snapshot)
    if clashes:
        return _deny(f"date conflicts with existing {family.label}s: {_names(clashes)}",
                     DateOverlap, "start_date")
    return _allow()


def check_update(entity: Entity, name: str, start: date, end: date,
                 snapshot: Iterable[Entity]) -> GuardResult:
    """Edits of name and window are limited to draft/upcoming records and
    re‑run the creation checks with *entity* left out of the snapshot."""
    if not entity.is_initial:
        return _deny(f"{entity.id} is {entity.status}; only a {entity.family.initial} "
                     f"{entity.family.label} can be edited", InvalidTransition, "status")
    others = [e for e in snapshot if e.id != entity.id]
    return check_creation(entity.family, name, start, end, others)


# ---------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------
def check_transition(entity: Entity, target: AnyStatus, today: DayLike,
                     siblings: Iterable[Entity], force: bool = False,
                     close_now: bool = False) -> GuardResult:
    """
    Decide whether *entity* may move to *target* on *today*.

    ``close_now`` marks an explicit manual close of an active record,
    which rewrites ``end_date`` to *today* instead of waiting for the
    window to elapse.
    """
    family = entity.family
    target = family.status(target)
    today = as_day(today)
    siblings = siblings_of(entity, siblings)

    if not can_transition(family, entity.status, target):
        return _deny(f"illegal {family} transition {entity.status} → {target}",
                     InvalidTransition, "status")

    if target is family.active and entity.is_initial:
        return _check_activate(entity, today, siblings, force)
    if target is family.active and entity.is_terminal:
        return _check_reopen(entity, today, siblings, force)
    if entity.is_active:
        return _check_close(entity, today, close_now)
    return _check_direct_close(entity, today, force)


def _check_activate(entity: Entity, today: date, siblings: List[Entity],
                    force: bool) -> GuardResult:
    other = active_sibling(entity, siblings)
    if other is not None:
        return _deny(
            f"only one active {entity.family.label} is allowed at a time; "
            f"currently active: {other.name} ({other.id})",
            ActiveConflict, "status",
        )
    if today > entity.end_date:
        return _deny(f"{entity.id} ended on {entity.end_date}; extend it before activating",
                     field="end_date")
    if today >= entity.start_date:
        return _allow()
    if not force:
        return _forceable(f"{entity.id} starts on {entity.start_date}; "
                          f"force-activate to start it today", "start_date")
    clashes = overlapping(entity.family, today, entity.end_date, siblings)
    if clashes:
        return _deny(f"moving the start date to {today} overlaps {_names(clashes)}",
                     DateOverlap, "start_date")
    return _allow(start_date=today)


def _check_reopen(entity: Entity, today: date, siblings: List[Entity],
                  force: bool) -> GuardResult:
    if not force:
        return _forceable(f"{entity.id} is {entity.status}; reopening requires a reason",
                          "status")
    if not entity.contains(today):
        return _deny(f"{today} is outside {entity.id}'s window "
                     f"{entity.start_date}..{entity.end_date}", field="end_date")
    other = active_sibling(entity, siblings)
    if other is not None:
        return _deny(
            f"only one active {entity.family.label} is allowed at a time; "
            f"currently active: {other.name} ({other.id})",
            ActiveConflict, "status",
        )
    clashes = overlapping(entity.family, entity.start_date, entity.end_date, siblings)
    if clashes:
        return _deny(f"reopening {entity.id} overlaps {_names(clashes)}",
                     DateOverlap, "end_date")
    return _allow()


def _check_close(entity: Entity, today: date, close_now: bool) -> GuardResult:
    if today > entity.end_date:
        return _allow()
    if close_now:
        return _allow(end_date=today)
    return _deny(f"{entity.id} runs until {entity.end_date}", field="end_date")


def _check_direct_close(entity: Entity, today: date, force: bool) -> GuardResult:
    if today <= entity.end_date:
        return _deny(f"{entity.id} was never active and its window has not elapsed "
                     f"(ends {entity.end_date})", field="end_date")
    if not force:
        return _forceable(f"{entity.id} was never activated; force-close to close it directly",
                          "status")
    return _allow()


# ---------------------------------------------------------------------
# Extension and lateral edges
# ---------------------------------------------------------------------
def check_extension(entity: Entity, new_end: DayLike,
                    siblings: Iterable[Entity]) -> GuardResult:
    """
    ``new_end`` must move the end date forward without reaching into the
    next chronological sibling.  Status is irrelevant.

    The collision test is ``next.start_date < new_end``, so ending on the
    very day the next sibling starts is accepted and the two windows then
    share that one boundary day.  Creation, force‑activation and reopen
    use the inclusive :func:`overlapping` check and never produce it.
    """
    new_end = as_day(new_end)
    if new_end <= entity.end_date:
        return _deny(f"new end date {new_end} must be after current end date {entity.end_date}",
                     ValidationError, "end_date")
    following = next_sibling(entity, siblings)
    if following is not None and following.start_date < new_end:
        return _deny(f"extending {entity.id} to {new_end} intrudes into "
                     f"{following.name} ({following.id}) starting {following.start_date}",
                     DateOverlap, "end_date")
    return _allow(end_date=new_end)


def check_lateral(entity: Entity, move: Lateral) -> GuardResult:
    try:
        require_lateral(entity, move)
    except InvalidTransition as exc:
        return _deny(exc.message, InvalidTransition, exc.field)
    return _allow()
