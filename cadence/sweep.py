"""
cadence.sweep
=============

Automatic, date‑driven status proposals.

:func:`sweep` looks at a snapshot and *proposes*; it never writes.  The
caller hands each :class:`Proposal` to
:class:`~cadence.executor.TransitionExecutor`, which re‑validates it
against live storage before persisting anything.  Because the function
is pure it can run on every list load, from the CLI, or from a real
scheduler, and running it twice on the same day is a no‑op once the
first pass has been applied.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from itertools import groupby
from typing import Iterable, List

from .clock import DayLike, as_day
from .models import AnyStatus, Entity, Family


@dataclass(frozen=True)
class Proposal:
    """One automatic status change suggested by the sweep."""
    entity_id: str
    family: Family
    from_status: AnyStatus
    to_status: AnyStatus
    reason: str
    forced: bool = False

    @property
    def is_activation(self) -> bool:
        return self.to_status is self.family.active


def sweep(entities: Iterable[Entity], today: DayLike) -> List[Proposal]:
    """
    Propose the fixed, non‑forced policy for every family in *entities*:

    * active and past its window → closed;
    * draft/upcoming and past its window → closed directly (the record
      was never activated, so the direct edge is taken with an automatic
      reason);
    * draft/upcoming with *today* inside its window → active, but only
      when no sibling would still be active after the closes above, and
      only the earliest such record.

    Closes come before activations in the returned list.
    """
    today = as_day(today)
    ordered = sorted(entities, key=lambda e: (e.family.value, e.start_date, e.id))
    proposals: List[Proposal] = []
    for _, group in groupby(ordered, key=lambda e: e.family):
        proposals.extend(_sweep_family(list(group), today))
    return proposals


def _sweep_family(entities: List[Entity], today: date) -> List[Proposal]:
    closes: List[Proposal] = []
    still_active = False
    for ent in entities:
        if today <= ent.end_date:
            still_active = still_active or ent.is_active
            continue
        if ent.is_active:
            closes.append(_propose(ent, ent.family.terminal,
                                   f"Automatic close: end date {ent.end_date} passed"))
        elif ent.is_initial:
            closes.append(_propose(ent, ent.family.terminal,
                                   f"Automatic close: window ended {ent.end_date} before activation",
                                   forced=True))

    if still_active:
        return closes
    for ent in entities:
        if ent.is_initial and ent.contains(today):
            return closes + [_propose(ent, ent.family.active,
                                      f"Automatic activation: start date {ent.start_date} reached")]
    return closes


def _propose(ent: Entity, target: AnyStatus, reason: str, forced: bool = False) -> Proposal:
    return Proposal(ent.id, ent.family, ent.status, target, reason, forced)
