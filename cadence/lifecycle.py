"""
cadence.lifecycle
=================

Status table for both entity families.

A tiny finite‑state‑machine describes which life‑cycle phases are legal
successors of each status.  Anything absent from :data:`RULES` is
rejected with :class:`~cadence.errors.InvalidTransition`, regardless of
dates; dates are the business of :pymod:`cadence.guards`.

Pause/resume is *not* a status: it is a lateral edge hanging off the
batch ``active`` state (see :data:`LATERAL`).
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Set

from .errors import InvalidTransition
from .models import AnyStatus, BatchStatus, Entity, Family, TermStatus


class Lateral(Enum):
    """Sub‑state toggles that leave the status untouched."""
    PAUSE = "pause"
    RESUME = "resume"

    def __str__(self) -> str:
        return self.value


# ---------------------------------------------------------------------
# Allowed transitions: family → source status → set[valid target statuses]
# The terminal → active edge is the explicit *reopen* action; the guard
# only lets it through when forced.
# ---------------------------------------------------------------------
RULES: Dict[Family, Dict[AnyStatus, Set[AnyStatus]]] = {
    Family.BATCH: {
        BatchStatus.DRAFT:  {BatchStatus.ACTIVE, BatchStatus.CLOSED},
        BatchStatus.ACTIVE: {BatchStatus.CLOSED},
        BatchStatus.CLOSED: {BatchStatus.ACTIVE},
    },
    Family.TERM: {
        TermStatus.UPCOMING:  {TermStatus.ACTIVE, TermStatus.COMPLETED},
        TermStatus.ACTIVE:    {TermStatus.COMPLETED},
        TermStatus.COMPLETED: {TermStatus.ACTIVE},
    },
}

LATERAL: Dict[Family, Dict[AnyStatus, Set[Lateral]]] = {
    Family.BATCH: {BatchStatus.ACTIVE: {Lateral.PAUSE, Lateral.RESUME}},
    Family.TERM: {},
}


def can_transition(family: Family, current: AnyStatus, target: AnyStatus) -> bool:
    """Check if *current* → *target* is in the table for *family*."""
    return target in RULES[family].get(current, set())


def require_transition(family: Family, current: AnyStatus, target: AnyStatus) -> None:
    """
    Raise :class:`InvalidTransition` unless the edge exists.

    Examples
    --------
    >>> require_transition(Family.BATCH, BatchStatus.DRAFT, BatchStatus.ACTIVE)
    >>> require_transition(Family.BATCH, BatchStatus.ACTIVE, BatchStatus.DRAFT)
    Traceback (most recent call last):
        ...
    cadence.errors.InvalidTransition: illegal batch transition active → draft
    """
    if not can_transition(family, current, target):
        raise InvalidTransition(
            f"illegal {family} transition {current} → {target}", field="status"
        )


def require_lateral(entity: Entity, move: Lateral) -> None:
    """Raise :class:`InvalidTransition` unless *move* is legal for *entity* right now."""
    allowed = LATERAL[entity.family].get(entity.status, set())
    if move not in allowed:
        if not LATERAL[entity.family]:
            raise InvalidTransition(f"a {entity.family.label} cannot be {move}d", field="status")
        raise InvalidTransition(
            f"cannot {move} {entity.id}: status is {entity.status}, must be {entity.family.active}",
            field="status",
        )
    if move is Lateral.PAUSE and entity.is_paused:
        raise InvalidTransition(f"{entity.id} is already paused", field="paused_at")
    if move is Lateral.RESUME and not entity.is_paused:
        raise InvalidTransition(f"{entity.id} is not paused", field="paused_at")
