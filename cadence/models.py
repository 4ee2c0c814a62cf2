"""
cadence.models
==============

Dataclasses and enums representing a single lifecycle entity: a
data‑collection batch or a governance term.  Both families share one
record shape; :class:`Family` tells them apart and knows which status
value plays the *initial*, *active* and *terminal* role.

These objects are intentionally lightweight; they carry **no**
external‑library dependencies so that the pure parts of the engine
(guards, sweep) can be imported and tested without a database.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional, Union


def utcnow() -> datetime:
    """Timezone‑aware *now* used for every audit timestamp."""
    return datetime.now(timezone.utc)


class BatchStatus(Enum):
    """Life‑cycle states of a data‑collection batch."""
    DRAFT = "draft"
    ACTIVE = "active"
    CLOSED = "closed"

    def __str__(self) -> str:        # nicer REPL display
        return self.value


class TermStatus(Enum):
    """Life‑cycle states of a governance term."""
    UPCOMING = "upcoming"
    ACTIVE = "active"
    COMPLETED = "completed"

    def __str__(self) -> str:
        return self.value


AnyStatus = Union[BatchStatus, TermStatus]


class CompletionType(Enum):
    """How an entity reached its terminal status."""
    AUTOMATIC = "automatic"
    MANUAL = "manual"
    FORCED = "forced"

    def __str__(self) -> str:
        return self.value


class Family(Enum):
    """The two entity families sharing the lifecycle shape."""
    BATCH = "batch"
    TERM = "term"

    def __str__(self) -> str:
        return self.value

    # Role lookups -----------------------------------------------------------
    @property
    def status_enum(self) -> type:
        return BatchStatus if self is Family.BATCH else TermStatus

    @property
    def initial(self) -> AnyStatus:
        return BatchStatus.DRAFT if self is Family.BATCH else TermStatus.UPCOMING

    @property
    def active(self) -> AnyStatus:
        return BatchStatus.ACTIVE if self is Family.BATCH else TermStatus.ACTIVE

    @property
    def terminal(self) -> AnyStatus:
        return BatchStatus.CLOSED if self is Family.BATCH else TermStatus.COMPLETED

    @property
    def label(self) -> str:
        return "survey batch" if self is Family.BATCH else "term"

    def status(self, value: Union[str, AnyStatus]) -> AnyStatus:
        """Coerce *value* into this family's status enum (raise ValueError)."""
        if isinstance(value, self.status_enum):
            return value
        if isinstance(value, Enum):
            value = value.value
        return self.status_enum(str(value).lower())


@dataclass
class Entity:
    """
    Core record governed by the lifecycle engine.

    Parameters
    ----------
    id : str
        Store‑assigned identifier (``BAT001``, ``TRM004`` ...).
    family : Family
        Which family the record belongs to.
    name : str
        Display name, unique per family (case‑insensitive).
    start_date, end_date : datetime.date
        Inclusive date window.
    status : BatchStatus | TermStatus
        Current life‑cycle phase (defaults to the family's initial state).
    paused_at : datetime | None
        Batches only: set while an active batch is paused.
    paused_reason : str | None
        Audit note given when pausing.
    status_reason : str | None
        Reason attached to the last status change.
    completion_type : CompletionType | None
        How the entity was closed, once it is.
    version : int
        Compare‑and‑swap token, bumped by every persisted write.
    """
    id: str
    family: Family
    name: str
    start_date: date
    end_date: date
    status: Optional[AnyStatus] = None
    paused_at: Optional[datetime] = None
    paused_reason: Optional[str] = None
    status_reason: Optional[str] = None
    completion_type: Optional[CompletionType] = None
    version: int = 0
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        self.family = Family(self.family)
        self.status = self.family.initial if self.status is None else self.family.status(self.status)
        if self.completion_type is not None:
            self.completion_type = CompletionType(self.completion_type)
        if self.paused_at is not None:
            if self.family is not Family.BATCH:
                raise ValueError("only survey batches can be paused")
            if self.status is not self.family.active:
                raise ValueError("paused_at may only be set while active")

    # Convenience helpers -------------------------------------------------
    @property
    def is_initial(self) -> bool:
        return self.status is self.family.initial

    @property
    def is_active(self) -> bool:
        return self.status is self.family.active

    @property
    def is_terminal(self) -> bool:
        return self.status is self.family.terminal

    @property
    def is_paused(self) -> bool:
        return self.paused_at is not None

    def overlaps(self, start: date, end: date) -> bool:
        """True when ``[start, end]`` intersects this entity's window."""
        return self.start_date <= end and start <= self.end_date

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date
