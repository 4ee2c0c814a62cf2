"""
cadence.registry
================

Storage seam for the lifecycle engine plus an in‑memory implementation.

:class:`EntityStore` is the whole transition API the engine needs from
persistence: read one record, read a family, insert a new record, and
compare‑and‑swap an updated one.  :class:`EntityRegistry` keeps records
in a dictionary guarded by a lock and needs nothing beyond the standard
library, so it backs the unit tests; :pymod:`cadence.registry_db` offers
the same surface over SQLite.
"""

from __future__ import annotations

import re
import threading
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Callable, Dict, Iterator, List, Optional

from .errors import ActiveConflict, StaleState
from .models import AnyStatus, Entity, Family, utcnow

DEFAULT_PREFIXES: Dict[Family, str] = {Family.BATCH: "BAT", Family.TERM: "TRM"}

# Called with the family snapshot right before an insert; raises to veto it.
InsertCheck = Callable[[List[Entity]], None]


def next_id(prefix: str, existing: List[str]) -> str:
    """``BAT001`` style id one past the highest *existing* number."""
    pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")
    numbers = [int(m.group(1)) for m in map(pattern.match, existing) if m]
    return f"{prefix}{max(numbers, default=0) + 1:03d}"


class EntityStore(ABC):
    """
    Abstract persistence seam.

    Concrete stores must make :pymeth:`compare_and_swap` atomic with
    respect to other writers and must refuse a write that would leave
    two active records in one family.
    """

    def __init__(self, prefixes: Optional[Dict[Family, str]] = None) -> None:
        self.prefixes = dict(prefixes or DEFAULT_PREFIXES)

    @abstractmethod
    def get(self, entity_id: str) -> Entity:
        """Return a copy of the record (raise KeyError if not present)."""

    @abstractmethod
    def all_entities(self, family: Optional[Family] = None) -> List[Entity]:
        """Return copies of every record, optionally for one family."""

    @abstractmethod
    def insert(self, entity: Entity, check: Optional[InsertCheck] = None) -> Entity:
        """Assign an id to *entity*, store it and return the stored copy."""

    @abstractmethod
    def compare_and_swap(self, entity: Entity, expected_version: int) -> Entity:
        """
        Replace the stored record with *entity* iff its version is still
        *expected_version*; raise :class:`StaleState` otherwise.  The
        stored version becomes ``expected_version + 1``.
        """

    # Shared helpers --------------------------------------------------------
    def find_by_status(self, family: Family, status: AnyStatus) -> List[Entity]:
        """Return all records of *family* currently at *status*."""
        family = Family(family)
        status = family.status(status)
        return [e for e in self.all_entities(family) if e.status is status]

    def __iter__(self) -> Iterator[Entity]:
        return iter(self.all_entities())

    def __len__(self) -> int:
        return len(self.all_entities())


class EntityRegistry(EntityStore):
    """
    Dictionary‑backed store keyed by entity id.

    Example
    -------
    >>> from datetime import date
    >>> reg = EntityRegistry()
    >>> ent = reg.insert(Entity("", Family.BATCH, "Q1 Survey", date(2025, 1, 10), date(2025, 1, 20)))
    >>> ent.id, ent.status
    ('BAT001', <BatchStatus.DRAFT: 'draft'>)
    """

    def __init__(self, prefixes: Optional[Dict[Family, str]] = None) -> None:
        super().__init__(prefixes)
        self._entities: Dict[str, Entity] = {}
        self._lock = threading.Lock()

    def get(self, entity_id: str) -> Entity:
        with self._lock:
            return replace(self._entities[entity_id])

    def all_entities(self, family: Optional[Family] = None) -> List[Entity]:
        with self._lock:
            return [replace(e) for e in self._entities.values()
                    if family is None or e.family is family]

    def insert(self, entity: Entity, check: Optional[InsertCheck] = None) -> Entity:
        with self._lock:
            if check is not None:
                check([replace(e) for e in self._entities.values() if e.family is entity.family])
            now = utcnow()
            stored = replace(
                entity,
                id=next_id(self.prefixes[entity.family], list(self._entities)),
                version=1,
                created_at=now,
                updated_at=now,
            )
            self._entities[stored.id] = stored
            return replace(stored)

    def compare_and_swap(self, entity: Entity, expected_version: int) -> Entity:
        with self._lock:
            current = self._entities[entity.id]
            if current.version != expected_version:
                raise StaleState(
                    f"{entity.id} changed concurrently (version {current.version}, "
                    f"expected {expected_version})",
                    field="version",
                )
            if entity.is_active:
                for other in self._entities.values():
                    if other.family is entity.family and other.id != entity.id and other.is_active:
                        raise ActiveConflict(
                            f"{other.id} is already active in family {entity.family}",
                            field="status",
                        )
            stored = replace(entity, version=expected_version + 1)
            self._entities[stored.id] = stored
            return replace(stored)
