"""
cadence.service
===============

One object exposing every lifecycle entry point for both families.

:class:`LifecycleService` wires a store to the executor, the extension
planner and the pause controller, and implements the *sweep on load*
flow: propose automatic changes from the current snapshot, apply them
one at a time, then return the refreshed list.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional, Union

from .clock import DayLike, as_day, resolve_day
from .executor import Outcome, TransitionExecutor, require_reason
from .extension import ExtensionPlanner
from .guards import check_update
from .models import Entity, Family, utcnow
from .pause import PauseResumeController
from .registry import EntityRegistry, EntityStore
from .settings import settings
from .sweep import Proposal, sweep

logger = logging.getLogger(__name__)

FamilyLike = Union[Family, str]


def configured_prefixes() -> Dict[Family, str]:
    return {Family.BATCH: settings.batch_id_prefix, Family.TERM: settings.term_id_prefix}


@dataclass
class RefreshResult:
    """Refreshed listing plus what the sweep did to get there."""
    entities: List[Entity]
    applied: List[Outcome] = field(default_factory=list)
    failed: List[Outcome] = field(default_factory=list)


class LifecycleService:
    """
    Facade over the lifecycle engine.

    Example
    -------
    >>> from datetime import date
    >>> svc = LifecycleService()
    >>> a = svc.create("batch", "Q1 Survey", date(2025, 1, 10), date(2025, 1, 20))
    >>> [e.status for e in svc.refresh("batch", today=date(2025, 1, 10)).entities]
    [<BatchStatus.ACTIVE: 'active'>]
    """

    def __init__(self, store: Optional[EntityStore] = None,
                 clock: Callable[[], datetime] = utcnow) -> None:
        self.store = store if store is not None else EntityRegistry(configured_prefixes())
        self.executor = TransitionExecutor(self.store, clock)
        self.extensions = ExtensionPlanner(self.executor)
        self.pauses = PauseResumeController(self.executor)

    # ------------------------------------------------------------------
    # Listing, creation and edits
    # ------------------------------------------------------------------
    def list_entities(self, family: FamilyLike) -> List[Entity]:
        """Every record of *family*, oldest window first."""
        return sorted(self.store.all_entities(Family(family)),
                      key=lambda e: (e.start_date, e.id))

    def get(self, entity_id: str) -> Entity:
        return self.store.get(entity_id)

    def active(self, family: FamilyLike) -> Optional[Entity]:
        """The record of *family* currently holding the active status, if any."""
        family = Family(family)
        found = self.store.find_by_status(family, family.active)
        return found[0] if found else None

    def create(self, family: FamilyLike, name: str, start_date: DayLike,
               end_date: DayLike) -> Entity:
        return self.executor.create(family, name, start_date, end_date)

    def update(self, entity_id: str, name: Optional[str] = None,
               start_date: Optional[DayLike] = None,
               end_date: Optional[DayLike] = None) -> Entity:
        """
        Edit the name and/or window of a draft/upcoming record.

        Omitted values keep their current setting.  The result must pass
        the same window, name and overlap checks as a new record.
        """
        entity, snapshot = self.executor.snapshot(entity_id)
        name = entity.name if name is None else name.strip()
        start = entity.start_date if start_date is None else as_day(start_date)
        end = entity.end_date if end_date is None else as_day(end_date)
        check_update(entity, name, start, end, snapshot).raise_for_denial()

        updated = self.executor.update_fields(entity, name=name, start_date=start, end_date=end)
        logger.info(f"{entity.family} {entity.id} edited: '{updated.name}' {start}..{end}")
        return updated

    # ------------------------------------------------------------------
    # Manual actions
    # ------------------------------------------------------------------
    def activate(self, entity_id: str, today: Optional[DayLike] = None) -> Entity:
        return self.executor.transition(entity_id, self._family_of(entity_id).active,
                                        today=today)

    def force_activate(self, entity_id: str, reason: str,
                       today: Optional[DayLike] = None) -> Entity:
        reason = require_reason(reason, "force-activate")
        return self.executor.transition(entity_id, self._family_of(entity_id).active,
                                        today=today, force=True, reason=reason)

    def close(self, entity_id: str, today: Optional[DayLike] = None) -> Entity:
        """Close now: an active record's end date becomes *today* if still in the future."""
        return self.executor.transition(entity_id, self._family_of(entity_id).terminal,
                                        today=today, close_now=True)

    def force_close(self, entity_id: str, reason: str,
                    today: Optional[DayLike] = None) -> Entity:
        reason = require_reason(reason, "force-close")
        return self.executor.transition(entity_id, self._family_of(entity_id).terminal,
                                        today=today, force=True, reason=reason, close_now=True)

    def reopen(self, entity_id: str, reason: str, today: Optional[DayLike] = None) -> Entity:
        """Reactivate a closed/completed record whose (extended) window covers *today*."""
        reason = require_reason(reason, "reopen")
        return self.executor.transition(entity_id, self._family_of(entity_id).active,
                                        today=today, force=True, reason=reason)

    def extend(self, entity_id: str, new_end_date: DayLike,
               reason: Optional[str] = None) -> Entity:
        return self.extensions.extend(entity_id, new_end_date, reason=reason)

    def pause(self, entity_id: str, reason: str) -> Entity:
        return self.pauses.pause(entity_id, reason)

    def resume(self, entity_id: str) -> Entity:
        return self.pauses.resume(entity_id)

    # ------------------------------------------------------------------
    # Sweep
    # ------------------------------------------------------------------
    def preview_sweep(self, family: FamilyLike, today: Optional[DayLike] = None) -> List[Proposal]:
        """What the sweep would do right now, without applying anything."""
        return sweep(self.store.all_entities(Family(family)), resolve_day(today))

    def refresh(self, family: FamilyLike, today: Optional[DayLike] = None) -> RefreshResult:
        """Sweep *family*, apply every proposal, return the refreshed listing."""
        family = Family(family)
        today = resolve_day(today)
        outcomes = self.executor.apply_all(sweep(self.store.all_entities(family), today), today)
        applied = [o for o in outcomes if o.ok]
        failed = [o for o in outcomes if not o.ok]
        if outcomes:
            logger.info(f"Sweep of {family} on {today}: {len(applied)} applied, {len(failed)} rejected")
        return RefreshResult(self.list_entities(family), applied, failed)

    # ------------------------------------------------------------------
    def _family_of(self, entity_id: str) -> Family:
        return self.store.get(entity_id).family
