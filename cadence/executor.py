"""
cadence.executor
================

Applies one lifecycle change against a store.

Every write follows the same recipe:

1. read the freshest record and its family snapshot;
2. re‑run the status table and the guard against that snapshot;
3. build the new record (status + any implied date rewrite together);
4. persist it with a compare‑and‑swap on ``version``.

If anything moved between (1) and (4) the store raises
:class:`~cadence.errors.StaleState`; the executor surfaces it and never
retries on its own.  No call ever touches more than one record.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Callable, Dict, List, Optional, Tuple, Union

from .clock import DayLike, as_day, resolve_day
from .errors import ActiveConflict, InvalidTransition, LifecycleError, StaleState, ValidationError
from .guards import check_creation, check_transition
from .models import AnyStatus, CompletionType, Entity, Family, utcnow
from .registry import EntityStore
from .sweep import Proposal

logger = logging.getLogger(__name__)


def require_reason(reason: Optional[str], action: str) -> str:
    """Presence check for the audit reason of a forced action."""
    if reason is None or not str(reason).strip():
        raise ValidationError(f"a reason is required to {action}", field="reason")
    return str(reason).strip()


@dataclass(frozen=True)
class TransitionPlan:
    """
    A validated, not yet persisted status change.

    The date rewrite and the status change are kept apart so each can be
    inspected on its own; :pymeth:`TransitionExecutor.commit` applies
    both in one write.
    """
    entity: Entity
    target: AnyStatus
    rewrite: Dict[str, date] = field(default_factory=dict)
    reason: Optional[str] = None
    completion_type: Optional[CompletionType] = None

    @property
    def date_changes(self) -> Dict[str, Tuple[date, date]]:
        """``field → (old, new)`` for rewrites that actually change a date."""
        return {
            name: (getattr(self.entity, name), new)
            for name, new in self.rewrite.items()
            if getattr(self.entity, name) != new
        }


@dataclass
class Outcome:
    """Result of applying one sweep proposal."""
    proposal: Proposal
    entity: Optional[Entity] = None
    error: Optional[LifecycleError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class TransitionExecutor:
    """
    The only component allowed to write lifecycle records.

    Parameters
    ----------
    store : EntityStore
        Where records live.
    clock : callable, default=utcnow
        Returns the timestamp stamped on ``updated_at`` and ``paused_at``.
    """

    def __init__(self, store: EntityStore, clock: Callable[[], datetime] = utcnow) -> None:
        self.store = store
        self.clock = clock

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def snapshot(self, entity_id: str) -> Tuple[Entity, List[Entity]]:
        """Fresh copy of *entity_id* plus every record of its family."""
        entity = self.store.get(entity_id)
        return entity, self.store.all_entities(entity.family)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------
    def create(self, family: Union[Family, str], name: str, start_date: DayLike,
               end_date: DayLike) -> Entity:
        """Insert a new draft/upcoming record after window, name and overlap checks."""
        family = Family(family)
        start, end = as_day(start_date), as_day(end_date)

        def check(snapshot: List[Entity]) -> None:
            check_creation(family, name, start, end, snapshot).raise_for_denial()

        draft = Entity("", family, (name or "").strip(), start, end)
        created = self.store.insert(draft, check=check)
        logger.info(f"Created {family} {created.id} '{created.name}' {start}..{end}")
        return created

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------
    def plan(self, entity_id: str, target: Union[AnyStatus, str], *,
             today: Optional[DayLike] = None, force: bool = False,
             reason: Optional[str] = None, close_now: bool = False,
             automatic: bool = False,
             expected_status: Optional[Union[AnyStatus, str]] = None) -> TransitionPlan:
        """Validate a transition against the freshest snapshot without writing."""
        if force:
            reason = require_reason(reason, "force a transition")
        today = resolve_day(today)
        entity, snapshot = self.snapshot(entity_id)
        family = entity.family
        try:
            target = family.status(target)
        except ValueError:
            raise InvalidTransition(f"unknown {family} status {target!r}", field="status") from None

        if expected_status is not None and entity.status is not family.status(expected_status):
            raise StaleState(
                f"{entity.id} is {entity.status}, expected {family.status(expected_status)}",
                field="status",
            )
        if target is family.active and entity.is_active:
            raise ActiveConflict(f"{entity.id} is already active", field="status")

        verdict = check_transition(entity, target, today, snapshot,
                                   force=force, close_now=close_now)
        verdict.raise_for_denial()

        completion = None
        if target is family.terminal:
            if automatic:
                completion = CompletionType.AUTOMATIC
            elif force:
                completion = CompletionType.FORCED
            else:
                completion = CompletionType.MANUAL
        return TransitionPlan(entity, target, dict(verdict.rewrite), reason, completion)

    def commit(self, plan: TransitionPlan) -> Entity:
        """Persist *plan*: status and date rewrite in one compare‑and‑swap."""
        entity = plan.entity
        changes = dict(plan.rewrite)
        changes.update(
            status=plan.target,
            status_reason=plan.reason,
            completion_type=plan.completion_type,
            updated_at=self.clock(),
        )
        if plan.target is entity.family.terminal:
            changes.update(paused_at=None, paused_reason=None)
        stored = self.store.compare_and_swap(replace(entity, **changes), entity.version)

        moved = "".join(f", {name} {old} → {new}" for name, (old, new) in plan.date_changes.items())
        logger.info(f"{entity.family} {entity.id}: {entity.status} → {stored.status}{moved}"
                    + (f" ({plan.reason})" if plan.reason else ""))
        return stored

    def transition(self, entity_id: str, target: Union[AnyStatus, str], **options) -> Entity:
        """:pymeth:`plan` then :pymeth:`commit`; returns the stored record."""
        return self.commit(self.plan(entity_id, target, **options))

    # ------------------------------------------------------------------
    # Sweep proposals
    # ------------------------------------------------------------------
    def apply(self, proposal: Proposal, today: Optional[DayLike] = None) -> Entity:
        """Apply one sweep proposal, refusing it if the record moved since the sweep."""
        return self.transition(
            proposal.entity_id,
            proposal.to_status,
            today=today,
            force=proposal.forced,
            reason=proposal.reason,
            automatic=True,
            expected_status=proposal.from_status,
        )

    def apply_all(self, proposals: List[Proposal],
                  today: Optional[DayLike] = None) -> List[Outcome]:
        """Apply proposals in order; a failure is recorded and the rest still run."""
        today = resolve_day(today)
        outcomes: List[Outcome] = []
        for proposal in proposals:
            try:
                outcomes.append(Outcome(proposal, entity=self.apply(proposal, today)))
            except LifecycleError as exc:
                logger.warning(
                    f"Sweep proposal {proposal.entity_id} {proposal.from_status} → "
                    f"{proposal.to_status} rejected: {exc.kind}: {exc.message}"
                )
                outcomes.append(Outcome(proposal, error=exc))
        return outcomes

    # ------------------------------------------------------------------
    # Non‑status writes (extension, pause/resume)
    # ------------------------------------------------------------------
    def update_fields(self, entity: Entity, **changes) -> Entity:
        """Compare‑and‑swap *changes* onto *entity* as read by the caller."""
        updated = replace(entity, updated_at=self.clock(), **changes)
        return self.store.compare_and_swap(updated, entity.version)
