"""
cadence.extension
=================

End‑date extension.

An extension only ever moves ``end_date`` forward and never changes the
status: a closed batch stays closed until someone explicitly reopens it.
The new window may not reach into the chronologically next sibling.
"""

from __future__ import annotations

import logging
from typing import Optional

from .clock import DayLike, as_day
from .executor import TransitionExecutor
from .guards import check_extension
from .models import Entity

logger = logging.getLogger(__name__)


class ExtensionPlanner:
    """Validate an extension on a fresh snapshot and hand the write to the executor."""

    def __init__(self, executor: TransitionExecutor) -> None:
        self.executor = executor

    def extend(self, entity_id: str, new_end_date: DayLike,
               reason: Optional[str] = None) -> Entity:
        new_end = as_day(new_end_date)
        entity, snapshot = self.executor.snapshot(entity_id)
        check_extension(entity, new_end, snapshot).raise_for_denial()

        changes = {"end_date": new_end}
        if reason is not None and reason.strip():
            changes["status_reason"] = reason.strip()
        extended = self.executor.update_fields(entity, **changes)
        logger.info(f"{entity.family} {entity.id} extended {entity.end_date} → {new_end} "
                    f"(status stays {extended.status})")
        return extended
