"""
cadence.pause
=============

Pause/resume toggle for active survey batches.  Pausing stamps
``paused_at`` and a reason; resuming clears both.  Dates and status are
never touched.
"""

from __future__ import annotations

import logging

from .executor import TransitionExecutor, require_reason
from .guards import check_lateral
from .lifecycle import Lateral
from .models import Entity

logger = logging.getLogger(__name__)


class PauseResumeController:

    def __init__(self, executor: TransitionExecutor) -> None:
        self.executor = executor

    def pause(self, entity_id: str, reason: str) -> Entity:
        reason = require_reason(reason, "pause a survey batch")
        entity = self.executor.store.get(entity_id)
        check_lateral(entity, Lateral.PAUSE).raise_for_denial()
        paused = self.executor.update_fields(
            entity, paused_at=self.executor.clock(), paused_reason=reason
        )
        logger.info(f"{entity.family} {entity.id} paused: {reason}")
        return paused

    def resume(self, entity_id: str) -> Entity:
        entity = self.executor.store.get(entity_id)
        check_lateral(entity, Lateral.RESUME).raise_for_denial()
        resumed = self.executor.update_fields(entity, paused_at=None, paused_reason=None)
        logger.info(f"{entity.family} {entity.id} resumed")
        return resumed
