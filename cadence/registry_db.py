"""
cadence.registry_db
===================

SQLite‑backed implementation of the :class:`~cadence.registry.EntityStore`
surface.

This adapter wraps :pymod:`cadence.db` so that any code expecting the
in‑memory :class:`~cadence.registry.EntityRegistry` can switch to a
persistent store without changing its calls.  Each method opens its own
short session; the compare‑and‑swap is a single conditional ``UPDATE``.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, List, Optional

from sqlalchemy import update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from cadence.db import EntityRow, SessionLocal
from cadence.errors import ActiveConflict, StaleState
from cadence.models import Entity, Family, utcnow
from cadence.registry import EntityStore, InsertCheck, next_id

logger = logging.getLogger(__name__)


class DBEntityRegistry(EntityStore):
    """
    Drop‑in replacement backed by SQLite.

    Methods mirror the in‑memory EntityRegistry:
    * get(entity_id)
    * all_entities(family)
    * insert(entity, check)
    * compare_and_swap(entity, expected_version)
    * find_by_status / iteration / len()
    """

    def __init__(self, bind: Optional[Engine] = None,
                 prefixes: Optional[Dict[Family, str]] = None) -> None:
        super().__init__(prefixes)
        self._bind = bind

    # ------------------------------------------------------------------ reads
    def get(self, entity_id: str) -> Entity:
        with SessionLocal(self._bind) as s:
            row = s.get(EntityRow, entity_id)
            if row is None:
                raise KeyError(entity_id)
            return row.to_entity()

    def all_entities(self, family: Optional[Family] = None) -> List[Entity]:
        with SessionLocal(self._bind) as s:
            stmt = select(EntityRow)
            if family is not None:
                stmt = stmt.where(EntityRow.family == family.value)
            return [row.to_entity() for row in s.exec(stmt).all()]

    # ----------------------------------------------------------------- writes
    def insert(self, entity: Entity, check: Optional[InsertCheck] = None) -> Entity:
        with SessionLocal(self._bind) as s:
            if check is not None:
                rows = s.exec(select(EntityRow).where(EntityRow.family == entity.family.value)).all()
                check([row.to_entity() for row in rows])
            ids = list(s.exec(select(EntityRow.id)).all())
            now = utcnow()
            stored = replace(
                entity,
                id=next_id(self.prefixes[entity.family], ids),
                version=1,
                created_at=now,
                updated_at=now,
            )
            s.add(EntityRow.from_entity(stored))
            try:
                s.commit()
            except IntegrityError as exc:
                s.rollback()
                raise StaleState(f"id {stored.id} was taken concurrently; retry", field="id") from exc
        return stored

    def compare_and_swap(self, entity: Entity, expected_version: int) -> Entity:
        stored = replace(entity, version=expected_version + 1)
        values = EntityRow.values_of(stored)
        del values["id"], values["created_at"]
        stmt = (
            update(EntityRow)
            .where(EntityRow.id == entity.id, EntityRow.version == expected_version)
            .values(**values)
        )
        with SessionLocal(self._bind) as s:
            try:
                result = s.connection().execute(stmt)
                if result.rowcount == 1:
                    s.commit()
                    return stored
                s.rollback()
            except IntegrityError as exc:
                s.rollback()
                logger.warning(f"Unique active index rejected {entity.id}: {exc.orig}")
                raise ActiveConflict(
                    f"another {entity.family.label} is already active", field="status"
                ) from exc
            if s.get(EntityRow, entity.id) is None:
                raise KeyError(entity.id)
        raise StaleState(
            f"{entity.id} changed concurrently (expected version {expected_version})",
            field="version",
        )
