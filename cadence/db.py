"""
cadence.db
==========

SQLite persistence layer for Cadence.

This module exposes:

* ``engine`` – a global SQLModel engine pointing at *cadence.db*
* ``SessionLocal`` – a session factory used via ``with SessionLocal() as s:``
* ``EntityRow`` – the table mirroring :class:`cadence.models.Entity`
* ``create_all()`` – helper to create tables at first run
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import Index, text
from sqlalchemy.engine import Engine
from sqlmodel import Field, Session, SQLModel, create_engine

from cadence.models import CompletionType, Entity, Family
from cadence.settings import DB_ECHO, DB_URL


# ---------------------------------------------------------------------------
# Engine (SQLite file lives in project root unless CADENCE_DB_URL says otherwise)
# ---------------------------------------------------------------------------
def make_engine(url: str = DB_URL, echo: bool = DB_ECHO, **kwargs) -> Engine:
    """Create an engine; SQLite connections are shared with FastAPI's worker threads."""
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    return create_engine(url, echo=echo, **kwargs)


engine = make_engine()


# ---------------------------------------------------------------------------
# Session factory
# ---------------------------------------------------------------------------
def SessionLocal(bind: Optional[Engine] = None) -> Session:  # noqa: N802 (factory camel‑case for consistency with FastAPI docs)
    """Return a new Session bound to *bind* or the global engine."""
    return Session(bind or engine)


# ---------------------------------------------------------------------------
# ORM model that mirrors cadence.models.Entity
# ---------------------------------------------------------------------------
def _aware(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite drops tzinfo; every timestamp we write is UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class EntityRow(SQLModel, table=True):
    """
    SQLite‑backed representation of a :class:`cadence.models.Entity`.

    Status values are stored as their lower‑case strings.  A partial
    unique index on ``family`` restricted to ``status = 'active'`` backs
    the single‑active rule at the storage level, so two writers racing
    past the application guard still cannot both commit an activation.
    """

    __tablename__ = "lifecycle_entities"
    __table_args__ = (
        Index(
            "ux_one_active_per_family",
            "family",
            unique=True,
            sqlite_where=text("status = 'active'"),
            postgresql_where=text("status = 'active'"),
        ),
    )

    id: str = Field(primary_key=True, index=True)
    family: str = Field(index=True)
    name: str
    start_date: date
    end_date: date
    status: str
    paused_at: Optional[datetime] = None
    paused_reason: Optional[str] = None
    status_reason: Optional[str] = None
    completion_type: Optional[str] = None
    version: int = 1
    created_at: datetime
    updated_at: datetime

    # ---------------------------------------------------------------------
    # Converters
    # ---------------------------------------------------------------------
    @classmethod
    def from_entity(cls, ent: Entity) -> "EntityRow":
        """Create a DB row from an in‑memory entity."""
        return cls(**cls.values_of(ent))

    @staticmethod
    def values_of(ent: Entity) -> dict:
        """Column → value mapping for *ent*, usable in ``UPDATE ... SET``."""
        return {
            "id": ent.id,
            "family": ent.family.value,
            "name": ent.name,
            "start_date": ent.start_date,
            "end_date": ent.end_date,
            "status": ent.status.value,
            "paused_at": ent.paused_at,
            "paused_reason": ent.paused_reason,
            "status_reason": ent.status_reason,
            "completion_type": ent.completion_type.value if ent.completion_type else None,
            "version": ent.version,
            "created_at": ent.created_at,
            "updated_at": ent.updated_at,
        }

    def to_entity(self) -> Entity:
        """Convert the DB row back into a plain Entity."""
        return Entity(
            id=self.id,
            family=Family(self.family),
            name=self.name,
            start_date=self.start_date,
            end_date=self.end_date,
            status=self.status,
            paused_at=_aware(self.paused_at),
            paused_reason=self.paused_reason,
            status_reason=self.status_reason,
            completion_type=CompletionType(self.completion_type) if self.completion_type else None,
            version=self.version,
            created_at=_aware(self.created_at),
            updated_at=_aware(self.updated_at),
        )


# ---------------------------------------------------------------------------
# Utility: create tables
# ---------------------------------------------------------------------------
def create_all(bind: Optional[Engine] = None) -> None:
    """Create all tables for imported SQLModel subclasses, including EntityRow."""
    SQLModel.metadata.create_all(bind or engine)
