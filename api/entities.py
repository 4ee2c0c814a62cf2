"""
api.entities
============

FastAPI router exposing the lifecycle engine for both families.

The first path segment picks the family (``batches`` or ``terms``);
every action endpoint maps one-to-one onto a
:class:`cadence.service.LifecycleService` method.  Date-sensitive
endpoints accept an optional ``today`` query parameter so clients (and
tests) can evaluate against a fixed day.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from cadence.models import Entity, Family
from cadence.service import LifecycleService, RefreshResult
from cadence.sweep import Proposal
from .deps import get_service, get_settings

# Create router
router = APIRouter(tags=["lifecycle"])

# Configure logging
logger = logging.getLogger(__name__)


class FamilyPath(str, Enum):
    batches = "batches"
    terms = "terms"


FAMILIES = {FamilyPath.batches: Family.BATCH, FamilyPath.terms: Family.TERM}


# ---------- request / response models ----------
class EntityOut(BaseModel):
    id: str
    family: str
    name: str
    start_date: date
    end_date: date
    status: str
    paused: bool
    paused_at: Optional[datetime] = None
    paused_reason: Optional[str] = None
    status_reason: Optional[str] = None
    completion_type: Optional[str] = None
    version: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, ent: Entity) -> "EntityOut":
        return cls(
            id=ent.id,
            family=ent.family.value,
            name=ent.name,
            start_date=ent.start_date,
            end_date=ent.end_date,
            status=ent.status.value,
            paused=ent.is_paused,
            paused_at=ent.paused_at,
            paused_reason=ent.paused_reason,
            status_reason=ent.status_reason,
            completion_type=ent.completion_type.value if ent.completion_type else None,
            version=ent.version,
            created_at=ent.created_at,
            updated_at=ent.updated_at,
        )


class ProposalOut(BaseModel):
    entity_id: str
    from_status: str
    to_status: str
    reason: str
    forced: bool

    @classmethod
    def from_proposal(cls, p: Proposal) -> "ProposalOut":
        return cls(
            entity_id=p.entity_id,
            from_status=p.from_status.value,
            to_status=p.to_status.value,
            reason=p.reason,
            forced=p.forced,
        )


class ListingOut(BaseModel):
    entities: List[EntityOut]
    applied: List[ProposalOut] = []
    failed: List[Dict[str, Any]] = []


class CreateIn(BaseModel):
    name: str
    start_date: date
    end_date: date


class UpdateIn(BaseModel):
    name: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class ReasonIn(BaseModel):
    reason: str = ""


class ExtendIn(BaseModel):
    new_end_date: date
    reason: Optional[str] = None


# ---------- helpers ----------
def _owned(svc: LifecycleService, family: FamilyPath, entity_id: str) -> Entity:
    """Fetch *entity_id* and make sure it belongs to the family in the path."""
    try:
        ent = svc.get(entity_id)
    except KeyError:
        ent = None
    if ent is None or ent.family is not FAMILIES[family]:
        raise HTTPException(status_code=404, detail=f"{entity_id} not found in {family.value}")
    return ent


def _listing(result: RefreshResult) -> ListingOut:
    return ListingOut(
        entities=[EntityOut.from_entity(e) for e in result.entities],
        applied=[ProposalOut.from_proposal(o.proposal) for o in result.applied],
        failed=[
            {"proposal": ProposalOut.from_proposal(o.proposal).model_dump(), **o.error.to_dict()}
            for o in result.failed
        ],
    )


# ---------- listing / creation ----------
@router.get("/{family}", response_model=ListingOut)
def list_family(
    family: FamilyPath,
    today: Optional[date] = Query(None, description="Evaluate the sweep as of this day"),
    svc: LifecycleService = Depends(get_service),
    settings=Depends(get_settings),
):
    """
    List one family.  With ``sweep_on_list`` enabled (the default) the
    automatic sweep runs first and its outcome is reported alongside.
    """
    if not settings.sweep_on_list:
        return ListingOut(entities=[EntityOut.from_entity(e) for e in svc.list_entities(FAMILIES[family])])

    return _listing(svc.refresh(FAMILIES[family], today))


@router.post("/{family}", status_code=201, response_model=EntityOut)
def create_entity(family: FamilyPath, body: CreateIn,
                  svc: LifecycleService = Depends(get_service)):
    ent = svc.create(FAMILIES[family], body.name, body.start_date, body.end_date)
    return EntityOut.from_entity(ent)


@router.get("/{family}/sweep/preview", response_model=List[ProposalOut])
def preview_sweep(family: FamilyPath,
                  today: Optional[date] = Query(None),
                  svc: LifecycleService = Depends(get_service)):
    """Proposals the sweep would apply right now (nothing is written)."""
    return [ProposalOut.from_proposal(p) for p in svc.preview_sweep(FAMILIES[family], today)]


@router.post("/{family}/sweep", response_model=ListingOut)
def run_sweep(family: FamilyPath,
              today: Optional[date] = Query(None),
              svc: LifecycleService = Depends(get_service)):
    """Explicit refresh trigger, independent of ``sweep_on_list``."""
    return _listing(svc.refresh(FAMILIES[family], today))


@router.get("/{family}/active", response_model=Optional[EntityOut])
def get_active(family: FamilyPath, svc: LifecycleService = Depends(get_service)):
    """The record currently holding the active status, or null."""
    ent = svc.active(FAMILIES[family])
    return EntityOut.from_entity(ent) if ent is not None else None


@router.get("/{family}/{entity_id}", response_model=EntityOut)
def get_entity(family: FamilyPath, entity_id: str,
               svc: LifecycleService = Depends(get_service)):
    return EntityOut.from_entity(_owned(svc, family, entity_id))


@router.put("/{family}/{entity_id}", response_model=EntityOut)
def update_entity(family: FamilyPath, entity_id: str, body: UpdateIn,
                  svc: LifecycleService = Depends(get_service)):
    """Edit name and/or window; only draft/upcoming records accept edits."""
    _owned(svc, family, entity_id)
    ent = svc.update(entity_id, body.name, body.start_date, body.end_date)
    return EntityOut.from_entity(ent)


# ---------- manual actions ----------
@router.post("/{family}/{entity_id}/activate", response_model=EntityOut)
def activate(family: FamilyPath, entity_id: str,
             today: Optional[date] = Query(None),
             svc: LifecycleService = Depends(get_service)):
    _owned(svc, family, entity_id)
    return EntityOut.from_entity(svc.activate(entity_id, today))


@router.post("/{family}/{entity_id}/force-activate", response_model=EntityOut)
def force_activate(family: FamilyPath, entity_id: str, body: ReasonIn,
                   today: Optional[date] = Query(None),
                   svc: LifecycleService = Depends(get_service)):
    _owned(svc, family, entity_id)
    return EntityOut.from_entity(svc.force_activate(entity_id, body.reason, today))


@router.post("/{family}/{entity_id}/close", response_model=EntityOut)
def close(family: FamilyPath, entity_id: str,
          today: Optional[date] = Query(None),
          svc: LifecycleService = Depends(get_service)):
    _owned(svc, family, entity_id)
    return EntityOut.from_entity(svc.close(entity_id, today))


@router.post("/{family}/{entity_id}/force-close", response_model=EntityOut)
def force_close(family: FamilyPath, entity_id: str, body: ReasonIn,
                today: Optional[date] = Query(None),
                svc: LifecycleService = Depends(get_service)):
    _owned(svc, family, entity_id)
    return EntityOut.from_entity(svc.force_close(entity_id, body.reason, today))


@router.post("/{family}/{entity_id}/reopen", response_model=EntityOut)
def reopen(family: FamilyPath, entity_id: str, body: ReasonIn,
           today: Optional[date] = Query(None),
           svc: LifecycleService = Depends(get_service)):
    _owned(svc, family, entity_id)
    return EntityOut.from_entity(svc.reopen(entity_id, body.reason, today))


@router.post("/{family}/{entity_id}/extend", response_model=EntityOut)
def extend(family: FamilyPath, entity_id: str, body: ExtendIn,
           svc: LifecycleService = Depends(get_service)):
    _owned(svc, family, entity_id)
    return EntityOut.from_entity(svc.extend(entity_id, body.new_end_date, body.reason))


@router.post("/{family}/{entity_id}/pause", response_model=EntityOut)
def pause(family: FamilyPath, entity_id: str, body: ReasonIn,
          svc: LifecycleService = Depends(get_service)):
    _owned(svc, family, entity_id)
    return EntityOut.from_entity(svc.pause(entity_id, body.reason))


@router.post("/{family}/{entity_id}/resume", response_model=EntityOut)
def resume(family: FamilyPath, entity_id: str,
           svc: LifecycleService = Depends(get_service)):
    _owned(svc, family, entity_id)
    return EntityOut.from_entity(svc.resume(entity_id))
