"""
api.main
========

HTTP layer over the EntityRegistry: entity creation and lookup, status
transitions, and the segment/report endpoints from :pymod:`api.segments`.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import Body, Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from steward.errors import (
    IllegalTransitionError,
    InvalidEventError,
    InvalidFieldError,
    MissingFieldError,
    StaleStatusError,
)
from steward.models import Entity, utcnow
from steward.portfolio import EntityRegistry
from steward.rules import legal_targets, target_for_action
from steward.scoring import score_card
from steward.settings import API_DEBUG, API_HOST, API_PORT
from .deps import get_registry
from .segments import router as segments_router

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Steward API",
    version="0.1.0",
    description="HTTP layer over the entity lifecycle and scoring engine.",
    debug=API_DEBUG,
)

# --- CORS ----------------------------------------------------------
# Dev-only: the admin console runs on the Next.js dev server.
origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept"],
)

app.include_router(segments_router)


class TransitionIn(BaseModel):
    """A status change request; give either ``to_status`` or ``action``."""
    to_status: Optional[str] = None
    action: Optional[str] = None
    reason: Optional[str] = None
    actor: str
    expected_status: Optional[str] = None
    extra: Dict[str, Any] = Field(default_factory=dict)


class EntityOut(BaseModel):
    id: str
    kind: str
    status: str
    attributes: Dict[str, Any]
    engagement_score: int
    engagement_band: str
    risk_score: int
    days_since_last_activity: Optional[int]
    legal_targets: List[str]
    audit_log: List[Dict[str, Any]]


def _entity_out(ent: Entity) -> EntityOut:
    card = score_card(ent, utcnow())
    return EntityOut(
        id=ent.id,
        kind=ent.kind.value,
        status=ent.status.value,
        attributes=dict(ent.attributes),
        engagement_score=card.engagement_score,
        engagement_band=card.engagement_band,
        risk_score=card.risk_score,
        days_since_last_activity=card.days_since_last_activity,
        legal_targets=sorted(s.value for s in legal_targets(ent.kind, ent.status)),
        audit_log=[r.to_record() for r in ent.audit_log],
    )


# ---------- health-check ----------
@app.get("/")
def root():
    return {"status": "ok", "msg": "Steward API is alive"}


# ---------- POST /entities ----------
@app.post("/entities", status_code=201)
def add_entity(record: Dict[str, Any] = Body(...),
               reg: EntityRegistry = Depends(get_registry)):
    try:
        ent = Entity.from_record(record)
        score_card(ent, utcnow())
    except ValueError as e:  # includes InvalidEventError
        raise HTTPException(status_code=422, detail=str(e))
    try:
        reg.add(ent)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    logger.info(f"Created {ent.kind} {ent.id} ({ent.status})")
    return {"id": ent.id}


# ---------- GET /entities/{entity_id} ----------
@app.get("/entities/{entity_id}", response_model=EntityOut)
def get_entity(entity_id: str, reg: EntityRegistry = Depends(get_registry)):
    """Entity with its derived scores and the statuses it may move to."""
    try:
        ent = reg.get(entity_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Entity not found")
    try:
        return _entity_out(ent)
    except InvalidEventError as e:
        raise HTTPException(status_code=422, detail=str(e))


# ---------- POST /entities/{entity_id}/transitions ----------
@app.post("/entities/{entity_id}/transitions", response_model=EntityOut)
def transition_entity(entity_id: str,
                      req: TransitionIn,
                      reg: EntityRegistry = Depends(get_registry)):
    """
    Apply a status change.

    409 for stale, terminal or illegal transitions, 422 for missing or
    invalid fields, 404 for an unknown entity.
    """
    if entity_id not in reg:
        raise HTTPException(status_code=404, detail="Entity not found")
    if (req.to_status is None) == (req.action is None):
        raise HTTPException(status_code=422, detail="give exactly one of to_status or action")

    try:
        target = req.to_status
        if req.action is not None:
            target = target_for_action(reg.get(entity_id).kind, req.action)
        ent = reg.transition(
            entity_id, target, req.reason, req.actor, req.extra,
            expected_status=req.expected_status,
        )
    except (StaleStatusError, IllegalTransitionError) as e:
        logger.warning(f"Rejected transition on {entity_id}: {e}")
        raise HTTPException(status_code=409, detail=str(e))
    except (MissingFieldError, InvalidFieldError) as e:
        logger.warning(f"Rejected transition on {entity_id}: {e}")
        raise HTTPException(status_code=422, detail={"field": e.field, "msg": str(e)})

    return _entity_out(ent)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api.main:app", host=API_HOST, port=API_PORT, reload=API_DEBUG)
