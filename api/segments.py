"""
api.segments
============

Read-only endpoints for dashboards and work queues: status counts,
named segment worklists, ad-hoc predicate evaluation.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from steward.errors import SegmentError
from steward.models import EntityKind, utcnow
from steward.portfolio import EntityRegistry
from steward.report import dashboard, segment, segment_counts, status_counts
from steward.segments import Predicate, partition
from steward.settings import Settings
from .deps import get_registry, get_settings

logger = logging.getLogger(__name__)

router = APIRouter()


class PredicateIn(BaseModel):
    """Structured filter: a list of ``{field, operator, value}`` terms."""
    terms: List[Dict[str, Any]] = []
    as_of: Optional[datetime] = None


def _ids_and_errors(result) -> Dict[str, Any]:
    return {
        "ids": [e.id for e in result.matched],
        "errors": [{"id": eid, "detail": str(err)} for eid, err in result.errors],
    }


@router.get("/status")
def status_snapshot(kind: EntityKind = Query(..., description="Entity kind to count"),
                    reg: EntityRegistry = Depends(get_registry)):
    return status_counts(reg, kind)


@router.get("/dashboard")
def dashboard_snapshot(reg: EntityRegistry = Depends(get_registry)):
    return dashboard(reg.snapshot())


@router.get("/settings")
def engine_settings(cfg: Settings = Depends(get_settings)):
    """Scoring and segment thresholds, for labelling dashboard cards."""
    return cfg.model_dump()


@router.get("/segments")
def list_segments(reg: EntityRegistry = Depends(get_registry)):
    """Worklist size for every named segment."""
    return segment_counts(reg.snapshot())


@router.get("/segments/{name}")
def segment_worklist(name: str, reg: EntityRegistry = Depends(get_registry)):
    try:
        predicate = segment(name)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown segment: {name}")
    result = partition(reg.snapshot(), predicate, utcnow())
    return {"segment": name, **_ids_and_errors(result)}


@router.post("/segments/evaluate")
def evaluate_predicate(body: PredicateIn, reg: EntityRegistry = Depends(get_registry)):
    """
    Evaluate an ad-hoc predicate.

    Malformed predicates are rejected with 422 before any entity is read.
    """
    try:
        predicate = Predicate.from_spec(body.terms)
    except SegmentError as e:
        logger.warning(f"Rejected predicate {body.terms}: {e}")
        raise HTTPException(status_code=422, detail=str(e))
    result = partition(reg.snapshot(), predicate, body.as_of or utcnow())
    return _ids_and_errors(result)
