"""
steward.report
==============

Counts and named segments for dashboards.

The named segments are plain :class:`~steward.segments.Predicate`
instances.  Worklists, dashboard cards and list filters all read them
from :data:`SEGMENTS` rather than restating the conditions.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from .models import STATUS_ENUMS, ContentStatus, DonorTier, Entity, EntityKind, UserStatus, utcnow
from .rules import TERMINAL
from .segments import FieldComparison, FieldResolver, Operator, Predicate, evaluate, normalize_field
from .settings import Settings, settings as _settings

AT_RISK = "at-risk"
NEEDS_REVIEW = "needs-review"
LAPSING = "lapsing"


def _non_terminal_statuses() -> List[str]:
    values = []
    for kind, enum_cls in STATUS_ENUMS.items():
        values.extend(s.value for s in enum_cls if s not in TERMINAL[kind])
    return sorted(set(values))


def build_segments(cfg: Settings = _settings) -> Dict[str, Predicate]:
    """Construct the named segment predicates from *cfg* thresholds."""
    donors = Predicate((FieldComparison("kind", Operator.EQUALS, EntityKind.DONOR),))
    return {
        AT_RISK: Predicate((
            FieldComparison("engagement_score", Operator.LTE, cfg.at_risk_threshold - 1),
            FieldComparison("status", Operator.IN, _non_terminal_statuses()),
        )),
        NEEDS_REVIEW: Predicate((
            FieldComparison("status", Operator.IN, [ContentStatus.FLAGGED, UserStatus.WARNED]),
        )),
        LAPSING: donors.and_(
            FieldComparison("days_since_last_activity", Operator.GTE, cfg.lapsing_after_days + 1),
            FieldComparison("status", Operator.IN, [t for t in DonorTier if t is not DonorTier.LAPSED]),
        ),
    }


SEGMENTS: Dict[str, Predicate] = build_segments()


def segment(name: str) -> Predicate:
    """Look up a named segment (raise KeyError if unknown)."""
    try:
        return SEGMENTS[name]
    except KeyError:
        raise KeyError(f"unknown segment {name!r}. Known: {sorted(SEGMENTS)}") from None


def worklist(
    entities: Iterable[Entity],
    name: str,
    as_of: Optional[datetime] = None,
) -> List[Entity]:
    """Entities in the named segment."""
    return evaluate(entities, segment(name), as_of)


def summarize(
    entities: Iterable[Entity],
    group_by: str,
    as_of: Optional[datetime] = None,
) -> Dict[Any, int]:
    """
    Count entities per value of *group_by*.

    Any field a predicate may reference works, computed ones included.
    List-valued fields (``tags``) count once per element.
    """
    name = normalize_field(group_by)
    resolver = FieldResolver(as_of or utcnow())
    counts: Counter = Counter()
    for i, ent in enumerate(entities):
        value = resolver.get(i, ent, name)
        if isinstance(value, (list, tuple, set, frozenset)):
            counts.update(getattr(v, "value", v) for v in value)
        else:
            counts[getattr(value, "value", value)] += 1
    return dict(counts)


def status_counts(entities: Iterable[Entity], kind: EntityKind) -> Dict[str, int]:
    """Per-status counts for one kind, with every status present."""
    counts = {s.value: 0 for s in STATUS_ENUMS[kind]}
    for ent in entities:
        if ent.kind is kind:
            counts[ent.status.value] += 1
    return counts


def segment_counts(entities: Iterable[Entity], as_of: Optional[datetime] = None) -> Dict[str, int]:
    entities = list(entities)
    as_of = as_of or utcnow()
    return {name: len(evaluate(entities, pred, as_of)) for name, pred in SEGMENTS.items()}


def dashboard(entities: Iterable[Entity], as_of: Optional[datetime] = None) -> Dict[str, Any]:
    """Everything the overview cards show."""
    entities = list(entities)
    as_of = as_of or utcnow()
    return {
        "total": len(entities),
        "by_kind": summarize(entities, "kind", as_of),
        "statuses": {kind.value: status_counts(entities, kind) for kind in EntityKind},
        "segments": segment_counts(entities, as_of),
        "engagement_bands": summarize(entities, "engagement_band", as_of),
    }
