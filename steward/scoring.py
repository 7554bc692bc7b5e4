"""
steward.scoring
===============

The one canonical place engagement and risk scores are computed.

Scores are projections of an entity's activity history at a given
instant; nothing here stores a score on an entity.  The two scores pull
in opposite directions on purpose:

* **engagement** decays one point per day since the last qualifying
  event and earns a bonus per qualifying event over the whole history;
* **risk** counts negative events since the last reset transition and
  never decays with time.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .errors import InvalidEventError
from .models import (
    ENGAGEMENT_KINDS,
    NEGATIVE_KINDS,
    ActivityEvent,
    ActivityKind,
    Entity,
    EntityKind,
    utcnow,
)
from .settings import settings

SCORE_MIN = 0
SCORE_MAX = 100


def _clamp(value: int) -> int:
    return max(SCORE_MIN, min(SCORE_MAX, value))


def _is_aware(ts: datetime) -> bool:
    return ts.tzinfo is not None and ts.tzinfo.utcoffset(ts) is not None


def validate_events(events: Sequence[ActivityEvent], as_of: datetime) -> None:
    """
    Raise :class:`InvalidEventError` for the first event that cannot be scored.

    Magnitudes must be ``None`` or finite non‑negative numbers; timestamps
    must be datetimes comparable with *as_of* (both naive or both aware).
    """
    aware = _is_aware(as_of)
    for i, ev in enumerate(events):
        if not isinstance(ev.kind, ActivityKind):
            raise InvalidEventError(f"event {i}: unknown kind {ev.kind!r}", i)
        if not isinstance(ev.timestamp, datetime):
            raise InvalidEventError(f"event {i}: timestamp is not a datetime", i)
        if _is_aware(ev.timestamp) != aware:
            raise InvalidEventError(f"event {i}: cannot compare naive and aware timestamps", i)
        m = ev.magnitude
        if m is None:
            continue
        if isinstance(m, bool) or not isinstance(m, (int, float)):
            raise InvalidEventError(f"event {i}: magnitude must be a number, got {m!r}", i)
        if not math.isfinite(m) or m < 0:
            raise InvalidEventError(f"event {i}: magnitude must be finite and >= 0, got {m!r}", i)


def _qualifying(events: Iterable[ActivityEvent], as_of: datetime) -> List[ActivityEvent]:
    return [e for e in events if e.kind in ENGAGEMENT_KINDS and e.timestamp <= as_of]


def last_activity_at(events: Sequence[ActivityEvent], as_of: datetime) -> Optional[datetime]:
    """Timestamp of the most recent qualifying event up to *as_of*."""
    validate_events(events, as_of)
    qualifying = _qualifying(events, as_of)
    if not qualifying:
        return None
    return max(e.timestamp for e in qualifying)


def days_since_last_activity(events: Sequence[ActivityEvent], as_of: datetime) -> Optional[int]:
    """Whole days since the last qualifying event, or ``None`` if there is none."""
    last = last_activity_at(events, as_of)
    if last is None:
        return None
    return (as_of - last).days


def compute_engagement_score(
    events: Sequence[ActivityEvent],
    as_of: datetime,
    *,
    never_engaged_days: Optional[int] = None,
    points_per_event: Optional[int] = None,
) -> int:
    """
    Engagement score in ``0..100``.

    ``100 - days_since_last + points_per_event * qualifying_count``,
    clamped.  With no qualifying event the elapsed days default to
    *never_engaged_days* (365).

    Examples
    --------
    >>> now = datetime(2024, 6, 1)
    >>> compute_engagement_score([], now)
    0
    """
    if never_engaged_days is None:
        never_engaged_days = settings.never_engaged_days
    if points_per_event is None:
        points_per_event = settings.engagement_points_per_event

    validate_events(events, as_of)
    qualifying = _qualifying(events, as_of)
    if qualifying:
        elapsed = (as_of - max(e.timestamp for e in qualifying)).days
    else:
        elapsed = never_engaged_days
    return _clamp(SCORE_MAX - elapsed + points_per_event * len(qualifying))


def _risk_weights() -> Dict[ActivityKind, int]:
    return {
        ActivityKind.WARNING: settings.risk_weight_warning,
        ActivityKind.FLAG: settings.risk_weight_flag,
        ActivityKind.REPORT: settings.risk_weight_report,
    }


def compute_risk_score(
    events: Sequence[ActivityEvent],
    as_of: datetime,
    since: Optional[datetime] = None,
    *,
    weights: Optional[Dict[ActivityKind, int]] = None,
) -> int:
    """
    Risk score in ``0..100``: weighted count of negative events.

    Only events in ``since <= timestamp <= as_of`` count.  *since* is the
    moment of the last reset transition, so the window never slides
    forward on its own and the score cannot fall just because time passed.
    """
    weights = weights if weights is not None else _risk_weights()
    validate_events(events, as_of)
    if since is not None and _is_aware(since) != _is_aware(as_of):
        raise InvalidEventError("cannot compare naive and aware timestamps")

    total = 0
    for ev in events:
        if ev.kind not in NEGATIVE_KINDS or ev.timestamp > as_of:
            continue
        if since is not None and ev.timestamp < since:
            continue
        total += weights.get(ev.kind, 0)
    return _clamp(total)


def engagement_band(score: int) -> str:
    """Bucket a score into ``high`` / ``medium`` / ``low``."""
    if score >= settings.high_engagement_threshold:
        return "high"
    if score >= settings.at_risk_threshold:
        return "medium"
    return "low"


# ---------------------------------------------------------------------
# Entity-level helpers
# ---------------------------------------------------------------------
def risk_reset_at(entity: Entity) -> Optional[datetime]:
    """When the entity was last reactivated or approved, if ever."""
    if entity.kind is EntityKind.DONOR:
        return None
    for rec in reversed(entity.audit_log):
        if rec.to_status.value == "active":
            return rec.timestamp
    return None


def engagement_score(entity: Entity, as_of: Optional[datetime] = None) -> int:
    return compute_engagement_score(entity.events, as_of or utcnow())


def risk_score(entity: Entity, as_of: Optional[datetime] = None) -> int:
    return compute_risk_score(entity.events, as_of or utcnow(), since=risk_reset_at(entity))


@dataclass(frozen=True)
class ScoreCard:
    """All derived scores of one entity at one instant."""
    entity_id: str
    as_of: datetime
    engagement_score: int
    risk_score: int
    days_since_last_activity: Optional[int]

    @property
    def engagement_band(self) -> str:
        return engagement_band(self.engagement_score)


def score_card(entity: Entity, as_of: Optional[datetime] = None) -> ScoreCard:
    as_of = as_of or utcnow()
    return ScoreCard(
        entity_id=entity.id,
        as_of=as_of,
        engagement_score=engagement_score(entity, as_of),
        risk_score=risk_score(entity, as_of),
        days_since_last_activity=days_since_last_activity(entity.events, as_of),
    )


def score_entities(
    entities: Iterable[Entity],
    as_of: Optional[datetime] = None,
) -> List[Tuple[str, Union[ScoreCard, InvalidEventError]]]:
    """
    Score every entity, best-effort.

    An entity with malformed events yields its :class:`InvalidEventError`
    in place of a score card; the others are still scored.
    """
    as_of = as_of or utcnow()
    results: List[Tuple[str, Union[ScoreCard, InvalidEventError]]] = []
    for ent in entities:
        try:
            results.append((ent.id, score_card(ent, as_of)))
        except InvalidEventError as exc:
            results.append((ent.id, exc))
    return results
