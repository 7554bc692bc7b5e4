"""
steward.segments
================

Declarative entity filtering.

A :class:`Predicate` is a conjunction of :class:`FieldComparison` terms.
Every term is checked when it is built, so a filter naming an unknown
field fails before any entity is scanned.  Computed fields (scores,
recency) are resolved lazily: at most once per entity per
:pyfunc:`evaluate` call, and never cached across calls.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .errors import InvalidEventError, InvalidPredicateError, UnknownFieldError
from .models import Entity, _parse_timestamp, utcnow
from .scoring import (
    compute_engagement_score,
    compute_risk_score,
    days_since_last_activity,
    engagement_band,
    last_activity_at,
    risk_reset_at,
)


class Operator(Enum):
    EQUALS = "eq"
    IN = "in"
    GTE = "gte"
    LTE = "lte"
    CONTAINS = "contains"
    WITHIN = "within"

    def __str__(self) -> str:
        return self.value


OPERATOR_ALIASES: Dict[str, Operator] = {
    "equals": Operator.EQUALS,
    "==": Operator.EQUALS,
    "in-set": Operator.IN,
    ">=": Operator.GTE,
    "<=": Operator.LTE,
    "contains-substring": Operator.CONTAINS,
    "date-within-range": Operator.WITHIN,
}

# ---------------------------------------------------------------------
# Field catalogue
# ---------------------------------------------------------------------
RAW_FIELDS = frozenset({
    "id", "kind", "status", "name", "email", "type", "tags", "location",
    "relationship_manager", "total_donated", "verified",
})
COMPUTED_FIELDS = frozenset({
    "engagement_score", "risk_score", "days_since_last_activity",
    "engagement_band", "last_activity_at",
})
KNOWN_FIELDS = RAW_FIELDS | COMPUTED_FIELDS

NUMERIC_FIELDS = frozenset({
    "engagement_score", "risk_score", "days_since_last_activity", "total_donated",
})
DATE_FIELDS = frozenset({"last_activity_at"})

FIELD_ALIASES: Dict[str, str] = {
    "engagementScore": "engagement_score",
    "riskScore": "risk_score",
    "daysSinceLastActivity": "days_since_last_activity",
    "engagementBand": "engagement_band",
    "lastActivityAt": "last_activity_at",
    "relationshipManager": "relationship_manager",
    "totalDonated": "total_donated",
    "tier": "status",
}


def normalize_field(name: str) -> str:
    """Canonical field name, or :class:`UnknownFieldError`."""
    canonical = FIELD_ALIASES.get(name, name)
    if canonical not in KNOWN_FIELDS:
        raise UnknownFieldError(name)
    return canonical


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _utc(ts: datetime) -> datetime:
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


def _as_datetime(value: Any) -> Optional[datetime]:
    """Datetime or ISO string as an aware datetime; naive values are read as UTC."""
    if not isinstance(value, (datetime, str)):
        return None
    try:
        return _utc(_parse_timestamp(value))
    except ValueError:
        return None


def _operator(value: Any) -> Operator:
    if isinstance(value, Operator):
        return value
    try:
        return OPERATOR_ALIASES.get(value) or Operator(value)
    except (ValueError, TypeError):
        raise InvalidPredicateError(f"unsupported operator: {value!r}") from None


@dataclass(frozen=True)
class FieldComparison:
    """One ``field operator value`` term, validated on construction."""
    field: str
    operator: Operator
    value: Any = None

    def __post_init__(self):
        name = normalize_field(self.field)
        op = _operator(self.operator)
        object.__setattr__(self, "field", name)
        object.__setattr__(self, "operator", op)
        object.__setattr__(self, "value", self._check_value(name, op, self.value))

    @staticmethod
    def _check_value(name: str, op: Operator, value: Any) -> Any:
        if op is Operator.EQUALS:
            return _plain(value)
        if op is Operator.IN:
            if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
                raise InvalidPredicateError(f"{name} in: value must be a collection")
            return tuple(_plain(v) for v in value)
        if op is Operator.CONTAINS:
            if not isinstance(value, str):
                raise InvalidPredicateError(f"{name} contains: value must be a string")
            return value.lower()
        if op in (Operator.GTE, Operator.LTE):
            if name in NUMERIC_FIELDS and _is_number(value):
                return value
            if name in DATE_FIELDS and _as_datetime(value) is not None:
                return _as_datetime(value)
            raise InvalidPredicateError(f"{name} {op}: field or value is not orderable")
        # WITHIN
        if name not in DATE_FIELDS:
            raise InvalidPredicateError(f"{name} within: not a date field")
        try:
            start, end = value
        except (TypeError, ValueError):
            raise InvalidPredicateError(f"{name} within: value must be (start, end)") from None
        start, end = _as_datetime(start), _as_datetime(end)
        if start is None or end is None or start > end:
            raise InvalidPredicateError(f"{name} within: need datetimes with start <= end")
        return (start, end)

    def matches(self, actual: Any) -> bool:
        op, expected = self.operator, self.value
        if isinstance(actual, (list, tuple, set, frozenset)):
            items = [_plain(a) for a in actual]
            if op is Operator.EQUALS:
                return expected in items
            if op is Operator.IN:
                return any(i in expected for i in items)
            if op is Operator.CONTAINS:
                return any(isinstance(i, str) and expected in i.lower() for i in items)
            return False

        actual = _plain(actual)
        if isinstance(actual, datetime):
            actual = _utc(actual)
        if op is Operator.EQUALS:
            return actual == expected
        if op is Operator.IN:
            return actual in expected
        if actual is None:
            return False
        if op is Operator.CONTAINS:
            return isinstance(actual, str) and expected in actual.lower()
        if op is Operator.WITHIN:
            start, end = expected
            return isinstance(actual, datetime) and start <= actual <= end
        if not (_is_number(actual) or isinstance(actual, datetime)):
            return False
        if op is Operator.GTE:
            return actual >= expected
        return actual <= expected


@dataclass(frozen=True)
class Predicate:
    """
    Conjunction of field comparisons.  An empty predicate matches everything.

    Example
    -------
    >>> p = Predicate.from_spec([
    ...     {"field": "status", "operator": "in", "value": ["flagged", "warned"]},
    ...     {"field": "riskScore", "operator": "gte", "value": 40},
    ... ])
    >>> [t.field for t in p]
    ['status', 'risk_score']
    """
    terms: Tuple[FieldComparison, ...] = ()

    def __post_init__(self):
        terms = tuple(self.terms)
        for t in terms:
            if not isinstance(t, FieldComparison):
                raise InvalidPredicateError(f"not a FieldComparison: {t!r}")
        object.__setattr__(self, "terms", terms)

    @classmethod
    def from_spec(cls, spec: Iterable[Mapping[str, Any]]) -> "Predicate":
        """Build from ``{"field", "operator", "value"}`` mappings."""
        terms = []
        for item in spec:
            try:
                terms.append(FieldComparison(item["field"], item["operator"], item.get("value")))
            except (KeyError, TypeError):
                raise InvalidPredicateError(f"malformed term: {item!r}") from None
        return cls(tuple(terms))

    def and_(self, *terms: FieldComparison) -> "Predicate":
        return Predicate(self.terms + tuple(terms))

    def __iter__(self):
        return iter(self.terms)

    def __len__(self) -> int:
        return len(self.terms)


PredicateLike = Union[Predicate, Sequence[Mapping[str, Any]]]


def as_predicate(obj: PredicateLike) -> Predicate:
    return obj if isinstance(obj, Predicate) else Predicate.from_spec(obj)


# ---------------------------------------------------------------------
# Field resolution
# ---------------------------------------------------------------------
def _raw(entity: Entity, name: str) -> Any:
    if name == "id":
        return entity.id
    if name == "kind":
        return entity.kind
    if name == "status":
        return entity.status
    if name == "name":
        return entity.name
    if name == "location":
        return entity.location
    if name == "tags":
        return tuple(entity.attributes.get("tags") or ())
    return entity.attributes.get(name)


class FieldResolver:
    """
    Resolves fields for the entities of one evaluation.

    Computed values are cached by the entity's position in the scanned
    collection; build a fresh resolver for every scan.
    """

    def __init__(self, as_of: datetime) -> None:
        self.as_of = as_of
        self._cache: Dict[Tuple[int, str], Any] = {}
        self._compute: Dict[str, Callable[[int, Entity], Any]] = {
            "engagement_score": lambda i, e: compute_engagement_score(e.events, self.as_of),
            "risk_score": lambda i, e: compute_risk_score(e.events, self.as_of, since=risk_reset_at(e)),
            "days_since_last_activity": lambda i, e: days_since_last_activity(e.events, self.as_of),
            "last_activity_at": lambda i, e: last_activity_at(e.events, self.as_of),
            "engagement_band": lambda i, e: engagement_band(self.get(i, e, "engagement_score")),
        }

    def get(self, index: int, entity: Entity, name: str) -> Any:
        if name not in COMPUTED_FIELDS:
            return _raw(entity, name)
        key = (index, name)
        if key not in self._cache:
            self._cache[key] = self._compute[name](index, entity)
        return self._cache[key]

    def test(self, index: int, entity: Entity, predicate: Predicate) -> bool:
        return all(t.matches(self.get(index, entity, t.field)) for t in predicate.terms)


# ---------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------
def evaluate(
    entities: Iterable[Entity],
    predicate: PredicateLike,
    as_of: Optional[datetime] = None,
) -> List[Entity]:
    """
    Return the entities matching *predicate*, in input order.

    :class:`InvalidEventError` from a computed field propagates; use
    :pyfunc:`partition` to keep going past malformed entities.
    """
    predicate = as_predicate(predicate)
    entities = list(entities)
    if not predicate.terms:
        return entities
    resolver = FieldResolver(as_of or utcnow())
    return [e for i, e in enumerate(entities) if resolver.test(i, e, predicate)]


@dataclass
class SegmentResult:
    matched: List[Entity] = field(default_factory=list)
    errors: List[Tuple[str, InvalidEventError]] = field(default_factory=list)


def partition(
    entities: Iterable[Entity],
    predicate: PredicateLike,
    as_of: Optional[datetime] = None,
) -> SegmentResult:
    """Best-effort :pyfunc:`evaluate`: malformed entities land in ``errors``."""
    predicate = as_predicate(predicate)
    resolver = FieldResolver(as_of or utcnow())
    result = SegmentResult()
    for i, ent in enumerate(entities):
        try:
            if resolver.test(i, ent, predicate):
                result.matched.append(ent)
        except InvalidEventError as exc:
            result.errors.append((ent.id, exc))
    return result


SORT_KEYS = ("name", "total_donated", "last_activity_at")


def order_by(
    entities: Iterable[Entity],
    key: str,
    as_of: Optional[datetime] = None,
) -> List[Entity]:
    """
    Sort for list views: ``name`` ascending, ``total_donated`` and
    ``last_activity_at`` descending.  Entities lacking the value sort last.
    """
    if key not in SORT_KEYS:
        raise InvalidPredicateError(f"cannot sort by {key!r}. Allowed: {list(SORT_KEYS)}")
    entities = list(entities)
    resolver = FieldResolver(as_of or utcnow())
    values = [resolver.get(i, e, key) for i, e in enumerate(entities)]
    order = list(range(len(entities)))
    present = [i for i in order if values[i] is not None]
    missing = [i for i in order if values[i] is None]
    if key == "name":
        present.sort(key=lambda i: str(values[i]).lower())
    else:
        present.sort(key=lambda i: values[i], reverse=True)
    return [entities[i] for i in present + missing]
