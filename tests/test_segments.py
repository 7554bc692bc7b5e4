"""
tests/test_segments.py
======================

Unit tests for predicates, lazy field resolution and list sorting in
steward.segments.

Run:  pytest -q
"""

from datetime import datetime

import pytest

import steward.segments as segments
from steward.errors import InvalidEventError, InvalidPredicateError, UnknownFieldError
from steward.models import ActivityEvent, ActivityKind, Entity, EntityKind, UserStatus
from steward.segments import (
    FieldComparison,
    Operator,
    Predicate,
    evaluate,
    order_by,
    partition,
)
from seed_registry import sample_entities


@pytest.fixture
def population(now):
    return sample_entities(now)


def _ids(entities):
    return [e.id for e in entities]


def test_empty_predicate_returns_everything(population, now):
    assert evaluate(population, Predicate(), now) == population
    assert evaluate(population, [], now) == population


def test_unknown_field_fails_on_construction():
    with pytest.raises(UnknownFieldError) as exc:
        FieldComparison("favourite_colour", "eq", "blue")
    assert exc.value.field == "favourite_colour"


def test_unknown_field_fails_before_scanning(now):
    class Exploding:
        def __iter__(self):
            raise AssertionError("entities were scanned")

    with pytest.raises(UnknownFieldError):
        evaluate(Exploding(), [{"field": "shoe_size", "operator": "gte", "value": 9}], now)


@pytest.mark.parametrize("term", [
    {"field": "name", "operator": "gte", "value": "A"},
    {"field": "status", "operator": "between", "value": 1},
    {"field": "status", "operator": "in", "value": "active"},
    {"field": "name", "operator": "contains", "value": 3},
    {"field": "risk_score", "operator": "within", "value": [1, 2]},
    {"field": "last_activity_at", "operator": "within",
     "value": ["2026-02-01T00:00:00+00:00", "2026-01-01T00:00:00+00:00"]},
    {"field": "status"},
])
def test_malformed_terms(term):
    with pytest.raises(InvalidPredicateError):
        Predicate.from_spec([term])


def test_equals_and_in(population, now):
    assert _ids(evaluate(population, [{"field": "status", "operator": "eq", "value": "flagged"}], now)) \
        == ["post-2"]
    in_set = [{"field": "status", "operator": "in", "value": ["warned", "banned"]}]
    assert _ids(evaluate(population, in_set, now)) == ["user-2", "user-3"]


def test_tier_alias_and_camel_case(population, now):
    spec = [{"field": "tier", "operator": "eq", "value": "major"},
            {"field": "totalDonated", "operator": ">=", "value": 50000}]
    assert _ids(evaluate(population, spec, now)) == ["donor-1"]


def test_contains_is_case_insensitive(population, now):
    spec = [{"field": "location", "operator": "contains", "value": "MAHARASHTRA"}]
    assert _ids(evaluate(population, spec, now)) == ["donor-1", "donor-2"]


def test_list_fields(population, now):
    eq = [{"field": "tags", "operator": "eq", "value": "environment"}]
    assert _ids(evaluate(population, eq, now)) == ["donor-2", "post-1"]
    overlap = [{"field": "tags", "operator": "in", "value": ["spam", "board"]}]
    assert _ids(evaluate(population, overlap, now)) == ["donor-1", "post-2"]


def test_score_ranges(population, now):
    spec = Predicate((
        FieldComparison("kind", Operator.EQUALS, EntityKind.PLATFORM_USER),
        FieldComparison("riskScore", Operator.GTE, 30),
        FieldComparison("risk_score", Operator.LTE, 50),
    ))
    assert _ids(evaluate(population, spec, now)) == ["user-2"]


def test_missing_value_never_satisfies_range(population, now):
    spec = [{"field": "days_since_last_activity", "operator": "gte", "value": 0}]
    assert "donor-5" not in _ids(evaluate(population, spec, now))


def test_within_date_range(population, ago, now):
    spec = [{"field": "last_activity_at", "operator": "within",
             "value": [ago(15).isoformat(), ago(4).isoformat()]}]
    assert _ids(evaluate(population, spec, now)) == ["donor-1", "donor-2"]


def test_computed_fields_resolved_once_per_call(population, now, monkeypatch):
    calls = []
    real = segments.compute_engagement_score

    def counting(events, as_of, **kw):
        calls.append(as_of)
        return real(events, as_of, **kw)

    monkeypatch.setattr(segments, "compute_engagement_score", counting)
    spec = Predicate((
        FieldComparison("engagement_score", Operator.GTE, 10),
        FieldComparison("engagement_score", Operator.LTE, 90),
        FieldComparison("engagement_band", Operator.IN, ["medium", "high"]),
    ))
    evaluate(population, spec, now)
    assert len(calls) == len(population)

    evaluate(population, spec, now)
    assert len(calls) == 2 * len(population)


def test_computed_fields_are_lazy(population, now, monkeypatch):
    calls = []
    real = segments.compute_engagement_score
    monkeypatch.setattr(segments, "compute_engagement_score",
                        lambda events, as_of, **kw: calls.append(1) or real(events, as_of, **kw))
    spec = [{"field": "kind", "operator": "eq", "value": "content_item"},
            {"field": "engagement_score", "operator": "gte", "value": 50}]
    assert _ids(evaluate(population, spec, now)) == ["post-1"]
    assert len(calls) == 2


def test_partition_collects_malformed(now, ago):
    good = Entity("u1", EntityKind.PLATFORM_USER, UserStatus.ACTIVE,
                  events=[ActivityEvent(ago(2), ActivityKind.POST)])
    bad = Entity("u2", EntityKind.PLATFORM_USER, UserStatus.ACTIVE,
                 events=[ActivityEvent(ago(2), ActivityKind.DONATION, float("nan"))])
    spec = [{"field": "engagement_score", "operator": "gte", "value": 50}]

    result = partition([bad, good], spec, now)
    assert _ids(result.matched) == ["u1"]
    assert [eid for eid, _ in result.errors] == ["u2"]

    with pytest.raises(InvalidEventError):
        evaluate([bad, good], spec, now)


def test_order_by(population, now):
    by_name = _ids(order_by(population, "name", now))
    assert by_name[0] == "donor-3"  # Arjun Nair
    by_total = _ids(order_by(population, "total_donated", now))
    assert by_total[:3] == ["donor-1", "donor-2", "donor-3"]
    assert by_total[-5:] == ["user-1", "user-2", "user-3", "post-1", "post-2"]
    by_recent = _ids(order_by(population, "last_activity_at", now))
    assert by_recent[0] == "user-1"
    assert by_recent[-3:] == ["donor-5", "user-3", "post-2"]
    with pytest.raises(InvalidPredicateError):
        order_by(population, "risk_score", now)


def test_plain_date_strings_read_as_utc(population, now):
    """Bounds without a timezone compare against aware activity timestamps."""
    within = [{"field": "last_activity_at", "operator": "within", "value": ["2026-01-01", "2026-01-12"]}]
    assert _ids(evaluate(population, within, now)) == ["donor-1", "donor-2"]
    since = [{"field": "lastActivityAt", "operator": "gte", "value": "2026-01-12"}]
    assert _ids(evaluate(population, since, now)) == ["user-1", "post-1"]
    naive = Predicate((FieldComparison("last_activity_at", Operator.LTE, datetime(2025, 12, 20)),))
    assert _ids(evaluate(population, naive, now)) == ["donor-3", "donor-4", "user-2"]


def test_date_range_over_loaded_records(now):
    donor = Entity.from_record({
        "id": "d9", "kind": "donor", "status": "regular",
        "events": [{"timestamp": "2024-03-01T09:00:00", "kind": "donation", "magnitude": 50}],
    })
    spec = [{"field": "last_activity_at", "operator": "within", "value": ["2024-01-01", "2024-12-31"]}]
    assert _ids(partition([donor], spec, now).matched) == ["d9"]


def test_and_returns_new_predicate():
    base = Predicate((FieldComparison("kind", "eq", "donor"),))
    narrowed = base.and_(FieldComparison("status", "eq", "major"))
    assert len(base) == 1
    assert [t.field for t in narrowed] == ["kind", "status"]
