"""
tests/test_scoring.py
=====================

Unit tests for the engagement / risk formulas in steward.scoring.

Run:  pytest -q
"""

import math
from datetime import datetime, timedelta

import pytest

from steward.errors import InvalidEventError
from steward.lifecycle import apply_transition
from steward.models import ActivityEvent, ActivityKind, Entity, EntityKind, UserStatus
from steward.scoring import (
    ScoreCard,
    compute_engagement_score,
    compute_risk_score,
    days_since_last_activity,
    engagement_band,
    risk_score,
    score_entities,
)


def _donation(ts, amount=100.0):
    return ActivityEvent(ts, ActivityKind.DONATION, amount)


# ---------------------------------------------------------------------
# Engagement
# ---------------------------------------------------------------------
def test_recent_donor_scores_full(now, ago):
    """Donations 10 and 200 days ago: 100 - 10 + 2*5 clamps to 100."""
    events = [_donation(ago(200)), _donation(ago(10))]
    assert compute_engagement_score(events, now) == 100


def test_no_events_scores_zero(now):
    assert compute_engagement_score([], now) == 0


def test_single_event_formula(now, ago):
    assert compute_engagement_score([_donation(ago(30))], now) == 75


def test_non_qualifying_kinds_ignored(now, ago):
    events = [ActivityEvent(ago(1), ActivityKind.NOTE),
              ActivityEvent(ago(1), ActivityKind.WARNING),
              ActivityEvent(ago(1), ActivityKind.PROFILE_UPDATE)]
    assert compute_engagement_score(events, now) == 0
    assert days_since_last_activity(events, now) is None


def test_future_events_ignored(now):
    events = [_donation(now + timedelta(days=3))]
    assert compute_engagement_score(events, now) == 0


def test_engagement_never_rises_as_time_passes(now, ago):
    events = [_donation(ago(400)), _donation(ago(40))]
    scores = [compute_engagement_score(events, now + timedelta(days=d)) for d in range(0, 200, 7)]
    assert all(0 <= s <= 100 for s in scores)
    assert scores == sorted(scores, reverse=True)


def test_more_history_never_lowers_engagement(now, ago):
    latest = _donation(ago(80))
    previous = compute_engagement_score([latest], now)
    older = []
    for d in range(100, 300, 20):
        older.append(_donation(ago(d)))
        score = compute_engagement_score(older + [latest], now)
        assert score >= previous
        previous = score


def test_days_since_uses_whole_days(now, ago):
    events = [_donation(ago(10) + timedelta(hours=3))]
    assert days_since_last_activity(events, now) == 9


@pytest.mark.parametrize("magnitude", [-1.0, math.nan, math.inf, "100", True])
def test_malformed_magnitude_raises(now, ago, magnitude):
    with pytest.raises(InvalidEventError):
        compute_engagement_score([_donation(ago(1), magnitude)], now)


def test_mixed_naive_and_aware_raises(now):
    naive = datetime(2025, 12, 1, 8, 0)
    with pytest.raises(InvalidEventError):
        compute_engagement_score([_donation(naive)], now)


def test_engagement_band_thresholds():
    assert engagement_band(100) == "high"
    assert engagement_band(70) == "high"
    assert engagement_band(69) == "medium"
    assert engagement_band(40) == "medium"
    assert engagement_band(39) == "low"
    assert engagement_band(0) == "low"


# ---------------------------------------------------------------------
# Risk
# ---------------------------------------------------------------------
def test_risk_weights(now, ago):
    events = [ActivityEvent(ago(5), ActivityKind.WARNING),
              ActivityEvent(ago(4), ActivityKind.FLAG),
              ActivityEvent(ago(3), ActivityKind.REPORT),
              ActivityEvent(ago(2), ActivityKind.POST)]
    assert compute_risk_score(events, now) == 55
    assert compute_risk_score([], now) == 0


def test_risk_clamps_at_100(now, ago):
    events = [ActivityEvent(ago(d), ActivityKind.WARNING) for d in range(1, 10)]
    assert compute_risk_score(events, now) == 100


def test_risk_grows_with_each_negative_event(now, ago):
    events, previous = [], 0
    for d in range(30, 0, -3):
        events.append(ActivityEvent(ago(d), ActivityKind.REPORT))
        score = compute_risk_score(events, now)
        assert score >= previous
        previous = score


def test_risk_does_not_decay_with_time(now, ago):
    events = [ActivityEvent(ago(5), ActivityKind.FLAG)]
    later = [compute_risk_score(events, now + timedelta(days=d)) for d in (0, 30, 365, 3650)]
    assert later == [20, 20, 20, 20]


def test_since_excludes_older_events(now, ago):
    events = [ActivityEvent(ago(50), ActivityKind.WARNING),
              ActivityEvent(ago(5), ActivityKind.FLAG)]
    assert compute_risk_score(events, now, since=ago(10)) == 20


def test_reactivation_resets_risk(now, ago):
    user = Entity("u1", EntityKind.PLATFORM_USER, UserStatus.ACTIVE,
                  events=[ActivityEvent(ago(40), ActivityKind.WARNING),
                          ActivityEvent(ago(35), ActivityKind.WARNING)])
    assert risk_score(user, now) == 50

    user = apply_transition(user, "suspended", "repeated spam", "mod", {"suspension_duration_days": 7},
                            at=ago(30))
    user = apply_transition(user, "active", "suspension served", "mod", at=ago(20))
    assert risk_score(user, now) == 0

    user = Entity(user.id, user.kind, user.initial_status,
                  events=user.events + (ActivityEvent(ago(2), ActivityKind.WARNING),),
                  audit_log=user.audit_log)
    assert risk_score(user, now) == 25


# ---------------------------------------------------------------------
# Best-effort batch
# ---------------------------------------------------------------------
def test_score_entities_reports_bad_entity(now, ago):
    good = Entity("u1", EntityKind.PLATFORM_USER, UserStatus.ACTIVE,
                  events=[ActivityEvent(ago(30), ActivityKind.POST)])
    bad = Entity("u2", EntityKind.PLATFORM_USER, UserStatus.ACTIVE,
                 events=[ActivityEvent(ago(1), ActivityKind.DONATION, -5.0)])
    results = dict(score_entities([good, bad], now))

    assert isinstance(results["u1"], ScoreCard)
    assert results["u1"].engagement_score == 75
    assert results["u1"].engagement_band == "high"
    assert results["u1"].days_since_last_activity == 30
    assert isinstance(results["u2"], InvalidEventError)
