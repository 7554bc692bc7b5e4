#!/usr/bin/env python
"""
Seed a registry with sample entities.

Builds a small population of donors, platform users and posts whose
activity is dated relative to "now", so every named segment has
something in it.  The API loads the same data at startup when
``STEWARD_SEED_DEMO=true``.
"""

from datetime import datetime, timedelta
from typing import List, Optional

from steward.models import (
    ActivityEvent,
    ActivityKind,
    ContentStatus,
    DonorTier,
    Entity,
    EntityKind,
    UserStatus,
    utcnow,
)
from steward.portfolio import EntityRegistry


def _ago(now: datetime, days: int) -> datetime:
    return now - timedelta(days=days)


def sample_entities(now: Optional[datetime] = None) -> List[Entity]:
    """Sample donors, users and posts with activity relative to *now*."""
    now = now or utcnow()
    donation = ActivityKind.DONATION
    return [
        Entity(
            "donor-1", EntityKind.DONOR, DonorTier.MAJOR,
            events=[ActivityEvent(_ago(now, d), donation, 25000.0) for d in (400, 200, 12)],
            attributes={
                "name": "Priya Raman",
                "email": "priya.raman@example.org",
                "type": "individual",
                "address": "14 Lake Road, Pune, Maharashtra",
                "tags": ["board", "education"],
                "relationship_manager": "Anita Desai",
                "total_donated": 75000.0,
            },
        ),
        Entity(
            "donor-2", EntityKind.DONOR, DonorTier.RECURRING,
            events=[ActivityEvent(_ago(now, d), ActivityKind.RECURRING_DONATION, 500.0)
                    for d in (95, 65, 35, 5)],
            attributes={
                "name": "GreenLeaf Foods Pvt Ltd",
                "email": "csr@greenleaf.example.com",
                "type": "corporate",
                "address": "Plot 7, MIDC, Nashik, Maharashtra",
                "tags": ["csr", "environment"],
                "relationship_manager": "Rahul Mehta",
                "total_donated": 2000.0,
            },
        ),
        Entity(
            "donor-3", EntityKind.DONOR, DonorTier.REGULAR,
            events=[ActivityEvent(_ago(now, 240), donation, 1500.0),
                    ActivityEvent(_ago(now, 230), ActivityKind.COMMUNICATION)],
            attributes={
                "name": "Arjun Nair",
                "email": "arjun.nair@example.org",
                "type": "individual",
                "address": "22 MG Road, Kochi, Kerala",
                "tags": ["healthcare"],
                "relationship_manager": "Anita Desai",
                "total_donated": 1500.0,
            },
        ),
        Entity(
            "donor-4", EntityKind.DONOR, DonorTier.LAPSED,
            events=[ActivityEvent(_ago(now, 700), donation, 300.0)],
            attributes={
                "name": "Meera Foundation",
                "email": "grants@meera.example.org",
                "type": "foundation",
                "location": "Bengaluru",
                "total_donated": 300.0,
            },
        ),
        Entity(
            "donor-5", EntityKind.DONOR, DonorTier.ONE_TIME,
            attributes={
                "name": "Kabir Singh",
                "email": "kabir@example.org",
                "type": "individual",
                "location": "Delhi",
                "total_donated": 0.0,
            },
        ),
        Entity(
            "user-1", EntityKind.PLATFORM_USER, UserStatus.ACTIVE,
            events=[ActivityEvent(_ago(now, d), ActivityKind.POST) for d in (20, 8, 1)],
            attributes={"name": "Lakshmi Iyer", "email": "lakshmi@example.org", "verified": True},
        ),
        Entity(
            "user-2", EntityKind.PLATFORM_USER, UserStatus.WARNED,
            events=[ActivityEvent(_ago(now, 30), ActivityKind.COMMENT),
                    ActivityEvent(_ago(now, 28), ActivityKind.REPORT),
                    ActivityEvent(_ago(now, 27), ActivityKind.WARNING)],
            attributes={"name": "Vikram Rao", "email": "vikram@example.org", "verified": False},
        ),
        Entity(
            "user-3", EntityKind.PLATFORM_USER, UserStatus.BANNED,
            events=[ActivityEvent(_ago(now, d), ActivityKind.WARNING) for d in (90, 60, 45)],
            attributes={"name": "spam-bot-77", "email": "bot77@example.net", "verified": False},
        ),
        Entity(
            "post-1", EntityKind.CONTENT_ITEM, ContentStatus.ACTIVE,
            events=[ActivityEvent(_ago(now, 3), ActivityKind.COMMENT)],
            attributes={"name": "Tree planting drive, week 3", "tags": ["environment"]},
        ),
        Entity(
            "post-2", EntityKind.CONTENT_ITEM, ContentStatus.FLAGGED,
            events=[ActivityEvent(_ago(now, 2), ActivityKind.FLAG),
                    ActivityEvent(_ago(now, 1), ActivityKind.FLAG)],
            attributes={"name": "Buy followers cheap!!!", "tags": ["spam"]},
        ),
    ]


def seed_registry(registry: EntityRegistry, now: Optional[datetime] = None) -> int:
    """Add the sample entities to *registry*; return how many were added."""
    added = 0
    for entity in sample_entities(now):
        registry.add(entity)
        added += 1
    return added


if __name__ == "__main__":
    from steward.report import dashboard

    reg = EntityRegistry()
    print("Seeding registry with sample entities...")
    for ent in sample_entities():
        reg.add(ent)
        print(f"Added: {ent.name} ({ent.kind}, {ent.status})")

    summary = dashboard(reg)
    print(f"\nAdded {summary['total']} entities.")
    for name, count in summary["segments"].items():
        print(f"  {name}: {count}")
