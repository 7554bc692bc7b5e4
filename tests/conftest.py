"""
Pytest configuration: make sure `import steward` works regardless of
where pytest is invoked, plus a few shared fixtures.

It prepends the project root (one directory above *tests/*) to
``sys.path`` **before** any tests are collected.
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# /path/to/project/tests -> project root
PROJECT_ROOT = Path(__file__).resolve().parent.parent

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from steward.models import (  # noqa: E402
    ActivityEvent,
    ActivityKind,
    ContentStatus,
    Entity,
    EntityKind,
    UserStatus,
)

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def ago():
    """``ago(days)`` → a timestamp *days* before NOW."""
    return lambda days: NOW - timedelta(days=days)


@pytest.fixture
def user():
    return Entity("u1", EntityKind.PLATFORM_USER, UserStatus.ACTIVE,
                  attributes={"name": "Vikram Rao"})


@pytest.fixture
def flagged_post(ago):
    return Entity(
        "p1", EntityKind.CONTENT_ITEM, ContentStatus.FLAGGED,
        events=[ActivityEvent(ago(1), ActivityKind.FLAG)],
        attributes={"name": "Buy followers cheap"},
    )
