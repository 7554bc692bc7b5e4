"""
steward.portfolio
=================

An in-memory registry that stores :class:`steward.models.Entity` values
keyed by their id.

This is the host side of the engine: the pure functions in
:pymod:`steward.lifecycle` only *signal* staleness, and the registry is
where a write is compared and swapped under a lock so that two admins
acting on the same entity cannot both win.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Any, Dict, Iterator, List, Mapping, Optional

from .lifecycle import apply_transition
from .models import Entity, EntityKind, Status

logger = logging.getLogger(__name__)


class EntityRegistry:
    """
    Dictionary-backed registry of entities.

    Example
    -------
    >>> reg = EntityRegistry()
    >>> reg.add(Entity("p1", EntityKind.CONTENT_ITEM, ContentStatus.FLAGGED))
    >>> reg.transition("p1", "hidden", "off-topic", "mod@example.org",
    ...                expected_status="flagged").status
    <ContentStatus.HIDDEN: 'hidden'>
    """

    def __init__(self) -> None:
        self._entities: Dict[str, Entity] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def add(self, ent: Entity) -> None:
        """Insert a new entity (raise ValueError if the id is taken)."""
        with self._lock:
            if ent.id in self._entities:
                raise ValueError(f"entity {ent.id!r} already exists")
            self._entities[ent.id] = ent
        logger.debug("registered %s %s", ent.kind, ent.id)

    def get(self, entity_id: str) -> Entity:
        """Retrieve by id (raise KeyError if not present)."""
        return self._entities[entity_id]

    def find_by_status(self, status: Status) -> List[Entity]:
        """Return all entities currently at the given status."""
        return [e for e in self._entities.values() if e.status is status]

    def find_by_kind(self, kind: EntityKind) -> List[Entity]:
        return [e for e in self._entities.values() if e.kind is kind]

    def transition(
        self,
        entity_id: str,
        to_status: Any,
        reason: Optional[str],
        actor: str,
        extra: Optional[Mapping[str, Any]] = None,
        *,
        expected_status: Any = None,
        at: Optional[datetime] = None,
    ) -> Entity:
        """
        Apply a transition and store the result atomically.

        The read, the rule check and the write happen under one lock, so
        a caller passing *expected_status* gets :class:`StaleStatusError`
        if another write landed first.  Errors propagate unchanged.
        """
        with self._lock:
            current = self._entities[entity_id]
            updated = apply_transition(
                current, to_status, reason, actor, extra,
                expected_status=expected_status, at=at,
            )
            self._entities[entity_id] = updated
        logger.info(f"{actor} moved {entity_id} {current.status} → {updated.status}")
        return updated

    def snapshot(self) -> List[Entity]:
        """A consistent list of the current values."""
        with self._lock:
            return list(self._entities.values())

    def clear(self) -> None:
        with self._lock:
            self._entities.clear()

    # ------------------------------------------------------------------
    # Dunder helpers for convenience
    # ------------------------------------------------------------------
    def __iter__(self) -> Iterator[Entity]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        return len(self._entities)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._entities
