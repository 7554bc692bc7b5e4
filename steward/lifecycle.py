"""
steward.lifecycle
=================

State-transition guard for a :class:`steward.models.Entity`.

:pyfunc:`apply_transition` validates a requested status change against
:pymod:`steward.rules` and returns a **new** entity whose audit log has
one more record.  The input is never touched, so a rejected request has
no observable effect.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .errors import InvalidFieldError, MissingFieldError, StaleStatusError, TransitionError
from .models import Entity, TransitionRecord, coerce_status, utcnow
from .rules import FIELD_ALIASES, FIELD_VALIDATORS, OPTIONAL_FIELDS, check_transition, target_for_action


def _check_fresh(entity: Entity, expected_status: Any) -> None:
    current = entity.status
    try:
        expected = coerce_status(entity.kind, expected_status)
    except ValueError:
        raise StaleStatusError(expected_status, current) from None
    if expected is not current:
        raise StaleStatusError(expected, current)


def apply_transition(
    entity: Entity,
    to_status: Any,
    reason: Optional[str],
    actor: str,
    extra: Optional[Mapping[str, Any]] = None,
    *,
    expected_status: Any = None,
    at: Optional[datetime] = None,
) -> Entity:
    """
    Return a copy of *entity* moved to *to_status*.

    Parameters
    ----------
    entity : Entity
        Current value; left unchanged.
    to_status : Status | str
        Target status (enum member or its string value).
    reason : str | None
        Why the change is made; required on every transition.
    actor : str
        Who made it.
    extra : Mapping[str, Any] | None
        Structured fields such as ``suspension_duration_days`` or ``notes``.
    expected_status : Status | str | None
        The status the caller believes the entity is in.  When given and
        different from the actual status, :class:`StaleStatusError` is raised.
    at : datetime | None
        Timestamp for the audit record; defaults to now (UTC).

    Examples
    --------
    >>> user = Entity("u1", EntityKind.PLATFORM_USER, UserStatus.ACTIVE)
    >>> user = apply_transition(user, "warned", "spam", "mod@example.org")
    >>> user.status
    <UserStatus.WARNED: 'warned'>
    >>> apply_transition(user, "active", "appeal", "mod@example.org")
    Traceback (most recent call last):
        ...
    steward.errors.IllegalTransitionError: illegal transition warned → active. Allowed: ['banned', 'suspended']
    """
    if expected_status is not None:
        _check_fresh(entity, expected_status)

    current = entity.status
    required = check_transition(entity.kind, current, to_status)
    target = coerce_status(entity.kind, to_status)

    values: Dict[str, Any] = {FIELD_ALIASES.get(k, k): v for k, v in (extra or {}).items()}
    if reason is not None:
        values["reason"] = reason

    unexpected = sorted(set(values) - required - OPTIONAL_FIELDS)
    if unexpected:
        raise InvalidFieldError(unexpected[0], f"not accepted on {current} → {target}")
    for name in sorted(required):
        if values.get(name) is None:
            raise MissingFieldError(name)

    clean = {
        name: FIELD_VALIDATORS[name](value)
        for name, value in values.items()
        if value is not None
    }
    if not isinstance(actor, str) or not actor.strip():
        raise InvalidFieldError("actor", "must not be empty")

    record = TransitionRecord(
        from_status=current,
        to_status=target,
        reason=clean.pop("reason"),
        actor=actor.strip(),
        timestamp=at or utcnow(),
        fields=clean,
    )
    return replace(entity, audit_log=entity.audit_log + (record,))


def apply_action(
    entity: Entity,
    action: str,
    reason: Optional[str],
    actor: str,
    extra: Optional[Mapping[str, Any]] = None,
    **kwargs: Any,
) -> Entity:
    """Like :pyfunc:`apply_transition`, with a named action (``"suspend"``, ``"approve"``...)."""
    target = target_for_action(entity.kind, action)
    return apply_transition(entity, target, reason, actor, extra, **kwargs)


# ---------------------------------------------------------------------
# Batches
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class TransitionRequest:
    """A transition request as the host receives it."""
    entity_id: str
    to_status: Any
    reason: Optional[str]
    actor: str
    extra: Mapping[str, Any] = field(default_factory=dict, hash=False)
    expected_status: Any = None


@dataclass(frozen=True)
class Outcome:
    """Result of one batch item: the new entity or the error that stopped it."""
    entity: Optional[Entity] = None
    error: Optional[Union[TransitionError, KeyError]] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def apply_batch(
    entities: Union[Mapping[str, Entity], Iterable[Entity]],
    requests: Iterable[TransitionRequest],
    at: Optional[datetime] = None,
) -> List[Tuple[str, Outcome]]:
    """
    Apply *requests* in order, best-effort per item.

    A failing request is reported in its ``(entity_id, Outcome)`` pair and
    does not stop the rest.  Several requests for one entity see each
    other's results.
    """
    if isinstance(entities, Mapping):
        current: Dict[str, Entity] = dict(entities)
    else:
        current = {e.id: e for e in entities}

    results: List[Tuple[str, Outcome]] = []
    for req in requests:
        ent = current.get(req.entity_id)
        if ent is None:
            results.append((req.entity_id, Outcome(error=KeyError(req.entity_id))))
            continue
        try:
            updated = apply_transition(
                ent, req.to_status, req.reason, req.actor, req.extra,
                expected_status=req.expected_status, at=at,
            )
        except TransitionError as exc:
            results.append((req.entity_id, Outcome(error=exc)))
            continue
        current[req.entity_id] = updated
        results.append((req.entity_id, Outcome(entity=updated)))
    return results
