"""
steward.rules
=============

Transition table for every entity kind.

``RULES[kind][from_status]`` maps each legal target status to the set of
fields the transition requires.  There are no implicit transitions: a
pair missing from the table is illegal, and a status with an empty row
is terminal.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, FrozenSet, Mapping

from .errors import IllegalTransitionError, InvalidFieldError, TerminalStateError
from .models import ContentStatus, DonorTier, EntityKind, Status, UserStatus, coerce_status
from .settings import settings

_REASON = frozenset({"reason"})
_SUSPEND = frozenset({"reason", "suspension_duration_days"})

# ---------------------------------------------------------------------
# Allowed transitions: kind → source status → {target: required fields}
# ---------------------------------------------------------------------
RULES: Dict[EntityKind, Dict[Any, Dict[Any, FrozenSet[str]]]] = {
    EntityKind.PLATFORM_USER: {
        UserStatus.ACTIVE:    {UserStatus.WARNED: _REASON,
                               UserStatus.SUSPENDED: _SUSPEND,
                               UserStatus.BANNED: _REASON},
        UserStatus.WARNED:    {UserStatus.SUSPENDED: _SUSPEND,
                               UserStatus.BANNED: _REASON},
        UserStatus.SUSPENDED: {UserStatus.BANNED: _REASON,
                               UserStatus.ACTIVE: _REASON},
        UserStatus.BANNED:    {},
    },
    EntityKind.CONTENT_ITEM: {
        ContentStatus.ACTIVE:  {ContentStatus.HIDDEN: _REASON,
                                ContentStatus.REMOVED: _REASON},
        ContentStatus.FLAGGED: {ContentStatus.ACTIVE: _REASON,
                                ContentStatus.HIDDEN: _REASON,
                                ContentStatus.REMOVED: _REASON},
        ContentStatus.HIDDEN:  {ContentStatus.REMOVED: _REASON},
        ContentStatus.REMOVED: {},
    },
    # Tier changes are manual; any tier may move to any other tier.
    EntityKind.DONOR: {
        tier: {other: _REASON for other in DonorTier if other is not tier}
        for tier in DonorTier
    },
}

TERMINAL: Dict[EntityKind, FrozenSet[Any]] = {
    kind: frozenset(status for status, targets in table.items() if not targets)
    for kind, table in RULES.items()
}

# Accepted on every transition, never required.
OPTIONAL_FIELDS: FrozenSet[str] = frozenset({"notes"})

# camelCase names sent by the console forms.
FIELD_ALIASES: Dict[str, str] = {
    "suspensionDurationDays": "suspension_duration_days",
}

# Named moderation actions offered by the console, per kind.
ACTIONS: Dict[EntityKind, Dict[str, Any]] = {
    EntityKind.PLATFORM_USER: {
        "warn": UserStatus.WARNED,
        "suspend": UserStatus.SUSPENDED,
        "ban": UserStatus.BANNED,
        "reactivate": UserStatus.ACTIVE,
    },
    EntityKind.CONTENT_ITEM: {
        "approve": ContentStatus.ACTIVE,
        "hide": ContentStatus.HIDDEN,
        "remove": ContentStatus.REMOVED,
    },
    EntityKind.DONOR: {},
}


def _status(kind: EntityKind, value: Any) -> Status:
    try:
        return coerce_status(kind, value)
    except ValueError as exc:
        raise IllegalTransitionError(str(exc)) from None


def is_terminal(kind: EntityKind, status: Any) -> bool:
    return _status(kind, status) in TERMINAL[kind]


def legal_targets(kind: EntityKind, from_status: Any) -> FrozenSet[Any]:
    """Every status reachable in one step from *from_status* (empty if terminal)."""
    return frozenset(RULES[kind][_status(kind, from_status)])


def check_transition(kind: EntityKind, from_status: Any, to_status: Any) -> FrozenSet[str]:
    """
    Validate the pair and return its required fields.

    Raises :class:`TerminalStateError` when *from_status* is terminal and
    :class:`IllegalTransitionError` when *to_status* is not a legal target.
    """
    src = _status(kind, from_status)
    if src in TERMINAL[kind]:
        raise TerminalStateError(
            f"{kind} is {src}, a terminal status; no transitions are allowed",
            from_status=src,
            to_status=to_status,
        )
    dst = _status(kind, to_status)
    row = RULES[kind][src]
    if dst not in row:
        allowed = sorted(s.value for s in row)
        raise IllegalTransitionError(
            f"illegal transition {src} → {dst}. Allowed: {allowed}",
            from_status=src,
            to_status=dst,
        )
    return row[dst]


def required_fields(kind: EntityKind, from_status: Any, to_status: Any) -> FrozenSet[str]:
    return check_transition(kind, from_status, to_status)


def optional_fields(kind: EntityKind, from_status: Any, to_status: Any) -> FrozenSet[str]:
    check_transition(kind, from_status, to_status)
    return OPTIONAL_FIELDS


def target_for_action(kind: EntityKind, action: str) -> Status:
    """Resolve a named action (``"suspend"``, ``"approve"``...) to its target."""
    try:
        return ACTIONS[kind][action.strip().lower()]
    except (KeyError, AttributeError):
        allowed = sorted(ACTIONS[kind])
        raise IllegalTransitionError(f"unknown action {action!r} for {kind}. Allowed: {allowed}") from None


# ---------------------------------------------------------------------
# Field validators: return the normalised value or raise InvalidFieldError
# ---------------------------------------------------------------------
def _validate_text(name: str, value: Any) -> str:
    if not isinstance(value, str):
        raise InvalidFieldError(name, "must be a string")
    text = value.strip()
    if not text:
        raise InvalidFieldError(name, "must not be empty")
    return text


def validate_reason(value: Any) -> str:
    return _validate_text("reason", value)


def validate_notes(value: Any) -> str:
    if not isinstance(value, str):
        raise InvalidFieldError("notes", "must be a string")
    return value.strip()


def validate_suspension_days(value: Any) -> int:
    """
    Accept an integer (or integral float, or digit string from a form)
    between the configured minimum and maximum, inclusive.
    """
    name = "suspension_duration_days"
    if isinstance(value, bool):
        raise InvalidFieldError(name, "must be a whole number of days")
    if isinstance(value, float):
        if not value.is_integer():
            raise InvalidFieldError(name, "must be a whole number of days")
        value = int(value)
    elif isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            raise InvalidFieldError(name, f"not a number: {value!r}") from None
    elif not isinstance(value, int):
        raise InvalidFieldError(name, "must be a whole number of days")

    lo, hi = settings.min_suspension_days, settings.max_suspension_days
    if not lo <= value <= hi:
        raise InvalidFieldError(name, f"must be between {lo} and {hi}, got {value}")
    return value


FIELD_VALIDATORS: Mapping[str, Callable[[Any], Any]] = {
    "reason": validate_reason,
    "notes": validate_notes,
    "suspension_duration_days": validate_suspension_days,
}
