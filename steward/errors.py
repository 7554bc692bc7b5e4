"""
steward.errors
==============

Typed failures raised by the engine.

Every rejected state change is an expected, caller-recoverable condition,
so the transition errors share a common :class:`TransitionError` base that
host code can catch in one place and map to a user-facing message.
"""

from __future__ import annotations

from typing import Any


class StewardError(Exception):
    """Root of every error raised by :pymod:`steward`."""


# ---------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------
class InvalidEventError(StewardError, ValueError):
    """An activity event cannot be scored (bad magnitude, timestamp or kind)."""

    def __init__(self, message: str, index: int | None = None) -> None:
        super().__init__(message)
        self.index = index


# ---------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------
class TransitionError(StewardError):
    """A requested status change was rejected."""


class IllegalTransitionError(TransitionError):
    """The target status is not reachable from the current status."""

    def __init__(self, message: str, from_status: Any = None, to_status: Any = None) -> None:
        super().__init__(message)
        self.from_status = from_status
        self.to_status = to_status


class TerminalStateError(IllegalTransitionError):
    """The entity sits in a status with no outgoing transitions."""


class MissingFieldError(TransitionError):
    """A field required by the transition was not supplied."""

    def __init__(self, field: str) -> None:
        super().__init__(f"missing required field: {field}")
        self.field = field


class InvalidFieldError(TransitionError):
    """A supplied field failed validation."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"invalid field {field}: {message}")
        self.field = field


class StaleStatusError(TransitionError):
    """The caller's view of the current status is out of date."""

    def __init__(self, expected: Any, actual: Any) -> None:
        super().__init__(f"stale status: expected {expected}, entity is {actual}")
        self.expected = expected
        self.actual = actual


# ---------------------------------------------------------------------
# Segments
# ---------------------------------------------------------------------
class SegmentError(StewardError):
    """A predicate could not be built."""


class UnknownFieldError(SegmentError):
    """A predicate references a field the engine cannot resolve."""

    def __init__(self, field: str) -> None:
        super().__init__(f"unknown field: {field}")
        self.field = field


class InvalidPredicateError(SegmentError, ValueError):
    """A predicate term has an unsupported operator or a malformed value."""
