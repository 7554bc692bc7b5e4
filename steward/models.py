"""
steward.models
==============

Dataclasses and enums for the three entity kinds tracked by Steward:
donors, platform users and content items.

Every value here is frozen.  Operations in :pymod:`steward.lifecycle`
return new :class:`Entity` values instead of mutating the one they were
handed, so a caller always owns exactly the value it holds.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple, Type, Union


class EntityKind(Enum):
    """The closed set of entity kinds."""
    DONOR = "donor"
    PLATFORM_USER = "platform_user"
    CONTENT_ITEM = "content_item"

    def __str__(self) -> str:
        return self.value


class DonorTier(Enum):
    """Donor tier; the status dimension of a donor."""
    MAJOR = "major"
    REGULAR = "regular"
    RECURRING = "recurring"
    ONE_TIME = "one-time"
    LAPSED = "lapsed"

    def __str__(self) -> str:
        return self.value


class UserStatus(Enum):
    """Moderation status of a platform user."""
    ACTIVE = "active"
    WARNED = "warned"
    SUSPENDED = "suspended"
    BANNED = "banned"

    def __str__(self) -> str:
        return self.value


class ContentStatus(Enum):
    """Moderation status of a post or other content item."""
    ACTIVE = "active"
    FLAGGED = "flagged"
    HIDDEN = "hidden"
    REMOVED = "removed"

    def __str__(self) -> str:
        return self.value


class ActivityKind(Enum):
    """What an :class:`ActivityEvent` records."""
    DONATION = "donation"
    RECURRING_DONATION = "recurring_donation"
    COMMUNICATION = "communication"
    CAMPAIGN_JOIN = "campaign_join"
    NOTE = "note"
    PROFILE_UPDATE = "profile_update"
    POST = "post"
    COMMENT = "comment"
    WARNING = "warning"
    FLAG = "flag"
    REPORT = "report"

    def __str__(self) -> str:
        return self.value


Status = Union[DonorTier, UserStatus, ContentStatus]

STATUS_ENUMS: Dict[EntityKind, Type[Enum]] = {
    EntityKind.DONOR: DonorTier,
    EntityKind.PLATFORM_USER: UserStatus,
    EntityKind.CONTENT_ITEM: ContentStatus,
}

# Kinds that count towards engagement (recency and lifetime volume).
ENGAGEMENT_KINDS = frozenset({
    ActivityKind.DONATION,
    ActivityKind.RECURRING_DONATION,
    ActivityKind.COMMUNICATION,
    ActivityKind.CAMPAIGN_JOIN,
    ActivityKind.POST,
    ActivityKind.COMMENT,
})

# Kinds that count towards moderation risk.
NEGATIVE_KINDS = frozenset({
    ActivityKind.WARNING,
    ActivityKind.FLAG,
    ActivityKind.REPORT,
})


def coerce_status(kind: EntityKind, value: Any) -> Status:
    """
    Return the status member of *kind* named by *value*.

    *value* may be a member of the kind's enum or its string value.
    Raises :class:`ValueError` for anything else, including members of
    another kind's enum.
    """
    enum_cls = STATUS_ENUMS[kind]
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, Enum):
        raise ValueError(f"{value!r} is not a {kind} status")
    try:
        return enum_cls(value)
    except ValueError:
        raise ValueError(f"{value!r} is not a {kind} status") from None


def utcnow() -> datetime:
    """Timezone-aware current time; the default clock for the engine."""
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        parsed = datetime.fromisoformat(value)
        # naive strings from JSON are read as UTC
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    raise ValueError(f"invalid timestamp: {value!r}")


@dataclass(frozen=True)
class ActivityEvent:
    """
    A timestamped fact about an entity.

    Parameters
    ----------
    timestamp : datetime.datetime
        When it happened.
    kind : ActivityKind
        Donation, post, warning, flag...
    magnitude : float | None, default=None
        Donation amount or similar; ``None`` where not applicable.
    """
    timestamp: datetime
    kind: ActivityKind
    magnitude: Optional[float] = None

    @classmethod
    def from_record(cls, rec: Mapping[str, Any]) -> "ActivityEvent":
        return cls(
            timestamp=_parse_timestamp(rec["timestamp"]),
            kind=ActivityKind(rec["kind"]),
            magnitude=rec.get("magnitude"),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "kind": self.kind.value,
            "magnitude": self.magnitude,
        }


@dataclass(frozen=True)
class TransitionRecord:
    """One entry of an entity's append-only audit log."""
    from_status: Status
    to_status: Status
    reason: str
    actor: str
    timestamp: datetime
    fields: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    @property
    def suspension_ends_at(self) -> Optional[datetime]:
        """End of the suspension this record started, if it started one."""
        days = self.fields.get("suspension_duration_days")
        if days is None:
            return None
        return self.timestamp + timedelta(days=days)

    def to_record(self) -> Dict[str, Any]:
        return {
            "from_status": self.from_status.value,
            "to_status": self.to_status.value,
            "reason": self.reason,
            "actor": self.actor,
            "timestamp": self.timestamp.isoformat(),
            "fields": dict(self.fields),
        }


@dataclass(frozen=True)
class Entity:
    """
    Core record tracked by Steward.

    Parameters
    ----------
    id : str
        Opaque identity assigned by the host.
    kind : EntityKind
        Donor, platform user or content item.
    initial_status : Status
        Status the entity was created with.
    events : tuple[ActivityEvent, ...], default=()
        Chronologically ordered activity history.
    audit_log : tuple[TransitionRecord, ...], default=()
        Append-only transition history.
    attributes : Mapping[str, Any], default={}
        Descriptive fields (name, email, tags, address, ...).
    """
    id: str
    kind: EntityKind
    initial_status: Status
    events: Tuple[ActivityEvent, ...] = ()
    audit_log: Tuple[TransitionRecord, ...] = ()
    attributes: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        if not isinstance(self.kind, EntityKind):
            raise ValueError(f"invalid entity kind: {self.kind!r}")
        if not isinstance(self.initial_status, STATUS_ENUMS[self.kind]):
            raise ValueError(f"{self.initial_status!r} is not a {self.kind} status")
        object.__setattr__(self, "events", tuple(self.events))
        object.__setattr__(self, "audit_log", tuple(self.audit_log))
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))

    # Convenience helpers -------------------------------------------------
    @property
    def status(self) -> Status:
        """Current status: the target of the last audit record, if any."""
        if self.audit_log:
            return self.audit_log[-1].to_status
        return self.initial_status

    @property
    def name(self) -> str:
        return self.attributes.get("name", self.id)

    @property
    def location(self) -> Optional[str]:
        """Explicit ``location`` attribute, else the last part of ``address``."""
        loc = self.attributes.get("location")
        if loc:
            return loc
        address = self.attributes.get("address")
        if not address:
            return None
        return address.split(",")[-1].strip() or None

    # Converters ----------------------------------------------------------
    @classmethod
    def from_record(cls, rec: Mapping[str, Any]) -> "Entity":
        """
        Build an entity from plain JSON-style data.

        Keys ``id``, ``kind`` and ``status`` are required; ``events`` and
        ``audit_log`` are optional lists.  Every other key becomes an
        attribute.  Raises :class:`ValueError` on malformed input.
        """
        try:
            kind = EntityKind(rec["kind"])
            status = coerce_status(kind, rec["status"])
            events = [ActivityEvent.from_record(e) for e in rec.get("events", ())]
            log = [
                TransitionRecord(
                    from_status=coerce_status(kind, r["from_status"]),
                    to_status=coerce_status(kind, r["to_status"]),
                    reason=r["reason"],
                    actor=r["actor"],
                    timestamp=_parse_timestamp(r["timestamp"]),
                    fields=r.get("fields", {}),
                )
                for r in rec.get("audit_log", ())
            ]
            entity_id = str(rec["id"])
        except KeyError as exc:
            raise ValueError(f"record is missing {exc.args[0]!r}") from None
        except TypeError as exc:
            # e.g. an event given as a bare string instead of a mapping
            raise ValueError(f"malformed record: {exc}") from None

        reserved = {"id", "kind", "status", "events", "audit_log"}
        attrs = {k: v for k, v in rec.items() if k not in reserved}
        return cls(entity_id, kind, status, events, log, attrs)

    def to_record(self) -> Dict[str, Any]:
        """Inverse of :meth:`from_record`; ``status`` is the initial status."""
        rec: Dict[str, Any] = dict(self.attributes)
        rec.update(
            id=self.id,
            kind=self.kind.value,
            status=self.initial_status.value,
            events=[e.to_record() for e in self.events],
            audit_log=[r.to_record() for r in self.audit_log],
        )
        return rec
