"""
Steward
=======

Lifecycle and scoring rules for the entities an administrative console
tracks: donors, platform users and content items.

Import structure
----------------
`import steward` is intentionally cheap: the engine modules use only the
standard library plus *pydantic-settings* for thresholds.  *matplotlib*
is only imported when you explicitly access :pymod:`steward.viz`.

Sub‑modules
~~~~~~~~~~~
- :pymod:`steward.models`     – ``Entity`` dataclass, status enums, activity events
- :pymod:`steward.scoring`    – engagement and risk scores
- :pymod:`steward.rules`      – transition table (`legal_targets`, `required_fields`)
- :pymod:`steward.lifecycle`  – state‑machine guard (`apply_transition`)
- :pymod:`steward.segments`   – declarative predicates (`evaluate`)
- :pymod:`steward.report`     – counts and named segments
- :pymod:`steward.portfolio`  – ``EntityRegistry`` in‑memory host store
- :pymod:`steward.viz`        – plotting helpers (status + segment bar charts)

Quick start
-----------
>>> from steward.models import Entity, EntityKind, UserStatus
>>> from steward.lifecycle import apply_transition
>>> user = Entity("u1", EntityKind.PLATFORM_USER, UserStatus.ACTIVE)
>>> user = apply_transition(user, "suspended", "spam", "admin",
...                         {"suspension_duration_days": 30})
>>> user.status, len(user.audit_log)
(<UserStatus.SUSPENDED: 'suspended'>, 1)

"""

__all__ = [
    "errors",
    "models",
    "scoring",
    "rules",
    "lifecycle",
    "segments",
    "report",
    "portfolio",
    "viz",
]

__version__ = "0.1.0"
