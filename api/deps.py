"""
api.deps
========

FastAPI dependency providers.

`get_registry` returns the process-wide in-memory EntityRegistry.  When
``STEWARD_SEED_DEMO=true`` the registry starts with the sample data from
``seed_registry.py``.
"""

from functools import lru_cache

from steward.portfolio import EntityRegistry
from steward.settings import API_SEED_DEMO, Settings, settings


@lru_cache
def get_registry() -> EntityRegistry:
    """Singleton registry (persists across requests)."""
    registry = EntityRegistry()
    if API_SEED_DEMO:
        from seed_registry import seed_registry
        seed_registry(registry)
    return registry


@lru_cache
def get_settings() -> Settings:
    """Engine thresholds (the module-level singleton)."""
    return settings
