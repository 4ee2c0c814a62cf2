"""
api.deps
========

FastAPI dependency providers.

`get_service` returns one **LifecycleService** backed by the SQLite
store so every request talks to the same persistent records.  Tests
swap it out through ``app.dependency_overrides``.
"""

from functools import lru_cache

from cadence.db import create_all
from cadence.registry_db import DBEntityRegistry
from cadence.service import LifecycleService, configured_prefixes
from cadence.settings import settings


@lru_cache
def get_service() -> LifecycleService:
    """Singleton DB‑backed lifecycle service (persists across requests)."""
    create_all()
    return LifecycleService(DBEntityRegistry(prefixes=configured_prefixes()))


@lru_cache
def get_settings():
    """Return application settings."""
    return settings
