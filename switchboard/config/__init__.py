"""
Switchboard Configuration

Application settings and the MongoDB-backed tenant config store.
"""

from .schemas import AppSettings
from .store import (
    InMemoryTenantConfigStore,
    MongoTenantConfigStore,
    TenantConfigStore,
    TTLCache,
)

__all__ = [
    "AppSettings",
    "InMemoryTenantConfigStore",
    "MongoTenantConfigStore",
    "TTLCache",
    "TenantConfigStore",
]
