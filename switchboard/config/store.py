"""
Tenant Config Store for Switchboard.

One document per tenant holds every integration's credentials, flags,
settings and health. The store owns persistence only; it knows nothing
about integrations beyond converting documents with the registry.

Concurrency:
    Every document carries a `version`. `write()` takes the version the
    caller read and fails with ConflictError if someone else wrote in
    between. The lifecycle layer re-reads and retries on conflict.

Caching:
    Reads are cached per tenant with a TTL. Any write, successful or
    conflicting, invalidates that tenant's entry so the next read
    refetches. Read-modify-write callers pass `fresh=True`.
"""

from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from datetime import UTC, datetime, timedelta
from typing import Any

from switchboard.integrations.base import (
    ConflictError,
    StoreError,
    TenantNotFoundError,
)
from switchboard.integrations.models import TenantIntegrationConfig
from switchboard.integrations.registry import IntegrationRegistry, get_registry

logger = logging.getLogger(__name__)


class TTLCache:
    """Simple TTL cache for configuration data."""

    def __init__(self, ttl_seconds: int = 300):
        self._cache: dict[str, tuple[Any, datetime]] = {}
        self._ttl = timedelta(seconds=ttl_seconds)

    def get(self, key: str) -> Any | None:
        if key in self._cache:
            value, expires = self._cache[key]
            if datetime.now(UTC) < expires:
                return value
            del self._cache[key]
        return None

    def set(self, key: str, value: Any) -> None:
        if self._ttl.total_seconds() <= 0:
            return
        expires = datetime.now(UTC) + self._ttl
        self._cache[key] = (value, expires)

    def delete(self, key: str) -> None:
        self._cache.pop(key, None)

    def clear(self) -> None:
        self._cache.clear()


class TenantConfigStore(ABC):
    """
    Base class for tenant config stores.

    Subclasses implement `_load` and `_save` against their backend; this
    class adds caching and the read/write contract used by the lifecycle
    manager.
    """

    def __init__(
        self,
        registry: IntegrationRegistry | None = None,
        cache_ttl: int = 300,
    ):
        self._registry = registry or get_registry()
        self._cache = TTLCache(ttl_seconds=cache_ttl)

    @abstractmethod
    async def _load(self, tenant_id: str) -> dict[str, Any]:
        """Load the raw document. Raise TenantNotFoundError if missing."""
        ...

    @abstractmethod
    async def _save(self, tenant_id: str, document: dict[str, Any], expected_version: int) -> None:
        """Replace the document if its stored version equals expected_version."""
        ...

    async def read(self, tenant_id: str, *, fresh: bool = False) -> TenantIntegrationConfig:
        """
        Read a tenant's config.

        Args:
            tenant_id: Tenant slug
            fresh: Bypass the cache (required before read-modify-write)

        Raises:
            TenantNotFoundError: No document for the tenant
            StoreError: Backend failure
        """
        if not fresh:
            cached = self._cache.get(tenant_id)
            if cached is not None:
                return cached.model_copy(deep=True)

        document = await self._load(tenant_id)
        config = TenantIntegrationConfig.from_document(document, self._registry)
        self._cache.set(tenant_id, config)
        return config.model_copy(deep=True)

    async def write(
        self,
        tenant_id: str,
        config: TenantIntegrationConfig,
        expected_version: int,
    ) -> int:
        """
        Replace the tenant's document, checking the version token.

        Returns:
            The new version

        Raises:
            ConflictError: Stored version differs from expected_version
            StoreError: Backend failure
        """
        new_version = expected_version + 1
        document = config.to_document()
        document["version"] = new_version
        try:
            await self._save(tenant_id, document, expected_version)
        finally:
            self.invalidate(tenant_id)
        logger.debug(f"[{tenant_id}] Config written at version {new_version}")
        return new_version

    def invalidate(self, tenant_id: str) -> None:
        self._cache.delete(tenant_id)

    async def close(self) -> None:
        """Release backend resources."""


class InMemoryTenantConfigStore(TenantConfigStore):
    """Process-local store. Used in tests and local development."""

    def __init__(
        self,
        registry: IntegrationRegistry | None = None,
        cache_ttl: int = 0,
    ):
        super().__init__(registry=registry, cache_ttl=cache_ttl)
        self._documents: dict[str, dict[str, Any]] = {}
        self.reads = 0
        self.writes = 0

    def provision(self, tenant_id: str, tenant_record_id: str | None, **fields: Any) -> None:
        """Create a tenant document, as tenant onboarding would."""
        self._documents[tenant_id] = {
            "id": tenant_record_id,
            "tenant_id": tenant_id,
            "version": 0,
            "integration_settings": {},
            "integration_health": {},
            **fields,
        }

    def document(self, tenant_id: str) -> dict[str, Any]:
        """Deep copy of the raw stored document."""
        return copy.deepcopy(self._documents[tenant_id])

    async def _load(self, tenant_id: str) -> dict[str, Any]:
        self.reads += 1
        document = self._documents.get(tenant_id)
        if document is None:
            raise TenantNotFoundError(f"No config for tenant '{tenant_id}'", tenant_id=tenant_id)
        return copy.deepcopy(document)

    async def _save(self, tenant_id: str, document: dict[str, Any], expected_version: int) -> None:
        current = self._documents.get(tenant_id)
        if current is None:
            raise TenantNotFoundError(f"No config for tenant '{tenant_id}'", tenant_id=tenant_id)

        actual_version = current.get("version", 0)
        if actual_version != expected_version:
            raise ConflictError(
                f"Config for tenant '{tenant_id}' changed concurrently",
                tenant_id=tenant_id,
                expected_version=expected_version,
                actual_version=actual_version,
            )

        self.writes += 1
        self._documents[tenant_id] = copy.deepcopy(document)


class MongoTenantConfigStore(TenantConfigStore):
    """
    Tenant config store backed by MongoDB.

    Collection: tenant_config, one document per tenant keyed by tenant_id.
    Writes are conditional replaces on {tenant_id, version}.
    """

    def __init__(
        self,
        mongodb_url: str,
        database_name: str = "switchboard",
        collection_name: str = "tenant_config",
        registry: IntegrationRegistry | None = None,
        cache_ttl: int = 300,
    ):
        """
        Initialize the store.

        Args:
            mongodb_url: MongoDB connection URL
            database_name: Database name
            collection_name: Collection holding tenant config documents
            registry: Registry used to interpret documents
            cache_ttl: Read cache TTL in seconds
        """
        super().__init__(registry=registry, cache_ttl=cache_ttl)
        self._mongodb_url = mongodb_url
        self._database_name = database_name
        self._collection_name = collection_name
        self._client = None
        self._db = None

    async def connect(self) -> None:
        """Connect to MongoDB."""
        self._open()

    def _open(self) -> None:
        from motor.motor_asyncio import AsyncIOMotorClient

        self._client = AsyncIOMotorClient(self._mongodb_url, tz_aware=True)
        self._db = self._client[self._database_name]
        logger.info(f"Connected to MongoDB database: {self._database_name}")

    @property
    def database(self):
        """
        Motor database handle, opening the client if needed.

        Shared with the audit sink so one client serves both collections
        and close() releases it.
        """
        if self._db is None:
            self._open()
        return self._db

    async def close(self) -> None:
        """Close MongoDB connection."""
        if self._client:
            self._client.close()
            self._client = None
            self._db = None

    @property
    def is_connected(self) -> bool:
        return self._db is not None

    async def _ensure_connected(self) -> None:
        if self._db is None:
            await self.connect()

    async def _collection(self):
        await self._ensure_connected()
        return self._db[self._collection_name]

    async def _load(self, tenant_id: str) -> dict[str, Any]:
        from pymongo.errors import PyMongoError

        try:
            collection = await self._collection()
            document = await collection.find_one({"tenant_id": tenant_id})
        except PyMongoError as e:
            raise StoreError(f"Failed to read config: {e}", tenant_id=tenant_id) from e

        if document is None:
            raise TenantNotFoundError(f"No config for tenant '{tenant_id}'", tenant_id=tenant_id)
        document.pop("_id", None)
        return document

    async def _save(self, tenant_id: str, document: dict[str, Any], expected_version: int) -> None:
        from pymongo.errors import PyMongoError

        query: dict[str, Any] = {"tenant_id": tenant_id}
        if expected_version == 0:
            query["$or"] = [{"version": 0}, {"version": {"$exists": False}}]
        else:
            query["version"] = expected_version

        try:
            collection = await self._collection()
            result = await collection.replace_one(query, document)
            if result.matched_count == 1:
                return
            current = await collection.find_one({"tenant_id": tenant_id}, {"version": 1})
        except PyMongoError as e:
            raise StoreError(f"Failed to write config: {e}", tenant_id=tenant_id) from e

        if current is None:
            raise TenantNotFoundError(f"No config for tenant '{tenant_id}'", tenant_id=tenant_id)
        raise ConflictError(
            f"Config for tenant '{tenant_id}' changed concurrently",
            tenant_id=tenant_id,
            expected_version=expected_version,
            actual_version=current.get("version", 0),
        )

    async def provision(self, tenant_id: str, tenant_record_id: str, **fields: Any) -> None:
        """Create the tenant document if it does not exist yet."""
        collection = await self._collection()
        await collection.update_one(
            {"tenant_id": tenant_id},
            {
                "$setOnInsert": {
                    "id": tenant_record_id,
                    "tenant_id": tenant_id,
                    "version": 0,
                    "integration_settings": {},
                    "integration_health": {},
                    **fields,
                }
            },
            upsert=True,
        )
        self.invalidate(tenant_id)


__all__ = [
    "InMemoryTenantConfigStore",
    "MongoTenantConfigStore",
    "TTLCache",
    "TenantConfigStore",
]
