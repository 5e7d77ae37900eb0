"""
Data model for tenant integration configuration.

The tenant config is stored as one flat document shared by every
integration: credential keys and connection flags sit at the document
root, settings and health live in nested maps keyed by integration id,
and timestamps use flat `{id}_connected_at` / `{id}_last_sync` keys.

`TenantIntegrationConfig` wraps that document. It is built with
`from_document()` (using the registry to know which root keys belong to
which map) and written back with `to_document()`. Stored values are kept
exactly as read, whatever their type: a patch replaces the entries of the
integration it targets and every other entry is written back unchanged.
Typed values (`health_for`, `connected_at_for`, ...) are parsed on access,
and an entry that does not parse is reported as absent.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Mapping

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

if TYPE_CHECKING:
    from .registry import IntegrationDefinition, IntegrationRegistry

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    """Get current UTC time with timezone awareness."""
    return datetime.now(UTC)


def _as_datetime(value: Any) -> datetime | None:
    """Stored timestamp as a datetime; None when absent or unparseable."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return None
    return None


CONNECTED_AT_SUFFIX = "_connected_at"
LAST_SYNC_SUFFIX = "_last_sync"

# Root keys owned by the document itself rather than by an integration
_META_KEYS = frozenset(
    {"_id", "id", "tenant_id", "version", "updated_at", "integration_settings", "integration_health"}
)


# =============================================================================
# Enums
# =============================================================================


class ConnectionStatus(str, Enum):
    """Connection status derived from the integration's flag."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class ConnectionState(str, Enum):
    """Lifecycle state of one integration."""

    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    DEGRADED = "degraded"


class HealthState(str, Enum):
    """Last-known liveness of a connected integration."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    DOWN = "down"


class LifecycleAction(str, Enum):
    """Mutations recorded in the audit log."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    SETTINGS_UPDATED = "settings_updated"
    HEALTH_RECORDED = "health_recorded"


# =============================================================================
# Stored document
# =============================================================================


class HealthRecord(BaseModel):
    """
    Health entry stored under integration_health[id].

    Statuses outside HealthState are kept as plain strings and count as
    not healthy. Extra keys written by other services are preserved.
    """

    status: HealthState | str
    last_check: datetime | None = Field(None, alias="lastCheck")
    message: str | None = None
    latency_ms: float | None = Field(None, alias="latency")

    class Config:
        populate_by_name = True
        extra = "allow"

    @field_validator("status", mode="before")
    @classmethod
    def _known_status(cls, value: Any) -> Any:
        try:
            return HealthState(value)
        except ValueError:
            return value

    @property
    def is_healthy(self) -> bool:
        return self.status == HealthState.HEALTHY

    @property
    def status_value(self) -> str:
        return self.status.value if isinstance(self.status, HealthState) else self.status

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class TenantIntegrationConfig(BaseModel):
    """View of one tenant's integration configuration.

    The per-integration maps hold raw stored values. Use the typed
    accessors to read them.
    """

    tenant_id: str = Field(..., description="Human-facing tenant slug, the store partition key")
    tenant_record_id: str | None = Field(None, description="Opaque internal tenant id")

    credential_fields: dict[str, Any] = Field(default_factory=dict)
    connection_flags: dict[str, Any] = Field(default_factory=dict)
    integration_settings: dict[str, Any] = Field(default_factory=dict)
    integration_health: dict[str, Any] = Field(default_factory=dict)
    connected_at: dict[str, Any] = Field(default_factory=dict)
    last_sync_at: dict[str, Any] = Field(default_factory=dict)

    version: int = Field(0, ge=0, description="Optimistic concurrency token")
    updated_at: Any = None

    other_fields: dict[str, Any] = Field(default_factory=dict, description="Unrelated root keys")

    def is_flag_set(self, flag_key: str | None) -> bool:
        if not flag_key:
            return False
        return self.connection_flags.get(flag_key) is True

    def credentials_for(self, definition: "IntegrationDefinition") -> dict[str, str | None]:
        """Stored credential values owned by one integration, as strings."""
        return {
            key: None if self.credential_fields[key] is None else str(self.credential_fields[key])
            for key in definition.credential_keys
            if key in self.credential_fields
        }

    def settings_for(self, integration_id: str) -> dict[str, Any]:
        settings = self.integration_settings.get(integration_id)
        return dict(settings) if isinstance(settings, Mapping) else {}

    def health_for(self, integration_id: str) -> HealthRecord | None:
        """Parsed health entry, or None when absent or malformed."""
        raw = self.integration_health.get(integration_id)
        if not raw or not isinstance(raw, Mapping):
            return None
        try:
            return HealthRecord.model_validate(raw)
        except PydanticValidationError as e:
            logger.warning(
                f"[{integration_id}] Ignoring malformed health entry for tenant {self.tenant_id}: "
                f"{e.error_count()} errors"
            )
            return None

    def connected_at_for(self, integration_id: str) -> datetime | None:
        return _as_datetime(self.connected_at.get(integration_id))

    def last_sync_for(self, integration_id: str) -> datetime | None:
        return _as_datetime(self.last_sync_at.get(integration_id))

    @classmethod
    def from_document(
        cls,
        document: dict[str, Any],
        registry: "IntegrationRegistry",
    ) -> "TenantIntegrationConfig":
        """Split a stored flat document into per-integration maps."""
        credential_keys = set(registry.credential_keys)
        flag_keys = set(registry.flag_keys)
        connected_keys = {f"{i}{CONNECTED_AT_SUFFIX}": i for i in registry.ids}
        sync_keys = {f"{i}{LAST_SYNC_SUFFIX}": i for i in registry.ids}

        credentials: dict[str, Any] = {}
        flags: dict[str, Any] = {}
        connected_at: dict[str, Any] = {}
        last_sync: dict[str, Any] = {}
        other_fields: dict[str, Any] = {}

        for key, value in document.items():
            if key in _META_KEYS:
                continue
            if key in credential_keys:
                credentials[key] = value
            elif key in flag_keys:
                flags[key] = value
            elif key in connected_keys:
                connected_at[connected_keys[key]] = value
            elif key in sync_keys:
                last_sync[sync_keys[key]] = value
            else:
                other_fields[key] = value

        record_id = document.get("id")
        return cls(
            tenant_id=document["tenant_id"],
            tenant_record_id=str(record_id) if record_id else None,
            credential_fields=credentials,
            connection_flags=flags,
            integration_settings=_nested_map(document, "integration_settings"),
            integration_health=_nested_map(document, "integration_health"),
            connected_at=connected_at,
            last_sync_at=last_sync,
            version=document.get("version", 0),
            updated_at=document.get("updated_at"),
            other_fields=other_fields,
        )

    def to_document(self) -> dict[str, Any]:
        """Flatten back into the stored document shape."""
        document: dict[str, Any] = copy.deepcopy(self.other_fields)
        document.update(
            {
                "id": self.tenant_record_id,
                "tenant_id": self.tenant_id,
                "version": self.version,
                "updated_at": self.updated_at,
            }
        )
        document.update(copy.deepcopy(self.credential_fields))
        document.update(self.connection_flags)
        for integration_id, value in self.connected_at.items():
            document[f"{integration_id}{CONNECTED_AT_SUFFIX}"] = value
        for integration_id, value in self.last_sync_at.items():
            document[f"{integration_id}{LAST_SYNC_SUFFIX}"] = value
        document["integration_settings"] = copy.deepcopy(self.integration_settings)
        document["integration_health"] = copy.deepcopy(self.integration_health)
        return document


def _nested_map(document: dict[str, Any], key: str) -> dict[str, Any]:
    value = document.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        logger.warning(f"Tenant {document.get('tenant_id')}: '{key}' is not a map, treating as empty")
        return {}
    return dict(value)


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True, slots=True)
class ConnectionSnapshot:
    """Resolved status of one integration for one tenant."""

    integration_id: str
    status: ConnectionStatus
    state: ConnectionState
    health: HealthRecord | None = None
    connected_at: datetime | None = None
    last_sync_at: datetime | None = None

    @property
    def is_connected(self) -> bool:
        return self.status is ConnectionStatus.CONNECTED

    def to_dict(self) -> dict[str, Any]:
        return {
            "integration_id": self.integration_id,
            "status": self.status.value,
            "state": self.state.value,
            "health": self.health.to_document() if self.health else None,
            "connected_at": self.connected_at.isoformat() if self.connected_at else None,
            "last_sync_at": self.last_sync_at.isoformat() if self.last_sync_at else None,
        }


@dataclass(frozen=True, slots=True)
class MutationResult:
    """Outcome of a successful lifecycle mutation.

    The write was document-level; callers refetch rather than trusting a
    locally patched copy.
    """

    tenant_id: str
    integration_id: str
    action: LifecycleAction
    version: int
    attempts: int = 1
    tenant_record_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "tenant_id": self.tenant_id,
            "integration_id": self.integration_id,
            "action": self.action.value,
            "version": self.version,
        }


@dataclass(frozen=True, slots=True)
class IntegrationView:
    """Catalog entry joined with the tenant's resolved status."""

    definition: "IntegrationDefinition"
    snapshot: ConnectionSnapshot
    webhook_url: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.definition.to_dict(),
            **self.snapshot.to_dict(),
            "webhook_url": self.webhook_url,
        }


@dataclass(frozen=True, slots=True)
class IntegrationSummary:
    """Connected/total counts for a tenant."""

    connected: int
    total: int
    snapshots: list[ConnectionSnapshot] = field(default_factory=list)


__all__ = [
    "ConnectionSnapshot",
    "ConnectionState",
    "ConnectionStatus",
    "HealthRecord",
    "HealthState",
    "IntegrationSummary",
    "IntegrationView",
    "LifecycleAction",
    "MutationResult",
    "TenantIntegrationConfig",
]
