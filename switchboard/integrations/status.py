"""
Connection status resolution.

Pure functions over a TenantIntegrationConfig snapshot. No store or
network access, so they are safe to call on every render or poll cycle.

The connection flag is the only signal for "connected". Health is
reported verbatim and never defaulted: a connected integration with no
health entry is simply connected with unknown health. A malformed health
entry reads the same as a missing one.
"""

from __future__ import annotations

from .models import (
    ConnectionSnapshot,
    ConnectionState,
    ConnectionStatus,
    IntegrationSummary,
    TenantIntegrationConfig,
)
from .registry import IntegrationRegistry, get_registry


def resolve_status(
    config: TenantIntegrationConfig | None,
    integration_id: str,
    registry: IntegrationRegistry | None = None,
) -> ConnectionSnapshot:
    """
    Derive the status of one integration from a config snapshot.

    Unknown integrations and missing flags resolve to disconnected.
    """
    registry = registry or get_registry()

    if config is None:
        return ConnectionSnapshot(
            integration_id=integration_id,
            status=ConnectionStatus.DISCONNECTED,
            state=ConnectionState.DISCONNECTED,
        )

    connected = config.is_flag_set(registry.flag_key(integration_id))
    health = config.health_for(integration_id)

    if not connected:
        state = ConnectionState.DISCONNECTED
    elif health is not None and not health.is_healthy:
        state = ConnectionState.DEGRADED
    else:
        state = ConnectionState.CONNECTED

    return ConnectionSnapshot(
        integration_id=integration_id,
        status=ConnectionStatus.CONNECTED if connected else ConnectionStatus.DISCONNECTED,
        state=state,
        health=health,
        connected_at=config.connected_at_for(integration_id),
        last_sync_at=config.last_sync_for(integration_id),
    )


def summarize(
    config: TenantIntegrationConfig | None,
    registry: IntegrationRegistry | None = None,
) -> IntegrationSummary:
    """Resolve every catalog entry and count the connected ones."""
    registry = registry or get_registry()
    snapshots = [resolve_status(config, i, registry) for i in registry.ids]
    return IntegrationSummary(
        connected=sum(1 for s in snapshots if s.is_connected),
        total=len(registry),
        snapshots=snapshots,
    )


__all__ = ["resolve_status", "summarize"]
