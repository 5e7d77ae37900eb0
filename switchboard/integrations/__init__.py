"""
Switchboard Integrations Layer.

Everything needed to connect, disconnect, test and reconfigure a tenant's
integrations:

    integrations/
    ├── base.py        # Error taxonomy and HTTP client base
    ├── registry.py    # IntegrationRegistry and definition types
    ├── catalog.py     # Compiled-in catalog
    ├── models.py      # TenantIntegrationConfig and result types
    ├── status.py      # resolve_status(): pure status derivation
    ├── patches.py     # Per-integration document patches
    ├── webhooks.py    # WebhookRouteBuilder and WebhookTestClient
    ├── lifecycle.py   # ConnectionLifecycleManager
    └── health.py      # HealthMonitor

Usage:
    from switchboard.integrations import ConnectionLifecycleManager

    manager = ConnectionLifecycleManager(store)
    await manager.connect("acme", "stripe", {"stripe_secret_key": "...", ...})
    snapshot = await manager.get_status("acme", "stripe")
"""

from switchboard.integrations.base import (
    AuditFailure,
    ConflictError,
    IntegrationError,
    NetworkError,
    NetworkFailure,
    StoreError,
    TenantNotFoundError,
    ValidationError,
    ValidationReason,
)
from switchboard.integrations.health import HealthMonitor
from switchboard.integrations.lifecycle import ConnectionLifecycleManager
from switchboard.integrations.models import (
    ConnectionSnapshot,
    ConnectionState,
    ConnectionStatus,
    HealthRecord,
    HealthState,
    IntegrationSummary,
    IntegrationView,
    LifecycleAction,
    MutationResult,
    TenantIntegrationConfig,
)
from switchboard.integrations.registry import (
    IntegrationCategory,
    IntegrationDefinition,
    IntegrationRegistry,
    get_registry,
)
from switchboard.integrations.status import resolve_status, summarize
from switchboard.integrations.webhooks import (
    ConnectionTestResult,
    WebhookRouteBuilder,
    WebhookTestClient,
)

__all__ = [
    # Errors
    "AuditFailure",
    "ConflictError",
    "IntegrationError",
    "NetworkError",
    "NetworkFailure",
    "StoreError",
    "TenantNotFoundError",
    "ValidationError",
    "ValidationReason",
    # Registry
    "IntegrationCategory",
    "IntegrationDefinition",
    "IntegrationRegistry",
    "get_registry",
    # Model
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
    # Operations
    "ConnectionLifecycleManager",
    "ConnectionTestResult",
    "HealthMonitor",
    "WebhookRouteBuilder",
    "WebhookTestClient",
    "resolve_status",
    "summarize",
]
