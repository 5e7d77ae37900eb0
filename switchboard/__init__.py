"""
Switchboard - Integration connection lifecycle manager for multi-tenant platforms.

Each tenant enables third-party integrations (email, WhatsApp, voice,
payments, CRM, ...) by supplying credentials and settings. Switchboard
keeps every integration's state in one shared per-tenant document and
guarantees that an operation on one integration never disturbs another.

- **Registry**: Compiled-in catalog of integration definitions
- **Lifecycle**: connect / disconnect / test / update settings
- **Status**: Pure, deterministic connection and health derivation
- **Webhooks**: Per-tenant inbound routes and connection tests
- **Audit**: Best-effort, non-blocking event log

Quick Start:
    >>> from switchboard import ConnectionLifecycleManager, InMemoryTenantConfigStore
    >>>
    >>> store = InMemoryTenantConfigStore()
    >>> store.provision("acme", "b6f0c1d2")
    >>> manager = ConnectionLifecycleManager(store)
    >>> await manager.connect("acme", "telegram", {"telegram_bot_token": "123:abc"})
    >>> (await manager.get_status("acme", "telegram")).status
    <ConnectionStatus.CONNECTED: 'connected'>
"""

__version__ = "0.1.0"
__license__ = "MIT"

from switchboard.audit import AuditEvent, AuditLogger, InMemoryAuditSink, MongoAuditSink
from switchboard.config import InMemoryTenantConfigStore, MongoTenantConfigStore, TenantConfigStore
from switchboard.integrations import (
    ConnectionLifecycleManager,
    HealthMonitor,
    IntegrationRegistry,
    WebhookRouteBuilder,
    get_registry,
    resolve_status,
)

__all__ = [
    "__version__",
    "__license__",
    "AuditEvent",
    "AuditLogger",
    "ConnectionLifecycleManager",
    "HealthMonitor",
    "InMemoryAuditSink",
    "InMemoryTenantConfigStore",
    "IntegrationRegistry",
    "MongoAuditSink",
    "MongoTenantConfigStore",
    "TenantConfigStore",
    "WebhookRouteBuilder",
    "get_registry",
    "resolve_status",
]
