"""
Dependency Injection for Switchboard.

Provides singleton instances of the config store, audit logger and
lifecycle manager. Tests swap them out with the set_* helpers or with
FastAPI dependency overrides.
"""
from __future__ import annotations

import asyncio
import logging
import os
from functools import lru_cache
from typing import Optional

from switchboard.audit import AuditLogger, AuditSink, InMemoryAuditSink, MongoAuditSink
from switchboard.config.schemas import AppSettings
from switchboard.config.store import MongoTenantConfigStore, TenantConfigStore
from switchboard.integrations import (
    ConnectionLifecycleManager,
    HealthMonitor,
    WebhookRouteBuilder,
    WebhookTestClient,
)
from switchboard.integrations.base import ConflictError
from switchboard.retry import ExponentialBackoff, RetryPolicy

logger = logging.getLogger(__name__)


@lru_cache()
def get_settings() -> AppSettings:
    """
    Get application settings from environment.

    Uses lru_cache for singleton pattern.
    """
    return AppSettings(
        # Service
        service_name=os.getenv("SWITCHBOARD_SERVICE_NAME", "switchboard"),
        environment=os.getenv("SWITCHBOARD_ENVIRONMENT", "development"),
        debug=os.getenv("SWITCHBOARD_DEBUG", "false").lower() == "true",
        # MongoDB
        mongodb_url=os.getenv("SWITCHBOARD_MONGODB_URL", "mongodb://localhost:27017"),
        mongodb_database=os.getenv("SWITCHBOARD_MONGODB_DATABASE", "switchboard"),
        # Webhooks
        webhook_base_url=os.getenv(
            "SWITCHBOARD_WEBHOOK_BASE_URL", "https://webhooks.zatesystems.com/webhook"
        ),
        test_timeout=float(os.getenv("SWITCHBOARD_TEST_TIMEOUT", "10")),
        # Store
        cache_ttl=int(os.getenv("SWITCHBOARD_CACHE_TTL", "60")),
        write_attempts=int(os.getenv("SWITCHBOARD_WRITE_ATTEMPTS", "5")),
        # Audit
        audit_queue_size=int(os.getenv("SWITCHBOARD_AUDIT_QUEUE_SIZE", "1000")),
        # Health monitor
        health_check_interval=float(os.getenv("SWITCHBOARD_HEALTH_CHECK_INTERVAL", "0")),
        monitored_tenants=[
            t.strip()
            for t in os.getenv("SWITCHBOARD_MONITORED_TENANTS", "").split(",")
            if t.strip()
        ],
    )


# Global instances (initialized on first access)
_store: Optional[TenantConfigStore] = None
_audit: Optional[AuditLogger] = None
_manager: Optional[ConnectionLifecycleManager] = None
_monitor_task: Optional[asyncio.Task] = None


def get_store() -> TenantConfigStore:
    """
    Get the tenant config store.

    Connects lazily on first read or write.
    """
    global _store
    if _store is None:
        settings = get_settings()
        _store = MongoTenantConfigStore(
            mongodb_url=settings.mongodb_url.get_secret_value(),
            database_name=settings.mongodb_database,
            collection_name=settings.config_collection,
            cache_ttl=settings.cache_ttl,
        )
    return _store


def get_audit() -> AuditLogger:
    """
    Get the audit logger, writing to the integration_logs collection.

    Shares the config store's MongoDB client, so closing the store on
    shutdown closes it too.
    """
    global _audit
    if _audit is None:
        settings = get_settings()
        store = get_store()
        sink: AuditSink
        if isinstance(store, MongoTenantConfigStore):
            sink = MongoAuditSink(store.database, collection_name=settings.audit_collection)
        else:
            logger.warning("Config store is not MongoDB; audit events are kept in memory")
            sink = InMemoryAuditSink()
        _audit = AuditLogger(sink, queue_size=settings.audit_queue_size)
    return _audit


def get_manager() -> ConnectionLifecycleManager:
    """Get the connection lifecycle manager."""
    global _manager
    if _manager is None:
        settings = get_settings()
        routes = WebhookRouteBuilder(settings.webhook_base_url)
        _manager = ConnectionLifecycleManager(
            get_store(),
            audit=get_audit(),
            routes=routes,
            test_client=WebhookTestClient(routes, timeout=settings.test_timeout),
            write_policy=RetryPolicy(
                max_attempts=settings.write_attempts,
                backoff=ExponentialBackoff(base=0.05, multiplier=2.0, max_delay=1.0),
                retry_on=(ConflictError,),
            ),
        )
    return _manager


def set_store(store: Optional[TenantConfigStore]) -> None:
    """Replace the global store (tests)."""
    global _store
    _store = store


def set_audit(audit: Optional[AuditLogger]) -> None:
    """Replace the global audit logger (tests)."""
    global _audit
    _audit = audit


def set_manager(manager: Optional[ConnectionLifecycleManager]) -> None:
    """Replace the global lifecycle manager (tests)."""
    global _manager
    _manager = manager


async def initialize_services() -> None:
    """
    Initialize all services on application startup.

    Called from FastAPI lifespan.
    """
    global _monitor_task
    settings = get_settings()

    store = get_store()
    if isinstance(store, MongoTenantConfigStore):
        await store.connect()

    get_audit().start()
    manager = get_manager()

    if settings.health_check_interval > 0 and settings.monitored_tenants:
        monitor = HealthMonitor(manager, timeout_seconds=settings.test_timeout)
        _monitor_task = asyncio.create_task(
            monitor.run(settings.monitored_tenants, interval=settings.health_check_interval),
            name="health-monitor",
        )


async def shutdown_services() -> None:
    """
    Cleanup all services on application shutdown.

    Called from FastAPI lifespan.
    """
    global _store, _audit, _manager, _monitor_task
    if _monitor_task:
        _monitor_task.cancel()
        try:
            await _monitor_task
        except asyncio.CancelledError:
            pass
        _monitor_task = None
    if _manager:
        await _manager.close()
        _manager = None
    if _audit:
        await _audit.stop()
        _audit = None
    if _store:
        await _store.close()
        _store = None
