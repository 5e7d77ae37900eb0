"""
Connection Lifecycle Manager for Switchboard.

Connects, disconnects, tests and reconfigures integrations for a tenant.

Write discipline (connect, disconnect, update_settings, record_health):
    1. Validate against the registry. Rejections never touch the store.
    2. Read the tenant document fresh, apply a patch scoped to one
       integration, write the whole document back with its version.
    3. On a version conflict, re-read and re-apply under the retry policy.
    4. Emit an audit event (best effort, never fails the operation).
    5. Return a MutationResult. The store cache has been invalidated, so
       the caller's next read refetches.

Concurrency:
    Mutations for one tenant are serialized in-process by a per-tenant
    asyncio.Lock. Writers in other processes are caught by the version
    check. Without that check, two concurrent writers on the same tenant
    document would silently lose one update.

test_connection is the only operation with an external round trip. It
reads the store but never writes it, has a bounded timeout, and is
cancelled by cancelling the awaiting task.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from typing import TYPE_CHECKING, Any, Callable, Mapping

from .base import ConflictError, StoreError, TenantNotFoundError
from .models import (
    ConnectionSnapshot,
    HealthRecord,
    HealthState,
    IntegrationSummary,
    IntegrationView,
    LifecycleAction,
    MutationResult,
    TenantIntegrationConfig,
)
from .patches import (
    apply_connect,
    apply_disconnect,
    apply_health,
    apply_settings,
    ensure_available,
    validate_credentials,
    validate_settings,
)
from .registry import IntegrationCategory, IntegrationDefinition, IntegrationRegistry, get_registry
from .status import resolve_status, summarize
from .webhooks import ConnectionTestResult, WebhookRouteBuilder, WebhookTestClient
from switchboard.retry import ExponentialBackoff, RetryPolicy

if TYPE_CHECKING:
    from switchboard.audit import AuditLogger
    from switchboard.config.store import TenantConfigStore

logger = logging.getLogger(__name__)

Patch = Callable[[TenantIntegrationConfig], "TenantIntegrationConfig | None"]

DEFAULT_WRITE_POLICY = RetryPolicy(
    max_attempts=5,
    backoff=ExponentialBackoff(base=0.05, multiplier=2.0, max_delay=1.0),
    retry_on=(ConflictError,),
)


def mask_secret(value: str | None) -> str | None:
    """Mask a secret for display, keeping the last four characters."""
    if not value:
        return value
    if len(value) <= 8:
        return "•" * 8
    return "•" * 8 + value[-4:]


class ConnectionLifecycleManager:
    """
    Orchestrates integration lifecycle operations against the config store.

    Usage:
        manager = ConnectionLifecycleManager(store, audit=audit_logger)
        await manager.connect("acme", "email_smtp", {"smtp_host": ..., ...})
        snapshot = await manager.get_status("acme", "email_smtp")
    """

    def __init__(
        self,
        store: "TenantConfigStore",
        *,
        registry: IntegrationRegistry | None = None,
        audit: "AuditLogger | None" = None,
        routes: WebhookRouteBuilder | None = None,
        test_client: WebhookTestClient | None = None,
        write_policy: RetryPolicy | None = None,
    ):
        """
        Initialize the manager.

        Args:
            store: Tenant config store
            registry: Integration catalog (defaults to the global registry)
            audit: Best-effort audit logger; None disables auditing
            routes: Webhook URL builder
            test_client: Client for the connection test endpoint
            write_policy: Retry policy for version conflicts
        """
        self._store = store
        self._registry = registry or get_registry()
        self._audit = audit
        self._routes = routes or WebhookRouteBuilder()
        self._test_client = test_client or WebhookTestClient(self._routes)
        self._write_policy = write_policy or DEFAULT_WRITE_POLICY
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    @property
    def registry(self) -> IntegrationRegistry:
        return self._registry

    @property
    def routes(self) -> WebhookRouteBuilder:
        return self._routes

    async def close(self) -> None:
        await self._test_client.close()

    # =========================================================================
    # Mutations
    # =========================================================================

    async def connect(
        self,
        tenant_id: str,
        integration_id: str,
        credentials: Mapping[str, Any],
        settings: Mapping[str, Any] | None = None,
    ) -> MutationResult:
        """
        Connect an integration with the given credentials.

        Raises:
            ValidationError: Unknown integration, missing or foreign credential
                field, or invalid setting. Nothing is written.
            StoreError: The write failed. Nothing is applied.
        """
        definition = self._registry.require(integration_id)
        ensure_available(definition)
        clean_credentials = validate_credentials(definition, credentials, self._registry)
        clean_settings = validate_settings(definition, settings or {})

        result = await self._mutate(
            tenant_id,
            definition,
            LifecycleAction.CONNECTED,
            lambda config: apply_connect(config, definition, clean_credentials, clean_settings),
        )

        logger.info(f"[{integration_id}] Connected for tenant {tenant_id} (v{result.version})")
        self._emit(
            result,
            definition,
            LifecycleAction.CONNECTED,
            {"credential_keys": sorted(clean_credentials)},
        )
        return result

    async def disconnect(self, tenant_id: str, integration_id: str) -> MutationResult:
        """
        Disconnect an integration.

        Clears the flag, nulls the integration's credential fields and
        removes its health entry. Settings are kept for a later reconnect.
        """
        definition = self._registry.require(integration_id)

        result = await self._mutate(
            tenant_id,
            definition,
            LifecycleAction.DISCONNECTED,
            lambda config: apply_disconnect(config, definition),
        )

        logger.info(f"[{integration_id}] Disconnected for tenant {tenant_id} (v{result.version})")
        self._emit(
            result,
            definition,
            LifecycleAction.DISCONNECTED,
            {"credential_keys": list(definition.credential_keys)},
        )
        return result

    async def update_settings(
        self,
        tenant_id: str,
        integration_id: str,
        partial_settings: Mapping[str, Any],
    ) -> MutationResult:
        """Merge settings into the integration's settings map."""
        definition = self._registry.require(integration_id)
        clean_settings = validate_settings(definition, partial_settings)

        result = await self._mutate(
            tenant_id,
            definition,
            LifecycleAction.SETTINGS_UPDATED,
            lambda config: apply_settings(config, definition, clean_settings),
        )

        logger.info(f"[{integration_id}] Settings updated for tenant {tenant_id}: {sorted(clean_settings)}")
        self._emit(
            result,
            definition,
            LifecycleAction.SETTINGS_UPDATED,
            {"setting_keys": sorted(clean_settings)},
        )
        return result

    async def record_health(
        self,
        tenant_id: str,
        integration_id: str,
        status: HealthState | str,
        *,
        message: str | None = None,
        latency_ms: float | None = None,
    ) -> MutationResult | None:
        """
        Record an external health signal for a connected integration.

        Returns None without writing when the integration is not connected.
        """
        definition = self._registry.require(integration_id)
        record = HealthRecord(
            status=HealthState(status),
            message=message,
            latency_ms=latency_ms,
        )

        def patch(config: TenantIntegrationConfig) -> TenantIntegrationConfig | None:
            if not config.is_flag_set(definition.flag_key):
                return None
            return apply_health(config, definition, record)

        result = await self._mutate(tenant_id, definition, LifecycleAction.HEALTH_RECORDED, patch)
        if result is None:
            logger.info(f"[{integration_id}] Ignoring health signal; not connected for tenant {tenant_id}")
            return None

        logger.debug(f"[{integration_id}] Health for tenant {tenant_id}: {record.status_value}")
        return result

    async def _mutate(
        self,
        tenant_id: str,
        definition: IntegrationDefinition,
        action: LifecycleAction,
        patch: Patch,
    ) -> MutationResult | None:
        """Read-modify-write one tenant document, retrying version conflicts."""
        async with self._tenant_lock(tenant_id):
            attempt = 0
            while True:
                attempt += 1
                config = await self._read(tenant_id, definition, fresh=True)
                updated = patch(config)
                if updated is None:
                    return None

                try:
                    version = await self._store.write(tenant_id, updated, config.version)
                except ConflictError as e:
                    if self._write_policy.should_retry(attempt, e):
                        delay = self._write_policy.get_delay(attempt)
                        logger.warning(
                            f"[{definition.id}] Write conflict for tenant {tenant_id} "
                            f"(attempt {attempt}/{self._write_policy.max_attempts}), "
                            f"retrying in {delay:.2f}s"
                        )
                        await asyncio.sleep(delay)
                        continue
                    raise StoreError(
                        f"Could not save {definition.name}: config kept changing "
                        f"({attempt} attempts)",
                        definition.id,
                        tenant_id=tenant_id,
                    ) from e
                except StoreError as e:
                    raise self._store_error(e, definition, tenant_id, "save") from e

                return MutationResult(
                    tenant_id=tenant_id,
                    integration_id=definition.id,
                    action=action,
                    version=version,
                    attempts=attempt,
                    tenant_record_id=config.tenant_record_id,
                )

    def _tenant_lock(self, tenant_id: str) -> asyncio.Lock:
        lock = self._locks.get(tenant_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[tenant_id] = lock
        return lock

    async def _read(
        self,
        tenant_id: str,
        definition: IntegrationDefinition | None = None,
        *,
        fresh: bool = False,
    ) -> TenantIntegrationConfig:
        try:
            return await self._store.read(tenant_id, fresh=fresh)
        except StoreError as e:
            raise self._store_error(e, definition, tenant_id, "load") from e

    @staticmethod
    def _store_error(
        error: StoreError,
        definition: IntegrationDefinition | None,
        tenant_id: str,
        verb: str,
    ) -> StoreError:
        """Re-raise a store error under the integration's name."""
        subject = definition.name if definition else "integrations"
        integration = definition.id if definition else error.integration
        cls = TenantNotFoundError if isinstance(error, TenantNotFoundError) else StoreError
        return cls(f"Could not {verb} {subject}: {error.message}", integration, tenant_id=tenant_id)

    def _emit(
        self,
        result: MutationResult,
        definition: IntegrationDefinition,
        action: LifecycleAction,
        details: dict[str, Any],
    ) -> None:
        if self._audit is None:
            return
        try:
            self._audit.append(
                result.tenant_id,
                definition.id,
                action.value,
                details,
                tenant_record_id=result.tenant_record_id,
            )
        except Exception as e:
            logger.warning(f"[{definition.id}] Audit emit failed: {e}")

    # =========================================================================
    # Connection tests
    # =========================================================================

    async def test_connection(
        self,
        tenant_id: str,
        integration_id: str,
        *,
        timeout: float | None = None,
    ) -> ConnectionTestResult:
        """
        Call the integration's test endpoint.

        Never writes the store and never raises for network failures; the
        result distinguishes timeouts from remote errors.
        """
        definition = self._registry.require(integration_id)
        config = await self._read(tenant_id, definition)
        return await self._test_client.test(
            config.tenant_record_id,
            definition.id,
            timeout=timeout,
        )

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_config(self, tenant_id: str) -> TenantIntegrationConfig:
        return await self._read(tenant_id)

    async def list_integrations(
        self,
        tenant_id: str,
        category: IntegrationCategory | str | None = None,
    ) -> list[IntegrationView]:
        """Catalog entries joined with the tenant's resolved status."""
        config = await self._read(tenant_id)
        return [
            IntegrationView(
                definition=definition,
                snapshot=resolve_status(config, definition.id, self._registry),
                webhook_url=self._routes.build(config.tenant_record_id, definition.id),
            )
            for definition in self._registry.list_definitions(category)
        ]

    async def summary(self, tenant_id: str) -> IntegrationSummary:
        config = await self._read(tenant_id)
        return summarize(config, self._registry)

    async def get_status(self, tenant_id: str, integration_id: str) -> ConnectionSnapshot:
        definition = self._registry.require(integration_id)
        config = await self._read(tenant_id, definition)
        return resolve_status(config, integration_id, self._registry)

    async def stored_credentials(
        self,
        tenant_id: str,
        integration_id: str,
        *,
        reveal: bool = False,
    ) -> dict[str, str | None]:
        """Stored credential values for one integration, secrets masked."""
        definition = self._registry.require(integration_id)
        config = await self._read(tenant_id, definition)
        stored = config.credentials_for(definition)
        if reveal:
            return stored
        return {
            spec.key: mask_secret(stored[spec.key]) if spec.is_secret else stored[spec.key]
            for spec in definition.credentials
            if spec.key in stored
        }

    async def stored_settings(self, tenant_id: str, integration_id: str) -> dict[str, Any]:
        """Stored settings laid over the definition's defaults."""
        definition = self._registry.require(integration_id)
        config = await self._read(tenant_id, definition)
        return {
            **definition.default_settings(),
            **config.settings_for(integration_id),
        }

    async def webhook_url(self, tenant_id: str, integration_id: str) -> str:
        definition = self._registry.require(integration_id)
        config = await self._read(tenant_id, definition)
        return self._routes.build(config.tenant_record_id, definition.id)


__all__ = [
    "DEFAULT_WRITE_POLICY",
    "ConnectionLifecycleManager",
    "mask_secret",
]
