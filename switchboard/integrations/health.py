"""
Integration Health Monitor for Switchboard.

Out-of-band poller that tests every connected integration of a tenant and
writes the outcome to integration_health. This is what moves an
integration between Connected and Connected+Degraded:

    test fails     -> health "unhealthy"  -> state degraded
    test succeeds  -> health "healthy"    -> state connected

Connection tests themselves never write; only this monitor records them.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

from .models import HealthState
from .status import resolve_status
from .webhooks import ConnectionTestResult

if TYPE_CHECKING:
    from .lifecycle import ConnectionLifecycleManager

logger = logging.getLogger(__name__)


@dataclass
class IntegrationMetrics:
    """Test metrics for one integration across tenants."""

    integration_id: str
    total_checks: int = 0
    successful_checks: int = 0
    failed_checks: int = 0
    total_latency_ms: float = 0.0
    last_check_time: Optional[datetime] = None
    last_error: Optional[str] = None

    @property
    def avg_latency_ms(self) -> float:
        """Average latency per check."""
        if self.total_checks == 0:
            return 0.0
        return self.total_latency_ms / self.total_checks

    @property
    def success_rate(self) -> float:
        """Success rate (0.0 to 1.0)."""
        if self.total_checks == 0:
            return 1.0
        return self.successful_checks / self.total_checks

    def record(self, result: ConnectionTestResult) -> None:
        self.total_checks += 1
        self.total_latency_ms += result.latency_ms or 0.0
        self.last_check_time = datetime.now(timezone.utc)
        if result.success:
            self.successful_checks += 1
        else:
            self.failed_checks += 1
            self.last_error = result.message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "integration_id": self.integration_id,
            "total_checks": self.total_checks,
            "successful_checks": self.successful_checks,
            "failed_checks": self.failed_checks,
            "avg_latency_ms": self.avg_latency_ms,
            "success_rate": self.success_rate,
            "last_check_time": self.last_check_time.isoformat() if self.last_check_time else None,
            "last_error": self.last_error,
        }


@dataclass
class HealthMonitor:
    """
    Polls connection tests and records their outcome.

    Example:
        monitor = HealthMonitor(manager)
        results = await monitor.check_tenant("acme")

        # Or run forever in a background task
        task = asyncio.create_task(monitor.run(["acme", "globex"], interval=300))
    """

    manager: "ConnectionLifecycleManager"
    timeout_seconds: float = 10.0
    _metrics: Dict[str, IntegrationMetrics] = field(default_factory=dict, init=False)

    async def check_integration(self, tenant_id: str, integration_id: str) -> ConnectionTestResult:
        """Test one integration and record the result as its health."""
        result = await self.manager.test_connection(
            tenant_id,
            integration_id,
            timeout=self.timeout_seconds,
        )
        self.get_metrics(integration_id).record(result)

        if result.success:
            status, message = HealthState.HEALTHY, None
        else:
            status, message = HealthState.UNHEALTHY, result.message

        await self.manager.record_health(
            tenant_id,
            integration_id,
            status,
            message=message,
            latency_ms=result.latency_ms,
        )
        return result

    async def check_tenant(self, tenant_id: str) -> List[ConnectionTestResult]:
        """Test every connected integration of a tenant.

        A failure on one integration never stops the others.
        """
        config = await self.manager.get_config(tenant_id)
        registry = self.manager.registry
        connected = [
            integration_id
            for integration_id in registry.ids
            if resolve_status(config, integration_id, registry).is_connected
        ]

        results: List[ConnectionTestResult] = []
        for integration_id in connected:
            try:
                results.append(await self.check_integration(tenant_id, integration_id))
            except Exception as e:
                logger.error(f"[{integration_id}] Health check for tenant {tenant_id} failed: {e}")

        healthy = sum(1 for r in results if r.success)
        logger.info(f"Health check for tenant {tenant_id}: {healthy}/{len(connected)} healthy")
        return results

    async def run(self, tenant_ids: Iterable[str], interval: float = 300.0) -> None:
        """Check every tenant, then sleep, until cancelled.

        A tenant whose check fails is logged and skipped until the next round.
        """
        tenant_ids = list(tenant_ids)
        logger.info(f"Health monitor started for {len(tenant_ids)} tenants (every {interval}s)")
        while True:
            for tenant_id in tenant_ids:
                try:
                    await self.check_tenant(tenant_id)
                except Exception as e:
                    logger.error(f"Health check for tenant {tenant_id} failed: {e}")
            await asyncio.sleep(interval)

    def get_metrics(self, integration_id: str) -> IntegrationMetrics:
        """Get or create metrics for an integration."""
        if integration_id not in self._metrics:
            self._metrics[integration_id] = IntegrationMetrics(integration_id=integration_id)
        return self._metrics[integration_id]


__all__ = [
    "HealthMonitor",
    "IntegrationMetrics",
]
