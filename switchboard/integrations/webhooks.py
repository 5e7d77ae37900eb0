"""
Webhook routes and connection tests.

WebhookRouteBuilder constructs the inbound URL a tenant's integration
uses to reach the platform. Routes are keyed by the tenant's internal
record id, never the human-facing slug, so URLs are not guessable from a
tenant name.

WebhookTestClient calls the platform's test endpoint for an integration:

    POST {base}/test/{tenant_record_id}/{integration_id}

A 2xx answer means the integration works end to end. Timeouts and
non-2xx answers come back as typed failures rather than exceptions.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any

import httpx

from .base import IntegrationClient, NetworkError, NetworkFailure

logger = logging.getLogger(__name__)

DEFAULT_WEBHOOK_BASE = "https://webhooks.zatesystems.com/webhook"
DEFAULT_TEST_TIMEOUT = 10.0


class WebhookRouteBuilder:
    """Deterministic URL constructor per tenant and integration."""

    def __init__(self, base_url: str = DEFAULT_WEBHOOK_BASE):
        self._base_url = base_url.rstrip("/")

    @property
    def base_url(self) -> str:
        return self._base_url

    def build(self, tenant_record_id: str | None, integration_id: str) -> str:
        """Inbound webhook URL, or "" when the tenant record id is absent."""
        if not tenant_record_id:
            return ""
        return f"{self._base_url}/{tenant_record_id}/{integration_id}"

    def test_url(self, tenant_record_id: str | None, integration_id: str) -> str:
        """Connection-test URL, or "" when the tenant record id is absent."""
        if not tenant_record_id:
            return ""
        return f"{self._base_url}/test/{tenant_record_id}/{integration_id}"


@dataclass(frozen=True, slots=True)
class ConnectionTestResult:
    """Outcome of a connection test."""

    integration_id: str
    success: bool
    failure: NetworkFailure | None = None
    status_code: int | None = None
    latency_ms: float | None = None
    message: str | None = None
    data: Any = None

    @classmethod
    def ok(
        cls,
        integration_id: str,
        *,
        status_code: int,
        latency_ms: float,
        data: Any = None,
    ) -> "ConnectionTestResult":
        return cls(
            integration_id=integration_id,
            success=True,
            status_code=status_code,
            latency_ms=latency_ms,
            message="Connection test passed",
            data=data,
        )

    @classmethod
    def from_error(cls, error: NetworkError, latency_ms: float) -> "ConnectionTestResult":
        return cls(
            integration_id=error.integration,
            success=False,
            failure=error.kind,
            status_code=error.status_code,
            latency_ms=latency_ms,
            message=str(error),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "integration_id": self.integration_id,
            "success": self.success,
            "failure": self.failure.value if self.failure else None,
            "status_code": self.status_code,
            "latency_ms": self.latency_ms,
            "message": self.message,
        }


class WebhookTestClient(IntegrationClient):
    """
    Client for the platform's per-integration test endpoint.

    A test is a single request. Cancelling the awaiting task aborts it.
    """

    def __init__(
        self,
        routes: WebhookRouteBuilder,
        *,
        timeout: float = DEFAULT_TEST_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(timeout=timeout, transport=transport)
        self._routes = routes

    @property
    def name(self) -> str:
        return "webhook-test"

    def _get_auth_headers(self) -> dict[str, str]:
        return {}

    async def test(
        self,
        tenant_record_id: str | None,
        integration_id: str,
        *,
        timeout: float | None = None,
    ) -> ConnectionTestResult:
        """Run the connection test for one integration."""
        url = self._routes.test_url(tenant_record_id, integration_id)
        if not url:
            return ConnectionTestResult(
                integration_id=integration_id,
                success=False,
                failure=NetworkFailure.REMOTE_ERROR,
                message=f"[{integration_id}] Tenant has no record id; cannot build test URL",
            )

        start_time = time.perf_counter()
        try:
            response = await self._request(
                "POST",
                url,
                integration=integration_id,
                json={"integration_id": integration_id},
                timeout=timeout,
            )
        except NetworkError as e:
            latency_ms = (time.perf_counter() - start_time) * 1000
            logger.warning(f"[{integration_id}] Connection test failed ({e.kind.value}): {e}")
            return ConnectionTestResult.from_error(e, latency_ms)

        latency_ms = (time.perf_counter() - start_time) * 1000
        logger.info(f"[{integration_id}] Connection test passed in {latency_ms:.0f}ms")
        return ConnectionTestResult.ok(
            integration_id,
            status_code=response.status_code,
            latency_ms=latency_ms,
            data=_json_or_none(response),
        )


def _json_or_none(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None


__all__ = [
    "DEFAULT_TEST_TIMEOUT",
    "DEFAULT_WEBHOOK_BASE",
    "ConnectionTestResult",
    "WebhookRouteBuilder",
    "WebhookTestClient",
]
