"""
Base classes for Switchboard integrations.

This module defines the error taxonomy shared by the lifecycle layer and
the HTTP client used to reach the platform's webhook endpoints.

Error Taxonomy:
    - ValidationError: rejected before any store access
    - StoreError: read/write failure against the tenant config store
        - ConflictError: optimistic version check failed
        - TenantNotFoundError: no config document for the tenant
    - NetworkError: webhook endpoint timed out or answered non-2xx
    - AuditFailure: audit sink failed (never surfaced to callers)

Every error carries the integration it concerns so callers can tell
"bad credentials" from "service unavailable" from "test timed out".
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

import httpx

logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================


class IntegrationError(Exception):
    """Base exception for integration errors."""

    def __init__(
        self,
        message: str,
        integration: str,
        *,
        status_code: int | None = None,
        response_body: str | None = None,
    ):
        super().__init__(message)
        self.integration = integration
        self.status_code = status_code
        self.response_body = response_body

    @property
    def message(self) -> str:
        return self.args[0]

    def __str__(self) -> str:
        parts = [f"[{self.integration}] {self.args[0]}"]
        if self.status_code:
            parts.append(f"(status={self.status_code})")
        return " ".join(parts)


class ValidationReason(str, Enum):
    """Why a lifecycle request was rejected."""

    UNKNOWN_INTEGRATION = "unknown_integration"
    MISSING_FIELD = "missing_field"
    UNKNOWN_FIELD = "unknown_field"
    INVALID_SETTING = "invalid_setting"
    UNAVAILABLE = "unavailable"


class ValidationError(IntegrationError):
    """Raised when a request is rejected before touching the store."""

    def __init__(
        self,
        message: str,
        integration: str,
        *,
        reason: ValidationReason,
        field: str | None = None,
        **kwargs,
    ):
        super().__init__(message, integration, **kwargs)
        self.reason = reason
        self.field = field


class StoreError(IntegrationError):
    """Raised when the tenant config store cannot be read or written."""

    def __init__(self, message: str, integration: str = "store", *, tenant_id: str | None = None, **kwargs):
        super().__init__(message, integration, **kwargs)
        self.tenant_id = tenant_id


class ConflictError(StoreError):
    """Raised when a write lost an optimistic concurrency race."""

    def __init__(
        self,
        message: str,
        integration: str = "store",
        *,
        tenant_id: str | None = None,
        expected_version: int | None = None,
        actual_version: int | None = None,
    ):
        super().__init__(message, integration, tenant_id=tenant_id)
        self.expected_version = expected_version
        self.actual_version = actual_version


class TenantNotFoundError(StoreError):
    """Raised when no config document exists for the tenant."""


class NetworkFailure(str, Enum):
    """Kind of webhook failure reported to callers."""

    TIMEOUT = "timeout"
    REMOTE_ERROR = "remote_error"


class NetworkError(IntegrationError):
    """Raised when a webhook endpoint is unreachable, slow or failing."""

    def __init__(self, message: str, integration: str, *, kind: NetworkFailure, **kwargs):
        super().__init__(message, integration, **kwargs)
        self.kind = kind


class AuditFailure(IntegrationError):
    """Raised by audit sinks. Caught by the AuditLogger and never surfaced."""


# =============================================================================
# Base Client
# =============================================================================


class IntegrationClient(ABC):
    """
    Abstract base class for HTTP clients talking to integration endpoints.

    Provides common functionality:
    - HTTP client management
    - Error mapping (timeout vs remote error)

    Requests are made once. Connection tests report what happened on that
    call, and the write path retries version conflicts on its own.

    Subclasses must implement:
    - name: Client identifier used in logs
    - _get_auth_headers(): Return authentication headers
    """

    def __init__(self, *, timeout: float = 10.0, transport: httpx.AsyncBaseTransport | None = None):
        """
        Initialize the client.

        Args:
            timeout: Default request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique name for this client."""
        ...

    @abstractmethod
    def _get_auth_headers(self) -> dict[str, str]:
        """Return authentication headers for requests."""
        ...

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                headers={
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                    **self._get_auth_headers(),
                },
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        url: str,
        *,
        integration: str,
        json: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        """
        Make one HTTP request.

        Raises:
            NetworkError: On timeout, transport failure or non-2xx status
        """
        client = await self._get_client()
        request_timeout = timeout if timeout is not None else self.timeout
        logger.debug(f"[{integration}] {self.name}: {method} {url}")

        try:
            response = await client.request(
                method=method,
                url=url,
                json=json,
                timeout=request_timeout,
            )
        except httpx.TimeoutException as e:
            raise NetworkError(
                f"Request timed out after {request_timeout}s",
                integration,
                kind=NetworkFailure.TIMEOUT,
            ) from e
        except httpx.TransportError as e:
            raise NetworkError(
                f"Endpoint unreachable: {e}",
                integration,
                kind=NetworkFailure.REMOTE_ERROR,
            ) from e

        if not response.is_success:
            raise NetworkError(
                f"Remote endpoint answered {response.status_code}",
                integration,
                kind=NetworkFailure.REMOTE_ERROR,
                status_code=response.status_code,
                response_body=response.text,
            )
        return response

    async def __aenter__(self) -> "IntegrationClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
