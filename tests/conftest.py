"""
Pytest configuration and fixtures for Switchboard tests.
"""

import asyncio
import sys
from pathlib import Path

import httpx
import pytest

# Add the repository root to path for imports
# This allows `from switchboard.integrations import ...` to work
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from switchboard.audit import AuditLogger, InMemoryAuditSink
from switchboard.config.store import InMemoryTenantConfigStore
from switchboard.integrations import (
    ConnectionLifecycleManager,
    WebhookRouteBuilder,
    WebhookTestClient,
    get_registry,
)
from switchboard.integrations.base import ConflictError
from switchboard.retry import NoBackoff, RetryPolicy

TENANT_ID = "acme"
TENANT_RECORD_ID = "rec-123"
WEBHOOK_BASE = "https://hooks.test/webhook"


# =============================================================================
# Fakes
# =============================================================================


class FakeTestEndpoint:
    """
    httpx.MockTransport handler for the connection test endpoint.

    Answers 200 by default. Per-integration outcomes are set with
    respond() and timeout().
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self._statuses: dict[str, int] = {}
        self._timeouts: set[str] = set()

    def respond(self, integration_id: str, status_code: int) -> None:
        self._statuses[integration_id] = status_code

    def timeout(self, integration_id: str) -> None:
        self._timeouts.add(integration_id)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        integration_id = request.url.path.rsplit("/", 1)[-1]
        if integration_id in self._timeouts:
            raise httpx.ReadTimeout("timed out", request=request)
        status_code = self._statuses.get(integration_id, 200)
        if status_code >= 400:
            return httpx.Response(status_code, json={"error": "test failed"})
        return httpx.Response(status_code, json={"ok": True, "integration_id": integration_id})


class InterleavingStore(InMemoryTenantConfigStore):
    """In-memory store that yields after every load, so concurrent writers race."""

    async def _load(self, tenant_id):
        document = await super()._load(tenant_id)
        await asyncio.sleep(0)
        return document


class ConflictingStore(InMemoryTenantConfigStore):
    """Simulates another process writing just before each of our next N saves."""

    def __init__(self, *args, conflicts: int = 0, **kwargs):
        super().__init__(*args, **kwargs)
        self.conflicts = conflicts

    async def _save(self, tenant_id, document, expected_version):
        if self.conflicts > 0:
            self.conflicts -= 1
            self._documents[tenant_id]["version"] = self._documents[tenant_id].get("version", 0) + 1
        await super()._save(tenant_id, document, expected_version)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def registry():
    """The compiled-in integration catalog."""
    return get_registry()


@pytest.fixture
def store(registry):
    """In-memory store with one provisioned tenant."""
    store = InMemoryTenantConfigStore(registry=registry)
    store.provision(TENANT_ID, TENANT_RECORD_ID, name="Acme Corp", plan="professional")
    return store


@pytest.fixture
def audit_sink():
    return InMemoryAuditSink()


@pytest.fixture
def audit(audit_sink):
    return AuditLogger(audit_sink)


@pytest.fixture
def routes():
    return WebhookRouteBuilder(WEBHOOK_BASE)


@pytest.fixture
def test_endpoint():
    return FakeTestEndpoint()


@pytest.fixture
def write_policy():
    """Conflict retry without delays."""
    return RetryPolicy(max_attempts=5, backoff=NoBackoff(), retry_on=(ConflictError,))


@pytest.fixture
def make_manager(registry, audit, routes, test_endpoint, write_policy):
    """Factory for managers over an arbitrary store."""

    def _make(store, **overrides):
        options = {
            "registry": registry,
            "audit": audit,
            "routes": routes,
            "test_client": WebhookTestClient(
                routes,
                timeout=1.0,
                transport=httpx.MockTransport(test_endpoint),
            ),
            "write_policy": write_policy,
        }
        options.update(overrides)
        return ConnectionLifecycleManager(store, **options)

    return _make


@pytest.fixture
def manager(make_manager, store):
    """Lifecycle manager over the provisioned in-memory store."""
    return make_manager(store)


@pytest.fixture
def smtp_credentials():
    return {
        "smtp_host": "smtp.acme.test",
        "smtp_port": "587",
        "smtp_user": "bot@acme.test",
        "smtp_pass": "hunter2-but-longer",
    }


@pytest.fixture
def twilio_credentials():
    return {
        "twilio_account_sid": "AC1234567890",
        "twilio_auth_token": "twilio-secret-token",
        "twilio_phone_number": "+15550001111",
    }


@pytest.fixture
def stripe_credentials():
    return {
        "stripe_secret_key": "sk_test_abcdef123456",
        "stripe_publishable_key": "pk_test_abcdef123456",
    }
