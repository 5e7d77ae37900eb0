"""
Tests for the integration Health Monitor.
"""

import asyncio

import pytest

from conftest import TENANT_ID
from switchboard.integrations.base import NetworkFailure, StoreError
from switchboard.integrations.health import HealthMonitor, IntegrationMetrics
from switchboard.integrations.models import ConnectionState, HealthState
from switchboard.integrations.webhooks import ConnectionTestResult

# =============================================================================
# IntegrationMetrics Tests
# =============================================================================


class TestIntegrationMetrics:
    def test_initial(self):
        metrics = IntegrationMetrics(integration_id="stripe")
        assert metrics.avg_latency_ms == 0.0
        assert metrics.success_rate == 1.0

    def test_record(self):
        metrics = IntegrationMetrics(integration_id="stripe")
        metrics.record(ConnectionTestResult.ok("stripe", status_code=200, latency_ms=10.0))
        metrics.record(
            ConnectionTestResult(integration_id="stripe", success=False, latency_ms=30.0, message="boom")
        )

        assert metrics.total_checks == 2
        assert metrics.avg_latency_ms == 20.0
        assert metrics.success_rate == 0.5
        assert metrics.last_error == "boom"
        assert metrics.to_dict()["failed_checks"] == 1


# =============================================================================
# HealthMonitor Tests
# =============================================================================


class TestHealthMonitor:
    """The monitor is what moves integrations between Connected and Degraded."""

    @pytest.mark.asyncio
    async def test_failed_test_degrades(self, manager, test_endpoint, twilio_credentials):
        await manager.connect(TENANT_ID, "sms_twilio", twilio_credentials)
        test_endpoint.respond("sms_twilio", 500)
        monitor = HealthMonitor(manager, timeout_seconds=1.0)

        result = await monitor.check_integration(TENANT_ID, "sms_twilio")

        assert not result.success
        snapshot = await manager.get_status(TENANT_ID, "sms_twilio")
        assert snapshot.state is ConnectionState.DEGRADED
        assert snapshot.health.status is HealthState.UNHEALTHY
        assert "500" in snapshot.health.message

    @pytest.mark.asyncio
    async def test_successful_test_restores(self, manager, test_endpoint, twilio_credentials):
        await manager.connect(TENANT_ID, "sms_twilio", twilio_credentials)
        await manager.record_health(TENANT_ID, "sms_twilio", HealthState.UNHEALTHY)
        monitor = HealthMonitor(manager)

        await monitor.check_integration(TENANT_ID, "sms_twilio")

        snapshot = await manager.get_status(TENANT_ID, "sms_twilio")
        assert snapshot.state is ConnectionState.CONNECTED
        assert snapshot.health.latency_ms is not None
        assert snapshot.last_sync_at is not None

    @pytest.mark.asyncio
    async def test_check_tenant_only_connected(
        self, manager, test_endpoint, smtp_credentials, twilio_credentials
    ):
        await manager.connect(TENANT_ID, "email_smtp", smtp_credentials)
        await manager.connect(TENANT_ID, "sms_twilio", twilio_credentials)
        monitor = HealthMonitor(manager)

        results = await monitor.check_tenant(TENANT_ID)

        assert {r.integration_id for r in results} == {"email_smtp", "sms_twilio"}
        tested = {r.url.path.rsplit("/", 1)[-1] for r in test_endpoint.requests}
        assert tested == {"email_smtp", "sms_twilio"}

    @pytest.mark.asyncio
    async def test_one_failure_does_not_stop_others(
        self, manager, test_endpoint, smtp_credentials, twilio_credentials
    ):
        await manager.connect(TENANT_ID, "email_smtp", smtp_credentials)
        await manager.connect(TENANT_ID, "sms_twilio", twilio_credentials)
        test_endpoint.timeout("email_smtp")
        monitor = HealthMonitor(manager)

        results = await monitor.check_tenant(TENANT_ID)

        by_id = {r.integration_id: r for r in results}
        assert by_id["email_smtp"].failure is NetworkFailure.TIMEOUT
        assert by_id["sms_twilio"].success
        assert (await manager.get_status(TENANT_ID, "email_smtp")).state is ConnectionState.DEGRADED
        assert (await manager.get_status(TENANT_ID, "sms_twilio")).state is ConnectionState.CONNECTED

    @pytest.mark.asyncio
    async def test_store_error_on_one_integration_is_logged(
        self, manager, monkeypatch, smtp_credentials, twilio_credentials
    ):
        await manager.connect(TENANT_ID, "email_smtp", smtp_credentials)
        await manager.connect(TENANT_ID, "sms_twilio", twilio_credentials)
        original = manager.record_health

        async def flaky_record_health(tenant_id, integration_id, *args, **kwargs):
            if integration_id == "email_smtp":
                raise StoreError("write failed", integration_id, tenant_id=tenant_id)
            return await original(tenant_id, integration_id, *args, **kwargs)

        monkeypatch.setattr(manager, "record_health", flaky_record_health)
        monitor = HealthMonitor(manager)

        results = await monitor.check_tenant(TENANT_ID)

        assert [r.integration_id for r in results] == ["sms_twilio"]

    @pytest.mark.asyncio
    async def test_unexpected_error_on_one_integration_is_logged(
        self, manager, monkeypatch, smtp_credentials, twilio_credentials
    ):
        await manager.connect(TENANT_ID, "email_smtp", smtp_credentials)
        await manager.connect(TENANT_ID, "sms_twilio", twilio_credentials)
        original = manager.record_health

        async def broken_record_health(tenant_id, integration_id, *args, **kwargs):
            if integration_id == "email_smtp":
                raise ValueError("unexpected payload")
            return await original(tenant_id, integration_id, *args, **kwargs)

        monkeypatch.setattr(manager, "record_health", broken_record_health)
        monitor = HealthMonitor(manager)

        results = await monitor.check_tenant(TENANT_ID)

        assert [r.integration_id for r in results] == ["sms_twilio"]

    @pytest.mark.asyncio
    async def test_metrics_tracked(self, manager, test_endpoint, twilio_credentials):
        await manager.connect(TENANT_ID, "sms_twilio", twilio_credentials)
        monitor = HealthMonitor(manager)

        await monitor.check_integration(TENANT_ID, "sms_twilio")
        test_endpoint.respond("sms_twilio", 502)
        await monitor.check_integration(TENANT_ID, "sms_twilio")

        metrics = monitor.get_metrics("sms_twilio")
        assert metrics.total_checks == 2
        assert metrics.success_rate == 0.5
        assert monitor.get_metrics("sms_twilio").last_error is not None

    @pytest.mark.asyncio
    async def test_run_until_cancelled(self, manager, test_endpoint, twilio_credentials):
        await manager.connect(TENANT_ID, "sms_twilio", twilio_credentials)
        monitor = HealthMonitor(manager)

        task = asyncio.create_task(monitor.run([TENANT_ID], interval=0.01))
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert monitor.get_metrics("sms_twilio").total_checks >= 2

    @pytest.mark.asyncio
    async def test_run_survives_failing_tenant(self, manager, monkeypatch, test_endpoint, twilio_credentials):
        await manager.connect(TENANT_ID, "sms_twilio", twilio_credentials)
        original = manager.get_config

        async def get_config(tenant_id):
            if tenant_id == "broken":
                raise ValueError("driver returned garbage")
            return await original(tenant_id)

        monkeypatch.setattr(manager, "get_config", get_config)
        monitor = HealthMonitor(manager)

        task = asyncio.create_task(monitor.run(["broken", TENANT_ID], interval=0.01))
        await asyncio.sleep(0.05)
        assert not task.done()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert monitor.get_metrics("sms_twilio").total_checks >= 2
