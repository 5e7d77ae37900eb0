"""
Tests for connection status resolution and the tenant document model.
"""

from datetime import UTC, datetime

from switchboard.integrations.models import (
    ConnectionState,
    ConnectionStatus,
    HealthRecord,
    HealthState,
    TenantIntegrationConfig,
)
from switchboard.integrations.status import resolve_status, summarize


def _config(registry, **fields) -> TenantIntegrationConfig:
    document = {"id": "rec-123", "tenant_id": "acme", "version": 0, **fields}
    return TenantIntegrationConfig.from_document(document, registry)


# =============================================================================
# resolve_status Tests
# =============================================================================


class TestResolveStatus:
    """Status comes from the flag alone; health is reported verbatim."""

    def test_no_config(self, registry):
        snapshot = resolve_status(None, "email_smtp", registry)
        assert snapshot.status is ConnectionStatus.DISCONNECTED
        assert snapshot.state is ConnectionState.DISCONNECTED
        assert snapshot.health is None

    def test_absent_flag_is_disconnected(self, registry):
        snapshot = resolve_status(_config(registry), "email_smtp", registry)
        assert snapshot.status is ConnectionStatus.DISCONNECTED

    def test_unknown_integration_is_disconnected(self, registry):
        config = _config(registry, has_email=True)
        snapshot = resolve_status(config, "carrier_pigeon", registry)
        assert snapshot.status is ConnectionStatus.DISCONNECTED
        assert snapshot.integration_id == "carrier_pigeon"

    def test_flag_true_is_connected(self, registry):
        snapshot = resolve_status(_config(registry, has_email=True), "email_smtp", registry)
        assert snapshot.status is ConnectionStatus.CONNECTED
        assert snapshot.is_connected

    def test_truthy_non_bool_flag_is_not_connected(self, registry):
        snapshot = resolve_status(_config(registry, has_email="yes"), "email_smtp", registry)
        assert snapshot.status is ConnectionStatus.DISCONNECTED

    def test_missing_health_is_not_defaulted(self, registry):
        snapshot = resolve_status(_config(registry, has_email=True), "email_smtp", registry)
        assert snapshot.health is None
        assert snapshot.state is ConnectionState.CONNECTED

    def test_unhealthy_connected_is_degraded(self, registry):
        config = _config(
            registry,
            has_sms=True,
            integration_health={"sms_twilio": {"status": "unhealthy", "message": "401 from Twilio"}},
        )
        snapshot = resolve_status(config, "sms_twilio", registry)
        assert snapshot.status is ConnectionStatus.CONNECTED
        assert snapshot.state is ConnectionState.DEGRADED
        assert snapshot.health.message == "401 from Twilio"

    def test_down_health_is_degraded(self, registry):
        config = _config(
            registry,
            has_sms=True,
            integration_health={"sms_twilio": {"status": "down"}},
        )
        snapshot = resolve_status(config, "sms_twilio", registry)
        assert snapshot.state is ConnectionState.DEGRADED
        assert snapshot.health.status is HealthState.DOWN

    def test_degraded_health_is_degraded(self, registry):
        config = _config(
            registry,
            has_sms=True,
            integration_health={"sms_twilio": {"status": "degraded"}},
        )
        assert resolve_status(config, "sms_twilio", registry).state is ConnectionState.DEGRADED

    def test_health_without_flag_stays_disconnected(self, registry):
        config = _config(
            registry,
            integration_health={"sms_twilio": {"status": "healthy"}},
        )
        snapshot = resolve_status(config, "sms_twilio", registry)
        assert snapshot.status is ConnectionStatus.DISCONNECTED
        assert snapshot.state is ConnectionState.DISCONNECTED

    def test_is_deterministic(self, registry):
        config = _config(registry, has_email=True)
        assert resolve_status(config, "email_smtp", registry) == resolve_status(
            config, "email_smtp", registry
        )

    def test_to_dict(self, registry):
        connected_at = datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC)
        config = _config(
            registry,
            has_email=True,
            email_smtp_connected_at=connected_at,
            integration_health={"email_smtp": {"status": "healthy", "lastCheck": "2026-01-02T03:04:05Z"}},
        )
        data = resolve_status(config, "email_smtp", registry).to_dict()
        assert data["status"] == "connected"
        assert data["state"] == "connected"
        assert data["health"]["status"] == "healthy"
        assert data["connected_at"] == connected_at.isoformat()
        assert data["last_sync_at"] is None


class TestSummarize:
    """Tests for connected/total counts."""

    def test_counts(self, registry):
        config = _config(registry, has_email=True, has_sms=True, has_stripe=False)
        summary = summarize(config, registry)
        assert summary.connected == 2
        assert summary.total == len(registry)
        assert len(summary.snapshots) == len(registry)

    def test_empty(self, registry):
        assert summarize(None, registry).connected == 0


# =============================================================================
# Document Model Tests
# =============================================================================


class TestTenantIntegrationConfig:
    """Flat document <-> typed view."""

    def test_from_document_splits_root_keys(self, registry):
        config = _config(
            registry,
            name="Acme Corp",
            has_email=True,
            smtp_host="smtp.acme.test",
            smtp_port=587,
            sms_twilio_last_sync="2026-01-01T00:00:00Z",
        )
        assert config.tenant_record_id == "rec-123"
        assert config.connection_flags == {"has_email": True}
        assert config.credential_fields == {"smtp_host": "smtp.acme.test", "smtp_port": 587}
        assert config.other_fields == {"name": "Acme Corp"}
        assert "sms_twilio" in config.last_sync_at

    def test_round_trip_keeps_unrelated_fields(self, registry):
        document = {
            "id": "rec-123",
            "tenant_id": "acme",
            "version": 4,
            "name": "Acme Corp",
            "billing": {"plan": "pro"},
            "has_email": True,
            "smtp_host": "smtp.acme.test",
            "integration_settings": {"email_smtp": {"signature": "Thanks"}},
            "integration_health": {},
        }
        out = TenantIntegrationConfig.from_document(document, registry).to_document()
        assert out["name"] == "Acme Corp"
        assert out["billing"] == {"plan": "pro"}
        assert out["has_email"] is True
        assert out["smtp_host"] == "smtp.acme.test"
        assert out["version"] == 4
        assert out["integration_settings"] == {"email_smtp": {"signature": "Thanks"}}

    def test_missing_record_id(self, registry):
        config = TenantIntegrationConfig.from_document({"tenant_id": "acme"}, registry)
        assert config.tenant_record_id is None
        assert config.version == 0

    def test_empty_health_entries_read_as_unknown(self, registry):
        config = _config(registry, integration_health={"email_smtp": None, "sms_twilio": {}})
        assert config.health_for("email_smtp") is None
        assert config.health_for("sms_twilio") is None
        assert config.to_document()["integration_health"] == {"email_smtp": None, "sms_twilio": {}}

    def test_round_trip_keeps_stored_values_verbatim(self, registry):
        health = {"status": "down", "lastCheck": "2024-01-01T00:00:00.000Z", "region": "eu"}
        document = {
            "id": "rec-123",
            "tenant_id": "acme",
            "version": 2,
            "has_email": "yes",
            "smtp_port": 587,
            "email_smtp_connected_at": "2024-01-01T00:00:00.000Z",
            "integration_settings": {"email_smtp": "legacy"},
            "integration_health": {"email_smtp": health},
        }
        out = TenantIntegrationConfig.from_document(document, registry).to_document()

        assert out["has_email"] == "yes"
        assert out["smtp_port"] == 587
        assert out["email_smtp_connected_at"] == "2024-01-01T00:00:00.000Z"
        assert out["integration_settings"] == {"email_smtp": "legacy"}
        assert out["integration_health"] == {"email_smtp": health}

    def test_typed_accessors(self, registry):
        config = _config(
            registry,
            email_smtp_connected_at="2024-01-01T00:00:00.000Z",
            email_smtp_last_sync="not a date",
            integration_settings={"email_smtp": "legacy", "sms_twilio": {"retries": 2}},
        )
        assert config.connected_at_for("email_smtp") == datetime(2024, 1, 1, tzinfo=UTC)
        assert config.last_sync_for("email_smtp") is None
        assert config.settings_for("email_smtp") == {}
        assert config.settings_for("sms_twilio") == {"retries": 2}

    def test_malformed_health_entry_ignored(self, registry):
        config = _config(
            registry,
            integration_health={
                "email_smtp": {"status": "healthy", "lastCheck": "yesterday"},
                "sms_twilio": "ok",
            },
        )
        assert config.health_for("email_smtp") is None
        assert config.health_for("sms_twilio") is None

    def test_non_map_settings_treated_as_empty(self, registry):
        config = _config(registry, integration_settings=["email_smtp"])
        assert config.integration_settings == {}

    def test_credentials_for(self, registry):
        config = _config(registry, smtp_host="smtp.acme.test", twilio_account_sid="AC1")
        assert config.credentials_for(registry.require("email_smtp")) == {"smtp_host": "smtp.acme.test"}


class TestHealthRecord:
    """Tests for the stored health entry shape."""

    def test_document_uses_stored_aliases(self):
        record = HealthRecord(
            status=HealthState.HEALTHY,
            last_check=datetime(2026, 1, 1, tzinfo=UTC),
            latency_ms=42.0,
        )
        document = record.to_document()
        assert document == {
            "status": "healthy",
            "lastCheck": "2026-01-01T00:00:00Z",
            "latency": 42.0,
        }

    def test_is_healthy(self):
        assert HealthRecord(status="healthy").is_healthy
        assert not HealthRecord(status="unhealthy").is_healthy

    def test_down_status(self):
        record = HealthRecord(status="down")
        assert record.status is HealthState.DOWN
        assert not record.is_healthy

    def test_unknown_status_kept(self):
        record = HealthRecord.model_validate({"status": "maintenance", "lastCheck": "2024-01-01T00:00:00Z"})
        assert record.status == "maintenance"
        assert record.status_value == "maintenance"
        assert not record.is_healthy

    def test_extra_keys_kept(self):
        record = HealthRecord.model_validate({"status": "healthy", "region": "eu"})
        assert record.to_document() == {"status": "healthy", "region": "eu"}
