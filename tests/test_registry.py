"""
Tests for the Integration Registry and catalog.
"""

import pytest

from switchboard.integrations.base import ValidationError, ValidationReason
from switchboard.integrations.catalog import INTEGRATIONS
from switchboard.integrations.registry import (
    CredentialField,
    FieldType,
    IntegrationCategory,
    IntegrationDefinition,
    IntegrationRegistry,
    SettingSpec,
)


def _definition(integration_id: str, flag_key: str, *keys: str) -> IntegrationDefinition:
    return IntegrationDefinition(
        id=integration_id,
        name=integration_id.title(),
        category=IntegrationCategory.COMMUNICATION,
        flag_key=flag_key,
        credentials=tuple(CredentialField(key, key) for key in keys),
    )


# =============================================================================
# Catalog Tests
# =============================================================================


class TestCatalog:
    """The compiled-in catalog loads and is self-consistent."""

    def test_catalog_loads(self, registry):
        assert len(registry) == len(INTEGRATIONS)
        assert "email_smtp" in registry
        assert "sms_twilio" in registry

    def test_flag_keys(self, registry):
        assert registry.flag_key("email_smtp") == "has_email"
        assert registry.flag_key("sms_twilio") == "has_sms"
        assert registry.flag_key("stripe") == "has_stripe"

    def test_every_integration_has_credentials(self, registry):
        for definition in registry.list_definitions():
            assert definition.credentials, definition.id

    def test_setting_defaults_are_valid(self, registry):
        for definition in registry.list_definitions():
            for spec in definition.settings:
                assert spec.validate(spec.default) is None, f"{definition.id}.{spec.key}"


# =============================================================================
# Lookup Tests
# =============================================================================


class TestLookups:
    """Tests for registry lookups."""

    def test_get_definition(self, registry):
        definition = registry.get_definition("email_smtp")
        assert definition is not None
        assert definition.name == "Email (SMTP)"
        assert "smtp_pass" in definition.credential_keys

    def test_get_unknown_definition(self, registry):
        assert registry.get_definition("carrier_pigeon") is None
        assert registry.flag_key("carrier_pigeon") is None

    def test_require_unknown_raises(self, registry):
        with pytest.raises(ValidationError) as exc_info:
            registry.require("carrier_pigeon")

        assert exc_info.value.reason is ValidationReason.UNKNOWN_INTEGRATION
        assert exc_info.value.integration == "carrier_pigeon"
        assert "carrier_pigeon" in str(exc_info.value)

    def test_credential_owner(self, registry):
        assert registry.credential_owner("twilio_auth_token") == "sms_twilio"
        assert registry.credential_owner("not_a_key") is None

    def test_list_by_category(self, registry):
        payments = registry.list_definitions(IntegrationCategory.PAYMENTS)
        assert {d.id for d in payments} == {"stripe", "razorpay"}

    def test_list_by_category_string(self, registry):
        assert registry.list_definitions("payments") == registry.list_definitions(
            IntegrationCategory.PAYMENTS
        )

    def test_list_preserves_catalog_order(self, registry):
        assert [d.id for d in registry.list_definitions()] == [d.id for d in INTEGRATIONS]

    def test_to_dict(self, registry):
        data = registry.require("stripe").to_dict()
        assert data["id"] == "stripe"
        assert data["category"] == "payments"
        assert data["settings"][0]["options"] == ["usd", "eur", "gbp", "aed", "inr"]
        assert {c["key"] for c in data["credentials"]} >= {"stripe_secret_key"}


# =============================================================================
# Construction Validation Tests
# =============================================================================


class TestRegistryValidation:
    """The registry refuses catalogs that would corrupt the flat document."""

    def test_duplicate_id_rejected(self):
        with pytest.raises(ValueError, match="Duplicate integration id"):
            IntegrationRegistry(
                [
                    _definition("mailer", "has_mailer", "mailer_key"),
                    _definition("mailer", "has_mailer_2", "mailer_key_2"),
                ]
            )

    def test_duplicate_flag_rejected(self):
        with pytest.raises(ValueError, match="has_mail"):
            IntegrationRegistry(
                [
                    _definition("mailer", "has_mail", "mailer_key"),
                    _definition("sender", "has_mail", "sender_key"),
                ]
            )

    def test_colliding_credential_keys_rejected(self):
        with pytest.raises(ValueError, match="Credential key 'api_key' claimed by both"):
            IntegrationRegistry(
                [
                    _definition("mailer", "has_mailer", "api_key"),
                    _definition("sender", "has_sender", "api_key"),
                ]
            )

    def test_distinct_keys_accepted(self):
        registry = IntegrationRegistry(
            [
                _definition("mailer", "has_mailer", "mailer_key"),
                _definition("sender", "has_sender", "sender_key"),
            ]
        )
        assert registry.ids == ["mailer", "sender"]
        assert registry.credential_keys == ["mailer_key", "sender_key"]


# =============================================================================
# SettingSpec Tests
# =============================================================================


class TestSettingSpec:
    """Tests for setting value validation."""

    def test_boolean(self):
        spec = SettingSpec("enabled", "Enabled", FieldType.BOOLEAN, default=True)
        assert spec.validate(False) is None
        assert spec.validate("yes") is not None

    def test_number_rejects_bool(self):
        spec = SettingSpec("limit", "Limit", FieldType.NUMBER, default=10)
        assert spec.validate(3) is None
        assert spec.validate(0.5) is None
        assert spec.validate(True) is not None
        assert spec.validate("3") is not None

    def test_select(self):
        spec = SettingSpec("currency", "Currency", FieldType.SELECT, default="usd", options=("usd", "eur"))
        assert spec.validate("eur") is None
        assert "usd, eur" in spec.validate("jpy")

    def test_text(self):
        spec = SettingSpec("channel", "Channel", default="#sales")
        assert spec.validate("#ops") is None
        assert spec.validate(42) is not None

    def test_none_clears(self):
        spec = SettingSpec("channel", "Channel", default="#sales")
        assert spec.validate(None) is None
