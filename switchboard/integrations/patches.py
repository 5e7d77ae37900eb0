"""
Patch builders for tenant integration configuration.

Each function takes the current config and returns a new one with only
the entries of a single integration changed. The input is never mutated.
Keeping every document mutation here means the rule "an operation on A
never touches B" lives in one place.

Validation helpers raise ValidationError before any patch is built, so a
rejected request never reaches the store.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any, Mapping

from .base import ValidationError, ValidationReason
from .models import HealthRecord, HealthState, TenantIntegrationConfig
from .registry import IntegrationDefinition, IntegrationRegistry

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(UTC)


# =============================================================================
# Validation
# =============================================================================


def ensure_available(definition: IntegrationDefinition) -> None:
    if definition.coming_soon:
        raise ValidationError(
            f"{definition.name} is not available yet",
            definition.id,
            reason=ValidationReason.UNAVAILABLE,
        )


def validate_credentials(
    definition: IntegrationDefinition,
    credentials: Mapping[str, Any],
    registry: IntegrationRegistry | None = None,
) -> dict[str, str]:
    """
    Check credentials against the definition and normalize them to strings.

    With a registry, a key owned by another integration is named in the
    error so the caller can see which integration it belongs to.

    Raises:
        ValidationError: Unknown key, or a required field missing or blank
    """
    owned = set(definition.credential_keys)
    for key in credentials:
        if key not in owned:
            owner = registry.credential_owner(key) if registry else None
            suffix = f" (it belongs to '{owner}')" if owner else ""
            raise ValidationError(
                f"'{key}' is not a credential of {definition.name}{suffix}",
                definition.id,
                reason=ValidationReason.UNKNOWN_FIELD,
                field=key,
            )

    for spec in definition.credentials:
        if not spec.required:
            continue
        value = credentials.get(spec.key)
        if value is None or not str(value).strip():
            raise ValidationError(
                f"Missing required field '{spec.label}' for {definition.name}",
                definition.id,
                reason=ValidationReason.MISSING_FIELD,
                field=spec.key,
            )

    return {key: str(value) for key, value in credentials.items() if value is not None}


def validate_settings(
    definition: IntegrationDefinition,
    settings: Mapping[str, Any],
) -> dict[str, Any]:
    """
    Check settings keys and value types against the definition.

    Raises:
        ValidationError: Unknown setting key or value of the wrong type
    """
    for key, value in settings.items():
        spec = definition.get_setting(key)
        if spec is None:
            raise ValidationError(
                f"'{key}' is not a setting of {definition.name}",
                definition.id,
                reason=ValidationReason.UNKNOWN_FIELD,
                field=key,
            )
        problem = spec.validate(value)
        if problem:
            raise ValidationError(
                problem,
                definition.id,
                reason=ValidationReason.INVALID_SETTING,
                field=key,
            )
    return dict(settings)


# =============================================================================
# Patches
# =============================================================================


def apply_connect(
    config: TenantIntegrationConfig,
    definition: IntegrationDefinition,
    credentials: Mapping[str, str],
    settings: Mapping[str, Any] | None = None,
    *,
    now: datetime | None = None,
) -> TenantIntegrationConfig:
    """Mark an integration connected with fresh credentials and health."""
    now = now or _utc_now()
    updated = config.model_copy(deep=True)

    updated.credential_fields.update(credentials)
    updated.connection_flags[definition.flag_key] = True
    if settings:
        _merge_settings(updated, definition.id, settings)
    updated.integration_health[definition.id] = HealthRecord(
        status=HealthState.HEALTHY,
        last_check=now,
    ).to_document()
    updated.connected_at[definition.id] = now
    updated.updated_at = now
    return updated


def apply_disconnect(
    config: TenantIntegrationConfig,
    definition: IntegrationDefinition,
    *,
    now: datetime | None = None,
) -> TenantIntegrationConfig:
    """Clear an integration's flag, credentials and health.

    Credential keys are kept with null values so the document schema stays
    stable for other readers. Settings are kept for a later reconnect.
    """
    now = now or _utc_now()
    updated = config.model_copy(deep=True)

    updated.connection_flags[definition.flag_key] = False
    for key in definition.credential_keys:
        updated.credential_fields[key] = None
    updated.integration_health.pop(definition.id, None)
    updated.connected_at[definition.id] = None
    updated.updated_at = now
    return updated


def apply_settings(
    config: TenantIntegrationConfig,
    definition: IntegrationDefinition,
    partial_settings: Mapping[str, Any],
    *,
    now: datetime | None = None,
) -> TenantIntegrationConfig:
    """Shallow-merge settings into one integration's inner map."""
    updated = config.model_copy(deep=True)
    _merge_settings(updated, definition.id, partial_settings)
    updated.updated_at = now or _utc_now()
    return updated


def apply_health(
    config: TenantIntegrationConfig,
    definition: IntegrationDefinition,
    record: HealthRecord,
    *,
    now: datetime | None = None,
) -> TenantIntegrationConfig:
    """Replace one integration's health entry.

    A record without last_check is stamped with `now`.
    """
    now = now or _utc_now()
    if record.last_check is None:
        record = record.model_copy(update={"last_check": now})

    updated = config.model_copy(deep=True)
    updated.integration_health[definition.id] = record.to_document()
    if record.is_healthy:
        updated.last_sync_at[definition.id] = record.last_check
    updated.updated_at = now
    return updated


def _merge_settings(
    config: TenantIntegrationConfig,
    integration_id: str,
    partial_settings: Mapping[str, Any],
) -> None:
    inner = config.settings_for(integration_id)
    inner.update(partial_settings)
    config.integration_settings[integration_id] = inner


__all__ = [
    "apply_connect",
    "apply_disconnect",
    "apply_health",
    "apply_settings",
    "ensure_available",
    "validate_credentials",
    "validate_settings",
]
