"""
Integration Registry for Switchboard.

Static, compiled-in catalog of integration definitions. Every lookup the
lifecycle layer performs against the tenant document (flag keys, credential
keys, setting keys) goes through this registry, so arbitrary string keys
are never trusted.

Usage:
    registry = get_registry()
    definition = registry.require("email_smtp")
    flag = registry.flag_key("email_smtp")   # "has_email"
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable

from .base import ValidationError, ValidationReason

logger = logging.getLogger(__name__)


class IntegrationCategory(str, Enum):
    COMMUNICATION = "communication"
    SCHEDULING = "scheduling"
    PAYMENTS = "payments"
    CRM = "crm"
    SUPPORT = "support"
    ECOMMERCE = "ecommerce"
    AI = "ai"
    PRODUCTIVITY = "productivity"
    ANALYTICS = "analytics"
    FORMS = "forms"


class AuthType(str, Enum):
    API_KEY = "api_key"
    OAUTH = "oauth"
    CREDENTIALS = "credentials"
    WEBHOOK = "webhook"


class FieldType(str, Enum):
    """Input types for credential fields and settings."""

    TEXT = "text"
    PASSWORD = "password"
    URL = "url"
    EMAIL = "email"
    NUMBER = "number"
    BOOLEAN = "boolean"
    SELECT = "select"
    TEXTAREA = "textarea"
    COLOR = "color"


class Tier(str, Enum):
    STARTER = "starter"
    PROFESSIONAL = "professional"
    ENTERPRISE = "enterprise"


@dataclass(frozen=True, slots=True)
class CredentialField:
    """A named secret or config value an integration needs."""

    key: str
    label: str
    type: FieldType = FieldType.TEXT
    required: bool = True
    placeholder: str = ""
    help_text: str = ""

    @property
    def is_secret(self) -> bool:
        return self.type is FieldType.PASSWORD


@dataclass(frozen=True, slots=True)
class SettingSpec:
    """A per-integration setting with its default value."""

    key: str
    label: str
    type: FieldType = FieldType.TEXT
    default: Any = None
    options: tuple[str, ...] = ()
    help_text: str = ""

    def validate(self, value: Any) -> str | None:
        """Return an error message if value does not fit this setting."""
        if value is None:
            return None
        if self.type is FieldType.BOOLEAN:
            if not isinstance(value, bool):
                return f"'{self.key}' must be a boolean"
        elif self.type is FieldType.NUMBER:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                return f"'{self.key}' must be a number"
        elif self.type is FieldType.SELECT:
            if value not in self.options:
                return f"'{self.key}' must be one of {', '.join(self.options)}"
        elif not isinstance(value, str):
            return f"'{self.key}' must be a string"
        return None


@dataclass(frozen=True, slots=True)
class IntegrationDefinition:
    """Immutable description of one pluggable integration."""

    id: str
    name: str
    category: IntegrationCategory
    flag_key: str
    description: str = ""
    auth_type: AuthType = AuthType.API_KEY
    credentials: tuple[CredentialField, ...] = ()
    settings: tuple[SettingSpec, ...] = ()
    docs_url: str | None = None
    setup_guide: tuple[str, ...] = ()
    features: tuple[str, ...] = ()
    tier: Tier = Tier.STARTER
    popular: bool = False
    coming_soon: bool = False

    @property
    def credential_keys(self) -> tuple[str, ...]:
        return tuple(f.key for f in self.credentials)

    def get_setting(self, key: str) -> SettingSpec | None:
        for spec in self.settings:
            if spec.key == key:
                return spec
        return None

    def default_settings(self) -> dict[str, Any]:
        return {spec.key: spec.default for spec in self.settings}

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category.value,
            "auth_type": self.auth_type.value,
            "credentials": [
                {
                    "key": f.key,
                    "label": f.label,
                    "type": f.type.value,
                    "required": f.required,
                    "placeholder": f.placeholder,
                    "help_text": f.help_text,
                }
                for f in self.credentials
            ],
            "settings": [
                {
                    "key": s.key,
                    "label": s.label,
                    "type": s.type.value,
                    "default": s.default,
                    "options": list(s.options),
                }
                for s in self.settings
            ],
            "docs_url": self.docs_url,
            "setup_guide": list(self.setup_guide),
            "features": list(self.features),
            "tier": self.tier.value,
            "popular": self.popular,
            "coming_soon": self.coming_soon,
        }


class IntegrationRegistry:
    """
    Read-only catalog of integration definitions.

    Construction validates the catalog: ids, flag keys and credential keys
    must be unique. Credential keys share one flat namespace in the tenant
    document, so two integrations claiming the same key would overwrite and
    null each other's values; such a catalog is rejected outright.
    """

    def __init__(self, definitions: Iterable[IntegrationDefinition]):
        self._definitions: dict[str, IntegrationDefinition] = {}
        self._flags: dict[str, str] = {}
        self._credential_owners: dict[str, str] = {}

        for definition in definitions:
            self._add(definition)

        logger.debug(f"Integration registry loaded with {len(self._definitions)} definitions")

    def _add(self, definition: IntegrationDefinition) -> None:
        if definition.id in self._definitions:
            raise ValueError(f"Duplicate integration id: {definition.id}")

        owner = self._flags.get(definition.flag_key)
        if owner is not None:
            raise ValueError(
                f"Flag key '{definition.flag_key}' used by both '{owner}' and '{definition.id}'"
            )

        for key in definition.credential_keys:
            owner = self._credential_owners.get(key)
            if owner is not None:
                raise ValueError(
                    f"Credential key '{key}' claimed by both '{owner}' and '{definition.id}'"
                )

        self._definitions[definition.id] = definition
        self._flags[definition.flag_key] = definition.id
        for key in definition.credential_keys:
            self._credential_owners[key] = definition.id

    def __contains__(self, integration_id: object) -> bool:
        return integration_id in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)

    def get_definition(self, integration_id: str) -> IntegrationDefinition | None:
        return self._definitions.get(integration_id)

    def require(self, integration_id: str) -> IntegrationDefinition:
        """Get a definition or raise ValidationError for an unknown id."""
        definition = self._definitions.get(integration_id)
        if definition is None:
            raise ValidationError(
                f"Unknown integration '{integration_id}'",
                integration_id,
                reason=ValidationReason.UNKNOWN_INTEGRATION,
            )
        return definition

    def flag_key(self, integration_id: str) -> str | None:
        definition = self._definitions.get(integration_id)
        return definition.flag_key if definition else None

    def credential_owner(self, key: str) -> str | None:
        """Integration id that owns a credential key, if any."""
        return self._credential_owners.get(key)

    def list_definitions(
        self,
        category: IntegrationCategory | str | None = None,
    ) -> list[IntegrationDefinition]:
        """List definitions in catalog order, optionally filtered by category."""
        if category is None:
            return list(self._definitions.values())
        category = IntegrationCategory(category)
        return [d for d in self._definitions.values() if d.category is category]

    @property
    def ids(self) -> list[str]:
        return list(self._definitions)

    @property
    def flag_keys(self) -> list[str]:
        return list(self._flags)

    @property
    def credential_keys(self) -> list[str]:
        return list(self._credential_owners)


# Global registry instance
_global_registry: IntegrationRegistry | None = None


def get_registry() -> IntegrationRegistry:
    """Get the global registry built from the compiled-in catalog."""
    global _global_registry
    if _global_registry is None:
        from .catalog import INTEGRATIONS

        _global_registry = IntegrationRegistry(INTEGRATIONS)
    return _global_registry


def set_registry(registry: IntegrationRegistry) -> None:
    """Set the global registry (for testing)."""
    global _global_registry
    _global_registry = registry


__all__ = [
    "AuthType",
    "CredentialField",
    "FieldType",
    "IntegrationCategory",
    "IntegrationDefinition",
    "IntegrationRegistry",
    "SettingSpec",
    "Tier",
    "get_registry",
    "set_registry",
]
