"""
Configuration Schemas for Switchboard.

Security:
    Sensitive fields use SecretStr to prevent accidental logging
    of credentials. Access the value with `.get_secret_value()`.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, SecretStr


class AppSettings(BaseModel):
    """
    Application settings model.

    Built from SWITCHBOARD_* environment variables by
    `switchboard.app.dependencies.get_settings()`.
    """

    # Service identity
    service_name: str = "switchboard"
    environment: str = "development"
    debug: bool = False

    # MongoDB
    mongodb_url: SecretStr = Field(..., description="MongoDB connection URL")
    mongodb_database: str = "switchboard"
    config_collection: str = "tenant_config"
    audit_collection: str = "integration_logs"

    # Webhooks
    webhook_base_url: str = Field(
        "https://webhooks.zatesystems.com/webhook",
        description="Base URL for inbound and test webhooks",
    )
    test_timeout: float = Field(10.0, gt=0, description="Connection test timeout in seconds")

    # Store
    cache_ttl: int = Field(60, ge=0, description="Tenant config read cache TTL in seconds")
    write_attempts: int = Field(5, ge=1, description="Attempts per write on version conflict")

    # Audit
    audit_queue_size: int = Field(1000, ge=1)

    # Health monitor
    health_check_interval: float = Field(0, ge=0, description="Seconds between polls; 0 disables")
    monitored_tenants: list[str] = Field(default_factory=list, description="Tenants polled by the health monitor")

    class Config:
        env_prefix = "SWITCHBOARD_"
        case_sensitive = False
