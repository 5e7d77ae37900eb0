"""
Integration lifecycle API for Switchboard.

Routes (mounted under /api/v1):
    GET    /tenants/{tenant_id}/integrations
    GET    /tenants/{tenant_id}/integrations/{integration_id}
    POST   /tenants/{tenant_id}/integrations/{integration_id}/connect
    POST   /tenants/{tenant_id}/integrations/{integration_id}/disconnect
    POST   /tenants/{tenant_id}/integrations/{integration_id}/test
    PATCH  /tenants/{tenant_id}/integrations/{integration_id}/settings
    GET    /tenants/{tenant_id}/integrations/{integration_id}/webhook

A failed connection test is not an HTTP error: the endpoint answers 200
with success=false and the failure kind.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from switchboard.app.dependencies import get_manager
from switchboard.integrations import (
    ConnectionLifecycleManager,
    IntegrationCategory,
    IntegrationError,
    StoreError,
    TenantNotFoundError,
    ValidationError,
    ValidationReason,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tenants/{tenant_id}/integrations", tags=["integrations"])


class ConnectRequest(BaseModel):
    """Body for POST .../connect."""

    credentials: Dict[str, Any] = Field(default_factory=dict)
    settings: Optional[Dict[str, Any]] = None


class SettingsUpdate(BaseModel):
    """Body for PATCH .../settings."""

    settings: Dict[str, Any] = Field(..., description="Partial settings to merge")


def _to_http_error(error: IntegrationError) -> HTTPException:
    """Map a lifecycle error onto an HTTP response."""
    detail: Dict[str, Any] = {"integration": error.integration, "message": error.message}

    if isinstance(error, ValidationError):
        detail["reason"] = error.reason.value
        if error.field:
            detail["field"] = error.field
        if error.reason is ValidationReason.UNKNOWN_INTEGRATION:
            return HTTPException(status_code=404, detail=detail)
        return HTTPException(status_code=422, detail=detail)

    if isinstance(error, TenantNotFoundError):
        return HTTPException(status_code=404, detail=detail)

    if isinstance(error, StoreError):
        logger.error(f"[{error.integration}] Store failure: {error}")
        return HTTPException(status_code=503, detail=detail)

    logger.error(f"[{error.integration}] Unexpected integration error: {error}")
    return HTTPException(status_code=500, detail=detail)


@router.get("")
async def list_integrations(
    tenant_id: str,
    category: Optional[IntegrationCategory] = Query(None),
    manager: ConnectionLifecycleManager = Depends(get_manager),
) -> Dict[str, Any]:
    """Catalog joined with the tenant's connection status."""
    try:
        views = await manager.list_integrations(tenant_id, category)
        summary = await manager.summary(tenant_id)
    except IntegrationError as e:
        raise _to_http_error(e) from e

    return {
        "tenant_id": tenant_id,
        "connected": summary.connected,
        "total": summary.total,
        "integrations": [view.to_dict() for view in views],
    }


@router.get("/{integration_id}")
async def get_integration(
    tenant_id: str,
    integration_id: str,
    manager: ConnectionLifecycleManager = Depends(get_manager),
) -> Dict[str, Any]:
    """One integration with its status, settings and masked credentials."""
    try:
        definition = manager.registry.require(integration_id)
        snapshot = await manager.get_status(tenant_id, integration_id)
        settings = await manager.stored_settings(tenant_id, integration_id)
        credentials = await manager.stored_credentials(tenant_id, integration_id)
        webhook_url = await manager.webhook_url(tenant_id, integration_id)
    except IntegrationError as e:
        raise _to_http_error(e) from e

    return {
        **definition.to_dict(),
        **snapshot.to_dict(),
        "settings": settings,
        "credentials": credentials,
        "webhook_url": webhook_url,
    }


@router.post("/{integration_id}/connect")
async def connect_integration(
    tenant_id: str,
    integration_id: str,
    body: ConnectRequest,
    manager: ConnectionLifecycleManager = Depends(get_manager),
) -> Dict[str, Any]:
    try:
        result = await manager.connect(tenant_id, integration_id, body.credentials, body.settings)
        snapshot = await manager.get_status(tenant_id, integration_id)
    except IntegrationError as e:
        raise _to_http_error(e) from e
    return {**result.to_dict(), "status": snapshot.to_dict()}


@router.post("/{integration_id}/disconnect")
async def disconnect_integration(
    tenant_id: str,
    integration_id: str,
    manager: ConnectionLifecycleManager = Depends(get_manager),
) -> Dict[str, Any]:
    try:
        result = await manager.disconnect(tenant_id, integration_id)
        snapshot = await manager.get_status(tenant_id, integration_id)
    except IntegrationError as e:
        raise _to_http_error(e) from e
    return {**result.to_dict(), "status": snapshot.to_dict()}


@router.post("/{integration_id}/test")
async def test_integration(
    tenant_id: str,
    integration_id: str,
    timeout: Optional[float] = Query(None, gt=0, le=60),
    manager: ConnectionLifecycleManager = Depends(get_manager),
) -> Dict[str, Any]:
    """Run the connection test. Never changes stored state."""
    try:
        result = await manager.test_connection(tenant_id, integration_id, timeout=timeout)
    except IntegrationError as e:
        raise _to_http_error(e) from e
    return result.to_dict()


@router.patch("/{integration_id}/settings")
async def update_integration_settings(
    tenant_id: str,
    integration_id: str,
    body: SettingsUpdate,
    manager: ConnectionLifecycleManager = Depends(get_manager),
) -> Dict[str, Any]:
    try:
        result = await manager.update_settings(tenant_id, integration_id, body.settings)
        settings = await manager.stored_settings(tenant_id, integration_id)
    except IntegrationError as e:
        raise _to_http_error(e) from e
    return {**result.to_dict(), "settings": settings}


@router.get("/{integration_id}/webhook")
async def get_webhook(
    tenant_id: str,
    integration_id: str,
    manager: ConnectionLifecycleManager = Depends(get_manager),
) -> Dict[str, str]:
    try:
        definition = manager.registry.require(integration_id)
        config = await manager.get_config(tenant_id)
    except IntegrationError as e:
        raise _to_http_error(e) from e

    return {
        "webhook_url": manager.routes.build(config.tenant_record_id, definition.id),
        "test_url": manager.routes.test_url(config.tenant_record_id, definition.id),
    }
