"""
Owner-facing API key endpoints: register, dashboard, regenerate, usage, upgrade.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Security

from celebstyle_gateway.auth import APIKeyManager, api_key_header, get_api_key_manager
from celebstyle_gateway.config import settings
from celebstyle_gateway.db_models import ApiKeyRecord
from celebstyle_gateway.logging_config import mask_api_key
from celebstyle_gateway.models import (
    DashboardResponse,
    EmailRequest,
    ErrorResponse,
    IssuedKeyResponse,
    UpgradeRequest,
    UpgradeResponse,
    UsageResponse,
)
from celebstyle_gateway.rate_limiting import regenerate_endpoint_limit, register_endpoint_limit
from celebstyle_gateway.timeutils import as_utc

router = APIRouter(
    prefix="/api/v1/api-keys",
    tags=["api-keys"],
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
    },
)


def _usage_fields(record: ApiKeyRecord) -> dict:
    return {
        "usage": record.usage,
        "usage_limit": record.usage_limit,
        "remaining": record.remaining,
        "plan": record.plan.value,
        "valid_until": as_utc(record.valid_until),
    }


@router.post("/register", response_model=IssuedKeyResponse)
@register_endpoint_limit()
def register_api_key(
    request: Request,
    payload: EmailRequest,
    manager: APIKeyManager = Depends(get_api_key_manager),
):
    """
    Issue a free-plan key for an email address.
    The key is returned in full here; store it, it is only shown once.
    """
    raw_key, record = manager.register(payload.email)
    return IssuedKeyResponse(api_key=raw_key, usage_limit=record.usage_limit)


@router.get("/dashboard", response_model=DashboardResponse)
def get_dashboard(
    email: Optional[str] = Query(None, description="Owner email"),
    manager: APIKeyManager = Depends(get_api_key_manager),
):
    """Plan and usage overview of the owner's active key."""
    record = manager.lookup_by_owner(email)
    displayed_key = record.key if settings.expose_key_on_dashboard else mask_api_key(record.key)
    return DashboardResponse(
        api_key=displayed_key,
        reset_date=as_utc(record.last_reset),
        **_usage_fields(record),
    )


@router.post("/regenerate", response_model=IssuedKeyResponse)
@regenerate_endpoint_limit()
def regenerate_api_key(
    request: Request,
    payload: EmailRequest,
    manager: APIKeyManager = Depends(get_api_key_manager),
):
    """Replace the owner's key; the old key stops working immediately."""
    raw_key, record = manager.regenerate(payload.email)
    return IssuedKeyResponse(api_key=raw_key, usage_limit=record.usage_limit)


@router.get("/usage", response_model=UsageResponse)
def get_usage(
    api_key: Optional[str] = Security(api_key_header),
    manager: APIKeyManager = Depends(get_api_key_manager),
):
    """Usage of the presented key. Does not count as a metered request."""
    record = manager.usage_report(api_key)
    return UsageResponse(**_usage_fields(record))


@router.post("/upgrade", response_model=UpgradeResponse)
def upgrade_plan(
    payload: UpgradeRequest,
    api_key: Optional[str] = Security(api_key_header),
    manager: APIKeyManager = Depends(get_api_key_manager),
):
    """
    Buy (or renew) a paid plan for the presented key.
    Usage restarts at zero and the plan is valid for 30 days.
    """
    record = manager.upgrade(api_key, payload.plan)
    return UpgradeResponse(
        message=f"Upgraded to {record.plan.value} plan",
        usage_limit=record.usage_limit,
        valid_until=as_utc(record.valid_until),
        price_paid=record.price_paid,
    )
