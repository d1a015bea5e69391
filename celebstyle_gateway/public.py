"""
Endpoints served to API-key holders. Every route here is metered.
"""
from fastapi import APIRouter, Depends, Request

from celebstyle_gateway.auth import require_api_key
from celebstyle_gateway.models import ErrorResponse, KeyInfoResponse
from celebstyle_gateway.timeutils import as_utc

router = APIRouter(
    prefix="/api/v1/public",
    tags=["public"],
    dependencies=[Depends(require_api_key)],
    responses={
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
    },
)


@router.get("/whoami", response_model=KeyInfoResponse)
def whoami(request: Request):
    """Plan and usage of the calling key, after this request was counted."""
    record = request.state.api_key
    return KeyInfoResponse(
        owner_email=record.owner_email,
        plan=record.plan.value,
        usage=record.usage,
        usage_limit=record.usage_limit,
        remaining=record.remaining,
        valid_until=as_utc(record.valid_until),
    )
