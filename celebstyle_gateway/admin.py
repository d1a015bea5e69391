"""
Administrative API key operations.
"""
from fastapi import APIRouter, Depends

from celebstyle_gateway.auth import APIKeyManager, get_api_key_manager, require_admin
from celebstyle_gateway.models import DeactivateResponse, EmailRequest, ErrorResponse

router = APIRouter(
    prefix="/api/v1/admin/api-keys",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)


@router.post("/deactivate", response_model=DeactivateResponse)
def deactivate_api_keys(
    payload: EmailRequest,
    manager: APIKeyManager = Depends(get_api_key_manager),
):
    """Deactivate all keys of an owner. Deactivated keys are rejected by the gateway for good."""
    count = manager.deactivate(payload.email)
    return DeactivateResponse(deactivated=count)
