"""
Pydantic models for request validation and response serialization.

Responses are emitted with camelCase keys (``apiKey``, ``usageLimit``,
``validUntil``) to match what existing site clients consume.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EmailRequest(CamelModel):
    """Body of the register, regenerate and deactivate endpoints."""

    email: Optional[str] = Field(
        default=None,
        max_length=320,
        description="Owner email the key is issued to",
        examples=["stylist@example.com"],
    )

    @field_validator("email")
    @classmethod
    def strip_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None


class UpgradeRequest(CamelModel):
    plan: Optional[str] = Field(
        default=None,
        description="Target plan: 100k, 1m or 10m",
        examples=["100k"],
    )


class ErrorResponse(CamelModel):
    success: bool = False
    message: str


class IssuedKeyResponse(CamelModel):
    """Returned by register and regenerate; the only time a new key is shown."""

    success: bool = True
    api_key: str
    usage_limit: int


class UsageResponse(CamelModel):
    success: bool = True
    usage: int = Field(..., ge=0)
    usage_limit: int = Field(..., ge=0)
    remaining: int
    plan: str
    valid_until: Optional[datetime] = None


class DashboardResponse(UsageResponse):
    api_key: str
    reset_date: Optional[datetime] = None


class UpgradeResponse(CamelModel):
    success: bool = True
    message: str
    usage_limit: int
    valid_until: datetime
    price_paid: int


class DeactivateResponse(CamelModel):
    success: bool = True
    deactivated: int = Field(..., ge=0)


class KeyInfoResponse(CamelModel):
    """What a gated caller learns about its own key."""

    success: bool = True
    owner_email: str
    plan: str
    usage: int
    usage_limit: int
    remaining: int
    valid_until: Optional[datetime] = None
