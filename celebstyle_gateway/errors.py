"""
Gateway error taxonomy.

Every error carries the HTTP status and the user-facing message it is
rendered with; the exception handler in main_api turns them into
``{"success": false, "message": ...}`` responses.
"""
from fastapi import status


class GatewayError(Exception):
    """Base class for all API key gateway failures."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    message: str = "Request failed"

    def __init__(self, message: str = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class CredentialMissing(GatewayError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "API key required in header"


class InvalidOrInactiveKey(GatewayError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "Invalid or inactive API key"


class QuotaExceeded(GatewayError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    message = "API usage limit reached. Please wait for daily reset."

    DAILY_MESSAGE = "API usage limit reached. Please wait for daily reset."
    MONTHLY_MESSAGE = "API usage limit reached for this month. Please renew."

    @classmethod
    def daily(cls) -> "QuotaExceeded":
        return cls(cls.DAILY_MESSAGE)

    @classmethod
    def monthly(cls) -> "QuotaExceeded":
        return cls(cls.MONTHLY_MESSAGE)


class PlanExpired(GatewayError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "Plan expired. Please renew."


class KeyNotFound(GatewayError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "API key not found"


class InvalidPlan(GatewayError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid plan"


class InvalidInput(GatewayError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid input"
