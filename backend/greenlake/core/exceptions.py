"""
Domain error taxonomy.

Services raise these; the API layer maps each one to an HTTP status and a
``{"error": message, "code": code}`` body (see greenlake.api.errors).
"""

from typing import Any, Dict, Optional

from fastapi import status


class GreenLakeError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"
    default_message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message or self.default_message
        if code is not None:
            self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class NotFoundError(GreenLakeError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    default_message = "Resource not found"


class UnauthorizedError(GreenLakeError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "AUTH_ERROR"
    default_message = "Unauthorized"


class ValidationError(GreenLakeError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"
    default_message = "Validation failed"


class AvailabilityError(GreenLakeError):
    """Capacity check failed; ``code`` says which resource."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "UNAVAILABLE"
    default_message = "Item is not available for the selected dates"


class InsufficientTokensError(GreenLakeError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "INSUFFICIENT_TOKENS"
    default_message = "Insufficient tokens"


class ConflictError(GreenLakeError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"
    default_message = "Resource conflict"


class BurnFailedError(GreenLakeError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "BURN_FAILED"
    default_message = "Failed to burn tokens"


class TransferFailedError(GreenLakeError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "TRANSFER_FAILED"
    default_message = "Failed to transfer tokens"


class InternalError(GreenLakeError):
    pass


class LedgerError(Exception):
    """Raised by the ledger client for non-2xx responses and transport failures."""

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None,
                 details: Optional[Any] = None):
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details
        super().__init__(message)
