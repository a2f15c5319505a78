"""
Error taxonomy for the API.

Every failure a client can observe is one of these. Each carries its HTTP
status and a default client-safe message; the exception handlers in
``api.main`` render them as ``{"message": ..., "errors": [...]}``.
"""

from typing import Dict, List, Optional

from fastapi import HTTPException, status


class APIError(HTTPException):
    """Base class for API errors with a fixed status and default message."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Something went wrong"

    def __init__(
        self,
        message: Optional[str] = None,
        errors: Optional[List[Dict[str, str]]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(
            status_code=type(self).status_code,
            detail=message or type(self).message,
            headers=headers,
        )
        self.errors = errors


class UnauthorizedError(APIError):
    """Missing, invalid or expired credential, or a role outside the allow-list."""

    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Unauthorized"


class RequestValidationFailed(APIError):
    """One or more field rules rejected the request body."""

    status_code = status.HTTP_400_BAD_REQUEST
    message = "Validation failed"


class ConflictError(APIError):
    """Registration with an email that is already taken."""

    status_code = status.HTTP_400_BAD_REQUEST
    message = "User already registered"


class InvalidCredentialsError(APIError):
    """Login failure; same message for unknown email and wrong password."""

    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid credentials"


class NotFoundError(APIError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Book not found"


class InternalError(APIError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Something went wrong"
