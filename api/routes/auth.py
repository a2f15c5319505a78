"""Registration and login."""

from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.concurrency import run_in_threadpool
from pymongo.errors import DuplicateKeyError

from api.database import APIDatabaseService, get_db_service
from api.exceptions import ConflictError, InternalError, InvalidCredentialsError
from api.models import ErrorResponse, LoginRequest, RegisterRequest, Role, TokenResponse
from api.security import create_access_token, hash_password, verify_password
from api.validation import json_body, login_rules, signup_rules, validate_body

logger = structlog.get_logger(__name__)

router = APIRouter()

_ERRORS = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
}


@router.post(
    "/register",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
    openapi_extra=json_body(RegisterRequest),
)
async def register(
    payload: Dict[str, Any] = Depends(validate_body(signup_rules)),
    db_service: APIDatabaseService = Depends(get_db_service)
):
    """
    Register a new user and return a token for it.

    - **email**: unique email address
    - **password**: at least 8 characters with lower, upper, digit and symbol
    - **name**: display name
    - **role**: Admin, Author or Reader
    """
    email = payload["email"]
    try:
        if await db_service.get_user_by_email(email) is not None:
            raise ConflictError()

        password_hash = await run_in_threadpool(hash_password, payload["password"])
        try:
            user = await db_service.create_user(
                email=email,
                password_hash=password_hash,
                name=str(payload["name"]),
                role=Role(payload["role"])
            )
        except DuplicateKeyError:
            # Lost a race with a concurrent registration for the same email
            raise ConflictError()

        return TokenResponse(
            message="Registration successful",
            token=create_access_token(user)
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error("Registration failed", error=str(e))
        raise InternalError()


@router.post(
    "/login",
    response_model=TokenResponse,
    responses=_ERRORS,
    openapi_extra=json_body(LoginRequest),
)
async def login(
    payload: Dict[str, Any] = Depends(validate_body(login_rules)),
    db_service: APIDatabaseService = Depends(get_db_service)
):
    """Exchange email and password for a token."""
    try:
        user = await db_service.get_user_by_email(payload["email"])
        if user is None:
            raise InvalidCredentialsError()

        if not await run_in_threadpool(verify_password, str(payload["password"]), user.password_hash):
            raise InvalidCredentialsError()

        return TokenResponse(
            message="Login successful",
            token=create_access_token(user, include_name=True)
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error("Login failed", error=str(e))
        raise InternalError()
