"""
Authentication and role-based authorization for the FastAPI API.
"""

from typing import Optional

import jwt
import structlog
from fastapi import Depends, Request

from api.database import APIDatabaseService, get_db_service
from api.exceptions import InternalError, UnauthorizedError
from api.models import CurrentUser, Role
from api.security import decode_access_token

logger = structlog.get_logger(__name__)

BEARER_PREFIX = "bearer "


def extract_token(authorization: Optional[str]) -> Optional[str]:
    """
    Get the raw token from an Authorization header value.

    The header carries the token itself; a "Bearer " prefix is stripped
    when a client sends one.
    """
    if not authorization:
        return None
    token = authorization.strip()
    if token.lower().startswith(BEARER_PREFIX):
        token = token[len(BEARER_PREFIX):].strip()
    return token or None


async def get_current_user(
    request: Request,
    db_service: APIDatabaseService = Depends(get_db_service)
) -> CurrentUser:
    """
    Verify the request credential and resolve the stored user.

    Args:
        request: Incoming request; the resolved user is attached to request.state
        db_service: Database service

    Returns:
        The authenticated user as currently stored

    Raises:
        UnauthorizedError: Missing, invalid or expired token, or unknown user
        InternalError: The user lookup failed
    """
    token = extract_token(request.headers.get("authorization"))
    if token is None:
        raise UnauthorizedError()

    try:
        claims = decode_access_token(token)
    except jwt.PyJWTError as e:
        logger.warning("Token verification failed", token=token, error=str(e))
        raise UnauthorizedError()

    user_id = claims.get("id")
    if not isinstance(user_id, str):
        logger.warning("Token has no user id", token=token)
        raise UnauthorizedError()

    try:
        user = await db_service.get_user_by_id(user_id)
    except Exception as e:
        logger.error("User lookup failed", user_id=user_id, error=str(e))
        raise InternalError()

    if user is None:
        logger.info("Token refers to unknown user", user_id=user_id)
        raise UnauthorizedError()

    current_user = CurrentUser(id=user.id, email=user.email, name=user.name, role=user.role)
    request.state.user = current_user
    return current_user


def require_roles(*roles: Role):
    """
    Build a dependency that admits only users whose stored role is in ``roles``.

    The role comes from the user record loaded for this request, not from
    the token claims, so a role change applies to tokens already issued.
    A refused role gets the same response as a failed authentication.
    """
    allowed = frozenset(roles)

    async def dependency(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current_user.role not in allowed:
            logger.info(
                "Role not permitted",
                user_id=current_user.id,
                role=current_user.role.value,
                allowed=sorted(role.value for role in allowed)
            )
            raise UnauthorizedError()
        return current_user

    return dependency
