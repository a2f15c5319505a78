"""
Password hashing and token issuing/decoding.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
import jwt

from api.config import config
from api.models import UserRecord


def hash_password(plain_password: str, rounds: Optional[int] = None) -> str:
    """Hash a plain-text password for storage. Plain passwords are never stored."""
    # bcrypt only looks at the first 72 bytes
    pw_bytes = plain_password.encode("utf-8")[:72]
    salt = bcrypt.gensalt(rounds=rounds or config.bcrypt_rounds)
    return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash."""
    pw_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def create_access_token(
    user: UserRecord,
    include_name: bool = False,
    now: Optional[datetime] = None,
) -> str:
    """
    Mint a signed credential for a user.

    Args:
        user: Stored user the token is issued for
        include_name: Embed the display name (tokens issued at login)
        now: Issue time; defaults to the current UTC time

    Returns:
        Encoded JWT carrying email, id, role, iat and exp
    """
    issued_at = now or datetime.now(timezone.utc)
    payload: Dict[str, Any] = {
        "email": user.email,
        "id": user.id,
        "role": user.role.value,
        "iat": issued_at,
        "exp": issued_at + timedelta(days=config.token_expire_days),
    }
    if include_name:
        payload["name"] = user.name

    return jwt.encode(
        payload,
        config.jwt_secret.get_secret_value(),
        algorithm=config.jwt_algorithm,
    )


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Decode and verify a token; return its claims.

    Raises jwt.PyJWTError on a bad signature, malformed token or expiry.
    """
    return jwt.decode(
        token,
        config.jwt_secret.get_secret_value(),
        algorithms=[config.jwt_algorithm],
    )
