"""Password hashing, session tokens and the caller identity passed to admin operations."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import bcrypt
import jwt
from jwt import PyJWTError

from .config import settings
from .exceptions import AuthenticationError, AuthorizationError

TOKEN_ALGORITHM = "HS256"


@dataclass(frozen=True)
class CallerIdentity:
    """Identity of the caller as supplied by the identity collaborator.

    ``is_admin`` is trusted verbatim; operations never re-derive it.
    """

    user_id: Optional[str] = None
    is_admin: bool = False


ANONYMOUS = CallerIdentity()
ADMIN = CallerIdentity(is_admin=True)


def hash_password(plain_password: str, rounds: Optional[int] = None) -> str:
    """Hash a password with a per-password bcrypt salt."""
    salt = bcrypt.gensalt(rounds=rounds or settings.password_hash_rounds)
    return bcrypt.hashpw(plain_password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a plaintext password against a stored bcrypt hash."""
    return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))


def issue_token(user_id: str, username: str, email: str) -> str:
    """Issue a signed session token for a user."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "username": username,
        "email": email,
        "iat": now,
        "exp": now + timedelta(days=settings.token_ttl_days),
    }
    return jwt.encode(payload, settings.token_secret, algorithm=TOKEN_ALGORITHM)


def decode_token(token: str) -> dict[str, Any]:
    """
    Decode and validate a session token.

    Raises:
        AuthenticationError: If the token is malformed, expired or has no subject
    """
    try:
        payload = jwt.decode(token, settings.token_secret, algorithms=[TOKEN_ALGORITHM])
    except PyJWTError as e:
        raise AuthenticationError(detail=f"Token validation failed: {e}") from e

    if payload.get("sub") is None:
        raise AuthenticationError(detail="Invalid token payload")

    return payload


def ensure_admin(caller: CallerIdentity, operation: str) -> None:
    """
    Reject callers without admin rights.

    Raises:
        AuthorizationError: If the caller is not an admin
    """
    if not caller.is_admin:
        raise AuthorizationError(
            detail=f"Admin rights are required to {operation}",
            required_permissions=["admin"],
        )
