"""FastAPI dependencies for database sessions, caller identity and shared collaborators."""

from typing import AsyncGenerator, Optional

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from .database import get_async_session
from .events import EventBus
from .exceptions import AuthenticationError
from .security import CallerIdentity, decode_token


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Database dependency that provides async database sessions.

    Yields:
        AsyncSession: Database session
    """
    async for session in get_async_session():
        yield session


def _bearer_token(authorization: str) -> str:
    try:
        scheme, token = authorization.split()
    except ValueError as e:
        raise AuthenticationError(detail="Invalid authorization header format") from e

    if scheme.lower() != "bearer":
        raise AuthenticationError(detail="Invalid authentication scheme")
    return token


async def get_caller_identity(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    x_admin: Optional[str] = Header(None, alias="X-Admin"),
) -> CallerIdentity:
    """
    Identity dependency built from the session token and the admin header.

    A missing token yields an anonymous caller. The ``X-Admin`` header is
    trusted as supplied by the identity collaborator in front of the API.

    Raises:
        AuthenticationError: If a token is supplied but invalid
    """
    user_id = None
    if authorization:
        payload = decode_token(_bearer_token(authorization))
        user_id = payload["sub"]

    is_admin = (x_admin or "").strip().lower() == "true"
    return CallerIdentity(user_id=user_id, is_admin=is_admin)


def get_event_bus(request: Request) -> EventBus:
    """Return the application's booking event bus."""
    return request.app.state.event_bus


DatabaseSession = Depends(get_db)
Caller = Depends(get_caller_identity)
BookingEvents = Depends(get_event_bus)
