"""User router for accounts and sessions."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import Caller, DatabaseSession
from ..core.security import CallerIdentity
from ..schemas.common import PROBLEM_RESPONSES
from ..schemas.user import (
    AuthenticatedUser,
    LoginRequest,
    LogoutResponse,
    RegisterRequest,
    RemoveUserResponse,
    UpdateProfileRequest,
    User,
    UserIdRequest,
)
from ..services.user_service import UserService
from .common import json_response, run_operation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/user", tags=["user"])


@router.post("/register", response_model=AuthenticatedUser, responses=PROBLEM_RESPONSES)
async def register(
    request: RegisterRequest,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """Register a user and return a session token."""
    user_service = UserService(db)

    user = await run_operation(
        "user registration",
        lambda: user_service.register(request),
        username=request.username,
    )
    return json_response(user)


@router.post("/login", response_model=AuthenticatedUser, responses=PROBLEM_RESPONSES)
async def login(
    request: LoginRequest,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """Log a user in and return a session token."""
    user_service = UserService(db)

    user = await run_operation(
        "user login",
        lambda: user_service.login(request),
        username=request.username,
    )
    return json_response(user)


@router.post("/logout", response_model=LogoutResponse, responses=PROBLEM_RESPONSES)
async def logout(
    request: UserIdRequest,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """Log a user out."""
    user_service = UserService(db)

    response = await run_operation(
        "user logout",
        lambda: user_service.logout(request),
        user_id=request.user_id,
    )
    return json_response(response)


@router.post("/profile", response_model=User, responses=PROBLEM_RESPONSES)
async def get_profile(
    request: UserIdRequest,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """Read a user's profile."""
    user_service = UserService(db)

    user = await run_operation(
        "profile retrieval",
        lambda: user_service.get_profile(request),
        user_id=request.user_id,
    )
    return json_response(user)


@router.post("/update", response_model=AuthenticatedUser, responses=PROBLEM_RESPONSES)
async def update_profile(
    request: UpdateProfileRequest,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """
    Update a user's profile.

    A fresh token is returned when the username or email changes.
    """
    user_service = UserService(db)

    user = await run_operation(
        "profile update",
        lambda: user_service.update_profile(request),
        user_id=request.user_id,
    )
    return json_response(user)


@router.post("/list", response_model=list[User], responses=PROBLEM_RESPONSES)
async def list_users(
    db: AsyncSession = DatabaseSession,
    caller: CallerIdentity = Caller,
) -> JSONResponse:
    """List all users. Admin only."""
    user_service = UserService(db)

    users = await run_operation(
        "user listing",
        lambda: user_service.list_users(caller),
        caller_id=caller.user_id,
    )
    return json_response(users)


@router.post("/remove", response_model=RemoveUserResponse, responses=PROBLEM_RESPONSES)
async def remove_user(
    request: UserIdRequest,
    db: AsyncSession = DatabaseSession,
    caller: CallerIdentity = Caller,
) -> JSONResponse:
    """Remove a user. Admin only; their bookings remain in the ledger."""
    user_service = UserService(db)

    response = await run_operation(
        "user removal",
        lambda: user_service.remove_user(caller, request),
        user_id=request.user_id,
    )
    return json_response(response)
