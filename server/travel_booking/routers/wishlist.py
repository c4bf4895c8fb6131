"""Wishlist router."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import DatabaseSession
from ..schemas.common import PROBLEM_RESPONSES
from ..schemas.wishlist import ListWishlistRequest, WishlistEntry, WishlistRequest
from ..services.wishlist_service import WishlistService
from .common import json_response, run_operation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/wishlist", tags=["wishlist"])


@router.post("/add", response_model=WishlistEntry, responses=PROBLEM_RESPONSES)
async def add_to_wishlist(
    request: WishlistRequest,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """Save a package to the user's wishlist."""
    wishlist_service = WishlistService(db)

    entry = await run_operation(
        "wishlist add",
        lambda: wishlist_service.add(request),
        user_id=request.user_id,
        package_id=request.package_id,
    )
    return json_response(entry)


@router.post("/remove", response_model=WishlistEntry, responses=PROBLEM_RESPONSES)
async def remove_from_wishlist(
    request: WishlistRequest,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """Remove a package from the user's wishlist."""
    wishlist_service = WishlistService(db)

    entry = await run_operation(
        "wishlist removal",
        lambda: wishlist_service.remove(request),
        user_id=request.user_id,
        package_id=request.package_id,
    )
    return json_response(entry)


@router.post("/list", response_model=list[WishlistEntry], responses=PROBLEM_RESPONSES)
async def list_wishlist(
    request: ListWishlistRequest,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """List the user's wishlist in the order packages were saved."""
    wishlist_service = WishlistService(db)

    entries = await run_operation(
        "wishlist listing",
        lambda: wishlist_service.list(request),
        user_id=request.user_id,
    )
    return json_response(entries)
