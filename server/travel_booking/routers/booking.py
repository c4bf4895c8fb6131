"""Booking router for reservation operations."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import BookingEvents, Caller, DatabaseSession
from ..core.events import EventBus
from ..core.security import CallerIdentity
from ..schemas.booking import BookingView, CancelBookingRequest, ListBookingsRequest, ReserveRequest
from ..schemas.common import PROBLEM_RESPONSES
from ..services.inventory_service import InventoryService, RestockPolicy
from ..services.ledger_service import LedgerService
from .common import json_response, run_operation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/booking", tags=["booking"])


def get_restock_policy() -> RestockPolicy:
    """Restock policy dependency, read from settings."""
    return RestockPolicy.from_settings()


RESTOCK_POLICY_DEPENDENCY = Depends(get_restock_policy)


@router.post("/reserve", response_model=BookingView, responses=PROBLEM_RESPONSES)
async def reserve(
    request: ReserveRequest,
    db: AsyncSession = DatabaseSession,
    event_bus: EventBus = BookingEvents,
    restock_policy: RestockPolicy = RESTOCK_POLICY_DEPENDENCY,
) -> JSONResponse:
    """
    Reserve one slot of a travel package.

    Fails with SOLD_OUT when the package has no availability left.
    """
    inventory_service = InventoryService(db, event_bus, restock_policy)

    view = await run_operation(
        "booking reservation",
        lambda: inventory_service.reserve(request),
        package_id=request.package_id,
        user_id=request.user_id,
    )
    return json_response(view)


@router.post("/cancel", response_model=BookingView, responses=PROBLEM_RESPONSES)
async def cancel(
    request: CancelBookingRequest,
    db: AsyncSession = DatabaseSession,
    event_bus: EventBus = BookingEvents,
) -> JSONResponse:
    """
    Cancel a booking owned by the user.

    Cancelling an already-cancelled booking returns it unchanged.
    """
    inventory_service = InventoryService(db, event_bus)

    view = await run_operation(
        "booking cancellation",
        lambda: inventory_service.cancel(request),
        booking_id=request.booking_id,
        user_id=request.user_id,
    )
    return json_response(view)


@router.post("/list", response_model=list[BookingView], responses=PROBLEM_RESPONSES)
async def list_bookings(
    request: ListBookingsRequest,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """List a user's bookings, oldest first."""
    ledger_service = LedgerService(db)

    views = await run_operation(
        "booking listing",
        lambda: ledger_service.list_for_user(request),
        user_id=request.user_id,
    )
    return json_response(views)


@router.post("/list_all", response_model=list[BookingView], responses=PROBLEM_RESPONSES)
async def list_all_bookings(
    db: AsyncSession = DatabaseSession,
    caller: CallerIdentity = Caller,
) -> JSONResponse:
    """List every booking. Admin only."""
    ledger_service = LedgerService(db)

    views = await run_operation(
        "booking listing (all)",
        lambda: ledger_service.list_all(caller),
        caller_id=caller.user_id,
    )
    return json_response(views)
