"""Reservation ledger read side: bookings rendered as display views."""

import logging
from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.identifiers import parse_id
from ..core.security import CallerIdentity, ensure_admin
from ..models.booking import Booking, BookingStatus
from ..models.package import TravelPackage
from ..models.user import User
from ..schemas.booking import BookingView, ListBookingsRequest
from ..schemas.package import Package
from .catalog_service import CatalogService, to_package_schema

logger = logging.getLogger(__name__)

DELETED_PACKAGE_ID = "deleted"
UNKNOWN_USER_ID = "unknown"
UNKNOWN_USERNAME = "Unknown User"


def deleted_package_placeholder(created_at: datetime) -> Package:
    """Package snapshot shown for bookings whose package no longer exists."""
    return Package(
        id=DELETED_PACKAGE_ID,
        title="Package Deleted",
        description="This package is no longer available",
        price=0,
        duration="N/A",
        destination="N/A",
        category="N/A",
        availability=0,
        created_at=created_at,
    )


def to_booking_view(
    booking: Booking,
    package: Optional[TravelPackage],
    user: Optional[User],
) -> BookingView:
    """
    Render a booking with its package and owner.

    A missing package yields the deleted-package placeholder and forces the
    status to CANCELLED. A missing user yields the unknown-user placeholder.
    """
    if package is None:
        package_view = deleted_package_placeholder(booking.created_at)
        status = BookingStatus.CANCELLED
    else:
        package_view = to_package_schema(package)
        status = BookingStatus(booking.status)

    if user is None:
        user_id, username = UNKNOWN_USER_ID, UNKNOWN_USERNAME
    else:
        user_id, username = str(user.id), user.username

    return BookingView(
        id=str(booking.id),
        user_id=user_id,
        username=username,
        package=package_view,
        date=booking.date,
        status=status,
        created_at=booking.created_at,
    )


class LedgerService:
    """Service for reading the booking ledger."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.catalog_service = CatalogService(db)

    async def get_booking_by_id(self, booking_id: UUID) -> Optional[Booking]:
        """
        Get booking by ID.

        Returns:
            Booking if found, None otherwise
        """
        stmt = select(Booking).where(Booking.id == booking_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_bookings(self, user_id: Optional[UUID] = None) -> list[Booking]:
        """Scan the ledger in creation order, optionally for one user."""
        stmt = select(Booking)
        if user_id is not None:
            stmt = stmt.where(Booking.user_id == user_id)
        stmt = stmt.order_by(Booking.created_at, Booking.id)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_users_by_ids(self, user_ids: Iterable[UUID]) -> dict[UUID, User]:
        """Resolve many user references in one query."""
        ids = set(user_ids)
        if not ids:
            return {}

        stmt = select(User).where(User.id.in_(ids))
        result = await self.db.execute(stmt)
        return {user.id: user for user in result.scalars().all()}

    async def build_views(self, bookings: list[Booking]) -> list[BookingView]:
        """Render bookings, resolving their package and user references in batch."""
        packages = await self.catalog_service.get_packages_by_ids(b.package_id for b in bookings)
        users = await self.get_users_by_ids(b.user_id for b in bookings)

        views = []
        for booking in bookings:
            package = packages.get(booking.package_id)
            if package is None:
                logger.debug(
                    "Booking references a deleted package",
                    extra={"booking_id": str(booking.id), "package_id": str(booking.package_id)}
                )
            views.append(to_booking_view(booking, package, users.get(booking.user_id)))
        return views

    async def list_for_user(self, request: ListBookingsRequest) -> list[BookingView]:
        """
        List a user's bookings as display views.

        A user without bookings gets an empty list.

        Raises:
            NotFoundError: If the user ID is malformed
        """
        user_id = parse_id(request.user_id, "user")
        bookings = await self.get_bookings(user_id)
        return await self.build_views(bookings)

    async def list_all(self, caller: CallerIdentity) -> list[BookingView]:
        """
        List every booking in the ledger.

        Raises:
            AuthorizationError: If the caller is not an admin
        """
        ensure_admin(caller, "list all bookings")

        bookings = await self.get_bookings()
        logger.info(
            "Listed all bookings",
            extra={"caller_id": caller.user_id, "bookings": len(bookings)}
        )
        return await self.build_views(bookings)
