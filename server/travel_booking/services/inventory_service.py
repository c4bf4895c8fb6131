"""
Inventory coordinator: gates reservations on package availability.

Every availability change is a single conditional statement executed by the
database, and each reservation or cancellation commits its availability
delta together with its ledger write. Concurrent requests therefore cannot
overbook a package or restore a cancelled slot twice.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

import structlog
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.database import storage_transaction
from ..core.events import BOOKING_CANCELLED, BOOKING_CREATED, EventBus
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..core.identifiers import parse_id
from ..core.observability import metrics_collector
from ..models.booking import Booking, BookingStatus
from ..schemas.booking import BookingView, CancelBookingRequest, ReserveRequest
from .catalog_service import CatalogService
from .ledger_service import LedgerService, to_booking_view
from .user_service import UserService

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RestockPolicy:
    """Low-stock replenishment applied before each reservation.

    When enabled, a package whose availability is at or below ``threshold``
    gains ``amount`` units in the same transaction as the reservation.
    """

    enabled: bool = True
    threshold: int = 3
    amount: int = 3

    @classmethod
    def from_settings(cls) -> "RestockPolicy":
        return cls(
            enabled=settings.restock_enabled,
            threshold=settings.restock_threshold,
            amount=settings.restock_amount,
        )


NO_RESTOCK = RestockPolicy(enabled=False)


class SoldOutError(ConflictError):
    """Exception when a package has no availability left."""

    def __init__(self, package_id: str):
        super().__init__(
            detail=f"Package {package_id} is sold out",
            conflicting_resource={"package_id": package_id, "availability": 0},
            code="SOLD_OUT",
        )


def parse_reservation_date(value: str) -> datetime:
    """
    Parse an ISO 8601 date or date-time. Naive values are taken as UTC.

    Raises:
        ValidationError: If the value is empty or not ISO 8601
    """
    text = value.strip()
    if not text:
        raise ValidationError(
            detail="Reservation date must not be empty",
            errors={"date": "Date must not be empty"}
        )

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError as e:
        raise ValidationError(
            detail=f"Invalid reservation date '{value}'",
            errors={"date": "Date must be an ISO 8601 date or date-time"}
        ) from e

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class InventoryService:
    """Coordinates availability deltas with ledger writes and booking events."""

    def __init__(
        self,
        db: AsyncSession,
        event_bus: EventBus,
        restock_policy: Optional[RestockPolicy] = None,
    ):
        self.db = db
        self.event_bus = event_bus
        self.restock_policy = restock_policy or RestockPolicy.from_settings()
        self.catalog_service = CatalogService(db)
        self.ledger_service = LedgerService(db)
        self.user_service = UserService(db)

    async def reserve(self, request: ReserveRequest) -> BookingView:
        """
        Reserve one unit of a package for a user.

        Raises:
            ValidationError: If the date is not ISO 8601 (checked before any storage access)
            NotFoundError: If the user or package does not exist
            SoldOutError: If the package has no availability left
            UpstreamError: If storage fails; nothing is applied
        """
        date = parse_reservation_date(request.date)
        user = await self.user_service.get_user_by_id_or_raise(request.user_id)
        package = await self.catalog_service.get_package_by_id_or_raise(request.package_id)

        log = logger.bind(package_id=request.package_id, user_id=request.user_id)

        async with storage_transaction(self.db, "reserve"):
            restocked = False
            if self.restock_policy.enabled:
                restocked = await self.catalog_service.restock_if_low(
                    package.id,
                    threshold=self.restock_policy.threshold,
                    amount=self.restock_policy.amount,
                )

            if not await self.catalog_service.decrement_if_positive(package.id):
                if await self.catalog_service.get_package_by_id(package.id) is None:
                    log.warning("reservation_rejected_package_deleted")
                    raise NotFoundError(resource_type="package", resource_id=request.package_id)
                metrics_collector.record_reservation_rejected("sold_out")
                log.warning("reservation_rejected_sold_out")
                raise SoldOutError(request.package_id)

            booking = Booking(
                user_id=user.id,
                package_id=package.id,
                date=date,
                status=BookingStatus.CONFIRMED.value,
            )
            self.db.add(booking)
            await self.db.commit()

        await self.db.refresh(booking)
        # The package may have been deleted since the commit
        package = await self.catalog_service.get_package_by_id(package.id, fresh=True)

        if restocked:
            metrics_collector.record_restock()
            log.info(
                "package_restocked",
                threshold=self.restock_policy.threshold,
                amount=self.restock_policy.amount,
            )
        metrics_collector.record_booking_created()

        view = to_booking_view(booking, package, user)
        self.event_bus.publish(BOOKING_CREATED, view.model_dump(mode="json"))

        log.info(
            "booking_created",
            booking_id=view.id,
            remaining_availability=package.availability if package is not None else None,
        )
        return view

    async def cancel(self, request: CancelBookingRequest) -> BookingView:
        """
        Cancel a user's booking and give its unit back to the package.

        Cancelling an already-cancelled booking returns it unchanged without
        touching availability or publishing an event.

        Raises:
            NotFoundError: If no booking with that ID belongs to the user
            UpstreamError: If storage fails; nothing is applied
        """
        booking_id = parse_id(request.booking_id, "booking")
        user_id = parse_id(request.user_id, "user")

        log = logger.bind(booking_id=request.booking_id, user_id=request.user_id)

        async with storage_transaction(self.db, "cancel"):
            flipped = await self._flip_to_cancelled(booking_id, user_id)

            if not flipped:
                # Release the write transaction before inspecting why nothing changed
                await self.db.rollback()
                return await self._already_cancelled_view(booking_id, user_id, log)

            booking = await self.ledger_service.get_booking_by_id(booking_id)
            restored = await self.catalog_service.increment_availability(booking.package_id)
            await self.db.commit()

        await self.db.refresh(booking)
        package = await self.catalog_service.get_package_by_id(booking.package_id, fresh=True)
        user = await self.user_service.get_user_by_id(user_id)

        metrics_collector.record_booking_cancelled()

        view = to_booking_view(booking, package, user)
        self.event_bus.publish(BOOKING_CANCELLED, view.model_dump(mode="json"))

        log.info(
            "booking_cancelled",
            package_id=str(booking.package_id),
            availability_restored=restored,
        )
        return view

    async def _flip_to_cancelled(self, booking_id: UUID, user_id: UUID) -> bool:
        stmt = (
            update(Booking)
            .where(
                Booking.id == booking_id,
                Booking.user_id == user_id,
                Booking.status != BookingStatus.CANCELLED.value,
            )
            .values(status=BookingStatus.CANCELLED.value)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def _already_cancelled_view(self, booking_id: UUID, user_id: UUID, log) -> BookingView:
        booking = await self.ledger_service.get_booking_by_id(booking_id)
        if booking is None or booking.user_id != user_id:
            log.warning("cancel_rejected_not_found")
            raise NotFoundError(resource_type="booking", resource_id=str(booking_id))

        log.info("cancel_ignored_already_cancelled")
        views = await self.ledger_service.build_views([booking])
        return views[0]
