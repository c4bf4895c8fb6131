"""Revenue and popularity analytics over the booking ledger."""

import logging
from collections import Counter
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.security import CallerIdentity, ensure_admin
from ..models.booking import BookingStatus
from ..schemas.analytics import AdminAnalytics
from .catalog_service import to_package_schema
from .ledger_service import LedgerService

logger = logging.getLogger(__name__)

MOST_POPULAR_LIMIT = 5


class AnalyticsService:
    """Read-only aggregation. Results are an unsynchronized snapshot of the ledger."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.ledger_service = LedgerService(db)

    async def get_admin_analytics(self, caller: CallerIdentity) -> AdminAnalytics:
        """
        Compute revenue, booking counts and the most popular packages.

        Revenue sums package prices over CONFIRMED bookings whose package
        still exists. Popularity counts bookings of every status, skipping
        deleted packages; ties keep first-appearance order in the ledger.

        Raises:
            AuthorizationError: If the caller is not an admin
        """
        ensure_admin(caller, "view analytics")

        bookings = await self.ledger_service.get_bookings()
        packages = await self.ledger_service.catalog_service.get_packages_by_ids(
            b.package_id for b in bookings
        )

        total_revenue = Decimal("0")
        confirmed = 0
        cancelled = 0
        popularity: Counter = Counter()

        for booking in bookings:
            package = packages.get(booking.package_id)

            if booking.status == BookingStatus.CONFIRMED:
                confirmed += 1
                if package is not None:
                    total_revenue += package.price
            elif booking.status == BookingStatus.CANCELLED:
                cancelled += 1

            if package is not None:
                popularity[booking.package_id] += 1

        # Counter.most_common is stable for equal counts (insertion order)
        most_popular = [
            to_package_schema(packages[package_id])
            for package_id, _ in popularity.most_common(MOST_POPULAR_LIMIT)
        ]

        logger.info(
            "Admin analytics computed",
            extra={
                "total_bookings": len(bookings),
                "confirmed": confirmed,
                "cancelled": cancelled,
                "total_revenue": str(total_revenue)
            }
        )

        return AdminAnalytics(
            total_revenue=float(total_revenue),
            total_bookings=len(bookings),
            most_popular_packages=most_popular,
            confirmed_bookings_count=confirmed,
            cancelled_bookings_count=cancelled,
        )
