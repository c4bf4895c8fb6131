"""Package catalog service: package records and their availability counter."""

import logging
from decimal import Decimal
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import storage_transaction
from ..core.exceptions import NotFoundError
from ..core.identifiers import parse_id
from ..core.security import CallerIdentity, ensure_admin
from ..models.package import TravelPackage
from ..models.wishlist import WishlistItem
from ..schemas.package import (
    CreatePackageRequest,
    DeletePackageResponse,
    EditPackageRequest,
    GetPackageRequest,
    Package,
    PackageIdRequest,
    SearchPackagesRequest,
)
from .currency_service import CurrencyRateService, convert_price

logger = logging.getLogger(__name__)


def escape_like(text: str) -> str:
    """Make user text match literally inside a LIKE pattern."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def to_package_schema(package: TravelPackage, price: Optional[Decimal] = None) -> Package:
    """Convert a package entity to its response schema, optionally with a display price."""
    return Package(
        id=str(package.id),
        title=package.title,
        description=package.description,
        price=float(package.price if price is None else price),
        duration=package.duration,
        destination=package.destination,
        category=str(package.category),
        availability=package.availability,
        created_at=package.created_at,
    )


class CatalogService:
    """Service owning travel packages.

    Availability is only changed through the conditional single-statement
    deltas below (admin edits aside). The delta methods do not commit; the
    caller owns the transaction.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_package_by_id(self, package_id: UUID, fresh: bool = False) -> Optional[TravelPackage]:
        """
        Get package by ID.

        With ``fresh`` an already loaded instance is overwritten with the
        stored row, e.g. to read availability after a conditional delta.

        Returns:
            Package if found, None otherwise
        """
        stmt = select(TravelPackage).where(TravelPackage.id == package_id)
        if fresh:
            stmt = stmt.execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_package_by_id_or_raise(self, package_id: str) -> TravelPackage:
        """
        Get package by its opaque ID or raise NotFoundError.

        Raises:
            NotFoundError: If the ID is malformed or no package has it
        """
        package = await self.get_package_by_id(parse_id(package_id, "package"))
        if not package:
            logger.warning(
                "Package not found",
                extra={"package_id": package_id}
            )
            raise NotFoundError(resource_type="package", resource_id=package_id)
        return package

    async def get_packages_by_ids(self, package_ids: Iterable[UUID]) -> dict[UUID, TravelPackage]:
        """Resolve many package references in one query. Missing IDs are absent from the result."""
        ids = set(package_ids)
        if not ids:
            return {}

        stmt = select(TravelPackage).where(TravelPackage.id.in_(ids))
        result = await self.db.execute(stmt)
        return {package.id: package for package in result.scalars().all()}

    async def list_packages(self) -> list[TravelPackage]:
        """List all packages, newest first."""
        stmt = select(TravelPackage).order_by(TravelPackage.created_at.desc(), TravelPackage.id)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def search_packages(self, request: SearchPackagesRequest) -> list[TravelPackage]:
        """
        Search packages by free text and structured filters.

        The free text matches title or destination case-insensitively. The
        category filter is case-insensitive too.
        """
        stmt = select(TravelPackage)

        if request.search:
            pattern = f"%{escape_like(request.search.strip())}%"
            stmt = stmt.where(
                or_(
                    TravelPackage.title.ilike(pattern, escape="\\"),
                    TravelPackage.destination.ilike(pattern, escape="\\"),
                )
            )

        package_filter = request.filter
        if package_filter:
            if package_filter.min_price is not None:
                stmt = stmt.where(TravelPackage.price >= package_filter.min_price)
            if package_filter.max_price is not None:
                stmt = stmt.where(TravelPackage.price <= package_filter.max_price)
            if package_filter.category:
                stmt = stmt.where(func.lower(TravelPackage.category) == package_filter.category.lower())
            if package_filter.availability is not None:
                stmt = stmt.where(TravelPackage.availability >= package_filter.availability)

        stmt = stmt.order_by(TravelPackage.created_at.desc(), TravelPackage.id)
        result = await self.db.execute(stmt)
        packages = list(result.scalars().all())

        logger.debug(
            "Package search completed",
            extra={"search": request.search, "results": len(packages)}
        )
        return packages

    async def get_package(
        self,
        request: GetPackageRequest,
        rate_service: Optional[CurrencyRateService] = None,
    ) -> Package:
        """
        Read one package, converting its price for display when a currency is given.

        Raises:
            NotFoundError: If the package does not exist
            ValidationError: If the currency code is unknown
            UpstreamError: If the currency-rate lookup fails
        """
        package = await self.get_package_by_id_or_raise(request.package_id)

        if not request.currency:
            return to_package_schema(package)

        rate_service = rate_service or CurrencyRateService()
        rate = await rate_service.get_rate(request.currency)
        return to_package_schema(package, price=convert_price(package.price, rate))

    async def add_package(self, caller: CallerIdentity, request: CreatePackageRequest) -> TravelPackage:
        """
        Add a package to the catalog.

        Raises:
            AuthorizationError: If the caller is not an admin
        """
        ensure_admin(caller, "add packages")

        package = TravelPackage(
            title=request.title,
            description=request.description,
            price=request.price,
            duration=request.duration,
            destination=request.destination,
            category=request.category.value,
            availability=request.availability,
        )

        async with storage_transaction(self.db, "add_package"):
            self.db.add(package)
            await self.db.commit()
            await self.db.refresh(package)

        logger.info(
            "Package added",
            extra={
                "package_id": str(package.id),
                "title": package.title,
                "availability": package.availability
            }
        )
        return package

    async def edit_package(self, caller: CallerIdentity, request: EditPackageRequest) -> TravelPackage:
        """
        Replace the editable fields of a package.

        Raises:
            AuthorizationError: If the caller is not an admin
            NotFoundError: If the package does not exist
        """
        ensure_admin(caller, "edit packages")
        package = await self.get_package_by_id_or_raise(request.package_id)

        package.title = request.title
        package.description = request.description
        package.price = request.price
        package.duration = request.duration
        package.destination = request.destination
        package.category = request.category.value
        package.availability = request.availability

        async with storage_transaction(self.db, "edit_package"):
            await self.db.commit()
            await self.db.refresh(package)

        logger.info(
            "Package edited",
            extra={"package_id": request.package_id, "availability": package.availability}
        )
        return package

    async def delete_package(self, caller: CallerIdentity, request: PackageIdRequest) -> DeletePackageResponse:
        """
        Delete a package and every wishlist entry saving it.

        Bookings keep their reference and degrade to a placeholder on read.

        Raises:
            AuthorizationError: If the caller is not an admin
            NotFoundError: If the package does not exist
        """
        ensure_admin(caller, "delete packages")
        package = await self.get_package_by_id_or_raise(request.package_id)

        async with storage_transaction(self.db, "delete_package"):
            await self.db.execute(
                delete(WishlistItem).where(WishlistItem.package_id == package.id)
            )
            await self.db.delete(package)
            await self.db.commit()

        logger.info("Package deleted", extra={"package_id": request.package_id})
        return DeletePackageResponse(
            id=request.package_id,
            success=True,
            message="Package deleted successfully",
        )

    async def decrement_if_positive(self, package_id: UUID) -> bool:
        """
        Take one unit of availability if any is left.

        Returns:
            True if a unit was taken, False if the package is sold out or gone
        """
        stmt = (
            update(TravelPackage)
            .where(TravelPackage.id == package_id, TravelPackage.availability > 0)
            .values(availability=TravelPackage.availability - 1)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def increment_availability(self, package_id: UUID, amount: int = 1) -> bool:
        """
        Give back units of availability.

        Returns:
            True if the package exists and was updated
        """
        stmt = (
            update(TravelPackage)
            .where(TravelPackage.id == package_id)
            .values(availability=TravelPackage.availability + amount)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def restock_if_low(self, package_id: UUID, threshold: int, amount: int) -> bool:
        """
        Add ``amount`` units when availability is at or below ``threshold``.

        Returns:
            True if the restock was applied
        """
        stmt = (
            update(TravelPackage)
            .where(TravelPackage.id == package_id, TravelPackage.availability <= threshold)
            .values(availability=TravelPackage.availability + amount)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1
