"""Wishlist service for saved (user, package) pairs."""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import storage_transaction
from ..core.exceptions import ConflictError, NotFoundError
from ..core.identifiers import parse_id
from ..models.package import TravelPackage
from ..models.wishlist import WishlistItem
from ..schemas.wishlist import ListWishlistRequest, WishlistEntry, WishlistRequest
from .catalog_service import CatalogService, to_package_schema
from .user_service import UserService

logger = logging.getLogger(__name__)


def to_wishlist_entry(item: WishlistItem, package: TravelPackage) -> WishlistEntry:
    """Convert a wishlist item and its package to the response schema."""
    return WishlistEntry(
        id=str(item.id),
        user_id=str(item.user_id),
        package=to_package_schema(package),
        created_at=item.created_at,
    )


class WishlistService:
    """Service for wishlist operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.catalog_service = CatalogService(db)
        self.user_service = UserService(db)

    async def get_item(self, user_id: UUID, package_id: UUID) -> Optional[WishlistItem]:
        """
        Get the wishlist item for a (user, package) pair.

        Returns:
            Wishlist item if found, None otherwise
        """
        stmt = select(WishlistItem).where(
            WishlistItem.user_id == user_id,
            WishlistItem.package_id == package_id,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def add(self, request: WishlistRequest) -> WishlistEntry:
        """
        Save a package to a user's wishlist.

        Raises:
            NotFoundError: If the user or package does not exist
            ConflictError: If the package is already on the wishlist
        """
        user = await self.user_service.get_user_by_id_or_raise(request.user_id)
        package = await self.catalog_service.get_package_by_id_or_raise(request.package_id)

        existing = await self.get_item(user.id, package.id)
        if existing:
            logger.warning(
                "Wishlist add failed - package already saved",
                extra={"user_id": request.user_id, "package_id": request.package_id}
            )
            raise ConflictError(
                detail="Package already in wishlist",
                conflicting_resource={"id": str(existing.id), "package_id": request.package_id}
            )

        item = WishlistItem(user_id=user.id, package_id=package.id)
        async with storage_transaction(self.db, "add_to_wishlist"):
            self.db.add(item)
            try:
                await self.db.commit()
            except IntegrityError as e:
                # Lost a race against a concurrent add of the same pair
                raise ConflictError(detail="Package already in wishlist") from e
        await self.db.refresh(item)

        logger.info(
            "Package added to wishlist",
            extra={"wishlist_item_id": str(item.id), "user_id": request.user_id, "package_id": request.package_id}
        )
        return to_wishlist_entry(item, package)

    async def remove(self, request: WishlistRequest) -> WishlistEntry:
        """
        Remove a package from a user's wishlist.

        Raises:
            NotFoundError: If the pair is not on the wishlist
        """
        user_id = parse_id(request.user_id, "user")
        package_id = parse_id(request.package_id, "package")

        item = await self.get_item(user_id, package_id)
        if not item:
            raise NotFoundError(
                resource_type="wishlist item",
                detail="Package not found in wishlist"
            )
        package = await self.catalog_service.get_package_by_id_or_raise(request.package_id)
        entry = to_wishlist_entry(item, package)

        async with storage_transaction(self.db, "remove_from_wishlist"):
            await self.db.delete(item)
            await self.db.commit()

        logger.info(
            "Package removed from wishlist",
            extra={"user_id": request.user_id, "package_id": request.package_id}
        )
        return entry

    async def list(self, request: ListWishlistRequest) -> list[WishlistEntry]:
        """List a user's wishlist in insertion order, skipping packages that no longer exist."""
        user_id = parse_id(request.user_id, "user")

        stmt = (
            select(WishlistItem)
            .where(WishlistItem.user_id == user_id)
            .order_by(WishlistItem.created_at, WishlistItem.id)
        )
        result = await self.db.execute(stmt)
        items = list(result.scalars().all())

        packages = await self.catalog_service.get_packages_by_ids(item.package_id for item in items)
        return [
            to_wishlist_entry(item, packages[item.package_id])
            for item in items
            if item.package_id in packages
        ]
