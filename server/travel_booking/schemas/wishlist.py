"""Wishlist-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from .package import Package


class WishlistRequest(BaseModel):
    """Request schema for adding or removing a wishlist entry."""

    user_id: str = Field(..., description="Wishlist owner")
    package_id: str = Field(..., description="Saved package")


class ListWishlistRequest(BaseModel):
    """Request schema for listing a user's wishlist."""

    user_id: str = Field(..., description="Wishlist owner")


class WishlistEntry(BaseModel):
    """Wishlist entry with embedded package snapshot."""

    id: str = Field(..., description="Unique wishlist entry ID")
    user_id: str = Field(..., description="Wishlist owner")
    package: Package = Field(..., description="Snapshot of the saved package")
    created_at: datetime = Field(..., description="Time the package was saved (ISO 8601)")
