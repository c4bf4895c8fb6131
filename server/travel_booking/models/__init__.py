"""Models module exporting all database models."""

from .booking import Booking, BookingStatus
from .package import PackageCategory, TravelPackage
from .user import User
from .wishlist import WishlistItem

__all__ = [
    # Catalog
    "TravelPackage",
    "PackageCategory",

    # Ledger
    "Booking",
    "BookingStatus",

    # Wishlist
    "WishlistItem",

    # Users
    "User",
]
