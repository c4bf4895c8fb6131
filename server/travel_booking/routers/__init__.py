"""FastAPI routers package."""

from .admin import router as admin_router
from .booking import router as booking_router
from .health import router as health_router
from .metrics import router as metrics_router
from .package import router as package_router
from .user import router as user_router
from .wishlist import router as wishlist_router

__all__ = [
    "admin_router",
    "booking_router",
    "health_router",
    "metrics_router",
    "package_router",
    "user_router",
    "wishlist_router",
]
