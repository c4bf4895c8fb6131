"""Service layer package."""

from .analytics_service import AnalyticsService
from .catalog_service import CatalogService
from .currency_service import CurrencyRateService
from .inventory_service import InventoryService, RestockPolicy, SoldOutError
from .ledger_service import LedgerService
from .user_service import UserService
from .wishlist_service import WishlistService

__all__ = [
    "AnalyticsService",
    "CatalogService",
    "CurrencyRateService",
    "InventoryService",
    "LedgerService",
    "RestockPolicy",
    "SoldOutError",
    "UserService",
    "WishlistService",
]
