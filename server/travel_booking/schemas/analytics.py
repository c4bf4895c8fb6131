"""Analytics Pydantic schemas."""

from pydantic import BaseModel, Field

from .package import Package


class AdminAnalytics(BaseModel):
    """Point-in-time revenue and popularity snapshot of the booking ledger."""

    total_revenue: float = Field(..., ge=0, description="Sum of package prices over confirmed bookings")
    total_bookings: int = Field(..., ge=0, description="Number of bookings in the ledger")
    most_popular_packages: list[Package] = Field(..., description="Top packages by booking count")
    confirmed_bookings_count: int = Field(..., ge=0, description="Number of confirmed bookings")
    cancelled_bookings_count: int = Field(..., ge=0, description="Number of cancelled bookings")
