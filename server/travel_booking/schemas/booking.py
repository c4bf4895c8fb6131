"""Booking-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from ..models.booking import BookingStatus
from .package import Package


class ReserveRequest(BaseModel):
    """Request schema for reserving a package slot."""

    package_id: str = Field(..., description="Package to reserve")
    user_id: str = Field(..., description="User making the reservation")
    date: str = Field(..., description="Reservation date (ISO 8601)")


class CancelBookingRequest(BaseModel):
    """Request schema for cancelling a booking."""

    booking_id: str = Field(..., description="Booking to cancel")
    user_id: str = Field(..., description="Owner of the booking")


class ListBookingsRequest(BaseModel):
    """Request schema for listing a user's bookings."""

    user_id: str = Field(..., min_length=1, description="User whose bookings to list")


class BookingView(BaseModel):
    """Display-ready booking with package and user snapshots."""

    id: str = Field(..., description="Unique booking ID")
    user_id: str = Field(..., description="Owner user ID")
    username: str = Field(..., description="Owner username")
    package: Package = Field(..., description="Snapshot of the booked package")
    date: datetime = Field(..., description="Reservation date (ISO 8601)")
    status: BookingStatus = Field(..., description="Booking status")
    created_at: datetime = Field(..., description="Booking creation time (ISO 8601)")
