"""Travel package model definition."""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, DateTime, Integer, Numeric, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database import Base


class PackageCategory(str, Enum):
    """Package category enumeration."""
    ADVENTURE = "Adventure"
    ROMANTIC = "Romantic"
    FAMILY = "Family"
    CULTURAL = "Cultural"
    OTHER = "Other"


class TravelPackage(Base):
    """Bookable travel offering with a finite availability count."""

    __tablename__ = "travel_packages"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Package details
    title: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    duration: Mapped[str] = mapped_column(String(100), nullable=False)
    destination: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    category: Mapped[str] = mapped_column(String(20), nullable=False, index=True)

    # Only ever changed through atomic deltas, except for admin edits
    availability: Mapped[int] = mapped_column(Integer, nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now(),
        onupdate=func.now()
    )

    # Constraints
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_package_price_non_negative"),
        CheckConstraint("availability >= 0", name="ck_package_availability_non_negative"),
        CheckConstraint("length(title) > 0", name="ck_package_title_not_empty"),
        CheckConstraint(
            "category IN ('Adventure', 'Romantic', 'Family', 'Cultural', 'Other')",
            name="ck_package_category_valid"
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<TravelPackage(id={self.id}, title='{self.title}', "
            f"price={self.price}, availability={self.availability})>"
        )
