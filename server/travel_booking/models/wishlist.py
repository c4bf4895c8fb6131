"""Wishlist model definition."""

from datetime import datetime, timezone
from uuid import UUID, uuid4

from sqlalchemy import DateTime, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database import Base


class WishlistItem(Base):
    """A package saved by a user."""

    __tablename__ = "wishlist_items"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # References
    user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)
    package_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
        index=True
    )

    # A package may appear at most once per user's wishlist
    __table_args__ = (
        UniqueConstraint("user_id", "package_id", name="uq_wishlist_user_package"),
    )

    def __repr__(self) -> str:
        return (
            f"<WishlistItem(id={self.id}, user_id={self.user_id}, "
            f"package_id={self.package_id}, created_at={self.created_at})>"
        )
