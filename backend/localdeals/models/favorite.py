"""Favorite model: a user's saved restaurant or deal."""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from localdeals.database import Base, UTCDateTime


class Favorite(Base):
    __tablename__ = "favorites"
    __table_args__ = (
        CheckConstraint(
            "(type = 'restaurant' AND restaurant_id IS NOT NULL AND deal_id IS NULL)"
            " OR (type = 'deal' AND deal_id IS NOT NULL AND restaurant_id IS NULL)",
            name="ck_favorites_single_target",
        ),
        Index("idx_favorites_user_id", "user_id"),
        Index(
            "unique_user_restaurant",
            "user_id",
            "restaurant_id",
            unique=True,
            postgresql_where=text("type = 'restaurant'"),
            sqlite_where=text("type = 'restaurant'"),
        ),
        Index(
            "unique_user_deal",
            "user_id",
            "deal_id",
            unique=True,
            postgresql_where=text("type = 'deal'"),
            sqlite_where=text("type = 'deal'"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    restaurant_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("restaurants.id", ondelete="CASCADE")
    )
    deal_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("deals.id", ondelete="CASCADE")
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, server_default=func.now()
    )

    user = relationship("User", back_populates="favorites")
    restaurant = relationship("Restaurant", back_populates="favorites")
    deal = relationship("Deal", back_populates="favorites")

    @property
    def item_id(self) -> uuid.UUID:
        return self.restaurant_id if self.type == "restaurant" else self.deal_id
