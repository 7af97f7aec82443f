"""Deal (time-boxed discount) model."""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from localdeals.database import Base, UTCDateTime


class Deal(Base):
    __tablename__ = "deals"
    __table_args__ = (
        Index("idx_deals_restaurant_id", "restaurant_id"),
        Index("idx_deals_active_end_time", "is_active", "end_time"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    restaurant_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    category: Mapped[str | None] = mapped_column(String(50))
    image_url: Mapped[str | None] = mapped_column(Text)
    original_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    deal_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    start_time: Mapped[datetime] = mapped_column(
        UTCDateTime, server_default=func.now()
    )
    end_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    max_redemptions: Mapped[int | None] = mapped_column(Integer)
    current_redemptions: Mapped[int] = mapped_column(Integer, default=0)
    view_count: Mapped[int] = mapped_column(Integer, default=0)
    click_count: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, server_default=func.now(), onupdate=func.now()
    )

    restaurant = relationship("Restaurant", back_populates="deals")
    favorites = relationship("Favorite", back_populates="deal", cascade="all, delete-orphan")
    analytics = relationship(
        "DealAnalytic", back_populates="deal", cascade="all, delete-orphan"
    )
