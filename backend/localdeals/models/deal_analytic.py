"""Per-day view and click totals for a deal."""

import datetime
import uuid

from sqlalchemy import Date, ForeignKey, Index, Integer
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from localdeals.database import Base


class DealAnalytic(Base):
    __tablename__ = "deal_analytics"
    __table_args__ = (
        # One row per deal per UTC day; daily counters are incremented in place.
        Index("idx_deal_analytics_deal_date", "deal_id", "date", unique=True),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    deal_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("deals.id", ondelete="CASCADE"), nullable=False
    )
    date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    views: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    clicks: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    deal = relationship("Deal", back_populates="analytics")
