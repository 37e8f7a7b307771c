# models/trending_coin.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from database import Base


class TrendingCoin(Base):
    """Denormalized "hot coin" snapshot, independent from DailyMetric."""

    __tablename__ = "trending_coins"
    __table_args__ = (
        UniqueConstraint("date", "symbol", name="uq_trending_coins_date_symbol"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    date: Mapped[str] = mapped_column(String(10), index=True, nullable=False)
    symbol: Mapped[str] = mapped_column(String(32), nullable=False)

    otc_index: Mapped[int | None] = mapped_column(Integer, nullable=True)
    explosion_index: Mapped[int | None] = mapped_column(Integer, nullable=True)
    entry_exit_type: Mapped[str | None] = mapped_column(String(16), nullable=True)
    entry_exit_day: Mapped[int | None] = mapped_column(Integer, nullable=True)
    schelling_point: Mapped[float | None] = mapped_column(Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.date,
            "symbol": self.symbol,
            "otc_index": self.otc_index,
            "explosion_index": self.explosion_index,
            "entry_exit_type": self.entry_exit_type,
            "entry_exit_day": self.entry_exit_day,
            "schelling_point": self.schelling_point,
        }
