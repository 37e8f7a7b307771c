# models/daily_metric.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database import Base


class DailyMetric(Base):
    __tablename__ = "daily_metrics"
    __table_args__ = (
        UniqueConstraint("coin_id", "date", name="uq_daily_metrics_coin_date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    coin_id: Mapped[int] = mapped_column(ForeignKey("coins.id", ondelete="CASCADE"), index=True, nullable=False)

    # plain "YYYY-MM-DD", never a DATE column
    date: Mapped[str] = mapped_column(String(10), index=True, nullable=False)

    otc_index: Mapped[int | None] = mapped_column(Integer, nullable=True)
    explosion_index: Mapped[int | None] = mapped_column(Integer, nullable=True)
    schelling_point: Mapped[float | None] = mapped_column(Float, nullable=True)
    entry_exit_type: Mapped[str | None] = mapped_column(String(16), nullable=True)
    entry_exit_day: Mapped[int | None] = mapped_column(Integer, nullable=True)
    near_threshold: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    coin = relationship("Coin", back_populates="metrics")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "coin_id": self.coin_id,
            "date": self.date,
            "otc_index": self.otc_index,
            "explosion_index": self.explosion_index,
            "schelling_point": self.schelling_point,
            "entry_exit_type": self.entry_exit_type,
            "entry_exit_day": self.entry_exit_day,
            "near_threshold": bool(self.near_threshold),
        }
