# models/liquidity_overview.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from database import Base


class LiquidityOverview(Base):
    """Daily fund flow summary. Fund changes are in units of 100M USD."""

    __tablename__ = "liquidity_overviews"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    date: Mapped[str] = mapped_column(String(10), unique=True, index=True, nullable=False)

    btc_fund_change: Mapped[float | None] = mapped_column(Float, nullable=True)
    eth_fund_change: Mapped[float | None] = mapped_column(Float, nullable=True)
    sol_fund_change: Mapped[float | None] = mapped_column(Float, nullable=True)
    total_market_fund_change: Mapped[float | None] = mapped_column(Float, nullable=True)
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)

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
            "btc_fund_change": self.btc_fund_change,
            "eth_fund_change": self.eth_fund_change,
            "sol_fund_change": self.sol_fund_change,
            "total_market_fund_change": self.total_market_fund_change,
            "comments": self.comments,
        }
