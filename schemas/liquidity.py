from __future__ import annotations

from datetime import date as date_type
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


class LiquidityUpsert(BaseModel):
    date: str
    btc_fund_change: Optional[float] = None
    eth_fund_change: Optional[float] = None
    sol_fund_change: Optional[float] = None
    total_market_fund_change: Optional[float] = None
    comments: Optional[str] = None

    @field_validator("date")
    @classmethod
    def validate_date(cls, value: str) -> str:
        try:
            return date_type.fromisoformat((value or "").strip()).isoformat()
        except ValueError:
            raise ValueError("date must be YYYY-MM-DD")


class LiquidityOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    date: str
    btc_fund_change: Optional[float] = None
    eth_fund_change: Optional[float] = None
    sol_fund_change: Optional[float] = None
    total_market_fund_change: Optional[float] = None
    comments: Optional[str] = None
