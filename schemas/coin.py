from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


def _normalize_symbol(value: str) -> str:
    symbol = (value or "").strip().upper()
    if not symbol or len(symbol) > 32:
        raise ValueError("symbol must be 1-32 characters")
    return symbol


class CoinCreate(BaseModel):
    symbol: str
    name: str
    current_price: Optional[float] = None
    logo_url: Optional[str] = None

    @field_validator("symbol")
    @classmethod
    def validate_symbol(cls, value: str) -> str:
        return _normalize_symbol(value)

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        name = (value or "").strip()
        if not name:
            raise ValueError("name is required")
        return name


class CoinUpdate(BaseModel):
    name: Optional[str] = None
    current_price: Optional[float] = None
    logo_url: Optional[str] = None


class CoinOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    symbol: str
    name: str
    current_price: Optional[float] = None
    logo_url: Optional[str] = None


class CoinDetailOut(CoinOut):
    created_at: datetime
    updated_at: datetime
