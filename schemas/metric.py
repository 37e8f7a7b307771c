from __future__ import annotations

from datetime import date as date_type
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from schemas.ingestion import EntryExitType


def _validate_day(value: str) -> str:
    try:
        return date_type.fromisoformat((value or "").strip()).isoformat()
    except ValueError:
        raise ValueError("date must be YYYY-MM-DD")


class MetricFields(BaseModel):
    otc_index: Optional[int] = None
    explosion_index: Optional[int] = None
    schelling_point: Optional[float] = None
    entry_exit_type: Optional[EntryExitType] = None
    entry_exit_day: Optional[int] = Field(default=None, ge=0)
    near_threshold: Optional[bool] = None


class MetricCreate(MetricFields):
    coin_id: int
    date: str

    @field_validator("date")
    @classmethod
    def validate_date(cls, value: str) -> str:
        return _validate_day(value)


class MetricUpdate(MetricFields):
    pass


class MetricCoinOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    symbol: str
    name: str


class MetricOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    coin_id: int
    date: str
    otc_index: Optional[int] = None
    explosion_index: Optional[int] = None
    schelling_point: Optional[float] = None
    entry_exit_type: Optional[str] = None
    entry_exit_day: Optional[int] = None
    near_threshold: bool = False


class MetricWithCoinOut(MetricOut):
    coin: Optional[MetricCoinOut] = None
