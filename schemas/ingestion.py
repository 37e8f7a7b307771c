from __future__ import annotations

from datetime import date as date_type
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

EntryExitType = Literal["entry", "exit", "neutral"]

_ENTRY_EXIT_ALIASES = {
    "entry": "entry",
    "enter": "entry",
    "exit": "exit",
    "neutral": "neutral",
    "none": "neutral",
    "": "neutral",
}


def _normalize_symbol(value: Any) -> str:
    symbol = str(value or "").strip().upper()
    if not symbol or len(symbol) > 32:
        raise ValueError("symbol must be 1-32 characters")
    return symbol


def _normalize_entry_exit(value: Any) -> str:
    if value is None:
        return "neutral"
    key = str(value).strip().lower()
    if key not in _ENTRY_EXIT_ALIASES:
        raise ValueError(f"entryExitType must be one of entry/exit/neutral, got {value!r}")
    return _ENTRY_EXIT_ALIASES[key]


class _ExtractedModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# ─── Batch envelope ────────────────────────────────────────────────
# Only the envelope is checked before any write. Items stay loose dicts
# here and are validated one by one by the reconciler.

class ExtractedBatch(_ExtractedModel):
    date: str
    coins: list[Any]
    liquidity: Optional[Any] = None
    trending_coins: Optional[Any] = Field(default=None, alias="trendingCoins")
    daily_reminder: Optional[Any] = Field(default=None, alias="dailyReminder")

    @field_validator("date")
    @classmethod
    def validate_date(cls, value: str) -> str:
        value = (value or "").strip()
        if not value:
            raise ValueError("date is required")
        return value


# ─── Items ─────────────────────────────────────────────────────────

class ExtractedCoin(_ExtractedModel):
    symbol: str
    otc_index: Optional[int] = Field(default=None, alias="otcIndex")
    explosion_index: Optional[int] = Field(default=None, alias="explosionIndex")
    schelling_point: Optional[float] = Field(default=None, alias="schellingPoint")
    entry_exit_type: EntryExitType = Field(default="neutral", alias="entryExitType")
    entry_exit_day: Optional[int] = Field(default=None, alias="entryExitDay", ge=0)
    near_threshold: bool = Field(default=False, alias="nearThreshold")

    @field_validator("symbol", mode="before")
    @classmethod
    def validate_symbol(cls, value: Any) -> str:
        return _normalize_symbol(value)

    @field_validator("entry_exit_type", mode="before")
    @classmethod
    def validate_entry_exit(cls, value: Any) -> str:
        return _normalize_entry_exit(value)

    @field_validator("near_threshold", mode="before")
    @classmethod
    def coerce_near_threshold(cls, value: Any) -> bool:
        if isinstance(value, str):
            return value.strip().lower() in ("true", "1", "yes", "y")
        return bool(value)

    def metric_fields(self) -> dict[str, Any]:
        return {
            "otc_index": self.otc_index,
            "explosion_index": self.explosion_index,
            "schelling_point": self.schelling_point,
            "entry_exit_type": self.entry_exit_type,
            "entry_exit_day": self.entry_exit_day,
            "near_threshold": self.near_threshold,
        }


class ExtractedLiquidity(_ExtractedModel):
    btc_fund_change: Optional[float] = Field(default=None, alias="btcFundChange")
    eth_fund_change: Optional[float] = Field(default=None, alias="ethFundChange")
    sol_fund_change: Optional[float] = Field(default=None, alias="solFundChange")
    total_market_fund_change: Optional[float] = Field(default=None, alias="totalMarketFundChange")
    comments: Optional[str] = None

    def overview_fields(self) -> dict[str, Any]:
        return self.model_dump(by_alias=False)


class ExtractedTrendingCoin(_ExtractedModel):
    symbol: str
    otc_index: Optional[int] = Field(default=None, alias="otcIndex")
    explosion_index: Optional[int] = Field(default=None, alias="explosionIndex")
    entry_exit_type: EntryExitType = Field(default="neutral", alias="entryExitType")
    entry_exit_day: Optional[int] = Field(default=None, alias="entryExitDay", ge=0)
    schelling_point: Optional[float] = Field(default=None, alias="schellingPoint")

    @field_validator("symbol", mode="before")
    @classmethod
    def validate_symbol(cls, value: Any) -> str:
        return _normalize_symbol(value)

    @field_validator("entry_exit_type", mode="before")
    @classmethod
    def validate_entry_exit(cls, value: Any) -> str:
        return _normalize_entry_exit(value)

    def snapshot_fields(self) -> dict[str, Any]:
        return self.model_dump(by_alias=False, exclude={"symbol"})


# ─── Request / response ────────────────────────────────────────────

class RawDataInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    raw_data: str = Field(alias="rawData")
    date: Optional[str] = None

    @field_validator("raw_data")
    @classmethod
    def validate_raw_data(cls, value: str) -> str:
        if not (value or "").strip():
            raise ValueError("rawData is required")
        return value

    @field_validator("date")
    @classmethod
    def validate_date(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        try:
            return date_type.fromisoformat(value.strip()).isoformat()
        except ValueError:
            raise ValueError("date must be YYYY-MM-DD")


class ProcessedSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    coins: int
    liquidity_updated: bool = Field(serialization_alias="liquidityUpdated")
    trending_coins: int = Field(serialization_alias="trendingCoins")


class IngestionResponse(BaseModel):
    success: bool
    date: str
    processed: ProcessedSummary
