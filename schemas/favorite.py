from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FavoriteCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    device_id: str = Field(alias="deviceId")
    symbol: str

    @field_validator("device_id")
    @classmethod
    def validate_device_id(cls, value: str) -> str:
        device_id = (value or "").strip()
        if not device_id or len(device_id) > 128:
            raise ValueError("deviceId must be 1-128 characters")
        return device_id

    @field_validator("symbol")
    @classmethod
    def validate_symbol(cls, value: str) -> str:
        symbol = (value or "").strip().upper()
        if not symbol or len(symbol) > 32:
            raise ValueError("symbol must be 1-32 characters")
        return symbol


class FavoriteOut(BaseModel):
    message: str
    symbol: str
