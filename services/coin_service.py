from __future__ import annotations

from typing import List, Optional

from sqlalchemy.orm import Session

from models.coin import Coin
from models.daily_metric import DailyMetric
from services.errors import ConflictError, NotFoundError


def list_coins(db: Session) -> List[Coin]:
    return db.query(Coin).order_by(Coin.symbol.asc()).all()


def get_coin_by_symbol(db: Session, symbol: str) -> Coin:
    coin = db.query(Coin).filter(Coin.symbol == (symbol or "").strip().upper()).first()
    if not coin:
        raise NotFoundError("Coin not found")
    return coin


def get_coin(db: Session, coin_id: int) -> Coin:
    coin = db.get(Coin, coin_id)
    if not coin:
        raise NotFoundError("Coin not found")
    return coin


def list_coin_metrics(
    db: Session,
    symbol: str,
    *,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> List[DailyMetric]:
    coin = get_coin_by_symbol(db, symbol)
    query = db.query(DailyMetric).filter(DailyMetric.coin_id == coin.id)
    if start_date:
        query = query.filter(DailyMetric.date >= start_date)
    if end_date:
        query = query.filter(DailyMetric.date <= end_date)
    return query.order_by(DailyMetric.date.asc()).all()


def create_coin(
    db: Session,
    *,
    symbol: str,
    name: str,
    current_price: Optional[float] = None,
    logo_url: Optional[str] = None,
) -> Coin:
    symbol = symbol.strip().upper()
    if db.query(Coin).filter(Coin.symbol == symbol).first():
        raise ConflictError("Coin already exists")

    coin = Coin(
        symbol=symbol,
        name=name,
        current_price=current_price if current_price is not None else 0,
        logo_url=logo_url,
    )
    db.add(coin)
    db.commit()
    db.refresh(coin)
    return coin


def update_coin(
    db: Session,
    coin_id: int,
    *,
    name: Optional[str] = None,
    current_price: Optional[float] = None,
    logo_url: Optional[str] = None,
) -> Coin:
    coin = get_coin(db, coin_id)
    if name:
        coin.name = name
    if current_price is not None:
        coin.current_price = current_price
    if logo_url:
        coin.logo_url = logo_url
    db.commit()
    db.refresh(coin)
    return coin


def delete_coin(db: Session, coin_id: int) -> None:
    coin = get_coin(db, coin_id)
    db.delete(coin)
    db.commit()
