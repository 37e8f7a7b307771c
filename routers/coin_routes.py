from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from database import get_db
from models.user import User
from schemas.coin import CoinCreate, CoinDetailOut, CoinOut, CoinUpdate
from schemas.metric import MetricOut
from services.auth import require_admin
from services.coin_service import (
    create_coin,
    delete_coin,
    get_coin_by_symbol,
    list_coin_metrics,
    list_coins,
    update_coin,
)
from services.errors import ConflictError, NotFoundError

router = APIRouter()


@router.get("", response_model=List[CoinOut])
def get_coins(db: Session = Depends(get_db)):
    return list_coins(db)


@router.get("/{symbol}", response_model=CoinDetailOut)
def get_coin(symbol: str, db: Session = Depends(get_db)):
    try:
        return get_coin_by_symbol(db, symbol)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message)


@router.get("/{symbol}/metrics", response_model=List[MetricOut])
def get_coin_metrics(
    symbol: str,
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    try:
        return list_coin_metrics(db, symbol, start_date=startDate, end_date=endDate)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message)


@router.post("", response_model=CoinOut, status_code=status.HTTP_201_CREATED)
def create_new_coin(
    payload: CoinCreate,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    try:
        return create_coin(
            db,
            symbol=payload.symbol,
            name=payload.name,
            current_price=payload.current_price,
            logo_url=payload.logo_url,
        )
    except ConflictError as exc:
        raise HTTPException(status_code=409, detail=exc.message)


@router.put("/{coin_id}", response_model=CoinOut)
def update_existing_coin(
    coin_id: int,
    payload: CoinUpdate,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    try:
        return update_coin(
            db,
            coin_id,
            name=payload.name,
            current_price=payload.current_price,
            logo_url=payload.logo_url,
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message)


@router.delete("/{coin_id}")
def delete_existing_coin(
    coin_id: int,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    try:
        delete_coin(db, coin_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message)
    return {"message": "Coin deleted successfully"}
