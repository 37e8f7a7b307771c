from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from database import get_db
from models.user import User
from schemas.liquidity import LiquidityOut, LiquidityUpsert
from services.auth import require_admin
from services.errors import NotFoundError
from services.liquidity_service import delete_liquidity, get_liquidity, list_liquidity, save_liquidity

router = APIRouter()


@router.get("", response_model=List[LiquidityOut])
def get_liquidity_history(date: Optional[str] = Query(None), db: Session = Depends(get_db)):
    return list_liquidity(db, day=date)


@router.get("/{day}", response_model=LiquidityOut)
def get_liquidity_for_day(day: str, db: Session = Depends(get_db)):
    try:
        return get_liquidity(db, day)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message)


@router.post("", response_model=LiquidityOut)
def upsert_liquidity_overview(
    payload: LiquidityUpsert,
    response: Response,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    overview, created = save_liquidity(db, payload.date, payload.model_dump(exclude={"date"}))
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return overview


@router.delete("/{day}")
def delete_liquidity_overview(
    day: str,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    try:
        delete_liquidity(db, day)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message)
    return {"message": "Liquidity data deleted successfully"}
