from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from database import get_db
from services.dashboard_service import get_dashboard, get_trends
from services.errors import NotFoundError, ValidationError

router = APIRouter()


@router.get("")
def dashboard(date: Optional[str] = Query(None), db: Session = Depends(get_db)):
    return get_dashboard(db, date)


@router.get("/trends")
def trends(
    symbol: Optional[str] = Query(None),
    metric: Optional[str] = Query(None),
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
):
    try:
        return get_trends(
            db,
            symbol=symbol,
            metric=metric,
            start_date=startDate,
            end_date=endDate,
            limit=limit,
        )
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.message)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message)
