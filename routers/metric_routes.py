from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from database import get_db
from models.user import User
from schemas.metric import MetricCreate, MetricOut, MetricUpdate, MetricWithCoinOut
from services.auth import require_admin
from services.errors import NotFoundError
from services.metric_service import delete_metric, list_metrics, save_metric, update_metric

router = APIRouter()


@router.get("", response_model=List[MetricWithCoinOut])
def get_metrics(date: Optional[str] = Query(None), db: Session = Depends(get_db)):
    return list_metrics(db, day=date)


@router.post("", response_model=MetricOut)
def add_metric(
    payload: MetricCreate,
    response: Response,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    fields = payload.model_dump(exclude={"coin_id", "date"}, exclude_unset=True)
    try:
        metric, created = save_metric(db, payload.coin_id, payload.date, fields)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return metric


@router.put("/{metric_id}", response_model=MetricOut)
def update_existing_metric(
    metric_id: int,
    payload: MetricUpdate,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    try:
        return update_metric(db, metric_id, payload.model_dump(exclude_unset=True))
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message)


@router.delete("/{metric_id}")
def delete_existing_metric(
    metric_id: int,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    try:
        delete_metric(db, metric_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message)
    return {"message": "Metric deleted successfully"}
