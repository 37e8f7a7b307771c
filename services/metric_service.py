from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session, joinedload

from models.coin import Coin
from models.daily_metric import DailyMetric
from services.errors import NotFoundError
from services.ingestion_service import upsert_daily_metric


def list_metrics(db: Session, *, day: Optional[str] = None) -> List[DailyMetric]:
    query = db.query(DailyMetric).options(joinedload(DailyMetric.coin))
    if day:
        query = query.filter(DailyMetric.date == day)
    return query.order_by(DailyMetric.date.desc(), DailyMetric.id.asc()).all()


def get_metric(db: Session, metric_id: int) -> DailyMetric:
    metric = db.get(DailyMetric, metric_id)
    if not metric:
        raise NotFoundError("Metric not found")
    return metric


def save_metric(db: Session, coin_id: int, day: str, fields: Dict[str, Any]) -> Tuple[DailyMetric, bool]:
    """Upsert by (coin_id, date); only the given fields are written. Returns (metric, created)."""
    if not db.get(Coin, coin_id):
        raise NotFoundError("Coin not found")

    payload = dict(fields)
    if "near_threshold" in payload:
        payload["near_threshold"] = bool(payload["near_threshold"])
    metric, created = upsert_daily_metric(db, coin_id, day, payload)
    db.commit()
    db.refresh(metric)
    return metric, created


def update_metric(db: Session, metric_id: int, fields: Dict[str, Any]) -> DailyMetric:
    """Partial update: only fields that were sent are changed."""
    metric = get_metric(db, metric_id)
    for key, value in fields.items():
        setattr(metric, key, value)
    db.commit()
    db.refresh(metric)
    return metric


def delete_metric(db: Session, metric_id: int) -> None:
    metric = get_metric(db, metric_id)
    db.delete(metric)
    db.commit()
