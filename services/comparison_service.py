# services/comparison_service.py
"""
Latest-day snapshot with day-over-day comparison.

The comparison is always against the calendar day before the latest date.
If nothing was ingested on that day the metric has no previous data; we do
not search further back.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from models.daily_metric import DailyMetric
from models.liquidity_overview import LiquidityOverview
from models.trending_coin import TrendingCoin
from services.date_normalizer import previous_calendar_day
from services.errors import NotFoundError

logger = logging.getLogger(__name__)

COMPARED_FIELDS = ("otc_index", "explosion_index")


def percent_change(current: Optional[float], previous: Optional[float]) -> Optional[float]:
    """
    (current - previous) / previous * 100.

    previous == 0 and current != 0 gives +/-inf (sign of current);
    both 0, or either missing, gives None.
    """
    if current is None or previous is None:
        return None
    if previous == 0:
        if current == 0:
            return None
        return math.copysign(math.inf, current)
    return (current - previous) / previous * 100


def describe_change(current: Optional[float], previous: Optional[float]) -> Dict[str, Any]:
    """JSON-safe form of percent_change: infinities become `unbounded`."""
    change = percent_change(current, previous)
    if change is None:
        return {"percent": None, "unbounded": False, "direction": None}

    if change > 0:
        direction = "up"
    elif change < 0:
        direction = "down"
    else:
        direction = "flat"

    if math.isinf(change):
        return {"percent": None, "unbounded": True, "direction": direction}
    return {"percent": round(change, 4), "unbounded": False, "direction": direction}


def get_latest_date(db: Session) -> Optional[str]:
    return db.query(func.max(DailyMetric.date)).scalar()


def _previous_day_map(db: Session, day: Optional[str]) -> Dict[int, DailyMetric]:
    if day is None:
        return {}
    rows = db.query(DailyMetric).filter(DailyMetric.date == day).all()
    return {row.coin_id: row for row in rows}


def enrich_metrics(current_rows: List[DailyMetric], previous_by_coin: Dict[int, DailyMetric]) -> List[Dict[str, Any]]:
    enriched = []
    for row in current_rows:
        previous = previous_by_coin.get(row.coin_id)
        item = row.to_dict()
        item["coin"] = row.coin.to_dict() if row.coin else None

        if previous is not None:
            item["previous_day_data"] = {f: getattr(previous, f) for f in COMPARED_FIELDS}
            item["changes"] = {
                f: describe_change(getattr(row, f), getattr(previous, f)) for f in COMPARED_FIELDS
            }
        else:
            item["previous_day_data"] = None
            item["changes"] = None
        enriched.append(item)
    return enriched


def build_latest_snapshot(db: Session) -> Dict[str, Any]:
    latest = get_latest_date(db)
    if not latest:
        raise NotFoundError("No metrics data found")

    previous = previous_calendar_day(latest)
    logger.info("latest snapshot date=%s previous=%s", latest, previous)

    current_rows = (
        db.query(DailyMetric)
        .options(joinedload(DailyMetric.coin))
        .filter(DailyMetric.date == latest)
        .order_by(DailyMetric.id.asc())
        .all()
    )
    previous_by_coin = _previous_day_map(db, previous)

    liquidity = db.query(LiquidityOverview).filter(LiquidityOverview.date == latest).first()
    trending = (
        db.query(TrendingCoin)
        .filter(TrendingCoin.date == latest)
        .order_by(TrendingCoin.id.asc())
        .all()
    )

    return {
        "date": latest,
        "metrics": enrich_metrics(current_rows, previous_by_coin),
        "liquidity": liquidity.to_dict() if liquidity else None,
        "trendingCoins": [t.to_dict() for t in trending],
    }
