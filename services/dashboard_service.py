from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, joinedload

from models.coin import Coin
from models.daily_metric import DailyMetric
from models.liquidity_overview import LiquidityOverview
from models.trending_coin import TrendingCoin
from services.date_normalizer import previous_calendar_day
from services.errors import NotFoundError, ValidationError
from services.strategy_signals import classify

logger = logging.getLogger(__name__)

TREND_METRICS = ("otc_index", "explosion_index", "schelling_point")
HIGHLIGHT_LIMIT = 5


def _metric_summary(metric: Optional[DailyMetric]) -> Optional[Dict[str, Any]]:
    if metric is None:
        return None
    return {
        "otc_index": metric.otc_index,
        "explosion_index": metric.explosion_index,
        "schelling_point": metric.schelling_point,
        "entry_exit_type": metric.entry_exit_type,
        "entry_exit_day": metric.entry_exit_day,
        "near_threshold": bool(metric.near_threshold),
    }


def get_dashboard(db: Session, day: Optional[str] = None) -> Dict[str, Any]:
    day = day or date.today().isoformat()

    by_coin = {m.coin_id: m for m in db.query(DailyMetric).filter(DailyMetric.date == day).all()}
    previous_day = previous_calendar_day(day)
    previous_by_coin = (
        {m.coin_id: m for m in db.query(DailyMetric).filter(DailyMetric.date == previous_day).all()}
        if previous_day else {}
    )

    coins: List[Dict[str, Any]] = []
    for coin in db.query(Coin).order_by(Coin.symbol.asc()).all():
        item = coin.to_dict()
        item["metrics"] = _metric_summary(by_coin.get(coin.id))
        previous = previous_by_coin.get(coin.id)
        item["signals"] = (
            classify(item["metrics"], previous.explosion_index if previous else None)
            if item["metrics"] else []
        )
        coins.append(item)

    liquidity = db.query(LiquidityOverview).filter(LiquidityOverview.date == day).first()
    trending = (
        db.query(TrendingCoin)
        .filter(TrendingCoin.date == day)
        .order_by(TrendingCoin.explosion_index.desc())
        .all()
    )

    entry = [c for c in coins if c["metrics"] and c["metrics"]["entry_exit_type"] == "entry"]
    exit_ = [c for c in coins if c["metrics"] and c["metrics"]["entry_exit_type"] == "exit"]
    near = [c for c in coins if c["metrics"] and c["metrics"]["near_threshold"]]

    return {
        "date": day,
        "coins": coins,
        "liquidity": liquidity.to_dict() if liquidity else None,
        "trendingCoins": [t.to_dict() for t in trending],
        "statistics": {
            "total_coins": len(coins),
            "entry_coins": len(entry),
            "exit_coins": len(exit_),
            "near_threshold_coins": len(near),
        },
        "highlights": {
            "entry_coins": entry[:HIGHLIGHT_LIMIT],
            "exit_coins": exit_[:HIGHLIGHT_LIMIT],
            "near_threshold_coins": near,
        },
        "signals": {
            "entry_candidates": [c["symbol"] for c in coins if "entry" in c["signals"]],
            "exit_short_candidates": [c["symbol"] for c in coins if "exit_short" in c["signals"]],
        },
    }


def get_trends(
    db: Session,
    *,
    symbol: Optional[str] = None,
    metric: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    if metric and metric not in TREND_METRICS:
        raise ValidationError("Invalid metric name", details=list(TREND_METRICS))

    query = db.query(DailyMetric).options(joinedload(DailyMetric.coin))
    if symbol:
        coin = db.query(Coin).filter(Coin.symbol == symbol.strip().upper()).first()
        if not coin:
            raise NotFoundError("Coin not found")
        query = query.filter(DailyMetric.coin_id == coin.id)
    if start_date:
        query = query.filter(DailyMetric.date >= start_date)
    if end_date:
        query = query.filter(DailyMetric.date <= end_date)
    query = query.order_by(DailyMetric.date.asc(), DailyMetric.id.asc())
    if limit:
        query = query.limit(limit)

    trends: Dict[str, Dict[str, Any]] = {}
    for row in query.all():
        coin_symbol = row.coin.symbol
        series = trends.get(coin_symbol)
        if series is None:
            series = {"symbol": coin_symbol, "name": row.coin.name}
            if metric:
                series["data"] = []
            else:
                series.update({name: [] for name in TREND_METRICS})
            trends[coin_symbol] = series

        if metric:
            series["data"].append({"date": row.date, "value": getattr(row, metric)})
        else:
            for name in TREND_METRICS:
                series[name].append({"date": row.date, "value": getattr(row, name)})

    return list(trends.values())
