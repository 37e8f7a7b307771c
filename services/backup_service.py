# services/backup_service.py
"""
Full-database export/import plus read-only inspection helpers.

Import runs in one transaction with a SAVEPOINT per row, so one bad row is
skipped without discarding the rest; any other failure rolls back the
whole import.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from models.coin import Coin
from models.daily_metric import DailyMetric
from models.liquidity_overview import LiquidityOverview
from models.trending_coin import TrendingCoin
from services.errors import ValidationError

logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"
HISTORY_SYMBOLS = ("BTC", "ETH", "BNB", "SOL")
HISTORY_LIMIT = 30


def distinct_dates(db: Session, limit: Optional[int] = None) -> List[str]:
    query = db.query(DailyMetric.date).group_by(DailyMetric.date).order_by(DailyMetric.date.desc())
    if limit:
        query = query.limit(limit)
    return [row.date for row in query.all()]


def _metric_with_coin(metric: DailyMetric) -> Dict[str, Any]:
    item = metric.to_dict()
    item["coin"] = {"symbol": metric.coin.symbol, "name": metric.coin.name} if metric.coin else None
    return item


# ============================================================================
# Export
# ============================================================================

def export_all(db: Session) -> Dict[str, Any]:
    coins = db.query(Coin).order_by(Coin.id.asc()).all()
    metrics = (
        db.query(DailyMetric)
        .options(joinedload(DailyMetric.coin))
        .order_by(DailyMetric.date.desc(), DailyMetric.id.asc())
        .all()
    )
    liquidity = db.query(LiquidityOverview).order_by(LiquidityOverview.date.desc()).all()
    trending = db.query(TrendingCoin).order_by(TrendingCoin.date.desc(), TrendingCoin.id.asc()).all()
    dates = distinct_dates(db)
    latest = dates[0] if dates else None

    latest_data = None
    if latest:
        latest_rows = [m for m in metrics if m.date == latest]
        latest_liquidity = next((l for l in liquidity if l.date == latest), None)
        latest_data = {
            "date": latest,
            "coins": [
                {
                    **m.coin.to_dict(),
                    "otcIndex": m.otc_index,
                    "explosionIndex": m.explosion_index,
                    "schellingPoint": m.schelling_point,
                    "entryExitType": m.entry_exit_type,
                    "entryExitDay": m.entry_exit_day,
                    "nearThreshold": bool(m.near_threshold),
                }
                for m in latest_rows
            ],
            "liquidity": latest_liquidity.to_dict() if latest_liquidity else None,
            "trendingCoins": [t.to_dict() for t in trending if t.date == latest],
        }

    historical: Dict[str, List[Dict[str, Any]]] = {}
    for symbol in HISTORY_SYMBOLS:
        coin = next((c for c in coins if c.symbol == symbol), None)
        if not coin:
            continue
        rows = (
            db.query(DailyMetric)
            .filter(DailyMetric.coin_id == coin.id)
            .order_by(DailyMetric.date.asc())
            .limit(HISTORY_LIMIT)
            .all()
        )
        if rows:
            historical[symbol] = [
                {k: v for k, v in r.to_dict().items() if k not in ("id", "coin_id", "near_threshold")}
                for r in rows
            ]

    logger.info(
        "export: coins=%d metrics=%d liquidity=%d trending=%d",
        len(coins), len(metrics), len(liquidity), len(trending),
    )
    return {
        "metadata": {
            "exportDate": datetime.now(timezone.utc).isoformat(),
            "appVersion": APP_VERSION,
            "dataLatest": latest,
            "availableDates": dates,
        },
        "coins": [c.to_dict() for c in coins],
        "metrics": [_metric_with_coin(m) for m in metrics],
        "liquidity": [l.to_dict() for l in liquidity],
        "trendingCoins": [t.to_dict() for t in trending],
        "latestData": latest_data,
        "historicalData": historical,
    }


# ============================================================================
# Import
# ============================================================================

def _or_default(value: Any, default: Any) -> Any:
    return default if value is None else value


def _import_row(db: Session, label: str, fn) -> bool:
    savepoint = db.begin_nested()
    try:
        fn()
        savepoint.commit()
        return True
    except Exception:  # skip just this row
        savepoint.rollback()
        logger.exception("import: skipping %s", label)
        return False


def import_database(db: Session, dump: Any) -> Dict[str, int]:
    if not isinstance(dump, dict) or not dump.get("metadata") or "coins" not in dump or "metrics" not in dump:
        raise ValidationError("Invalid database dump format. Required fields missing.")

    meta = dump["metadata"]
    logger.info(
        "import: exportDate=%s appVersion=%s",
        meta.get("exportDate") if isinstance(meta, dict) else None,
        meta.get("appVersion") if isinstance(meta, dict) else None,
    )
    summary = {"coinsImported": 0, "metricsImported": 0, "liquidityImported": 0, "trendingImported": 0}

    try:
        for raw in dump.get("coins") or []:
            if not isinstance(raw, dict):
                continue
            symbol = str(raw.get("symbol") or "").strip().upper()
            if not symbol:
                logger.warning("import: skipping coin without symbol")
                continue

            def write_coin(raw=raw, symbol=symbol):
                coin = db.query(Coin).filter(Coin.symbol == symbol).first()
                if coin is None:
                    coin = Coin(symbol=symbol)
                    db.add(coin)
                coin.name = raw.get("name") or symbol
                coin.current_price = _or_default(raw.get("current_price"), 0)
                coin.logo_url = raw.get("logo_url")
                db.flush()

            if _import_row(db, f"coin {symbol}", write_coin):
                summary["coinsImported"] += 1

        symbol_to_id = {c.symbol.upper(): c.id for c in db.query(Coin.id, Coin.symbol).all()}

        for raw in dump.get("metrics") or []:
            if not isinstance(raw, dict):
                continue
            coin_id = None
            coin_ref = raw.get("coin") or {}
            if coin_ref.get("symbol"):
                coin_id = symbol_to_id.get(str(coin_ref["symbol"]).upper())
            if coin_id is None and raw.get("coin_id") in symbol_to_id.values():
                coin_id = raw["coin_id"]
            if coin_id is None or not raw.get("date"):
                logger.warning("import: skipping metric date=%s, unknown coin", raw.get("date"))
                continue

            def write_metric(raw=raw, coin_id=coin_id):
                fields = {
                    "otc_index": _or_default(raw.get("otc_index"), 0),
                    "explosion_index": _or_default(raw.get("explosion_index"), 0),
                    "schelling_point": raw.get("schelling_point"),
                    "entry_exit_type": raw.get("entry_exit_type") or "neutral",
                    "entry_exit_day": _or_default(raw.get("entry_exit_day"), 0),
                    "near_threshold": bool(raw.get("near_threshold")),
                }
                metric = (
                    db.query(DailyMetric)
                    .filter(DailyMetric.coin_id == coin_id, DailyMetric.date == raw["date"])
                    .first()
                )
                if metric is None:
                    db.add(DailyMetric(coin_id=coin_id, date=raw["date"], **fields))
                else:
                    for key, value in fields.items():
                        setattr(metric, key, value)
                db.flush()

            if _import_row(db, f"metric {coin_id}/{raw.get('date')}", write_metric):
                summary["metricsImported"] += 1

        for raw in dump.get("liquidity") or []:
            if not isinstance(raw, dict):
                continue
            if not raw.get("date"):
                continue

            def write_liquidity(raw=raw):
                overview = db.query(LiquidityOverview).filter(LiquidityOverview.date == raw["date"]).first()
                if overview is None:
                    overview = LiquidityOverview(date=raw["date"])
                    db.add(overview)
                for key in ("btc_fund_change", "eth_fund_change", "sol_fund_change",
                            "total_market_fund_change", "comments"):
                    setattr(overview, key, raw.get(key))
                db.flush()

            if _import_row(db, f"liquidity {raw.get('date')}", write_liquidity):
                summary["liquidityImported"] += 1

        trending_rows = dump.get("trendingCoins") or (dump.get("latestData") or {}).get("trendingCoins") or []
        for raw in trending_rows:
            if not isinstance(raw, dict):
                continue
            symbol = str(raw.get("symbol") or "").strip().upper()
            if not symbol or not raw.get("date"):
                logger.warning("import: skipping trending coin without symbol or date")
                continue

            def write_trending(raw=raw, symbol=symbol):
                trending = (
                    db.query(TrendingCoin)
                    .filter(TrendingCoin.date == raw["date"], TrendingCoin.symbol == symbol)
                    .first()
                )
                if trending is None:
                    trending = TrendingCoin(date=raw["date"], symbol=symbol)
                    db.add(trending)
                trending.otc_index = _or_default(raw.get("otc_index"), 0)
                trending.explosion_index = _or_default(raw.get("explosion_index"), 0)
                trending.entry_exit_type = raw.get("entry_exit_type") or "neutral"
                trending.entry_exit_day = _or_default(raw.get("entry_exit_day"), 0)
                trending.schelling_point = raw.get("schelling_point")
                db.flush()

            if _import_row(db, f"trending {symbol}/{raw.get('date')}", write_trending):
                summary["trendingImported"] += 1

        db.commit()
    except Exception:
        db.rollback()
        logger.exception("import: failed, transaction rolled back")
        raise

    logger.info("import: done %s", summary)
    return summary


# ============================================================================
# Inspection
# ============================================================================

def date_range(db: Session) -> Dict[str, Any]:
    oldest, newest = db.query(func.min(DailyMetric.date), func.max(DailyMetric.date)).one()
    dates = distinct_dates(db)
    return {
        "oldestDate": oldest,
        "newestDate": newest,
        "totalMetricsCount": db.query(func.count(DailyMetric.id)).scalar() or 0,
        "distinctDatesCount": len(dates),
        "dates": dates,
    }


def metric_fields(db: Session) -> Dict[str, Any]:
    sample = db.query(DailyMetric).options(joinedload(DailyMetric.coin)).order_by(DailyMetric.id.asc()).first()
    return {
        "fields": [c.name for c in DailyMetric.__table__.columns],
        "sample": _metric_with_coin(sample) if sample else None,
    }


def db_status(db: Session) -> Dict[str, Any]:
    return {
        "coins": [{"id": c.id, "symbol": c.symbol} for c in db.query(Coin).order_by(Coin.id.asc()).all()],
        "metricsCount": db.query(func.count(DailyMetric.id)).scalar() or 0,
        "sampleMetrics": [m.to_dict() for m in db.query(DailyMetric).order_by(DailyMetric.id.asc()).limit(5).all()],
        "dates": distinct_dates(db, limit=10),
    }
