# services/ingestion_service.py
"""
Daily report ingestion: validate the extracted batch, then upsert coins,
daily metrics, the liquidity overview and trending coins.

Every item is persisted and committed on its own. A failing item is rolled
back, logged and recorded as an ItemFailure; it never aborts the rest of
the batch. Only validation and extraction can reject a whole submission.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from prometheus_client import Counter
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.coin import Coin
from models.daily_metric import DailyMetric
from models.liquidity_overview import LiquidityOverview
from models.trending_coin import TrendingCoin
from schemas.ingestion import ExtractedBatch, ExtractedCoin, ExtractedLiquidity, ExtractedTrendingCoin
from services.date_normalizer import apply_date_override, normalize_date, preprocess_raw_text
from services.errors import PerItemPersistenceError, ValidationError
from services.extraction_service import RawTextExtractor

logger = logging.getLogger(__name__)

COIN = "coin"
LIQUIDITY = "liquidity"
TRENDING = "trending"

INGESTED_ITEMS = Counter(
    "ingested_items_total",
    "Batch items persisted or skipped by the reconciler",
    ["kind", "outcome"],
)


# ============================================================================
# Results
# ============================================================================

@dataclass
class ItemSuccess:
    kind: str
    key: str
    record_id: int
    created: bool


@dataclass
class ItemFailure:
    kind: str
    key: Optional[str]
    error: PerItemPersistenceError


ItemResult = Union[ItemSuccess, ItemFailure]


@dataclass
class IngestionResult:
    date: str
    results: List[ItemResult] = field(default_factory=list)

    def _successes(self, kind: str) -> List[ItemSuccess]:
        return [r for r in self.results if isinstance(r, ItemSuccess) and r.kind == kind]

    @property
    def coins(self) -> List[Dict[str, Any]]:
        return [
            {"symbol": r.key, "metricId": r.record_id, "created": r.created}
            for r in self._successes(COIN)
        ]

    @property
    def liquidity_updated(self) -> bool:
        return bool(self._successes(LIQUIDITY))

    @property
    def trending_coins(self) -> List[Dict[str, Any]]:
        return [{"symbol": r.key, "created": r.created} for r in self._successes(TRENDING)]

    @property
    def failures(self) -> List[ItemFailure]:
        return [r for r in self.results if isinstance(r, ItemFailure)]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "coins": self.coins,
            "liquidityUpdated": self.liquidity_updated,
            "trendingCoins": self.trending_coins,
        }

    def summary(self) -> Dict[str, Any]:
        return {
            "coins": len(self.coins),
            "liquidity_updated": self.liquidity_updated,
            "trending_coins": len(self.trending_coins),
        }


# ============================================================================
# Validation
# ============================================================================

def validate_batch(candidate: Any) -> ExtractedBatch:
    """Check the envelope only: `date` present and `coins` a list."""
    if not isinstance(candidate, dict):
        raise ValidationError(
            "Invalid processed data structure",
            details="Data must include date and coins array",
        )

    if not candidate.get("date") or not isinstance(candidate.get("coins"), list):
        logger.error(
            "batch validation failed: has_date=%s coins_type=%s",
            bool(candidate.get("date")), type(candidate.get("coins")).__name__,
        )
        raise ValidationError(
            "Invalid processed data structure",
            details="Data must include date and coins array",
        )

    try:
        return ExtractedBatch.model_validate(candidate)
    except PydanticValidationError as exc:
        raise ValidationError(
            "Invalid processed data structure",
            details=exc.errors(include_url=False, include_context=False),
        ) from exc


# ============================================================================
# Upserts
# ============================================================================

def find_or_create_coin(db: Session, symbol: str) -> Tuple[Coin, bool]:
    symbol = symbol.upper()
    coin = db.query(Coin).filter(Coin.symbol == symbol).first()
    if coin:
        return coin, False
    coin = Coin(symbol=symbol, name=symbol, current_price=0)
    db.add(coin)
    db.flush()
    return coin, True


def upsert_daily_metric(db: Session, coin_id: int, day: str, fields: Dict[str, Any]) -> Tuple[DailyMetric, bool]:
    metric = (
        db.query(DailyMetric)
        .filter(DailyMetric.coin_id == coin_id, DailyMetric.date == day)
        .first()
    )
    if metric:
        for key, value in fields.items():
            setattr(metric, key, value)
        db.flush()
        return metric, False

    metric = DailyMetric(coin_id=coin_id, date=day, **fields)
    db.add(metric)
    db.flush()
    return metric, True


def upsert_liquidity(db: Session, day: str, fields: Dict[str, Any]) -> Tuple[LiquidityOverview, bool]:
    """Last write wins: every field is overwritten, including with None."""
    overview = db.query(LiquidityOverview).filter(LiquidityOverview.date == day).first()
    created = overview is None
    if created:
        overview = LiquidityOverview(date=day)
        db.add(overview)
    for key, value in fields.items():
        setattr(overview, key, value)
    db.flush()
    return overview, created


def upsert_trending_coin(db: Session, day: str, symbol: str, fields: Dict[str, Any]) -> Tuple[TrendingCoin, bool]:
    symbol = symbol.upper()
    trending = (
        db.query(TrendingCoin)
        .filter(TrendingCoin.date == day, TrendingCoin.symbol == symbol)
        .first()
    )
    created = trending is None
    if created:
        trending = TrendingCoin(date=day, symbol=symbol)
        db.add(trending)
    for key, value in fields.items():
        setattr(trending, key, value)
    db.flush()
    return trending, created


def _item_key(raw: Any) -> Optional[str]:
    if isinstance(raw, dict) and raw.get("symbol"):
        return str(raw["symbol"]).upper()
    return None


def _run_item(
    db: Session,
    kind: str,
    key: Optional[str],
    write: Callable[[], Tuple[str, int, bool]],
) -> ItemResult:
    """
    Run one item's writes and commit them. A unique-constraint collision
    (another writer inserted the same key) is retried once, which turns the
    insert into an update.
    """
    for attempt in (1, 2):
        try:
            item_key, record_id, created = write()
            db.commit()
            INGESTED_ITEMS.labels(kind=kind, outcome="created" if created else "updated").inc()
            return ItemSuccess(kind=kind, key=item_key, record_id=record_id, created=created)
        except IntegrityError as exc:
            db.rollback()
            if attempt == 1:
                logger.warning("%s %s hit a concurrent insert, retrying as update", kind, key)
                continue
            error = exc
        except PydanticValidationError as exc:
            db.rollback()
            error = exc
        except Exception as exc:  # per-item isolation: any failure skips only this item
            db.rollback()
            logger.exception("failed to store %s %s", kind, key)
            error = exc
        break

    logger.error("skipping %s %s: %s", kind, key, error)
    INGESTED_ITEMS.labels(kind=kind, outcome="failed").inc()
    return ItemFailure(
        kind=kind,
        key=key,
        error=PerItemPersistenceError(str(error), kind=kind, key=key),
    )


def store_batch(db: Session, batch: ExtractedBatch) -> IngestionResult:
    day = batch.date
    result = IngestionResult(date=day)
    logger.info("storing batch date=%s coins=%d", day, len(batch.coins))

    for raw in batch.coins:
        def write_coin(raw=raw) -> Tuple[str, int, bool]:
            coin_data = ExtractedCoin.model_validate(raw)
            coin, coin_created = find_or_create_coin(db, coin_data.symbol)
            if coin_created:
                logger.info("created coin %s", coin.symbol)
            metric, created = upsert_daily_metric(db, coin.id, day, coin_data.metric_fields())
            logger.info("%s metric for %s on %s", "created" if created else "updated", coin.symbol, day)
            return coin.symbol, metric.id, created

        result.results.append(_run_item(db, COIN, _item_key(raw), write_coin))

    if batch.liquidity:
        def write_liquidity() -> Tuple[str, int, bool]:
            liquidity = ExtractedLiquidity.model_validate(batch.liquidity)
            overview, created = upsert_liquidity(db, day, liquidity.overview_fields())
            return day, overview.id, created

        result.results.append(_run_item(db, LIQUIDITY, day, write_liquidity))

    if isinstance(batch.trending_coins, list):
        for raw in batch.trending_coins:
            def write_trending(raw=raw) -> Tuple[str, int, bool]:
                item = ExtractedTrendingCoin.model_validate(raw)
                trending, created = upsert_trending_coin(db, day, item.symbol, item.snapshot_fields())
                return trending.symbol, trending.id, created

            result.results.append(_run_item(db, TRENDING, _item_key(raw), write_trending))
    elif batch.trending_coins is not None:
        logger.warning("ignoring trendingCoins of type %s", type(batch.trending_coins).__name__)

    logger.info(
        "batch stored date=%s coins=%d liquidity=%s trending=%d failures=%d",
        day, len(result.coins), result.liquidity_updated, len(result.trending_coins), len(result.failures),
    )
    return result


# ============================================================================
# Pipeline
# ============================================================================

class IngestionPipeline:
    """raw text -> preprocess -> extract -> normalize date -> validate -> store"""

    def __init__(
        self,
        db: Session,
        extractor: Optional[RawTextExtractor] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        self.db = db
        self.extractor = extractor or RawTextExtractor()
        self._today = today or date.today

    async def ingest(self, raw_text: str, date_override: Optional[str] = None) -> IngestionResult:
        today = self._today()
        if date_override:
            raw_text = apply_date_override(raw_text, date.fromisoformat(date_override))

        prepared = preprocess_raw_text(raw_text, today)
        candidate = await self.extractor.extract(prepared, today)

        if isinstance(candidate, dict):
            # an explicitly chosen date is authoritative
            candidate["date"] = date_override or normalize_date(candidate.get("date"), raw_text, today)

        batch = validate_batch(candidate)
        return store_batch(self.db, batch)
