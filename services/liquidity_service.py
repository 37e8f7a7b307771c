from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from models.liquidity_overview import LiquidityOverview
from services.errors import NotFoundError


def list_liquidity(db: Session, *, day: Optional[str] = None) -> List[LiquidityOverview]:
    query = db.query(LiquidityOverview)
    if day:
        query = query.filter(LiquidityOverview.date == day)
    return query.order_by(LiquidityOverview.date.desc()).all()


def get_liquidity(db: Session, day: str) -> LiquidityOverview:
    overview = db.query(LiquidityOverview).filter(LiquidityOverview.date == day).first()
    if not overview:
        raise NotFoundError("Liquidity data not found for the specified date")
    return overview


def save_liquidity(db: Session, day: str, fields: Dict[str, Any]) -> Tuple[LiquidityOverview, bool]:
    """
    Manual edits merge: on an existing row only the fields that were sent
    are changed. (Ingestion overwrites everything instead.)
    """
    overview = db.query(LiquidityOverview).filter(LiquidityOverview.date == day).first()
    created = overview is None
    if created:
        overview = LiquidityOverview(date=day, **fields)
        db.add(overview)
    else:
        for key, value in fields.items():
            if value is not None:
                setattr(overview, key, value)
    db.commit()
    db.refresh(overview)
    return overview, created


def delete_liquidity(db: Session, day: str) -> None:
    overview = get_liquidity(db, day)
    db.delete(overview)
    db.commit()
