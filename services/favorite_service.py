from __future__ import annotations

from typing import List, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.user_favorite import UserFavorite
from services.errors import NotFoundError


def list_favorite_symbols(db: Session, device_id: str) -> List[str]:
    rows = (
        db.query(UserFavorite.symbol)
        .filter(UserFavorite.device_id == device_id)
        .order_by(UserFavorite.created_at.asc(), UserFavorite.id.asc())
        .all()
    )
    return [row.symbol for row in rows]


def add_favorite(db: Session, device_id: str, symbol: str) -> Tuple[UserFavorite, bool]:
    symbol = symbol.upper()
    existing = (
        db.query(UserFavorite)
        .filter(UserFavorite.device_id == device_id, UserFavorite.symbol == symbol)
        .first()
    )
    if existing:
        return existing, False

    favorite = UserFavorite(device_id=device_id, symbol=symbol)
    db.add(favorite)
    try:
        db.commit()
    except IntegrityError:
        # same device double-clicked; the other request won
        db.rollback()
        existing = (
            db.query(UserFavorite)
            .filter(UserFavorite.device_id == device_id, UserFavorite.symbol == symbol)
            .one()
        )
        return existing, False
    db.refresh(favorite)
    return favorite, True


def remove_favorite(db: Session, device_id: str, symbol: str) -> None:
    deleted = (
        db.query(UserFavorite)
        .filter(UserFavorite.device_id == device_id, UserFavorite.symbol == symbol.upper())
        .delete(synchronize_session=False)
    )
    if not deleted:
        raise NotFoundError("Favorite not found")
    db.commit()
