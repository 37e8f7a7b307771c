from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from database import get_db
from schemas.favorite import FavoriteCreate, FavoriteOut
from services.errors import NotFoundError
from services.favorite_service import add_favorite, list_favorite_symbols, remove_favorite

router = APIRouter()


@router.get("/{device_id}", response_model=List[str])
def get_favorites(device_id: str, db: Session = Depends(get_db)):
    return list_favorite_symbols(db, device_id)


@router.post("", response_model=FavoriteOut)
def create_favorite(payload: FavoriteCreate, response: Response, db: Session = Depends(get_db)):
    favorite, created = add_favorite(db, payload.device_id, payload.symbol)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return FavoriteOut(
        message="Favorite added" if created else "Favorite already exists",
        symbol=favorite.symbol,
    )


@router.delete("/{device_id}/{symbol}", response_model=FavoriteOut)
def delete_favorite(device_id: str, symbol: str, db: Session = Depends(get_db)):
    try:
        remove_favorite(db, device_id, symbol)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message)
    return FavoriteOut(message="Favorite removed", symbol=symbol.upper())
