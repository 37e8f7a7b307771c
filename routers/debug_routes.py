from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database import get_db
from services.backup_service import db_status

router = APIRouter()


@router.get("/db-status")
def get_db_status(db: Session = Depends(get_db)):
    return db_status(db)
