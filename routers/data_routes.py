# routers/data_routes.py
import logging
import os
from datetime import date
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from database import get_db
from middleware.rate_limit import INGEST_RATE_LIMIT, limiter
from models.user import User
from schemas.ingestion import IngestionResponse, ProcessedSummary, RawDataInput
from services.auth import require_admin
from services.backup_service import date_range, export_all, import_database, metric_fields
from services.comparison_service import build_latest_snapshot
from services.errors import ExtractionError, NotFoundError, ValidationError
from services.extraction_service import RawTextExtractor
from services.ingestion_service import IngestionPipeline, store_batch, validate_batch

logger = logging.getLogger(__name__)

router = APIRouter()

TEST_COINS = [
    {"symbol": "BTC", "otcIndex": 1627, "explosionIndex": 195, "schellingPoint": 98500, "entryExitType": "entry", "entryExitDay": 26},
    {"symbol": "ETH", "otcIndex": 1430, "explosionIndex": 180, "schellingPoint": 1850, "entryExitType": "exit", "entryExitDay": 105},
    {"symbol": "BNB", "otcIndex": 1038, "explosionIndex": 126, "schellingPoint": 601, "entryExitType": "exit", "entryExitDay": 9},
]


def get_extractor() -> RawTextExtractor:
    return RawTextExtractor()


@router.post("/input", response_model=IngestionResponse, response_model_by_alias=True)
@limiter.limit(INGEST_RATE_LIMIT)
async def submit_raw_data(
    request: Request,
    payload: RawDataInput,
    db: Session = Depends(get_db),
    extractor: RawTextExtractor = Depends(get_extractor),
    _admin: User = Depends(require_admin),
):
    logger.info("raw data received, length=%d", len(payload.raw_data))
    pipeline = IngestionPipeline(db, extractor=extractor)
    try:
        result = await pipeline.ingest(payload.raw_data, date_override=payload.date)
    except ValidationError as exc:
        raise HTTPException(
            status_code=400,
            detail={"error": exc.message, "details": exc.details},
        )
    except ExtractionError as exc:
        raise HTTPException(
            status_code=500,
            detail={"error": "Error processing data", "details": exc.message},
        )

    return IngestionResponse(
        success=True,
        date=result.date,
        processed=ProcessedSummary(**result.summary()),
    )


@router.get("/latest")
def get_latest(db: Session = Depends(get_db)):
    try:
        return build_latest_snapshot(db)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message)


@router.get("/export-all")
def export_database(db: Session = Depends(get_db)):
    return export_all(db)


@router.post("/import-database")
def import_database_dump(
    dump: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    try:
        summary = import_database(db, dump)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.message)
    return {"success": True, "message": "Database imported successfully.", "summary": summary}


@router.get("/debug/fields")
def debug_fields(db: Session = Depends(get_db)):
    return metric_fields(db)


@router.get("/debug/date-range")
def debug_date_range(db: Session = Depends(get_db)):
    return date_range(db)


@router.post("/debug/add-test-data")
def add_test_data(db: Session = Depends(get_db)):
    if os.getenv("APP_ENV", "development").lower() == "production":
        raise HTTPException(status_code=403, detail="This endpoint is disabled in production")

    batch = validate_batch({"date": date.today().isoformat(), "coins": [dict(c) for c in TEST_COINS]})
    result = store_batch(db, batch)
    return {"message": "Test data added successfully", "result": result.to_dict()}
