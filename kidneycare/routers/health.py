# kidneycare/routers/health.py
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db

import logging

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["Health Checks"],
)

@router.get("/health", response_model=schemas.HealthResponse)
def health_check(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError as e:
        logger.error(f"Health check database query failed: {e}")
        database = "error"
    return {"status": "ok", "database": database}
