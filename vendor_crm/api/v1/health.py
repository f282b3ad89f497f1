"""
Health endpoint for the vendor CRM backend.
"""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...core.db import get_db
from ...core.errors import log_exception


router = APIRouter(prefix="/api/v1/health", tags=["health"])
logger = logging.getLogger("health")


@router.get("")
def health(db: Session = Depends(get_db)) -> dict:
    db_ok = True
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        log_exception(logger, "Health DB ping failed", exc=exc)
        db_ok = False
    return {
        "status": "ok" if db_ok else "degraded",
        "database": db_ok,
        "timestamp_utc": datetime.utcnow().isoformat() + "Z",
    }
