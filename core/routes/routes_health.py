# core/routes/routes_health.py
"""
Health – endpoint público

✔ Chequeo rápido de conexión a BD (SELECT 1)
✔ Respuesta JSON estable (UTC)
✔ Sin exponer datos sensibles
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.database import get_db
from core.logging_config import logger
from core.models.time import utcnow


router = APIRouter(tags=["health"])


def check_db_connection(db: Session) -> bool:
    try:
        db.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        logger.exception("[HEALTH] db check failed")
        return False


@router.get("/health")
async def health(db: Session = Depends(get_db)):
    start = utcnow()
    db_ok = check_db_connection(db)
    elapsed_ms = (utcnow() - start).total_seconds() * 1000

    payload: dict[str, Any] = {
        "status": "ok" if db_ok else "degraded",
        "timestamp_utc": utcnow().isoformat(),
        "elapsed_ms": round(elapsed_ms, 2),
        "db": {"ok": db_ok},
    }

    if not db_ok:
        logger.warning("[HEALTH] status=degraded db_ok=false")
        return JSONResponse(status_code=503, content=payload)

    return payload
