from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import func, select, text
from sqlalchemy.orm import Session

from app.db import session as db_session
from app.db.bootstrap import missing_schema_items
from app.models.timetable import DayPartition, WEEKDAYS

router = APIRouter()


@router.get("/health")
def health() -> dict:
    return {"status": "ok"}


@router.get("/health/live")
def health_live() -> dict:
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.get("/health/ready")
def health_ready() -> JSONResponse:
    engine = db_session.engine
    db_ok = True
    missing_tables: list[str] = []
    missing_columns: dict[str, list[str]] = {}
    partitions = 0
    db_error: str | None = None

    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        missing_tables, missing_columns = missing_schema_items(engine)
        if "timetable_day_partitions" not in missing_tables:
            with Session(bind=engine) as session:
                partitions = session.execute(select(func.count()).select_from(DayPartition)).scalar_one()
    except Exception as exc:  # pragma: no cover - environment dependent
        db_ok = False
        db_error = exc.__class__.__name__

    schema_ok = not missing_tables and not missing_columns
    partitions_ok = partitions == len(WEEKDAYS)
    ready = db_ok and schema_ok and partitions_ok

    payload = {
        "status": "ok" if ready else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database": {
            "ok": db_ok,
            "schema_ok": schema_ok,
            "missing_tables": missing_tables,
            "missing_columns": missing_columns,
            "error": db_error,
        },
        "timetable": {
            "day_partitions": partitions,
            "expected_day_partitions": len(WEEKDAYS),
        },
    }
    return JSONResponse(status_code=200 if ready else 503, content=payload)
