from __future__ import annotations

import logging

from sqlalchemy import inspect, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from app.db.base import Base
from app.db.session import engine as default_engine
import app.models  # noqa: F401
from app.models.timetable import DayPartition, WEEKDAYS

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "classes": {"id", "name"},
    "subjects": {"id", "code"},
    "teachers": {"id", "email"},
    "rooms": {"id", "name"},
    "timetable_slots": {
        "id",
        "day_of_week",
        "start_time",
        "end_time",
        "class_id",
        "subject_id",
        "teacher_id",
        "room_id",
        "type",
    },
    "timetable_day_partitions": {"day_of_week", "version"},
    "activity_logs": {"id", "actor_id", "action"},
}


def missing_schema_items(bind: Engine) -> tuple[list[str], dict[str, list[str]]]:
    with bind.connect() as connection:
        inspector = inspect(connection)
        table_names = set(inspector.get_table_names())
        missing_tables = sorted(name for name in REQUIRED_COLUMNS if name not in table_names)
        missing_columns: dict[str, list[str]] = {}
        for table_name, required in REQUIRED_COLUMNS.items():
            if table_name not in table_names:
                continue
            existing = {item["name"] for item in inspector.get_columns(table_name)}
            missing = sorted(required - existing)
            if missing:
                missing_columns[table_name] = missing
    return missing_tables, missing_columns


def ensure_day_partitions(bind: Engine) -> int:
    """Insert the per-day partition rows that are missing. Returns how many were created."""
    with Session(bind=bind) as session:
        existing = set(session.execute(select(DayPartition.day_of_week)).scalars())
        created = 0
        for day in WEEKDAYS:
            if day in existing:
                continue
            session.add(DayPartition(day_of_week=day, version=1))
            created += 1
        if created:
            session.commit()
            logger.info("Created %s timetable day partition row(s)", created)
    return created


def _assert_required_columns(bind: Engine) -> None:
    missing_tables, missing_columns = missing_schema_items(bind)
    if missing_tables:
        raise RuntimeError(f"Missing required tables: {', '.join(missing_tables)}")
    if missing_columns:
        flattened = [f"{table}.{column}" for table, columns in missing_columns.items() for column in columns]
        raise RuntimeError(f"Missing required columns: {', '.join(flattened)}")


def ensure_runtime_schema_compatibility(bind: Engine | None = None) -> None:
    bind = bind or default_engine
    try:
        # Ensure missing tables are present before seeding partition rows.
        Base.metadata.create_all(bind=bind)
        _assert_required_columns(bind)
        ensure_day_partitions(bind)
    except Exception as exc:  # pragma: no cover - runtime environment dependent
        logger.exception("Runtime schema compatibility bootstrap failed")
        raise RuntimeError("Runtime schema compatibility bootstrap failed") from exc
