from __future__ import annotations

import logging

from sqlalchemy import inspect
from sqlalchemy.engine import Connection, Engine

from campustrack.db.base import Base

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "users": {"id", "role", "is_active", "deleted_at"},
    "semesters": {"id", "number", "academic_year_id"},
    "student_profiles": {"id", "user_id", "semester_id", "current_year"},
    "faculty_subjects": {"faculty_id", "subject_id"},
    "timetables": {"id", "day_of_week", "period", "subject_id", "faculty_id", "semester_id"},
    "attendance_records": {"student_id", "subject_id", "date", "period", "status", "marked_by"},
    "mdc_courses": {"id", "home_department_id", "mdc_department_id", "year", "semester", "student_ids"},
    "mdc_attendance_records": {"mdc_course_id", "student_id", "date", "period", "status"},
    "student_semester_history": {"student_id", "semester_id", "changed_by", "reason"},
    "activity_logs": {"actor_id", "actor_role", "action", "department_id"},
}


def inspect_schema(connection: Connection) -> tuple[list[str], dict[str, list[str]]]:
    inspector = inspect(connection)
    table_names = set(inspector.get_table_names())
    missing_tables: list[str] = []
    missing_columns: dict[str, list[str]] = {}
    for table_name, columns in REQUIRED_COLUMNS.items():
        if table_name not in table_names:
            missing_tables.append(table_name)
            continue
        existing = {item["name"] for item in inspector.get_columns(table_name)}
        missing = sorted(columns - existing)
        if missing:
            missing_columns[table_name] = missing
    return missing_tables, missing_columns


def ensure_schema(engine: Engine, *, create_missing: bool) -> None:
    import campustrack.models  # noqa: F401

    if create_missing:
        Base.metadata.create_all(bind=engine)
        return

    with engine.connect() as connection:
        missing_tables, missing_columns = inspect_schema(connection)
    if missing_tables or missing_columns:
        logger.warning(
            "Database schema is behind the models (missing tables: %s, missing columns: %s). "
            "Run `alembic upgrade head`.",
            missing_tables,
            missing_columns,
        )
