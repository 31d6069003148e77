from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from campustrack.models.activity_log import ActivityLog
from campustrack.models.user import User


def log_activity(
    db: Session,
    *,
    user: User | None,
    action: str,
    entity_type: str,
    entity_id: str | None = None,
    department_id: str | None = None,
    details: dict | None = None,
) -> ActivityLog:
    """Append an activity row to the caller's open transaction.

    ``department_id`` scopes the row to the department whose timetable,
    MDC roster or students the change touched; campus-wide changes leave it empty.
    """
    record = ActivityLog(
        actor_id=user.id if user is not None else None,
        actor_role=user.role.value if user is not None else None,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        department_id=department_id,
        details=details or {},
    )
    db.add(record)
    return record


def list_department_activity(db: Session, department_id: str, *, limit: int = 50) -> list[ActivityLog]:
    return list(
        db.execute(
            select(ActivityLog)
            .where(ActivityLog.department_id == department_id)
            .order_by(ActivityLog.created_at.desc(), ActivityLog.id.asc())
            .limit(limit)
        ).scalars()
    )
