from __future__ import annotations

from datetime import date as date_type
import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from campustrack.core.exceptions import ForbiddenError, ResourceNotFoundError
from campustrack.models.attendance import AttendanceRecord
from campustrack.models.mdc import MDCAttendanceRecord
from campustrack.models.profiles import StudentProfile
from campustrack.models.timetable import PERIODS_PER_DAY
from campustrack.models.user import User, UserRole
from campustrack.schemas.attendance import DailyAttendanceBlock
from campustrack.services.access import ensure_role

logger = logging.getLogger(__name__)


def _not_marked(period: int) -> DailyAttendanceBlock:
    return DailyAttendanceBlock(period=period, status="NOT_MARKED", faculty_name=None)


def merge_daily_attendance(db: Session, *, student_id: str, on_date: date_type) -> list[DailyAttendanceBlock]:
    """Five period blocks for one student's day.

    Regular records are laid down first and MDC records for the same period
    replace them. Storage failures yield an all ``NOT_MARKED`` day instead of
    an error.
    """
    try:
        regular = db.execute(
            select(AttendanceRecord).where(
                AttendanceRecord.student_id == student_id,
                AttendanceRecord.date == on_date,
            )
        ).scalars()
        merged: dict[int, DailyAttendanceBlock] = {}
        for record in regular:
            merged[record.period] = DailyAttendanceBlock(
                period=record.period,
                status=record.status.value,
                faculty_name=record.faculty.name,
            )

        overlay = db.execute(
            select(MDCAttendanceRecord).where(
                MDCAttendanceRecord.student_id == student_id,
                MDCAttendanceRecord.date == on_date,
            )
        ).scalars()
        for record in overlay:
            merged[record.period] = DailyAttendanceBlock(
                period=record.period,
                status=record.status.value,
                faculty_name=record.faculty.name,
            )
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to load daily attendance for student %s", student_id)
        return [_not_marked(period) for period in range(1, PERIODS_PER_DAY + 1)]

    return [merged.get(period) or _not_marked(period) for period in range(1, PERIODS_PER_DAY + 1)]


def get_daily_attendance_status(
    db: Session,
    *,
    current_user: User,
    student_id: str,
    on_date: date_type | None = None,
) -> list[DailyAttendanceBlock]:
    ensure_role(current_user, UserRole.admin, UserRole.student)
    if current_user.role == UserRole.student:
        own_id = db.execute(
            select(StudentProfile.id).where(StudentProfile.user_id == current_user.id)
        ).scalar_one_or_none()
        if own_id is None:
            raise ResourceNotFoundError("Student profile not found")
        if own_id != student_id:
            raise ForbiddenError("You can only view your own attendance")
    return merge_daily_attendance(db, student_id=student_id, on_date=on_date or date_type.today())
