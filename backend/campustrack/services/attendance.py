"""Attendance marking for faculty and attendance reads for students.

Marking is gated on the faculty/subject index maintained by the timetable
service, not on the exact timetable slot, so a faculty member may mark any
period of a day on which their subject is scheduled.
"""

from __future__ import annotations

from collections import Counter
from datetime import date as date_type, datetime, timedelta, timezone
import logging

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from campustrack.core.config import get_settings
from campustrack.core.exceptions import (
    ConflictError,
    DomainRuleError,
    ErrorCode,
    ResourceNotFoundError,
    UnauthorizedError,
    ValidationFailedError,
)
from campustrack.models.academic import Subject
from campustrack.models.attendance import AttendanceRecord, AttendanceStatus
from campustrack.models.notification import NotificationType
from campustrack.models.profiles import FacultySubject, StudentProfile
from campustrack.models.timetable import TimetableEntry
from campustrack.models.user import User, UserRole
from campustrack.schemas.academic import StudentOut, SubjectBrief, SubjectOut
from campustrack.schemas.attendance import (
    AttendanceOverview,
    AttendanceRecordOut,
    AttendanceStats,
    DayAttendance,
    LowAttendanceStudent,
    MarkAttendanceRequest,
    PeriodAttendance,
    SemesterAttendanceSummary,
    StudentRecordOut,
    StudentSubjectAttendance,
    SubjectAttendanceStats,
    SubjectAttendanceSummary,
)
from campustrack.services import faculty_assignments
from campustrack.services.access import ensure_role, require_faculty_profile, require_student_profile
from campustrack.services.notifications import notify_users
from campustrack.services.transactions import transaction

logger = logging.getLogger(__name__)

STUDENT_ATTENDANCE_LINK = "/dashboard/student/attendance"
CONCURRENT_MARK_MESSAGE = "Attendance was updated concurrently. Please try again."
NATURAL_KEY_MARKERS = ("uq_attendance_records_natural_key", "attendance_records.student_id")
AT_RISK_THRESHOLD = 75
DASHBOARD_WINDOW_DAYS = 30
LOW_ATTENDANCE_LIMIT = 10


def attendance_percentage(present: int, total: int) -> int:
    """Whole-number percentage with halves rounded up; no records gives 0."""
    if total <= 0:
        return 0
    return (present * 200 + total) // (2 * total)


def timetable_day_for(value: date_type) -> int | None:
    """Map a calendar date to the timetable's 1=Mon..6=Sat numbering; Sunday has no slot."""
    weekday = value.isoweekday()
    if weekday == 7:
        return None
    return weekday


def build_stats(statuses: list[AttendanceStatus]) -> AttendanceStats:
    total = len(statuses)
    present = sum(1 for status in statuses if status == AttendanceStatus.present)
    return AttendanceStats(
        total_classes=total,
        present=present,
        absent=total - present,
        percentage=attendance_percentage(present, total),
    )


def _require_assignment(db: Session, *, faculty_id: str, subject_id: str) -> None:
    if not faculty_assignments.is_assigned(db, faculty_id=faculty_id, subject_id=subject_id):
        raise UnauthorizedError("You are not assigned to this subject")


def mark_attendance(db: Session, *, current_user: User, payload: MarkAttendanceRequest) -> dict:
    faculty = require_faculty_profile(db, current_user)

    try:
        subject_name, recipient_ids = _save_marks(db, faculty_id=faculty.id, payload=payload)
    except ConflictError:
        # A concurrent first-time mark inserted the same natural key; the retry
        # finds that row and overwrites it.
        logger.info("Concurrent attendance write for subject %s on %s, retrying", payload.subject_id, payload.date)
        subject_name, recipient_ids = _save_marks(db, faculty_id=faculty.id, payload=payload)

    logger.info(
        "Faculty %s marked %d attendance records for subject %s on %s",
        faculty.id,
        len(payload.records),
        payload.subject_id,
        payload.date.isoformat(),
    )
    _notify_students(db, recipient_ids, subject_name=subject_name, on_date=payload.date)
    return {"count": len(payload.records), "date": payload.date}


def _save_marks(db: Session, *, faculty_id: str, payload: MarkAttendanceRequest) -> tuple[str, list[str]]:
    with transaction(
        db,
        failure_message="Failed to mark attendance",
        failure_code=ErrorCode.ATTENDANCE_FAILED,
        conflict_message=CONCURRENT_MARK_MESSAGE,
        conflict_markers=NATURAL_KEY_MARKERS,
    ):
        _require_assignment(db, faculty_id=faculty_id, subject_id=payload.subject_id)

        subject = db.get(Subject, payload.subject_id)
        if subject is None:
            raise ResourceNotFoundError("Subject not found")

        day_of_week = timetable_day_for(payload.date)
        if day_of_week is None:
            raise DomainRuleError("No classes on Sunday", ErrorCode.INVALID_DAY)

        scheduled = db.execute(
            select(TimetableEntry.id).where(
                TimetableEntry.subject_id == subject.id,
                TimetableEntry.day_of_week == day_of_week,
                TimetableEntry.semester_id == subject.semester_id,
            )
        ).first()
        if scheduled is None:
            raise DomainRuleError("Subject not scheduled for this day", ErrorCode.NOT_IN_TIMETABLE)

        student_ids = list(dict.fromkeys(record.student_id for record in payload.records))
        students = list(
            db.execute(
                select(StudentProfile).where(
                    StudentProfile.id.in_(student_ids),
                    StudentProfile.semester_id == subject.semester_id,
                )
            ).scalars()
        )
        if len(students) != len(student_ids):
            raise DomainRuleError("Some students not found or not in this semester", ErrorCode.INVALID_STUDENTS)

        existing = {
            (record.student_id, record.period): record
            for record in db.execute(
                select(AttendanceRecord).where(
                    AttendanceRecord.subject_id == subject.id,
                    AttendanceRecord.date == payload.date,
                    AttendanceRecord.student_id.in_(student_ids),
                )
            ).scalars()
        }
        now = datetime.now(timezone.utc)
        for mark in payload.records:
            key = (mark.student_id, mark.period)
            record = existing.get(key)
            if record is None:
                record = AttendanceRecord(
                    student_id=mark.student_id,
                    subject_id=subject.id,
                    date=payload.date,
                    period=mark.period,
                    status=mark.status,
                    marked_by=faculty_id,
                    semester_id=subject.semester_id,
                )
                db.add(record)
                existing[key] = record
            else:
                record.status = mark.status
                record.marked_by = faculty_id
                record.updated_at = now
        db.flush()

        subject_name = subject.name
        recipient_ids = [student.user_id for student in students]

    return subject_name, recipient_ids


def _notify_students(db: Session, user_ids: list[str], *, subject_name: str, on_date: date_type) -> None:
    try:
        notify_users(
            db,
            user_ids=user_ids,
            title="Attendance Marked",
            message=f"Attendance for {subject_name} on {on_date.strftime('%d %b %Y')} has been recorded",
            notification_type=NotificationType.attendance,
            link=STUDENT_ATTENDANCE_LINK,
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Attendance saved but student notifications failed for %s", subject_name, exc_info=True)


def get_subject_attendance(
    db: Session,
    *,
    current_user: User,
    subject_id: str,
    on_date: date_type,
) -> list[AttendanceRecordOut]:
    faculty = require_faculty_profile(db, current_user)
    _require_assignment(db, faculty_id=faculty.id, subject_id=subject_id)
    records = db.execute(
        select(AttendanceRecord)
        .join(StudentProfile, StudentProfile.id == AttendanceRecord.student_id)
        .where(AttendanceRecord.subject_id == subject_id, AttendanceRecord.date == on_date)
        .order_by(AttendanceRecord.period.asc(), StudentProfile.enrollment_no.asc())
    ).scalars()
    return [AttendanceRecordOut.model_validate(record) for record in records]


def get_faculty_subjects(db: Session, *, current_user: User) -> list[SubjectOut]:
    faculty = require_faculty_profile(db, current_user)
    subjects = db.execute(
        select(Subject)
        .join(FacultySubject, FacultySubject.subject_id == Subject.id)
        .where(FacultySubject.faculty_id == faculty.id)
        .order_by(Subject.code.asc())
    ).scalars()
    return [SubjectOut.model_validate(subject) for subject in subjects]


def get_subject_students(db: Session, *, current_user: User, subject_id: str) -> list[StudentOut]:
    faculty = require_faculty_profile(db, current_user)
    _require_assignment(db, faculty_id=faculty.id, subject_id=subject_id)
    subject = db.get(Subject, subject_id)
    if subject is None:
        raise ResourceNotFoundError("Subject not found")
    students = db.execute(
        select(StudentProfile)
        .where(
            StudentProfile.semester_id == subject.semester_id,
            StudentProfile.department_id == subject.department_id,
        )
        .order_by(StudentProfile.enrollment_no.asc())
    ).scalars()
    return [StudentOut.model_validate(student) for student in students]


def get_subject_attendance_summary(db: Session, *, current_user: User, subject_id: str) -> SubjectAttendanceSummary:
    faculty = require_faculty_profile(db, current_user)
    _require_assignment(db, faculty_id=faculty.id, subject_id=subject_id)

    total, present = db.execute(
        select(
            func.count(AttendanceRecord.id),
            func.count(AttendanceRecord.id).filter(AttendanceRecord.status == AttendanceStatus.present),
        ).where(AttendanceRecord.subject_id == subject_id)
    ).one()
    total_classes = db.execute(
        select(func.count(func.distinct(AttendanceRecord.date))).where(AttendanceRecord.subject_id == subject_id)
    ).scalar_one()
    average = round(present / total * 100, 2) if total else 0.0
    return SubjectAttendanceSummary(total_classes=total_classes, average_attendance=average)


def get_semester_attendance_summary(db: Session, *, current_user: User) -> SemesterAttendanceSummary:
    student = require_student_profile(db, current_user)
    records = list(
        db.execute(
            select(AttendanceRecord).where(
                AttendanceRecord.student_id == student.id,
                AttendanceRecord.semester_id == student.semester_id,
            )
        ).scalars()
    )

    by_subject: dict[str, list[AttendanceRecord]] = {}
    for record in records:
        by_subject.setdefault(record.subject_id, []).append(record)

    subjects = [
        SubjectAttendanceStats(
            subject=SubjectOut.model_validate(items[0].subject),
            stats=build_stats([item.status for item in items]),
        )
        for items in by_subject.values()
    ]
    subjects.sort(key=lambda item: item.subject.code)
    return SemesterAttendanceSummary(overall=build_stats([record.status for record in records]), subjects=subjects)


def get_student_subject_attendance(db: Session, *, current_user: User, subject_id: str) -> StudentSubjectAttendance:
    student = require_student_profile(db, current_user)
    subject = db.get(Subject, subject_id)
    if subject is None:
        raise ResourceNotFoundError("Subject not found")
    if subject.semester_id != student.semester_id:
        raise UnauthorizedError("Subject not in your semester")

    records = list(
        db.execute(
            select(AttendanceRecord)
            .where(AttendanceRecord.student_id == student.id, AttendanceRecord.subject_id == subject_id)
            .order_by(AttendanceRecord.date.desc(), AttendanceRecord.period.asc())
        ).scalars()
    )
    return StudentSubjectAttendance(
        subject=SubjectOut.model_validate(subject),
        stats=build_stats([record.status for record in records]),
        records=[StudentRecordOut.model_validate(record) for record in records],
    )


def _group_by_day(records: list[AttendanceRecord]) -> list[DayAttendance]:
    days: dict[date_type, list[PeriodAttendance]] = {}
    for record in records:
        days.setdefault(record.date, []).append(
            PeriodAttendance(
                period=record.period,
                status=record.status,
                subject=SubjectBrief.model_validate(record.subject),
            )
        )
    return [DayAttendance(date=day, periods=periods) for day, periods in days.items()]


def get_attendance_by_date(db: Session, *, current_user: User, on_date: date_type) -> DayAttendance | None:
    student = require_student_profile(db, current_user)
    records = list(
        db.execute(
            select(AttendanceRecord)
            .where(AttendanceRecord.student_id == student.id, AttendanceRecord.date == on_date)
            .order_by(AttendanceRecord.period.asc())
        ).scalars()
    )
    days = _group_by_day(records)
    return days[0] if days else None


def get_attendance_range(
    db: Session,
    *,
    current_user: User,
    start: date_type,
    end: date_type,
) -> list[DayAttendance]:
    max_days = get_settings().attendance_range_max_days
    if end < start:
        raise ValidationFailedError("Invalid date range")
    if end - start > timedelta(days=max_days):
        raise ValidationFailedError(f"Date range cannot exceed {max_days} days")

    student = require_student_profile(db, current_user)
    records = list(
        db.execute(
            select(AttendanceRecord)
            .where(
                AttendanceRecord.student_id == student.id,
                AttendanceRecord.date >= start,
                AttendanceRecord.date <= end,
            )
            .order_by(AttendanceRecord.date.asc(), AttendanceRecord.period.asc())
        ).scalars()
    )
    return _group_by_day(records)


def _window_counts(db: Session, *conditions) -> tuple[int, int]:
    total, present = db.execute(
        select(
            func.count(AttendanceRecord.id),
            func.count(AttendanceRecord.id).filter(AttendanceRecord.status == AttendanceStatus.present),
        ).where(*conditions)
    ).one()
    return total, present


def get_attendance_overview(db: Session, *, current_user: User, today: date_type | None = None) -> AttendanceOverview:
    """Dashboard figures over the trailing window, compared with the window before it."""
    ensure_role(current_user, UserRole.admin)
    today = today or date_type.today()
    window_start = today - timedelta(days=DASHBOARD_WINDOW_DAYS)
    previous_start = window_start - timedelta(days=DASHBOARD_WINDOW_DAYS)

    total, present = _window_counts(db, AttendanceRecord.date >= window_start, AttendanceRecord.date <= today)
    previous_total, previous_present = _window_counts(
        db,
        AttendanceRecord.date >= previous_start,
        AttendanceRecord.date < window_start,
    )
    per_student = db.execute(
        select(
            func.count(AttendanceRecord.id),
            func.count(AttendanceRecord.id).filter(AttendanceRecord.status == AttendanceStatus.present),
        )
        .where(AttendanceRecord.date >= window_start, AttendanceRecord.date <= today)
        .group_by(AttendanceRecord.student_id)
    ).all()

    day_of_week = timetable_day_for(today)
    classes_today = 0
    if day_of_week is not None:
        classes_today = db.execute(
            select(func.count(TimetableEntry.id)).where(TimetableEntry.day_of_week == day_of_week)
        ).scalar_one()

    overall = attendance_percentage(present, total) if total else None
    trend = None
    if total and previous_total:
        trend = round(overall - previous_present / previous_total * 100, 1)

    return AttendanceOverview(
        overall_attendance=overall,
        classes_today=classes_today,
        at_risk_students=sum(1 for count, attended in per_student if attended * 100 < AT_RISK_THRESHOLD * count),
        perfect_attendance=sum(1 for count, attended in per_student if attended == count),
        trend=trend,
    )


def get_low_attendance_students(
    db: Session,
    *,
    current_user: User,
    today: date_type | None = None,
    limit: int = LOW_ATTENDANCE_LIMIT,
) -> list[LowAttendanceStudent]:
    """Students under the at-risk threshold in the trailing window, lowest first.

    ``course`` is the subject code the student has the most records for.
    """
    ensure_role(current_user, UserRole.admin)
    today = today or date_type.today()
    window_start = today - timedelta(days=DASHBOARD_WINDOW_DAYS)
    records = db.execute(
        select(AttendanceRecord)
        .where(AttendanceRecord.date >= window_start, AttendanceRecord.date <= today)
        .order_by(AttendanceRecord.date.asc(), AttendanceRecord.period.asc())
    ).scalars()

    by_student: dict[str, list[AttendanceRecord]] = {}
    for record in records:
        by_student.setdefault(record.student_id, []).append(record)

    flagged = []
    for items in by_student.values():
        present = sum(1 for item in items if item.status == AttendanceStatus.present)
        percentage = attendance_percentage(present, len(items))
        if percentage >= AT_RISK_THRESHOLD:
            continue
        student = items[0].student
        course, _ = Counter(item.subject.code for item in items).most_common(1)[0]
        flagged.append(
            LowAttendanceStudent(
                student_id=student.id,
                enrollment_no=student.enrollment_no,
                name=student.name,
                department=student.department.name,
                attendance=percentage,
                course=course,
            )
        )
    flagged.sort(key=lambda item: (item.attendance, item.enrollment_no))
    return flagged[:limit]
