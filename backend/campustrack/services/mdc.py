"""Multi-disciplinary course (MDC) rosters and their attendance track.

An MDC course is hosted by ``mdc_department`` and taken by a hand-picked
roster of ``home_department`` students. Faculty assignment belongs to the
hosting side, so hosting and home lookups are kept as separate functions.
"""

from __future__ import annotations

from datetime import date as date_type, datetime, timezone
import logging

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from campustrack.core.exceptions import DomainRuleError, ErrorCode, ForbiddenError, ResourceNotFoundError
from campustrack.models.academic import Department, Semester, Subject
from campustrack.models.mdc import MDCAttendanceRecord, MDCCourse
from campustrack.models.profiles import FacultyProfile, StudentProfile
from campustrack.models.user import User, UserRole
from campustrack.schemas.mdc import (
    DepartmentBrief,
    HostedMDCCourse,
    MDCAttendanceSubmit,
    MDCCourseOut,
    MDCCourseSummary,
    MDCCourseUpsert,
    MDCStudentOut,
)
from campustrack.services.access import ensure_role, require_faculty_profile
from campustrack.services.attendance import timetable_day_for
from campustrack.services.audit import log_activity
from campustrack.services.transactions import transaction

logger = logging.getLogger(__name__)


def _summary(course: MDCCourse) -> MDCCourseSummary:
    return MDCCourseSummary(
        id=course.id,
        course_name=course.course_name,
        year=course.year,
        semester=course.semester,
        student_count=len(course.student_ids or []),
        home_department=DepartmentBrief.model_validate(course.home_department),
        mdc_department=DepartmentBrief.model_validate(course.mdc_department),
    )


def _ensure_department(db: Session, department_id: str) -> Department:
    department = db.get(Department, department_id)
    if department is None:
        raise ResourceNotFoundError("Department not found")
    return department


def _ensure_faculty(db: Session, faculty_id: str) -> FacultyProfile:
    faculty = db.get(FacultyProfile, faculty_id)
    if faculty is None:
        raise ResourceNotFoundError("Faculty not found")
    return faculty


def _get_assigned_course(db: Session, *, faculty: FacultyProfile, course_id: str) -> MDCCourse:
    course = db.get(MDCCourse, course_id)
    if course is None:
        raise ResourceNotFoundError("MDC course not found")
    if course.faculty_id != faculty.id:
        raise ForbiddenError("You are not assigned to this MDC course")
    return course


def _find_hosted_course(db: Session, *, department_id: str, semester: int) -> MDCCourse | None:
    return db.execute(
        select(MDCCourse)
        .where(MDCCourse.mdc_department_id == department_id, MDCCourse.semester == semester)
        .order_by(MDCCourse.year.asc(), MDCCourse.home_department_id.asc())
    ).scalars().first()


def create_or_update_mdc_course(db: Session, *, current_user: User, payload: MDCCourseUpsert) -> dict[str, str]:
    ensure_role(current_user, UserRole.admin)

    with transaction(
        db,
        failure_message="Failed to save MDC course",
        failure_code=ErrorCode.MDC_FAILED,
        conflict_message="An MDC course already exists for this department, year and semester",
    ):
        _ensure_department(db, payload.home_department_id)
        _ensure_department(db, payload.mdc_department_id)
        if payload.faculty_id is not None:
            _ensure_faculty(db, payload.faculty_id)

        known_students = set(
            db.execute(select(StudentProfile.id).where(StudentProfile.id.in_(payload.student_ids))).scalars()
        )
        if len(known_students) != len(payload.student_ids):
            raise DomainRuleError("Some selected students were not found", ErrorCode.INVALID_STUDENTS)

        course = db.execute(
            select(MDCCourse).where(
                MDCCourse.home_department_id == payload.home_department_id,
                MDCCourse.mdc_department_id == payload.mdc_department_id,
                MDCCourse.year == payload.year,
                MDCCourse.semester == payload.semester,
            )
        ).scalar_one_or_none()
        created = course is None
        if course is None:
            course = MDCCourse(
                home_department_id=payload.home_department_id,
                mdc_department_id=payload.mdc_department_id,
                year=payload.year,
                semester=payload.semester,
            )
            db.add(course)
        course.course_name = payload.course_name
        course.student_ids = list(payload.student_ids)
        course.faculty_id = payload.faculty_id
        db.flush()

        log_activity(
            db,
            user=current_user,
            action="mdc.course.create" if created else "mdc.course.update",
            entity_type="mdc_course",
            entity_id=course.id,
            department_id=course.mdc_department_id,
            details={"student_count": len(payload.student_ids), "faculty_id": payload.faculty_id},
        )
        course_id = course.id

    return {"id": course_id}


def delete_mdc_course(db: Session, *, current_user: User, course_id: str) -> dict[str, str]:
    ensure_role(current_user, UserRole.admin)

    with transaction(db, failure_message="Failed to delete MDC course", failure_code=ErrorCode.MDC_FAILED):
        course = db.get(MDCCourse, course_id)
        if course is None:
            raise ResourceNotFoundError("MDC course not found")
        db.execute(delete(MDCAttendanceRecord).where(MDCAttendanceRecord.mdc_course_id == course_id))
        db.delete(course)
        log_activity(
            db,
            user=current_user,
            action="mdc.course.delete",
            entity_type="mdc_course",
            entity_id=course_id,
            department_id=course.mdc_department_id,
        )

    return {"id": course_id}


def update_mdc_course_faculty(
    db: Session,
    *,
    current_user: User,
    department_id: str,
    semester: int,
    faculty_id: str,
) -> MDCCourse:
    """Reassign faculty on the course hosted by ``department_id`` in ``semester``."""
    ensure_role(current_user, UserRole.admin)

    with transaction(db, failure_message="Failed to update MDC faculty", failure_code=ErrorCode.MDC_FAILED):
        course = _find_hosted_course(db, department_id=department_id, semester=semester)
        if course is None:
            raise ResourceNotFoundError("No MDC course found for this department and semester")
        _ensure_faculty(db, faculty_id)
        course.faculty_id = faculty_id
        log_activity(
            db,
            user=current_user,
            action="mdc.course.faculty",
            entity_type="mdc_course",
            entity_id=course.id,
            department_id=course.mdc_department_id,
            details={"faculty_id": faculty_id},
        )

    db.refresh(course)
    return course


def get_hosted_mdc_course(
    db: Session,
    *,
    current_user: User,
    department_id: str,
    semester: int,
) -> HostedMDCCourse | None:
    """Course details used to auto-fill the hosting department's timetable."""
    ensure_role(current_user, UserRole.admin)
    _ensure_department(db, department_id)

    course = _find_hosted_course(db, department_id=department_id, semester=semester)
    faculty_id = course.faculty_id if course is not None else None
    faculty_name = course.faculty.name if course is not None and course.faculty is not None else None

    subject = db.execute(
        select(Subject)
        .join(Semester, Semester.id == Subject.semester_id)
        .where(
            Subject.department_id == department_id,
            Subject.is_mdc.is_(True),
            Semester.number == semester,
        )
        .order_by(Subject.code.asc())
    ).scalars().first()
    if subject is not None:
        return HostedMDCCourse(
            course_name=subject.name,
            subject_id=subject.id,
            faculty_id=faculty_id,
            faculty_name=faculty_name,
        )
    if course is not None:
        return HostedMDCCourse(
            course_name=course.course_name,
            subject_id=None,
            faculty_id=faculty_id,
            faculty_name=faculty_name,
        )
    return None


def list_home_mdc_courses(db: Session, *, current_user: User, department_id: str) -> list[MDCCourseOut]:
    """Courses taken by ``department_id`` students, whichever department hosts them."""
    ensure_role(current_user, UserRole.admin)
    courses = db.execute(
        select(MDCCourse)
        .where(MDCCourse.home_department_id == department_id)
        .order_by(MDCCourse.year.asc(), MDCCourse.semester.asc())
    ).scalars()
    return [MDCCourseOut.model_validate(course) for course in courses]


def get_mdc_courses_for_faculty(db: Session, *, current_user: User) -> list[MDCCourseSummary]:
    faculty = require_faculty_profile(db, current_user)
    courses = db.execute(
        select(MDCCourse)
        .where(MDCCourse.faculty_id == faculty.id)
        .order_by(MDCCourse.year.asc(), MDCCourse.semester.asc())
    ).scalars()
    return [_summary(course) for course in courses]


def get_mdc_students(db: Session, *, current_user: User, course_id: str) -> list[MDCStudentOut]:
    faculty = require_faculty_profile(db, current_user)
    course = _get_assigned_course(db, faculty=faculty, course_id=course_id)
    if not course.student_ids:
        return []
    students = db.execute(
        select(StudentProfile)
        .join(User, User.id == StudentProfile.user_id)
        .where(StudentProfile.id.in_(course.student_ids))
        .order_by(User.name.asc())
    ).scalars()
    return [MDCStudentOut.model_validate(student) for student in students]


def submit_mdc_attendance(db: Session, *, current_user: User, payload: MDCAttendanceSubmit) -> None:
    faculty = require_faculty_profile(db, current_user)

    with transaction(db, failure_message="Failed to submit attendance", failure_code=ErrorCode.MDC_FAILED):
        course = _get_assigned_course(db, faculty=faculty, course_id=payload.mdc_course_id)

        if timetable_day_for(payload.date) is None:
            raise DomainRuleError("No classes on Sunday", ErrorCode.INVALID_DAY)

        roster = set(course.student_ids or [])
        student_ids = list(dict.fromkeys(record.student_id for record in payload.records))
        if any(student_id not in roster for student_id in student_ids):
            raise DomainRuleError("Some students are not enrolled in this MDC course", ErrorCode.INVALID_STUDENTS)

        existing = {
            record.student_id: record
            for record in db.execute(
                select(MDCAttendanceRecord).where(
                    MDCAttendanceRecord.mdc_course_id == course.id,
                    MDCAttendanceRecord.date == payload.date,
                    MDCAttendanceRecord.period == payload.period,
                    MDCAttendanceRecord.student_id.in_(student_ids),
                )
            ).scalars()
        }
        now = datetime.now(timezone.utc)
        for mark in payload.records:
            record = existing.get(mark.student_id)
            if record is None:
                record = MDCAttendanceRecord(
                    mdc_course_id=course.id,
                    student_id=mark.student_id,
                    date=payload.date,
                    period=payload.period,
                    status=mark.status,
                    marked_by=faculty.id,
                )
                db.add(record)
                existing[mark.student_id] = record
            else:
                record.status = mark.status
                record.marked_by = faculty.id
                record.updated_at = now

    logger.info(
        "Faculty %s submitted %d MDC attendance records for course %s period %d on %s",
        faculty.id,
        len(payload.records),
        payload.mdc_course_id,
        payload.period,
        payload.date.isoformat(),
    )


def get_existing_mdc_attendance(
    db: Session,
    *,
    current_user: User,
    course_id: str,
    on_date: date_type,
    period: int,
) -> dict[str, dict[str, str]]:
    faculty = require_faculty_profile(db, current_user)
    course = _get_assigned_course(db, faculty=faculty, course_id=course_id)
    records = db.execute(
        select(MDCAttendanceRecord).where(
            MDCAttendanceRecord.mdc_course_id == course.id,
            MDCAttendanceRecord.date == on_date,
            MDCAttendanceRecord.period == period,
        )
    ).scalars()
    return {record.student_id: {"status": record.status.value} for record in records}
