from __future__ import annotations

from datetime import date
import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from campustrack.core.exceptions import ConflictError, ErrorCode, ResourceNotFoundError
from campustrack.models.academic import AcademicYear, Subject
from campustrack.models.profiles import FacultyProfile
from campustrack.models.timetable import TimetableEntry
from campustrack.models.user import User, UserRole
from campustrack.schemas.academic import FacultyOut, SemesterBrief, SubjectOut
from campustrack.schemas.common import ActivityLogOut
from campustrack.schemas.timetable import (
    FacultyTimetableOut,
    FacultyTimetableStats,
    ScheduledSubjectOut,
    TimetableEntryCreate,
    TimetableEntryOut,
    TimetableEntryUpdate,
    TimetableGridEntryOut,
)
from campustrack.services import faculty_assignments
from campustrack.services.access import ensure_role, require_faculty_profile, require_student_profile
from campustrack.services.attendance import timetable_day_for
from campustrack.services.audit import list_department_activity, log_activity
from campustrack.services.subject_colors import get_bulk_subject_colors
from campustrack.services.transactions import transaction

logger = logging.getLogger(__name__)

SLOT_FIELDS = ("day_of_week", "period", "department_id", "semester_id", "academic_year_id")
SLOT_CONFLICT_MESSAGE = "Slot already occupied. Please delete the existing entry first."
SLOT_CONFLICT_MARKERS = ("uq_timetables_slot", "timetables.day_of_week")


def _find_slot_occupant(db: Session, slot: dict, *, exclude_id: str | None = None) -> TimetableEntry | None:
    query = select(TimetableEntry).where(*(getattr(TimetableEntry, field) == slot[field] for field in SLOT_FIELDS))
    if exclude_id is not None:
        query = query.where(TimetableEntry.id != exclude_id)
    return db.execute(query).scalars().first()


def _ensure_subject_in_scope(db: Session, *, subject_id: str, department_id: str, semester_id: str) -> Subject:
    subject = db.execute(
        select(Subject).where(
            Subject.id == subject_id,
            Subject.department_id == department_id,
            Subject.semester_id == semester_id,
        )
    ).scalar_one_or_none()
    if subject is None:
        raise ResourceNotFoundError("Subject not found in this department/semester")
    return subject


def _ensure_academic_year(db: Session, academic_year_id: str) -> AcademicYear:
    academic_year = db.get(AcademicYear, academic_year_id)
    if academic_year is None:
        raise ResourceNotFoundError("Academic year not found")
    return academic_year


def _ensure_faculty_in_department(db: Session, *, faculty_id: str, department_id: str) -> FacultyProfile:
    faculty = db.execute(
        select(FacultyProfile).where(
            FacultyProfile.id == faculty_id,
            FacultyProfile.department_id == department_id,
        )
    ).scalar_one_or_none()
    if faculty is None:
        raise ResourceNotFoundError("Faculty not found in this department")
    return faculty


def _with_colors(db: Session, entries: list[TimetableEntry]) -> list[TimetableGridEntryOut]:
    rows = [TimetableEntryOut.model_validate(entry) for entry in entries]
    colors = get_bulk_subject_colors(db, [row.subject_id for row in rows])
    return [TimetableGridEntryOut(**row.model_dump(), subject_color=colors[row.subject_id]) for row in rows]


def create_timetable_entry(db: Session, *, current_user: User, payload: TimetableEntryCreate) -> TimetableEntry:
    ensure_role(current_user, UserRole.admin)
    data = payload.model_dump()

    with transaction(
        db,
        failure_message="Failed to create timetable entry",
        failure_code=ErrorCode.TIMETABLE_FAILED,
        conflict_message=SLOT_CONFLICT_MESSAGE,
        conflict_markers=SLOT_CONFLICT_MARKERS,
    ):
        if _find_slot_occupant(db, data) is not None:
            raise ConflictError(SLOT_CONFLICT_MESSAGE)
        _ensure_subject_in_scope(
            db,
            subject_id=payload.subject_id,
            department_id=payload.department_id,
            semester_id=payload.semester_id,
        )
        _ensure_faculty_in_department(db, faculty_id=payload.faculty_id, department_id=payload.department_id)
        _ensure_academic_year(db, payload.academic_year_id)

        entry = TimetableEntry(**data)
        db.add(entry)
        db.flush()
        faculty_assignments.grant(db, faculty_id=entry.faculty_id, subject_id=entry.subject_id)
        log_activity(
            db,
            user=current_user,
            action="timetable.entry.create",
            entity_type="timetable",
            entity_id=entry.id,
            department_id=entry.department_id,
            details={field: data[field] for field in (*SLOT_FIELDS, "subject_id", "faculty_id")},
        )

    db.refresh(entry)
    return entry


def update_timetable_entry(
    db: Session,
    *,
    current_user: User,
    entry_id: str,
    payload: TimetableEntryUpdate,
) -> TimetableEntry:
    ensure_role(current_user, UserRole.admin)
    changes = payload.model_dump(exclude_unset=True)

    with transaction(
        db,
        failure_message="Failed to update timetable entry",
        failure_code=ErrorCode.TIMETABLE_FAILED,
        conflict_message=SLOT_CONFLICT_MESSAGE,
        conflict_markers=SLOT_CONFLICT_MARKERS,
    ):
        entry = db.get(TimetableEntry, entry_id)
        if entry is None:
            raise ResourceNotFoundError("Timetable entry not found")

        old_pair = (entry.faculty_id, entry.subject_id)
        merged = {field: changes.get(field, getattr(entry, field)) for field in (*SLOT_FIELDS, "subject_id", "faculty_id")}

        if any(field in changes for field in SLOT_FIELDS):
            if _find_slot_occupant(db, merged, exclude_id=entry.id) is not None:
                raise ConflictError(SLOT_CONFLICT_MESSAGE)
        if {"subject_id", "department_id", "semester_id"} & changes.keys():
            _ensure_subject_in_scope(
                db,
                subject_id=merged["subject_id"],
                department_id=merged["department_id"],
                semester_id=merged["semester_id"],
            )
        if {"faculty_id", "department_id"} & changes.keys():
            _ensure_faculty_in_department(db, faculty_id=merged["faculty_id"], department_id=merged["department_id"])
        if "academic_year_id" in changes:
            _ensure_academic_year(db, merged["academic_year_id"])

        for key, value in changes.items():
            setattr(entry, key, value)

        new_pair = (entry.faculty_id, entry.subject_id)
        if new_pair != old_pair:
            faculty_assignments.grant(db, faculty_id=new_pair[0], subject_id=new_pair[1])
            faculty_assignments.release_if_unreferenced(db, faculty_id=old_pair[0], subject_id=old_pair[1])

        if changes:
            log_activity(
                db,
                user=current_user,
                action="timetable.entry.update",
                entity_type="timetable",
                entity_id=entry.id,
                department_id=entry.department_id,
                details={"changes": sorted(changes)},
            )

    db.refresh(entry)
    return entry


def delete_timetable_entry(db: Session, *, current_user: User, entry_id: str) -> dict[str, str]:
    ensure_role(current_user, UserRole.admin)

    with transaction(db, failure_message="Failed to delete timetable entry", failure_code=ErrorCode.TIMETABLE_FAILED):
        entry = db.get(TimetableEntry, entry_id)
        if entry is None:
            raise ResourceNotFoundError("Timetable entry not found")
        faculty_id, subject_id, department_id = entry.faculty_id, entry.subject_id, entry.department_id
        db.delete(entry)
        faculty_assignments.release_if_unreferenced(db, faculty_id=faculty_id, subject_id=subject_id)
        log_activity(
            db,
            user=current_user,
            action="timetable.entry.delete",
            entity_type="timetable",
            entity_id=entry_id,
            department_id=department_id,
            details={"faculty_id": faculty_id, "subject_id": subject_id},
        )

    return {"id": entry_id}


def get_department_semester_timetable(
    db: Session,
    *,
    current_user: User,
    department_id: str,
    semester_id: str,
) -> list[TimetableGridEntryOut]:
    ensure_role(current_user, UserRole.admin)
    entries = list(
        db.execute(
            select(TimetableEntry)
            .where(TimetableEntry.department_id == department_id, TimetableEntry.semester_id == semester_id)
            .order_by(TimetableEntry.day_of_week.asc(), TimetableEntry.period.asc())
        ).scalars()
    )
    return _with_colors(db, entries)


def list_department_subjects(
    db: Session,
    *,
    current_user: User,
    department_id: str,
    semester_id: str | None = None,
) -> list[SubjectOut]:
    ensure_role(current_user, UserRole.admin)
    query = select(Subject).where(Subject.department_id == department_id)
    if semester_id:
        query = query.where(Subject.semester_id == semester_id)
    subjects = db.execute(query.order_by(Subject.code.asc())).scalars()
    return [SubjectOut.model_validate(subject) for subject in subjects]


def list_department_faculty(db: Session, *, current_user: User, department_id: str) -> list[FacultyOut]:
    ensure_role(current_user, UserRole.admin)
    faculty = db.execute(
        select(FacultyProfile)
        .join(User, User.id == FacultyProfile.user_id)
        .where(
            FacultyProfile.department_id == department_id,
            User.is_active.is_(True),
            User.deleted_at.is_(None),
        )
        .order_by(User.name.asc())
    ).scalars()
    return [FacultyOut.model_validate(item) for item in faculty]


def get_faculty_timetable(
    db: Session,
    *,
    current_user: User,
    day_of_week: int | None = None,
) -> list[TimetableGridEntryOut]:
    profile = require_faculty_profile(db, current_user)
    query = select(TimetableEntry).where(TimetableEntry.faculty_id == profile.id)
    if day_of_week is not None:
        query = query.where(TimetableEntry.day_of_week == day_of_week)
    entries = list(
        db.execute(query.order_by(TimetableEntry.day_of_week.asc(), TimetableEntry.period.asc())).scalars()
    )
    return _with_colors(db, entries)


def get_student_timetable(db: Session, *, current_user: User) -> list[TimetableGridEntryOut]:
    profile = require_student_profile(db, current_user)
    entries = list(
        db.execute(
            select(TimetableEntry)
            .where(
                TimetableEntry.department_id == profile.department_id,
                TimetableEntry.semester_id == profile.semester_id,
            )
            .order_by(TimetableEntry.day_of_week.asc(), TimetableEntry.period.asc())
        ).scalars()
    )
    return _with_colors(db, entries)


def get_today_classes(db: Session, *, current_user: User, today: date | None = None) -> list[TimetableGridEntryOut]:
    require_faculty_profile(db, current_user)
    day_of_week = timetable_day_for(today or date.today())
    if day_of_week is None:
        return []
    return get_faculty_timetable(db, current_user=current_user, day_of_week=day_of_week)


def get_subjects_for_date(db: Session, *, current_user: User, on_date: date) -> list[ScheduledSubjectOut]:
    """Subjects the caller teaches on ``on_date``, one item per subject with all of its periods.

    This is the lookup behind the attendance form; Sunday has no classes and gives an empty list.
    """
    profile = require_faculty_profile(db, current_user)
    day_of_week = timetable_day_for(on_date)
    if day_of_week is None:
        return []

    entries = db.execute(
        select(TimetableEntry)
        .where(TimetableEntry.faculty_id == profile.id, TimetableEntry.day_of_week == day_of_week)
        .order_by(TimetableEntry.period.asc())
    ).scalars()
    grouped: dict[str, ScheduledSubjectOut] = {}
    for entry in entries:
        scheduled = grouped.get(entry.subject_id)
        if scheduled is not None:
            scheduled.periods.append(entry.period)
            continue
        grouped[entry.subject_id] = ScheduledSubjectOut(
            **SubjectOut.model_validate(entry.subject).model_dump(),
            semester=SemesterBrief.model_validate(entry.semester),
            periods=[entry.period],
            room=entry.room,
        )
    return list(grouped.values())


def get_faculty_unified_timetable(
    db: Session,
    *,
    current_user: User,
    faculty_id: str,
    department_id: str,
) -> FacultyTimetableOut:
    ensure_role(current_user, UserRole.admin)
    faculty = _ensure_faculty_in_department(db, faculty_id=faculty_id, department_id=department_id)
    entries = list(
        db.execute(
            select(TimetableEntry)
            .where(TimetableEntry.faculty_id == faculty_id, TimetableEntry.department_id == department_id)
            .order_by(TimetableEntry.day_of_week.asc(), TimetableEntry.period.asc())
        ).scalars()
    )
    return FacultyTimetableOut(faculty=FacultyOut.model_validate(faculty), timetable=_with_colors(db, entries))


def get_faculty_timetable_stats(
    db: Session,
    *,
    current_user: User,
    faculty_id: str,
    department_id: str,
) -> FacultyTimetableStats:
    ensure_role(current_user, UserRole.admin)
    _ensure_faculty_in_department(db, faculty_id=faculty_id, department_id=department_id)
    total_periods, total_subjects, total_semesters = db.execute(
        select(
            func.count(TimetableEntry.id),
            func.count(func.distinct(TimetableEntry.subject_id)),
            func.count(func.distinct(TimetableEntry.semester_id)),
        ).where(TimetableEntry.faculty_id == faculty_id, TimetableEntry.department_id == department_id)
    ).one()
    return FacultyTimetableStats(
        total_periods=total_periods,
        total_subjects=total_subjects,
        total_semesters=total_semesters,
    )


def get_department_activity(
    db: Session,
    *,
    current_user: User,
    department_id: str,
    limit: int = 50,
) -> list[ActivityLogOut]:
    ensure_role(current_user, UserRole.admin)
    return [ActivityLogOut.model_validate(item) for item in list_department_activity(db, department_id, limit=limit)]
