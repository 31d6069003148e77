"""Batch semester progression with a read-only preview mode.

``progress_students`` always derives the batch from current data. A preview
returns ``ProgressionPreview`` and writes nothing; an execution recomputes the
same preview inside one transaction, applies it and returns
``ProgressionExecuted``. A client-supplied preview is never trusted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from campustrack.core.exceptions import DomainRuleError, ErrorCode, ResourceNotFoundError
from campustrack.models.academic import GRADUATING_SEMESTER_NUMBER, Semester
from campustrack.models.profiles import StudentProfile, StudentSemesterHistory
from campustrack.models.user import User, UserRole
from campustrack.schemas.academic import SemesterBrief, SemesterOut
from campustrack.schemas.progression import (
    ProgressionCriteria,
    ProgressionExecuted,
    ProgressionPreview,
    ProgressionStats,
    SemesterCount,
    SemesterHistoryOut,
    StudentProgressionPreview,
    StudentSemesterUpdate,
    StudentSemesterUpdateResult,
)
from campustrack.services.access import ensure_role
from campustrack.services.audit import log_activity
from campustrack.services.transactions import transaction

logger = logging.getLogger(__name__)

PROGRESSION_FAILED_MESSAGE = "Failed to progress students. No changes were made."
GRADUATION_REASON = f"Graduation - Completed Semester {GRADUATING_SEMESTER_NUMBER}"


@dataclass
class _Batch:
    preview: list[StudentProgressionPreview] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    semesters_by_number: dict[int, Semester] = field(default_factory=dict)

    @property
    def graduating(self) -> int:
        return sum(1 for item in self.preview if item.is_graduating)


def _select_batch(db: Session, criteria: ProgressionCriteria) -> _Batch:
    batch = _Batch()
    semesters = list(db.execute(select(Semester).order_by(Semester.number.asc())).scalars())
    batch.semesters_by_number = {semester.number: semester for semester in semesters}

    query = (
        select(StudentProfile)
        .join(User, User.id == StudentProfile.user_id)
        .where(StudentProfile.semester_id.in_(criteria.current_semester_ids))
        .order_by(StudentProfile.enrollment_no.asc())
    )
    if criteria.department_id:
        query = query.where(StudentProfile.department_id == criteria.department_id)
    if criteria.exclude_student_ids:
        query = query.where(StudentProfile.id.not_in(criteria.exclude_student_ids))
    students = list(db.execute(query).scalars())

    active = [student for student in students if student.user.is_active and student.user.deleted_at is None]
    skipped = len(students) - len(active)
    if skipped:
        batch.warnings.append(f"{skipped} inactive students were automatically excluded")
        logger.warning("Progression excluded %d inactive or deleted students", skipped)

    for student in active:
        current = student.semester
        is_graduating = current.number == GRADUATING_SEMESTER_NUMBER
        next_semester = None if is_graduating else batch.semesters_by_number.get(current.number + 1)
        if not is_graduating and next_semester is None:
            message = (
                f"Student {student.enrollment_no} ({student.name}) cannot progress: "
                f"Semester {current.number + 1} not found"
            )
            batch.warnings.append(message)
            logger.warning(message)
            continue
        batch.preview.append(
            StudentProgressionPreview(
                student_id=student.id,
                name=student.name,
                enrollment_no=student.enrollment_no,
                current_semester=SemesterBrief.model_validate(current),
                next_semester=SemesterBrief.model_validate(next_semester) if next_semester is not None else None,
                admission_year=student.admission_year,
                is_graduating=is_graduating,
            )
        )
    return batch


def _apply_batch(db: Session, *, batch: _Batch, admin: User) -> int:
    progressed = 0
    for item in batch.preview:
        if item.is_graduating:
            db.add(
                StudentSemesterHistory(
                    student_id=item.student_id,
                    semester_id=item.current_semester.id,
                    changed_by=admin.id,
                    reason=GRADUATION_REASON,
                )
            )
            continue

        next_semester = batch.semesters_by_number[item.next_semester.number]
        student = db.get(StudentProfile, item.student_id)
        student.semester_id = next_semester.id
        student.current_year = next_semester.academic_year.year
        db.add(
            StudentSemesterHistory(
                student_id=item.student_id,
                semester_id=next_semester.id,
                changed_by=admin.id,
                reason=f"Semester Progression: {item.current_semester.name} -> {next_semester.name}",
            )
        )
        progressed += 1
    return progressed


def progress_students(
    db: Session,
    *,
    current_user: User,
    criteria: ProgressionCriteria,
    dry_run: bool = True,
) -> ProgressionPreview | ProgressionExecuted:
    ensure_role(current_user, UserRole.admin)

    if dry_run:
        batch = _select_batch(db, criteria)
        return ProgressionPreview(
            affected=len(batch.preview),
            graduating=batch.graduating,
            preview=batch.preview,
            warnings=batch.warnings,
        )

    with transaction(db, failure_message=PROGRESSION_FAILED_MESSAGE, failure_code=ErrorCode.PROGRESSION_FAILED):
        batch = _select_batch(db, criteria)
        progressed = _apply_batch(db, batch=batch, admin=current_user)
        log_activity(
            db,
            user=current_user,
            action="progression.execute",
            entity_type="student_profile",
            department_id=criteria.department_id,
            details={
                "semester_ids": criteria.current_semester_ids,
                "department_id": criteria.department_id,
                "affected": len(batch.preview),
                "progressed": progressed,
                "graduating": batch.graduating,
            },
        )

    logger.info(
        "Progression executed: %d affected, %d progressed, %d graduating",
        len(batch.preview),
        progressed,
        batch.graduating,
    )
    return ProgressionExecuted(
        affected=len(batch.preview),
        progressed=progressed,
        graduating=batch.graduating,
        preview=batch.preview,
        warnings=batch.warnings,
    )


def get_progression_stats(db: Session, *, current_user: User) -> ProgressionStats:
    ensure_role(current_user, UserRole.admin)
    rows = db.execute(
        select(Semester.name, Semester.number, func.count(StudentProfile.id))
        .join(StudentProfile, StudentProfile.semester_id == Semester.id)
        .join(User, User.id == StudentProfile.user_id)
        .where(User.is_active.is_(True), User.deleted_at.is_(None))
        .group_by(Semester.id, Semester.name, Semester.number)
        .order_by(Semester.number.asc())
    ).all()
    distribution = [SemesterCount(semester=name, count=count, semester_number=number) for name, number, count in rows]
    pending = sum(item.count for item in distribution if item.semester_number == GRADUATING_SEMESTER_NUMBER)
    return ProgressionStats(semester_distribution=distribution, pending_graduations=pending)


def update_student_semester(
    db: Session,
    *,
    current_user: User,
    student_id: str,
    payload: StudentSemesterUpdate,
) -> StudentSemesterUpdateResult:
    ensure_role(current_user, UserRole.admin)

    with transaction(
        db,
        failure_message="Failed to update student semester",
        failure_code=ErrorCode.SEMESTER_UPDATE_FAILED,
    ):
        student = db.get(StudentProfile, student_id)
        if student is None:
            raise ResourceNotFoundError("Student not found")
        if student.user.deleted_at is not None:
            raise DomainRuleError("Cannot update deleted student", ErrorCode.DELETED)
        new_semester = db.get(Semester, payload.semester_id)
        if new_semester is None:
            raise DomainRuleError("Invalid semester selected", ErrorCode.INVALID_SEMESTER)
        if student.semester_id == new_semester.id:
            raise DomainRuleError("Student is already in this semester", ErrorCode.NO_CHANGE)

        previous_name = student.semester.name
        student.semester_id = new_semester.id
        student.current_year = new_semester.academic_year.year
        db.add(
            StudentSemesterHistory(
                student_id=student.id,
                semester_id=new_semester.id,
                changed_by=current_user.id,
                reason=payload.reason or f"Manual Update: {previous_name} -> {new_semester.name}",
            )
        )
        log_activity(
            db,
            user=current_user,
            action="student.semester.update",
            entity_type="student_profile",
            entity_id=student.id,
            department_id=student.department_id,
            details={"semester_id": new_semester.id},
        )
        new_name = new_semester.name

    return StudentSemesterUpdateResult(student_id=student_id, new_semester=new_name)


def get_student_semester_history(db: Session, *, current_user: User, student_id: str) -> list[SemesterHistoryOut]:
    ensure_role(current_user, UserRole.admin)
    history = db.execute(
        select(StudentSemesterHistory)
        .where(StudentSemesterHistory.student_id == student_id)
        .order_by(StudentSemesterHistory.changed_at.desc())
    ).scalars()
    return [
        SemesterHistoryOut(
            semester_name=item.semester.name,
            changed_at=item.changed_at,
            changed_by=item.admin.name,
            reason=item.reason,
        )
        for item in history
    ]


def list_semesters(db: Session, *, current_user: User) -> list[SemesterOut]:
    ensure_role(current_user, UserRole.admin)
    semesters = db.execute(select(Semester).order_by(Semester.number.asc())).scalars()
    return [SemesterOut.model_validate(semester) for semester in semesters]
