from datetime import date as date_type

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from campustrack.api.deps import get_current_user, get_db, require_roles
from campustrack.models.user import User, UserRole
from campustrack.schemas.academic import StudentOut, SubjectOut
from campustrack.schemas.attendance import (
    AttendanceOverview,
    AttendanceRecordOut,
    DailyAttendanceBlock,
    LowAttendanceStudent,
    MarkAttendanceRequest,
    MarkAttendanceResult,
    SubjectAttendanceSummary,
)
from campustrack.schemas.common import ActionResult, success_response
from campustrack.services import attendance as attendance_service
from campustrack.services.daily_attendance import get_daily_attendance_status

router = APIRouter()


@router.post("/mark", response_model=ActionResult[MarkAttendanceResult])
def mark_attendance(
    payload: MarkAttendanceRequest,
    current_user: User = Depends(require_roles(UserRole.faculty)),
    db: Session = Depends(get_db),
) -> dict:
    result = attendance_service.mark_attendance(db, current_user=current_user, payload=payload)
    return success_response(result, f"Attendance marked for {result['count']} records")


@router.get("/subjects", response_model=ActionResult[list[SubjectOut]])
def get_faculty_subjects(
    current_user: User = Depends(require_roles(UserRole.faculty)),
    db: Session = Depends(get_db),
) -> dict:
    return success_response(attendance_service.get_faculty_subjects(db, current_user=current_user))


@router.get("/subjects/{subject_id}", response_model=ActionResult[list[AttendanceRecordOut]])
def get_subject_attendance(
    subject_id: str,
    on_date: date_type = Query(alias="date"),
    current_user: User = Depends(require_roles(UserRole.faculty)),
    db: Session = Depends(get_db),
) -> dict:
    records = attendance_service.get_subject_attendance(
        db,
        current_user=current_user,
        subject_id=subject_id,
        on_date=on_date,
    )
    return success_response(records)


@router.get("/subjects/{subject_id}/students", response_model=ActionResult[list[StudentOut]])
def get_subject_students(
    subject_id: str,
    current_user: User = Depends(require_roles(UserRole.faculty)),
    db: Session = Depends(get_db),
) -> dict:
    students = attendance_service.get_subject_students(db, current_user=current_user, subject_id=subject_id)
    return success_response(students)


@router.get("/subjects/{subject_id}/summary", response_model=ActionResult[SubjectAttendanceSummary])
def get_subject_attendance_summary(
    subject_id: str,
    current_user: User = Depends(require_roles(UserRole.faculty)),
    db: Session = Depends(get_db),
) -> dict:
    summary = attendance_service.get_subject_attendance_summary(db, current_user=current_user, subject_id=subject_id)
    return success_response(summary)


@router.get("/daily/{student_id}", response_model=list[DailyAttendanceBlock])
def get_daily_attendance(
    student_id: str,
    on_date: date_type | None = Query(default=None, alias="date"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[DailyAttendanceBlock]:
    return get_daily_attendance_status(db, current_user=current_user, student_id=student_id, on_date=on_date)


@router.get("/overview", response_model=ActionResult[AttendanceOverview])
def get_attendance_overview(
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> dict:
    return success_response(attendance_service.get_attendance_overview(db, current_user=current_user))


@router.get("/low-attendance", response_model=ActionResult[list[LowAttendanceStudent]])
def get_low_attendance_students(
    limit: int = Query(default=10, ge=1, le=100),
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> dict:
    students = attendance_service.get_low_attendance_students(db, current_user=current_user, limit=limit)
    return success_response(students)
