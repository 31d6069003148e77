from datetime import date as date_type

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from campustrack.api.deps import get_db, require_roles
from campustrack.models.user import User, UserRole
from campustrack.schemas.attendance import DayAttendance, SemesterAttendanceSummary, StudentSubjectAttendance
from campustrack.schemas.common import ActionResult, success_response
from campustrack.schemas.progression import SemesterHistoryOut, StudentSemesterUpdate, StudentSemesterUpdateResult
from campustrack.services import attendance as attendance_service
from campustrack.services import progression as progression_service

router = APIRouter()


@router.get("/students/me/attendance", response_model=ActionResult[SemesterAttendanceSummary])
def get_my_semester_attendance(
    current_user: User = Depends(require_roles(UserRole.student)),
    db: Session = Depends(get_db),
) -> dict:
    return success_response(attendance_service.get_semester_attendance_summary(db, current_user=current_user))


@router.get("/students/me/attendance/subjects/{subject_id}", response_model=ActionResult[StudentSubjectAttendance])
def get_my_subject_attendance(
    subject_id: str,
    current_user: User = Depends(require_roles(UserRole.student)),
    db: Session = Depends(get_db),
) -> dict:
    result = attendance_service.get_student_subject_attendance(db, current_user=current_user, subject_id=subject_id)
    return success_response(result)


@router.get("/students/me/attendance/days/{on_date}", response_model=ActionResult[DayAttendance | None])
def get_my_attendance_by_date(
    on_date: date_type,
    current_user: User = Depends(require_roles(UserRole.student)),
    db: Session = Depends(get_db),
) -> dict:
    return success_response(attendance_service.get_attendance_by_date(db, current_user=current_user, on_date=on_date))


@router.get("/students/me/attendance/range", response_model=ActionResult[list[DayAttendance]])
def get_my_attendance_range(
    start: date_type = Query(),
    end: date_type = Query(),
    current_user: User = Depends(require_roles(UserRole.student)),
    db: Session = Depends(get_db),
) -> dict:
    days = attendance_service.get_attendance_range(db, current_user=current_user, start=start, end=end)
    return success_response(days)


@router.put("/students/{student_id}/semester", response_model=ActionResult[StudentSemesterUpdateResult])
def update_student_semester(
    student_id: str,
    payload: StudentSemesterUpdate,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> dict:
    result = progression_service.update_student_semester(
        db,
        current_user=current_user,
        student_id=student_id,
        payload=payload,
    )
    return success_response(result, f"Student semester updated to {result.new_semester}")


@router.get("/students/{student_id}/semester-history", response_model=ActionResult[list[SemesterHistoryOut]])
def get_student_semester_history(
    student_id: str,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> dict:
    history = progression_service.get_student_semester_history(db, current_user=current_user, student_id=student_id)
    return success_response(history)
