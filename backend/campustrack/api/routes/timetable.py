from datetime import date as date_type

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from campustrack.api.deps import get_current_user, get_db, require_roles
from campustrack.models.user import User, UserRole
from campustrack.schemas.academic import FacultyOut, SubjectOut
from campustrack.schemas.common import ActionResult, ActivityLogOut, IdOut, success_response
from campustrack.schemas.timetable import (
    FacultyTimetableOut,
    FacultyTimetableStats,
    ScheduledSubjectOut,
    TimetableEntryCreate,
    TimetableEntryOut,
    TimetableEntryUpdate,
    TimetableGridEntryOut,
)
from campustrack.services import timetable as timetable_service

router = APIRouter()


@router.post("/entries", response_model=ActionResult[TimetableEntryOut], status_code=status.HTTP_201_CREATED)
def create_timetable_entry(
    payload: TimetableEntryCreate,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> dict:
    entry = timetable_service.create_timetable_entry(db, current_user=current_user, payload=payload)
    return success_response(TimetableEntryOut.model_validate(entry), "Timetable entry created successfully")


@router.patch("/entries/{entry_id}", response_model=ActionResult[TimetableEntryOut])
def update_timetable_entry(
    entry_id: str,
    payload: TimetableEntryUpdate,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> dict:
    entry = timetable_service.update_timetable_entry(db, current_user=current_user, entry_id=entry_id, payload=payload)
    return success_response(TimetableEntryOut.model_validate(entry), "Timetable entry updated successfully")


@router.delete("/entries/{entry_id}", response_model=ActionResult[IdOut])
def delete_timetable_entry(
    entry_id: str,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> dict:
    deleted = timetable_service.delete_timetable_entry(db, current_user=current_user, entry_id=entry_id)
    return success_response(deleted, "Timetable entry deleted successfully")


@router.get(
    "/departments/{department_id}/semesters/{semester_id}",
    response_model=ActionResult[list[TimetableGridEntryOut]],
)
def get_department_semester_timetable(
    department_id: str,
    semester_id: str,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> dict:
    entries = timetable_service.get_department_semester_timetable(
        db,
        current_user=current_user,
        department_id=department_id,
        semester_id=semester_id,
    )
    return success_response(entries)


@router.get("/departments/{department_id}/subjects", response_model=ActionResult[list[SubjectOut]])
def list_department_subjects(
    department_id: str,
    semester_id: str | None = Query(default=None),
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> dict:
    subjects = timetable_service.list_department_subjects(
        db,
        current_user=current_user,
        department_id=department_id,
        semester_id=semester_id,
    )
    return success_response(subjects)


@router.get("/departments/{department_id}/faculty", response_model=ActionResult[list[FacultyOut]])
def list_department_faculty(
    department_id: str,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> dict:
    faculty = timetable_service.list_department_faculty(db, current_user=current_user, department_id=department_id)
    return success_response(faculty)


@router.get("/faculty/me", response_model=ActionResult[list[TimetableGridEntryOut]])
def get_my_faculty_timetable(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    return success_response(timetable_service.get_faculty_timetable(db, current_user=current_user))


@router.get("/student/me", response_model=ActionResult[list[TimetableGridEntryOut]])
def get_my_student_timetable(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    return success_response(timetable_service.get_student_timetable(db, current_user=current_user))


@router.get("/faculty/me/today", response_model=ActionResult[list[TimetableGridEntryOut]])
def get_today_classes(
    current_user: User = Depends(require_roles(UserRole.faculty)),
    db: Session = Depends(get_db),
) -> dict:
    return success_response(timetable_service.get_today_classes(db, current_user=current_user))


@router.get("/faculty/me/subjects", response_model=ActionResult[list[ScheduledSubjectOut]])
def get_subjects_for_date(
    on_date: date_type = Query(alias="date"),
    current_user: User = Depends(require_roles(UserRole.faculty)),
    db: Session = Depends(get_db),
) -> dict:
    subjects = timetable_service.get_subjects_for_date(db, current_user=current_user, on_date=on_date)
    return success_response(subjects)


@router.get(
    "/departments/{department_id}/faculty/{faculty_id}",
    response_model=ActionResult[FacultyTimetableOut],
)
def get_faculty_unified_timetable(
    department_id: str,
    faculty_id: str,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> dict:
    timetable = timetable_service.get_faculty_unified_timetable(
        db,
        current_user=current_user,
        faculty_id=faculty_id,
        department_id=department_id,
    )
    return success_response(timetable)


@router.get(
    "/departments/{department_id}/faculty/{faculty_id}/stats",
    response_model=ActionResult[FacultyTimetableStats],
)
def get_faculty_timetable_stats(
    department_id: str,
    faculty_id: str,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> dict:
    stats = timetable_service.get_faculty_timetable_stats(
        db,
        current_user=current_user,
        faculty_id=faculty_id,
        department_id=department_id,
    )
    return success_response(stats)


@router.get("/departments/{department_id}/activity", response_model=ActionResult[list[ActivityLogOut]])
def get_department_activity(
    department_id: str,
    limit: int = Query(default=50, ge=1, le=200),
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> dict:
    activity = timetable_service.get_department_activity(
        db,
        current_user=current_user,
        department_id=department_id,
        limit=limit,
    )
    return success_response(activity)
