from datetime import date as date_type

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session

from campustrack.api.deps import get_db, require_roles
from campustrack.models.user import User, UserRole
from campustrack.schemas.common import ActionResult, IdOut, success_response
from campustrack.schemas.mdc import (
    HostedMDCCourse,
    MDCAttendanceStatus,
    MDCAttendanceSubmit,
    MDCCourseOut,
    MDCCourseSummary,
    MDCCourseUpsert,
    MDCFacultyAssignment,
    MDCStudentOut,
)
from campustrack.services import mdc as mdc_service

router = APIRouter()


@router.post("/courses", response_model=ActionResult[IdOut])
def create_or_update_mdc_course(
    payload: MDCCourseUpsert,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> dict:
    result = mdc_service.create_or_update_mdc_course(db, current_user=current_user, payload=payload)
    return success_response(result, "MDC course saved")


@router.delete("/courses/{course_id}", response_model=ActionResult[IdOut])
def delete_mdc_course(
    course_id: str,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> dict:
    return success_response(mdc_service.delete_mdc_course(db, current_user=current_user, course_id=course_id))


@router.get("/hosted/{department_id}/semesters/{semester}", response_model=ActionResult[HostedMDCCourse | None])
def get_hosted_mdc_course(
    department_id: str,
    semester: int = Path(ge=1, le=8),
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> dict:
    course = mdc_service.get_hosted_mdc_course(
        db,
        current_user=current_user,
        department_id=department_id,
        semester=semester,
    )
    return success_response(course)


@router.put("/hosted/{department_id}/semesters/{semester}/faculty", response_model=ActionResult[MDCCourseOut])
def update_mdc_course_faculty(
    department_id: str,
    payload: MDCFacultyAssignment,
    semester: int = Path(ge=1, le=8),
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> dict:
    course = mdc_service.update_mdc_course_faculty(
        db,
        current_user=current_user,
        department_id=department_id,
        semester=semester,
        faculty_id=payload.faculty_id,
    )
    return success_response(MDCCourseOut.model_validate(course), "MDC faculty updated")


@router.get("/home/{department_id}", response_model=ActionResult[list[MDCCourseOut]])
def list_home_mdc_courses(
    department_id: str,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> dict:
    courses = mdc_service.list_home_mdc_courses(db, current_user=current_user, department_id=department_id)
    return success_response(courses)


@router.get("/faculty/courses", response_model=ActionResult[list[MDCCourseSummary]])
def get_my_mdc_courses(
    current_user: User = Depends(require_roles(UserRole.faculty)),
    db: Session = Depends(get_db),
) -> dict:
    return success_response(mdc_service.get_mdc_courses_for_faculty(db, current_user=current_user))


@router.get("/courses/{course_id}/students", response_model=ActionResult[list[MDCStudentOut]])
def get_mdc_students(
    course_id: str,
    current_user: User = Depends(require_roles(UserRole.faculty)),
    db: Session = Depends(get_db),
) -> dict:
    return success_response(mdc_service.get_mdc_students(db, current_user=current_user, course_id=course_id))


@router.post("/attendance", response_model=ActionResult[None])
def submit_mdc_attendance(
    payload: MDCAttendanceSubmit,
    current_user: User = Depends(require_roles(UserRole.faculty)),
    db: Session = Depends(get_db),
) -> dict:
    mdc_service.submit_mdc_attendance(db, current_user=current_user, payload=payload)
    return success_response(None, f"Attendance submitted for {len(payload.records)} students")


@router.get("/courses/{course_id}/attendance", response_model=ActionResult[dict[str, MDCAttendanceStatus]])
def get_existing_mdc_attendance(
    course_id: str,
    on_date: date_type = Query(alias="date"),
    period: int = Query(ge=1, le=5),
    current_user: User = Depends(require_roles(UserRole.faculty)),
    db: Session = Depends(get_db),
) -> dict:
    records = mdc_service.get_existing_mdc_attendance(
        db,
        current_user=current_user,
        course_id=course_id,
        on_date=on_date,
        period=period,
    )
    return success_response(records)
