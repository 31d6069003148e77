from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from campustrack.api.deps import get_db, require_roles
from campustrack.models.user import User, UserRole
from campustrack.schemas.academic import SemesterOut
from campustrack.schemas.common import ActionResult, success_response
from campustrack.schemas.progression import (
    ProgressionCriteria,
    ProgressionExecuted,
    ProgressionPreview,
    ProgressionStats,
)
from campustrack.services import progression as progression_service

router = APIRouter()


@router.post("/preview", response_model=ActionResult[ProgressionPreview])
def preview_progression(
    criteria: ProgressionCriteria,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> dict:
    result = progression_service.progress_students(db, current_user=current_user, criteria=criteria, dry_run=True)
    return success_response(result)


@router.post("/execute", response_model=ActionResult[ProgressionExecuted])
def execute_progression(
    criteria: ProgressionCriteria,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> dict:
    result = progression_service.progress_students(db, current_user=current_user, criteria=criteria, dry_run=False)
    return success_response(
        result,
        f"Progressed {result.progressed} students, {result.graduating} graduating",
    )


@router.get("/stats", response_model=ActionResult[ProgressionStats])
def get_progression_stats(
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> dict:
    return success_response(progression_service.get_progression_stats(db, current_user=current_user))


@router.get("/semesters", response_model=ActionResult[list[SemesterOut]])
def list_semesters(
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> dict:
    return success_response(progression_service.list_semesters(db, current_user=current_user))
