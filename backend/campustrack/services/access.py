from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from campustrack.core.exceptions import ResourceNotFoundError, UnauthorizedError
from campustrack.models.profiles import FacultyProfile, StudentProfile
from campustrack.models.user import User, UserRole

ROLE_LABELS = {
    UserRole.admin: "Admin",
    UserRole.faculty: "Faculty",
    UserRole.student: "Student",
}


def ensure_role(user: User, *roles: UserRole) -> User:
    if user.role not in roles:
        label = " or ".join(ROLE_LABELS[role] for role in roles)
        raise UnauthorizedError(f"Unauthorized: {label} access required")
    return user


def get_faculty_profile(db: Session, user: User) -> FacultyProfile | None:
    return db.execute(select(FacultyProfile).where(FacultyProfile.user_id == user.id)).scalar_one_or_none()


def require_faculty_profile(db: Session, user: User) -> FacultyProfile:
    ensure_role(user, UserRole.faculty)
    profile = get_faculty_profile(db, user)
    if profile is None:
        raise ResourceNotFoundError("Faculty profile not found")
    return profile


def require_student_profile(db: Session, user: User) -> StudentProfile:
    ensure_role(user, UserRole.student)
    profile = db.execute(select(StudentProfile).where(StudentProfile.user_id == user.id)).scalar_one_or_none()
    if profile is None:
        raise ResourceNotFoundError("Student profile not found")
    return profile
