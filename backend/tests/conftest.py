import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from campustrack.api.deps import get_db
from campustrack.core.security import create_access_token
from campustrack.db.base import Base
from campustrack.main import app
from campustrack.models import (
    AcademicYear,
    Department,
    FacultyProfile,
    Semester,
    StudentProfile,
    Subject,
    User,
    UserRole,
)


class Campus:
    """Builds a small academic calendar plus people and subjects on demand."""

    def __init__(self, db):
        self.db = db
        self.years: dict[int, AcademicYear] = {}
        self.semesters: dict[int, Semester] = {}
        for number in range(1, 5):
            year = AcademicYear(year=number, name=f"Year {number}")
            db.add(year)
            self.years[number] = year
        db.flush()
        for number in range(1, 9):
            semester = Semester(
                number=number,
                name=f"Semester {number}",
                academic_year_id=self.years[(number + 1) // 2].id,
            )
            db.add(semester)
            self.semesters[number] = semester
        db.commit()

    def department(self, code: str) -> Department:
        department = Department(code=code, name=f"Department of {code}")
        self.db.add(department)
        self.db.commit()
        return department

    def subject(self, department: Department, semester_number: int, code: str, *, is_mdc: bool = False) -> Subject:
        subject = Subject(
            code=code,
            name=f"Subject {code}",
            department_id=department.id,
            semester_id=self.semesters[semester_number].id,
            is_mdc=is_mdc,
        )
        self.db.add(subject)
        self.db.commit()
        return subject

    def user(self, role: UserRole, name: str, *, is_active: bool = True) -> User:
        handle = name.lower().replace(" ", ".")
        user = User(name=name, email=f"{handle}@campus.test", role=role, is_active=is_active)
        self.db.add(user)
        self.db.commit()
        return user

    def admin(self, name: str = "Admin User") -> User:
        return self.user(UserRole.admin, name)

    def faculty(self, department: Department, name: str) -> FacultyProfile:
        user = self.user(UserRole.faculty, name)
        profile = FacultyProfile(user_id=user.id, department_id=department.id)
        self.db.add(profile)
        self.db.commit()
        return profile

    def student(
        self,
        department: Department,
        semester_number: int,
        name: str,
        enrollment_no: str,
        *,
        is_active: bool = True,
    ) -> StudentProfile:
        user = self.user(UserRole.student, name, is_active=is_active)
        semester = self.semesters[semester_number]
        profile = StudentProfile(
            user_id=user.id,
            department_id=department.id,
            semester_id=semester.id,
            enrollment_no=enrollment_no,
            admission_year=2024,
            current_year=(semester_number + 1) // 2,
        )
        self.db.add(profile)
        self.db.commit()
        return profile


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def campus(db):
    return Campus(db)


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture()
def headers():
    return auth_headers
