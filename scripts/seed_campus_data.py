"""Seed CampusTrack with a small department catalogue for local development.

Run:
  PYTHONPATH=backend python scripts/seed_campus_data.py
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import func, select

from campustrack.core.security import create_access_token
from campustrack.db.session import SessionLocal
from campustrack.models import (
    AcademicYear,
    Department,
    FacultyProfile,
    Semester,
    StudentProfile,
    Subject,
    SubjectType,
    User,
    UserRole,
)

ACADEMIC_YEARS = {1: "First Year", 2: "Second Year", 3: "Third Year", 4: "Fourth Year"}
ADMISSION_YEAR = 2024


@dataclass(frozen=True)
class DepartmentSeed:
    code: str
    name: str


@dataclass(frozen=True)
class SubjectSeed:
    code: str
    name: str
    semester_number: int
    type: SubjectType = SubjectType.theory
    credits: int = 3
    is_mdc: bool = False


DEPARTMENTS: list[DepartmentSeed] = [
    DepartmentSeed("CSE", "Computer Science and Engineering"),
    DepartmentSeed("ECE", "Electronics and Communication Engineering"),
    DepartmentSeed("MEC", "Mechanical Engineering"),
]

SUBJECTS: dict[str, list[SubjectSeed]] = {
    "CSE": [
        SubjectSeed("CSE101", "Programming Fundamentals", 1),
        SubjectSeed("CSE102", "Programming Lab", 1, SubjectType.practical, 2),
        SubjectSeed("CSE201", "Data Structures", 3),
        SubjectSeed("CSE202", "Digital Logic", 3),
        SubjectSeed("CSE203", "Data Structures Lab", 3, SubjectType.practical, 2),
        SubjectSeed("CSE290", "Introduction to Data Science", 3, is_mdc=True),
    ],
    "ECE": [
        SubjectSeed("ECE101", "Basic Electronics", 1),
        SubjectSeed("ECE201", "Signals and Systems", 3),
        SubjectSeed("ECE290", "Sensors and Instrumentation", 3, is_mdc=True),
    ],
    "MEC": [
        SubjectSeed("MEC101", "Engineering Graphics", 1, SubjectType.practical, 2),
        SubjectSeed("MEC201", "Thermodynamics", 3),
    ],
}

FACULTY: dict[str, list[tuple[str, str]]] = {
    "CSE": [("Dr. Meera Raman", "Professor"), ("Arjun Pillai", "Assistant Professor")],
    "ECE": [("Dr. Kavya Iyer", "Associate Professor")],
    "MEC": [("Rahul Menon", "Assistant Professor")],
}

STUDENTS_PER_DEPARTMENT = 5


def upsert_user(session, *, name: str, email: str, role: UserRole) -> User:
    user = session.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if user is None:
        user = User(name=name, email=email, role=role)
        session.add(user)
    user.name = name
    user.role = role
    user.is_active = True
    user.deleted_at = None
    session.flush()
    return user


def upsert_calendar(session) -> dict[int, Semester]:
    years: dict[int, AcademicYear] = {}
    for number, name in ACADEMIC_YEARS.items():
        year = session.execute(select(AcademicYear).where(AcademicYear.year == number)).scalar_one_or_none()
        if year is None:
            year = AcademicYear(year=number, name=name)
            session.add(year)
        years[number] = year
    session.flush()

    semesters: dict[int, Semester] = {}
    for number in range(1, 9):
        semester = session.execute(select(Semester).where(Semester.number == number)).scalar_one_or_none()
        academic_year_id = years[(number + 1) // 2].id
        if semester is None:
            semester = Semester(number=number, name=f"Semester {number}", academic_year_id=academic_year_id)
            session.add(semester)
        semester.academic_year_id = academic_year_id
        semesters[number] = semester
    session.flush()
    return semesters


def upsert_departments(session) -> dict[str, Department]:
    departments: dict[str, Department] = {}
    for seed in DEPARTMENTS:
        department = session.execute(select(Department).where(Department.code == seed.code)).scalar_one_or_none()
        if department is None:
            department = Department(code=seed.code, name=seed.name)
            session.add(department)
        department.name = seed.name
        departments[seed.code] = department
    session.flush()
    return departments


def upsert_subjects(session, departments: dict[str, Department], semesters: dict[int, Semester]) -> int:
    count = 0
    for department_code, seeds in SUBJECTS.items():
        for seed in seeds:
            subject = session.execute(select(Subject).where(Subject.code == seed.code)).scalar_one_or_none()
            if subject is None:
                subject = Subject(code=seed.code)
                session.add(subject)
            subject.name = seed.name
            subject.credits = seed.credits
            subject.type = seed.type
            subject.is_mdc = seed.is_mdc
            subject.department_id = departments[department_code].id
            subject.semester_id = semesters[seed.semester_number].id
            count += 1
    session.flush()
    return count


def upsert_faculty(session, departments: dict[str, Department]) -> list[User]:
    users: list[User] = []
    for department_code, members in FACULTY.items():
        for name, designation in members:
            handle = name.lower().replace("dr. ", "").replace(" ", ".")
            user = upsert_user(session, name=name, email=f"{handle}@campustrack.local", role=UserRole.faculty)
            profile = session.execute(
                select(FacultyProfile).where(FacultyProfile.user_id == user.id)
            ).scalar_one_or_none()
            if profile is None:
                profile = FacultyProfile(user_id=user.id, department_id=departments[department_code].id)
                session.add(profile)
            profile.department_id = departments[department_code].id
            profile.designation = designation
            users.append(user)
    session.flush()
    return users


def upsert_students(session, departments: dict[str, Department], semesters: dict[int, Semester]) -> list[User]:
    users: list[User] = []
    semester = semesters[3]
    for department_code, department in departments.items():
        for index in range(1, STUDENTS_PER_DEPARTMENT + 1):
            enrollment_no = f"{ADMISSION_YEAR}{department_code}{index:03d}"
            user = upsert_user(
                session,
                name=f"{department_code} Student {index}",
                email=f"{enrollment_no.lower()}@campustrack.local",
                role=UserRole.student,
            )
            profile = session.execute(
                select(StudentProfile).where(StudentProfile.user_id == user.id)
            ).scalar_one_or_none()
            if profile is None:
                profile = StudentProfile(
                    user_id=user.id,
                    department_id=department.id,
                    semester_id=semester.id,
                    enrollment_no=enrollment_no,
                    admission_year=ADMISSION_YEAR,
                )
                session.add(profile)
            profile.current_year = semester.academic_year.year
            users.append(user)
    session.flush()
    return users


def count_by_role(session) -> dict[str, int]:
    rows = session.execute(select(User.role, func.count(User.id)).group_by(User.role)).all()
    return {role.value: count for role, count in rows}


def main() -> None:
    with SessionLocal() as session:
        semesters = upsert_calendar(session)
        departments = upsert_departments(session)
        subject_count = upsert_subjects(session, departments, semesters)
        admin = upsert_user(session, name="Campus Admin", email="admin@campustrack.local", role=UserRole.admin)
        faculty_users = upsert_faculty(session, departments)
        student_users = upsert_students(session, departments, semesters)

        session.commit()

        role_counts = count_by_role(session)
        tokens = {
            "Admin": create_access_token(admin.id),
            "Faculty": create_access_token(faculty_users[0].id),
            "Student": create_access_token(student_users[0].id),
        }

    print("CampusTrack data seeded successfully.")
    print("")
    print(f"Departments: {len(departments)}")
    print(f"Semesters: {len(semesters)}")
    print(f"Subjects: {subject_count}")
    print(f"User counts by role: {role_counts}")
    print("")
    print("Bearer tokens for local testing:")
    for label, token in tokens.items():
        print(f"  {label}: {token}")


if __name__ == "__main__":
    main()
