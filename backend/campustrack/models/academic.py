import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, Enum as SAEnum, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from campustrack.db.base import Base

GRADUATING_SEMESTER_NUMBER = 8


class SubjectType(str, Enum):
    theory = "THEORY"
    practical = "PRACTICAL"


class Department(Base):
    __tablename__ = "departments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class AcademicYear(Base):
    __tablename__ = "academic_years"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    year: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)


class Semester(Base):
    __tablename__ = "semesters"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    number: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    academic_year_id: Mapped[str] = mapped_column(ForeignKey("academic_years.id"), nullable=False)

    academic_year: Mapped[AcademicYear] = relationship(lazy="joined")

    @property
    def is_graduating(self) -> bool:
        return self.number == GRADUATING_SEMESTER_NUMBER


class Subject(Base):
    __tablename__ = "subjects"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    credits: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    type: Mapped[SubjectType] = mapped_column(
        SAEnum(SubjectType, name="subject_type"), nullable=False, default=SubjectType.theory
    )
    department_id: Mapped[str] = mapped_column(ForeignKey("departments.id"), nullable=False, index=True)
    semester_id: Mapped[str] = mapped_column(ForeignKey("semesters.id"), nullable=False, index=True)
    is_mdc: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    semester: Mapped[Semester] = relationship()


class SubjectColorMap(Base):
    __tablename__ = "subject_color_map"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    subject_id: Mapped[str] = mapped_column(ForeignKey("subjects.id", ondelete="CASCADE"), unique=True, nullable=False)
    color_index: Mapped[int] = mapped_column(Integer, nullable=False)
