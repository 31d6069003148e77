import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from campustrack.db.base import Base
from campustrack.models.academic import Semester, Subject
from campustrack.models.profiles import FacultyProfile

DAYS_PER_WEEK = 6
PERIODS_PER_DAY = 5


class TimetableEntry(Base):
    __tablename__ = "timetables"
    __table_args__ = (
        UniqueConstraint(
            "day_of_week",
            "period",
            "department_id",
            "semester_id",
            "academic_year_id",
            name="uq_timetables_slot",
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)
    period: Mapped[int] = mapped_column(Integer, nullable=False)
    subject_id: Mapped[str] = mapped_column(ForeignKey("subjects.id"), nullable=False, index=True)
    faculty_id: Mapped[str] = mapped_column(ForeignKey("faculty_profiles.id"), nullable=False, index=True)
    room: Mapped[str | None] = mapped_column(String(50), nullable=True)
    department_id: Mapped[str] = mapped_column(ForeignKey("departments.id"), nullable=False)
    semester_id: Mapped[str] = mapped_column(ForeignKey("semesters.id"), nullable=False)
    academic_year_id: Mapped[str] = mapped_column(ForeignKey("academic_years.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())

    subject: Mapped[Subject] = relationship()
    faculty: Mapped[FacultyProfile] = relationship()
    semester: Mapped[Semester] = relationship()
