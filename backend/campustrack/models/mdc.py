import uuid
from datetime import date as date_type, datetime

from sqlalchemy import JSON, Date, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from campustrack.db.base import Base
from campustrack.models.academic import Department
from campustrack.models.attendance import AttendanceStatus, attendance_status_enum
from campustrack.models.profiles import FacultyProfile


class MDCCourse(Base):
    """A course hosted by ``mdc_department`` for a curated roster of ``home_department`` students."""

    __tablename__ = "mdc_courses"
    __table_args__ = (
        UniqueConstraint(
            "home_department_id",
            "mdc_department_id",
            "year",
            "semester",
            name="uq_mdc_courses_cohort",
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    course_name: Mapped[str] = mapped_column(String(200), nullable=False)
    home_department_id: Mapped[str] = mapped_column(ForeignKey("departments.id"), nullable=False, index=True)
    mdc_department_id: Mapped[str] = mapped_column(ForeignKey("departments.id"), nullable=False, index=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    semester: Mapped[int] = mapped_column(Integer, nullable=False)
    student_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    faculty_id: Mapped[str | None] = mapped_column(ForeignKey("faculty_profiles.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())

    home_department: Mapped[Department] = relationship(foreign_keys=[home_department_id])
    mdc_department: Mapped[Department] = relationship(foreign_keys=[mdc_department_id])
    faculty: Mapped[FacultyProfile | None] = relationship()


class MDCAttendanceRecord(Base):
    __tablename__ = "mdc_attendance_records"
    __table_args__ = (
        UniqueConstraint("mdc_course_id", "student_id", "date", "period", name="uq_mdc_attendance_natural_key"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    mdc_course_id: Mapped[str] = mapped_column(
        ForeignKey("mdc_courses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    student_id: Mapped[str] = mapped_column(ForeignKey("student_profiles.id"), nullable=False, index=True)
    date: Mapped[date_type] = mapped_column(Date, nullable=False, index=True)
    period: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[AttendanceStatus] = mapped_column(attendance_status_enum, nullable=False)
    marked_by: Mapped[str] = mapped_column(ForeignKey("faculty_profiles.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    faculty: Mapped[FacultyProfile] = relationship()
