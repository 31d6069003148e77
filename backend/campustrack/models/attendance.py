import uuid
from datetime import date as date_type, datetime
from enum import Enum

from sqlalchemy import Date, DateTime, Enum as SAEnum, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from campustrack.db.base import Base
from campustrack.models.academic import Subject
from campustrack.models.profiles import FacultyProfile, StudentProfile


class AttendanceStatus(str, Enum):
    present = "PRESENT"
    absent = "ABSENT"


attendance_status_enum = SAEnum(AttendanceStatus, name="attendance_status")


class AttendanceRecord(Base):
    __tablename__ = "attendance_records"
    __table_args__ = (
        UniqueConstraint("student_id", "subject_id", "date", "period", name="uq_attendance_records_natural_key"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    student_id: Mapped[str] = mapped_column(ForeignKey("student_profiles.id"), nullable=False, index=True)
    subject_id: Mapped[str] = mapped_column(ForeignKey("subjects.id"), nullable=False, index=True)
    date: Mapped[date_type] = mapped_column(Date, nullable=False, index=True)
    period: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[AttendanceStatus] = mapped_column(attendance_status_enum, nullable=False)
    marked_by: Mapped[str] = mapped_column(ForeignKey("faculty_profiles.id"), nullable=False)
    semester_id: Mapped[str] = mapped_column(ForeignKey("semesters.id"), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    student: Mapped[StudentProfile] = relationship()
    subject: Mapped[Subject] = relationship()
    faculty: Mapped[FacultyProfile] = relationship()
