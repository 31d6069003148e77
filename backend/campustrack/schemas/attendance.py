from datetime import date as date_type, datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from campustrack.models.attendance import AttendanceStatus
from campustrack.schemas.academic import StudentBrief, SubjectBrief, SubjectOut


def reject_future_date(value: date_type) -> date_type:
    if value > date_type.today():
        raise ValueError("Cannot mark attendance for future dates")
    return value


class AttendanceMark(BaseModel):
    student_id: str = Field(min_length=1, max_length=36)
    period: int = Field(ge=1, le=5)
    status: AttendanceStatus


class MarkAttendanceRequest(BaseModel):
    subject_id: str = Field(min_length=1, max_length=36)
    date: date_type
    records: list[AttendanceMark] = Field(min_length=1)

    @field_validator("date")
    @classmethod
    def validate_date(cls, value: date_type) -> date_type:
        return reject_future_date(value)


class MarkAttendanceResult(BaseModel):
    count: int
    date: date_type


class AttendanceRecordOut(BaseModel):
    id: str
    subject_id: str
    date: date_type
    period: int
    status: AttendanceStatus
    marked_by: str
    updated_at: datetime | None = None
    student: StudentBrief

    model_config = {"from_attributes": True}


class SubjectAttendanceSummary(BaseModel):
    total_classes: int
    average_attendance: float


class AttendanceStats(BaseModel):
    total_classes: int
    present: int
    absent: int
    percentage: int


class SubjectAttendanceStats(BaseModel):
    subject: SubjectOut
    stats: AttendanceStats


class SemesterAttendanceSummary(BaseModel):
    overall: AttendanceStats
    subjects: list[SubjectAttendanceStats]


class StudentRecordOut(BaseModel):
    id: str
    date: date_type
    period: int
    status: AttendanceStatus

    model_config = {"from_attributes": True}


class StudentSubjectAttendance(BaseModel):
    subject: SubjectOut
    stats: AttendanceStats
    records: list[StudentRecordOut]


class PeriodAttendance(BaseModel):
    period: int
    status: AttendanceStatus
    subject: SubjectBrief


class DayAttendance(BaseModel):
    date: date_type
    periods: list[PeriodAttendance]


class DailyAttendanceBlock(BaseModel):
    period: int
    status: Literal["PRESENT", "ABSENT", "NOT_MARKED"]
    faculty_name: str | None = None


class AttendanceOverview(BaseModel):
    # None when the window holds no records at all.
    overall_attendance: int | None
    classes_today: int
    at_risk_students: int
    perfect_attendance: int
    trend: float | None


class LowAttendanceStudent(BaseModel):
    student_id: str
    enrollment_no: str
    name: str
    department: str
    attendance: int
    course: str
