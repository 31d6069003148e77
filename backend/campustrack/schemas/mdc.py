from datetime import date as date_type

from pydantic import BaseModel, Field, field_validator

from campustrack.models.attendance import AttendanceStatus
from campustrack.schemas.attendance import reject_future_date


class DepartmentBrief(BaseModel):
    id: str
    name: str
    code: str

    model_config = {"from_attributes": True}


class MDCCourseUpsert(BaseModel):
    home_department_id: str = Field(min_length=1, max_length=36)
    mdc_department_id: str = Field(min_length=1, max_length=36)
    year: int
    semester: int
    course_name: str = Field(max_length=200)
    student_ids: list[str]
    faculty_id: str | None = None

    @field_validator("course_name")
    @classmethod
    def normalize_course_name(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("Course name is required")
        return trimmed

    @field_validator("year")
    @classmethod
    def validate_year(cls, value: int) -> int:
        if value < 1 or value > 4:
            raise ValueError("Year must be between 1 and 4")
        return value

    @field_validator("semester")
    @classmethod
    def validate_semester(cls, value: int) -> int:
        if value < 1 or value > 2:
            raise ValueError("Semester must be between 1 and 2")
        return value

    @field_validator("student_ids")
    @classmethod
    def normalize_student_ids(cls, value: list[str]) -> list[str]:
        roster = list(dict.fromkeys(item.strip() for item in value if item.strip()))
        if not roster:
            raise ValueError("At least one student must be selected")
        return roster

    @field_validator("faculty_id")
    @classmethod
    def normalize_faculty_id(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


class MDCFacultyAssignment(BaseModel):
    faculty_id: str = Field(min_length=1, max_length=36)


class MDCCourseOut(BaseModel):
    id: str
    course_name: str
    home_department_id: str
    mdc_department_id: str
    year: int
    semester: int
    student_ids: list[str]
    faculty_id: str | None

    model_config = {"from_attributes": True}


class MDCCourseSummary(BaseModel):
    id: str
    course_name: str
    year: int
    semester: int
    student_count: int
    home_department: DepartmentBrief
    mdc_department: DepartmentBrief


class HostedMDCCourse(BaseModel):
    course_name: str
    subject_id: str | None
    faculty_id: str | None
    faculty_name: str | None


class MDCStudentOut(BaseModel):
    id: str
    name: str
    enrollment_no: str
    email: str

    model_config = {"from_attributes": True}


class MDCAttendanceMark(BaseModel):
    student_id: str = Field(min_length=1, max_length=36)
    status: AttendanceStatus


class MDCAttendanceSubmit(BaseModel):
    mdc_course_id: str = Field(min_length=1, max_length=36)
    date: date_type
    period: int = Field(ge=1, le=5)
    records: list[MDCAttendanceMark] = Field(min_length=1)

    @field_validator("date")
    @classmethod
    def validate_date(cls, value: date_type) -> date_type:
        return reject_future_date(value)


class MDCAttendanceStatus(BaseModel):
    status: AttendanceStatus
