from pydantic import BaseModel, Field, field_validator, model_validator

from campustrack.schemas.academic import FacultyBrief, FacultyOut, SemesterBrief, SubjectBrief, SubjectOut


def _normalize_room(value: str | None) -> str | None:
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed or None


class TimetableEntryCreate(BaseModel):
    day_of_week: int = Field(ge=1, le=6)
    period: int = Field(ge=1, le=5)
    subject_id: str = Field(min_length=1, max_length=36)
    faculty_id: str = Field(min_length=1, max_length=36)
    room: str | None = Field(default=None, max_length=50)
    department_id: str = Field(min_length=1, max_length=36)
    semester_id: str = Field(min_length=1, max_length=36)
    academic_year_id: str = Field(min_length=1, max_length=36)

    @field_validator("room")
    @classmethod
    def normalize_room(cls, value: str | None) -> str | None:
        return _normalize_room(value)


class TimetableEntryUpdate(BaseModel):
    day_of_week: int | None = Field(default=None, ge=1, le=6)
    period: int | None = Field(default=None, ge=1, le=5)
    subject_id: str | None = Field(default=None, min_length=1, max_length=36)
    faculty_id: str | None = Field(default=None, min_length=1, max_length=36)
    room: str | None = Field(default=None, max_length=50)
    department_id: str | None = Field(default=None, min_length=1, max_length=36)
    semester_id: str | None = Field(default=None, min_length=1, max_length=36)
    academic_year_id: str | None = Field(default=None, min_length=1, max_length=36)

    @field_validator("room")
    @classmethod
    def normalize_room(cls, value: str | None) -> str | None:
        return _normalize_room(value)

    @model_validator(mode="after")
    def reject_null_required_fields(self) -> "TimetableEntryUpdate":
        for name in self.model_fields_set:
            if name != "room" and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class TimetableEntryOut(BaseModel):
    id: str
    day_of_week: int
    period: int
    room: str | None
    subject_id: str
    faculty_id: str
    department_id: str
    semester_id: str
    academic_year_id: str
    subject: SubjectBrief
    faculty: FacultyBrief

    model_config = {"from_attributes": True}


class TimetableGridEntryOut(TimetableEntryOut):
    subject_color: str


class ScheduledSubjectOut(SubjectOut):
    """A subject a faculty member teaches on one day, with every period it occupies."""

    semester: SemesterBrief
    periods: list[int]
    room: str | None


class FacultyTimetableOut(BaseModel):
    faculty: FacultyOut
    timetable: list[TimetableGridEntryOut]


class FacultyTimetableStats(BaseModel):
    total_periods: int
    total_subjects: int
    total_semesters: int
