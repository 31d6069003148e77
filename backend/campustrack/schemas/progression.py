from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from campustrack.schemas.academic import SemesterBrief


class ProgressionCriteria(BaseModel):
    current_semester_ids: list[str] = Field(min_length=1)
    department_id: str | None = None
    exclude_student_ids: list[str] = Field(default_factory=list)

    @field_validator("current_semester_ids")
    @classmethod
    def normalize_semester_ids(cls, value: list[str]) -> list[str]:
        normalized = list(dict.fromkeys(item.strip() for item in value if item.strip()))
        if not normalized:
            raise ValueError("At least one semester must be selected")
        return normalized


class StudentProgressionPreview(BaseModel):
    student_id: str
    name: str
    enrollment_no: str
    current_semester: SemesterBrief
    next_semester: SemesterBrief | None
    admission_year: int
    is_graduating: bool


class ProgressionPreview(BaseModel):
    """Result of a dry run; nothing has been written."""

    mode: Literal["dry_run"] = "dry_run"
    affected: int
    progressed: Literal[0] = 0
    graduating: int
    preview: list[StudentProgressionPreview]
    warnings: list[str]


class ProgressionExecuted(BaseModel):
    """Result of a committed progression batch."""

    mode: Literal["executed"] = "executed"
    affected: int
    progressed: int
    graduating: int
    preview: list[StudentProgressionPreview]
    warnings: list[str]


class SemesterCount(BaseModel):
    semester: str
    count: int
    semester_number: int


class ProgressionStats(BaseModel):
    semester_distribution: list[SemesterCount]
    pending_graduations: int


class StudentSemesterUpdate(BaseModel):
    semester_id: str = Field(min_length=1, max_length=36)
    reason: str | None = Field(default=None, max_length=500)


class StudentSemesterUpdateResult(BaseModel):
    student_id: str
    new_semester: str


class SemesterHistoryOut(BaseModel):
    semester_name: str
    changed_at: datetime
    changed_by: str
    reason: str | None
