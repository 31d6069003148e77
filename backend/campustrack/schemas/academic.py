from pydantic import BaseModel

from campustrack.models.academic import SubjectType


class AcademicYearOut(BaseModel):
    id: str
    year: int
    name: str

    model_config = {"from_attributes": True}


class SemesterBrief(BaseModel):
    id: str
    name: str
    number: int

    model_config = {"from_attributes": True}


class SemesterOut(SemesterBrief):
    academic_year: AcademicYearOut


class SubjectBrief(BaseModel):
    id: str
    code: str
    name: str

    model_config = {"from_attributes": True}


class SubjectOut(SubjectBrief):
    credits: int
    type: SubjectType
    department_id: str
    semester_id: str
    is_mdc: bool


class FacultyBrief(BaseModel):
    id: str
    name: str

    model_config = {"from_attributes": True}


class FacultyOut(FacultyBrief):
    email: str
    designation: str
    department_id: str


class StudentBrief(BaseModel):
    id: str
    name: str
    enrollment_no: str

    model_config = {"from_attributes": True}


class StudentOut(StudentBrief):
    email: str
    department_id: str
    semester_id: str
    current_year: int
