"""Teachers and their subject assignments, stored under ``teachers/{teacherId}``."""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from attendance_admin.store import as_list


class TeacherSubjectAssignment(BaseModel):
    """Denormalized copy of a branch/semester/subject selection.

    branchName and semesterLabel are snapshots taken when the assignment was
    made; they are not refreshed when the branch or semester is renamed.
    """
    model_config = ConfigDict(populate_by_name=True)

    branchId: str
    branchName: str = ""
    semesterId: str
    semesterLabel: str = Field(default="", alias="sem")
    subject: str

    @field_validator("branchId", "branchName", "semesterId", "semesterLabel", "subject", mode="before")
    @classmethod
    def _to_str(cls, v):
        return "" if v is None else str(v)


class Teacher(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    name: str = Field(default="", alias="teacherName")
    phone: str = Field(default="", alias="teacherNumber")
    profession: Optional[str] = None
    address: Optional[str] = None
    assignments: Optional[list[TeacherSubjectAssignment]] = Field(default=None, alias="teacherSubjects")
    createdAt: Optional[int] = None

    @field_validator("assignments", mode="before")
    @classmethod
    def _assignments(cls, v):
        return None if v is None else as_list(v)

    def to_store(self) -> dict:
        return self.model_dump(by_alias=True, exclude={"id"})


class AssignmentSelection(BaseModel):
    """Branch/semester/subject picked by id; names are resolved on save."""
    branchId: str
    semesterId: str
    subject: str


class TeacherCreate(BaseModel):
    name: str
    phone: str
    profession: Optional[str] = None
    address: Optional[str] = None
    assignments: list[AssignmentSelection] = Field(default_factory=list)


class AssignmentsUpdate(BaseModel):
    assignments: list[TeacherSubjectAssignment] = Field(default_factory=list)
