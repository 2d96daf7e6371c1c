"""Branch -> semester -> subject taxonomy, stored under ``subjects/{branchId}``."""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from attendance_admin.store import as_list


class Semester(BaseModel):
    """A term within a branch. Subject names are free text."""
    model_config = ConfigDict(populate_by_name=True)

    id: str  # number in older records, string in newer ones
    label: str = Field(default="", alias="sem")
    subjects: list[str] = Field(default_factory=list)

    @field_validator("id", "label", mode="before")
    @classmethod
    def _to_str(cls, v):
        return "" if v is None else str(v)

    @field_validator("subjects", mode="before")
    @classmethod
    def _subjects(cls, v):
        return ["" if s is None else str(s) for s in as_list(v)]


class Branch(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    name: str = Field(default="", alias="branch")
    semesters: list[Semester] = Field(default_factory=list)

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, v):
        return "" if v is None else str(v)

    @field_validator("semesters", mode="before")
    @classmethod
    def _semesters(cls, v):
        return as_list(v)

    def semester(self, semester_id) -> Optional[Semester]:
        for sem in self.semesters:
            if sem.id == str(semester_id):
                return sem
        return None

    def to_store(self) -> dict:
        return self.model_dump(by_alias=True)


class SemesterInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None  # assigned on save when missing
    label: str = Field(default="", alias="sem")
    subjects: list[str] = Field(default_factory=list)


class BranchCreate(BaseModel):
    name: str
    semesters: list[SemesterInput] = Field(default_factory=list)


class BranchUpdate(BaseModel):
    """Full replacement of a branch's name and semesters."""
    name: str
    semesters: list[SemesterInput] = Field(default_factory=list)


class SemesterLabelUpdate(BaseModel):
    label: str


class SubjectInput(BaseModel):
    subject: str
