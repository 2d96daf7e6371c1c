"""Lecture counters (``lecturecount``) and active-subject markers (``currentattendance``)."""
from pydantic import BaseModel, ConfigDict, Field, field_validator

from attendance_admin.store import as_list, as_mapping

# branch name -> semester label -> subject -> counter
CounterTree = dict[str, dict[str, dict[str, "LectureCounter"]]]
# branch name -> semester label -> active subject row
MarkerTree = dict[str, dict[str, "SubjectRow"]]


class LectureCounter(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    branchName: str
    semesterLabel: str = Field(alias="sem")
    subject: str
    count: int = 0

    @field_validator("count", mode="before")
    @classmethod
    def _count(cls, v):
        if not v:
            return 0
        return max(int(v), 0)

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.branchName, self.semesterLabel, self.subject)

    def to_store(self) -> dict:
        return self.model_dump(by_alias=True)


class SubjectRow(BaseModel):
    """A (branch, semester, subject) row of the subject list.

    Also the value stored as a semester's active subject.
    """
    model_config = ConfigDict(populate_by_name=True)

    branchId: str = ""
    branchName: str
    semesterId: str = ""
    semesterLabel: str = Field(alias="sem")
    subject: str
    teacherNames: list[str] = Field(default_factory=list)

    @field_validator("branchId", "branchName", "semesterId", "semesterLabel", "subject", mode="before")
    @classmethod
    def _to_str(cls, v):
        return "" if v is None else str(v)

    @field_validator("teacherNames", mode="before")
    @classmethod
    def _names(cls, v):
        return [str(n) for n in as_list(v)]

    def to_store(self) -> dict:
        return self.model_dump(by_alias=True)


class CounterRef(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    branchName: str
    semesterLabel: str = Field(alias="sem")
    subject: str


class CounterAdjust(CounterRef):
    delta: int


def parse_counter_tree(raw) -> CounterTree:
    """Counters keyed by their tree position; only ``count`` is read from the leaf."""
    tree: CounterTree = {}
    for branch_name, semesters in as_mapping(raw).items():
        for sem, subjects in as_mapping(semesters).items():
            for subject, entry in as_mapping(subjects).items():
                count = entry.get("count") if isinstance(entry, dict) else None
                tree.setdefault(branch_name, {}).setdefault(sem, {})[subject] = LectureCounter(
                    branchName=branch_name, semesterLabel=sem, subject=subject, count=count
                )
    return tree


def parse_marker_tree(raw) -> MarkerTree:
    tree: MarkerTree = {}
    for branch_name, semesters in as_mapping(raw).items():
        for sem, row in as_mapping(semesters).items():
            if isinstance(row, dict) and row.get("subject"):
                tree.setdefault(branch_name, {})[sem] = SubjectRow.model_validate(
                    {"branchName": branch_name, "sem": sem, **row}
                )
    return tree


def iter_counters(tree: CounterTree):
    for semesters in tree.values():
        for subjects in semesters.values():
            yield from subjects.values()
