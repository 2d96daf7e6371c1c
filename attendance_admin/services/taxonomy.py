"""Branch, semester and subject editors over ``subjects/{branchId}``."""
import logging
import time
from typing import Iterable, Optional

from attendance_admin.errors import NotFound, ValidationFailed
from attendance_admin.models.branch import (
    Branch,
    BranchCreate,
    BranchUpdate,
    Semester,
    SemesterInput,
)
from attendance_admin.models.lecture import MarkerTree, SubjectRow
from attendance_admin.models.teacher import Teacher
from attendance_admin.store import TreeStore, as_mapping, child_path

logger = logging.getLogger(__name__)

SUBJECTS_ROOT = "subjects"


def _clock_ids(taken: set[str]):
    """Millisecond clock ids, bumped past any already in use."""
    candidate = int(time.time() * 1000)
    while True:
        while str(candidate) in taken:
            candidate += 1
        taken.add(str(candidate))
        yield str(candidate)


def _semesters_from_input(items: Iterable[SemesterInput], keep: Iterable[Semester] = ()) -> list[Semester]:
    items = list(items)
    taken = {s.id for s in keep} | {i.id for i in items if i.id}
    ids = _clock_ids(taken)
    return [
        Semester(
            id=item.id or next(ids),
            label=item.label.strip(),
            subjects=[s.strip() for s in item.subjects if s and s.strip()],
        )
        for item in items
    ]


def _require_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationFailed("Please enter a branch name.")
    return name


def list_branches(store: TreeStore) -> list[Branch]:
    branches = []
    for key, value in as_mapping(store.get(SUBJECTS_ROOT)).items():
        if isinstance(value, dict):
            branches.append(Branch.model_validate({**value, "id": value.get("id") or key}))
    return branches


def get_branch(store: TreeStore, branch_id: str) -> Branch:
    value = store.get(child_path(SUBJECTS_ROOT, branch_id))
    if not isinstance(value, dict):
        raise NotFound("Branch not found")
    return Branch.model_validate({**value, "id": value.get("id") or branch_id})


def save_branch(store: TreeStore, branch: Branch) -> Branch:
    store.set(child_path(SUBJECTS_ROOT, branch.id), branch.to_store())
    return branch


def create_branch(store: TreeStore, data: BranchCreate) -> Branch:
    name = _require_name(data.name)
    semesters = _semesters_from_input(data.semesters)
    draft = Branch(name=name, semesters=semesters)
    key = store.push(SUBJECTS_ROOT, draft.to_store())
    branch = draft.model_copy(update={"id": key})
    save_branch(store, branch)
    logger.info(f"Created branch {name} ({key})")
    return branch


def update_branch(store: TreeStore, branch_id: str, data: BranchUpdate) -> Branch:
    current = get_branch(store, branch_id)
    branch = Branch(
        id=current.id,
        name=_require_name(data.name),
        semesters=_semesters_from_input(data.semesters),
    )
    return save_branch(store, branch)


def delete_branch(store: TreeStore, branch_id: str) -> Branch:
    """Remove the branch record only; counters, markers and events keyed by its name stay."""
    branch = get_branch(store, branch_id)
    store.delete(child_path(SUBJECTS_ROOT, branch_id))
    logger.info(f"Deleted branch {branch.name} ({branch_id})")
    return branch


def _semester(branch: Branch, semester_id: str) -> Semester:
    sem = branch.semester(semester_id)
    if sem is None:
        raise NotFound("Semester not found")
    return sem


def add_semester(store: TreeStore, branch_id: str, data: SemesterInput) -> Semester:
    branch = get_branch(store, branch_id)
    if not data.label.strip():
        raise ValidationFailed("Please enter a semester.")
    (semester,) = _semesters_from_input([data], keep=branch.semesters)
    branch.semesters.append(semester)
    save_branch(store, branch)
    return semester


def rename_semester(store: TreeStore, branch_id: str, semester_id: str, label: str) -> Semester:
    if not (label or "").strip():
        raise ValidationFailed("Please enter a semester.")
    branch = get_branch(store, branch_id)
    semester = _semester(branch, semester_id)
    semester.label = label.strip()
    save_branch(store, branch)
    return semester


def remove_semester(store: TreeStore, branch_id: str, semester_id: str) -> Branch:
    branch = get_branch(store, branch_id)
    _semester(branch, semester_id)
    branch.semesters = [s for s in branch.semesters if s.id != str(semester_id)]
    return save_branch(store, branch)


def _subject_name(subject: str) -> str:
    subject = (subject or "").strip()
    if not subject:
        raise ValidationFailed("Please enter a subject.")
    return subject


def _check_index(semester: Semester, index: int) -> None:
    if index < 0 or index >= len(semester.subjects):
        raise NotFound("Subject not found")


def add_subject(store: TreeStore, branch_id: str, semester_id: str, subject: str) -> Semester:
    subject = _subject_name(subject)
    branch = get_branch(store, branch_id)
    semester = _semester(branch, semester_id)
    semester.subjects.append(subject)
    save_branch(store, branch)
    return semester


def rename_subject(
    store: TreeStore, branch_id: str, semester_id: str, index: int, subject: str
) -> Semester:
    subject = _subject_name(subject)
    branch = get_branch(store, branch_id)
    semester = _semester(branch, semester_id)
    _check_index(semester, index)
    semester.subjects[index] = subject
    save_branch(store, branch)
    return semester


def remove_subject(store: TreeStore, branch_id: str, semester_id: str, index: int) -> Semester:
    branch = get_branch(store, branch_id)
    semester = _semester(branch, semester_id)
    _check_index(semester, index)
    del semester.subjects[index]
    save_branch(store, branch)
    return semester


def _row(branch: Branch, sem: Semester, subject: str, teachers: list[Teacher]) -> SubjectRow:
    names = [
        t.name
        for t in teachers
        for a in (t.assignments or [])
        if a.branchId == branch.id and a.semesterId == sem.id and a.subject == subject
    ]
    return SubjectRow(
        branchId=branch.id,
        branchName=branch.name,
        semesterId=sem.id,
        semesterLabel=sem.label,
        subject=subject,
        teacherNames=names,
    )


def subject_row(
    branch: Branch, semester_id: str, subject: str, teachers: Iterable[Teacher]
) -> SubjectRow:
    semester = _semester(branch, semester_id)
    if subject not in semester.subjects:
        raise NotFound("Subject not found")
    return _row(branch, semester, subject, list(teachers))


def subject_rows(
    branches: Iterable[Branch],
    teachers: Iterable[Teacher],
    markers: MarkerTree,
    query: Optional[str] = None,
) -> list[dict]:
    """Flat (branch, semester, subject) rows with assigned teachers and active flag."""
    teachers = list(teachers)
    needle = (query or "").strip().lower()
    rows = []
    for branch in branches:
        for sem in branch.semesters:
            for subject in sem.subjects:
                row = _row(branch, sem, subject, teachers)
                if needle and not (
                    needle in subject.lower()
                    or needle in branch.name.lower()
                    or needle in sem.label.lower()
                ):
                    continue
                active = markers.get(branch.name, {}).get(sem.label)
                rows.append({**row.to_store(), "active": bool(active and active.subject == subject)})
    return rows
