"""Teacher registration and subject assignment over ``teachers/{teacherId}``."""
import logging
import time
from typing import Iterable, Optional

from attendance_admin.errors import NotFound, ValidationFailed
from attendance_admin.models.branch import Branch
from attendance_admin.models.teacher import (
    AssignmentSelection,
    Teacher,
    TeacherCreate,
    TeacherSubjectAssignment,
)
from attendance_admin.services.taxonomy import list_branches
from attendance_admin.store import TreeStore, as_mapping, child_path

logger = logging.getLogger(__name__)

TEACHERS_ROOT = "teachers"


def list_teachers(store: TreeStore) -> list[Teacher]:
    return [
        Teacher.model_validate({**value, "id": key})
        for key, value in as_mapping(store.get(TEACHERS_ROOT)).items()
        if isinstance(value, dict)
    ]


def get_teacher(store: TreeStore, teacher_id: str) -> Teacher:
    value = store.get(child_path(TEACHERS_ROOT, teacher_id))
    if not isinstance(value, dict):
        raise NotFound("Teacher not found")
    return Teacher.model_validate({**value, "id": teacher_id})


def resolve_assignment(
    branches: Iterable[Branch], selection: AssignmentSelection
) -> TeacherSubjectAssignment:
    """Snapshot branch name and semester label for a selection made by id."""
    if not selection.branchId or not selection.semesterId or not selection.subject.strip():
        raise ValidationFailed("Please select branch, semester, and subject.")
    branch = next((b for b in branches if b.id == selection.branchId), None)
    if branch is None:
        raise ValidationFailed("Selected branch not found.")
    semester = branch.semester(selection.semesterId)
    if semester is None:
        raise ValidationFailed("Selected semester not found.")
    return TeacherSubjectAssignment(
        branchId=branch.id,
        branchName=branch.name,
        semesterId=semester.id,
        semesterLabel=semester.label,
        subject=selection.subject.strip(),
    )


def create_teacher(store: TreeStore, data: TeacherCreate, now_ms: Optional[int] = None) -> Teacher:
    if not data.name.strip() or not data.phone.strip():
        raise ValidationFailed("Please fill in all required fields.")
    assignments = []
    if data.assignments:
        branches = list_branches(store)
        assignments = [resolve_assignment(branches, s) for s in data.assignments]
    teacher = Teacher(
        name=data.name,
        phone=data.phone,
        profession=data.profession or None,
        address=data.address or None,
        assignments=assignments or None,
        createdAt=now_ms if now_ms is not None else int(time.time() * 1000),
    )
    key = store.push(TEACHERS_ROOT, teacher.to_store())
    logger.info(f"Registered teacher {teacher.name} ({key})")
    return teacher.model_copy(update={"id": key})


def replace_assignments(
    store: TreeStore, teacher_id: str, assignments: list[TeacherSubjectAssignment]
) -> Teacher:
    """Overwrite the whole teacher record with a new assignment list."""
    teacher = get_teacher(store, teacher_id)
    teacher.assignments = list(assignments)
    store.set(child_path(TEACHERS_ROOT, teacher_id), teacher.to_store())
    return teacher


def add_assignment(store: TreeStore, teacher_id: str, selection: AssignmentSelection) -> Teacher:
    teacher = get_teacher(store, teacher_id)
    assignment = resolve_assignment(list_branches(store), selection)
    return replace_assignments(store, teacher_id, [*(teacher.assignments or []), assignment])


def remove_assignment(store: TreeStore, teacher_id: str, index: int) -> Teacher:
    teacher = get_teacher(store, teacher_id)
    assignments = list(teacher.assignments or [])
    if index < 0 or index >= len(assignments):
        raise NotFound("Assignment not found")
    del assignments[index]
    return replace_assignments(store, teacher_id, assignments)
