"""Teacher registration and subject assignment."""
from fastapi import APIRouter

from attendance_admin.api.deps import Store
from attendance_admin.models.teacher import AssignmentSelection, AssignmentsUpdate, Teacher, TeacherCreate
from attendance_admin.services import teachers

router = APIRouter()


def _teacher_out(t: Teacher) -> dict:
    return {"id": t.id, **t.to_store()}


@router.get("/")
def list_teachers(store: Store):
    return [_teacher_out(t) for t in teachers.list_teachers(store)]


@router.post("/", status_code=201)
def create_teacher(data: TeacherCreate, store: Store):
    return _teacher_out(teachers.create_teacher(store, data))


@router.get("/{teacher_id}")
def get_teacher(teacher_id: str, store: Store):
    return _teacher_out(teachers.get_teacher(store, teacher_id))


@router.put("/{teacher_id}/assignments")
def replace_assignments(teacher_id: str, data: AssignmentsUpdate, store: Store):
    return _teacher_out(teachers.replace_assignments(store, teacher_id, data.assignments))


@router.post("/{teacher_id}/assignments", status_code=201)
def add_assignment(teacher_id: str, data: AssignmentSelection, store: Store):
    return _teacher_out(teachers.add_assignment(store, teacher_id, data))


@router.delete("/{teacher_id}/assignments/{index}")
def remove_assignment(teacher_id: str, index: int, store: Store):
    return _teacher_out(teachers.remove_assignment(store, teacher_id, index))
