"""Branch, semester and subject editor."""
from fastapi import APIRouter

from attendance_admin.api.deps import Store
from attendance_admin.models.branch import (
    BranchCreate,
    BranchUpdate,
    SemesterInput,
    SemesterLabelUpdate,
    SubjectInput,
)
from attendance_admin.services import taxonomy

router = APIRouter()


@router.get("/")
def list_branches(store: Store):
    return [b.to_store() for b in taxonomy.list_branches(store)]


@router.post("/", status_code=201)
def create_branch(data: BranchCreate, store: Store):
    return taxonomy.create_branch(store, data).to_store()


@router.get("/{branch_id}")
def get_branch(branch_id: str, store: Store):
    return taxonomy.get_branch(store, branch_id).to_store()


@router.put("/{branch_id}")
def update_branch(branch_id: str, data: BranchUpdate, store: Store):
    return taxonomy.update_branch(store, branch_id, data).to_store()


@router.delete("/{branch_id}")
def delete_branch(branch_id: str, store: Store):
    branch = taxonomy.delete_branch(store, branch_id)
    return {"status": "success", "message": f"Branch {branch.name} deleted"}


@router.post("/{branch_id}/semesters", status_code=201)
def add_semester(branch_id: str, data: SemesterInput, store: Store):
    return taxonomy.add_semester(store, branch_id, data).model_dump(by_alias=True)


@router.patch("/{branch_id}/semesters/{semester_id}")
def rename_semester(branch_id: str, semester_id: str, data: SemesterLabelUpdate, store: Store):
    return taxonomy.rename_semester(store, branch_id, semester_id, data.label).model_dump(by_alias=True)


@router.delete("/{branch_id}/semesters/{semester_id}")
def remove_semester(branch_id: str, semester_id: str, store: Store):
    return taxonomy.remove_semester(store, branch_id, semester_id).to_store()


@router.post("/{branch_id}/semesters/{semester_id}/subjects", status_code=201)
def add_subject(branch_id: str, semester_id: str, data: SubjectInput, store: Store):
    return taxonomy.add_subject(store, branch_id, semester_id, data.subject).model_dump(by_alias=True)


@router.patch("/{branch_id}/semesters/{semester_id}/subjects/{index}")
def rename_subject(branch_id: str, semester_id: str, index: int, data: SubjectInput, store: Store):
    semester = taxonomy.rename_subject(store, branch_id, semester_id, index, data.subject)
    return semester.model_dump(by_alias=True)


@router.delete("/{branch_id}/semesters/{semester_id}/subjects/{index}")
def remove_subject(branch_id: str, semester_id: str, index: int, store: Store):
    return taxonomy.remove_subject(store, branch_id, semester_id, index).model_dump(by_alias=True)
