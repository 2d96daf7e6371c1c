"""Subject list, current-attendance selection and lecture counters."""
from typing import Optional

from fastapi import APIRouter, Query

from attendance_admin.api.deps import Reconciler, Store
from attendance_admin.models.lecture import CounterAdjust, CounterRef
from attendance_admin.models.teacher import AssignmentSelection
from attendance_admin.services import taxonomy, teachers

router = APIRouter()
counters_router = APIRouter()


@router.get("/")
def list_subjects(
    store: Store,
    reconciler: Reconciler,
    q: Optional[str] = Query(None, description="Search subject, branch, or semester"),
):
    return taxonomy.subject_rows(
        taxonomy.list_branches(store),
        teachers.list_teachers(store),
        reconciler.marker_tree,
        query=q,
    )


@router.post("/activate")
def set_current_attendance(data: AssignmentSelection, store: Store, reconciler: Reconciler):
    """Make a subject the one being taken for its semester."""
    branch = taxonomy.get_branch(store, data.branchId)
    row = taxonomy.subject_row(branch, data.semesterId, data.subject, teachers.list_teachers(store))
    counter = reconciler.activate(row)
    return {"active": row.to_store(), "counter": counter.to_store()}


@counters_router.get("/")
def list_counters(reconciler: Reconciler):
    return [c.to_store() for c in reconciler.counters()]


@counters_router.get("/active")
def list_active_counters(reconciler: Reconciler):
    return [c.to_store() for c in reconciler.active_counters()]


@counters_router.post("/adjust")
def adjust_counter(data: CounterAdjust, reconciler: Reconciler):
    """Step a counter by +1/-1 in this session only; call /save to store it."""
    counter = reconciler.adjust(data.branchName, data.semesterLabel, data.subject, data.delta)
    return {**counter.to_store(), "saved": False}


@counters_router.post("/save")
def save_counter(data: CounterRef, reconciler: Reconciler):
    counter = reconciler.persist(data.branchName, data.semesterLabel, data.subject)
    return {**counter.to_store(), "saved": True}


@counters_router.post("/increment")
def increment_counter(data: CounterAdjust, reconciler: Reconciler):
    """Apply +1/-1 directly in the store, atomically."""
    counter = reconciler.increment_atomic(data.branchName, data.semesterLabel, data.subject, data.delta)
    return {**counter.to_store(), "saved": True}
