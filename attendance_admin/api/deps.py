"""Shared dependencies: the tree store and the lecture counter session."""
from typing import Annotated

from fastapi import Depends, Request

from attendance_admin.db import get_store
from attendance_admin.services.lecture_counter import LectureCounterReconciler
from attendance_admin.store import TreeStore


def get_reconciler(request: Request) -> LectureCounterReconciler:
    return request.app.state.reconciler


# Type aliases for route injection
Store = Annotated[TreeStore, Depends(get_store)]
Reconciler = Annotated[LectureCounterReconciler, Depends(get_reconciler)]
