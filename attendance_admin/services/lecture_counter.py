"""Lecture counters and the active subject of each semester.

The reconciler is one operator session: it keeps live snapshots of the
``lecturecount`` and ``currentattendance`` trees, lets the operator step a
counter up or down locally, and writes a counter back only on ``persist``.
Every delivery from the store replaces the local snapshot, dropping unsaved
steps. ``persist`` overwrites whatever another session saved in between;
``increment_atomic`` is the race-free alternative.
"""
import logging
import threading
from typing import Optional

from attendance_admin.errors import NotFound, StoreError, ValidationFailed
from attendance_admin.models.lecture import (
    CounterTree,
    LectureCounter,
    MarkerTree,
    SubjectRow,
    iter_counters,
    parse_counter_tree,
    parse_marker_tree,
)
from attendance_admin.store import LiveSnapshot, TreeStore, child_path

logger = logging.getLogger(__name__)

COUNTERS_ROOT = "lecturecount"
MARKERS_ROOT = "currentattendance"


def counter_path(branch_name: str, semester: str, subject: str) -> str:
    return child_path(COUNTERS_ROOT, branch_name, semester, subject)


def marker_path(branch_name: str, semester: str) -> str:
    return child_path(MARKERS_ROOT, branch_name, semester)


def adjust_count(counter: LectureCounter, delta: int) -> LectureCounter:
    """Counter stepped by +1 or -1, never below zero."""
    if delta not in (1, -1):
        raise ValidationFailed("Lecture count can only be changed by +1 or -1")
    return counter.model_copy(update={"count": max(counter.count + delta, 0)})


class LectureCounterReconciler:
    def __init__(self, store: TreeStore):
        self._store = store
        self._counters: Optional[LiveSnapshot] = None
        self._markers: Optional[LiveSnapshot] = None
        # guards read-modify-write of the local counter snapshot
        self._lock = threading.Lock()

    def start(self) -> None:
        if self._counters is None:
            self._counters = LiveSnapshot(self._store, COUNTERS_ROOT, parse_counter_tree)
        if self._markers is None:
            self._markers = LiveSnapshot(self._store, MARKERS_ROOT, parse_marker_tree)

    def stop(self) -> None:
        for snapshot in (self._counters, self._markers):
            if snapshot is not None:
                snapshot.close()
        self._counters = None
        self._markers = None

    @property
    def counter_tree(self) -> CounterTree:
        return self._counters.value if self._counters else {}

    @property
    def marker_tree(self) -> MarkerTree:
        return self._markers.value if self._markers else {}

    def counters(self) -> list[LectureCounter]:
        return list(iter_counters(self.counter_tree))

    def active_subject(self, branch_name: str, semester: str) -> Optional[str]:
        row = self.marker_tree.get(branch_name, {}).get(semester)
        return row.subject if row else None

    def active_counters(self) -> list[LectureCounter]:
        return [
            c
            for c in self.counters()
            if self.active_subject(c.branchName, c.semesterLabel) == c.subject
        ]

    def get(self, branch_name: str, semester: str, subject: str) -> LectureCounter:
        counter = self.counter_tree.get(branch_name, {}).get(semester, {}).get(subject)
        if counter is None:
            raise NotFound(f"No lecture counter for {branch_name} / {semester} / {subject}")
        return counter

    def _replace_local(self, counter: LectureCounter) -> None:
        tree = self.counter_tree
        tree.setdefault(counter.branchName, {}).setdefault(counter.semesterLabel, {})[
            counter.subject
        ] = counter

    def activate(self, row: SubjectRow) -> LectureCounter:
        """Make ``row.subject`` the one active subject of its semester.

        Overwrites the previous marker and creates a zero counter for the
        subject if the store has none.
        """
        path = counter_path(row.branchName, row.semesterLabel, row.subject)
        self._store.set(marker_path(row.branchName, row.semesterLabel), row.to_store())
        logger.info(f"Active subject for {row.branchName} / {row.semesterLabel} is now {row.subject}")

        existing = self._store.get(path)
        counter = LectureCounter(
            branchName=row.branchName,
            semesterLabel=row.semesterLabel,
            subject=row.subject,
            count=existing.get("count") if isinstance(existing, dict) else 0,
        )
        if isinstance(existing, dict):
            return counter

        self._store.set(path, counter.to_store())
        with self._lock:
            self._replace_local(counter)
        logger.info(f"Created lecture counter {path}")
        return counter

    def adjust(self, branch_name: str, semester: str, subject: str, delta: int) -> LectureCounter:
        """Step a counter locally; nothing is written until ``persist``."""
        with self._lock:
            counter = adjust_count(self.get(branch_name, semester, subject), delta)
            self._replace_local(counter)
        return counter

    def persist(self, branch_name: str, semester: str, subject: str) -> LectureCounter:
        with self._lock:
            counter = self.get(branch_name, semester, subject)
        path = counter_path(branch_name, semester, subject)
        try:
            self._store.set(path, counter.to_store())
        except StoreError:
            logger.error(f"Saving lecture count {path} failed; local count {counter.count} kept")
            raise
        logger.info(f"Saved lecture count {path} = {counter.count}")
        return counter

    def increment_atomic(
        self, branch_name: str, semester: str, subject: str, delta: int
    ) -> LectureCounter:
        """Apply ``delta`` inside a store transaction, clamped at zero."""
        if delta not in (1, -1):
            raise ValidationFailed("Lecture count can only be changed by +1 or -1")
        path = counter_path(branch_name, semester, subject)

        def update(current):
            current = current if isinstance(current, dict) else {}
            count = max(int(current.get("count") or 0) + delta, 0)
            return LectureCounter(
                branchName=branch_name, semesterLabel=semester, subject=subject, count=count
            ).to_store()

        committed = LectureCounter.model_validate(self._store.transaction(path, update))
        with self._lock:
            self._replace_local(committed)
        return committed
