import threading
import time

import pytest
from conftest import FailingStore, cs_tree

from attendance_admin.errors import NotFound, StoreError, ValidationFailed
from attendance_admin.models.lecture import LectureCounter, SubjectRow
from attendance_admin.services import lecture_counter
from attendance_admin.services.lecture_counter import LectureCounterReconciler, adjust_count


def _row(subject, branch="CS", sem="3"):
    return SubjectRow(branchId="b1", branchName=branch, semesterId="11", semesterLabel=sem, subject=subject)


def _started(store):
    reconciler = LectureCounterReconciler(store)
    reconciler.start()
    return reconciler


def test_decrement_at_zero_stays_zero():
    counter = LectureCounter(branchName="CS", semesterLabel="3", subject="Maths", count=0)

    assert adjust_count(counter, -1).count == 0
    assert adjust_count(counter, 1).count == 1
    assert counter.count == 0


def test_adjust_rejects_other_deltas():
    counter = LectureCounter(branchName="CS", semesterLabel="3", subject="Maths", count=3)

    with pytest.raises(ValidationFailed):
        adjust_count(counter, 2)


def test_activate_creates_zero_counter(store):
    reconciler = _started(store)

    counter = reconciler.activate(_row("Maths"))

    assert counter.count == 0
    assert store.get("lecturecount/CS/3/Maths") == {
        "branchName": "CS",
        "sem": "3",
        "subject": "Maths",
        "count": 0,
    }
    assert reconciler.active_subject("CS", "3") == "Maths"


def test_activate_keeps_existing_count(cs_store):
    reconciler = _started(cs_store)

    counter = reconciler.activate(_row("Maths"))

    assert counter.count == 10
    assert cs_store.get("lecturecount/CS/3/Maths")["count"] == 10


def test_activating_another_subject_replaces_marker(cs_store):
    reconciler = _started(cs_store)

    reconciler.activate(_row("Maths"))
    reconciler.activate(_row("Physics"))

    assert cs_store.get("currentattendance/CS/3")["subject"] == "Physics"
    assert reconciler.active_subject("CS", "3") == "Physics"
    assert [c.subject for c in reconciler.active_counters()] == ["Physics"]


def test_local_adjustments_are_not_persisted_until_saved(cs_store):
    reconciler = _started(cs_store)

    reconciler.adjust("CS", "3", "Maths", 1)
    reconciler.adjust("CS", "3", "Maths", 1)

    assert reconciler.get("CS", "3", "Maths").count == 12
    assert cs_store.get("lecturecount/CS/3/Maths")["count"] == 10

    reconciler.persist("CS", "3", "Maths")

    assert cs_store.get("lecturecount/CS/3/Maths")["count"] == 12


def test_store_delivery_replaces_unsaved_adjustment(cs_store):
    reconciler = _started(cs_store)
    reconciler.adjust("CS", "3", "Maths", -1)

    # another operator saves their own value
    cs_store.set("lecturecount/CS/3/Maths", {"branchName": "CS", "sem": "3", "subject": "Maths", "count": 20})

    assert reconciler.get("CS", "3", "Maths").count == 20


def test_failed_persist_keeps_local_count():
    store = FailingStore(cs_tree(), fail_prefix="lecturecount")
    reconciler = _started(store)
    reconciler.adjust("CS", "3", "Maths", 1)

    with pytest.raises(StoreError):
        reconciler.persist("CS", "3", "Maths")

    assert reconciler.get("CS", "3", "Maths").count == 11
    assert store.get("lecturecount/CS/3/Maths")["count"] == 10


def test_adjust_unknown_counter(store):
    reconciler = _started(store)

    with pytest.raises(NotFound):
        reconciler.adjust("CS", "3", "Maths", 1)


def test_increment_atomic_updates_store_and_clamps(cs_store):
    reconciler = _started(cs_store)

    assert reconciler.increment_atomic("CS", "3", "Physics", 1).count == 6
    assert cs_store.get("lecturecount/CS/3/Physics")["count"] == 6

    fresh = reconciler.increment_atomic("CS", "3", "Biology", -1)
    assert fresh.count == 0
    assert cs_store.get("lecturecount/CS/3/Biology")["count"] == 0


def test_activate_rejects_names_unusable_as_keys(store):
    reconciler = _started(store)

    with pytest.raises(ValidationFailed):
        reconciler.activate(_row("Maths", branch="B.Tech"))

    assert store.get("currentattendance") is None


def test_stop_closes_subscriptions(cs_store):
    reconciler = _started(cs_store)
    reconciler.stop()

    assert reconciler.counters() == []


def test_concurrent_adjustments_are_not_lost(cs_store, monkeypatch):
    reconciler = _started(cs_store)

    def slow_adjust(counter, delta):
        time.sleep(0.05)
        return adjust_count(counter, delta)

    monkeypatch.setattr(lecture_counter, "adjust_count", slow_adjust)
    threads = [
        threading.Thread(target=reconciler.adjust, args=("CS", "3", "Maths", 1)) for _ in range(5)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert reconciler.get("CS", "3", "Maths").count == 15


def test_activate_replaces_malformed_counter(cs_store):
    cs_store.set("lecturecount/CS/3/Maths", "broken")
    reconciler = _started(cs_store)

    counter = reconciler.activate(_row("Maths"))

    assert counter.count == 0
    assert cs_store.get("lecturecount/CS/3/Maths") == {
        "branchName": "CS",
        "sem": "3",
        "subject": "Maths",
        "count": 0,
    }
    assert reconciler.adjust("CS", "3", "Maths", 1).count == 1
