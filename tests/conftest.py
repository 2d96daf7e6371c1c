import pytest
from fastapi.testclient import TestClient

from attendance_admin import db
from attendance_admin.errors import StoreError
from attendance_admin.store import MemoryTreeStore

# 2024-01-01 12:00 UTC and 2024-03-01 12:00 UTC, in seconds
JAN_1 = 1704110400
MAR_1 = 1709294400


class FailingStore(MemoryTreeStore):
    """In-process store whose writes under ``fail_prefix`` raise StoreError."""

    def __init__(self, data=None, fail_prefix=None):
        super().__init__(data)
        self.fail_prefix = fail_prefix

    def set(self, path, value):
        if self.fail_prefix and path.startswith(self.fail_prefix):
            raise StoreError(f"Could not write '{path}'. Please try again.")
        super().set(path, value)


def cs_tree():
    """Branch CS / semester 3 with Maths (10 lectures) and Physics (5 lectures)."""
    return {
        "subjects": {
            "b1": {
                "id": "b1",
                "branch": "CS",
                "semesters": [{"id": 11, "sem": "3", "subjects": ["Maths", "Physics"]}],
            }
        },
        "lecturecount": {
            "CS": {
                "3": {
                    "Maths": {"branchName": "CS", "sem": "3", "subject": "Maths", "count": 10},
                    "Physics": {"branchName": "CS", "sem": "3", "subject": "Physics", "count": 5},
                }
            }
        },
        "users": {
            "u1": {
                "id": 5,
                "name": "Asha",
                "number": "9990001111",
                "rollNumber": "CS-17",
                "branch": "CS",
                "sem": "3",
                "attendance": {
                    "a1": {"attended": True, "timestamp": JAN_1, "branch": "CS", "sem": "3", "subject": "Maths"},
                    "a2": {"attended": True, "timestamp": MAR_1 * 1000, "branch": "CS", "sem": "3", "subject": "Maths"},
                    "a3": {"attended": True, "timestamp": MAR_1, "branch": "CS", "sem": "3", "subject": "Maths"},
                    "a4": {"attended": True, "timestamp": JAN_1 + 3600, "branch": "CS", "sem": "3", "subject": "Physics"},
                },
            }
        },
        "fingerprints": {"5": "reserved"},
    }


@pytest.fixture
def store():
    return MemoryTreeStore()


@pytest.fixture
def cs_store():
    return MemoryTreeStore(cs_tree())


def _client(store):
    from attendance_admin.main import app

    db.init_store(store)
    try:
        with TestClient(app) as client:
            yield client
    finally:
        db.close_store()


@pytest.fixture
def client(store):
    yield from _client(store)


@pytest.fixture
def cs_client(cs_store):
    yield from _client(cs_store)
