"""Student records under ``users/{key}`` and their attendance events."""
import logging

from attendance_admin.errors import NotFound
from attendance_admin.models.user import User, parse_users
from attendance_admin.services.enrollment import release_slot
from attendance_admin.store import TreeStore, child_path

logger = logging.getLogger(__name__)

USERS_ROOT = "users"


def list_users(store: TreeStore) -> list[User]:
    return parse_users(store.get(USERS_ROOT))


def get_user(store: TreeStore, user_key: str) -> User:
    value = store.get(child_path(USERS_ROOT, user_key))
    if not isinstance(value, dict):
        raise NotFound("Student not found")
    return User.model_validate({**value, "key": user_key})


def delete_user(store: TreeStore, user_key: str) -> User:
    """Remove the student and free their fingerprint slot."""
    user = get_user(store, user_key)
    store.delete(child_path(USERS_ROOT, user_key))
    if user.id:
        release_slot(store, user.id)
    logger.info(f"Deleted student {user.name or user_key} (slot {user.id or '-'})")
    return user


def delete_attendance_event(store: TreeStore, user_key: str, event_key: str) -> None:
    user = get_user(store, user_key)
    if event_key not in user.attendance:
        raise NotFound("Attendance record not found")
    store.delete(child_path(USERS_ROOT, user_key, "attendance", event_key))
