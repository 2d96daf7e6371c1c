"""Fingerprint slot registry and the single-slot enrollment hand-off.

A student is registered by writing their details to the ``id`` node, where
the enrollment device picks them up, and marking ``fingerprints/{slot}`` as
reserved. Slots are freed when the enrollment is cancelled or the student is
deleted.
"""
import logging
from typing import Optional

from attendance_admin.errors import Conflict, NotFound, ValidationFailed
from attendance_admin.models.user import EnrollmentCreate, PendingEnrollment
from attendance_admin.services.taxonomy import get_branch
from attendance_admin.store import TreeStore, as_mapping, child_path

logger = logging.getLogger(__name__)

FINGERPRINTS_ROOT = "fingerprints"
PENDING_PATH = "id"
RESERVED = "reserved"


def reserved_ids(store: TreeStore) -> list[str]:
    return list(as_mapping(store.get(FINGERPRINTS_ROOT)).keys())


def available_ids(store: TreeStore, slot_min: int, slot_max: int) -> list[str]:
    used = set(reserved_ids(store))
    return [str(i) for i in range(slot_min, slot_max + 1) if str(i) not in used]


def pending(store: TreeStore) -> Optional[PendingEnrollment]:
    value = store.get(PENDING_PATH)
    if not isinstance(value, dict) or value.get("id") in (None, ""):
        return None
    return PendingEnrollment.model_validate(value)


def _slot(value: Optional[str], slot_min: int, slot_max: int) -> str:
    slot = (value or "").strip()
    if not slot:
        raise ValidationFailed("Please select a user ID")
    if not slot.isdigit() or not slot_min <= int(slot) <= slot_max:
        raise ValidationFailed(f"User ID must be a number from {slot_min} to {slot_max}")
    return str(int(slot))


def register(
    store: TreeStore, data: EnrollmentCreate, slot_min: int, slot_max: int
) -> PendingEnrollment:
    slot = _slot(data.id, slot_min, slot_max)
    if not data.branchId:
        raise ValidationFailed("Please select a branch")
    try:
        branch = get_branch(store, data.branchId)
    except NotFound:
        raise ValidationFailed("Selected branch not found.")

    fingerprint = child_path(FINGERPRINTS_ROOT, slot)
    if store.get(fingerprint) is not None:
        raise Conflict("User ID already exists. Please choose a different ID.")

    enrollment = PendingEnrollment(
        id=slot,
        name=data.name,
        phone=data.phone,
        rollNumber=data.rollNumber,
        branch=branch.name,
        semester=data.semester,
    )
    store.set(PENDING_PATH, enrollment.to_store())
    store.set(fingerprint, RESERVED)
    logger.info(f"Reserved fingerprint slot {slot} for {enrollment.name or 'unnamed student'}")
    return enrollment


def release_slot(store: TreeStore, slot: str) -> None:
    store.delete(child_path(FINGERPRINTS_ROOT, slot))
    logger.info(f"Released fingerprint slot {slot}")


def cancel(store: TreeStore) -> PendingEnrollment:
    """Free the pending slot and clear the hand-off node if it still holds it."""
    current = pending(store)
    if current is None:
        raise ValidationFailed("No user data found for deletion.")
    release_slot(store, current.id)
    latest = pending(store)
    if latest is not None and latest.id == current.id:
        store.delete(PENDING_PATH)
    return current
