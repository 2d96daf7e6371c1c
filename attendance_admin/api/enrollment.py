"""Student registration: fingerprint slot selection and device hand-off."""
from fastapi import APIRouter

from attendance_admin.api.deps import Store
from attendance_admin.config import settings
from attendance_admin.models.user import EnrollmentCreate
from attendance_admin.services import enrollment

router = APIRouter()


@router.get("/ids")
def available_ids(store: Store):
    return enrollment.available_ids(store, settings.fingerprint_slot_min, settings.fingerprint_slot_max)


@router.get("/")
def pending_enrollment(store: Store):
    current = enrollment.pending(store)
    return current.to_store() if current else None


@router.post("/", status_code=201)
def register_student(data: EnrollmentCreate, store: Store):
    pending = enrollment.register(
        store, data, settings.fingerprint_slot_min, settings.fingerprint_slot_max
    )
    return pending.to_store()


@router.delete("/")
def cancel_enrollment(store: Store):
    cancelled = enrollment.cancel(store)
    return {"status": "success", "message": f"Enrollment for ID {cancelled.id} cancelled"}
