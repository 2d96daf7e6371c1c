from fastapi import APIRouter

from attendance_admin.api.deps import Store
from attendance_admin.services import users as users_service

router = APIRouter()


@router.get("/")
def list_users(store: Store):
    return [
        {
            "key": u.key,
            "id": u.id,
            "name": u.name,
            "number": u.phone,
            "rollNumber": u.rollNumber,
            "branch": u.branch,
            "sem": u.semester,
            "attendance_count": len(u.attendance),
        }
        for u in users_service.list_users(store)
    ]


@router.delete("/{user_key}")
def delete_user(user_key: str, store: Store):
    user = users_service.delete_user(store, user_key)
    return {"status": "success", "message": f"Student {user.name or user_key} deleted", "released_id": user.id}
