from dataclasses import asdict
from typing import Any, Dict

from fastapi import APIRouter

from attendance_admin.api.deps import Store
from attendance_admin.config import settings
from attendance_admin.services import enrollment
from attendance_admin.services import users as users_service
from attendance_admin.services.aggregation import dashboard_stats

router = APIRouter()


@router.get("/stats")
def get_dashboard_stats(store: Store) -> Dict[str, Any]:
    """Overview counts for the dashboard."""
    stats = dashboard_stats(
        users_service.list_users(store),
        enrollment.reserved_ids(store),
        tz=settings.tz(),
    )
    return asdict(stats)
