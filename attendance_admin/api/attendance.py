"""Attendance dashboard, per-student detail and report export."""
import io
from dataclasses import asdict
from typing import Literal, Optional

import pandas as pd
from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import StreamingResponse

from attendance_admin.api.deps import Store
from attendance_admin.config import settings
from attendance_admin.models.lecture import parse_counter_tree
from attendance_admin.services import users as users_service
from attendance_admin.services.aggregation import (
    INVALID_DATE,
    Granularity,
    TimeFilter,
    compute_subject_breakdown,
    compute_user_summary,
    disambiguate_timestamp,
    event_datetime,
    fleet_summary,
    group_by_period,
    search_rows,
)
from attendance_admin.services.lecture_counter import COUNTERS_ROOT

router = APIRouter()


def _fleet(store, time_filter: TimeFilter):
    counters = parse_counter_tree(store.get(COUNTERS_ROOT))
    return fleet_summary(
        users_service.list_users(store), counters, time_filter, tz=settings.tz()
    )


@router.get("/")
def attendance_overview(
    store: Store,
    filter: TimeFilter = Query(TimeFilter.ALL),
    q: Optional[str] = Query(None, description="Search by name, roll number or id"),
):
    summary = _fleet(store, filter)
    rows = search_rows(summary.rows, q)
    return {
        "total_users": summary.total_users,
        "average_percentage": summary.average_percentage,
        "showing": len(rows),
        "users": [asdict(r) for r in rows],
    }


@router.get("/report")
def download_attendance_report(
    store: Store,
    filter: TimeFilter = Query(TimeFilter.ALL),
    format: Literal["csv", "excel"] = Query("csv"),
):
    """Download the attendance overview as CSV or Excel."""
    summary = _fleet(store, filter)
    if not summary.rows:
        raise HTTPException(status_code=404, detail="No students found")

    df = pd.DataFrame(
        [
            {
                "ID": r.id,
                "Name": r.name,
                "Roll Number": r.rollNumber,
                "Phone": r.number,
                "Branch": r.branch,
                "Semester": r.sem,
                "Attended": r.attendanceCount,
                "Scheduled": r.scheduledLectures,
                "Attendance %": r.attendancePercentage,
            }
            for r in summary.rows
        ]
    )

    if format == "csv":
        stream = io.StringIO()
        df.to_csv(stream, index=False)
        return StreamingResponse(
            iter([stream.getvalue()]),
            media_type="text/csv",
            headers={"Content-Disposition": f"attachment; filename=attendance_{filter.value}.csv"},
        )
    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name="Attendance")
    output.seek(0)
    return StreamingResponse(
        output,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f"attachment; filename=attendance_{filter.value}.xlsx"},
    )


@router.get("/{user_key}")
def attendance_detail(
    user_key: str,
    store: Store,
    granularity: Granularity = Query(Granularity.MONTH),
):
    """Student profile, summary, subject breakdown and history grouped by period."""
    user = users_service.get_user(store, user_key)
    counters = parse_counter_tree(store.get(COUNTERS_ROOT))
    tz = settings.tz()

    events = sorted(
        user.attendance.values(),
        key=lambda e: disambiguate_timestamp(e.timestamp),
        reverse=True,
    )
    summary = compute_user_summary(user, events, counters)

    def record(e):
        when = event_datetime(e, tz)
        return {
            "key": e.key,
            "attended": e.attended,
            "timestamp": e.timestamp,
            "timestamp_ms": disambiguate_timestamp(e.timestamp),
            "date": when.strftime("%b %d, %Y") if when else INVALID_DATE,
            "time": when.strftime("%I:%M %p") if when else INVALID_DATE,
            "subject": e.subject or "N/A",
            "branch": e.branch,
            "sem": e.semester,
        }

    history = [
        {"period": period, "records": [record(e) for e in records]}
        for period, records in group_by_period(events, granularity, tz)
    ]

    return {
        "profile": {
            "key": user.key,
            "id": user.id,
            "name": user.name,
            "number": user.phone or "N/A",
            "rollNumber": user.rollNumber or "N/A",
            "branch": user.branch,
            "sem": user.semester,
        },
        "summary": asdict(summary),
        "subjects": [asdict(r) for r in compute_subject_breakdown(user, events, counters)],
        "history": history,
    }


@router.delete("/{user_key}/events/{event_key}")
def delete_attendance_event(user_key: str, event_key: str, store: Store):
    users_service.delete_attendance_event(store, user_key, event_key)
    return {"status": "success", "message": "Attendance record deleted"}
