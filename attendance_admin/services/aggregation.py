"""Attendance aggregation: per-student summaries, subject breakdowns and fleet averages.

Scheduled lectures come from the lecture counter tree; attended lectures are
the student's own events whose branch and semester equal the student's current
branch and semester (exact, case-sensitive string match). Both sides join on
names, so events and counters recorded under a branch or semester name that no
longer exists keep counting under that old name.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone, tzinfo
from enum import Enum
from typing import Iterable, Iterator, Optional

from attendance_admin.models.lecture import CounterTree
from attendance_admin.models.user import AttendanceEvent, User


class TimeFilter(str, Enum):
    ALL = "all"
    THIS_YEAR = "year"
    THIS_MONTH = "month"
    PAST_WEEK = "week"


class Granularity(str, Enum):
    DAY = "day"
    MONTH = "month"
    YEAR = "year"


_PERIOD_FORMATS = {
    Granularity.DAY: "%B %d, %Y",
    Granularity.MONTH: "%B %Y",
    Granularity.YEAR: "%Y",
}


def disambiguate_timestamp(timestamp: int | float) -> int | float:
    """Epoch milliseconds from a timestamp stored in seconds or milliseconds.

    A value whose decimal representation is exactly 10 characters long is
    taken to be seconds.
    """
    if isinstance(timestamp, float) and timestamp.is_integer():
        timestamp = int(timestamp)
    if len(str(timestamp)) == 10:
        return timestamp * 1000
    return timestamp


INVALID_DATE = "Invalid Date"


def event_datetime(event: AttendanceEvent, tz: tzinfo = timezone.utc) -> Optional[datetime]:
    """Local time of the event, or None when the timestamp is out of range."""
    try:
        return datetime.fromtimestamp(disambiguate_timestamp(event.timestamp) / 1000, tz=tz)
    except (ValueError, OverflowError, OSError):
        return None


def percentage(part: int, whole: int) -> int:
    """Whole-number percentage rounded half up; 0 when ``whole`` is 0."""
    if whole <= 0:
        return 0
    return math.floor(part * 100 / whole + 0.5)


@dataclass(frozen=True)
class UserSummary:
    total_attended: int
    total_scheduled: int
    total_absent: int
    rate: int


@dataclass(frozen=True)
class SubjectBreakdownRow:
    subject: str
    attended: int
    scheduled: int
    percentage: int


def matching_events(user: User, events: Iterable[AttendanceEvent]) -> list[AttendanceEvent]:
    return [e for e in events if e.branch == user.branch and e.semester == user.semester]


def scheduled_lectures(counters: CounterTree, branch: str, semester: str) -> int:
    subjects = counters.get(branch, {}).get(semester, {})
    return sum(c.count for c in subjects.values())


def compute_user_summary(
    user: User, events: Iterable[AttendanceEvent], counters: CounterTree
) -> UserSummary:
    attended = sum(1 for e in matching_events(user, events) if e.attended)
    scheduled = scheduled_lectures(counters, user.branch, user.semester)
    return UserSummary(
        total_attended=attended,
        total_scheduled=scheduled,
        total_absent=max(scheduled - attended, 0),
        rate=percentage(attended, scheduled),
    )


def compute_subject_breakdown(
    user: User, events: Iterable[AttendanceEvent], counters: CounterTree
) -> list[SubjectBreakdownRow]:
    """One row per subject that has a counter for the student's branch and semester.

    Attended events for subjects without a counter are not reported.
    """
    attended_by_subject: dict[str, int] = {}
    for e in matching_events(user, events):
        if e.attended and e.subject:
            attended_by_subject[e.subject] = attended_by_subject.get(e.subject, 0) + 1

    rows = []
    for subject, counter in counters.get(user.branch, {}).get(user.semester, {}).items():
        attended = attended_by_subject.get(subject, 0)
        rows.append(
            SubjectBreakdownRow(
                subject=subject,
                attended=attended,
                scheduled=counter.count,
                percentage=percentage(attended, counter.count),
            )
        )
    return rows


class PeriodGroups:
    """Events bucketed by calendar period, in first-seen order of each period.

    Iteration recomputes the buckets from the source events, so the same
    object can be iterated any number of times.
    """

    def __init__(
        self,
        events: Iterable[AttendanceEvent],
        granularity: Granularity = Granularity.MONTH,
        tz: tzinfo = timezone.utc,
    ):
        self._events = list(events)
        self._format = _PERIOD_FORMATS[Granularity(granularity)]
        self._tz = tz

    def __iter__(self) -> Iterator[tuple[str, list[AttendanceEvent]]]:
        buckets: dict[str, list[AttendanceEvent]] = {}
        for event in self._events:
            when = event_datetime(event, self._tz)
            label = when.strftime(self._format) if when else INVALID_DATE
            buckets.setdefault(label, []).append(event)
        yield from buckets.items()


def group_by_period(
    events: Iterable[AttendanceEvent],
    granularity: Granularity = Granularity.MONTH,
    tz: tzinfo = timezone.utc,
) -> PeriodGroups:
    return PeriodGroups(events, granularity, tz)


def within_filter(
    event: AttendanceEvent, time_filter: TimeFilter, now: datetime, tz: tzinfo = timezone.utc
) -> bool:
    if time_filter == TimeFilter.ALL:
        return True
    when = event_datetime(event, tz)
    if when is None:
        return False
    now = now.astimezone(tz)
    if time_filter == TimeFilter.THIS_YEAR:
        return when.year == now.year
    if time_filter == TimeFilter.THIS_MONTH:
        return (when.year, when.month) == (now.year, now.month)
    age = now - when
    return timedelta(0) <= age <= timedelta(days=7)


@dataclass(frozen=True)
class FleetRow:
    key: str
    id: str
    name: str
    number: str
    rollNumber: str
    branch: str
    sem: str
    attendanceCount: int
    scheduledLectures: int
    attendancePercentage: int


@dataclass(frozen=True)
class FleetSummary:
    rows: list[FleetRow] = field(default_factory=list)
    total_users: int = 0
    average_percentage: int = 0


def fleet_summary(
    users: Iterable[User],
    counters: CounterTree,
    time_filter: TimeFilter = TimeFilter.ALL,
    now: Optional[datetime] = None,
    tz: tzinfo = timezone.utc,
) -> FleetSummary:
    """Per-student attendance within ``time_filter`` and the unweighted mean percentage."""
    now = now or datetime.now(tz)
    time_filter = TimeFilter(time_filter)
    rows = []
    for user in users:
        events = [
            e for e in user.attendance.values() if within_filter(e, time_filter, now, tz)
        ]
        summary = compute_user_summary(user, events, counters)
        rows.append(
            FleetRow(
                key=user.key,
                id=user.id,
                name=user.name or "Unknown",
                number=user.phone,
                rollNumber=user.rollNumber,
                branch=user.branch or "N/A",
                sem=user.semester or "N/A",
                attendanceCount=summary.total_attended,
                scheduledLectures=summary.total_scheduled,
                attendancePercentage=summary.rate,
            )
        )
    average = 0
    if rows:
        average = math.floor(sum(r.attendancePercentage for r in rows) / len(rows) + 0.5)
    return FleetSummary(rows=rows, total_users=len(rows), average_percentage=average)


def search_rows(rows: Iterable[FleetRow], term: Optional[str]) -> list[FleetRow]:
    """Case-insensitive substring match on name, roll number or id."""
    rows = list(rows)
    if not term or not term.strip():
        return rows
    needle = term.strip().lower()
    return [
        r
        for r in rows
        if needle in r.name.lower() or needle in r.rollNumber.lower() or needle in r.id.lower()
    ]


@dataclass(frozen=True)
class DashboardStats:
    total_students: int
    total_attendance: int
    today_attendance: int
    enrolled_fingerprints: int


def dashboard_stats(
    users: Iterable[User],
    reserved_ids: Iterable[str],
    now: Optional[datetime] = None,
    tz: tzinfo = timezone.utc,
) -> DashboardStats:
    now = (now or datetime.now(tz)).astimezone(tz)
    midnight_ms = now.replace(hour=0, minute=0, second=0, microsecond=0).timestamp() * 1000
    users = list(users)
    total = 0
    today = 0
    for user in users:
        for event in user.attendance.values():
            total += 1
            if event.attended and disambiguate_timestamp(event.timestamp) >= midnight_ms:
                today += 1
    return DashboardStats(
        total_students=len(users),
        total_attendance=total,
        today_attendance=today,
        enrolled_fingerprints=len(list(reserved_ids)),
    )
