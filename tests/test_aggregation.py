from datetime import datetime, timezone

from conftest import JAN_1, MAR_1, cs_tree

from attendance_admin.models.lecture import parse_counter_tree
from attendance_admin.models.user import AttendanceEvent, User, parse_users
from attendance_admin.services.aggregation import (
    Granularity,
    TimeFilter,
    compute_subject_breakdown,
    compute_user_summary,
    dashboard_stats,
    disambiguate_timestamp,
    event_datetime,
    fleet_summary,
    group_by_period,
    percentage,
    search_rows,
)


def _cs_user_and_counters():
    tree = cs_tree()
    (user,) = parse_users(tree["users"])
    return user, parse_counter_tree(tree["lecturecount"])


def _event(ts, subject="Maths", attended=True, branch="CS", sem="3"):
    return AttendanceEvent(attended=attended, timestamp=ts, branch=branch, sem=sem, subject=subject)


def test_ten_digit_timestamps_are_seconds():
    assert disambiguate_timestamp(1700000000) == 1700000000000
    assert disambiguate_timestamp(1700000000.0) == 1700000000000


def test_other_timestamps_are_left_alone():
    assert disambiguate_timestamp(1700000000123) == 1700000000123
    assert disambiguate_timestamp(170000000) == 170000000
    assert disambiguate_timestamp(0) == 0


def test_percentage_rounds_half_up():
    assert percentage(4, 15) == 27
    assert percentage(1, 8) == 13
    assert percentage(5, 0) == 0


def test_user_summary_scenario():
    user, counters = _cs_user_and_counters()

    summary = compute_user_summary(user, user.attendance.values(), counters)

    assert summary.total_scheduled == 15
    assert summary.total_attended == 4
    assert summary.total_absent == 11
    assert summary.rate == 27


def test_user_summary_is_idempotent():
    user, counters = _cs_user_and_counters()
    events = list(user.attendance.values())

    assert compute_user_summary(user, events, counters) == compute_user_summary(user, events, counters)


def test_absent_never_negative_when_attended_exceeds_scheduled():
    user = User(branch="CS", semester="3")
    counters = parse_counter_tree({"CS": {"3": {"Maths": {"count": 2}}}})
    events = [_event(JAN_1 + i) for i in range(5)]

    summary = compute_user_summary(user, events, counters)

    assert summary.total_attended == 5
    assert summary.total_absent == 0
    assert summary.rate == 250


def test_rate_is_zero_without_scheduled_lectures():
    user = User(branch="CS", semester="3")
    events = [_event(JAN_1), _event(MAR_1)]

    summary = compute_user_summary(user, events, {})

    assert summary.total_attended == 2
    assert summary.total_scheduled == 0
    assert summary.rate == 0


def test_events_for_other_branch_or_semester_do_not_count():
    user = User(branch="CS", semester="3")
    counters = parse_counter_tree({"CS": {"3": {"Maths": {"count": 4}}}})
    events = [
        _event(JAN_1),
        _event(JAN_1, branch="cs"),
        _event(JAN_1, sem="4"),
        _event(JAN_1, attended=False),
    ]

    assert compute_user_summary(user, events, counters).total_attended == 1


def test_subject_breakdown_only_lists_counted_subjects():
    user, counters = _cs_user_and_counters()
    events = list(user.attendance.values()) + [_event(MAR_1, subject="Chemistry")]

    rows = {r.subject: r for r in compute_subject_breakdown(user, events, counters)}

    assert set(rows) == {"Maths", "Physics"}
    assert (rows["Maths"].attended, rows["Maths"].scheduled, rows["Maths"].percentage) == (3, 10, 30)
    assert (rows["Physics"].attended, rows["Physics"].scheduled, rows["Physics"].percentage) == (1, 5, 20)


def test_branch_name_without_counters_shows_zero_scheduled():
    # Events recorded under a branch name that has no counters any more.
    user = User(branch="Old CS", semester="3")
    counters = parse_counter_tree({"CS": {"3": {"Maths": {"count": 10}}}})
    events = [_event(JAN_1, branch="Old CS"), _event(MAR_1, branch="Old CS")]

    summary = compute_user_summary(user, events, counters)

    assert summary.total_scheduled == 0
    assert summary.total_attended == 2
    assert compute_subject_breakdown(user, events, counters) == []


def test_group_by_period_keeps_insertion_order():
    march, january = _event(MAR_1), _event(JAN_1)

    groups = list(group_by_period([march, january]))

    assert [label for label, _ in groups] == ["March 2024", "January 2024"]
    assert groups[0][1] == [march]


def test_group_by_period_can_be_iterated_again():
    events = [_event(JAN_1), _event(MAR_1), _event(JAN_1 + 60)]

    groups = group_by_period(events)
    first = list(groups)
    second = list(groups)

    assert first == second
    assert [(label, len(items)) for label, items in first] == [("January 2024", 2), ("March 2024", 1)]


def test_group_by_year_and_day():
    events = [_event(JAN_1), _event(MAR_1 * 1000)]

    assert [label for label, _ in group_by_period(events, Granularity.YEAR)] == ["2024"]
    assert [label for label, _ in group_by_period(events, Granularity.DAY)] == [
        "January 01, 2024",
        "March 01, 2024",
    ]


def _fleet_user(key, **fields):
    return User.model_validate({"key": key, "branch": "CS", "sem": "3", **fields})


def test_fleet_summary_time_filters():
    now = datetime(2024, 3, 5, 12, tzinfo=timezone.utc)
    counters = parse_counter_tree({"CS": {"3": {"Maths": {"count": 10}, "Physics": {"count": 5}}}})
    user = _fleet_user(
        "u1",
        name="Asha",
        attendance={
            "a": _event(MAR_1).model_dump(by_alias=True),
            "b": _event(JAN_1).model_dump(by_alias=True),
            "c": _event(1700000000).model_dump(by_alias=True),  # Nov 2023
        },
    )

    def rate(time_filter):
        return fleet_summary([user], counters, time_filter, now=now).rows[0].attendancePercentage

    assert rate(TimeFilter.ALL) == 20
    assert rate(TimeFilter.THIS_YEAR) == 13
    assert rate(TimeFilter.THIS_MONTH) == 7
    assert rate(TimeFilter.PAST_WEEK) == 7


def test_out_of_range_timestamp_is_skipped_by_time_filters():
    now = datetime(2024, 3, 5, 12, tzinfo=timezone.utc)
    counters = parse_counter_tree({"CS": {"3": {"Maths": {"count": 10}}}})
    user = _fleet_user(
        "u1",
        attendance={
            "a": _event(MAR_1).model_dump(by_alias=True),
            "bad": _event(10**17).model_dump(by_alias=True),
        },
    )

    def count(time_filter):
        return fleet_summary([user], counters, time_filter, now=now).rows[0].attendanceCount

    assert count(TimeFilter.ALL) == 2
    assert count(TimeFilter.THIS_YEAR) == 1
    assert count(TimeFilter.THIS_MONTH) == 1
    assert count(TimeFilter.PAST_WEEK) == 1


def test_out_of_range_timestamp_gets_invalid_date_bucket():
    bad = _event(10**17)

    assert event_datetime(bad) is None
    assert [label for label, _ in group_by_period([_event(MAR_1), bad])] == ["March 2024", "Invalid Date"]


def test_past_week_excludes_future_and_older_events():
    now = datetime(2024, 3, 20, tzinfo=timezone.utc)
    counters = parse_counter_tree({"CS": {"3": {"Maths": {"count": 10}}}})
    user = _fleet_user(
        "u1",
        attendance={
            "old": _event(MAR_1).model_dump(by_alias=True),
            "future": _event(int(datetime(2024, 3, 21, tzinfo=timezone.utc).timestamp())).model_dump(by_alias=True),
        },
    )

    row = fleet_summary([user], counters, TimeFilter.PAST_WEEK, now=now).rows[0]

    assert row.attendanceCount == 0


def test_fleet_average_is_unweighted_mean():
    counters = parse_counter_tree({"CS": {"3": {"Maths": {"count": 10}}}})
    strong = _fleet_user("u1", attendance={f"e{i}": _event(JAN_1 + i).model_dump(by_alias=True) for i in range(5)})
    none_scheduled = _fleet_user("u2", branch="EE")

    summary = fleet_summary([strong, none_scheduled], counters)

    assert [r.attendancePercentage for r in summary.rows] == [50, 0]
    assert summary.average_percentage == 25
    assert summary.total_users == 2


def test_fleet_rows_fill_missing_fields():
    summary = fleet_summary([User(key="u9")], {})

    row = summary.rows[0]
    assert (row.name, row.branch, row.sem) == ("Unknown", "N/A", "N/A")
    assert fleet_summary([], {}).average_percentage == 0


def test_search_rows_matches_name_roll_and_id():
    rows = fleet_summary(
        [
            _fleet_user("u1", id=5, name="Asha", rollNumber="CS-17"),
            _fleet_user("u2", id=12, name="Ravi", rollNumber="CS-02"),
        ],
        {},
    ).rows

    assert [r.key for r in search_rows(rows, "asha")] == ["u1"]
    assert [r.key for r in search_rows(rows, "cs-0")] == ["u2"]
    assert [r.key for r in search_rows(rows, "12")] == ["u2"]
    assert len(search_rows(rows, "  ")) == 2


def test_dashboard_stats_counts_today_attended_events():
    now = datetime(2024, 3, 1, 18, tzinfo=timezone.utc)
    users = parse_users(cs_tree()["users"])

    stats = dashboard_stats(users, ["5", "9"], now=now)

    assert stats.total_students == 1
    assert stats.total_attendance == 4
    assert stats.today_attendance == 2
    assert stats.enrolled_fingerprints == 2
