from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest

from weatherwise.api.schemas.recommendations import Activity, TodoItem, WeeklySummary
from weatherwise.services.reconciler import (
    DEFAULT_ACTIVITY_REASON,
    DEFAULT_SUMMARY,
    TASK_PRIMARY_REASON,
    reconcile,
    reconcile_with_report,
)
from weatherwise.services.response_parser import CandidateSchedule

ACTIVITIES = [
    Activity.model_validate({"id": "hike", "name": "Hiking", "type": {"outdoor": True}}),
    Activity.model_validate({"id": "read", "name": "Reading", "type": {"indoor": True}}),
]


def _todos(count: int) -> List[TodoItem]:
    return [TodoItem(id=f"t{i}", text=f"Task {i}", type={"indoor": True}) for i in range(count)]


def _entry(
    activity_id: Any,
    *,
    primary: bool = False,
    source: Any = "user",
    score: Any = 80,
    reason: str = "fits",
    name: Optional[str] = None,
) -> Dict[str, Any]:
    return {
        "activity": {"id": activity_id, "name": name or str(activity_id), "type": {"indoor": True, "outdoor": False}},
        "suitabilityScore": score,
        "reason": reason,
        "source": source,
        "timeSlot": "Morning (09:00-12:00)",
        "isPrimaryDay": primary,
    }


def _candidate(days: List[Any], summary: Any = "A sunny week with hikes on Monday and Friday.") -> CandidateSchedule:
    return CandidateSchedule(summary=summary, recommendations=days)


def _full_week() -> List[List[Dict[str, Any]]]:
    return [[_entry("hike" if day % 2 == 0 else "read", primary=True)] for day in range(7)]


def _primary_days(result: WeeklySummary, activity_id: str) -> List[int]:
    return [
        index
        for index, day in enumerate(result.recommendations)
        for rec in day
        if rec.activity.id == activity_id and rec.is_primary_day
    ]


def _assert_week_invariants(result: WeeklySummary, todos: List[TodoItem], activities: List[Activity]) -> None:
    assert len(result.recommendations) == 7
    for day in result.recommendations:
        ids = [rec.activity.id for rec in day]
        assert len(ids) == len(set(ids))
        if day or activities:
            assert any(rec.is_primary_day for rec in day)
    for todo in todos:
        if todo.completed:
            continue
        assert len(_primary_days(result, todo.id)) == 1


def _as_candidate(result: WeeklySummary) -> CandidateSchedule:
    dumped = result.model_dump(mode="json", by_alias=True)
    return CandidateSchedule(summary=dumped["summary"], recommendations=dumped["recommendations"])


def test_short_week_is_padded_and_repaired() -> None:
    todos = _todos(1)
    days = [[_entry("hike", primary=True)], [_entry("read", primary=True)], [_entry("hike", primary=True)]]

    result = reconcile(_candidate(days), ACTIVITIES, todos)

    assert len(result.recommendations) == 7
    assert _primary_days(result, "t0") == [0]
    for day_index in range(3, 7):
        (default,) = result.recommendations[day_index]
        assert default.activity.id == ACTIVITIES[day_index % 2].id
        assert default.is_primary_day is True
        assert default.source == "user"
        assert default.suitability_score == 60
        assert default.reason == DEFAULT_ACTIVITY_REASON
        assert default.time_slot == "Evening (18:00-20:00)"
    _assert_week_invariants(result, todos, ACTIVITIES)


def test_task_primary_on_two_days_keeps_first() -> None:
    todos = _todos(1)
    days = _full_week()
    days[0].append(_entry("t0", primary=True, source="todo"))
    days[4].append(_entry("t0", primary=True, source="todo"))

    result = reconcile(_candidate(days), ACTIVITIES, todos)

    assert _primary_days(result, "t0") == [0]
    demoted = [rec for rec in result.recommendations[4] if rec.activity.id == "t0"]
    assert len(demoted) == 1
    assert demoted[0].is_primary_day is False
    _assert_week_invariants(result, todos, ACTIVITIES)


def test_empty_day_gets_default_activity_by_day_index() -> None:
    days = _full_week()
    days[3] = []

    result = reconcile(_candidate(days), ACTIVITIES, [])

    (default,) = result.recommendations[3]
    assert default.activity == ACTIVITIES[3 % 2]
    assert default.is_primary_day is True


def test_omitted_task_is_assigned_by_caller_index() -> None:
    todos = _todos(3)
    days = _full_week()
    days[0].append(_entry("t0", primary=True, source="todo"))
    days[5].append(_entry("t2", primary=True, source="todo"))

    result = reconcile(_candidate(days), ACTIVITIES, todos)

    assert _primary_days(result, "t1") == [1]
    (added,) = [rec for rec in result.recommendations[1] if rec.activity.id == "t1"]
    assert added.source == "todo"
    assert added.suitability_score == 70
    assert added.reason == TASK_PRIMARY_REASON
    assert added.time_slot == "Evening (18:00-20:00)"
    assert added.activity.name == "Task 1"
    assert _primary_days(result, "t0") == [0]
    assert _primary_days(result, "t2") == [5]


def test_existing_alternative_is_promoted_for_uncovered_task() -> None:
    todos = _todos(2)
    days = _full_week()
    days[1].append(_entry("t1", source="todo", score=40))
    days[3].append(_entry("t1", source="todo", score=90))

    result = reconcile(_candidate(days), ACTIVITIES, todos)

    assert _primary_days(result, "t1") == [1]
    assert [rec.activity.id for rec in result.recommendations[1]].count("t1") == 1
    assert _primary_days(result, "t0") == [0]


@pytest.mark.parametrize("length", [0, 3, 7, 10])
def test_output_always_has_seven_days(length: int) -> None:
    todos = _todos(2)
    days = [[_entry("hike", primary=True)] for _ in range(length)]
    if length == 10:
        # A task that is only primary on a day past the week still needs a day.
        days[8].append(_entry("t0", primary=True, source="todo"))

    result = reconcile(_candidate(days), ACTIVITIES, todos)

    assert len(result.recommendations) == 7
    _assert_week_invariants(result, todos, ACTIVITIES)


def test_duplicates_keep_primary_instance() -> None:
    days = _full_week()
    days[2] = [
        _entry("read", reason="alternative"),
        _entry("hike", primary=True),
        _entry("read", primary=True, reason="headline"),
    ]

    result = reconcile(_candidate(days), ACTIVITIES, [])

    day = result.recommendations[2]
    assert [rec.activity.id for rec in day] == ["hike", "read"]
    assert day[1].reason == "headline"
    assert day[1].is_primary_day is True


def test_non_primary_duplicates_keep_first_seen() -> None:
    days = _full_week()
    days[2] = [_entry("hike", primary=True), _entry("read", reason="first"), _entry("read", reason="second")]

    result = reconcile(_candidate(days), ACTIVITIES, [])

    reads = [rec for rec in result.recommendations[2] if rec.activity.id == "read"]
    assert [rec.reason for rec in reads] == ["first"]


def test_day_without_primary_promotes_highest_score() -> None:
    days = _full_week()
    days[6] = [_entry("hike", score=50), _entry("read", score=85), _entry("swim", score=85, source="ai")]

    result = reconcile(_candidate(days), ACTIVITIES, [])

    flags = {rec.activity.id: rec.is_primary_day for rec in result.recommendations[6]}
    assert flags == {"hike": False, "read": True, "swim": False}


def test_task_primary_elsewhere_is_not_promoted_again() -> None:
    todos = _todos(1)
    days = _full_week()
    days[0].append(_entry("t0", primary=True, source="todo"))
    days[2] = [_entry("t0", source="todo", score=99)]

    result = reconcile(_candidate(days), ACTIVITIES, todos)

    assert _primary_days(result, "t0") == [0]
    primaries = [rec.activity.id for rec in result.recommendations[2] if rec.is_primary_day]
    assert primaries == [ACTIVITIES[0].id]
    _assert_week_invariants(result, todos, ACTIVITIES)


def test_tasks_only_week_without_activities() -> None:
    todos = _todos(2)
    days = [[_entry("t0", primary=True, source="todo")], [_entry("t0", source="todo")]]

    result = reconcile(_candidate(days), [], todos)

    assert _primary_days(result, "t0") == [0]
    assert _primary_days(result, "t1") == [1]
    # Day 1 kept only an alternative for t0 before t1 was placed there.
    assert [rec.activity.id for rec in result.recommendations[1]] == ["t0", "t1"]
    assert all(day == [] for day in result.recommendations[2:])
    _assert_week_invariants(result, todos, [])


def test_alternative_only_day_is_cleared_when_no_activities() -> None:
    todos = _todos(1)
    days = [[_entry("t0", primary=True, source="todo")], [], [_entry("t0", source="todo")]]

    result = reconcile(_candidate(days), [], todos)

    assert result.recommendations[2] == []
    _assert_week_invariants(result, todos, [])


def test_completed_tasks_are_not_assigned() -> None:
    todos = _todos(2)
    todos[1] = todos[1].model_copy(update={"completed": True})

    result = reconcile(_candidate(_full_week()), ACTIVITIES, todos)

    assert _primary_days(result, "t0") == [0]
    assert _primary_days(result, "t1") == []


@pytest.mark.parametrize("summary", [None, "", "   ", 42])
def test_summary_fallback(summary: Any) -> None:
    result = reconcile(_candidate(_full_week(), summary=summary), ACTIVITIES, [])

    assert result.summary == DEFAULT_SUMMARY


def test_untrusted_entries_are_coerced_or_dropped() -> None:
    todos = _todos(1)
    days: List[Any] = _full_week()
    days[1] = [
        "not an entry",
        {"activity": "hike"},
        {"activity": {"id": True}},
        {"activity": {"name": "no id"}},
        {"activity": {"id": 5}, "suitabilityScore": "high", "source": "robot"},
        {"activity": {"id": "t0"}, "source": "ai", "isPrimaryDay": "yes"},
        {"activity": {"id": "hike", "weatherPreferences": {"minTemp": 50, "maxTemp": "hot"}}, "source": "todo"},
    ]
    days[2] = "rainy day"

    result = reconcile(_candidate(days), ACTIVITIES, todos)

    day = {rec.activity.id: rec for rec in result.recommendations[1]}
    assert set(day) == {"5", "t0", "hike"}
    assert day["5"].source == "ai"
    assert day["5"].suitability_score == 0
    assert day["5"].activity.name == "5"
    assert day["5"].is_primary_day is True
    assert day["t0"].source == "todo"
    assert day["t0"].activity.name == "Task 0"
    assert day["t0"].is_primary_day is False
    assert _primary_days(result, "t0") == [0]
    assert day["hike"].source == "user"
    assert day["hike"].activity.name == "Hiking"
    assert day["hike"].activity.weather_preferences.min_temp == 50
    assert day["hike"].activity.weather_preferences.max_temp is None
    (default,) = result.recommendations[2]
    assert default.activity.id == ACTIVITIES[0].id
    _assert_week_invariants(result, todos, ACTIVITIES)


def test_reconcile_is_idempotent(todos) -> None:
    days = [
        [_entry("hike", primary=True), _entry("hike"), _entry("t-lawn", primary=True, source="todo")],
        [_entry("read", score=70), _entry("t-lawn", primary=True, source="todo")],
        [],
    ]
    first = reconcile_with_report(_candidate(days), ACTIVITIES, todos)
    assert first.repairs > 0

    second = reconcile_with_report(_as_candidate(first.summary), ACTIVITIES, todos)

    assert second.summary == first.summary
    assert second.repairs == 0


def test_report_lists_task_days(todos) -> None:
    result = reconcile_with_report(_candidate(_full_week()), ACTIVITIES, todos)

    assert result.task_days == {"t-groceries": 0, "t-lawn": 1}


def test_task_outside_caller_list_is_primary_once() -> None:
    days = _full_week()
    days[1] = [_entry("t-taxes", source="todo", score=65)]
    days[2] = [_entry("t-taxes", source="todo", score=65)]

    first = reconcile_with_report(_candidate(days), ACTIVITIES, [])

    assert _primary_days(first.summary, "t-taxes") == [1]
    day_two = {rec.activity.id: rec.is_primary_day for rec in first.summary.recommendations[2]}
    assert day_two == {"t-taxes": False, ACTIVITIES[0].id: True}

    second = reconcile_with_report(_as_candidate(first.summary), ACTIVITIES, [])

    assert second.summary == first.summary
    assert second.repairs == 0
