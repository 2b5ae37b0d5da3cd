"""Reconciliation of generated weekly schedules.

The generator is asked for a well-formed week but routinely returns short
weeks, duplicate entries, tasks that are primary on two days or on none, and
days with no headline pick. ``reconcile`` repairs the candidate into a week
where:

- there are exactly seven day-lists;
- no id appears twice on one day;
- every incomplete task is primary on exactly one day;
- every day has a primary entry unless it is empty and there is no activity
  to fall back on.

Each pass is a pure function from one ``Week`` to a new one and logs the
repairs it makes. Running ``reconcile`` on its own output changes nothing.
"""
from __future__ import annotations

import logging
import math
import numbers
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from pydantic.alias_generators import to_camel

from weatherwise.api.schemas.recommendations import (
    Activity,
    ActivityRecommendation,
    ActivityType,
    TodoItem,
    WeatherPreferences,
    WeeklySummary,
)
from weatherwise.services.prompt_builder import DEFAULT_TIME_SLOT
from weatherwise.services.response_parser import CandidateSchedule

logger = logging.getLogger(__name__)

DAYS_IN_WEEK = 7
SOURCES = ("user", "ai", "todo")

TASK_PRIMARY_SCORE = 70
TASK_PRIMARY_REASON = "Primary day for completing this task"
DEFAULT_ACTIVITY_SCORE = 60
DEFAULT_ACTIVITY_REASON = "Default activity to ensure day has primary recommendation"
DEFAULT_SUMMARY = "Weekly schedule optimized for weather conditions and available time slots."

Day = Tuple[ActivityRecommendation, ...]
Week = Tuple[Day, ...]


@dataclass(frozen=True)
class ReconcileResult:
    summary: WeeklySummary
    repairs: int
    task_days: Dict[str, int]


def reconcile(
    candidate: CandidateSchedule,
    activities: Sequence[Activity],
    todos: Sequence[TodoItem],
) -> WeeklySummary:
    """Repair ``candidate`` into a WeeklySummary that satisfies the week invariants."""
    return reconcile_with_report(candidate, activities, todos).summary


def reconcile_with_report(
    candidate: CandidateSchedule,
    activities: Sequence[Activity],
    todos: Sequence[TodoItem],
) -> ReconcileResult:
    """Like ``reconcile`` but also report how many repairs were needed."""
    pending = [todo for todo in todos if not todo.completed]
    counter = _RepairCounter()

    week = coerce_week(candidate.recommendations, activities, pending, counter)
    week = normalize_length(week, counter)
    week = dedupe_within_days(week, counter)
    week = enforce_single_task_primary(week, counter)
    week = ensure_task_coverage(week, pending, counter)
    week = ensure_daily_primary(week, activities, counter)
    summary_text = resolve_summary(candidate.summary, counter)
    week = week[:DAYS_IN_WEEK]

    task_days = primary_task_days(week)
    logger.info("Reconciled recommendations for %d days (%d repairs)", len(week), counter.count)
    logger.info("Task primary day assignments: %s", sorted(task_days.items(), key=lambda item: item[1]))
    _check_outcome(week, activities)

    summary = WeeklySummary(summary=summary_text, recommendations=[list(day) for day in week])
    return ReconcileResult(summary=summary, repairs=counter.count, task_days=task_days)


# ---------------------------------------------------------------------------
# Repair passes
# ---------------------------------------------------------------------------

def normalize_length(week: Week, counter: Optional["_RepairCounter"] = None) -> Week:
    """Pad with empty days until there are seven; drop days past the seventh."""
    missing = DAYS_IN_WEEK - len(week)
    if missing < 0:
        logger.warning("Generator returned %d days, dropping %d extra days", len(week), -missing)
        _bump(counter)
        return week[:DAYS_IN_WEEK]
    if missing == 0:
        return week
    logger.warning("Generator returned %d days, padding with %d empty days", len(week), missing)
    _bump(counter)
    return week + tuple(() for _ in range(missing))


def dedupe_within_days(week: Week, counter: Optional["_RepairCounter"] = None) -> Week:
    """Keep one entry per id per day: the first primary one, else the first one."""
    result: List[Day] = []
    for day_index, day in enumerate(week):
        keep_index: Dict[str, int] = {}
        for index, rec in enumerate(day):
            key = rec.activity.id
            if key not in keep_index:
                keep_index[key] = index
            elif rec.is_primary_day and not day[keep_index[key]].is_primary_day:
                keep_index[key] = index
        kept = tuple(rec for index, rec in enumerate(day) if keep_index[rec.activity.id] == index)
        if len(kept) != len(day):
            duplicated = sorted(key for key in keep_index if _count_id(day, key) > 1)
            logger.warning("Activities %s appear multiple times on day %d, fixing...", duplicated, day_index)
            _bump(counter)
        result.append(kept)
    return tuple(result)


def enforce_single_task_primary(week: Week, counter: Optional["_RepairCounter"] = None) -> Week:
    """Demote task primaries after the first one found in day order."""
    seen: Dict[str, int] = {}
    result: List[Day] = []
    for day_index, day in enumerate(week):
        updated: List[ActivityRecommendation] = []
        for rec in day:
            if rec.source == "todo" and rec.is_primary_day:
                task_id = rec.activity.id
                if task_id in seen:
                    logger.warning(
                        "Todo %s is primary on day %d and day %d, demoting day %d",
                        task_id,
                        seen[task_id],
                        day_index,
                        day_index,
                    )
                    _bump(counter)
                    rec = rec.model_copy(update={"is_primary_day": False})
                else:
                    seen[task_id] = day_index
            updated.append(rec)
        result.append(tuple(updated))
    return tuple(result)


def ensure_task_coverage(
    week: Week,
    todos: Sequence[TodoItem],
    counter: Optional["_RepairCounter"] = None,
) -> Week:
    """Give every task without a primary day one, on day ``task_index % 7``."""
    assigned = primary_task_days(week)
    days = [list(day) for day in week]
    for task_index, todo in enumerate(todos):
        if todo.id in assigned:
            continue
        target = task_index % DAYS_IN_WEEK
        day = days[target]
        existing = next((i for i, rec in enumerate(day) if rec.activity.id == todo.id), None)
        if existing is not None:
            logger.warning("Promoting existing entry for todo %s to primary on day %d", todo.id, target)
            day[existing] = day[existing].model_copy(update={"is_primary_day": True})
        else:
            logger.warning("Todo %s has no primary day, adding it to day %d", todo.id, target)
            day.append(_task_recommendation(todo))
        _bump(counter)
        assigned[todo.id] = target
    return tuple(tuple(day) for day in days)


def ensure_daily_primary(
    week: Week,
    activities: Sequence[Activity],
    counter: Optional["_RepairCounter"] = None,
) -> Week:
    """Make sure each day has a primary entry.

    The best-scoring entry is promoted, skipping tasks that are already
    primary on another day. A day with nothing promotable gets a default
    activity when the caller has any.
    """
    task_days = primary_task_days(week)
    result: List[Day] = []
    for day_index, day in enumerate(week):
        if any(rec.is_primary_day for rec in day):
            result.append(day)
            continue

        logger.warning("Day %d has no primary activities, fixing...", day_index)
        _bump(counter)
        candidates = [
            index
            for index, rec in enumerate(day)
            if not (rec.source == "todo" and rec.activity.id in task_days)
        ]
        if candidates:
            best = candidates[0]
            for index in candidates[1:]:
                if day[index].suitability_score > day[best].suitability_score:
                    best = index
            promoted = day[best].model_copy(update={"is_primary_day": True})
            if promoted.source == "todo":
                task_days.setdefault(promoted.activity.id, day_index)
            logger.info("Made %s primary on day %d", promoted.activity.name, day_index)
            result.append(day[:best] + (promoted,) + day[best + 1 :])
        elif activities:
            default = activities[day_index % len(activities)]
            logger.info("Added default primary activity %s on day %d", default.name, day_index)
            # Remaining entries are alternatives for tasks already primary
            # elsewhere; the default only joins them if its id is not taken.
            kept = tuple(rec for rec in day if rec.activity.id != default.id)
            result.append(kept + (_default_recommendation(default),))
        else:
            if day:
                logger.warning(
                    "Day %d only holds alternatives for tasks primary elsewhere and no activities exist, clearing it",
                    day_index,
                )
            result.append(())
    return tuple(result)


def resolve_summary(raw: Any, counter: Optional["_RepairCounter"] = None) -> str:
    if isinstance(raw, str) and raw.strip():
        return raw
    _bump(counter)
    return DEFAULT_SUMMARY


def primary_task_days(week: Week) -> Dict[str, int]:
    """Map each task id flagged primary to the first day it is primary on."""
    days: Dict[str, int] = {}
    for day_index, day in enumerate(week):
        for rec in day:
            if rec.source == "todo" and rec.is_primary_day:
                days.setdefault(rec.activity.id, day_index)
    return days


# ---------------------------------------------------------------------------
# Candidate coercion
# ---------------------------------------------------------------------------

def coerce_week(
    raw_days: Sequence[Any],
    activities: Sequence[Activity],
    todos: Sequence[TodoItem],
    counter: Optional["_RepairCounter"] = None,
) -> Week:
    """Turn the untrusted recommendations list into typed day tuples."""
    known_activities = {activity.id: activity for activity in activities}
    known_todos = {todo.id: todo for todo in todos}
    week: List[Day] = []
    for day_index, raw_day in enumerate(raw_days):
        if not isinstance(raw_day, list):
            logger.warning("Day %d is not a list (%s), treating it as empty", day_index, type(raw_day).__name__)
            _bump(counter)
            week.append(())
            continue
        day: List[ActivityRecommendation] = []
        for raw in raw_day:
            rec = coerce_recommendation(raw, known_activities, known_todos)
            if rec is None:
                logger.warning("Dropping unusable entry on day %d: %r", day_index, raw)
                _bump(counter)
                continue
            day.append(rec)
        week.append(tuple(day))
    return tuple(week)


def coerce_recommendation(
    raw: Any,
    known_activities: Mapping[str, Activity],
    known_todos: Mapping[str, TodoItem],
) -> Optional[ActivityRecommendation]:
    """Build a recommendation from one generator entry, or None if it has no usable id."""
    if not isinstance(raw, dict):
        return None
    raw_activity = raw.get("activity")
    if not isinstance(raw_activity, dict):
        return None
    activity_id = _coerce_id(raw_activity.get("id"))
    if activity_id is None:
        return None

    todo = known_todos.get(activity_id)
    reference = known_activities.get(activity_id)
    if todo is not None:
        fallback_name, fallback_type = todo.text, todo.type
    elif reference is not None:
        fallback_name, fallback_type = reference.name, reference.type
    else:
        fallback_name, fallback_type = activity_id, ActivityType()

    name = raw_activity.get("name")
    activity = Activity(
        id=activity_id,
        name=name if isinstance(name, str) and name else fallback_name,
        type=_coerce_type(raw_activity.get("type"), fallback_type),
        weather_preferences=_coerce_preferences(raw_activity.get("weatherPreferences")),
    )

    # Caller ids decide whether an entry is a task; the generator's tag does
    # not.
    source = raw.get("source")
    if todo is not None:
        source = "todo"
    elif reference is not None and source == "todo":
        source = "user"
    elif source not in SOURCES:
        source = "ai"

    reason = raw.get("reason")
    time_slot = raw.get("timeSlot")
    return ActivityRecommendation(
        activity=activity,
        suitability_score=_coerce_number(raw.get("suitabilityScore")),
        reason=reason if isinstance(reason, str) else "",
        source=source,
        time_slot=time_slot if isinstance(time_slot, str) else None,
        is_primary_day=raw.get("isPrimaryDay") is True,
    )


def _coerce_id(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        return value or None
    if isinstance(value, numbers.Number):
        return str(value)
    return None


def _coerce_number(value: Any) -> int | float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if not math.isfinite(value):
        return 0
    return value


def _coerce_type(value: Any, fallback: ActivityType) -> ActivityType:
    if not isinstance(value, dict):
        return fallback
    indoor = value.get("indoor")
    outdoor = value.get("outdoor")
    if not isinstance(indoor, bool) and not isinstance(outdoor, bool):
        return fallback
    return ActivityType(indoor=indoor is True, outdoor=outdoor is True)


def _coerce_preferences(value: Any) -> WeatherPreferences:
    if not isinstance(value, dict):
        return WeatherPreferences()
    bounds = {}
    for field_name in WeatherPreferences.model_fields:
        raw = value.get(to_camel(field_name))
        if isinstance(raw, (int, float)) and not isinstance(raw, bool) and math.isfinite(raw):
            bounds[field_name] = raw
    return WeatherPreferences(**bounds)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

class _RepairCounter:
    def __init__(self) -> None:
        self.count = 0


def _bump(counter: Optional[_RepairCounter]) -> None:
    if counter is not None:
        counter.count += 1


def _count_id(day: Day, activity_id: str) -> int:
    return sum(1 for rec in day if rec.activity.id == activity_id)


def _task_recommendation(todo: TodoItem) -> ActivityRecommendation:
    return ActivityRecommendation(
        activity=Activity(id=todo.id, name=todo.text, type=todo.type),
        suitability_score=TASK_PRIMARY_SCORE,
        reason=TASK_PRIMARY_REASON,
        source="todo",
        time_slot=DEFAULT_TIME_SLOT,
        is_primary_day=True,
    )


def _default_recommendation(activity: Activity) -> ActivityRecommendation:
    return ActivityRecommendation(
        activity=activity,
        suitability_score=DEFAULT_ACTIVITY_SCORE,
        reason=DEFAULT_ACTIVITY_REASON,
        source="user",
        time_slot=DEFAULT_TIME_SLOT,
        is_primary_day=True,
    )


def _check_outcome(week: Week, activities: Sequence[Activity]) -> None:
    missing = [index for index, day in enumerate(week) if not any(rec.is_primary_day for rec in day)]
    if missing and activities:
        logger.error("Days without primary activities: %s", missing)
    elif not missing:
        logger.info("All days have at least one primary activity")
