"""Deterministic prompt assembly for the weekly recommendation generator."""
from __future__ import annotations

import hashlib
import math
from typing import List, Sequence

from weatherwise.api.schemas.recommendations import (
    WEEKDAYS,
    Activity,
    ActivityType,
    DayWeather,
    TodoItem,
    UserSchedule,
)
from weatherwise.services.weather_codes import describe_weather_code

DEFAULT_TIME_SLOT = "Evening (18:00-20:00)"

# Fixed English names; strftime would follow the process locale.
MONTH_ABBREVIATIONS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

TIME_SLOT_OPTIONS = (
    "Early Morning (07:00-09:00)",
    "Morning (09:00-12:00)",
    "Afternoon (12:00-17:00) (weekends only)",
    "After Work (18:00-20:00)",
    "Evening (18:00-21:00)",
    "Late Evening (21:00-22:00)",
)

PLANNER_RULES = (
    "Use the exact ids and names given below for activities and tasks.",
    "Every day must have at least one primary recommendation (isPrimaryDay: true).",
    "Each pending task is primary on exactly one day of the week.",
    "Pending tasks should also appear on other suitable days as alternatives (isPrimaryDay: false).",
    "Hobbies may appear on several days when weather and schedule allow.",
    "Several recommendations may be primary on one day if their time slots differ.",
    "Never list the same activity as both primary and alternative on one day.",
    "Never schedule anything during work hours on work days.",
    "Outdoor activities need suitable weather and free time; indoor tasks suit poor weather or evenings.",
    "Write time slots with spaces, e.g. \"After Work (18:00-20:00)\", never with underscores.",
    "The summary must name specific activities and tasks and explain the weather pattern.",
)

RESPONSE_FORMAT = """{
  "summary": "2-3 sentences naming specific activities and tasks and the days they fall on.",
  "recommendations": [
    [
      {
        "activity": {"id": "id_from_list", "name": "Name from list", "type": {"indoor": false, "outdoor": true}, "weatherPreferences": {}},
        "suitabilityScore": 95,
        "reason": "Why this fits the day",
        "source": "user",
        "timeSlot": "Morning (09:00-12:00)",
        "isPrimaryDay": true
      }
    ],
    ... one array per day, 7 arrays in total ...
  ]
}"""


def build_recommendation_prompt(
    activities: Sequence[Activity],
    weather: Sequence[DayWeather],
    todos: Sequence[TodoItem],
    schedule: UserSchedule,
) -> str:
    """Render the generator instruction for one planning cycle.

    The output depends only on the arguments, so identical inputs yield
    byte-identical prompts. ``todos`` is expected to hold incomplete tasks
    only.
    """
    sections = [
        "You are an expert weekly activity planner. Build a 7-day schedule of "
        "recommendations and a short weekly summary.",
        _numbered("REQUIREMENTS", PLANNER_RULES),
        "WEATHER FORECAST (7 days starting today):\n" + _render_weather(weather),
        "USER ACTIVITIES (use exact ids and names):\n" + _render_activities(activities),
        "PENDING TASKS (all must be completed this week; use exact ids and names):\n"
        + _render_todos(todos),
        _render_schedule(schedule),
        "TIME SLOT OPTIONS:\n" + "\n".join(f"- {slot}" for slot in TIME_SLOT_OPTIONS),
        "Return ONLY a JSON object with this structure:\n" + RESPONSE_FORMAT,
    ]
    return "\n\n".join(sections)


def prompt_fingerprint(prompt: str) -> str:
    """Stable cache key for an assembled prompt."""
    return hashlib.sha256(prompt.encode("utf-8")).hexdigest()


def type_label(kind: ActivityType) -> str:
    if kind.indoor and not kind.outdoor:
        return "indoor"
    if kind.outdoor and not kind.indoor:
        return "outdoor"
    # Both flags set, or neither: no location constraint.
    return "indoor/outdoor"


def _numbered(title: str, rules: Sequence[str]) -> str:
    lines = [f"{title}:"]
    lines.extend(f"{index}. {rule}" for index, rule in enumerate(rules, start=1))
    return "\n".join(lines)


def _render_weather(weather: Sequence[DayWeather]) -> str:
    lines: List[str] = []
    for index, day in enumerate(weather, start=1):
        weekday = WEEKDAYS[day.date.weekday()].capitalize()
        short_date = f"{MONTH_ABBREVIATIONS[day.date.month - 1]} {day.date.day}"
        midpoint = _round_half_up((day.max_temp + day.min_temp) / 2)
        lines.append(
            f"Day {index} - {weekday} {short_date} ({day.date.isoformat()}): "
            f"{describe_weather_code(day.weather_code)}, {midpoint}°F, "
            f"{_number(day.precipitation)}\" rain, {_number(day.wind_speed)}mph wind"
        )
    return "\n".join(lines) or "- none"


def _render_activities(activities: Sequence[Activity]) -> str:
    lines: List[str] = []
    for activity in activities:
        prefs = activity.weather_preferences
        bounds: List[str] = []
        if prefs.min_temp is not None:
            bounds.append(f"min {_number(prefs.min_temp)}°F")
        if prefs.max_temp is not None:
            bounds.append(f"max {_number(prefs.max_temp)}°F")
        if prefs.max_precipitation is not None:
            bounds.append(f"max {_number(prefs.max_precipitation)}\" rain")
        if prefs.max_wind_speed is not None:
            bounds.append(f"max {_number(prefs.max_wind_speed)}mph wind")
        details = type_label(activity.type)
        if bounds:
            details = f"{details}, prefers: {', '.join(bounds)}"
        lines.append(f'- ID: "{activity.id}", Name: "{activity.name}" ({details})')
    return "\n".join(lines) or "- none"


def _render_todos(todos: Sequence[TodoItem]) -> str:
    lines = [f'- ID: "{todo.id}", Name: "{todo.text}" ({type_label(todo.type)} task)' for todo in todos]
    return "\n".join(lines) or "- none"


def _render_schedule(schedule: UserSchedule) -> str:
    work_days = [day.capitalize() for day in WEEKDAYS if getattr(schedule.work_days, day)]
    return "\n".join(
        [
            "WORK SCHEDULE:",
            f"- Work Days: {', '.join(work_days) or 'None'}",
            f"- Work Hours: {schedule.work_hours.start} - {schedule.work_hours.end}",
            f"- Weekday Bedtime: {schedule.bedtime.weekdays}",
            f"- Weekend Bedtime: {schedule.bedtime.weekends}",
            f"- Weekday Wake Time: {schedule.wake_time.weekdays}",
            f"- Weekend Wake Time: {schedule.wake_time.weekends}",
        ]
    )


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _number(value: float) -> str:
    """Render 2.0 as "2" and 0.25 as "0.25"."""
    if float(value).is_integer():
        return str(int(value))
    return str(value)
