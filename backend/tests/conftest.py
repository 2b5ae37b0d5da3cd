from __future__ import annotations

import os
from datetime import date, timedelta
from typing import Any, Dict, List

import pytest

# Settings are read at import time; keep tests off the developer database and Opik.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("DB_AUTO_CREATE", "false")
os.environ["OPIK_ENABLED"] = "false"

from weatherwise.api.schemas.recommendations import (  # noqa: E402
    Activity,
    DayWeather,
    TodoItem,
    UserSchedule,
)

START_DATE = date(2024, 6, 3)  # a Monday


def weather_payload(days: int = 7) -> List[Dict[str, Any]]:
    return [
        {
            "date": (START_DATE + timedelta(days=offset)).isoformat(),
            "weatherCode": 61 if offset == 2 else 0,
            "maxTemp": 80 + offset,
            "minTemp": 65,
            "precipitation": 0.4 if offset == 2 else 0,
            "windSpeed": 5.5,
            "windDirection": 180,
        }
        for offset in range(days)
    ]


def activities_payload() -> List[Dict[str, Any]]:
    return [
        {
            "id": "hike",
            "name": "Hiking",
            "type": {"indoor": False, "outdoor": True},
            "weatherPreferences": {"minTemp": 55, "maxTemp": 85, "maxPrecipitation": 0.1, "maxWindSpeed": 15},
        },
        {
            "id": "read",
            "name": "Reading",
            "type": {"indoor": True, "outdoor": False},
            "weatherPreferences": {},
        },
    ]


def todos_payload() -> List[Dict[str, Any]]:
    return [
        {
            "id": "t-groceries",
            "text": "Buy groceries",
            "completed": False,
            "createdAt": "2024-06-01T10:00:00Z",
            "type": {"indoor": True, "outdoor": False},
        },
        {
            "id": "t-lawn",
            "text": "Mow the lawn",
            "completed": False,
            "createdAt": "2024-06-01T10:05:00Z",
            "type": {"indoor": False, "outdoor": True},
        },
        {
            "id": "t-taxes",
            "text": "File taxes",
            "completed": True,
            "createdAt": "2024-05-20T09:00:00Z",
            "completedAt": "2024-05-30T09:00:00Z",
            "type": {"indoor": True, "outdoor": False},
        },
    ]


def schedule_payload() -> Dict[str, Any]:
    return {
        "workDays": {
            "monday": True,
            "tuesday": True,
            "wednesday": True,
            "thursday": True,
            "friday": True,
            "saturday": False,
            "sunday": False,
        },
        "workHours": {"start": "09:00", "end": "17:00"},
        "bedtime": {"weekdays": "22:30", "weekends": "23:30"},
        "wakeTime": {"weekdays": "06:30", "weekends": "08:00"},
    }


@pytest.fixture()
def request_payload() -> Dict[str, Any]:
    return {
        "activities": activities_payload(),
        "weather": weather_payload(),
        "todos": todos_payload(),
        "schedule": schedule_payload(),
    }


@pytest.fixture()
def activities() -> List[Activity]:
    return [Activity.model_validate(item) for item in activities_payload()]


@pytest.fixture()
def weather() -> List[DayWeather]:
    return [DayWeather.model_validate(item) for item in weather_payload()]


@pytest.fixture()
def todos() -> List[TodoItem]:
    return [TodoItem.model_validate(item) for item in todos_payload()]


@pytest.fixture()
def schedule() -> UserSchedule:
    return UserSchedule.model_validate(schedule_payload())
