"""Schemas for the weekly recommendation endpoint.

Field names are snake_case in Python and camelCase on the wire.
"""
from __future__ import annotations

import datetime as dt
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

RecommendationSource = Literal["user", "ai", "todo"]

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
CLOCK_PATTERN = r"^\d{1,2}:\d{2}$"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ActivityType(CamelModel):
    indoor: bool = False
    outdoor: bool = False


class WeatherPreferences(CamelModel):
    min_temp: Optional[float] = None
    max_temp: Optional[float] = None
    max_precipitation: Optional[float] = None
    max_wind_speed: Optional[float] = None


class Activity(CamelModel):
    """A user hobby, or a task carried in the same shape inside a recommendation."""

    id: str = Field(..., min_length=1)
    name: str
    type: ActivityType = Field(default_factory=ActivityType)
    weather_preferences: WeatherPreferences = Field(default_factory=WeatherPreferences)


class TodoItem(CamelModel):
    id: str = Field(..., min_length=1)
    text: str
    completed: bool = False
    created_at: Optional[dt.datetime] = None
    completed_at: Optional[dt.datetime] = None
    type: ActivityType = Field(default_factory=ActivityType)


class WorkDays(CamelModel):
    monday: bool = False
    tuesday: bool = False
    wednesday: bool = False
    thursday: bool = False
    friday: bool = False
    saturday: bool = False
    sunday: bool = False


class WorkHours(CamelModel):
    start: str = Field(..., pattern=CLOCK_PATTERN)
    end: str = Field(..., pattern=CLOCK_PATTERN)


class SleepTimes(CamelModel):
    weekdays: str = Field(..., pattern=CLOCK_PATTERN)
    weekends: str = Field(..., pattern=CLOCK_PATTERN)


class UserSchedule(CamelModel):
    work_days: WorkDays
    work_hours: WorkHours
    bedtime: SleepTimes
    wake_time: SleepTimes


class DayWeather(CamelModel):
    date: dt.date
    weather_code: int
    max_temp: float
    min_temp: float
    precipitation: float
    wind_speed: float
    wind_direction: float


class ActivityRecommendation(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    activity: Activity
    suitability_score: Union[int, float]
    reason: str
    source: RecommendationSource
    time_slot: Optional[str] = None
    is_primary_day: bool = False


class WeeklySummary(CamelModel):
    summary: str
    recommendations: List[List[ActivityRecommendation]]


class RecommendationRequest(CamelModel):
    # Required fields are optional here so their absence can be reported
    # with a single structural message instead of one error per field.
    activities: Optional[List[Activity]] = None
    weather: Optional[List[DayWeather]] = None
    todos: Optional[List[TodoItem]] = None
    schedule: Optional[UserSchedule] = None
