"""Forecast response container and the day entries it holds."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class DayForecast(BaseModel):
    """One calendar day of forecast data."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    date: dt.date
    temperature_max: float | None = None
    temperature_min: float | None = None
    precipitation_probability: float | None = None
    weather_code: int | None = None
    summary: str | None = None


class WeatherForecastResponse(BaseModel):
    """Location, unit system and ordered daily forecast for one query.

    Every attribute starts unset (``None``) and is written by plain attribute
    assignment. Assignment is not validated and stores the value as given:
    ``daily_forecast`` keeps the caller's list object, so later mutation of
    that list is visible through the response. Passing the fields as
    constructor keywords instead validates them and stores a new list.

    ``None``, an empty value (``""`` / ``[]``) and a populated value are
    three distinct states.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    location: str | None = None
    units: str | None = None
    daily_forecast: list[DayForecast] | None = None


class WeatherForecastRequest(BaseModel):
    """Caller query for a forecast: a place name or a coordinate pair."""

    location: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    days: int = Field(default=7)
    units: str = Field(default="metric")
