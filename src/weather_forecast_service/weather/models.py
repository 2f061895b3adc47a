"""Typed result models for weather provider fetches."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from ..models import WeatherForecastResponse


class WeatherFetchResult(BaseModel):
    """Populated response plus the raw payloads it was built from."""

    response: WeatherForecastResponse
    source_url: str
    retrieval_timestamp: datetime
    latitude: float | None = None
    longitude: float | None = None
    raw_forecast_payload: dict[str, Any]
    raw_geocoding_payload: dict[str, Any] | None = None
