"""JSON wire codec for forecast responses.

Wire keys follow the camelCase bean names of the response accessors:
``location``, ``units`` and ``dailyForecast``, with day entries keyed
``date``, ``temperatureMax``, ``temperatureMin``, ``precipitationProbability``,
``weatherCode`` and ``summary``. Unset fields are written as ``null`` so that
an unset forecast and an empty one (``[]``) stay distinguishable.
"""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError
from pydantic_core import PydanticSerializationError

from .exceptions import ForecastCodecError
from .models import WeatherForecastResponse


def encode_response(response: WeatherForecastResponse) -> dict[str, Any]:
    """Return a JSON-ready dict for ``response``."""
    try:
        return response.model_dump(mode="json", by_alias=True)
    except PydanticSerializationError as exc:
        raise ForecastCodecError(f"Failed encoding forecast response: {exc}") from exc


def dumps_response(response: WeatherForecastResponse, indent: int | None = None) -> str:
    """Serialize ``response`` to a JSON string."""
    try:
        return response.model_dump_json(by_alias=True, indent=indent)
    except PydanticSerializationError as exc:
        raise ForecastCodecError(f"Failed encoding forecast response: {exc}") from exc


def decode_response(payload: dict[str, Any] | str | bytes) -> WeatherForecastResponse:
    """Build a response from a decoded dict or raw JSON text.

    Both camelCase and snake_case keys are accepted; missing keys stay unset.
    """
    try:
        if isinstance(payload, (str, bytes, bytearray)):
            return WeatherForecastResponse.model_validate_json(payload)
        return WeatherForecastResponse.model_validate(payload)
    except ValidationError as exc:
        raise ForecastCodecError(f"Invalid forecast payload: {exc}") from exc
