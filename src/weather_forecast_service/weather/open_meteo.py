"""Open-Meteo (open-meteo.com) weather provider implementation."""

from __future__ import annotations

import logging
import time
from datetime import UTC, date, datetime
from typing import Any

import httpx

from ..config import MAX_FORECAST_DAYS, SUPPORTED_UNITS, Settings
from ..exceptions import WeatherProviderError
from ..models import DayForecast, WeatherForecastResponse
from ..redaction import sanitize_text
from .base import WeatherProvider
from .models import WeatherFetchResult

DAILY_VARIABLES = (
    "weather_code",
    "temperature_2m_max",
    "temperature_2m_min",
    "precipitation_probability_max",
)

# WMO weather interpretation codes as documented by Open-Meteo.
WMO_SUMMARIES: dict[int, str] = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Fog",
    48: "Depositing rime fog",
    51: "Light drizzle",
    53: "Moderate drizzle",
    55: "Dense drizzle",
    56: "Light freezing drizzle",
    57: "Dense freezing drizzle",
    61: "Slight rain",
    63: "Moderate rain",
    65: "Heavy rain",
    66: "Light freezing rain",
    67: "Heavy freezing rain",
    71: "Slight snow fall",
    73: "Moderate snow fall",
    75: "Heavy snow fall",
    77: "Snow grains",
    80: "Slight rain showers",
    81: "Moderate rain showers",
    82: "Violent rain showers",
    85: "Slight snow showers",
    86: "Heavy snow showers",
    95: "Thunderstorm",
    96: "Thunderstorm with slight hail",
    99: "Thunderstorm with heavy hail",
}


class OpenMeteoWeatherProvider(WeatherProvider):
    """Fetches daily forecasts from Open-Meteo and builds forecast responses."""

    provider_name = "open-meteo"

    def __init__(
        self,
        settings: Settings,
        logger: logging.Logger,
        max_retries: int | None = None,
        retry_delay_seconds: float | None = None,
    ) -> None:
        self.settings = settings
        self.logger = logger
        self._max_retries = (
            settings.weather_max_retries if max_retries is None else max_retries
        )
        self._retry_delay = (
            settings.weather_retry_delay_seconds
            if retry_delay_seconds is None
            else retry_delay_seconds
        )
        self._client = httpx.Client(
            timeout=settings.weather_timeout_seconds,
            headers={
                "Accept": "application/json",
                "User-Agent": settings.weather_user_agent,
            },
        )

    def __enter__(self) -> OpenMeteoWeatherProvider:
        return self

    def __exit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def fetch_forecast(
        self,
        *,
        location: str | None = None,
        lat: float | None = None,
        lon: float | None = None,
        days: int = 7,
        units: str = "metric",
    ) -> WeatherFetchResult:
        """Fetch a daily forecast by place name (geocoded) or coordinates."""
        self._validate_input(location=location, lat=lat, lon=lon, days=days, units=units)

        geocoding_payload: dict[str, Any] | None = None
        if location is not None:
            geocoding_payload = self._request_json(
                str(self.settings.open_meteo_geocoding_url),
                context="geocoding lookup",
                params={"name": location.strip(), "count": 1, "language": "en", "format": "json"},
            )
            lat, lon, label = self._extract_place(geocoding_payload, query=location.strip())
            self.logger.debug("Resolved location %r to (%.4f, %.4f)", location, lat, lon)
        else:
            if lat is None or lon is None:
                raise WeatherProviderError(
                    "Internal error: coordinates required but not provided after validation."
                )
            label = f"{lat:.4f},{lon:.4f}"

        forecast_url = str(self.settings.open_meteo_forecast_url)
        params: dict[str, Any] = {
            "latitude": f"{lat:.4f}",
            "longitude": f"{lon:.4f}",
            "daily": ",".join(DAILY_VARIABLES),
            "temperature_unit": SUPPORTED_UNITS[units],
            "timezone": "auto",
            "forecast_days": days,
        }
        if self.settings.open_meteo_api_key:
            params["apikey"] = self.settings.open_meteo_api_key
        forecast_payload = self._request_json(forecast_url, context="forecast fetch", params=params)

        response = WeatherForecastResponse()
        response.location = label
        response.units = units
        response.daily_forecast = self._normalize_days(forecast_payload)

        return WeatherFetchResult(
            response=response,
            source_url=forecast_url,
            retrieval_timestamp=datetime.now(UTC),
            latitude=self._as_float(forecast_payload.get("latitude"), default=lat),
            longitude=self._as_float(forecast_payload.get("longitude"), default=lon),
            raw_forecast_payload=forecast_payload,
            raw_geocoding_payload=geocoding_payload,
        )

    def _validate_input(
        self,
        *,
        location: str | None,
        lat: float | None,
        lon: float | None,
        days: int,
        units: str,
    ) -> None:
        if units not in SUPPORTED_UNITS:
            raise WeatherProviderError(
                f"Unsupported units {units!r}; expected one of: "
                + ", ".join(sorted(SUPPORTED_UNITS))
            )
        if not (1 <= days <= MAX_FORECAST_DAYS):
            raise WeatherProviderError(
                f"Invalid days {days}; expected between 1 and {MAX_FORECAST_DAYS}."
            )
        if location is not None:
            if lat is not None or lon is not None:
                raise WeatherProviderError("Use either a location name or --lat/--lon, not both.")
            if not location.strip():
                raise WeatherProviderError("Location name must not be empty.")
            return
        if lat is None or lon is None:
            raise WeatherProviderError(
                "Missing location: provide a location name or both latitude and longitude."
            )
        if not (-90 <= lat <= 90):
            raise WeatherProviderError(f"Invalid latitude {lat}; expected between -90 and 90.")
        if not (-180 <= lon <= 180):
            raise WeatherProviderError(f"Invalid longitude {lon}; expected between -180 and 180.")

    def _request_json(
        self, url: str, context: str, params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        attempt = 0
        while True:
            try:
                response = self._client.get(url, params=params)
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                error: Exception = exc
                reason = f"HTTP {status}"
                message = (
                    f"Open-Meteo {context} failed with status {status} "
                    f"at {url}: {sanitize_text(exc.response.text[:300])}"
                )
                # 4xx client errors are final, except the 429 rate-limit.
                retryable = status == 429 or status >= 500
            except httpx.HTTPError as exc:
                error = exc
                reason = type(exc).__name__
                message = (
                    f"Open-Meteo {context} request failed at {url}: {sanitize_text(str(exc))}"
                )
                retryable = True
            else:
                return self._decode_payload(response, url=url, context=context)

            if not retryable or attempt >= self._max_retries:
                raise WeatherProviderError(message) from error
            attempt += 1
            self.logger.warning(
                "Open-Meteo %s failed (%s); retry %d of %d",
                context, reason, attempt, self._max_retries,
            )
            time.sleep(self._retry_delay)

    @staticmethod
    def _decode_payload(response: httpx.Response, *, url: str, context: str) -> dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as exc:
            raise WeatherProviderError(
                f"Open-Meteo {context} returned non-JSON response at {url}."
            ) from exc

        if not isinstance(payload, dict):
            raise WeatherProviderError(
                f"Open-Meteo {context} returned unexpected payload type "
                f"{type(payload).__name__} at {url}."
            )
        return payload

    def _extract_place(
        self, geocoding_payload: dict[str, Any], query: str
    ) -> tuple[float, float, str]:
        results = geocoding_payload.get("results")
        if not isinstance(results, list) or not results:
            raise WeatherProviderError(f"No geocoding match for location {query!r}.")
        place = results[0]
        if not isinstance(place, dict):
            raise WeatherProviderError("Open-Meteo geocoding result is not an object.")

        lat = self._as_float(place.get("latitude"))
        lon = self._as_float(place.get("longitude"))
        if lat is None or lon is None:
            raise WeatherProviderError(
                f"Open-Meteo geocoding result for {query!r} has no coordinates."
            )

        parts: list[str] = []
        for key in ("name", "admin1", "country"):
            part = self._as_str(place.get(key))
            if part and part not in parts:
                parts.append(part)
        label = ", ".join(parts) if parts else query
        return lat, lon, label

    def _normalize_days(self, forecast_payload: dict[str, Any]) -> list[DayForecast]:
        daily = forecast_payload.get("daily")
        if not isinstance(daily, dict):
            raise WeatherProviderError("Open-Meteo forecast payload missing 'daily' object.")

        times = daily.get("time")
        if not isinstance(times, list):
            raise WeatherProviderError("Open-Meteo forecast payload missing 'daily.time' list.")
        if not times:
            raise WeatherProviderError("Open-Meteo forecast payload contained no forecast days.")

        codes = self._column(daily, "weather_code")
        highs = self._column(daily, "temperature_2m_max")
        lows = self._column(daily, "temperature_2m_min")
        precip = self._column(daily, "precipitation_probability_max")

        days: list[DayForecast] = []
        for index, raw_date in enumerate(times):
            day = self._parse_date(raw_date)
            if day is None:
                raise WeatherProviderError(
                    f"Open-Meteo forecast day {index} has invalid date {raw_date!r}."
                )
            code = self._as_int(self._pick(codes, index))
            days.append(
                DayForecast(
                    date=day,
                    temperature_max=self._as_float(self._pick(highs, index)),
                    temperature_min=self._as_float(self._pick(lows, index)),
                    precipitation_probability=self._as_float(self._pick(precip, index)),
                    weather_code=code,
                    summary=WMO_SUMMARIES.get(code) if code is not None else None,
                )
            )
        return days

    @staticmethod
    def _column(daily: dict[str, Any], key: str) -> list[Any]:
        values = daily.get(key)
        return values if isinstance(values, list) else []

    @staticmethod
    def _pick(values: list[Any], index: int) -> Any:
        return values[index] if index < len(values) else None

    @staticmethod
    def _as_str(value: Any) -> str | None:
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None

    @staticmethod
    def _as_int(value: Any) -> int | None:
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            return int(value)
        return None

    @staticmethod
    def _as_float(value: Any, default: float | None = None) -> float | None:
        if isinstance(value, bool):
            return default
        if isinstance(value, (int, float)):
            return float(value)
        return default

    @staticmethod
    def _parse_date(value: Any) -> date | None:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                return date.fromisoformat(value.strip())
            except ValueError:
                return None
        return None
