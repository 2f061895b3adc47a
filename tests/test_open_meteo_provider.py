"""Tests for Open-Meteo provider input handling, retries and normalization."""

from __future__ import annotations

import logging
from datetime import date
from types import SimpleNamespace
from typing import Any

import httpx
import pytest

from weather_forecast_service.exceptions import WeatherProviderError
from weather_forecast_service.models import WeatherForecastRequest
from weather_forecast_service.weather.open_meteo import OpenMeteoWeatherProvider

GEOCODING_URL = "https://geocoding-api.open-meteo.com/v1/search"
FORECAST_URL = "https://api.open-meteo.com/v1/forecast"


def _make_settings(**overrides: Any) -> Any:
    defaults = {
        "open_meteo_forecast_url": FORECAST_URL,
        "open_meteo_geocoding_url": GEOCODING_URL,
        "open_meteo_api_key": None,
        "weather_timeout_seconds": 5.0,
        "weather_max_retries": 1,
        "weather_retry_delay_seconds": 0.0,
        "weather_user_agent": "weather-forecast-service-tests/0.1",
    }
    defaults.update(overrides)
    return SimpleNamespace(**defaults)


def _make_provider(**settings_overrides: Any) -> OpenMeteoWeatherProvider:
    settings = _make_settings(**settings_overrides)
    logger = logging.getLogger("test_open_meteo_provider")
    return OpenMeteoWeatherProvider(settings=settings, logger=logger)


def _forecast_payload(**daily_overrides: Any) -> dict[str, Any]:
    daily = {
        "time": ["2026-03-01", "2026-03-02", "2026-03-03"],
        "weather_code": [3, 61, 95],
        "temperature_2m_max": [12.4, 9.8, 15.0],
        "temperature_2m_min": [4.1, 3.0, 7.5],
        "precipitation_probability_max": [10, 80, 65],
    }
    daily.update(daily_overrides)
    return {
        "latitude": 48.86,
        "longitude": 2.3399997,
        "timezone": "Europe/Paris",
        "daily_units": {"time": "iso8601", "temperature_2m_max": "°C"},
        "daily": daily,
    }


PARIS_GEOCODING = {
    "results": [
        {
            "name": "Paris",
            "latitude": 48.85341,
            "longitude": 2.3488,
            "country": "France",
            "admin1": "Île-de-France",
        }
    ]
}


def test_location_mode_geocodes_then_fetches_forecast() -> None:
    provider = _make_provider()
    calls: list[tuple[str, str, dict[str, Any] | None]] = []
    responses = {GEOCODING_URL: PARIS_GEOCODING, FORECAST_URL: _forecast_payload()}

    def _fake_request(url: str, context: str, params: dict[str, Any] | None = None) -> Any:
        calls.append((url, context, params))
        return responses[url]

    provider._request_json = _fake_request  # type: ignore[assignment]

    result = provider.fetch_forecast(location="Paris", days=3, units="metric")
    response = result.response

    assert [c[1] for c in calls] == ["geocoding lookup", "forecast fetch"]
    assert calls[0][2] == {"name": "Paris", "count": 1, "language": "en", "format": "json"}
    forecast_params = calls[1][2]
    assert forecast_params is not None
    assert forecast_params["latitude"] == "48.8534"
    assert forecast_params["longitude"] == "2.3488"
    assert forecast_params["temperature_unit"] == "celsius"
    assert forecast_params["forecast_days"] == 3
    assert "apikey" not in forecast_params

    assert response.location == "Paris, Île-de-France, France"
    assert response.units == "metric"
    assert response.daily_forecast is not None
    assert [d.date for d in response.daily_forecast] == [
        date(2026, 3, 1),
        date(2026, 3, 2),
        date(2026, 3, 3),
    ]
    first = response.daily_forecast[0]
    assert first.temperature_max == 12.4
    assert first.temperature_min == 4.1
    assert first.precipitation_probability == 10
    assert first.weather_code == 3
    assert first.summary == "Overcast"
    assert response.daily_forecast[2].summary == "Thunderstorm"

    assert result.latitude == 48.86
    assert result.raw_geocoding_payload == PARIS_GEOCODING
    assert result.source_url == FORECAST_URL


def test_coordinate_mode_skips_geocoding_and_uses_fahrenheit() -> None:
    provider = _make_provider(open_meteo_api_key="secret-key")
    called: list[str] = []

    def _fake_request(url: str, context: str, params: dict[str, Any] | None = None) -> Any:
        called.append(url)
        assert params is not None
        assert params["temperature_unit"] == "fahrenheit"
        assert params["apikey"] == "secret-key"
        return _forecast_payload()

    provider._request_json = _fake_request  # type: ignore[assignment]

    result = provider.fetch_forecast(lat=40.7128, lon=-74.006, days=3, units="imperial")
    assert called == [FORECAST_URL]
    assert result.raw_geocoding_payload is None
    assert result.response.location == "40.7128,-74.0060"
    assert result.response.units == "imperial"


def test_fetch_for_request_forwards_fields() -> None:
    provider = _make_provider()
    provider._request_json = (  # type: ignore[assignment]
        lambda url, context, params=None: _forecast_payload()
    )
    request = WeatherForecastRequest(latitude=51.5, longitude=-0.12, days=3)
    result = provider.fetch_for_request(request)
    assert result.response.location == "51.5000,-0.1200"
    assert result.response.units == "metric"


def test_no_geocoding_match_raises() -> None:
    provider = _make_provider()
    provider._request_json = (  # type: ignore[assignment]
        lambda url, context, params=None: {"generationtime_ms": 0.4}
    )
    with pytest.raises(WeatherProviderError, match="No geocoding match"):
        provider.fetch_forecast(location="Atlantis")


def test_short_parallel_arrays_yield_none_fields() -> None:
    provider = _make_provider()
    payload = _forecast_payload(
        precipitation_probability_max=[10],
        weather_code=[3, None, 42],
    )
    payload["daily"].pop("temperature_2m_min")
    provider._request_json = lambda url, context, params=None: payload  # type: ignore[assignment]

    days = provider.fetch_forecast(lat=48.85, lon=2.35, days=3).response.daily_forecast
    assert days is not None
    assert days[1].precipitation_probability is None
    assert days[1].weather_code is None
    assert days[1].summary is None
    assert days[2].weather_code == 42
    assert days[2].summary is None
    assert all(day.temperature_min is None for day in days)


@pytest.mark.parametrize(
    ("payload", "message"),
    [
        ({"latitude": 1.0}, "missing 'daily' object"),
        ({"daily": {"time": "2026-03-01"}}, "missing 'daily.time' list"),
        ({"daily": {"time": []}}, "no forecast days"),
        ({"daily": {"time": ["2026-13-40"]}}, "invalid date"),
    ],
)
def test_malformed_forecast_payload_raises(payload: dict[str, Any], message: str) -> None:
    provider = _make_provider()
    provider._request_json = lambda url, context, params=None: payload  # type: ignore[assignment]
    with pytest.raises(WeatherProviderError, match=message):
        provider.fetch_forecast(lat=48.85, lon=2.35)


@pytest.mark.parametrize(
    "kwargs",
    [
        {},
        {"lat": 10.0},
        {"lon": 10.0},
        {"lat": 91.0, "lon": 0.0},
        {"lat": 0.0, "lon": -181.0},
        {"location": "   "},
        {"location": "Paris", "lat": 48.0, "lon": 2.0},
        {"location": "Paris", "days": 0},
        {"location": "Paris", "days": 17},
        {"location": "Paris", "units": "kelvin"},
    ],
)
def test_invalid_input_raises(kwargs: dict[str, Any]) -> None:
    provider = _make_provider()
    with pytest.raises(WeatherProviderError):
        provider.fetch_forecast(**kwargs)


def _install_transport(
    provider: OpenMeteoWeatherProvider, handler: Any
) -> None:
    provider._client.close()
    provider._client = httpx.Client(transport=httpx.MockTransport(handler))


def test_request_json_retries_server_error_then_succeeds() -> None:
    provider = _make_provider(weather_max_retries=2)
    attempts: list[int] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        attempts.append(1)
        if len(attempts) < 2:
            return httpx.Response(503, text="busy")
        assert request.url.params["forecast_days"] == "3"
        return httpx.Response(200, json=_forecast_payload())

    _install_transport(provider, _handler)
    result = provider.fetch_forecast(lat=48.85, lon=2.35, days=3)
    assert len(attempts) == 2
    assert result.response.daily_forecast is not None


def test_request_json_does_not_retry_client_error() -> None:
    provider = _make_provider(weather_max_retries=3)
    attempts: list[int] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        attempts.append(1)
        return httpx.Response(400, json={"error": True, "reason": "Invalid latitude"})

    _install_transport(provider, _handler)
    with pytest.raises(WeatherProviderError, match="status 400"):
        provider.fetch_forecast(lat=48.85, lon=2.35)
    assert len(attempts) == 1


def test_request_json_gives_up_after_transport_errors() -> None:
    provider = _make_provider(weather_max_retries=1)
    attempts: list[int] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        attempts.append(1)
        raise httpx.ConnectError("connection refused", request=request)

    _install_transport(provider, _handler)
    with pytest.raises(WeatherProviderError, match="request failed"):
        provider.fetch_forecast(lat=48.85, lon=2.35)
    assert len(attempts) == 2


def test_request_json_rejects_non_object_payload() -> None:
    provider = _make_provider()
    _install_transport(provider, lambda request: httpx.Response(200, json=[1, 2, 3]))
    with pytest.raises(WeatherProviderError, match="unexpected payload type list"):
        provider.fetch_forecast(lat=48.85, lon=2.35)


def test_request_json_rejects_non_json_body() -> None:
    provider = _make_provider()
    _install_transport(provider, lambda request: httpx.Response(200, text="<html>"))
    with pytest.raises(WeatherProviderError, match="non-JSON"):
        provider.fetch_forecast(lat=48.85, lon=2.35)


def test_error_text_redacts_api_key() -> None:
    provider = _make_provider(weather_max_retries=0, open_meteo_api_key="abc123")

    def _handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, text=f"bad key for {request.url}")

    _install_transport(provider, _handler)
    with pytest.raises(WeatherProviderError) as excinfo:
        provider.fetch_forecast(lat=48.85, lon=2.35)
    assert "abc123" not in str(excinfo.value)
    assert "apikey=[REDACTED]" in str(excinfo.value)


def test_parse_date_rejects_garbage() -> None:
    assert OpenMeteoWeatherProvider._parse_date("2026-03-01") == date(2026, 3, 1)
    assert OpenMeteoWeatherProvider._parse_date("") is None
    assert OpenMeteoWeatherProvider._parse_date(20260301) is None


def test_request_json_retries_rate_limit() -> None:
    provider = _make_provider(weather_max_retries=1)
    statuses = iter([429, 200])

    def _handler(request: httpx.Request) -> httpx.Response:
        status = next(statuses)
        if status == 429:
            return httpx.Response(429, text="slow down")
        return httpx.Response(200, json=_forecast_payload())

    _install_transport(provider, _handler)
    result = provider.fetch_forecast(lat=48.85, lon=2.35, days=3)
    assert result.response.daily_forecast is not None


def test_request_json_gives_up_after_server_errors() -> None:
    provider = _make_provider(weather_max_retries=2)
    attempts: list[int] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        attempts.append(1)
        return httpx.Response(503, text="busy")

    _install_transport(provider, _handler)
    with pytest.raises(WeatherProviderError, match="status 503") as excinfo:
        provider.fetch_forecast(lat=48.85, lon=2.35)
    assert len(attempts) == 3
    assert isinstance(excinfo.value.__cause__, httpx.HTTPStatusError)


def test_zero_retries_makes_single_attempt() -> None:
    provider = _make_provider(weather_max_retries=0)
    attempts: list[int] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        attempts.append(1)
        raise httpx.ReadTimeout("timed out", request=request)

    _install_transport(provider, _handler)
    with pytest.raises(WeatherProviderError, match="request failed"):
        provider.fetch_forecast(lat=48.85, lon=2.35)
    assert len(attempts) == 1
