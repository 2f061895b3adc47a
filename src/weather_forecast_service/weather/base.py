"""Provider-agnostic weather interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..models import WeatherForecastRequest
from .models import WeatherFetchResult


class WeatherProvider(ABC):
    """Base contract for providers that populate forecast responses."""

    @abstractmethod
    def fetch_forecast(
        self,
        *,
        location: str | None = None,
        lat: float | None = None,
        lon: float | None = None,
        days: int = 7,
        units: str = "metric",
    ) -> WeatherFetchResult:
        """Fetch a daily forecast and return it as a populated response."""

    @abstractmethod
    def close(self) -> None:
        """Release provider resources."""

    def fetch_for_request(self, request: WeatherForecastRequest) -> WeatherFetchResult:
        return self.fetch_forecast(
            location=request.location,
            lat=request.latitude,
            lon=request.longitude,
            days=request.days,
            units=request.units,
        )
