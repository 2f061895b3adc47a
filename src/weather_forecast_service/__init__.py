"""Daily weather forecast responses, their wire codec and an Open-Meteo provider."""

from .models import DayForecast, WeatherForecastRequest, WeatherForecastResponse

__all__ = [
    "DayForecast",
    "WeatherForecastRequest",
    "WeatherForecastResponse",
]
