"""Weather provider integrations."""

from .base import WeatherProvider
from .models import WeatherFetchResult
from .open_meteo import OpenMeteoWeatherProvider

__all__ = [
    "OpenMeteoWeatherProvider",
    "WeatherFetchResult",
    "WeatherProvider",
]
