"""Forecast providers, geocoding and forecast selection."""

from .base import ForecastProvider
from .geocoding import OpenMeteoGeocoder
from .open_meteo import OpenMeteoForecastProvider
from .openweathermap import OpenWeatherMapForecastProvider
from .selection import closest_to, first_at_or_after, nearest

__all__ = [
    "ForecastProvider",
    "OpenMeteoForecastProvider",
    "OpenWeatherMapForecastProvider",
    "OpenMeteoGeocoder",
    "closest_to",
    "first_at_or_after",
    "nearest",
]
