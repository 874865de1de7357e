"""Domain models for the golden-hour core.

Provides validated data structures for coordinates and forecast samples plus
the error taxonomy shared by the solar, selection and scoring components.
"""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Tuple

import pandas as pd


class InvalidArgument(ValueError):
    """Raised when inputs are missing, malformed or out of range."""


class UpstreamDataUnavailable(RuntimeError):
    """Raised when an ephemeris, forecast or geocoding collaborator fails."""


def as_instant(value: Any, name: str = "instant") -> pd.Timestamp:
    """Coerce ``value`` to a timezone-aware ``pd.Timestamp``.

    Naive values are rejected: interpreting them as UTC would silently shift
    local wall-clock input by the zone offset.
    """
    if value is None:
        raise InvalidArgument(f"{name} is required")
    try:
        ts = pd.Timestamp(value)
    except (TypeError, ValueError) as exc:
        raise InvalidArgument(f"{name} is not a valid timestamp: {value!r}") from exc
    if ts is pd.NaT:
        raise InvalidArgument(f"{name} is not a valid timestamp: {value!r}")
    if ts.tzinfo is None:
        raise InvalidArgument(f"{name} must be timezone-aware (tzinfo set)")
    return ts


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float
    tz: Optional[str] = None
    name: Optional[str] = None

    def __post_init__(self):
        if self.latitude is None or self.longitude is None:
            raise InvalidArgument("latitude and longitude are required")
        if not (-90.0 <= self.latitude <= 90.0):
            raise InvalidArgument("Latitude must be between -90 and 90 degrees")
        if not (-180.0 <= self.longitude <= 180.0):
            raise InvalidArgument("Longitude must be between -180 and 180 degrees")
        if self.tz:
            try:
                pd.Timestamp(0).tz_localize(self.tz)
            except (KeyError, TypeError, ValueError) as exc:
                # zoneinfo and pytz both report unknown keys as KeyError subclasses.
                raise InvalidArgument(f"Unknown timezone '{self.tz}'") from exc

    @property
    def tzinfo(self) -> str | dt.tzinfo:
        """Zone used to pick the local calendar day.

        Falls back to local mean time (longitude / 15 hours) when no IANA zone
        is known, which keeps sunrise and sunset on the same calendar day.
        """
        if self.tz:
            return self.tz
        return dt.timezone(dt.timedelta(minutes=round(self.longitude * 4.0)))

    @property
    def label(self) -> str:
        return self.name or f"{self.latitude:.4f},{self.longitude:.4f}"

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "tz": self.tz,
        }


_REQUIRED_SAMPLE_KEYS = (
    "timestamp",
    "weather_conditions",
    "cloud_coverage",
    "temperature",
    "humidity",
    "wind_speed",
)


def _number(name: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidArgument(f"{name} must be a number, got {value!r}") from exc


def _percent(name: str, value: Optional[float], *, required: bool) -> Optional[float]:
    if value is None:
        if required:
            raise InvalidArgument(f"{name} is required")
        return None
    value = _number(name, value)
    if not (0.0 <= value <= 100.0):
        raise InvalidArgument(f"{name} must be between 0 and 100 percent")
    return value


@dataclass(frozen=True)
class ForecastSample:
    """One timestamped forecast record.

    ``weather_conditions[0]`` is the primary label used for display; every
    label takes part in the bad-weather check. Cloud bands default to 0 when
    the provider does not decompose coverage. ``visibility`` and ``pressure``
    stay ``None`` when unknown so rules depending on them are skipped.
    """

    timestamp: pd.Timestamp
    weather_conditions: Tuple[str, ...]
    cloud_coverage: float
    temperature: float
    humidity: float
    wind_speed: float
    cloud_high: float = 0.0
    cloud_low: float = 0.0
    cloud_mid: float = 0.0
    visibility: Optional[float] = None
    precipitation_probability: Optional[float] = None
    pressure: Optional[float] = None
    description: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "timestamp", as_instant(self.timestamp, "timestamp"))

        conditions = self.weather_conditions
        if isinstance(conditions, str):
            conditions = (conditions,)
        conditions = tuple(str(c) for c in (conditions or ()) if c)
        if not conditions:
            raise InvalidArgument("weather_conditions must contain a primary condition label")
        object.__setattr__(self, "weather_conditions", conditions)

        object.__setattr__(self, "cloud_coverage", _percent("cloud_coverage", self.cloud_coverage, required=True))
        object.__setattr__(self, "humidity", _percent("humidity", self.humidity, required=True))
        for band in ("cloud_high", "cloud_low", "cloud_mid"):
            val = getattr(self, band)
            object.__setattr__(self, band, _percent(band, 0.0 if val is None else val, required=True))

        if self.temperature is None:
            raise InvalidArgument("temperature is required")
        temperature = _number("temperature", self.temperature)
        if temperature <= 0:
            raise InvalidArgument("temperature must be in kelvin (positive)")
        object.__setattr__(self, "temperature", temperature)

        if self.wind_speed is None:
            raise InvalidArgument("wind_speed is required")
        wind = _number("wind_speed", self.wind_speed)
        if wind < 0:
            raise InvalidArgument("wind_speed must be non-negative")
        object.__setattr__(self, "wind_speed", wind)

        if self.visibility is not None:
            visibility = _number("visibility", self.visibility)
            if visibility < 0:
                raise InvalidArgument("visibility must be non-negative")
            object.__setattr__(self, "visibility", visibility)
        if self.precipitation_probability is not None:
            pop = _number("precipitation_probability", self.precipitation_probability)
            if not (0.0 <= pop <= 1.0):
                raise InvalidArgument("precipitation_probability must be a fraction in [0, 1]")
            object.__setattr__(self, "precipitation_probability", pop)
        if self.pressure is not None:
            pressure = _number("pressure", self.pressure)
            if pressure <= 0:
                raise InvalidArgument("pressure must be positive (hPa)")
            object.__setattr__(self, "pressure", pressure)

    @property
    def primary_condition(self) -> str:
        return self.weather_conditions[0]

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "ForecastSample":
        """Validate a loosely-shaped record (e.g. parsed JSON) into a sample."""
        if not isinstance(raw, Mapping):
            raise InvalidArgument("forecast sample must be a mapping")
        missing = [k for k in _REQUIRED_SAMPLE_KEYS if raw.get(k) is None]
        if missing:
            raise InvalidArgument(f"Missing forecast sample fields: {missing}")
        try:
            return cls(
                timestamp=raw["timestamp"],
                weather_conditions=raw["weather_conditions"],
                cloud_coverage=raw["cloud_coverage"],
                temperature=raw["temperature"],
                humidity=raw["humidity"],
                wind_speed=raw["wind_speed"],
                cloud_high=raw.get("cloud_high"),
                cloud_low=raw.get("cloud_low"),
                cloud_mid=raw.get("cloud_mid"),
                visibility=raw.get("visibility"),
                precipitation_probability=raw.get("precipitation_probability"),
                pressure=raw.get("pressure"),
                description=raw.get("description"),
            )
        except InvalidArgument:
            raise
        except (TypeError, ValueError) as exc:
            raise InvalidArgument(f"Invalid forecast sample: {exc}") from exc

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(),
            "weather_conditions": list(self.weather_conditions),
            "description": self.description,
            "cloud_coverage": self.cloud_coverage,
            "cloud_high": self.cloud_high,
            "cloud_low": self.cloud_low,
            "cloud_mid": self.cloud_mid,
            "temperature": self.temperature,
            "humidity": self.humidity,
            "wind_speed": self.wind_speed,
            "visibility": self.visibility,
            "precipitation_probability": self.precipitation_probability,
            "pressure": self.pressure,
        }


def parse_samples(records: Sequence[Mapping[str, Any]]) -> list[ForecastSample]:
    return [ForecastSample.from_mapping(rec) for rec in records]


__all__ = [
    "InvalidArgument",
    "UpstreamDataUnavailable",
    "Coordinate",
    "ForecastSample",
    "as_instant",
    "parse_samples",
]
