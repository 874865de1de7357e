"""Golden-hour windows anchored at sunrise and sunset.

The morning window opens at sunrise and the evening window closes at sunset;
both are one hour wide. On days with less than two hours of daylight both
windows are clipped at the midpoint between sunrise and sunset so they never
overlap. Sun azimuths are point samples at each window's midpoint (start +
30 min for full-width windows), not averages over the window.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

import pandas as pd

from goldenhour.core.debug import DebugCollector, NullDebugCollector
from goldenhour.core.models import Coordinate, InvalidArgument, UpstreamDataUnavailable, as_instant
from goldenhour.solar.position import Ephemeris, PvlibEphemeris, SunPosition, SunTimes

WINDOW_WIDTH = pd.Timedelta(hours=1)

MORNING = "morning"
EVENING = "evening"


class UndefinedSolarEvent(RuntimeError):
    """Raised when sunrise or sunset does not occur (polar day or night)."""


@dataclass(frozen=True)
class GoldenHourWindow:
    morning_start: pd.Timestamp
    morning_end: pd.Timestamp
    evening_start: pd.Timestamp
    evening_end: pd.Timestamp
    morning_sun_azimuth: float
    evening_sun_azimuth: float
    current_sun_azimuth: float
    sun_altitude: float

    @property
    def sunrise(self) -> pd.Timestamp:
        return self.morning_start

    @property
    def sunset(self) -> pd.Timestamp:
        return self.evening_end

    @property
    def daylight(self) -> pd.Timedelta:
        return self.evening_end - self.morning_start

    def boundaries(self) -> dict[str, pd.Timestamp]:
        return {
            "morning_start": self.morning_start,
            "morning_end": self.morning_end,
            "evening_start": self.evening_start,
            "evening_end": self.evening_end,
        }

    def to_dict(self) -> dict:
        data = {k: v.isoformat() for k, v in self.boundaries().items()}
        data.update(
            {
                "morning_sun_azimuth": self.morning_sun_azimuth,
                "evening_sun_azimuth": self.evening_sun_azimuth,
                "current_sun_azimuth": self.current_sun_azimuth,
                "sun_altitude": self.sun_altitude,
            }
        )
        return data


@dataclass(frozen=True)
class NextGoldenHour:
    kind: str
    start: pd.Timestamp
    tomorrow: bool = False

    def to_dict(self) -> dict:
        return {"kind": self.kind, "start": self.start.isoformat(), "tomorrow": self.tomorrow}


def compass_degrees(azimuth_rad: float, offset_deg: float) -> float:
    """Convert an ephemeris azimuth to a compass bearing in [0, 360)."""
    deg = (math.degrees(azimuth_rad) + offset_deg) % 360.0
    # Tiny negative inputs round up to exactly 360.0 under float modulo.
    if deg >= 360.0:
        deg = 0.0
    return deg


def _position(ephemeris: Ephemeris, instant: pd.Timestamp, coordinate: Coordinate) -> SunPosition:
    try:
        return ephemeris.sun_position(instant, coordinate)
    except (InvalidArgument, UndefinedSolarEvent):
        raise
    except Exception as exc:
        raise UpstreamDataUnavailable(f"ephemeris failed to compute sun position at {instant}: {exc}") from exc


def _times(ephemeris: Ephemeris, day, coordinate: Coordinate) -> SunTimes:
    try:
        return ephemeris.sun_times(day, coordinate)
    except (InvalidArgument, UndefinedSolarEvent):
        raise
    except Exception as exc:
        raise UpstreamDataUnavailable(f"ephemeris failed to compute sun times for {day}: {exc}") from exc


def compute_golden_hour(
    coordinate: Coordinate,
    now,
    ephemeris: Optional[Ephemeris] = None,
    debug: DebugCollector | None = None,
) -> GoldenHourWindow:
    """Compute golden-hour windows for the local day containing ``now``.

    Parameters
    ----------
    coordinate: Coordinate
        Observer location; ``coordinate.tzinfo`` decides the calendar day.
    now:
        Timezone-aware evaluation instant (anything ``pd.Timestamp`` accepts).
    ephemeris: Ephemeris | None
        Astronomical primitive; defaults to :class:`PvlibEphemeris`.
    debug: DebugCollector | None
        Collector for the ``golden_hour.window`` event.

    Raises
    ------
    InvalidArgument
        ``now`` is missing or naive.
    UndefinedSolarEvent
        The sun does not rise or set on that day at that latitude.
    UpstreamDataUnavailable
        The ephemeris itself failed.
    """
    now = as_instant(now, "now")
    debug = debug or NullDebugCollector()
    ephemeris = ephemeris or PvlibEphemeris()
    offset = float(getattr(ephemeris, "azimuth_offset_deg", 0.0))

    day = now.tz_convert(coordinate.tzinfo).date()
    times = _times(ephemeris, day, coordinate)
    if times.sunrise is None or times.sunset is None:
        missing = [name for name, val in (("sunrise", times.sunrise), ("sunset", times.sunset)) if val is None]
        debug.emit("golden_hour.undefined", {"day": day.isoformat(), "missing": missing}, ts=now, location=coordinate.label)
        raise UndefinedSolarEvent(
            f"No {' or '.join(missing)} on {day.isoformat()} at {coordinate.label} (polar day or night)"
        )

    morning_start = as_instant(times.sunrise, "sunrise").tz_convert("UTC")
    evening_end = as_instant(times.sunset, "sunset").tz_convert("UTC")
    if evening_end <= morning_start:
        raise UpstreamDataUnavailable(f"ephemeris returned sunset {evening_end} before sunrise {morning_start}")
    half_day = (evening_end - morning_start) / 2
    if half_day < WINDOW_WIDTH:
        morning_end = evening_start = morning_start + half_day
    else:
        morning_end = morning_start + WINDOW_WIDTH
        evening_start = evening_end - WINDOW_WIDTH

    morning_pos = _position(ephemeris, morning_start + (morning_end - morning_start) / 2, coordinate)
    evening_pos = _position(ephemeris, evening_start + (evening_end - evening_start) / 2, coordinate)
    current_pos = _position(ephemeris, now, coordinate)

    window = GoldenHourWindow(
        morning_start=morning_start,
        morning_end=morning_end,
        evening_start=evening_start,
        evening_end=evening_end,
        morning_sun_azimuth=compass_degrees(morning_pos.azimuth_rad, offset),
        evening_sun_azimuth=compass_degrees(evening_pos.azimuth_rad, offset),
        current_sun_azimuth=compass_degrees(current_pos.azimuth_rad, offset),
        sun_altitude=math.degrees(current_pos.altitude_rad),
    )
    debug.emit("golden_hour.window", window.to_dict(), ts=now, location=coordinate.label)
    return window


def is_golden_hour(window: GoldenHourWindow, now) -> bool:
    now = as_instant(now, "now")
    return (window.morning_start <= now <= window.morning_end) or (window.evening_start <= now <= window.evening_end)


def next_golden_hour(window: GoldenHourWindow, now) -> NextGoldenHour:
    """Next golden hour to start after ``now``.

    Once the evening window has begun, tomorrow's morning start is
    approximated by shifting today's sunrise by one day.
    """
    now = as_instant(now, "now")
    if now < window.morning_start:
        return NextGoldenHour(kind=MORNING, start=window.morning_start)
    if now < window.evening_start:
        return NextGoldenHour(kind=EVENING, start=window.evening_start)
    return NextGoldenHour(kind=MORNING, start=window.morning_start + pd.Timedelta(days=1), tomorrow=True)


def display_azimuth(window: GoldenHourWindow, now) -> float:
    """Azimuth a compass view should point at for ``now``.

    During a window show that window's azimuth; before sunrise show the
    morning one, and after the morning window show the evening one.
    """
    now = as_instant(now, "now")
    if window.morning_start <= now <= window.morning_end:
        return window.morning_sun_azimuth
    if window.evening_start <= now <= window.evening_end:
        return window.evening_sun_azimuth
    if now < window.morning_start:
        return window.morning_sun_azimuth
    return window.evening_sun_azimuth


__all__ = [
    "EVENING",
    "MORNING",
    "GoldenHourWindow",
    "NextGoldenHour",
    "UndefinedSolarEvent",
    "compass_degrees",
    "compute_golden_hour",
    "display_azimuth",
    "is_golden_hour",
    "next_golden_hour",
]
