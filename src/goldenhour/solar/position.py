"""Solar position and rise/set utilities built on pvlib."""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Optional, Protocol

import numpy as np
import pandas as pd
import pvlib

from goldenhour.core.debug import DebugCollector, NullDebugCollector
from goldenhour.core.models import Coordinate, as_instant


@dataclass(frozen=True)
class SunTimes:
    """Sunrise/sunset for one calendar day; ``None`` when the event does not occur."""

    sunrise: Optional[pd.Timestamp]
    sunset: Optional[pd.Timestamp]


@dataclass(frozen=True)
class SunPosition:
    azimuth_rad: float
    altitude_rad: float


class Ephemeris(Protocol):
    """Astronomical primitive consumed by the golden-hour calculator.

    ``azimuth_offset_deg`` is added to ``degrees(azimuth_rad)`` to obtain a
    compass bearing (0 = north, 90 = east). South-referenced primitives such
    as SunCalc need 180; pvlib is already north-referenced and needs 0.
    """

    azimuth_offset_deg: float

    def sun_times(self, day: dt.date, coordinate: Coordinate) -> SunTimes:
        ...

    def sun_position(self, instant: pd.Timestamp, coordinate: Coordinate) -> SunPosition:
        ...


def solar_position(
    coordinate: Coordinate,
    times: pd.DatetimeIndex,
    debug: DebugCollector | None = None,
) -> pd.DataFrame:
    """Compute solar position for a coordinate at the given times.

    Parameters
    ----------
    coordinate: Coordinate
        Site latitude/longitude.
    times: pandas.DatetimeIndex
        Must be timezone-aware. pvlib assumes UTC if naive, which would be wrong for local times.
    debug: DebugCollector | None
        Collector for summary debug info.

    Returns
    -------
    pandas.DataFrame
        Columns include at least zenith, elevation, azimuth (degrees, azimuth
        clockwise from north) as provided by pvlib.
    """
    if times.tz is None:
        raise ValueError("times must be timezone-aware (tzinfo set)")

    debug = debug or NullDebugCollector()

    df = pvlib.solarposition.get_solarposition(times, coordinate.latitude, coordinate.longitude)

    expected_cols = ["zenith", "elevation", "azimuth"]
    missing = [c for c in expected_cols if c not in df.columns]
    if missing:
        raise RuntimeError(f"pvlib missing expected columns: {missing}")

    if not df.empty:
        debug.emit(
            "solar_position.summary",
            {
                "elevation_min": float(df["elevation"].min()),
                "elevation_max": float(df["elevation"].max()),
                "azimuth_min": float(df["azimuth"].min()),
                "azimuth_max": float(df["azimuth"].max()),
                "has_nans": bool(df.isna().any().any()),
            },
            ts=df.index[0],
            location=coordinate.label,
        )
    return df[expected_cols + [c for c in df.columns if c not in expected_cols]]


def _as_optional(ts) -> Optional[pd.Timestamp]:
    if ts is None or pd.isna(ts):
        return None
    return pd.Timestamp(ts).tz_convert("UTC")


class PvlibEphemeris:
    """Ephemeris backed by pvlib's NREL SPA implementation.

    Sunrise/sunset come from ``sun_rise_set_transit_spa``, which yields NaT
    when the sun does not cross the horizon that day (polar day or night).
    Altitude is the geometric elevation, without refraction correction.
    """

    azimuth_offset_deg = 0.0

    def __init__(self, debug: DebugCollector | None = None):
        self.debug = debug or NullDebugCollector()

    def sun_times(self, day: dt.date, coordinate: Coordinate) -> SunTimes:
        # SPA needs times localized to the site's zone to pick the right day.
        times = pd.DatetimeIndex([pd.Timestamp(day)]).tz_localize(coordinate.tzinfo)
        df = pvlib.solarposition.sun_rise_set_transit_spa(times, coordinate.latitude, coordinate.longitude)
        row = df.iloc[0]
        result = SunTimes(sunrise=_as_optional(row["sunrise"]), sunset=_as_optional(row["sunset"]))
        self.debug.emit(
            "ephemeris.sun_times",
            {"day": day.isoformat(), "sunrise": result.sunrise, "sunset": result.sunset},
            ts=times[0],
            location=coordinate.label,
        )
        return result

    def sun_position(self, instant: pd.Timestamp, coordinate: Coordinate) -> SunPosition:
        instant = as_instant(instant).tz_convert("UTC")
        df = solar_position(coordinate, pd.DatetimeIndex([instant]), debug=self.debug)
        row = df.iloc[0]
        return SunPosition(
            azimuth_rad=float(np.radians(row["azimuth"])),
            altitude_rad=float(np.radians(row["elevation"])),
        )


__all__ = ["Ephemeris", "PvlibEphemeris", "SunPosition", "SunTimes", "solar_position"]
