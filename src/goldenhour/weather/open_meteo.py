"""Open-Meteo forecast provider.

Open-Meteo is keyless and, unlike OpenWeatherMap, decomposes cloud cover into
low/mid/high bands, which the afterglow rules rely on.
"""

from __future__ import annotations

import datetime as dt
import time
from typing import Any, Dict, List

import pandas as pd
import requests

from goldenhour.core.debug import DebugCollector, NullDebugCollector
from goldenhour.core.models import Coordinate, ForecastSample, InvalidArgument, UpstreamDataUnavailable
from .base import ForecastProvider, fetch_json

KELVIN_OFFSET = 273.15

_VAR_MAP = {
    "temperature_2m": "temp_c",
    "relative_humidity_2m": "humidity_pct",
    "cloud_cover": "cloud_pct",
    "cloud_cover_low": "cloud_low_pct",
    "cloud_cover_mid": "cloud_mid_pct",
    "cloud_cover_high": "cloud_high_pct",
    "visibility": "visibility_m",
    "precipitation_probability": "pop_pct",
    "pressure_msl": "pressure_hpa",
    "wind_speed_10m": "wind_ms",
    "weather_code": "weather_code",
}

# WMO weather interpretation codes → condition labels in the OpenWeatherMap vocabulary.
_WMO_LABELS = (
    ((0, 1), "Clear"),
    ((2, 3), "Clouds"),
    ((45, 48), "Fog"),
    ((51, 57), "Drizzle"),
    ((61, 67), "Rain"),
    ((71, 77), "Snow"),
    ((80, 82), "Rain"),
    ((85, 86), "Snow"),
    ((95, 99), "Thunderstorm"),
)


def weather_code_label(code) -> str:
    if code is None or pd.isna(code):
        raise InvalidArgument("weather_code is required to derive the primary condition label")
    code = int(code)
    for (lo, hi), label in _WMO_LABELS:
        if lo <= code <= hi:
            return label
    return "Unknown"


def _optional(value) -> Any:
    return None if value is None or pd.isna(value) else float(value)


class OpenMeteoForecastProvider(ForecastProvider):
    def __init__(
        self,
        base_url: str = "https://api.open-meteo.com/v1/forecast",
        debug: DebugCollector | None = None,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url
        self.debug = debug or NullDebugCollector()
        self.session = session or requests.Session()
        self.sleep = time.sleep

    def _build_params(self, coordinate: Coordinate, start: dt.date, end: dt.date) -> Dict[str, str]:
        return {
            "latitude": str(coordinate.latitude),
            "longitude": str(coordinate.longitude),
            "hourly": ",".join(_VAR_MAP.keys()),
            # Request wind in m/s to match the scoring thresholds.
            "wind_speed_unit": "ms",
            "timezone": "UTC",
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
        }

    def _parse_frame(self, payload: Dict[str, Any]) -> pd.DataFrame:
        """Normalise the hourly block into a UTC-indexed frame with SI-ish columns."""
        block = payload.get("hourly")
        if block is None:
            raise UpstreamDataUnavailable("Open-Meteo response missing hourly block")
        time_values = block.get("time") or []

        # With timezone=UTC the API returns naive ISO strings in UTC; honour an explicit zone otherwise.
        index = pd.to_datetime(time_values)
        if index.tz is None:
            index = index.tz_localize(payload.get("timezone") or "UTC")
        index = index.tz_convert("UTC")

        data: Dict[str, List] = {}
        for api_key, col in _VAR_MAP.items():
            series = block.get(api_key) or [None] * len(index)
            if len(series) != len(index):
                raise UpstreamDataUnavailable(f"Open-Meteo series {api_key} length {len(series)} != {len(index)}")
            if api_key == "wind_speed_10m":
                units = payload.get("hourly_units", {}).get("wind_speed_10m")
                if units == "km/h":
                    series = [v / 3.6 if v is not None else None for v in series]
            data[col] = series
        df = pd.DataFrame(data, index=index, dtype="float64")
        df.index.name = "ts"
        df["temp_k"] = df["temp_c"] + KELVIN_OFFSET
        df["pop"] = df["pop_pct"] / 100.0
        return df

    def _to_samples(self, coordinate: Coordinate, df: pd.DataFrame) -> List[ForecastSample]:
        """Validate each hour; incomplete hours are dropped with a debug event."""
        samples: List[ForecastSample] = []
        for ts, row in df.iterrows():
            try:
                samples.append(self._row_sample(ts, row))
            except InvalidArgument as exc:
                self.debug.emit("forecast.row_dropped", {"reason": str(exc)}, ts=ts, location=coordinate.label)
        if not samples and not df.empty:
            raise UpstreamDataUnavailable(f"Open-Meteo returned no complete hourly rows ({len(df)} received)")
        return samples

    def _row_sample(self, ts: pd.Timestamp, row: pd.Series) -> ForecastSample:
        return ForecastSample.from_mapping(
            {
                "timestamp": ts,
                "weather_conditions": (weather_code_label(row["weather_code"]),),
                "cloud_coverage": _optional(row["cloud_pct"]),
                "cloud_high": _optional(row["cloud_high_pct"]),
                "cloud_low": _optional(row["cloud_low_pct"]),
                "cloud_mid": _optional(row["cloud_mid_pct"]),
                "temperature": _optional(row["temp_k"]),
                "humidity": _optional(row["humidity_pct"]),
                "wind_speed": _optional(row["wind_ms"]),
                "visibility": _optional(row["visibility_m"]),
                "precipitation_probability": _optional(row["pop"]),
                "pressure": _optional(row["pressure_hpa"]),
            }
        )

    def _emit_summary(self, coordinate: Coordinate, df: pd.DataFrame) -> None:
        payload = {
            "rows": len(df),
            "cloud_max": float(df["cloud_pct"].max()) if not df.empty else None,
            "humidity_min": float(df["humidity_pct"].min()) if not df.empty else None,
            "humidity_max": float(df["humidity_pct"].max()) if not df.empty else None,
        }
        ts = df.index[0] if not df.empty else None
        self.debug.emit("forecast.summary", payload, ts=ts, location=coordinate.label)

    def get_forecast(self, coordinate: Coordinate, start: dt.date, end: dt.date) -> List[ForecastSample]:
        if end < start:
            raise InvalidArgument("end date must not precede start date")
        params = self._build_params(coordinate, start, end)
        self.debug.emit("forecast.request", {"url": self.base_url, "params": params}, ts=start, location=coordinate.label)
        payload = fetch_json(self.session, self.base_url, params, self.debug, ts=start, sleep=self.sleep)
        if isinstance(payload, list):  # multi-coordinate shape; we only ask for one
            if not payload:
                raise UpstreamDataUnavailable("Open-Meteo returned an empty response")
            payload = payload[0]
        if not isinstance(payload, dict):
            raise UpstreamDataUnavailable("Open-Meteo returned an unexpected payload")
        if payload.get("error"):
            raise UpstreamDataUnavailable(f"Open-Meteo error: {payload.get('reason')}")

        df = self._parse_frame(payload)
        self._emit_summary(coordinate, df)
        return self._to_samples(coordinate, df.sort_index())


__all__ = ["KELVIN_OFFSET", "OpenMeteoForecastProvider", "weather_code_label"]
