"""OpenWeatherMap forecast provider (5 day / 3 hour forecast and current conditions).

Responses already use kelvin, m/s and metres, and ``pop`` is a fraction, so
records map onto :class:`ForecastSample` without unit conversion. Cloud cover
is not split into bands; the band fields stay at their default of 0.
"""

from __future__ import annotations

import datetime as dt
import os
import time
from typing import Any, Dict, List

import pandas as pd
import requests

from goldenhour.core.debug import DebugCollector, NullDebugCollector
from goldenhour.core.models import Coordinate, ForecastSample, InvalidArgument, UpstreamDataUnavailable
from .base import ForecastProvider, fetch_json, redact

API_KEY_ENV = "OPENWEATHER_API_KEY"


def parse_entry(entry: Dict[str, Any]) -> ForecastSample:
    """Map one OpenWeatherMap weather/forecast record to a sample."""
    main = entry.get("main") or {}
    weather = entry.get("weather") or []
    if entry.get("dt") is None:
        raise UpstreamDataUnavailable("OpenWeatherMap entry missing dt")
    try:
        return ForecastSample.from_mapping(
            {
                "timestamp": pd.Timestamp(int(entry["dt"]), unit="s", tz="UTC"),
                "weather_conditions": tuple(w.get("main") for w in weather if w.get("main")),
                "description": weather[0].get("description") if weather else None,
                # No clouds block means clear sky.
                "cloud_coverage": (entry.get("clouds") or {}).get("all", 0),
                "temperature": main.get("temp"),
                "humidity": main.get("humidity"),
                "pressure": main.get("pressure"),
                "wind_speed": (entry.get("wind") or {}).get("speed"),
                "visibility": entry.get("visibility"),
                "precipitation_probability": entry.get("pop"),
            }
        )
    except (TypeError, ValueError) as exc:
        raise UpstreamDataUnavailable(f"OpenWeatherMap entry at dt={entry['dt']} is incomplete: {exc}") from exc


class OpenWeatherMapForecastProvider(ForecastProvider):
    def __init__(
        self,
        api_key: str | None = None,
        base_url: str = "https://api.openweathermap.org/data/2.5",
        debug: DebugCollector | None = None,
        session: requests.Session | None = None,
    ):
        self.api_key = api_key or os.environ.get(API_KEY_ENV)
        if not self.api_key:
            raise InvalidArgument(f"OpenWeatherMap requires an API key (config weather.api_key or {API_KEY_ENV})")
        self.base_url = base_url.rstrip("/")
        self.debug = debug or NullDebugCollector()
        self.session = session or requests.Session()
        self.sleep = time.sleep

    def _params(self, coordinate: Coordinate) -> Dict[str, str]:
        return {"lat": str(coordinate.latitude), "lon": str(coordinate.longitude), "appid": self.api_key}

    def _get(self, endpoint: str, coordinate: Coordinate, ts: Any) -> Any:
        url = f"{self.base_url}/{endpoint}"
        params = self._params(coordinate)
        self.debug.emit("forecast.request", {"url": url, "params": redact(params)}, ts=ts, location=coordinate.label)
        return fetch_json(self.session, url, params, self.debug, ts=ts, sleep=self.sleep)

    def get_forecast(self, coordinate: Coordinate, start: dt.date, end: dt.date) -> List[ForecastSample]:
        if end < start:
            raise InvalidArgument("end date must not precede start date")
        payload = self._get("forecast", coordinate, start)
        entries = payload.get("list") if isinstance(payload, dict) else None
        if entries is None:
            raise UpstreamDataUnavailable("OpenWeatherMap forecast response missing list")

        parsed: List[ForecastSample] = []
        for entry in entries:
            try:
                parsed.append(parse_entry(entry))
            except UpstreamDataUnavailable as exc:
                self.debug.emit("forecast.row_dropped", {"reason": str(exc)}, ts=entry.get("dt"), location=coordinate.label)
        if entries and not parsed:
            raise UpstreamDataUnavailable(f"OpenWeatherMap returned no complete entries ({len(entries)} received)")
        samples = sorted(parsed, key=lambda s: s.timestamp)
        kept = [s for s in samples if start <= s.timestamp.date() <= end]
        self.debug.emit(
            "forecast.summary",
            {"rows": len(samples), "kept": len(kept), "start": start, "end": end},
            ts=kept[0].timestamp if kept else start,
            location=coordinate.label,
        )
        return kept

    def get_current(self, coordinate: Coordinate) -> ForecastSample:
        """Current conditions as a single sample."""
        payload = self._get("weather", coordinate, None)
        if not isinstance(payload, dict):
            raise UpstreamDataUnavailable("OpenWeatherMap weather response is not an object")
        return parse_entry(payload)


__all__ = ["API_KEY_ENV", "OpenWeatherMapForecastProvider", "parse_entry"]
