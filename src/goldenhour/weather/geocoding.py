"""Place-name lookup via the Open-Meteo geocoding API."""

from __future__ import annotations

import time

import requests

from goldenhour.core.debug import DebugCollector, NullDebugCollector
from goldenhour.core.models import Coordinate, InvalidArgument, UpstreamDataUnavailable
from .base import fetch_json


class OpenMeteoGeocoder:
    def __init__(
        self,
        base_url: str = "https://geocoding-api.open-meteo.com/v1/search",
        debug: DebugCollector | None = None,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url
        self.debug = debug or NullDebugCollector()
        self.session = session or requests.Session()
        self.sleep = time.sleep

    def lookup(self, name: str) -> Coordinate:
        """Resolve ``name`` to the best match, carrying its IANA timezone and a display label."""
        query = (name or "").strip()
        if not query:
            raise InvalidArgument("place name is required")
        params = {"name": query, "count": 1, "language": "en", "format": "json"}
        self.debug.emit("geocode.request", {"url": self.base_url, "params": params}, ts=None)
        payload = fetch_json(self.session, self.base_url, params, self.debug, stage="geocode", sleep=self.sleep)
        if not isinstance(payload, dict):
            raise UpstreamDataUnavailable("geocoding response is not an object")

        results = payload.get("results") or []
        if not results:
            raise InvalidArgument(f"Location not found: {query}")
        best = results[0]
        label = ", ".join(p for p in (best.get("name"), best.get("country_code") or best.get("country")) if p)
        try:
            coordinate = Coordinate(
                latitude=float(best["latitude"]),
                longitude=float(best["longitude"]),
                tz=best.get("timezone"),
                name=label or query,
            )
        except KeyError as exc:
            raise UpstreamDataUnavailable(f"geocoding result missing field: {exc}") from exc
        except (TypeError, ValueError) as exc:
            raise UpstreamDataUnavailable(f"geocoding result is invalid: {exc}") from exc
        self.debug.emit("geocode.match", coordinate.to_dict(), ts=None, location=coordinate.label)
        return coordinate


__all__ = ["OpenMeteoGeocoder"]
