"""Forecast provider protocol and shared HTTP fetch helper."""

from __future__ import annotations

import datetime as dt
import time
from typing import Any, Dict, List, Protocol

import requests

from goldenhour.core.debug import DebugCollector
from goldenhour.core.models import Coordinate, ForecastSample, UpstreamDataUnavailable

MAX_ATTEMPTS = 3
TIMEOUT_S = 30


class ForecastProvider(Protocol):
    """Interface for fetching forecast samples."""

    def get_forecast(self, coordinate: Coordinate, start: dt.date, end: dt.date) -> List[ForecastSample]:
        """Return samples ordered by timestamp covering ``start``..``end`` (inclusive days, UTC)."""
        ...


def fetch_json(
    session: requests.Session,
    url: str,
    params: Dict[str, Any],
    debug: DebugCollector,
    *,
    stage: str = "forecast",
    ts: Any = None,
    sleep=time.sleep,
) -> Any:
    """GET ``url`` and decode JSON, retrying with linear backoff.

    Raises ``UpstreamDataUnavailable`` once all attempts are spent or when
    the body is not JSON.
    """
    for attempt in range(1, MAX_ATTEMPTS + 1):
        try:
            resp = session.get(url, params=params, timeout=TIMEOUT_S)
            resp.raise_for_status()
            return resp.json()
        except Exception as exc:
            if attempt == MAX_ATTEMPTS:
                debug.emit(f"{stage}.failed", {"attempts": attempt, "error": str(exc), "url": url}, ts=ts)
                raise UpstreamDataUnavailable(f"{url} failed after {attempt} attempts: {exc}") from exc
            debug.emit(f"{stage}.retry", {"attempt": attempt, "error": str(exc)}, ts=ts)
            sleep(0.5 * attempt)


def redact(params: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of request params safe to put into debug output."""
    return {k: ("***" if k in {"appid", "apikey", "api_key"} else v) for k, v in params.items()}


__all__ = ["ForecastProvider", "fetch_json", "redact", "MAX_ATTEMPTS"]
