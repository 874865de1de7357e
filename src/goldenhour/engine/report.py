"""Golden-hour report: solar windows + selected forecast + quality per boundary."""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import pandas as pd

from goldenhour.core.debug import DebugCollector, NullDebugCollector, ScopedDebugCollector
from goldenhour.core.models import Coordinate, ForecastSample, InvalidArgument, as_instant
from goldenhour.quality.scoring import ScoreResult, score
from goldenhour.solar.golden_hour import (
    GoldenHourWindow,
    NextGoldenHour,
    compute_golden_hour,
    display_azimuth,
    is_golden_hour,
    next_golden_hour,
)
from goldenhour.solar.position import Ephemeris
from goldenhour.weather.base import ForecastProvider
from goldenhour.weather.selection import NEAREST, POLICIES, closest_to


@dataclass(frozen=True)
class BoundaryForecast:
    """Selected sample and its score for one window boundary.

    ``sample`` and ``result`` are ``None`` when the at-or-after policy finds
    no sample covering the boundary.
    """

    boundary: str
    target: pd.Timestamp
    sample: Optional[ForecastSample]
    result: Optional[ScoreResult]

    @property
    def covered(self) -> bool:
        return self.sample is not None

    def to_dict(self) -> dict:
        return {
            "boundary": self.boundary,
            "target": self.target.isoformat(),
            "sample": self.sample.to_dict() if self.sample else None,
            "score": self.result.to_dict() if self.result else None,
        }


@dataclass(frozen=True)
class GoldenHourReport:
    coordinate: Coordinate
    generated_at: pd.Timestamp
    selection: str
    window: GoldenHourWindow
    boundaries: Dict[str, BoundaryForecast] = field(default_factory=dict)
    golden_hour_now: bool = False
    next_golden_hour: Optional[NextGoldenHour] = None
    display_azimuth: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "location": self.coordinate.to_dict(),
            "generated_at": self.generated_at.isoformat(),
            "selection": self.selection,
            "window": self.window.to_dict(),
            "golden_hour_now": self.golden_hour_now,
            "next_golden_hour": self.next_golden_hour.to_dict() if self.next_golden_hour else None,
            "display_azimuth": self.display_azimuth,
            "boundaries": {k: v.to_dict() for k, v in self.boundaries.items()},
        }


def forecast_days(window: GoldenHourWindow) -> tuple[dt.date, dt.date]:
    """UTC calendar days the forecast request must span to cover every boundary."""
    days = [ts.tz_convert("UTC").date() for ts in window.boundaries().values()]
    return min(days), max(days)


def score_boundaries(
    window: GoldenHourWindow,
    samples: List[ForecastSample],
    policy: str = NEAREST,
    debug: DebugCollector | None = None,
) -> Dict[str, BoundaryForecast]:
    """Map each window boundary to a forecast sample and score it."""
    debug = debug or NullDebugCollector()
    out: Dict[str, BoundaryForecast] = {}
    for name, target in window.boundaries().items():
        scoped = ScopedDebugCollector(debug, window=name)
        sample = closest_to(samples, target, policy=policy, debug=scoped)
        if sample is None:
            scoped.emit("report.boundary_uncovered", {"policy": policy}, ts=target)
            out[name] = BoundaryForecast(boundary=name, target=target, sample=None, result=None)
            continue
        out[name] = BoundaryForecast(boundary=name, target=target, sample=sample, result=score(sample, debug=scoped))
    return out


def build_report(
    coordinate: Coordinate,
    now,
    provider: ForecastProvider,
    *,
    selection: str = NEAREST,
    ephemeris: Optional[Ephemeris] = None,
    debug: DebugCollector | None = None,
) -> GoldenHourReport:
    """Compute the golden-hour window, fetch the forecast and score every boundary.

    Errors from the calculator, provider or scorer propagate unchanged; no
    partially-filled report is returned.
    """
    if selection not in POLICIES:
        raise InvalidArgument(f"Unknown selection policy '{selection}'; expected one of {list(POLICIES)}")
    now = as_instant(now, "now")
    debug = ScopedDebugCollector(debug or NullDebugCollector(), location=coordinate.label)

    window = compute_golden_hour(coordinate, now, ephemeris=ephemeris, debug=debug)
    start, end = forecast_days(window)
    samples = provider.get_forecast(coordinate, start, end)
    if not samples:
        raise InvalidArgument(f"Forecast provider returned no samples for {start}..{end}")

    boundaries = score_boundaries(window, samples, policy=selection, debug=debug)
    report = GoldenHourReport(
        coordinate=coordinate,
        generated_at=now,
        selection=selection,
        window=window,
        boundaries=boundaries,
        golden_hour_now=is_golden_hour(window, now),
        next_golden_hour=next_golden_hour(window, now),
        display_azimuth=display_azimuth(window, now),
    )
    debug.emit(
        "report.summary",
        {
            "samples": len(samples),
            "covered": sum(1 for b in boundaries.values() if b.covered),
            "qualities": {k: b.result.afterglow.quality for k, b in boundaries.items() if b.result},
        },
        ts=now,
    )
    return report


__all__ = ["BoundaryForecast", "GoldenHourReport", "build_report", "forecast_days", "score_boundaries"]
