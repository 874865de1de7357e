"""Photographic quality of golden-hour light from one forecast sample.

Two outputs per sample:

* a binary verdict (no bad-weather label and cloud cover below 70%), and
* an afterglow prediction built by an ordered rule chain. Quality starts at
  Moderate; each rule may append one factor and adjust the quality, guarded
  by the quality accumulated so far. Rule order therefore changes outcomes
  and must not be rearranged.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping, Tuple, Union

from goldenhour.core.debug import DebugCollector, NullDebugCollector
from goldenhour.core.models import ForecastSample

EXCELLENT = "Excellent"
GOOD = "Good"
MODERATE = "Moderate"
POOR = "Poor"
QUALITY_LEVELS = (EXCELLENT, GOOD, MODERATE, POOR)

DESCRIPTIONS = {
    EXCELLENT: "Perfect conditions for vibrant afterglow",
    GOOD: "Good conditions for afterglow",
    MODERATE: "Moderate conditions for afterglow",
    POOR: "Poor conditions for afterglow",
}

BAD_CONDITIONS = ("Rain", "Thunderstorm", "Drizzle", "Snow", "Mist", "Fog", "Haze")
MAX_GOOD_CLOUD_COVERAGE = 70.0

# Afterglow thresholds
HIGH_CLOUD_SCATTER_RANGE = (30.0, 70.0)  # exclusive on both ends
HIGH_CLOUD_BLOCKING = 70.0
LOW_CLOUD_BLOCKING = 30.0
HUMID = 70.0
DRY = 30.0
HAZY_VISIBILITY_M = 5000.0
CLEAR_VISIBILITY_M = 20000.0
STRONG_WIND_MS = 20.0
WET_PRECIP_PROBABILITY = 0.3
LOW_PRESSURE_HPA = 1000.0


@dataclass(frozen=True)
class QualityVerdict:
    good: bool
    matched_conditions: Tuple[str, ...] = ()

    @property
    def label(self) -> str:
        return "Ideal" if self.good else "Suboptimal"

    @property
    def message(self) -> str:
        if self.good:
            return "Great conditions for golden hour photography!"
        return "Weather conditions may affect golden hour quality."

    def to_dict(self) -> dict:
        return {
            "good": self.good,
            "label": self.label,
            "message": self.message,
            "matched_conditions": list(self.matched_conditions),
        }


@dataclass(frozen=True)
class AfterglowPrediction:
    quality: str
    description: str
    factors: Tuple[str, ...]

    def to_dict(self) -> dict:
        return {"quality": self.quality, "description": self.description, "factors": list(self.factors)}


@dataclass(frozen=True)
class ScoreResult:
    verdict: QualityVerdict
    afterglow: AfterglowPrediction

    def to_dict(self) -> dict:
        return {"verdict": self.verdict.to_dict(), "afterglow": self.afterglow.to_dict()}


SampleLike = Union[ForecastSample, Mapping[str, Any]]


def _coerce(sample: SampleLike) -> ForecastSample:
    if isinstance(sample, ForecastSample):
        return sample
    return ForecastSample.from_mapping(sample)


def _pct(value: float) -> str:
    return f"{value:g}%"


def verdict(sample: SampleLike) -> QualityVerdict:
    """Good for golden hour iff no label contains a bad token and clouds < 70%.

    Matching is a case-sensitive substring test so "Light Rain" counts as Rain.
    """
    sample = _coerce(sample)
    matched = tuple(
        label for label in sample.weather_conditions if any(bad in label for bad in BAD_CONDITIONS)
    )
    good = not matched and sample.cloud_coverage < MAX_GOOD_CLOUD_COVERAGE
    return QualityVerdict(good=good, matched_conditions=matched)


def predict_afterglow(sample: SampleLike) -> AfterglowPrediction:
    sample = _coerce(sample)
    quality = MODERATE
    factors: List[str] = []

    high, low = sample.cloud_high, sample.cloud_low
    scatter_lo, scatter_hi = HIGH_CLOUD_SCATTER_RANGE

    if scatter_lo < high < scatter_hi:
        factors.append(f"High clouds ({_pct(high)}) good for light scattering")

    if high >= HIGH_CLOUD_BLOCKING:
        factors.append(f"Dense high clouds ({_pct(high)}) may block afterglow")
        quality = POOR

    if low > LOW_CLOUD_BLOCKING:
        factors.append(f"Low clouds ({_pct(low)}) may block afterglow")
        quality = POOR

    if sample.humidity > HUMID:
        factors.append(f"High humidity ({_pct(sample.humidity)}) good for scattering")
        if quality != POOR:
            quality = GOOD

    if sample.humidity < DRY:
        factors.append(f"Low humidity ({_pct(sample.humidity)}) may reduce intensity")
        if quality == MODERATE:
            quality = POOR

    if sample.visibility is not None:
        km = sample.visibility / 1000.0
        if sample.visibility < HAZY_VISIBILITY_M:
            factors.append(f"Reduced visibility ({km:.1f} km) enhances colors")
            if quality != POOR:
                quality = GOOD
        if sample.visibility > CLEAR_VISIBILITY_M:
            factors.append(f"Very clear air ({km:.1f} km visibility) may reduce intensity")
            if quality == MODERATE:
                quality = POOR

    if sample.wind_speed > STRONG_WIND_MS:
        factors.append(f"Strong wind ({sample.wind_speed:.1f} m/s) disperses particles")
        if quality == GOOD:
            quality = MODERATE

    # Absent probability reads as "no rain expected".
    pop = sample.precipitation_probability or 0.0
    if pop > WET_PRECIP_PROBABILITY:
        factors.append(f"Precipitation chance ({pop:.0%}) may affect afterglow")
        if quality == GOOD:
            quality = MODERATE

    if sample.pressure is not None and sample.pressure < LOW_PRESSURE_HPA:
        factors.append(f"Low pressure ({sample.pressure:.0f} hPa) enhances atmospheric effects")
        if quality == GOOD:
            quality = EXCELLENT

    return AfterglowPrediction(quality=quality, description=DESCRIPTIONS[quality], factors=tuple(factors))


def score(sample: SampleLike, debug: DebugCollector | None = None) -> ScoreResult:
    """Score one forecast sample.

    Raw mappings are validated into :class:`ForecastSample` first, so missing
    required fields raise ``InvalidArgument`` before any rule runs.
    """
    sample = _coerce(sample)
    debug = debug or NullDebugCollector()
    result = ScoreResult(verdict=verdict(sample), afterglow=predict_afterglow(sample))
    debug.emit(
        "quality.score",
        {
            "good": result.verdict.good,
            "quality": result.afterglow.quality,
            "factor_count": len(result.afterglow.factors),
            "primary_condition": sample.primary_condition,
        },
        ts=sample.timestamp,
    )
    return result


__all__ = [
    "BAD_CONDITIONS",
    "DESCRIPTIONS",
    "EXCELLENT",
    "GOOD",
    "MODERATE",
    "POOR",
    "QUALITY_LEVELS",
    "AfterglowPrediction",
    "QualityVerdict",
    "ScoreResult",
    "predict_afterglow",
    "score",
    "verdict",
]
