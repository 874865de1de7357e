"""Pick the forecast sample that stands for a given instant.

Two policies are exposed as separate functions and the caller chooses one
explicitly:

* ``first_at_or_after``: first sample whose timestamp is >= target.
* ``nearest``: sample with the smallest absolute time difference; ties go to
  the earlier entry in the sequence.
"""
from __future__ import annotations

from typing import Optional, Sequence

from goldenhour.core.debug import DebugCollector, NullDebugCollector
from goldenhour.core.models import ForecastSample, InvalidArgument, as_instant

AT_OR_AFTER = "at-or-after"
NEAREST = "nearest"
POLICIES = (NEAREST, AT_OR_AFTER)


def _require_samples(samples: Sequence[ForecastSample]) -> None:
    if not samples:
        raise InvalidArgument("samples must contain at least one forecast sample")


def first_at_or_after(samples: Sequence[ForecastSample], target) -> Optional[ForecastSample]:
    """Return the first sample at or after ``target``, or ``None`` if none covers it."""
    _require_samples(samples)
    target = as_instant(target, "target")
    for sample in samples:
        if sample.timestamp >= target:
            return sample
    return None


def nearest(samples: Sequence[ForecastSample], target) -> ForecastSample:
    _require_samples(samples)
    target = as_instant(target, "target")
    # min() keeps the first of equal keys, which gives the tie-break.
    return min(samples, key=lambda s: abs(s.timestamp - target))


def closest_to(
    samples: Sequence[ForecastSample],
    target,
    policy: str = NEAREST,
    debug: DebugCollector | None = None,
) -> Optional[ForecastSample]:
    debug = debug or NullDebugCollector()
    if policy == NEAREST:
        picked = nearest(samples, target)
    elif policy == AT_OR_AFTER:
        picked = first_at_or_after(samples, target)
    else:
        raise InvalidArgument(f"Unknown selection policy '{policy}'; expected one of {list(POLICIES)}")
    debug.emit(
        "selection.pick",
        {
            "policy": policy,
            "candidates": len(samples),
            "picked": picked.timestamp if picked is not None else None,
        },
        ts=target,
    )
    return picked


__all__ = ["AT_OR_AFTER", "NEAREST", "POLICIES", "closest_to", "first_at_or_after", "nearest"]
