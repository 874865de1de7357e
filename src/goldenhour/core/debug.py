"""Deterministic debug collectors for structured JSON events.

Every component takes an optional collector and emits named stages
(``golden_hour.window``, ``forecast.request``, ``quality.score`` ...). The
default ``NullDebugCollector`` drops events; the CLI wires a file writer when
``--debug`` is given.
"""
from __future__ import annotations

import datetime as _dt
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol


class DebugCollector(Protocol):
    def emit(
        self,
        stage: str,
        payload: Dict[str, Any],
        *,
        ts: Any,
        location: Optional[str] = None,
        window: Optional[str] = None,
    ) -> None:
        ...


def _json_safe_scalar(val: Any) -> Any:
    if isinstance(val, (_dt.datetime, _dt.date, _dt.time)) or hasattr(val, "isoformat"):
        try:
            return val.isoformat()
        except (TypeError, ValueError):
            return str(val)
    if isinstance(val, tuple):
        return list(val)
    return val


def _ordered(obj: Any) -> Any:
    """Recursively order mappings for deterministic JSON dumps."""
    if isinstance(obj, dict):
        return {k: _ordered(obj[k]) for k in sorted(obj)}
    if isinstance(obj, (list, tuple)):
        return [_ordered(v) for v in obj]
    return _json_safe_scalar(obj)


def _event(stage: str, payload: Dict[str, Any], ts: Any, location: Optional[str], window: Optional[str]) -> Dict[str, Any]:
    return {
        "stage": stage,
        "ts": _json_safe_scalar(ts),
        "location": location,
        "window": window,
        "payload": _ordered(payload),
    }


class NullDebugCollector:
    def emit(self, stage: str, payload: Dict[str, Any], *, ts: Any, location: Optional[str] = None, window: Optional[str] = None) -> None:  # noqa: D401
        """Discard events (no-op)."""
        return


@dataclass
class ListDebugCollector:
    events: List[Dict[str, Any]] = field(default_factory=list)

    def emit(self, stage: str, payload: Dict[str, Any], *, ts: Any, location: Optional[str] = None, window: Optional[str] = None) -> None:
        self.events.append(_event(stage, payload, ts, location, window))

    def stages(self) -> List[str]:
        return [e["stage"] for e in self.events]


class JsonlDebugWriter:
    """Append one JSON object per event to ``path``."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._fh = self.path.open("a", encoding="utf-8")

    def emit(self, stage: str, payload: Dict[str, Any], *, ts: Any, location: Optional[str] = None, window: Optional[str] = None) -> None:
        json.dump(_event(stage, payload, ts, location, window), self._fh, sort_keys=True)
        self._fh.write("\n")
        self._fh.flush()

    def close(self) -> None:
        if not self._fh.closed:
            self._fh.close()


class JsonDebugWriter:
    """Collect all events in memory then write a single JSON array.

    Used when ``--debug`` points at a ``.json`` file so one run produces one
    self-contained document.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._events: List[Dict[str, Any]] = []

    def emit(self, stage: str, payload: Dict[str, Any], *, ts: Any, location: Optional[str] = None, window: Optional[str] = None) -> None:
        self._events.append(_event(stage, payload, ts, location, window))

    def close(self) -> None:
        self.path.write_text(json.dumps(self._events, indent=2, sort_keys=True))


def build_debug_collector(path: str | Path | None) -> DebugCollector:
    """Factory: None → NullDebugCollector, .json → JsonDebugWriter, otherwise JSONL."""
    if path is None:
        return NullDebugCollector()
    if str(path).lower().endswith(".json"):
        return JsonDebugWriter(path)
    return JsonlDebugWriter(path)


def close_collector(debug: DebugCollector) -> None:
    closer = getattr(debug, "close", None)
    if callable(closer):
        closer()


class ScopedDebugCollector:
    """Wrapper that injects fixed location/window context into every emit."""

    def __init__(self, inner: DebugCollector, *, location: Optional[str] = None, window: Optional[str] = None):
        self.inner = inner
        self.location = location
        self.window = window

    def emit(self, stage: str, payload: Dict[str, Any], *, ts: Any, location: Optional[str] = None, window: Optional[str] = None) -> None:
        # Explicit arguments win over the scoped defaults.
        self.inner.emit(
            stage,
            payload,
            ts=ts,
            location=location if location is not None else self.location,
            window=window if window is not None else self.window,
        )


__all__ = [
    "DebugCollector",
    "NullDebugCollector",
    "ListDebugCollector",
    "JsonlDebugWriter",
    "JsonDebugWriter",
    "ScopedDebugCollector",
    "build_debug_collector",
    "close_collector",
]
