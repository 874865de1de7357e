"""Configuration loader.

Supports YAML and JSON files shaped like::

    locations:
      - id: london
        lat: 51.5
        lon: -0.12
        tz: Europe/London
    weather:
      source: open-meteo        # or openweathermap
      api_key: null             # openweathermap only; falls back to $OPENWEATHER_API_KEY
    run:
      selection: nearest        # or at-or-after
      format: text              # or json
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .models import Coordinate

WEATHER_SOURCES = ("open-meteo", "openweathermap")
OUTPUT_FORMATS = ("text", "json")
SELECTION_POLICIES = ("nearest", "at-or-after")


class ConfigError(ValueError):
    """Raised when configuration cannot be parsed into domain models."""


@dataclass(frozen=True)
class WeatherSettings:
    source: str = "open-meteo"
    api_key: Optional[str] = None
    base_url: Optional[str] = None


@dataclass(frozen=True)
class RunSettings:
    selection: str = "nearest"
    format: str = "text"


@dataclass(frozen=True)
class AppConfig:
    locations: Dict[str, Coordinate] = field(default_factory=dict)
    weather: WeatherSettings = field(default_factory=WeatherSettings)
    run: RunSettings = field(default_factory=RunSettings)

    def location(self, loc_id: str) -> Coordinate:
        try:
            return self.locations[loc_id]
        except KeyError as exc:
            known = sorted(self.locations)
            raise ConfigError(f"Unknown location '{loc_id}'; configured: {known}") from exc


def _load_raw(path: Path) -> Dict[str, Any]:
    text = path.read_text()
    if path.suffix.lower() in {".yaml", ".yml"}:
        raw = yaml.safe_load(text) or {}
    elif path.suffix.lower() == ".json":
        raw = json.loads(text)
    else:
        raise ConfigError(f"Unsupported config extension: {path.suffix}")
    if not isinstance(raw, dict):
        raise ConfigError("Config root must be a mapping")
    return raw


def _parse_location(raw: Dict[str, Any]) -> tuple[str, Coordinate]:
    try:
        loc_id = str(raw["id"])
        return loc_id, Coordinate(
            latitude=float(raw["lat"]),
            longitude=float(raw["lon"]),
            tz=raw.get("tz"),
            name=raw.get("name") or loc_id,
        )
    except KeyError as exc:
        raise ConfigError(f"Missing location field: {exc}") from exc
    except (TypeError, ValueError) as exc:
        # InvalidArgument is a ValueError too.
        raise ConfigError(f"Invalid location: {exc}") from exc


def _choice(section: str, key: str, value: Any, allowed: tuple[str, ...], default: str) -> str:
    if value is None:
        return default
    value = str(value).lower()
    if value not in allowed:
        raise ConfigError(f"{section}.{key} must be one of {list(allowed)}, got '{value}'")
    return value


def load_config(path: str | Path) -> AppConfig:
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    try:
        raw = _load_raw(path)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Could not parse {path}: {exc}") from exc

    locations: Dict[str, Coordinate] = {}
    for entry in raw.get("locations") or []:
        if not isinstance(entry, dict):
            raise ConfigError("Each location must be a mapping")
        loc_id, coordinate = _parse_location(entry)
        if loc_id in locations:
            raise ConfigError(f"Duplicate location id '{loc_id}'")
        locations[loc_id] = coordinate

    weather_raw = raw.get("weather") or {}
    run_raw = raw.get("run") or {}
    weather = WeatherSettings(
        source=_choice("weather", "source", weather_raw.get("source"), WEATHER_SOURCES, "open-meteo"),
        api_key=weather_raw.get("api_key"),
        base_url=weather_raw.get("base_url"),
    )
    run = RunSettings(
        selection=_choice("run", "selection", run_raw.get("selection"), SELECTION_POLICIES, "nearest"),
        format=_choice("run", "format", run_raw.get("format"), OUTPUT_FORMATS, "text"),
    )
    return AppConfig(locations=locations, weather=weather, run=run)


__all__ = [
    "AppConfig",
    "ConfigError",
    "RunSettings",
    "WeatherSettings",
    "load_config",
]
