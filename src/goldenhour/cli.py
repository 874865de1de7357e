"""Command line entrypoint for goldenhour.

Commands:

* ``check``: golden-hour windows plus forecast quality for a location.
* ``sun``: golden-hour windows and sun position only (no forecast fetch).
* ``score``: score forecast sample records from a JSON file.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional

import pandas as pd
import typer

from goldenhour.core.config import AppConfig, ConfigError, OUTPUT_FORMATS, load_config
from goldenhour.core.debug import build_debug_collector, close_collector
from goldenhour.core.models import Coordinate, InvalidArgument, UpstreamDataUnavailable, as_instant, parse_samples
from goldenhour.engine.report import GoldenHourReport, build_report
from goldenhour.quality.scoring import score as score_sample
from goldenhour.solar.golden_hour import (
    GoldenHourWindow,
    UndefinedSolarEvent,
    compute_golden_hour,
    is_golden_hour,
    next_golden_hour,
)
from goldenhour.weather.geocoding import OpenMeteoGeocoder
from goldenhour.weather.open_meteo import KELVIN_OFFSET, OpenMeteoForecastProvider
from goldenhour.weather.openweathermap import OpenWeatherMapForecastProvider
from goldenhour.weather.selection import POLICIES

__version__ = "0.1.0"

app = typer.Typer(add_completion=False, help="Golden hour photography forecast CLI")

_HANDLED = (ConfigError, InvalidArgument, UndefinedSolarEvent, UpstreamDataUnavailable)
_DEFAULT_CONFIG = Path("etc/goldenhour.yaml")


def default_weather_provider(source: str, cfg: AppConfig, debug):
    """Factory separated for easy monkeypatching in tests."""
    kwargs = {"debug": debug}
    if cfg.weather.base_url:
        kwargs["base_url"] = cfg.weather.base_url
    if source == "openweathermap":
        return OpenWeatherMapForecastProvider(api_key=cfg.weather.api_key, **kwargs)
    return OpenMeteoForecastProvider(**kwargs)


def default_geocoder(debug) -> OpenMeteoGeocoder:
    return OpenMeteoGeocoder(debug=debug)


def _now() -> pd.Timestamp:
    return pd.Timestamp.now(tz="UTC")


def _exit_with_error(msg: str) -> None:
    typer.echo(f"Error: {msg}", err=True)
    raise typer.Exit(code=1)


def _load_cfg(config: Optional[Path]) -> AppConfig:
    if config is not None:
        return load_config(config)
    if _DEFAULT_CONFIG.exists():
        return load_config(_DEFAULT_CONFIG)
    return AppConfig()


def _resolve_coordinate(
    cfg: AppConfig,
    lat: Optional[float],
    lon: Optional[float],
    tz: Optional[str],
    place: Optional[str],
    location: Optional[str],
    debug,
) -> Coordinate:
    given = []
    if lat is not None or lon is not None:
        given.append("--lat/--lon")
    if place is not None:
        given.append("--place")
    if location is not None:
        given.append("--location")
    if len(given) > 1:
        raise InvalidArgument(f"Use only one of {', '.join(given)}")
    if tz is not None and "--lat/--lon" not in given:
        raise InvalidArgument("--tz only applies to --lat/--lon; places and config locations carry their own zone")
    if place is not None:
        return default_geocoder(debug).lookup(place)
    if location is not None:
        return cfg.location(location)
    if lat is None and lon is None:
        if len(cfg.locations) == 1:
            return next(iter(cfg.locations.values()))
        raise InvalidArgument("Provide --lat and --lon, --place, or --location")
    if lat is None or lon is None:
        raise InvalidArgument("--lat and --lon must be given together")
    return Coordinate(latitude=lat, longitude=lon, tz=tz)


def _parse_now(now: Optional[str]) -> pd.Timestamp:
    return _now() if now is None else as_instant(now, "--now")


def _fmt_time(ts: pd.Timestamp, coordinate: Coordinate) -> str:
    return ts.tz_convert(coordinate.tzinfo).strftime("%I:%M %p").lstrip("0")


def _window_lines(window: GoldenHourWindow, coordinate: Coordinate, now: pd.Timestamp) -> List[str]:
    lines = [
        f"Morning golden hour: {_fmt_time(window.morning_start, coordinate)} - {_fmt_time(window.morning_end, coordinate)}"
        f" (sun at {window.morning_sun_azimuth:.0f}°)",
        f"Evening golden hour: {_fmt_time(window.evening_start, coordinate)} - {_fmt_time(window.evening_end, coordinate)}"
        f" (sun at {window.evening_sun_azimuth:.0f}°)",
        f"Sun now: azimuth {window.current_sun_azimuth:.0f}°, altitude {window.sun_altitude:.1f}°",
    ]
    if is_golden_hour(window, now):
        lines.append("Golden hour is happening now!")
    else:
        nxt = next_golden_hour(window, now)
        suffix = " (tomorrow)" if nxt.tomorrow else ""
        lines.append(f"Next golden hour: {nxt.kind.capitalize()} at {_fmt_time(nxt.start, coordinate)}{suffix}")
    return lines


def _report_text(report: GoldenHourReport) -> str:
    coordinate = report.coordinate
    lines = [f"Location: {coordinate.label}"]
    lines.extend(_window_lines(report.window, coordinate, report.generated_at))
    for name, entry in report.boundaries.items():
        heading = name.replace("_", " ").capitalize()
        if not entry.covered:
            lines.append(f"{heading}: no forecast covers {_fmt_time(entry.target, coordinate)}")
            continue
        s, res = entry.sample, entry.result
        lines.append(
            f"{heading} ({_fmt_time(s.timestamp, coordinate)}): {s.primary_condition}, "
            f"{round(s.temperature - KELVIN_OFFSET)}°C, clouds {s.cloud_coverage:g}%, humidity {s.humidity:g}%, "
            f"wind {round(s.wind_speed * 3.6)} km/h [{res.verdict.label}]"
        )
        lines.append(f"  Afterglow: {res.afterglow.quality} - {res.afterglow.description}")
        for factor in res.afterglow.factors:
            lines.append(f"    - {factor}")
    return "\n".join(lines)


def _emit_output(text: str, output: Optional[Path]) -> None:
    if output is None:
        typer.echo(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text + "\n")
    typer.echo(f"Wrote results to {output}")


def _check_format(fmt: str) -> str:
    fmt = fmt.lower()
    if fmt not in OUTPUT_FORMATS:
        _exit_with_error(f"format must be one of {list(OUTPUT_FORMATS)}")
    return fmt


@app.command()
def check(
    lat: Optional[float] = typer.Option(None, help="Latitude in degrees"),
    lon: Optional[float] = typer.Option(None, help="Longitude in degrees"),
    tz: Optional[str] = typer.Option(None, help="IANA timezone for --lat/--lon only (defaults to local mean time)"),
    place: Optional[str] = typer.Option(None, help="Place name to geocode, e.g. 'London'"),
    location: Optional[str] = typer.Option(None, help="Location id from the config file"),
    config: Optional[Path] = typer.Option(None, exists=True, readable=True, help="Config YAML/JSON file"),
    now: Optional[str] = typer.Option(None, help="Evaluation instant (ISO with offset); defaults to current time"),
    selection: Optional[str] = typer.Option(None, help="Forecast selection: 'nearest' or 'at-or-after'"),
    source: Optional[str] = typer.Option(None, help="Weather source: 'open-meteo' or 'openweathermap'"),
    format: Optional[str] = typer.Option(None, "--format", "-f", help="Output format: text or json"),
    output: Optional[Path] = typer.Option(None, help="Write output to this file instead of stdout"),
    debug: Optional[Path] = typer.Option(None, help="Write debug events (JSONL, or JSON for .json paths)"),
):
    """Forecast golden-hour light quality for a location."""

    debug_collector = build_debug_collector(debug)
    try:
        cfg = _load_cfg(config)
        fmt = _check_format(format or cfg.run.format)
        policy = (selection or cfg.run.selection).lower()
        if policy not in POLICIES:
            _exit_with_error(f"selection must be one of {list(POLICIES)}")
        weather_source = (source or cfg.weather.source).lower()
        if weather_source not in {"open-meteo", "openweathermap"}:
            _exit_with_error(f"Unsupported weather source '{weather_source}'")

        coordinate = _resolve_coordinate(cfg, lat, lon, tz, place, location, debug_collector)
        instant = _parse_now(now)
        provider = default_weather_provider(weather_source, cfg, debug_collector)
        report = build_report(coordinate, instant, provider, selection=policy, debug=debug_collector)
    except _HANDLED as exc:
        _exit_with_error(str(exc))
    finally:
        close_collector(debug_collector)

    text = json.dumps(report.to_dict(), indent=2) if fmt == "json" else _report_text(report)
    _emit_output(text, output)
    if debug:
        typer.echo(f"Debug events -> {debug}")


@app.command()
def sun(
    lat: Optional[float] = typer.Option(None, help="Latitude in degrees"),
    lon: Optional[float] = typer.Option(None, help="Longitude in degrees"),
    tz: Optional[str] = typer.Option(None, help="IANA timezone for --lat/--lon only (defaults to local mean time)"),
    place: Optional[str] = typer.Option(None, help="Place name to geocode"),
    location: Optional[str] = typer.Option(None, help="Location id from the config file"),
    config: Optional[Path] = typer.Option(None, exists=True, readable=True, help="Config YAML/JSON file"),
    now: Optional[str] = typer.Option(None, help="Evaluation instant (ISO with offset); defaults to current time"),
    format: Optional[str] = typer.Option(None, "--format", "-f", help="Output format: text or json"),
    debug: Optional[Path] = typer.Option(None, help="Write debug events (JSONL, or JSON for .json paths)"),
):
    """Show golden-hour windows and sun direction without fetching weather."""

    debug_collector = build_debug_collector(debug)
    try:
        cfg = _load_cfg(config)
        fmt = _check_format(format or cfg.run.format)
        coordinate = _resolve_coordinate(cfg, lat, lon, tz, place, location, debug_collector)
        instant = _parse_now(now)
        window = compute_golden_hour(coordinate, instant, debug=debug_collector)
    except _HANDLED as exc:
        _exit_with_error(str(exc))
    finally:
        close_collector(debug_collector)

    if fmt == "json":
        payload = {
            "location": coordinate.to_dict(),
            "window": window.to_dict(),
            "golden_hour_now": is_golden_hour(window, instant),
            "next_golden_hour": next_golden_hour(window, instant).to_dict(),
        }
        typer.echo(json.dumps(payload, indent=2))
        return
    typer.echo(f"Location: {coordinate.label}")
    typer.echo("\n".join(_window_lines(window, coordinate, instant)))


@app.command()
def score(
    input: Path = typer.Argument(..., exists=True, readable=True, help="JSON file with one sample or a list of samples"),
    format: str = typer.Option("text", "--format", "-f", help="Output format: text or json"),
    debug: Optional[Path] = typer.Option(None, help="Write debug events (JSONL, or JSON for .json paths)"),
):
    """Score forecast samples (timestamp, weather_conditions, cloud_coverage, ...) from a file."""

    fmt = _check_format(format)
    debug_collector = build_debug_collector(debug)
    try:
        try:
            raw = json.loads(input.read_text())
        except json.JSONDecodeError as exc:
            _exit_with_error(f"{input} is not valid JSON: {exc}")
        records = raw if isinstance(raw, list) else [raw]
        samples = parse_samples(records)
        results = [score_sample(s, debug=debug_collector) for s in samples]
    except _HANDLED as exc:
        _exit_with_error(str(exc))
    finally:
        close_collector(debug_collector)

    if fmt == "json":
        payload = [{"timestamp": s.timestamp.isoformat(), **r.to_dict()} for s, r in zip(samples, results)]
        typer.echo(json.dumps(payload, indent=2))
        return
    for s, r in zip(samples, results):
        typer.echo(f"{s.timestamp.isoformat()} {s.primary_condition}: {r.verdict.label}, afterglow {r.afterglow.quality}")
        for factor in r.afterglow.factors:
            typer.echo(f"  - {factor}")


def _print_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def version_callback(
    version: bool = typer.Option(False, "--version", callback=_print_version, is_eager=True, help="Show version and exit"),
):
    """Golden hour photography forecast CLI."""


def main() -> None:  # pragma: no cover - thin wrapper for console_script
    app()


__all__ = ["app", "main", "default_weather_provider", "default_geocoder"]


if __name__ == "__main__":  # pragma: no cover
    main()
