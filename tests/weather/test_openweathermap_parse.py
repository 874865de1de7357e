import copy
import datetime as dt
import json
from pathlib import Path

import pandas as pd
import pytest

from goldenhour.core.debug import ListDebugCollector
from goldenhour.core.models import Coordinate, InvalidArgument, UpstreamDataUnavailable
from goldenhour.weather.openweathermap import API_KEY_ENV, OpenWeatherMapForecastProvider, parse_entry

FIXTURES = Path(__file__).parents[1] / "fixtures"
LONDON = Coordinate(latitude=51.5, longitude=-0.12, name="London")


def _load(name):
    return json.loads((FIXTURES / name).read_text())


def _provider(payload, debug=None):
    provider = OpenWeatherMapForecastProvider(api_key="secret", debug=debug)
    seen = []

    class Resp:
        def json(self):
            return payload

        def raise_for_status(self):
            return None

    def fake_get(url, params=None, timeout=None):
        seen.append((url, params))
        return Resp()

    provider.session = type("S", (), {"get": staticmethod(fake_get)})()
    provider.sleep = lambda _s: None
    return provider, seen


def test_parse_entry_maps_fields():
    entry = _load("openweathermap_forecast.json")["list"][2]
    sample = parse_entry(entry)
    assert sample.timestamp == pd.Timestamp("2024-06-21T18:00:00Z")
    assert sample.weather_conditions == ("Rain",)
    assert sample.description == "light rain"
    assert sample.cloud_coverage == 75.0
    assert sample.precipitation_probability == pytest.approx(0.62)
    assert sample.cloud_high == 0.0
    assert sample.pressure == 1004.0


def test_parse_entry_missing_clouds_and_dt():
    entry = dict(_load("openweathermap_forecast.json")["list"][0])
    del entry["clouds"]
    assert parse_entry(entry).cloud_coverage == 0.0
    del entry["dt"]
    with pytest.raises(UpstreamDataUnavailable):
        parse_entry(entry)


def test_get_forecast_sorts_and_filters_days():
    debug = ListDebugCollector()
    provider, seen = _provider(_load("openweathermap_forecast.json"), debug=debug)
    samples = provider.get_forecast(LONDON, dt.date(2024, 6, 21), dt.date(2024, 6, 21))
    assert [s.timestamp.hour for s in samples] == [1, 4, 18]
    assert seen[0][0].endswith("/forecast")
    assert seen[0][1]["appid"] == "secret"
    request = debug.events[0]
    assert request["stage"] == "forecast.request"
    assert request["payload"]["params"]["appid"] == "***"
    assert debug.events[-1]["payload"]["kept"] == 3


def test_get_current_keeps_all_labels():
    provider, seen = _provider(_load("openweathermap_current.json"))
    sample = provider.get_current(LONDON)
    assert seen[0][0].endswith("/weather")
    assert sample.weather_conditions == ("Fog", "Drizzle")
    assert sample.primary_condition == "Fog"
    assert sample.visibility == 800.0
    assert sample.precipitation_probability is None


def test_api_key_required(monkeypatch):
    monkeypatch.delenv(API_KEY_ENV, raising=False)
    with pytest.raises(InvalidArgument):
        OpenWeatherMapForecastProvider()
    monkeypatch.setenv(API_KEY_ENV, "from-env")
    assert OpenWeatherMapForecastProvider().api_key == "from-env"


def test_missing_list_is_upstream_error():
    provider, _ = _provider({"cod": "401", "message": "Invalid API key"})
    with pytest.raises(UpstreamDataUnavailable):
        provider.get_forecast(LONDON, dt.date(2024, 6, 21), dt.date(2024, 6, 21))


def test_incomplete_entry_is_upstream_error():
    entry = copy.deepcopy(_load("openweathermap_forecast.json")["list"][0])
    del entry["main"]["humidity"]
    with pytest.raises(UpstreamDataUnavailable):
        parse_entry(entry)


def test_get_forecast_drops_incomplete_entries():
    payload = _load("openweathermap_forecast.json")
    del payload["list"][1]["main"]["temp"]
    debug = ListDebugCollector()
    provider, _ = _provider(payload, debug=debug)
    samples = provider.get_forecast(LONDON, dt.date(2024, 6, 21), dt.date(2024, 6, 21))
    assert [s.timestamp.hour for s in samples] == [4, 18]
    assert "forecast.row_dropped" in debug.stages()

    for entry in payload["list"]:
        entry["main"].pop("temp", None)
    provider, _ = _provider(payload)
    with pytest.raises(UpstreamDataUnavailable):
        provider.get_forecast(LONDON, dt.date(2024, 6, 21), dt.date(2024, 6, 21))
