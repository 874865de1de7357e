import copy
import datetime as dt
import json
from pathlib import Path

import pandas as pd
import pytest

from goldenhour.core.debug import ListDebugCollector
from goldenhour.core.models import Coordinate, InvalidArgument, UpstreamDataUnavailable
from goldenhour.weather.open_meteo import OpenMeteoForecastProvider, weather_code_label

FIXTURE = Path(__file__).parents[1] / "fixtures" / "open_meteo_forecast.json"
LONDON = Coordinate(latitude=51.5, longitude=-0.12, tz="Europe/London", name="London")


def _payload():
    return json.loads(FIXTURE.read_text())


def _provider(payload, debug=None):
    provider = OpenMeteoForecastProvider(debug=debug)
    seen = {}

    class Resp:
        def json(self):
            return payload

        def raise_for_status(self):
            return None

    def fake_get(url, params=None, timeout=None):
        seen["url"] = url
        seen["params"] = params
        seen["timeout"] = timeout
        return Resp()

    provider.session = type("S", (), {"get": staticmethod(fake_get)})()
    provider.sleep = lambda _s: None
    return provider, seen


def test_parse_frame_utc_index_and_units():
    provider = OpenMeteoForecastProvider()
    df = provider._parse_frame(_payload())
    assert isinstance(df.index, pd.DatetimeIndex)
    assert str(df.index.tz) == "UTC"
    assert df.index[0] == pd.Timestamp("2024-06-21T03:00:00Z")
    assert df["temp_k"].iloc[0] == pytest.approx(285.15)
    assert df["pop"].iloc[4] == pytest.approx(0.5)
    assert df["wind_ms"].iloc[3] == pytest.approx(6.0)


def test_parse_converts_wind_kmh_to_ms_when_needed():
    payload = _payload()
    payload["hourly_units"]["wind_speed_10m"] = "km/h"
    payload["hourly"]["wind_speed_10m"][0] = 10.0
    df = OpenMeteoForecastProvider()._parse_frame(payload)
    assert df["wind_ms"].iloc[0] == pytest.approx(2.7777777, abs=1e-6)


def test_parse_honours_explicit_zone():
    payload = _payload()
    payload["timezone"] = "Europe/London"
    df = OpenMeteoForecastProvider()._parse_frame(payload)
    # 03:00 BST is 02:00 UTC
    assert df.index[0] == pd.Timestamp("2024-06-21T02:00:00Z")


def test_parse_guards():
    payload = _payload()
    del payload["hourly"]
    with pytest.raises(UpstreamDataUnavailable):
        OpenMeteoForecastProvider()._parse_frame(payload)

    payload = _payload()
    payload["hourly"]["cloud_cover"] = payload["hourly"]["cloud_cover"][:2]
    with pytest.raises(UpstreamDataUnavailable):
        OpenMeteoForecastProvider()._parse_frame(payload)


def test_get_forecast_builds_samples():
    debug = ListDebugCollector()
    provider, seen = _provider(_payload(), debug=debug)
    samples = provider.get_forecast(LONDON, dt.date(2024, 6, 21), dt.date(2024, 6, 21))

    assert seen["params"]["start_date"] == "2024-06-21"
    assert seen["params"]["wind_speed_unit"] == "ms"
    assert seen["params"]["timezone"] == "UTC"
    assert "cloud_cover_high" in seen["params"]["hourly"]
    assert seen["timeout"] == 30

    assert len(samples) == 6
    first = samples[0]
    assert first.weather_conditions == ("Clouds",)
    assert first.cloud_high == 45.0 and first.cloud_low == 10.0 and first.cloud_mid == 5.0
    assert first.visibility == 24000.0
    assert first.precipitation_probability == pytest.approx(0.1)
    assert first.pressure == 1012.0
    assert samples[3].primary_condition == "Rain"
    assert samples[2].primary_condition == "Clear"
    assert [s.timestamp for s in samples] == sorted(s.timestamp for s in samples)
    assert debug.stages() == ["forecast.request", "forecast.summary"]
    assert debug.events[1]["payload"]["rows"] == 6


def test_get_forecast_accepts_list_payload():
    provider, _ = _provider([_payload()])
    samples = provider.get_forecast(LONDON, dt.date(2024, 6, 21), dt.date(2024, 6, 21))
    assert len(samples) == 6


def test_error_payload_and_bad_range():
    provider, _ = _provider({"error": True, "reason": "Latitude must be in range"})
    with pytest.raises(UpstreamDataUnavailable):
        provider.get_forecast(LONDON, dt.date(2024, 6, 21), dt.date(2024, 6, 21))
    with pytest.raises(InvalidArgument):
        provider.get_forecast(LONDON, dt.date(2024, 6, 22), dt.date(2024, 6, 21))


def test_incomplete_hours_are_dropped():
    payload = copy.deepcopy(_payload())
    payload["hourly"]["weather_code"][0] = None
    payload["hourly"]["relative_humidity_2m"][3] = None
    debug = ListDebugCollector()
    provider, _ = _provider(payload, debug=debug)
    samples = provider.get_forecast(LONDON, dt.date(2024, 6, 21), dt.date(2024, 6, 21))
    assert [s.timestamp.hour for s in samples] == [4, 5, 20, 21]
    dropped = [e for e in debug.events if e["stage"] == "forecast.row_dropped"]
    assert [e["ts"] for e in dropped] == ["2024-06-21T03:00:00+00:00", "2024-06-21T19:00:00+00:00"]
    assert "humidity" in dropped[1]["payload"]["reason"]


def test_no_complete_hours_is_upstream_error():
    payload = copy.deepcopy(_payload())
    payload["hourly"]["relative_humidity_2m"] = [None] * 6
    provider, _ = _provider(payload)
    with pytest.raises(UpstreamDataUnavailable):
        provider.get_forecast(LONDON, dt.date(2024, 6, 21), dt.date(2024, 6, 21))


@pytest.mark.parametrize(
    "code,label",
    [
        (0, "Clear"),
        (1, "Clear"),
        (3, "Clouds"),
        (45, "Fog"),
        (53, "Drizzle"),
        (65, "Rain"),
        (81, "Rain"),
        (75, "Snow"),
        (86, "Snow"),
        (96, "Thunderstorm"),
        (20, "Unknown"),
    ],
)
def test_weather_code_labels(code, label):
    assert weather_code_label(code) == label
