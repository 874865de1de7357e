import pytest

from goldenhour.core.debug import ListDebugCollector
from goldenhour.core.models import InvalidArgument, UpstreamDataUnavailable
from goldenhour.weather.geocoding import OpenMeteoGeocoder


def _geocoder(payload, debug=None):
    geocoder = OpenMeteoGeocoder(debug=debug)
    seen = {}

    class Resp:
        def json(self):
            return payload

        def raise_for_status(self):
            return None

    def fake_get(url, params=None, timeout=None):
        seen["params"] = params
        return Resp()

    geocoder.session = type("S", (), {"get": staticmethod(fake_get)})()
    geocoder.sleep = lambda _s: None
    return geocoder, seen


def test_lookup_best_match():
    payload = {
        "results": [
            {"name": "Paris", "latitude": 48.85341, "longitude": 2.3488, "country_code": "FR", "timezone": "Europe/Paris"},
            {"name": "Paris", "latitude": 33.66, "longitude": -95.55, "country_code": "US", "timezone": "America/Chicago"},
        ]
    }
    debug = ListDebugCollector()
    geocoder, seen = _geocoder(payload, debug=debug)
    coord = geocoder.lookup("  Paris ")
    assert seen["params"]["name"] == "Paris"
    assert coord.latitude == pytest.approx(48.85341)
    assert coord.tz == "Europe/Paris"
    assert coord.name == "Paris, FR"
    assert debug.stages() == ["geocode.request", "geocode.match"]


def test_lookup_not_found():
    geocoder, _ = _geocoder({"generationtime_ms": 0.3})
    with pytest.raises(InvalidArgument, match="Location not found"):
        geocoder.lookup("Nowhereville")


def test_lookup_requires_name():
    geocoder, _ = _geocoder({})
    with pytest.raises(InvalidArgument):
        geocoder.lookup("   ")


def test_lookup_result_with_unknown_zone_is_upstream_error():
    payload = {"results": [{"name": "Olympus", "latitude": 18.6, "longitude": -133.8, "timezone": "Mars/Olympus"}]}
    geocoder, _ = _geocoder(payload)
    with pytest.raises(UpstreamDataUnavailable):
        geocoder.lookup("Olympus")
