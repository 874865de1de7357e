import datetime as dt
import math

import pandas as pd
import pytest

from goldenhour.core.models import Coordinate
from goldenhour.solar.golden_hour import UndefinedSolarEvent, compute_golden_hour
from goldenhour.solar.position import PvlibEphemeris


LONDON = Coordinate(latitude=51.5, longitude=-0.12, tz="Europe/London", name="London")


def test_london_midsummer_window():
    window = compute_golden_hour(LONDON, pd.Timestamp("2024-06-21T12:00:00Z"))
    hours = window.daylight / pd.Timedelta(hours=1)
    assert 16.3 < hours < 16.9
    assert window.morning_start.date() == dt.date(2024, 6, 21)
    assert 40.0 < window.morning_sun_azimuth < 70.0
    assert 290.0 < window.evening_sun_azimuth < 320.0
    # sun is high in the south around noon
    assert 150.0 < window.current_sun_azimuth < 210.0
    assert window.sun_altitude > 55.0


def test_altitude_near_horizon_at_sunrise():
    eph = PvlibEphemeris()
    window = compute_golden_hour(LONDON, pd.Timestamp("2024-06-21T12:00:00Z"), ephemeris=eph)
    at_sunrise = eph.sun_position(window.morning_start, LONDON)
    assert -1.5 < math.degrees(at_sunrise.altitude_rad) < 0.5


def test_altitude_negative_at_local_midnight():
    window = compute_golden_hour(LONDON, pd.Timestamp("2024-06-21T00:00:00+01:00"))
    assert window.sun_altitude < 0.0
    assert window.morning_start.date() == dt.date(2024, 6, 21)


def test_polar_day_has_no_golden_hour():
    longyearbyen = Coordinate(latitude=78.22, longitude=15.65, tz="Arctic/Longyearbyen")
    with pytest.raises(UndefinedSolarEvent):
        compute_golden_hour(longyearbyen, pd.Timestamp("2024-06-21T12:00:00Z"))


def test_arctic_winter_windows_do_not_overlap():
    rovaniemi = Coordinate(latitude=67.0, longitude=25.0, tz="Europe/Helsinki")
    window = compute_golden_hour(rovaniemi, pd.Timestamp("2024-12-15T10:00:00Z"))
    assert window.daylight < pd.Timedelta(hours=2)
    assert window.morning_start < window.morning_end <= window.evening_start < window.evening_end
    assert window.morning_end == window.evening_start
