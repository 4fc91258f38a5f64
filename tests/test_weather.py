"""
Tests for utils/weather.py

Fixed reports for the demo farms, deterministic generated reports for every
other farm, and per-farm caching.
"""
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from utils import weather
from utils.weather import FORECAST_DAYS, get_weather


@pytest.fixture(autouse=True)
def fresh_cache():
    weather.configure_cache(600)
    yield
    weather.configure_cache(600)


class TestFixedReports:
    def test_demo_farm_by_id(self):
        report = get_weather({"id": 1, "name": "Green Valley Farm", "location": "North County"})
        assert report["farm_id"] == 1
        assert report["farm_name"] == "Green Valley Farm"
        assert report["current"]["temperature"] == 72
        assert report["current"]["condition"] == "Partly Cloudy"
        assert len(report["alerts"]) == 1

    def test_demo_farm_by_name(self):
        report = get_weather({"id": 1699999999999, "name": "Riverside Fields",
                              "location": "Eastern Plains"})
        assert report["current"]["temperature"] == 76
        assert report["current"]["wind_direction"] == "SE"
        assert len(report["alerts"]) == 2

    def test_fixed_report_not_shared(self):
        first = get_weather({"id": 1, "name": "Green Valley Farm"})
        first["forecast"][0]["high"] = -100
        weather.configure_cache(600)
        second = get_weather({"id": 1, "name": "Green Valley Farm"})
        assert second["forecast"][0]["high"] == 74


class TestGeneratedReports:
    def test_shape(self):
        report = get_weather({"id": 42, "name": "Hill Farm", "location": "Ridge"})
        assert report["farm_name"] == "Hill Farm"
        assert report["location"] == "Ridge"
        assert [d["day"] for d in report["forecast"]] == list(FORECAST_DAYS)
        for day in report["forecast"]:
            assert day["low"] < day["high"]
            assert 0 <= day["precipitation"] <= 100
            assert day["condition"] in weather.CONDITIONS
        current = report["current"]
        assert current["wind_direction"] in weather.WIND_DIRECTIONS
        assert current["condition"] == report["forecast"][0]["condition"]
        for alert in report["alerts"]:
            assert alert["type"] in ("info", "warning")

    def test_deterministic_per_farm(self):
        first = get_weather({"id": 42, "name": "Hill Farm"})
        weather.configure_cache(600)
        second = get_weather({"id": 42, "name": "Hill Farm"})
        assert first == second

    def test_missing_name(self):
        assert get_weather({"id": 7})["farm_name"] == "Unknown Farm"


class TestCaching:
    def test_second_call_hits_cache(self):
        farm = {"id": 3, "name": "Creek Farm"}
        get_weather(farm)
        get_weather(farm)
        stats = weather.cache_stats()
        assert stats["misses"] == 1
        assert stats["hits"] == 1
        assert stats["size"] == 1

    def test_renamed_farm_gets_new_entry(self):
        get_weather({"id": 3, "name": "Creek Farm"})
        report = get_weather({"id": 3, "name": "Creek Farm East"})
        assert report["farm_name"] == "Creek Farm East"
        assert weather.cache_stats()["size"] == 2
