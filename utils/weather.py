"""Simulated weather reports for farms.

There is no live weather provider. The two demo farms carry fixed reports;
every other farm gets a report generated from a random generator seeded with
the farm identifier, so the same farm always shows the same weather. Reports
are cached per farm in a ``TTLCache``.
"""

import logging
import random
from typing import Any

from utils.cache import TTLCache

logger = logging.getLogger(__name__)

FORECAST_DAYS = ("Today", "Tomorrow", "Wednesday", "Thursday", "Friday")
WIND_DIRECTIONS = ("N", "NE", "E", "SE", "S", "SW", "W", "NW")

# condition -> (icon, typical precipitation chance %)
CONDITIONS: dict[str, tuple[str, int]] = {
    "Sunny": ("sun", 0),
    "Partly Cloudy": ("cloud-sun", 10),
    "Cloudy": ("cloud", 30),
    "Scattered Showers": ("cloud-drizzle", 40),
    "Rain": ("cloud-rain", 80),
}


def _day(day, high, low, condition, precipitation):
    return {
        "day": day,
        "high": high,
        "low": low,
        "condition": condition,
        "icon": CONDITIONS[condition][0],
        "precipitation": precipitation,
    }


_FIXED_REPORTS: dict[str, dict[str, Any]] = {
    "Green Valley Farm": {
        "current": {
            "temperature": 72, "feels_like": 74, "humidity": 65,
            "wind_speed": 8, "wind_direction": "NW", "precipitation": 0,
            "condition": "Partly Cloudy", "icon": "cloud-sun",
        },
        "forecast": [
            _day("Today", 74, 62, "Partly Cloudy", 10),
            _day("Tomorrow", 78, 64, "Sunny", 0),
            _day("Wednesday", 80, 66, "Sunny", 0),
            _day("Thursday", 76, 65, "Cloudy", 30),
            _day("Friday", 72, 63, "Rain", 80),
        ],
        "alerts": [
            {"type": "warning",
             "message": "Light frost possible Wednesday night - protect sensitive crops"},
        ],
    },
    "Riverside Fields": {
        "current": {
            "temperature": 76, "feels_like": 79, "humidity": 70,
            "wind_speed": 5, "wind_direction": "SE", "precipitation": 40,
            "condition": "Scattered Showers", "icon": "cloud-drizzle",
        },
        "forecast": [
            _day("Today", 76, 65, "Scattered Showers", 40),
            _day("Tomorrow", 75, 66, "Partly Cloudy", 20),
            _day("Wednesday", 79, 68, "Sunny", 0),
            _day("Thursday", 82, 69, "Sunny", 0),
            _day("Friday", 80, 67, "Partly Cloudy", 10),
        ],
        "alerts": [
            {"type": "info", "message": "Ideal conditions for planting mid-week"},
            {"type": "warning",
             "message": "High humidity may increase risk of fungal diseases"},
        ],
    },
}

# Demo farm identifiers in a freshly seeded SQLite store
_FIXED_IDS = {"1": "Green Valley Farm", "2": "Riverside Fields"}

_weather_cache: TTLCache = TTLCache(maxsize=256, ttl_seconds=600)


def configure_cache(ttl_seconds: float) -> None:
    """Replace the report cache with one using *ttl_seconds*."""
    global _weather_cache
    _weather_cache = TTLCache(maxsize=256, ttl_seconds=ttl_seconds)


def cache_stats() -> dict[str, int]:
    return _weather_cache.stats()


def _generated_report(farm_id: Any) -> dict[str, Any]:
    rng = random.Random(f"cropkeeper-weather-{farm_id}")
    names = list(CONDITIONS)

    forecast = []
    for day in FORECAST_DAYS:
        condition = rng.choice(names)
        high = rng.randint(60, 88)
        low = high - rng.randint(8, 14)
        base = CONDITIONS[condition][1]
        precipitation = min(100, base + rng.choice((0, 0, 10)))
        forecast.append(_day(day, high, low, condition, precipitation))

    today = forecast[0]
    temperature = rng.randint(today["low"], today["high"])
    humidity = rng.randint(35, 85)
    current = {
        "temperature": temperature,
        "feels_like": temperature + (2 if humidity > 60 else 0),
        "humidity": humidity,
        "wind_speed": rng.randint(0, 20),
        "wind_direction": rng.choice(WIND_DIRECTIONS),
        "precipitation": today["precipitation"],
        "condition": today["condition"],
        "icon": today["icon"],
    }
    return {"current": current, "forecast": forecast, "alerts": _alerts(current, forecast)}


def _alerts(current: dict[str, Any], forecast: list[dict[str, Any]]) -> list[dict[str, str]]:
    alerts: list[dict[str, str]] = []
    for day in forecast:
        if day["low"] <= 50:
            alerts.append({
                "type": "warning",
                "message": f"Light frost possible {day['day']} night - protect sensitive crops",
            })
            break
    if current["humidity"] >= 70:
        alerts.append({
            "type": "warning",
            "message": "High humidity may increase risk of fungal diseases",
        })
    dry_days = sum(1 for day in forecast if day["precipitation"] == 0)
    if dry_days >= 3:
        alerts.append({"type": "info", "message": "Ideal conditions for planting mid-week"})
    return alerts


def _build_report(farm: dict[str, Any]) -> dict[str, Any]:
    farm_id = farm.get("id")
    fixed_name = _FIXED_IDS.get(str(farm_id))
    if fixed_name is None and farm.get("name") in _FIXED_REPORTS:
        fixed_name = farm["name"]
    if fixed_name is not None:
        source = _FIXED_REPORTS[fixed_name]
        report = {
            "current": dict(source["current"]),
            "forecast": [dict(d) for d in source["forecast"]],
            "alerts": [dict(a) for a in source["alerts"]],
        }
    else:
        report = _generated_report(farm_id)
    logger.debug("weather report built farm_id=%s fixed=%s", farm_id, fixed_name is not None)
    return {
        "farm_id": farm_id,
        "farm_name": farm.get("name") or "Unknown Farm",
        "location": farm.get("location") or "",
        **report,
    }


def get_weather(farm: dict[str, Any]) -> dict[str, Any]:
    """Return the weather report for *farm*.

    Args:
        farm: Farm record (needs ``id``; ``name``/``location`` are echoed)

    Returns:
        Dict with ``farm_id``, ``farm_name``, ``location``, ``current``
        (temperature, feels_like, humidity, wind_speed, wind_direction,
        precipitation, condition, icon), a 5-day ``forecast`` and ``alerts``.
    """
    key = (str(farm.get("id")), farm.get("name"), farm.get("location"))
    return _weather_cache.get_or_set(key, lambda: _build_report(farm))
