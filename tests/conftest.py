"""
Shared pytest fixtures for golfsim tests.

Environment overrides must be set before golfsim is imported anywhere so the
cached Settings instance sees them.
"""

import os
from datetime import datetime, timedelta

import pytest

# ---------------------------------------------------------------------------
# Section 1: Environment setup (before ANY golfsim imports)
# ---------------------------------------------------------------------------
os.environ.setdefault("GOLFSIM_DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("GOLFSIM_DB_ECHO", "false")
os.environ.setdefault("GOLFSIM_OFFLINE", "false")
os.environ.setdefault("GOLFSIM_LOG_LEVEL", "warning")

from golfsim.terrain.analyzer import TerrainAnalyzer  # noqa: E402
from golfsim.terrain.sources import StaticTerrainSource  # noqa: E402
from golfsim.terrain.types import LandUseType  # noqa: E402
from golfsim.weather.environment import WeatherData  # noqa: E402
from golfsim.weather.storage import WeatherStorage  # noqa: E402

# St Andrews, Old Course
COURSE_LAT = 56.3433
COURSE_LON = -2.8022

NOW = datetime(2026, 7, 15, 14, 0, 0)


# ---------------------------------------------------------------------------
# Section 2: Storage fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def storage():
    """Fresh in-memory weather store."""
    store = WeatherStorage("sqlite:///:memory:")
    store.initialize()
    yield store
    store.close()


@pytest.fixture
def analyzer(storage):
    """Terrain analyzer over flat grassland."""
    return TerrainAnalyzer(storage, StaticTerrainSource(LandUseType.GRASSLAND, elevation=20.0))


# ---------------------------------------------------------------------------
# Section 3: Weather fixtures
# ---------------------------------------------------------------------------


def make_weather(**overrides) -> WeatherData:
    """Valid mild summer observation with field overrides."""
    values = dict(
        temperature=18.0,
        humidity=65.0,
        pressure=1013.0,
        wind_speed=5.0,
        wind_direction=240.0,
        precipitation=0.0,
        altitude=10.0,
        timestamp=NOW,
    )
    values.update(overrides)
    return WeatherData(**values)


@pytest.fixture
def weather():
    return make_weather()


@pytest.fixture
def standard_weather():
    """ISA sea level, dry, calm."""
    return make_weather(
        temperature=15.0, humidity=0.0, pressure=1013.25,
        wind_speed=0.0, wind_direction=0.0, altitude=0.0,
    )


@pytest.fixture
def hourly_weather():
    """Factory for observations spaced one hour apart ending at NOW."""
    def _build(count, **overrides):
        return [
            make_weather(timestamp=NOW - timedelta(hours=count - 1 - i), **overrides)
            for i in range(count)
        ]
    return _build


@pytest.fixture
def weather_factory():
    """make_weather as a fixture, for tests that need several observations."""
    return make_weather


@pytest.fixture
def now():
    return NOW
