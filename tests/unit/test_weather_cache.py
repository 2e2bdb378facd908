"""Tests for the in-process weather cache."""

from datetime import timedelta

from golfsim.weather.cache import WeatherCache
from golfsim.weather.environment import location_bin
from golfsim.weather.storage import WeatherStorage


LAT, LON = 56.3433, -2.8022


class TestLocationBin:

    def test_integer_bin(self):
        assert location_bin(LAT, LON) == (56343, -2802)
        assert location_bin(LAT, LON, precision=2) == (5634, -280)

    def test_nearby_points_share_bin(self):
        assert location_bin(LAT, LON) == location_bin(LAT + 0.0001, LON - 0.0001)

    def test_distant_points_differ(self):
        assert location_bin(LAT, LON) != location_bin(LAT + 0.01, LON)

    def test_cache_and_store_agree_on_half_step_edges(self):
        cache = WeatherCache(precision=3)
        store = WeatherStorage("sqlite:///:memory:", precision=3)
        for lat, lon in [(LAT + 0.0002, LON - 0.0003), (56.3425, -2.8015), (0.0005, 0.0015),
                         (-33.8675, 151.2075), (1.0005, -179.9995)]:
            assert cache._key(lat, lon) == store.location_bin(lat, lon) == location_bin(lat, lon)


class TestWeatherCache:

    def test_miss_then_hit(self, weather, now):
        cache = WeatherCache()
        assert cache.get(LAT, LON, now) is None
        assert cache.refresh(LAT, LON, weather, now)
        assert cache.get(LAT, LON, now) == weather

    def test_expires_after_ttl(self, weather, now):
        cache = WeatherCache(ttl_seconds=900)
        cache.refresh(LAT, LON, weather, now)
        assert cache.get(LAT, LON, now + timedelta(seconds=600)) is not None
        assert cache.get(LAT, LON, now + timedelta(seconds=901)) is None

    def test_invalid_observation_not_served(self, weather_factory, now):
        cache = WeatherCache()
        assert not cache.refresh(LAT, LON, weather_factory(pressure=500.0), now)
        assert cache.get(LAT, LON, now) is None

    def test_invalidate(self, weather, now):
        cache = WeatherCache()
        cache.refresh(LAT, LON, weather, now)
        assert cache.invalidate(LAT, LON)
        assert cache.get(LAT, LON, now) is None
        assert not cache.invalidate(0.0, 0.0)

    def test_lru_eviction(self, weather, now):
        cache = WeatherCache(max_entries=2)
        cache.refresh(1.0, 1.0, weather, now)
        cache.refresh(2.0, 2.0, weather, now)
        cache.get(1.0, 1.0, now)
        cache.refresh(3.0, 3.0, weather, now)

        assert len(cache) == 2
        assert cache.get(2.0, 2.0, now) is None
        assert cache.get(1.0, 1.0, now) is not None
        assert cache.get_stats()["evictions"] == 1

    def test_cleanup_expired(self, weather, now):
        cache = WeatherCache(ttl_seconds=60)
        cache.refresh(1.0, 1.0, weather, now)
        cache.refresh(2.0, 2.0, weather, now + timedelta(seconds=120))
        removed = cache.cleanup_expired(now + timedelta(seconds=130))
        assert removed == 1
        assert len(cache) == 1

    def test_stats(self, weather, now):
        cache = WeatherCache()
        cache.get(LAT, LON, now)
        cache.refresh(LAT, LON, weather, now)
        cache.get(LAT, LON, now)
        stats = cache.get_stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_rate"] == 50.0
