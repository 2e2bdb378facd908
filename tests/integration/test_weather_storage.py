"""Integration tests for the SQLAlchemy weather store."""

import threading
from datetime import timedelta

import pytest

from golfsim.exceptions import StorageUnavailableError
from golfsim.terrain.analyzer import derive_parameters
from golfsim.terrain.types import LandUseType, TerrainAnalysis
from golfsim.weather.storage import WeatherStorage, haversine_km

LAT, LON = 56.3433, -2.8022


class TestLifecycle:

    def test_use_before_initialize(self, weather):
        store = WeatherStorage("sqlite:///:memory:")
        with pytest.raises(StorageUnavailableError):
            store.get_weather_data(LAT, LON)

    def test_unopenable_database(self, tmp_path):
        store = WeatherStorage(f"sqlite:///{tmp_path}/missing/dir/weather.db")
        with pytest.raises(StorageUnavailableError):
            store.initialize()

    def test_context_manager(self, tmp_path, weather):
        url = f"sqlite:///{tmp_path}/weather.db"
        with WeatherStorage(url) as store:
            assert store.is_initialized
            assert store.store_weather_data(LAT, LON, weather)
        assert not store.is_initialized

        with WeatherStorage(url) as reopened:
            assert reopened.get_weather_data(LAT, LON) is not None


class TestObservations:

    def test_roundtrip(self, storage, weather):
        assert storage.store_weather_data(LAT, LON, weather)
        stored = storage.get_weather_data(LAT, LON)
        assert stored == weather

    def test_same_bin_lookup(self, storage, weather):
        storage.store_weather_data(LAT, LON, weather)
        assert storage.get_weather_data(LAT + 0.0001, LON - 0.0001) is not None
        assert storage.get_weather_data(LAT + 0.01, LON) is None

    def test_bin_edge(self, storage, weather):
        # bin 56343 covers latitudes from about 56.3425 to 56.3435
        storage.store_weather_data(LAT, LON, weather)
        assert storage.get_weather_data(LAT - 0.0004, LON) is not None
        assert storage.get_weather_data(LAT + 0.0004, LON) is None
        assert storage.location_bin(LAT - 0.0004, LON) == (56343, -2802)
        assert storage.location_bin(LAT + 0.0004, LON) == (56344, -2802)

    def test_invalid_rejected(self, storage, weather_factory):
        assert not storage.store_weather_data(LAT, LON, weather_factory(temperature=70.0))
        assert storage.get_weather_data(LAT, LON) is None

    def test_upsert_same_timestamp(self, storage, weather_factory, now):
        storage.store_weather_data(LAT, LON, weather_factory(temperature=10.0))
        storage.store_weather_data(LAT, LON, weather_factory(temperature=12.0))
        assert storage.get_weather_data(LAT, LON).temperature == 12.0
        assert storage.get_historical_stats(LAT, LON, now.month).sample_count == 1

    def test_latest_returned(self, storage, hourly_weather, weather_factory, now):
        for i, obs in enumerate(hourly_weather(3)):
            storage.store_weather_data(LAT, LON, weather_factory(temperature=float(i), timestamp=obs.timestamp))
        assert storage.get_weather_data(LAT, LON).temperature == 2.0

    def test_has_recent_data(self, storage, weather, now):
        storage.store_weather_data(LAT, LON, weather)
        assert storage.has_recent_data(LAT, LON, 60, now=now + timedelta(minutes=30))
        assert not storage.has_recent_data(LAT, LON, 60, now=now + timedelta(minutes=61))
        assert not storage.has_recent_data(0.0, 0.0, 60, now=now)

    def test_clear_old_data(self, storage, hourly_weather, weather, now):
        for obs in hourly_weather(5):
            storage.store_weather_data(LAT, LON, obs)
        storage.store_typical_weather(LAT, LON, now.month, weather)

        deleted = storage.clear_old_data(now - timedelta(hours=2, minutes=30))
        assert deleted == 2
        assert storage.get_historical_stats(LAT, LON, now.month).sample_count == 3
        assert storage.get_typical_weather(LAT, LON, now.month) is not None

    def test_concurrent_writes(self, storage, weather_factory, now):
        def writer(offset):
            for i in range(10):
                ts = now - timedelta(minutes=offset * 10 + i)
                storage.store_weather_data(LAT, LON, weather_factory(timestamp=ts))

        threads = [threading.Thread(target=writer, args=(k,)) for k in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert storage.get_historical_stats(LAT, LON, now.month).sample_count == 40


class TestNearest:

    def test_haversine_one_degree_latitude(self):
        assert haversine_km(0.0, 0.0, 1.0, 0.0) == pytest.approx(111.19, rel=1e-3)

    def test_absent_beyond_limit(self, storage, weather):
        # ~22 km north
        storage.store_weather_data(LAT + 0.2, LON, weather)
        assert storage.get_nearest_weather_data(LAT, LON, 10.0) is None

    def test_closest_of_several(self, storage, weather_factory):
        storage.store_weather_data(LAT + 0.05, LON, weather_factory(temperature=1.0))   # ~5.6 km
        storage.store_weather_data(LAT + 0.02, LON, weather_factory(temperature=2.0))   # ~2.2 km
        storage.store_weather_data(LAT, LON + 0.12, weather_factory(temperature=3.0))   # ~7.4 km
        nearest = storage.get_nearest_weather_data(LAT, LON, 10.0)
        assert nearest.temperature == 2.0

    def test_strictly_within_limit(self, storage, weather):
        storage.store_weather_data(LAT + 0.05, LON, weather)
        distance = float(haversine_km(LAT, LON, LAT + 0.05, LON))
        assert storage.get_nearest_weather_data(LAT, LON, distance) is None
        assert storage.get_nearest_weather_data(LAT, LON, distance + 0.01) is not None

    def test_tie_goes_to_latest(self, storage, weather_factory, now):
        storage.store_weather_data(LAT + 0.02, LON, weather_factory(temperature=5.0, timestamp=now - timedelta(hours=3)))
        storage.store_weather_data(LAT + 0.02, LON, weather_factory(temperature=9.0, timestamp=now))
        assert storage.get_nearest_weather_data(LAT, LON).temperature == 9.0

    def test_stale_neighbour_skipped(self, storage, weather_factory, now):
        storage.store_weather_data(LAT + 0.01, LON, weather_factory(temperature=3.0, timestamp=now - timedelta(days=400)))
        storage.store_weather_data(LAT + 0.04, LON, weather_factory(temperature=8.0, timestamp=now - timedelta(minutes=20)))
        nearest = storage.get_nearest_weather_data(LAT, LON, 10.0, max_age_minutes=60, now=now)
        assert nearest.temperature == 8.0
        assert storage.get_nearest_weather_data(LAT, LON, 10.0).temperature == 3.0

    def test_only_stale_neighbours(self, storage, weather_factory, now):
        storage.store_weather_data(LAT + 0.01, LON, weather_factory(timestamp=now - timedelta(minutes=61)))
        assert storage.get_nearest_weather_data(LAT, LON, 10.0, max_age_minutes=60, now=now) is None
        assert storage.get_nearest_weather_data(LAT, LON, 10.0, max_age_minutes=90, now=now) is not None


class TestClimatology:

    def test_typical_roundtrip(self, storage, weather_factory):
        storage.store_typical_weather(LAT, LON, 3, weather_factory(temperature=7.0))
        storage.store_typical_weather(LAT, LON, 3, weather_factory(temperature=8.0))
        assert storage.get_typical_weather(LAT, LON, 3).temperature == 8.0
        assert storage.get_typical_weather(LAT, LON, 4) is None

    def test_default_month_is_current(self, storage, weather, monkeypatch, now):
        monkeypatch.setattr("golfsim.weather.storage.utcnow", lambda: now)
        storage.store_typical_weather(LAT, LON, now.month, weather)
        assert storage.get_typical_weather(LAT, LON) is not None

    @pytest.mark.parametrize("month", [0, 13])
    def test_invalid_month(self, storage, weather, month):
        with pytest.raises(ValueError):
            storage.store_typical_weather(LAT, LON, month, weather)
        with pytest.raises(ValueError):
            storage.get_typical_weather(LAT, LON, month)

    def test_historical_stats(self, storage, weather_factory, now):
        rows = [
            (10.0, 60.0, 1010.0, 2.0, 5.0),
            (14.0, 70.0, 1012.0, 4.0, 15.0),
            (18.0, 80.0, 1014.0, 6.0, 359.5),
            (22.0, 90.0, 1016.0, 8.0, 12.0),
        ]
        for i, (t, h, p, s, d) in enumerate(rows):
            storage.store_weather_data(LAT, LON, weather_factory(
                temperature=t, humidity=h, pressure=p, wind_speed=s, wind_direction=d,
                timestamp=now - timedelta(hours=i),
            ))

        stats = storage.get_historical_stats(LAT, LON, now.month)
        assert stats.avg_temperature == pytest.approx(16.0)
        assert stats.avg_humidity == pytest.approx(75.0)
        assert stats.avg_pressure == pytest.approx(1013.0)
        assert stats.avg_wind_speed == pytest.approx(5.0)
        assert len(stats.wind_direction_frequency) == 36
        assert stats.wind_direction_frequency[0] == 1
        assert stats.wind_direction_frequency[1] == 2
        assert stats.wind_direction_frequency[35] == 1
        assert sum(stats.wind_direction_frequency) == 4

    def test_historical_stats_absent(self, storage, now):
        assert storage.get_historical_stats(LAT, LON, now.month) is None


class TestTerrainCache:

    def test_roundtrip(self, storage):
        analysis = TerrainAnalysis(
            parameters=derive_parameters(LandUseType.MOUNTAIN, is_complex=True),
            land_use=LandUseType.MOUNTAIN,
            elevation=850.0,
            roughness_variation=240.0,
            is_complex=True,
        )
        assert storage.store_terrain_analysis(LAT, LON, analysis)
        assert storage.get_terrain_analysis(LAT, LON) == analysis
