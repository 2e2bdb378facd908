"""
Shot service: the caller-facing entry point to golfsim.

Wires the weather cache, the durable store, terrain analysis and the
trajectory integrator together. The service never performs network I/O
itself; live observations come from an injected ``fetcher`` callable.

Current weather lookup order:
1. fresh in-process cache entry
2. stored observation for the location bin, if recent
3. fetcher (skipped when offline), result stored and cached
4. nearest stored observation within nearest_max_distance_km, taken in the
   last nearest_max_age_minutes
5. typical weather for the current month
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from golfsim.config import Settings, get_settings
from golfsim.exceptions import WeatherValidationError
from golfsim.physics.trajectory import (
    LaunchConditions,
    TrajectoryIntegrator,
    TrajectoryResult,
    calculate_trajectory,
)
from golfsim.physics.wind import WindModel, WindProfile
from golfsim.terrain.analyzer import TerrainAnalyzer, WindPatternSequence
from golfsim.terrain.types import TerrainAnalysis, WindStatistics
from golfsim.weather.cache import WeatherCache
from golfsim.weather.environment import (
    ALTITUDE_RANGE_M,
    StandardAtmosphere,
    WeatherData,
    calculate_wind_effect,
    utcnow,
    validate_weather,
)
from golfsim.weather.storage import WeatherStats, WeatherStorage

logger = logging.getLogger(__name__)

WeatherFetcher = Callable[[float, float], WeatherData]


@dataclass
class SimulationResult:
    """A shot simulated against the conditions at a course location."""
    trajectory: TrajectoryResult
    weather: WeatherData
    terrain: TerrainAnalysis
    profile: WindProfile
    carry_effect_percent: float
    weather_source: str


class ShotService:
    """
    Weather-aware shot simulation for course locations.

    Usage:
        storage = WeatherStorage()
        storage.initialize()
        service = ShotService(storage, fetcher=my_weather_client.current)
        result = service.simulate_at(56.35, -2.82, 70.0, 11.0, 2700)
    """

    def __init__(
        self,
        storage: WeatherStorage,
        analyzer: Optional[TerrainAnalyzer] = None,
        cache: Optional[WeatherCache] = None,
        fetcher: Optional[WeatherFetcher] = None,
        offline: Optional[bool] = None,
        settings: Optional[Settings] = None
    ):
        self.settings = settings or get_settings()
        self.storage = storage
        self.analyzer = analyzer or TerrainAnalyzer(storage)
        self.cache = cache or WeatherCache(
            max_entries=self.settings.weather_cache_max_entries,
            ttl_seconds=self.settings.weather_cache_ttl_seconds,
            precision=self.settings.location_bin_precision,
        )
        self.fetcher = fetcher
        self.offline = self.settings.offline if offline is None else offline
        self.last_weather_source: Optional[str] = None

    # ------------------------------------------------------------------
    # Weather
    # ------------------------------------------------------------------

    def _fetch(self, lat: float, lon: float) -> Optional[WeatherData]:
        try:
            data = self.fetcher(lat, lon)
            validate_weather(data)
        except WeatherValidationError as e:
            logger.warning(f"Fetched weather for ({lat:.4f}, {lon:.4f}) rejected: {e}")
            return None
        except Exception as e:
            logger.warning(f"Weather fetch failed for ({lat:.4f}, {lon:.4f}): {e}")
            return None

        if not self.storage.store_weather_data(lat, lon, data):
            logger.warning(f"Fetched weather for ({lat:.4f}, {lon:.4f}) was not persisted")
        self.analyzer.store_wind_pattern(lat, lon, data)
        return data

    def get_current_weather(
        self,
        lat: float,
        lon: float,
        now: Optional[datetime] = None
    ) -> Optional[WeatherData]:
        """Best available current weather for a location, or None."""
        now = now or utcnow()

        cached = self.cache.get(lat, lon, now)
        if cached is not None:
            self.last_weather_source = "cache"
            return cached

        if self.storage.has_recent_data(lat, lon, self.settings.recent_data_max_age_minutes, now):
            stored = self.storage.get_weather_data(lat, lon)
            if stored is not None and stored.is_valid():
                self.cache.refresh(lat, lon, stored, now)
                self.last_weather_source = "storage"
                return stored

        if self.fetcher is not None and not self.offline:
            fetched = self._fetch(lat, lon)
            if fetched is not None:
                self.cache.refresh(lat, lon, fetched, now)
                self.last_weather_source = "fetch"
                return fetched

        nearest = self.storage.get_nearest_weather_data(
            lat,
            lon,
            self.settings.nearest_max_distance_km,
            max_age_minutes=self.settings.nearest_max_age_minutes,
            now=now,
        )
        if nearest is not None:
            self.last_weather_source = "nearest"
            return nearest

        typical = self.storage.get_typical_weather(lat, lon, now.month)
        if typical is not None:
            self.last_weather_source = "typical"
            return typical

        logger.warning(f"No weather available for ({lat:.4f}, {lon:.4f})")
        self.last_weather_source = None
        return None

    def get_typical_weather(self, lat: float, lon: float, month: Optional[int] = None) -> Optional[WeatherData]:
        return self.storage.get_typical_weather(lat, lon, month)

    def get_historical_stats(self, lat: float, lon: float, month: Optional[int] = None) -> Optional[WeatherStats]:
        return self.storage.get_historical_stats(lat, lon, month or utcnow().month)

    def get_wind_stats(
        self,
        lat: float,
        lon: float,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> Optional[WindStatistics]:
        return self.analyzer.get_wind_stats(lat, lon, start, end)

    def get_typical_patterns(self, lat: float, lon: float, hour_of_day: int) -> WindPatternSequence:
        return self.analyzer.get_typical_patterns(lat, lon, hour_of_day)

    # ------------------------------------------------------------------
    # Trajectory
    # ------------------------------------------------------------------

    def calculate_trajectory(
        self,
        initial_speed: float,
        launch_angle: float,
        spin_rate: float,
        wind_speed: float = 0.0,
        wind_angle: float = 0.0,
        **kwargs
    ) -> TrajectoryResult:
        kwargs.setdefault("max_iterations", self.settings.integrator_max_iterations)
        return calculate_trajectory(
            initial_speed, launch_angle, spin_rate, wind_speed, wind_angle, **kwargs
        )

    def simulate_at(
        self,
        lat: float,
        lon: float,
        initial_speed: float,
        launch_angle: float,
        spin_rate: float,
        target_bearing_deg: float = 0.0,
        spin_axis_tilt: float = 0.0,
        now: Optional[datetime] = None
    ) -> SimulationResult:
        """
        Simulate a shot from a course location toward ``target_bearing_deg``.

        Falls back to a calm standard atmosphere at the terrain elevation
        when no weather is available.
        """
        terrain = self.analyzer.analyze_terrain(lat, lon)
        weather = self.get_current_weather(lat, lon, now)
        source = self.last_weather_source
        if weather is None:
            lo, hi = ALTITUDE_RANGE_M
            altitude = min(hi, max(lo, terrain.elevation))
            weather = StandardAtmosphere().weather_at(altitude)
            source = "standard_atmosphere"

        profile = self.analyzer.recommend_profile(terrain, weather, target_bearing_deg)
        model = WindModel(profile)
        launch = LaunchConditions(
            initial_speed=initial_speed,
            launch_angle=launch_angle,
            spin_rate=spin_rate,
            wind_speed=profile.reference_speed,
            wind_angle=profile.direction,
            spin_axis_tilt=spin_axis_tilt,
        )
        integrator = TrajectoryIntegrator(
            wind_model=model,
            weather=weather,
            max_iterations=self.settings.integrator_max_iterations,
        )
        trajectory = integrator.integrate(launch)
        effect = model.carry_effect_percent(
            profile.reference_speed,
            profile.direction,
            density_factor=calculate_wind_effect(weather),
        )
        return SimulationResult(
            trajectory=trajectory,
            weather=weather,
            terrain=terrain,
            profile=profile,
            carry_effect_percent=effect,
            weather_source=source,
        )
