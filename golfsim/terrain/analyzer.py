"""
Terrain analysis and wind history for course locations.

TerrainAnalyzer turns a location into the surface parameters that shape the
wind near the ground, recommends a wind profile for a shot, and summarizes
the wind history recorded for the location.

Terrain classification:
- land use from a TerrainSource (center point)
- elevation range over a ring of 8 points at terrain_sample_radius_m
- "complex" terrain when that range exceeds complex_terrain_threshold_m

Complex terrain gets a rougher profile and directional shear (veer).
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Dict, Iterator, List, Optional

import numpy as np
from scipy.stats import circmean, circstd

from golfsim.config import get_settings
from golfsim.physics.wind import ProfileLaw, TerrainParameters, WindProfile
from golfsim.terrain.sources import LandMaskTerrainSource, TerrainSource
from golfsim.terrain.types import LandUseType, TerrainAnalysis, WindPattern, WindStatistics
from golfsim.weather.environment import WeatherData, utcnow, validate_weather

logger = logging.getLogger(__name__)

CALM_WIND_SPEED = 0.5           # m/s, below this the profile is constant
GUST_FACTOR_THRESHOLD = 1.5
COMPLEX_ROUGHNESS_MULTIPLIER = 2.0
COMPLEX_EXPONENT_INCREMENT = 0.04
COMPLEX_VEER_DEG_PER_100M = 5.0
METERS_PER_DEG_LAT = 111000.0

# z0 (m), power-law exponent, reference height (m), exposure factor
TERRAIN_PRESETS: Dict[LandUseType, TerrainParameters] = {
    LandUseType.WATER: TerrainParameters(0.0002, 0.10, 10.0, 1.2),
    LandUseType.COASTAL: TerrainParameters(0.005, 0.11, 10.0, 1.1),
    LandUseType.GRASSLAND: TerrainParameters(0.03, 0.143, 10.0, 1.0),
    LandUseType.FOREST: TerrainParameters(0.8, 0.28, 10.0, 0.75),
    LandUseType.SUBURBAN: TerrainParameters(0.3, 0.22, 10.0, 0.8),
    LandUseType.URBAN: TerrainParameters(1.0, 0.33, 10.0, 0.7),
    LandUseType.INDUSTRIAL: TerrainParameters(0.5, 0.27, 10.0, 0.75),
    LandUseType.MOUNTAIN: TerrainParameters(0.4, 0.25, 10.0, 0.9),
    LandUseType.UNKNOWN: TerrainParameters(0.03, 0.143, 10.0, 1.0),
}

POWER_LAW_SURFACES = {
    LandUseType.FOREST,
    LandUseType.URBAN,
    LandUseType.INDUSTRIAL,
    LandUseType.MOUNTAIN,
}


def derive_parameters(land_use: LandUseType, is_complex: bool = False) -> TerrainParameters:
    """Wind profile parameters for a surface type."""
    preset = TERRAIN_PRESETS.get(land_use, TERRAIN_PRESETS[LandUseType.UNKNOWN])
    if not is_complex:
        return TerrainParameters(
            preset.roughness_length,
            preset.power_law_exponent,
            preset.reference_height,
            preset.exposure_factor,
        )
    return TerrainParameters(
        roughness_length=preset.roughness_length * COMPLEX_ROUGHNESS_MULTIPLIER,
        power_law_exponent=preset.power_law_exponent + COMPLEX_EXPONENT_INCREMENT,
        reference_height=preset.reference_height,
        exposure_factor=preset.exposure_factor,
        veer_deg_per_100m=COMPLEX_VEER_DEG_PER_100M,
    )


def unknown_terrain() -> TerrainAnalysis:
    return TerrainAnalysis(parameters=derive_parameters(LandUseType.UNKNOWN))


def shot_relative_direction(wind_from_deg: float, target_bearing_deg: float) -> float:
    """
    Convert a meteorological wind direction to the shot frame.

    Returns the angle the wind blows toward, measured counter-clockwise from
    the target line: 0 tailwind, 90 right-to-left, 180 headwind.
    """
    blowing_toward = wind_from_deg + 180.0
    return (target_bearing_deg - blowing_toward) % 360.0


class WindPatternSequence:
    """
    Lazy, restartable view of the wind samples recorded at one hour of day.

    Each iteration re-reads storage, so samples recorded in the meantime
    show up on the next pass.
    """

    def __init__(self, storage, lat: float, lon: float, hour_of_day: int):
        self._storage = storage
        self.lat = lat
        self.lon = lon
        self.hour_of_day = hour_of_day

    def __iter__(self) -> Iterator[WindPattern]:
        return self._storage.iter_wind_patterns_by_hour(self.lat, self.lon, self.hour_of_day)


class TerrainAnalyzer:
    """
    Derives wind-profile parameters and wind statistics for a location.

    Usage:
        analyzer = TerrainAnalyzer(storage, StaticTerrainSource(LandUseType.GRASSLAND))
        terrain = analyzer.analyze_terrain(56.35, -2.82)
        profile = analyzer.recommend_profile(terrain, weather, target_bearing_deg=270)
    """

    def __init__(
        self,
        storage,
        source: Optional[TerrainSource] = None,
        sample_radius_m: Optional[float] = None,
        complex_threshold_m: Optional[float] = None,
        min_samples: Optional[int] = None
    ):
        settings = get_settings()
        self.storage = storage
        self.source = source or LandMaskTerrainSource()
        self.sample_radius_m = (
            settings.terrain_sample_radius_m if sample_radius_m is None else sample_radius_m
        )
        self.complex_threshold_m = (
            settings.complex_terrain_threshold_m if complex_threshold_m is None else complex_threshold_m
        )
        self.min_samples = settings.min_wind_samples if min_samples is None else min_samples
        self.history_hours = settings.wind_history_hours

    # ------------------------------------------------------------------
    # Terrain
    # ------------------------------------------------------------------

    def _sample(self, lat: float, lon: float):
        try:
            return self.source.sample(lat, lon)
        except Exception as e:
            logger.warning(f"Terrain source failed at ({lat:.4f}, {lon:.4f}): {e}")
            return None

    def _ring(self, lat: float, lon: float) -> List[tuple]:
        dlat = self.sample_radius_m / METERS_PER_DEG_LAT
        dlon = dlat / max(math.cos(math.radians(lat)), 0.01)
        points = []
        for k in range(8):
            bearing = math.radians(k * 45.0)
            points.append((lat + dlat * math.cos(bearing), lon + dlon * math.sin(bearing)))
        return points

    def analyze_terrain(self, lat: float, lon: float, refresh: bool = False) -> TerrainAnalysis:
        """
        Classify the terrain at a location.

        A stored analysis is reused unless ``refresh`` is set. When the
        provider has nothing for the center point the result is UNKNOWN
        terrain and is not cached.
        """
        if not refresh:
            cached = self.storage.get_terrain_analysis(lat, lon)
            if cached is not None:
                return cached

        center = self._sample(lat, lon)
        if center is None:
            logger.warning(f"No terrain data for ({lat:.4f}, {lon:.4f}), using UNKNOWN")
            return unknown_terrain()

        elevations = [center.elevation]
        for p_lat, p_lon in self._ring(lat, lon):
            sample = self._sample(p_lat, p_lon)
            if sample is not None:
                elevations.append(sample.elevation)

        variation = float(np.max(elevations) - np.min(elevations))
        is_complex = variation > self.complex_threshold_m

        analysis = TerrainAnalysis(
            parameters=derive_parameters(center.land_use, is_complex),
            land_use=center.land_use,
            elevation=center.elevation,
            roughness_variation=variation,
            is_complex=is_complex,
        )
        logger.debug(
            f"Terrain at ({lat:.4f}, {lon:.4f}): {center.land_use.value}, "
            f"elevation range {variation:.0f} m, complex={is_complex}"
        )
        self.storage.store_terrain_analysis(lat, lon, analysis)
        return analysis

    def derive_parameters(self, analysis: TerrainAnalysis) -> TerrainParameters:
        return derive_parameters(analysis.land_use, analysis.is_complex)

    def recommend_profile(
        self,
        terrain: TerrainAnalysis,
        weather: WeatherData,
        target_bearing_deg: float = 0.0
    ) -> WindProfile:
        """
        Wind profile for a shot played toward ``target_bearing_deg``.

        Raises:
            WeatherValidationError: if the weather is invalid
        """
        validate_weather(weather)

        if weather.wind_speed < CALM_WIND_SPEED:
            law = ProfileLaw.CONSTANT
        elif terrain.land_use in POWER_LAW_SURFACES:
            law = ProfileLaw.POWER_LAW
        else:
            law = ProfileLaw.LOGARITHMIC

        return WindProfile(
            reference_speed=weather.wind_speed,
            direction=shot_relative_direction(weather.wind_direction, target_bearing_deg),
            law=law,
            terrain=terrain.parameters,
        )

    # ------------------------------------------------------------------
    # Wind history
    # ------------------------------------------------------------------

    def store_wind_pattern(
        self,
        lat: float,
        lon: float,
        weather: WeatherData,
        gust_speed: Optional[float] = None
    ) -> bool:
        """Record the wind of a validated observation."""
        validate_weather(weather)
        pattern = WindPattern(
            speed=weather.wind_speed,
            direction=weather.wind_direction,
            gust_speed=weather.wind_speed if gust_speed is None else gust_speed,
            temperature=weather.temperature,
            pressure=weather.pressure,
            timestamp=weather.timestamp,
        )
        return self.storage.store_wind_pattern(lat, lon, pattern)

    def get_wind_stats(
        self,
        lat: float,
        lon: float,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> Optional[WindStatistics]:
        """
        Statistics over the samples in [start, end].

        Defaults to the last ``wind_history_hours``. Returns None with fewer
        than ``min_wind_samples`` samples.
        """
        end = end or utcnow()
        start = start or end - timedelta(hours=self.history_hours)
        patterns = self.storage.get_wind_patterns(lat, lon, start, end)
        if len(patterns) < self.min_samples:
            logger.debug(f"Only {len(patterns)} wind samples at ({lat:.4f}, {lon:.4f})")
            return None

        speeds = np.array([p.speed for p in patterns])
        gusts = np.array([p.gust_speed for p in patterns])
        directions = np.array([p.direction for p in patterns])

        mean_speed = float(speeds.mean())
        speed_std = float(speeds.std())
        if mean_speed > 0:
            gust_factor = float(gusts.mean()) / mean_speed
            turbulence = speed_std / mean_speed
        else:
            gust_factor = 1.0
            turbulence = 0.0

        if gust_factor > GUST_FACTOR_THRESHOLD:
            logger.info(f"Gusty wind at ({lat:.4f}, {lon:.4f}): gust factor {gust_factor:.2f}")

        return WindStatistics(
            mean_speed=mean_speed,
            max_speed=float(speeds.max()),
            speed_variation=speed_std,
            prevailing_direction=float(circmean(directions, high=360.0, low=0.0)) % 360.0,
            direction_variation=float(circstd(directions, high=360.0, low=0.0)),
            gust_factor=gust_factor,
            turbulence_intensity=turbulence,
            sample_count=len(patterns),
        )

    def get_typical_patterns(self, lat: float, lon: float, hour_of_day: int) -> WindPatternSequence:
        """All recorded samples at ``hour_of_day`` (0..23), oldest first."""
        if not isinstance(hour_of_day, int) or not 0 <= hour_of_day <= 23:
            raise ValueError(f"hour_of_day must be an integer in 0..23, got {hour_of_day}")
        return WindPatternSequence(self.storage, lat, lon, hour_of_day)
