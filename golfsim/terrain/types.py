"""Terrain classification and wind history record types."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from golfsim.physics.wind import TerrainParameters


class LandUseType(Enum):
    """Surface classification around a course location."""
    WATER = "water"
    COASTAL = "coastal"
    GRASSLAND = "grassland"
    FOREST = "forest"
    SUBURBAN = "suburban"
    URBAN = "urban"
    INDUSTRIAL = "industrial"
    MOUNTAIN = "mountain"
    UNKNOWN = "unknown"


@dataclass
class TerrainAnalysis:
    """Result of analysing the terrain around a location."""
    parameters: TerrainParameters
    land_use: LandUseType = LandUseType.UNKNOWN
    elevation: float = 0.0              # m above sea level
    roughness_variation: float = 0.0    # m, elevation range in the sample ring
    is_complex: bool = False


@dataclass(frozen=True)
class WindPattern:
    """One recorded wind sample. Immutable once stored."""
    speed: float            # m/s
    direction: float        # deg, direction the wind blows from
    gust_speed: float       # m/s
    temperature: float      # deg C
    pressure: float         # hPa
    timestamp: datetime     # naive UTC


@dataclass
class WindStatistics:
    """Summary of the wind history at a location."""
    mean_speed: float
    max_speed: float
    speed_variation: float          # population std of speed, m/s
    prevailing_direction: float     # circular mean, deg in [0, 360)
    direction_variation: float      # circular std, deg
    gust_factor: float              # mean gust / mean speed
    turbulence_intensity: float     # std speed / mean speed
    sample_count: int
