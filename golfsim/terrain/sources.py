"""
Land-use and elevation providers for terrain analysis.

A provider answers one question: what is the surface at (lat, lon)? It may
return None when it has no data for the point. TerrainAnalyzer treats both
None and a raised exception as "unknown terrain".
"""

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional

from global_land_mask import globe

from golfsim.terrain.types import LandUseType

logger = logging.getLogger(__name__)

ElevationFn = Callable[[float, float], float]


@dataclass
class TerrainSample:
    land_use: LandUseType
    elevation: float = 0.0  # m above sea level


class TerrainSource(ABC):
    """Surface lookup for a single point."""

    @abstractmethod
    def sample(self, lat: float, lon: float) -> Optional[TerrainSample]:
        """Surface at the point, or None if unknown."""
        pass


class StaticTerrainSource(TerrainSource):
    """
    Same land use everywhere, optionally with an elevation function.

    Useful for courses whose surface is known up front.
    """

    def __init__(
        self,
        land_use: LandUseType = LandUseType.GRASSLAND,
        elevation: float = 0.0,
        elevation_fn: Optional[ElevationFn] = None
    ):
        self.land_use = land_use
        self.elevation = elevation
        self.elevation_fn = elevation_fn

    def sample(self, lat: float, lon: float) -> Optional[TerrainSample]:
        elevation = self.elevation_fn(lat, lon) if self.elevation_fn else self.elevation
        return TerrainSample(self.land_use, float(elevation))


class LandMaskTerrainSource(TerrainSource):
    """
    Land/water classification from the global-land-mask 1 km raster.

    Ocean points are WATER. Land points within ``coastal_distance_m`` of the
    ocean are COASTAL; other land points get ``land_use``.
    """

    def __init__(
        self,
        land_use: LandUseType = LandUseType.GRASSLAND,
        coastal_distance_m: float = 1000.0,
        elevation_fn: Optional[ElevationFn] = None
    ):
        self.land_use = land_use
        self.coastal_distance_m = coastal_distance_m
        self.elevation_fn = elevation_fn

    def _near_ocean(self, lat: float, lon: float) -> bool:
        dlat = self.coastal_distance_m / 111000.0
        dlon = dlat / max(math.cos(math.radians(lat)), 0.01)
        for k in range(8):
            bearing = math.radians(k * 45.0)
            p_lat = max(-90.0, min(90.0, lat + dlat * math.cos(bearing)))
            p_lon = (lon + dlon * math.sin(bearing) + 180.0) % 360.0 - 180.0
            if globe.is_ocean(p_lat, p_lon):
                return True
        return False

    def sample(self, lat: float, lon: float) -> Optional[TerrainSample]:
        if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
            return None
        elevation = float(self.elevation_fn(lat, lon)) if self.elevation_fn else 0.0
        if globe.is_ocean(lat, lon):
            return TerrainSample(LandUseType.WATER, elevation)
        if self.coastal_distance_m > 0 and self._near_ocean(lat, lon):
            return TerrainSample(LandUseType.COASTAL, elevation)
        return TerrainSample(self.land_use, elevation)
