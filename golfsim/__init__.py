"""golfsim: golf ball flight prediction under wind, terrain and weather."""

from .exceptions import (
    GolfSimError,
    LaunchValidationError,
    StorageUnavailableError,
    WeatherValidationError,
)
from .weather.environment import (
    WeatherData,
    calculate_air_density,
    calculate_wind_effect,
    apply_altitude_adjustment,
)
from .weather.storage import WeatherStorage
from .terrain.analyzer import TerrainAnalyzer
from .physics.wind import TerrainParameters, WindModel, WindProfile
from .physics.trajectory import TrajectoryIntegrator, TrajectoryResult, calculate_trajectory
from .service import ShotService

__version__ = "0.1.0"

__all__ = [
    "GolfSimError",
    "LaunchValidationError",
    "StorageUnavailableError",
    "WeatherValidationError",
    "WeatherData",
    "calculate_air_density",
    "calculate_wind_effect",
    "apply_altitude_adjustment",
    "WeatherStorage",
    "TerrainAnalyzer",
    "TerrainParameters",
    "WindModel",
    "WindProfile",
    "TrajectoryIntegrator",
    "TrajectoryResult",
    "calculate_trajectory",
    "ShotService",
]
