"""
Wind model for ball flight.

Wind is described in the shot frame: x points down the target line, y to the
left of it, z up. A WindProfile angle of 0 deg is a pure tailwind (wind
blowing toward +x), 180 deg a headwind, 90 deg a crosswind blowing toward +y.

Two things happen to the wind before it reaches the ball:
1. sample_wind() scales the reference speed to the ball's height with a
   boundary-layer law. The Ekman law also turns the wind direction with
   height; the other laws keep its direction unless the terrain veers.
2. WindModel.apply_wind_effect() splits that wind into along-track and
   crosswind components of the ball's horizontal travel direction and
   scales them by terrain exposure, a shot-height factor and, in strong
   wind, a super-linear strength multiplier.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

import numpy as np

logger = logging.getLogger(__name__)

MIN_WIND_HEIGHT = 1.0           # m
CORIOLIS_PARAMETER = 1e-4       # s^-1, mid-latitude
EDDY_VISCOSITY = 15.0           # m^2/s
EKMAN_HEIGHT_SCALE = math.sqrt(2.0 * EDDY_VISCOSITY / CORIOLIS_PARAMETER)  # m
STRONG_WIND_THRESHOLD = 15.0    # m/s
STRONG_WIND_GAIN = 0.02         # per m/s above threshold

HEADWIND_COEFFICIENT = 0.35     # % carry per m/s of along-track wind
CROSSWIND_COEFFICIENT = 0.15    # % carry lost per m/s of crosswind

# Shot apex heights (m) and the matching component multipliers
SHOT_HEIGHTS = np.array([15.0, 30.0, 45.0])
ALONG_TRACK_FACTORS = np.array([0.7, 1.0, 1.4])
CROSSWIND_FACTORS = np.array([0.8, 1.0, 1.3])


class ProfileLaw(Enum):
    """Boundary-layer law used to scale wind with height."""
    CONSTANT = "constant"
    LOGARITHMIC = "logarithmic"
    POWER_LAW = "power_law"
    EKMAN = "ekman"


class ShotType(Enum):
    """Trajectory height class, valued by typical apex height in metres."""
    LOW = 15.0
    NORMAL = 30.0
    HIGH = 45.0

    @property
    def height(self) -> float:
        return self.value


@dataclass
class TerrainParameters:
    """Surface parameters controlling the wind profile near the ground."""
    roughness_length: float         # z0, m
    power_law_exponent: float       # alpha
    reference_height: float = 10.0  # m, height of the reference wind speed
    exposure_factor: float = 1.0    # wind exposure relative to an open fairway
    veer_deg_per_100m: float = 0.0  # directional shear, complex terrain only

    def __post_init__(self):
        if not self.roughness_length > 0:
            raise ValueError(f"roughness_length must be positive, got {self.roughness_length}")
        if not self.reference_height > 0:
            raise ValueError(f"reference_height must be positive, got {self.reference_height}")
        if self.exposure_factor < 0:
            raise ValueError(f"exposure_factor must be >= 0, got {self.exposure_factor}")

    @classmethod
    def water(cls) -> "TerrainParameters":
        return cls(0.0002, 0.10, 10.0, 1.2)

    @classmethod
    def open_terrain(cls) -> "TerrainParameters":
        return cls(0.03, 0.143, 10.0, 1.0)

    @classmethod
    def suburban(cls) -> "TerrainParameters":
        return cls(0.3, 0.22, 10.0, 0.8)

    @classmethod
    def urban(cls) -> "TerrainParameters":
        return cls(1.0, 0.33, 10.0, 0.7)


@dataclass
class WindProfile:
    """Wind at the reference height and how it varies with height."""
    reference_speed: float = 0.0    # m/s at terrain.reference_height
    direction: float = 0.0          # deg, shot frame (0 tailwind, 180 headwind)
    law: ProfileLaw = ProfileLaw.LOGARITHMIC
    terrain: TerrainParameters = field(default_factory=TerrainParameters.open_terrain)

    @classmethod
    def calm(cls) -> "WindProfile":
        return cls(reference_speed=0.0, law=ProfileLaw.CONSTANT)


def ekman_spiral(height: float, roughness_length: float) -> Tuple[float, float]:
    """
    Ekman layer speed factor and direction turn (deg) at ``height``.

    Below the roughness length the air is still: (0.0, 0.0).
    """
    if height < roughness_length:
        return 0.0, 0.0
    z = height / EKMAN_HEIGHT_SCALE
    factor = math.exp(-z) * math.sqrt(1.0 + 2.0 * math.cos(z) + z * z)
    turn = math.degrees(math.atan2(math.sin(z), math.cos(z) + z))
    return factor, turn


def _evaluation_height(terrain: TerrainParameters, height: float) -> float:
    return max(height, MIN_WIND_HEIGHT, 2.0 * terrain.roughness_length)


def speed_at_height(profile: WindProfile, height: float) -> float:
    """Wind speed at ``height`` (floored at the minimum evaluation height)."""
    terrain = profile.terrain
    z0 = terrain.roughness_length
    h = _evaluation_height(terrain, height)
    ref = terrain.reference_height

    if profile.law == ProfileLaw.CONSTANT or profile.reference_speed == 0.0:
        return profile.reference_speed
    if profile.law == ProfileLaw.POWER_LAW:
        return profile.reference_speed * (h / ref) ** terrain.power_law_exponent
    if ref <= z0:
        return profile.reference_speed
    if profile.law == ProfileLaw.EKMAN:
        # Normalised so the reference height keeps the reference speed
        return profile.reference_speed * ekman_spiral(h, z0)[0] / ekman_spiral(ref, z0)[0]
    return profile.reference_speed * math.log(h / z0) / math.log(ref / z0)


def direction_at_height(profile: WindProfile, height: float) -> float:
    """
    Wind direction (deg, shot frame) at the given height.

    The Ekman law and terrain veer both turn the wind relative to its
    direction at the reference height.
    """
    terrain = profile.terrain
    direction = profile.direction
    if profile.law == ProfileLaw.EKMAN and terrain.reference_height > terrain.roughness_length:
        h = _evaluation_height(terrain, height)
        z0 = terrain.roughness_length
        direction += ekman_spiral(h, z0)[1] - ekman_spiral(terrain.reference_height, z0)[1]
    veer = terrain.veer_deg_per_100m
    if veer:
        h = max(height, MIN_WIND_HEIGHT)
        direction += veer * (h - terrain.reference_height) / 100.0
    return direction


def sample_wind(profile: WindProfile, height: float) -> np.ndarray:
    """Wind vector (m/s, shot frame) at the given height."""
    speed = speed_at_height(profile, height)
    theta = math.radians(direction_at_height(profile, height))
    return np.array([speed * math.cos(theta), speed * math.sin(theta), 0.0])


def strength_multiplier(wind_speed: float) -> float:
    """Super-linear gain applied to strong winds."""
    if wind_speed > STRONG_WIND_THRESHOLD:
        return 1.0 + (wind_speed - STRONG_WIND_THRESHOLD) * STRONG_WIND_GAIN
    return 1.0


def along_track_factor(shot_height: float) -> float:
    return float(np.interp(shot_height, SHOT_HEIGHTS, ALONG_TRACK_FACTORS))


def crosswind_factor(shot_height: float) -> float:
    return float(np.interp(shot_height, SHOT_HEIGHTS, CROSSWIND_FACTORS))


class WindModel:
    """
    Applies a WindProfile to a ball in flight.

    Usage:
        model = WindModel(WindProfile(reference_speed=8.0, direction=180.0))
        v_rel = model.apply_wind_effect(position, velocity)
    """

    def __init__(self, profile: Optional[WindProfile] = None):
        self.profile = profile or WindProfile.calm()

    @property
    def terrain(self) -> TerrainParameters:
        return self.profile.terrain

    def wind_at(self, position: np.ndarray) -> np.ndarray:
        return sample_wind(self.profile, float(position[2]))

    def effective_wind(self, position: np.ndarray, ball_velocity: np.ndarray) -> np.ndarray:
        """Wind after along-track/crosswind scaling for the ball's heading."""
        wind = self.wind_at(position)
        if not wind.any():
            return wind

        horizontal = np.array([ball_velocity[0], ball_velocity[1], 0.0])
        norm = np.linalg.norm(horizontal)
        if norm < 1e-6:
            heading = np.array([1.0, 0.0, 0.0])
        else:
            heading = horizontal / norm

        along = float(np.dot(wind, heading))
        cross = wind - along * heading

        height = float(position[2])
        strength = strength_multiplier(self.profile.reference_speed)
        exposure = self.terrain.exposure_factor
        k_along = exposure * along_track_factor(height) * strength
        k_cross = exposure * crosswind_factor(height) * strength
        return along * k_along * heading + k_cross * cross

    def apply_wind_effect(self, position: np.ndarray, ball_velocity: np.ndarray) -> np.ndarray:
        """Ball velocity relative to the air at ``position``."""
        velocity = np.asarray(ball_velocity, dtype=float)
        return velocity - self.effective_wind(np.asarray(position, dtype=float), velocity)

    def carry_effect_percent(
        self,
        wind_speed: float,
        wind_angle: float,
        shot_height: float = ShotType.NORMAL.height,
        density_factor: float = 1.0,
        terrain: Optional[TerrainParameters] = None
    ) -> float:
        """
        Quick estimate of the change in carry distance, in percent.

        Positive values mean the ball carries further (tailwind). Crosswind
        always costs distance.

        Args:
            wind_speed: m/s at reference height
            wind_angle: deg, 0 tailwind, 180 headwind
            shot_height: typical apex height of the shot in m
            density_factor: calculate_wind_effect() of the current weather
            terrain: surface parameters (defaults to the model's profile)
        """
        if wind_speed < 0:
            raise ValueError(f"wind_speed must be >= 0, got {wind_speed}")
        terrain = terrain or self.terrain
        theta = math.radians(wind_angle)
        along = wind_speed * math.cos(theta)
        cross = wind_speed * math.sin(theta)

        along_coeff = HEADWIND_COEFFICIENT * along_track_factor(shot_height) * terrain.exposure_factor
        cross_coeff = CROSSWIND_COEFFICIENT * crosswind_factor(shot_height) * terrain.exposure_factor
        effect = along * along_coeff - abs(cross) * cross_coeff
        return effect * strength_multiplier(wind_speed) * density_factor
