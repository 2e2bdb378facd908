"""
Golf ball trajectory integration.

Integrates the ball's equations of motion with semi-implicit Euler steps:
gravity, aerodynamic drag against the air-relative velocity, and Magnus lift
from the (decaying) spin acting across the ball's own velocity. Wind reaches
the ball through drag only. The step size adapts to speed so the ball travels
about 5 cm per step. The flight ends when the ball crosses the ground plane;
the landing point is linearly interpolated inside the final step and takes
the place of the last retained point when the two are closer than the
decimation spacing.

Coordinates: x downrange along the target line, y lateral (positive left),
z height above the launch point. Units are SI. The reported distance is the
signed carry along the target line, so a ball blown back behind the tee has
a negative distance.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from golfsim.config import get_settings
from golfsim.exceptions import LaunchValidationError
from golfsim.physics.aerodynamics import (
    BALL_AREA,
    BALL_MASS,
    LIFT_AIR_DENSITY,
    MIN_SPEED,
    decayed_spin,
    drag_coefficient,
    lift_coefficient,
    reynolds_number,
    rpm_to_rad,
)
from golfsim.physics.wind import ProfileLaw, TerrainParameters, WindModel, WindProfile
from golfsim.weather.environment import (
    StandardAtmosphere,
    WeatherData,
    calculate_air_density,
    validate_weather,
)

logger = logging.getLogger(__name__)

GRAVITY = 9.81
STEP_DISTANCE = 0.05        # m travelled per step
MIN_DT = 0.0005             # s
MAX_DT = 0.005              # s
MIN_POINT_SPACING = 0.1     # m between retained points

MAX_LAUNCH_SPEED = 100.0    # m/s
MAX_SPIN_RPM = 10000.0
MAX_WIND_SPEED = 50.0       # m/s


@dataclass
class LaunchConditions:
    """Ball launch state and the wind it is hit into."""
    initial_speed: float            # m/s
    launch_angle: float             # deg above horizontal
    spin_rate: float                # rpm
    wind_speed: float = 0.0         # m/s at reference height
    wind_angle: float = 0.0         # deg, 0 tailwind, 180 headwind
    spin_axis_tilt: float = 0.0     # deg, positive curves the ball left (+y)

    def validate(self) -> "LaunchConditions":
        """
        Reject physically implausible launches.

        Raises:
            LaunchValidationError: describing every violated bound
        """
        errors = []
        for name in ("initial_speed", "launch_angle", "spin_rate",
                     "wind_speed", "wind_angle", "spin_axis_tilt"):
            value = getattr(self, name)
            if value is None or not math.isfinite(value):
                errors.append(f"{name} must be finite")
        if errors:
            raise LaunchValidationError("; ".join(errors))

        if self.initial_speed > MAX_LAUNCH_SPEED:
            errors.append(f"initial_speed {self.initial_speed} exceeds {MAX_LAUNCH_SPEED} m/s")
        if not -90.0 <= self.launch_angle <= 90.0:
            errors.append(f"launch_angle {self.launch_angle} outside [-90, 90]")
        if not 0.0 <= self.spin_rate <= MAX_SPIN_RPM:
            errors.append(f"spin_rate {self.spin_rate} outside [0, {MAX_SPIN_RPM}]")
        if not 0.0 <= self.wind_speed <= MAX_WIND_SPEED:
            errors.append(f"wind_speed {self.wind_speed} outside [0, {MAX_WIND_SPEED}]")
        if not 0.0 <= self.wind_angle <= 360.0:
            errors.append(f"wind_angle {self.wind_angle} outside [0, 360]")
        if not -90.0 <= self.spin_axis_tilt <= 90.0:
            errors.append(f"spin_axis_tilt {self.spin_axis_tilt} outside [-90, 90]")
        if errors:
            raise LaunchValidationError("; ".join(errors))
        return self


@dataclass
class TrajectoryPoint:
    x: float
    y: float
    z: float
    t: float


@dataclass
class TrajectoryResult:
    """Discretized flight path and its summary values."""
    points: List[TrajectoryPoint] = field(default_factory=list)
    distance: float = 0.0           # m, signed carry along the target line
    lateral_deviation: float = 0.0  # m, y at landing
    apex: float = 0.0               # m, maximum height of any computed state
    flight_time: float = 0.0        # s
    iterations: int = 0
    iteration_limit_exceeded: bool = False

    @property
    def landed(self) -> bool:
        return bool(self.points) and not self.iteration_limit_exceeded

    @property
    def ground_distance(self) -> float:
        """Straight-line ground distance from the tee to the landing point."""
        return math.hypot(self.distance, self.lateral_deviation)

    def as_array(self) -> np.ndarray:
        """Points as an (N, 4) array of x, y, z, t."""
        if not self.points:
            return np.empty((0, 4))
        return np.array([[p.x, p.y, p.z, p.t] for p in self.points])


def spin_axis(tilt_deg: float) -> np.ndarray:
    """Unit spin axis for backspin tilted by ``tilt_deg`` toward sidespin."""
    tilt = math.radians(tilt_deg)
    return np.array([0.0, -math.cos(tilt), math.sin(tilt)])


class TrajectoryIntegrator:
    """
    Fixed-physics, adaptive-step ball flight integrator.

    The integrator holds no per-flight state; one instance can be shared
    between threads.

    Usage:
        integrator = TrajectoryIntegrator(WindModel(profile), weather=obs)
        result = integrator.integrate(LaunchConditions(44.7, 12.0, 2500))
    """

    def __init__(
        self,
        wind_model: Optional[WindModel] = None,
        weather: Optional[WeatherData] = None,
        max_iterations: Optional[int] = None,
        launch_altitude: float = 0.0
    ):
        self.wind_model = wind_model or WindModel()
        self.weather = weather
        if max_iterations is None:
            max_iterations = get_settings().integrator_max_iterations
        self.max_iterations = max_iterations

        if weather is not None:
            validate_weather(weather)
            self.air_density = calculate_air_density(weather)
        else:
            self.air_density = StandardAtmosphere().density(launch_altitude)

    @staticmethod
    def time_step(speed: float) -> float:
        dt = STEP_DISTANCE / max(speed, MIN_SPEED)
        return min(MAX_DT, max(MIN_DT, dt))

    def acceleration(
        self,
        position: np.ndarray,
        velocity: np.ndarray,
        spin_rad_s: float,
        axis: np.ndarray
    ) -> np.ndarray:
        """
        Total acceleration on the ball.

        Drag opposes the air-relative velocity at the observed density.
        Magnus lift is proportional to spin times ball speed, perpendicular
        to the ball's velocity, at standard density.
        """
        rho = self.air_density
        v_rel = self.wind_model.apply_wind_effect(position, velocity)
        rel_speed = float(np.linalg.norm(v_rel))

        cd = drag_coefficient(reynolds_number(rel_speed, rho))
        drag = -0.5 * rho * cd * BALL_AREA * rel_speed * v_rel

        speed = float(np.linalg.norm(velocity))
        safe_speed = max(speed, MIN_SPEED)
        cl = lift_coefficient(spin_rad_s, speed)
        lift = 0.5 * LIFT_AIR_DENSITY * BALL_AREA * cl * speed ** 2 * np.cross(axis, velocity) / safe_speed

        accel = (drag + lift) / BALL_MASS
        accel[2] -= GRAVITY
        return accel

    def integrate(self, launch: LaunchConditions) -> TrajectoryResult:
        """
        Fly the ball until it lands or the iteration cap is reached.

        Raises:
            LaunchValidationError: if the launch conditions are implausible
        """
        launch.validate()
        if launch.initial_speed <= 0:
            return TrajectoryResult()

        angle = math.radians(launch.launch_angle)
        position = np.zeros(3)
        velocity = launch.initial_speed * np.array([math.cos(angle), 0.0, math.sin(angle)])
        spin0 = rpm_to_rad(launch.spin_rate)
        axis = spin_axis(launch.spin_axis_tilt)

        t = 0.0
        apex = 0.0
        points = [TrajectoryPoint(0.0, 0.0, 0.0, 0.0)]
        last_kept = position.copy()
        landed = False
        iterations = 0

        while iterations < self.max_iterations:
            iterations += 1
            dt = self.time_step(float(np.linalg.norm(velocity)))
            accel = self.acceleration(position, velocity, decayed_spin(spin0, t), axis)

            new_velocity = velocity + accel * dt
            new_position = position + new_velocity * dt

            if new_position[2] < 0.0:
                fraction = position[2] / (position[2] - new_position[2])
                landing = position + fraction * (new_position - position)
                landing[2] = 0.0
                t += fraction * dt
                touchdown = TrajectoryPoint(float(landing[0]), float(landing[1]), 0.0, t)
                if np.linalg.norm(landing - last_kept) < MIN_POINT_SPACING:
                    points[-1] = touchdown
                else:
                    points.append(touchdown)
                position = landing
                landed = True
                break

            position, velocity = new_position, new_velocity
            t += dt
            apex = max(apex, float(position[2]))

            if np.linalg.norm(position - last_kept) >= MIN_POINT_SPACING:
                points.append(TrajectoryPoint(float(position[0]), float(position[1]), float(position[2]), t))
                last_kept = position.copy()

        result = TrajectoryResult(
            points=points,
            distance=float(position[0]),
            lateral_deviation=float(position[1]),
            apex=apex,
            flight_time=t,
            iterations=iterations,
            iteration_limit_exceeded=not landed,
        )
        if not landed:
            logger.warning(
                f"Trajectory did not land within {self.max_iterations} iterations "
                f"(t={t:.2f}s, z={position[2]:.1f}m)"
            )
        return result


def calculate_trajectory(
    initial_speed: float,
    launch_angle: float,
    spin_rate: float,
    wind_speed: float = 0.0,
    wind_angle: float = 0.0,
    spin_axis_tilt: float = 0.0,
    weather: Optional[WeatherData] = None,
    terrain: Optional[TerrainParameters] = None,
    law: ProfileLaw = ProfileLaw.LOGARITHMIC,
    max_iterations: Optional[int] = None
) -> TrajectoryResult:
    """
    Predict a ball flight.

    Args:
        initial_speed: ball speed in m/s
        launch_angle: deg above horizontal
        spin_rate: backspin in rpm
        wind_speed: m/s at the terrain reference height
        wind_angle: deg, 0 tailwind, 180 headwind, 90 crosswind toward +y
        spin_axis_tilt: deg, positive curves the ball left
        weather: observation used for air density (ISA sea level when None)
        terrain: surface parameters for the wind profile (open fairway when None)
        law: boundary-layer law for wind versus height
        max_iterations: integration step cap

    Returns:
        TrajectoryResult
    """
    launch = LaunchConditions(
        initial_speed=initial_speed,
        launch_angle=launch_angle,
        spin_rate=spin_rate,
        wind_speed=wind_speed,
        wind_angle=wind_angle,
        spin_axis_tilt=spin_axis_tilt,
    ).validate()

    profile = WindProfile(
        reference_speed=wind_speed,
        direction=wind_angle,
        law=law,
        terrain=terrain or TerrainParameters.open_terrain(),
    )
    integrator = TrajectoryIntegrator(
        wind_model=WindModel(profile),
        weather=weather,
        max_iterations=max_iterations,
        launch_altitude=weather.altitude if weather is not None else 0.0,
    )
    return integrator.integrate(launch)
