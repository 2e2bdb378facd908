"""
Golf ball aerodynamic coefficients.

Drag follows a simplified drag-crisis curve: laminar Cd below the critical
Reynolds number, falling linearly to half of it once the boundary layer is
fully turbulent. Lift grows with the square root of the spin parameter
S = omega*r/v, is raised by the dimple roughness, and saturates at MAX_LIFT.

Magnus lift is evaluated at standard air density; only drag responds to the
observed weather.
"""

import math

# Ball (USGA minimums)
BALL_MASS = 0.0459          # kg
BALL_RADIUS = 0.0213        # m
BALL_DIAMETER = 2 * BALL_RADIUS
BALL_AREA = math.pi * BALL_RADIUS ** 2
SURFACE_ROUGHNESS = 0.0014  # m, dimple depth

AIR_VISCOSITY = 1.81e-5     # Pa s, dynamic viscosity at 15 C
LIFT_AIR_DENSITY = 1.225    # kg/m^3

BASE_DRAG = 0.47
TURBULENT_DRAG = BASE_DRAG / 2
CRITICAL_RE = 4.0e4
TURBULENT_RE = 8.0e4

BASE_LIFT = 0.25            # smooth-ball Cl at REFERENCE_SPIN_PARAMETER
REFERENCE_SPIN_PARAMETER = 0.25
ROUGHNESS_EFFECT = 1.0 + SURFACE_ROUGHNESS / BALL_RADIUS
MAX_LIFT = 0.35

SPIN_DECAY_RATE = 0.045     # 1/s

MIN_SPEED = 1e-3            # m/s, floor before dividing by a speed


def rpm_to_rad(rpm: float) -> float:
    return rpm * 2.0 * math.pi / 60.0


def reynolds_number(speed: float, density: float, viscosity: float = AIR_VISCOSITY) -> float:
    return density * speed * BALL_DIAMETER / viscosity


def drag_coefficient(reynolds: float) -> float:
    """Drag coefficient for a dimpled ball at the given Reynolds number."""
    if reynolds <= CRITICAL_RE:
        return BASE_DRAG
    if reynolds >= TURBULENT_RE:
        return TURBULENT_DRAG
    fraction = (reynolds - CRITICAL_RE) / (TURBULENT_RE - CRITICAL_RE)
    return BASE_DRAG - fraction * (BASE_DRAG - TURBULENT_DRAG)


def spin_parameter(spin_rad_s: float, speed: float) -> float:
    return spin_rad_s * BALL_RADIUS / max(speed, MIN_SPEED)


def lift_coefficient(spin_rad_s: float, speed: float) -> float:
    """
    Magnus lift coefficient.

    Cl = BASE_LIFT * ROUGHNESS_EFFECT * sqrt(S / REFERENCE_SPIN_PARAMETER),
    capped at MAX_LIFT. Zero spin gives zero lift.
    """
    s = spin_parameter(spin_rad_s, speed)
    if s <= 0:
        return 0.0
    cl = BASE_LIFT * ROUGHNESS_EFFECT * math.sqrt(s / REFERENCE_SPIN_PARAMETER)
    return min(MAX_LIFT, cl)


def decayed_spin(initial_spin: float, elapsed: float) -> float:
    """Spin after ``elapsed`` seconds of exponential decay."""
    return initial_spin * math.exp(-SPIN_DECAY_RATE * elapsed)
