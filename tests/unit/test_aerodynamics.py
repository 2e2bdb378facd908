"""Tests for ball aerodynamic coefficients."""

import math

import pytest

from golfsim.physics.aerodynamics import (
    BALL_RADIUS,
    BASE_DRAG,
    BASE_LIFT,
    CRITICAL_RE,
    MAX_LIFT,
    REFERENCE_SPIN_PARAMETER,
    ROUGHNESS_EFFECT,
    SURFACE_ROUGHNESS,
    TURBULENT_DRAG,
    TURBULENT_RE,
    decayed_spin,
    drag_coefficient,
    lift_coefficient,
    reynolds_number,
    rpm_to_rad,
)


class TestDragCoefficient:

    def test_laminar(self):
        assert drag_coefficient(1.0e4) == BASE_DRAG

    def test_turbulent_is_half(self):
        assert drag_coefficient(2.0e5) == pytest.approx(BASE_DRAG / 2)
        assert TURBULENT_DRAG == pytest.approx(BASE_DRAG / 2)

    def test_transition_strictly_decreasing(self):
        values = [drag_coefficient(re) for re in (CRITICAL_RE, 5e4, 6e4, 7e4, TURBULENT_RE)]
        assert all(a > b for a, b in zip(values, values[1:]))

    def test_transition_midpoint(self):
        mid = (CRITICAL_RE + TURBULENT_RE) / 2
        assert drag_coefficient(mid) == pytest.approx(BASE_DRAG * 0.75)

    def test_driver_speed_is_turbulent(self):
        re = reynolds_number(70.0, 1.225)
        assert re > TURBULENT_RE

    def test_descending_ball_stays_turbulent(self):
        assert reynolds_number(30.0, 1.225) > TURBULENT_RE


class TestLiftCoefficient:

    def test_grows_with_spin(self):
        assert lift_coefficient(rpm_to_rad(3000), 40.0) > lift_coefficient(rpm_to_rad(1500), 40.0)

    def test_roughness_raises_reference_lift(self):
        assert ROUGHNESS_EFFECT == pytest.approx(1.0 + SURFACE_ROUGHNESS / BALL_RADIUS)
        spin = REFERENCE_SPIN_PARAMETER * 40.0 / BALL_RADIUS
        assert lift_coefficient(spin, 40.0) == pytest.approx(BASE_LIFT * ROUGHNESS_EFFECT)

    def test_square_root_in_spin_parameter(self):
        low = lift_coefficient(rpm_to_rad(1000), 40.0)
        high = lift_coefficient(rpm_to_rad(4000), 40.0)
        assert high == pytest.approx(2.0 * low)

    def test_capped(self):
        assert lift_coefficient(rpm_to_rad(10000), 5.0) == MAX_LIFT

    def test_zero_speed_does_not_divide_by_zero(self):
        assert lift_coefficient(rpm_to_rad(2500), 0.0) == MAX_LIFT

    def test_no_spin_no_lift(self):
        assert lift_coefficient(0.0, 40.0) == 0.0


class TestSpinDecay:

    def test_exponential(self):
        assert decayed_spin(100.0, 0.0) == 100.0
        assert decayed_spin(100.0, 10.0) == pytest.approx(100.0 * math.exp(-0.45))

    def test_rpm_conversion(self):
        assert rpm_to_rad(60.0) == pytest.approx(2 * math.pi)
