"""
Weather observations and the atmospheric quantities derived from them.

Provides:
- WeatherData: one point-in-time observation with range validation
- calculate_air_density: moist-air density from temperature, pressure, humidity
- calculate_wind_effect: density scaling applied to wind forces
- apply_altitude_adjustment: barometric correction for elevated courses
- StandardAtmosphere: ISA reference when no observation is available
- WeatherCacheEntry: an observation with freshness bookkeeping

All timestamps are naive datetimes in UTC.
"""

import logging
import math
from dataclasses import dataclass, field, fields
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from golfsim.exceptions import WeatherValidationError

logger = logging.getLogger(__name__)

# Valid observation ranges (inclusive unless noted)
TEMPERATURE_RANGE_C = (-50.0, 50.0)
HUMIDITY_RANGE_PCT = (0.0, 100.0)
PRESSURE_RANGE_HPA = (850.0, 1100.0)
WIND_SPEED_RANGE_MS = (0.0, 40.0)
WIND_DIRECTION_RANGE_DEG = (0.0, 360.0)  # upper bound exclusive
ALTITUDE_RANGE_M = (-500.0, 5000.0)

# Physical constants
STANDARD_AIR_DENSITY = 1.225        # kg/m^3, ISA sea level
MOLAR_MASS_DRY_AIR = 0.0289644      # kg/mol
UNIVERSAL_GAS_CONSTANT = 8.31446    # J/(mol K)
SPECIFIC_GAS_CONSTANT = 287.058     # J/(kg K), dry air
GRAVITY = 9.80665                   # m/s^2, standard gravity
KELVIN_OFFSET = 273.15

# Barometric formula (troposphere)
SEA_LEVEL_TEMPERATURE_K = 288.15
TEMPERATURE_LAPSE_RATE = 0.0065     # K/m
BAROMETRIC_EXPONENT = 5.2561

CACHE_DURATION_SECONDS = 900


def utcnow() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def location_bin(lat: float, lon: float, precision: int = 3) -> Tuple[int, int]:
    """
    Integer spatial bin for a coordinate pair.

    Coordinates are scaled by 10**precision and rounded. The weather cache
    and the weather store both key locations with this function.
    """
    scale = 10 ** precision
    return int(round(lat * scale)), int(round(lon * scale))


@dataclass
class WeatherData:
    """A single weather observation at a location."""
    temperature: float          # deg C
    humidity: float             # % relative
    pressure: float             # hPa
    wind_speed: float           # m/s
    wind_direction: float       # deg, direction the wind blows from
    precipitation: float = 0.0  # mm/h
    altitude: float = 0.0       # m above sea level
    timestamp: datetime = field(default_factory=utcnow)

    def invalid_fields(self) -> List[str]:
        """Names of the fields that are outside their valid range."""
        bad = []
        for f in fields(self):
            if f.name == "timestamp":
                continue
            value = getattr(self, f.name)
            if value is None or not math.isfinite(value):
                bad.append(f.name)

        checks = (
            ("temperature", TEMPERATURE_RANGE_C),
            ("humidity", HUMIDITY_RANGE_PCT),
            ("pressure", PRESSURE_RANGE_HPA),
            ("wind_speed", WIND_SPEED_RANGE_MS),
            ("altitude", ALTITUDE_RANGE_M),
        )
        for name, (lo, hi) in checks:
            if name in bad:
                continue
            if not lo <= getattr(self, name) <= hi:
                bad.append(name)

        if "wind_direction" not in bad:
            lo, hi = WIND_DIRECTION_RANGE_DEG
            if not lo <= self.wind_direction < hi:
                bad.append("wind_direction")

        if "precipitation" not in bad and self.precipitation < 0:
            bad.append("precipitation")

        if not isinstance(self.timestamp, datetime):
            bad.append("timestamp")

        return bad

    def is_valid(self) -> bool:
        return not self.invalid_fields()


def is_valid(data: WeatherData) -> bool:
    """True when every field of the observation is inside its valid range."""
    return data is not None and data.is_valid()


def validate_weather(data: WeatherData) -> WeatherData:
    """
    Reject observations that are out of range.

    Raises:
        WeatherValidationError: naming every offending field
    """
    if data is None:
        raise WeatherValidationError(["weather"])
    bad = data.invalid_fields()
    if bad:
        raise WeatherValidationError(bad)
    return data


def saturation_vapor_pressure(temperature_c: float) -> float:
    """Saturation vapour pressure over water in hPa (Buck equation)."""
    t = temperature_c
    return 6.1121 * math.exp((18.678 - t / 234.5) * (t / (257.14 + t)))


def calculate_air_density(data: WeatherData) -> float:
    """
    Density of moist air in kg/m^3.

    Uses the ideal gas law for dry air corrected for the partial pressure of
    water vapour: rho = P*M/(R*T) * (1 - 0.378*e/P).

    Raises:
        WeatherValidationError: if the observation is invalid
    """
    validate_weather(data)

    temperature_k = data.temperature + KELVIN_OFFSET
    pressure_pa = data.pressure * 100.0
    vapor_pressure_pa = (data.humidity / 100.0) * saturation_vapor_pressure(data.temperature) * 100.0

    dry = pressure_pa * MOLAR_MASS_DRY_AIR / (UNIVERSAL_GAS_CONSTANT * temperature_k)
    return dry * (1.0 - 0.378 * vapor_pressure_pa / pressure_pa)


def calculate_wind_effect(data: WeatherData) -> float:
    """
    Dimensionless wind force scaling for the observed air density.

    Aerodynamic force scales with density, so a given wind moves the ball
    less in thin air. Returns sqrt(rho / rho_standard), 1.0 at ISA sea level.
    """
    density = calculate_air_density(data)
    return math.sqrt(density / STANDARD_AIR_DENSITY)


def _barometric_ratios(altitude: float) -> Tuple[float, float]:
    temperature_ratio = 1.0 - TEMPERATURE_LAPSE_RATE * altitude / SEA_LEVEL_TEMPERATURE_K
    if temperature_ratio <= 0:
        raise ValueError(f"Altitude {altitude} m is above the barometric model limit")
    pressure_ratio = temperature_ratio ** BAROMETRIC_EXPONENT
    return pressure_ratio, temperature_ratio


def apply_altitude_adjustment(value: float, altitude: float) -> float:
    """
    Scale a sea-level quantity to the given altitude.

    Multiplies by sqrt(pressure_ratio / temperature_ratio), the square root of
    the relative air density predicted by the standard barometric formula.
    """
    if not math.isfinite(value) or not math.isfinite(altitude):
        raise ValueError("value and altitude must be finite")
    pressure_ratio, temperature_ratio = _barometric_ratios(altitude)
    return value * math.sqrt(pressure_ratio / temperature_ratio)


class StandardAtmosphere:
    """
    International Standard Atmosphere, layered model up to 51 km.

    Usage:
        atmosphere = StandardAtmosphere()
        rho = atmosphere.density(1600.0)
    """

    # (base altitude m, base temperature K, base pressure Pa, lapse rate K/m)
    LAYERS = (
        (0.0, 288.15, 101325.0, -0.0065),
        (11000.0, 216.65, 22632.1, 0.0),
        (20000.0, 216.65, 5474.89, 0.001),
        (32000.0, 228.65, 868.019, 0.0028),
        (47000.0, 270.65, 110.906, 0.0),
    )
    MAX_ALTITUDE = 51000.0

    def _layer(self, altitude: float):
        if altitude > self.MAX_ALTITUDE:
            raise ValueError(f"Altitude {altitude} m above ISA model range")
        selected = self.LAYERS[0]
        for layer in self.LAYERS:
            if altitude >= layer[0]:
                selected = layer
        return selected

    def temperature(self, altitude: float) -> float:
        """Temperature in K."""
        base_alt, base_temp, _, lapse = self._layer(altitude)
        return base_temp + lapse * (altitude - base_alt)

    def pressure(self, altitude: float) -> float:
        """Pressure in Pa."""
        base_alt, base_temp, base_press, lapse = self._layer(altitude)
        if lapse == 0.0:
            return base_press * math.exp(
                -GRAVITY * (altitude - base_alt) / (SPECIFIC_GAS_CONSTANT * base_temp)
            )
        temp = base_temp + lapse * (altitude - base_alt)
        return base_press * (temp / base_temp) ** (-GRAVITY / (lapse * SPECIFIC_GAS_CONSTANT))

    def density(self, altitude: float) -> float:
        """Dry-air density in kg/m^3."""
        return self.pressure(altitude) / (SPECIFIC_GAS_CONSTANT * self.temperature(altitude))

    def weather_at(self, altitude: float, timestamp: Optional[datetime] = None) -> WeatherData:
        """Calm, dry observation matching the standard atmosphere at altitude."""
        return WeatherData(
            temperature=self.temperature(altitude) - KELVIN_OFFSET,
            humidity=0.0,
            pressure=self.pressure(altitude) / 100.0,
            wind_speed=0.0,
            wind_direction=0.0,
            precipitation=0.0,
            altitude=altitude,
            timestamp=timestamp or utcnow(),
        )


@dataclass
class WeatherCacheEntry:
    """A cached observation and its freshness state."""
    data: Optional[WeatherData] = None
    valid: bool = False
    last_update: Optional[datetime] = None
    ttl_seconds: int = CACHE_DURATION_SECONDS

    def needs_refresh(self, now: Optional[datetime] = None) -> bool:
        """True if the entry is invalid or older than its TTL."""
        if not self.valid or self.data is None or self.last_update is None:
            return True
        now = now or utcnow()
        return now - self.last_update > timedelta(seconds=self.ttl_seconds)

    def update(self, data: WeatherData, now: Optional[datetime] = None) -> None:
        """Replace the cached observation; invalid data marks the entry invalid."""
        self.data = data
        self.valid = is_valid(data)
        self.last_update = now or utcnow()
        if not self.valid:
            logger.warning(f"Cached weather entry invalidated: {data.invalid_fields()}")

    def invalidate(self) -> None:
        self.valid = False
