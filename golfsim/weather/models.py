"""
SQLAlchemy models for the golfsim weather store.

Locations are stored twice: the raw coordinates, and an integer spatial bin
(coordinate * 10**precision, rounded) used for keyed lookups.
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base

from golfsim.weather.environment import utcnow

Base = declarative_base()


class WeatherObservation(Base):
    """A stored weather observation."""

    __tablename__ = "weather_observations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    bin_lat = Column(Integer, nullable=False)
    bin_lon = Column(Integer, nullable=False)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    temperature = Column(Float, nullable=False)
    humidity = Column(Float, nullable=False)
    pressure = Column(Float, nullable=False)
    wind_speed = Column(Float, nullable=False)
    wind_direction = Column(Float, nullable=False)
    precipitation = Column(Float, nullable=False, default=0.0)
    altitude = Column(Float, nullable=False, default=0.0)
    observed_at = Column(DateTime, nullable=False, index=True)
    month = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("bin_lat", "bin_lon", "observed_at", name="uq_observation_bin_time"),
        Index("ix_observation_bin", "bin_lat", "bin_lon"),
        Index("ix_observation_bin_month", "bin_lat", "bin_lon", "month"),
    )

    def __repr__(self):
        return f"<WeatherObservation(bin=({self.bin_lat}, {self.bin_lon}), at={self.observed_at})>"


class TypicalWeather(Base):
    """Climatological weather for a location bin and calendar month."""

    __tablename__ = "typical_weather"

    id = Column(Integer, primary_key=True, autoincrement=True)
    bin_lat = Column(Integer, nullable=False)
    bin_lon = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)
    temperature = Column(Float, nullable=False)
    humidity = Column(Float, nullable=False)
    pressure = Column(Float, nullable=False)
    wind_speed = Column(Float, nullable=False)
    wind_direction = Column(Float, nullable=False)
    precipitation = Column(Float, nullable=False, default=0.0)
    altitude = Column(Float, nullable=False, default=0.0)
    updated_at = Column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("bin_lat", "bin_lon", "month", name="uq_typical_bin_month"),
    )


class WindPatternRecord(Base):
    """An immutable wind sample used for terrain wind statistics."""

    __tablename__ = "wind_patterns"

    id = Column(Integer, primary_key=True, autoincrement=True)
    bin_lat = Column(Integer, nullable=False)
    bin_lon = Column(Integer, nullable=False)
    speed = Column(Float, nullable=False)
    direction = Column(Float, nullable=False)
    gust_speed = Column(Float, nullable=False)
    temperature = Column(Float, nullable=False)
    pressure = Column(Float, nullable=False)
    observed_at = Column(DateTime, nullable=False)
    hour_of_day = Column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("bin_lat", "bin_lon", "observed_at", name="uq_wind_bin_time"),
        Index("ix_wind_bin_hour", "bin_lat", "bin_lon", "hour_of_day"),
    )


class TerrainRecord(Base):
    """Cached terrain analysis for a location bin."""

    __tablename__ = "terrain_analyses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    bin_lat = Column(Integer, nullable=False)
    bin_lon = Column(Integer, nullable=False)
    land_use = Column(String(32), nullable=False)
    elevation = Column(Float, nullable=False)
    roughness_variation = Column(Float, nullable=False)
    is_complex = Column(Boolean, nullable=False, default=False)
    roughness_length = Column(Float, nullable=False)
    power_law_exponent = Column(Float, nullable=False)
    reference_height = Column(Float, nullable=False)
    exposure_factor = Column(Float, nullable=False)
    veer_deg_per_100m = Column(Float, nullable=False, default=0.0)
    analyzed_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("bin_lat", "bin_lon", name="uq_terrain_bin"),
    )
