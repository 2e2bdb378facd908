"""
Durable weather store backed by SQLAlchemy.

Holds the observation archive, monthly climatology, the wind-pattern history
used for terrain wind statistics, and cached terrain analyses. SQLite is the
default backend; any SQLAlchemy URL works.

Locations are keyed by spatial bin: coordinates rounded to
``location_bin_precision`` decimal places (3 places is roughly 110 m).

Writes are serialized with a lock; reads use independent sessions.

Usage:
    storage = WeatherStorage("sqlite:///./golfsim.db")
    storage.initialize()
    storage.store_weather_data(56.35, -2.82, observation)
    latest = storage.get_weather_data(56.35, -2.82)
"""

import logging
import math
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Generator, Iterator, List, Optional, Tuple

import numpy as np
from sqlalchemy import and_, create_engine, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from golfsim.config import get_settings
from golfsim.exceptions import StorageUnavailableError
from golfsim.physics.wind import TerrainParameters
from golfsim.terrain.types import LandUseType, TerrainAnalysis, WindPattern
from golfsim.weather.environment import WeatherData, location_bin, utcnow
from golfsim.weather.models import (
    Base,
    TerrainRecord,
    TypicalWeather,
    WeatherObservation,
    WindPatternRecord,
)

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0
DIRECTION_BINS = 36
KM_PER_DEG_LAT = 111.0

_OBSERVATION_FIELDS = (
    "temperature", "humidity", "pressure", "wind_speed",
    "wind_direction", "precipitation", "altitude",
)


@dataclass
class WeatherStats:
    """Aggregate of the observations stored for a location bin and month."""
    avg_temperature: float
    avg_humidity: float
    avg_pressure: float
    avg_wind_speed: float
    wind_direction_frequency: List[int] = field(default_factory=lambda: [0] * DIRECTION_BINS)
    sample_count: int = 0


def haversine_km(lat1, lon1, lat2, lon2):
    """Great-circle distance in km. Accepts scalars or numpy arrays."""
    lat1, lon1, lat2, lon2 = map(np.radians, (lat1, lon1, lat2, lon2))
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = np.sin(dlat / 2) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_KM * np.arcsin(np.sqrt(np.clip(a, 0.0, 1.0)))


def _naive_utc(ts: datetime) -> datetime:
    if ts.tzinfo is not None:
        return ts.astimezone(timezone.utc).replace(tzinfo=None)
    return ts


def _to_weather(row) -> WeatherData:
    return WeatherData(
        temperature=row.temperature,
        humidity=row.humidity,
        pressure=row.pressure,
        wind_speed=row.wind_speed,
        wind_direction=row.wind_direction,
        precipitation=row.precipitation,
        altitude=row.altitude,
        timestamp=getattr(row, "observed_at", None) or getattr(row, "updated_at", None) or utcnow(),
    )


def _to_pattern(row: WindPatternRecord) -> WindPattern:
    return WindPattern(
        speed=row.speed,
        direction=row.direction,
        gust_speed=row.gust_speed,
        temperature=row.temperature,
        pressure=row.pressure,
        timestamp=row.observed_at,
    )


class WeatherStorage:
    """SQLAlchemy-backed weather archive."""

    def __init__(self, database_url: Optional[str] = None, precision: Optional[int] = None,
                 echo: Optional[bool] = None):
        settings = get_settings()
        self.database_url = database_url or settings.database_url
        self.precision = settings.location_bin_precision if precision is None else precision
        self.echo = settings.db_echo if echo is None else echo

        self._engine = None
        self._session_factory = None
        self._write_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """
        Open the backend and create missing tables.

        Raises:
            StorageUnavailableError: if the database cannot be opened
        """
        if self._engine is not None:
            return

        kwargs = {"echo": self.echo}
        if self.database_url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            if ":memory:" in self.database_url or self.database_url in ("sqlite://", "sqlite:///"):
                kwargs["poolclass"] = StaticPool
        else:
            kwargs["pool_pre_ping"] = True

        try:
            engine = create_engine(self.database_url, **kwargs)
            Base.metadata.create_all(bind=engine)
        except SQLAlchemyError as e:
            logger.error(f"Weather storage initialization failed: {e}")
            raise StorageUnavailableError(f"Cannot open weather storage: {e}") from e

        self._engine = engine
        self._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
        logger.info(f"Weather storage initialized ({engine.url.get_backend_name()})")

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Weather storage closed")

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    def __enter__(self) -> "WeatherStorage":
        self.initialize()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @contextmanager
    def _session(self) -> Generator[Session, None, None]:
        if self._session_factory is None:
            raise StorageUnavailableError("Weather storage is not initialized")
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except Exception as e:
            logger.error(f"Weather storage session error: {e}")
            db.rollback()
            raise
        finally:
            db.close()

    # ------------------------------------------------------------------
    # Location binning
    # ------------------------------------------------------------------

    def location_bin(self, lat: float, lon: float) -> Tuple[int, int]:
        return location_bin(lat, lon, self.precision)

    # ------------------------------------------------------------------
    # Observations
    # ------------------------------------------------------------------

    def store_weather_data(self, lat: float, lon: float, data: WeatherData) -> bool:
        """
        Insert or replace the observation for (bin, timestamp).

        Returns:
            False if the data is invalid or the write failed
        """
        bad = data.invalid_fields()
        if bad:
            logger.warning(f"Rejected invalid weather at ({lat:.4f}, {lon:.4f}): {bad}")
            return False

        bin_lat, bin_lon = self.location_bin(lat, lon)
        observed_at = _naive_utc(data.timestamp)

        try:
            with self._write_lock, self._session() as db:
                row = db.query(WeatherObservation).filter(
                    WeatherObservation.bin_lat == bin_lat,
                    WeatherObservation.bin_lon == bin_lon,
                    WeatherObservation.observed_at == observed_at,
                ).first()
                if row is None:
                    row = WeatherObservation(
                        bin_lat=bin_lat, bin_lon=bin_lon, observed_at=observed_at,
                    )
                    db.add(row)
                row.latitude = lat
                row.longitude = lon
                row.month = observed_at.month
                for name in _OBSERVATION_FIELDS:
                    setattr(row, name, float(getattr(data, name)))
        except SQLAlchemyError as e:
            logger.error(f"Failed to store weather at ({lat:.4f}, {lon:.4f}): {e}")
            return False
        return True

    def get_weather_data(self, lat: float, lon: float) -> Optional[WeatherData]:
        """Most recent observation in the location's bin."""
        bin_lat, bin_lon = self.location_bin(lat, lon)
        with self._session() as db:
            row = db.query(WeatherObservation).filter(
                WeatherObservation.bin_lat == bin_lat,
                WeatherObservation.bin_lon == bin_lon,
            ).order_by(WeatherObservation.observed_at.desc()).first()
            return _to_weather(row) if row is not None else None

    def get_nearest_weather_data(
        self,
        lat: float,
        lon: float,
        max_distance_km: Optional[float] = None,
        max_age_minutes: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> Optional[WeatherData]:
        """
        Closest stored observation strictly within ``max_distance_km``.

        Ties on distance go to the most recent observation. Returns None
        rather than anything farther away. With ``max_age_minutes`` only
        observations taken at or after ``now - max_age_minutes`` are
        considered.
        """
        if max_distance_km is None:
            max_distance_km = get_settings().nearest_max_distance_km

        dlat = max_distance_km / KM_PER_DEG_LAT
        cos_lat = max(math.cos(math.radians(lat)), 0.01)
        dlon = min(max_distance_km / (KM_PER_DEG_LAT * cos_lat), 180.0)

        with self._session() as db:
            query = db.query(WeatherObservation).filter(
                WeatherObservation.latitude.between(lat - dlat, lat + dlat),
                WeatherObservation.longitude.between(lon - dlon, lon + dlon),
            )
            if max_age_minutes is not None:
                cutoff = _naive_utc(now or utcnow()) - timedelta(minutes=max_age_minutes)
                query = query.filter(WeatherObservation.observed_at >= cutoff)
            rows = query.all()
            if not rows:
                return None

            lats = np.array([r.latitude for r in rows])
            lons = np.array([r.longitude for r in rows])
            distances = haversine_km(lat, lon, lats, lons)

            best = None
            best_key = None
            for row, dist in zip(rows, distances):
                if dist >= max_distance_km:
                    continue
                key = (round(float(dist), 6), -row.observed_at.timestamp())
                if best_key is None or key < best_key:
                    best, best_key = row, key

            if best is None:
                return None
            logger.debug(f"Nearest weather for ({lat:.4f}, {lon:.4f}) is {best_key[0]:.2f} km away")
            return _to_weather(best)

    def has_recent_data(
        self,
        lat: float,
        lon: float,
        max_age_minutes: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> bool:
        """True if the bin holds an observation no older than ``max_age_minutes``."""
        if max_age_minutes is None:
            max_age_minutes = get_settings().recent_data_max_age_minutes
        cutoff = _naive_utc(now or utcnow()) - timedelta(minutes=max_age_minutes)
        bin_lat, bin_lon = self.location_bin(lat, lon)
        with self._session() as db:
            row = db.query(WeatherObservation.id).filter(
                WeatherObservation.bin_lat == bin_lat,
                WeatherObservation.bin_lon == bin_lon,
                WeatherObservation.observed_at >= cutoff,
            ).first()
            return row is not None

    def clear_old_data(self, cutoff: datetime) -> int:
        """
        Delete observations older than ``cutoff``.

        Climatology and wind-pattern history are kept.

        Returns:
            Number of observations deleted
        """
        cutoff = _naive_utc(cutoff)
        with self._write_lock, self._session() as db:
            deleted = db.query(WeatherObservation).filter(
                WeatherObservation.observed_at < cutoff
            ).delete(synchronize_session=False)
        logger.info(f"Cleared {deleted} weather observations older than {cutoff.isoformat()}")
        return deleted

    # ------------------------------------------------------------------
    # Climatology
    # ------------------------------------------------------------------

    @staticmethod
    def _check_month(month: int) -> int:
        if not 1 <= month <= 12:
            raise ValueError(f"month must be in 1..12, got {month}")
        return month

    def store_typical_weather(self, lat: float, lon: float, month: int, data: WeatherData) -> bool:
        """Insert or replace the climatological observation for (bin, month)."""
        self._check_month(month)
        bad = data.invalid_fields()
        if bad:
            logger.warning(f"Rejected invalid typical weather at ({lat:.4f}, {lon:.4f}): {bad}")
            return False

        bin_lat, bin_lon = self.location_bin(lat, lon)
        try:
            with self._write_lock, self._session() as db:
                row = db.query(TypicalWeather).filter(
                    TypicalWeather.bin_lat == bin_lat,
                    TypicalWeather.bin_lon == bin_lon,
                    TypicalWeather.month == month,
                ).first()
                if row is None:
                    row = TypicalWeather(bin_lat=bin_lat, bin_lon=bin_lon, month=month)
                    db.add(row)
                for name in _OBSERVATION_FIELDS:
                    setattr(row, name, float(getattr(data, name)))
                row.updated_at = utcnow()
        except SQLAlchemyError as e:
            logger.error(f"Failed to store typical weather at ({lat:.4f}, {lon:.4f}): {e}")
            return False
        return True

    def get_typical_weather(
        self,
        lat: float,
        lon: float,
        month: Optional[int] = None
    ) -> Optional[WeatherData]:
        """Climatology for the bin; ``month`` defaults to the current UTC month."""
        month = self._check_month(month if month is not None else utcnow().month)
        bin_lat, bin_lon = self.location_bin(lat, lon)
        with self._session() as db:
            row = db.query(TypicalWeather).filter(
                TypicalWeather.bin_lat == bin_lat,
                TypicalWeather.bin_lon == bin_lon,
                TypicalWeather.month == month,
            ).first()
            return _to_weather(row) if row is not None else None

    def get_historical_stats(self, lat: float, lon: float, month: int) -> Optional[WeatherStats]:
        """
        Averages and a 10-degree wind direction histogram over the bin's
        observations in ``month``.
        """
        self._check_month(month)
        bin_lat, bin_lon = self.location_bin(lat, lon)
        with self._session() as db:
            rows = db.query(
                WeatherObservation.temperature,
                WeatherObservation.humidity,
                WeatherObservation.pressure,
                WeatherObservation.wind_speed,
                WeatherObservation.wind_direction,
            ).filter(
                WeatherObservation.bin_lat == bin_lat,
                WeatherObservation.bin_lon == bin_lon,
                WeatherObservation.month == month,
            ).all()

        if not rows:
            return None

        values = np.array([tuple(r) for r in rows], dtype=float)
        bins = (values[:, 4] // (360 / DIRECTION_BINS)).astype(int) % DIRECTION_BINS
        frequency = np.bincount(bins, minlength=DIRECTION_BINS)

        return WeatherStats(
            avg_temperature=float(values[:, 0].mean()),
            avg_humidity=float(values[:, 1].mean()),
            avg_pressure=float(values[:, 2].mean()),
            avg_wind_speed=float(values[:, 3].mean()),
            wind_direction_frequency=[int(c) for c in frequency],
            sample_count=len(rows),
        )

    # ------------------------------------------------------------------
    # Wind pattern history
    # ------------------------------------------------------------------

    def store_wind_pattern(self, lat: float, lon: float, pattern: WindPattern) -> bool:
        """
        Record a wind sample. Existing samples are never modified.

        Returns:
            False if a sample already exists for (bin, timestamp), the sample
            is malformed, or the write failed
        """
        numbers = (pattern.speed, pattern.direction, pattern.gust_speed,
                   pattern.temperature, pattern.pressure)
        if not all(math.isfinite(v) for v in numbers) or pattern.speed < 0 or pattern.gust_speed < 0:
            logger.warning(f"Rejected malformed wind pattern at ({lat:.4f}, {lon:.4f})")
            return False

        bin_lat, bin_lon = self.location_bin(lat, lon)
        observed_at = _naive_utc(pattern.timestamp)
        try:
            with self._write_lock, self._session() as db:
                exists = db.query(WindPatternRecord.id).filter(
                    WindPatternRecord.bin_lat == bin_lat,
                    WindPatternRecord.bin_lon == bin_lon,
                    WindPatternRecord.observed_at == observed_at,
                ).first()
                if exists is not None:
                    logger.debug(f"Wind pattern already recorded for {observed_at.isoformat()}")
                    return False
                db.add(WindPatternRecord(
                    bin_lat=bin_lat,
                    bin_lon=bin_lon,
                    speed=pattern.speed,
                    direction=pattern.direction % 360.0,
                    gust_speed=pattern.gust_speed,
                    temperature=pattern.temperature,
                    pressure=pattern.pressure,
                    observed_at=observed_at,
                    hour_of_day=observed_at.hour,
                ))
        except SQLAlchemyError as e:
            logger.error(f"Failed to store wind pattern at ({lat:.4f}, {lon:.4f}): {e}")
            return False
        return True

    def get_wind_patterns(
        self,
        lat: float,
        lon: float,
        start: datetime,
        end: datetime
    ) -> List[WindPattern]:
        """Samples in [start, end], oldest first."""
        bin_lat, bin_lon = self.location_bin(lat, lon)
        with self._session() as db:
            rows = db.query(WindPatternRecord).filter(
                WindPatternRecord.bin_lat == bin_lat,
                WindPatternRecord.bin_lon == bin_lon,
                WindPatternRecord.observed_at >= _naive_utc(start),
                WindPatternRecord.observed_at <= _naive_utc(end),
            ).order_by(WindPatternRecord.observed_at).all()
            return [_to_pattern(r) for r in rows]

    def iter_wind_patterns_by_hour(
        self,
        lat: float,
        lon: float,
        hour_of_day: int,
        page_size: int = 200
    ) -> Iterator[WindPattern]:
        """
        Lazily yield every sample recorded at ``hour_of_day``, oldest first.

        Rows are fetched a page at a time; no session is held between pages.
        """
        bin_lat, bin_lon = self.location_bin(lat, lon)
        after: Optional[Tuple[datetime, int]] = None
        while True:
            with self._session() as db:
                query = db.query(WindPatternRecord).filter(
                    WindPatternRecord.bin_lat == bin_lat,
                    WindPatternRecord.bin_lon == bin_lon,
                    WindPatternRecord.hour_of_day == hour_of_day,
                )
                if after is not None:
                    query = query.filter(or_(
                        WindPatternRecord.observed_at > after[0],
                        and_(WindPatternRecord.observed_at == after[0],
                             WindPatternRecord.id > after[1]),
                    ))
                rows = query.order_by(
                    WindPatternRecord.observed_at, WindPatternRecord.id
                ).limit(page_size).all()
                page = [_to_pattern(r) for r in rows]
                if rows:
                    after = (rows[-1].observed_at, rows[-1].id)

            yield from page
            if len(page) < page_size:
                return

    # ------------------------------------------------------------------
    # Terrain cache
    # ------------------------------------------------------------------

    def store_terrain_analysis(self, lat: float, lon: float, analysis: TerrainAnalysis) -> bool:
        bin_lat, bin_lon = self.location_bin(lat, lon)
        params = analysis.parameters
        try:
            with self._write_lock, self._session() as db:
                row = db.query(TerrainRecord).filter(
                    TerrainRecord.bin_lat == bin_lat,
                    TerrainRecord.bin_lon == bin_lon,
                ).first()
                if row is None:
                    row = TerrainRecord(bin_lat=bin_lat, bin_lon=bin_lon)
                    db.add(row)
                row.land_use = analysis.land_use.value
                row.elevation = analysis.elevation
                row.roughness_variation = analysis.roughness_variation
                row.is_complex = analysis.is_complex
                row.roughness_length = params.roughness_length
                row.power_law_exponent = params.power_law_exponent
                row.reference_height = params.reference_height
                row.exposure_factor = params.exposure_factor
                row.veer_deg_per_100m = params.veer_deg_per_100m
                row.analyzed_at = utcnow()
        except SQLAlchemyError as e:
            logger.error(f"Failed to store terrain analysis at ({lat:.4f}, {lon:.4f}): {e}")
            return False
        return True

    def get_terrain_analysis(self, lat: float, lon: float) -> Optional[TerrainAnalysis]:
        bin_lat, bin_lon = self.location_bin(lat, lon)
        with self._session() as db:
            row = db.query(TerrainRecord).filter(
                TerrainRecord.bin_lat == bin_lat,
                TerrainRecord.bin_lon == bin_lon,
            ).first()
            if row is None:
                return None
            return TerrainAnalysis(
                parameters=TerrainParameters(
                    roughness_length=row.roughness_length,
                    power_law_exponent=row.power_law_exponent,
                    reference_height=row.reference_height,
                    exposure_factor=row.exposure_factor,
                    veer_deg_per_100m=row.veer_deg_per_100m,
                ),
                land_use=LandUseType(row.land_use),
                elevation=row.elevation,
                roughness_variation=row.roughness_variation,
                is_complex=row.is_complex,
            )
