"""
Configuration management for golfsim.
Loads environment variables and provides typed configuration.

Every setting can be overridden with a ``GOLFSIM_`` prefixed environment
variable or a ``.env`` file in the working directory:

    GOLFSIM_DATABASE_URL=sqlite:///./course.db
    GOLFSIM_LOG_LEVEL=debug
"""
import logging
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ========================================================================
    # Storage
    # ========================================================================
    database_url: str = "sqlite:///./golfsim.db"
    db_echo: bool = False
    # Decimal places used when binning coordinates (3 -> ~110 m cells)
    location_bin_precision: int = 3

    # ========================================================================
    # Weather
    # ========================================================================
    weather_cache_ttl_seconds: int = 900
    weather_cache_max_entries: int = 500
    recent_data_max_age_minutes: int = 60
    nearest_max_distance_km: float = 10.0
    # Neighbouring observations older than this are not served as current
    nearest_max_age_minutes: int = 60
    offline: bool = False

    # ========================================================================
    # Terrain / wind history
    # ========================================================================
    min_wind_samples: int = 10
    complex_terrain_threshold_m: float = 100.0
    terrain_sample_radius_m: float = 500.0
    wind_history_hours: int = 24

    # ========================================================================
    # Trajectory
    # ========================================================================
    integrator_max_iterations: int = 20000

    # ========================================================================
    # Logging
    # ========================================================================
    log_level: str = "info"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    model_config = SettingsConfigDict(
        env_prefix="GOLFSIM_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def configure_logging(self):
        """Configure logging based on settings."""
        level = getattr(logging, self.log_level.upper(), logging.INFO)
        logging.basicConfig(level=level, format=self.log_format)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Application settings
    """
    return Settings()
