"""Exception types raised by golfsim."""


class GolfSimError(Exception):
    """Base class for golfsim errors."""


class WeatherValidationError(GolfSimError, ValueError):
    """Raised when a weather observation falls outside its valid ranges."""

    def __init__(self, fields):
        self.fields = list(fields)
        super().__init__(f"Invalid weather data: {', '.join(self.fields)}")


class LaunchValidationError(GolfSimError, ValueError):
    """Raised when launch conditions are physically implausible."""


class StorageUnavailableError(GolfSimError, RuntimeError):
    """Raised when the weather store cannot be opened or is not initialized."""
