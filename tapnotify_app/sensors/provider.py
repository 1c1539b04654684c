"""Location, distance and unit-preference providers."""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Optional, TypeVar

from ..config.defaults import SensorParams
from ..logging.config import get_logger
from ..utils.geo import GpsCoordinates

logger = get_logger(__name__)

T = TypeVar("T")


class DistanceUnits(str, Enum):
    """User's preferred distance units."""
    METRIC = "metric"
    IMPERIAL = "imperial"


class SensorProvider(ABC):
    """Latest-value accessors for the device's data feeds."""

    @abstractmethod
    def current_location(self) -> Optional[GpsCoordinates]:
        """Current GPS fix, None when there is none."""

    @abstractmethod
    def home_location(self) -> Optional[GpsCoordinates]:
        """Reference point for the geofence gate."""

    @abstractmethod
    def remaining_distance(self) -> float:
        """Remaining distance to destination in metres."""

    @abstractmethod
    def distance_units(self) -> DistanceUnits:
        """Preferred distance units."""


class StaticSensorProvider(SensorProvider):
    """Provider serving fixed readings from configuration."""

    def __init__(self, params: Optional[SensorParams] = None):
        self.params = params or SensorParams()

    @staticmethod
    def _point(lat: Optional[float], lng: Optional[float]) -> Optional[GpsCoordinates]:
        if lat is None or lng is None:
            return None
        return GpsCoordinates(lat=lat, lng=lng)

    def current_location(self) -> Optional[GpsCoordinates]:
        return self._point(self.params.current_lat, self.params.current_lng)

    def home_location(self) -> Optional[GpsCoordinates]:
        return self._point(self.params.home_lat, self.params.home_lng)

    def remaining_distance(self) -> float:
        return self.params.remaining_distance_m

    def distance_units(self) -> DistanceUnits:
        return DistanceUnits(self.params.distance_units)


def latest_value(reader: Callable[[], T], fallback: T, name: str) -> T:
    """Read a provider value, logging and returning fallback on error."""
    try:
        value = reader()
    except Exception as e:
        logger.warning("Sensor read failed, using fallback", sensor=name, error=str(e))
        return fallback
    return fallback if value is None else value
