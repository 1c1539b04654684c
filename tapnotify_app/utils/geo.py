"""Great-circle distance helpers for the geofence gate."""

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class GpsCoordinates:
    """Latitude / longitude pair in decimal degrees."""
    lat: float
    lng: float


def haversine_km(first: GpsCoordinates, other: GpsCoordinates,
                 earth_radius_km: float = 6371.0) -> float:
    """Great-circle distance in kilometres."""
    lat1 = math.radians(first.lat)
    lon1 = math.radians(first.lng)
    lat2 = math.radians(other.lat)
    lon2 = math.radians(other.lng)
    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return earth_radius_km * c


def within_radius(current: GpsCoordinates, target: GpsCoordinates,
                  radius_m: float, earth_radius_km: float = 6371.0) -> bool:
    """True when current lies within radius_m metres of target."""
    return haversine_km(current, target, earth_radius_km) * 1000 <= radius_m
