# utils/geofence.py

from dataclasses import dataclass
from math import radians, sin, cos, sqrt, atan2
from typing import NamedTuple, Protocol

EARTH_RADIUS_METERS = 6371000


class Coordinate(NamedTuple):
    latitude: float
    longitude: float


class Fence(Protocol):
    """Anything with a centre coordinate and an admission radius (a Site)."""

    @property
    def coordinate(self) -> Coordinate: ...

    radius_meters: float


@dataclass(frozen=True)
class GeofenceDecision:
    admitted: bool
    distance_meters: float
    allowed_radius: float


def distance_meters(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two coordinates (haversine, spherical Earth)."""
    φ1, φ2 = radians(a.latitude), radians(b.latitude)
    Δφ = radians(b.latitude - a.latitude)
    Δλ = radians(b.longitude - a.longitude)

    h = sin(Δφ/2)**2 + cos(φ1) * cos(φ2) * sin(Δλ/2)**2
    c = 2 * atan2(sqrt(h), sqrt(1 - h))
    return EARTH_RADIUS_METERS * c


def explain(point: Coordinate, site: Fence) -> GeofenceDecision:
    distance = distance_meters(point, site.coordinate)
    return GeofenceDecision(
        admitted=distance <= site.radius_meters,
        distance_meters=distance,
        allowed_radius=site.radius_meters,
    )


def admit(point: Coordinate, site: Fence) -> bool:
    return explain(point, site).admitted
