"""Spherical-earth distance and offset helpers.

Distances are in statute miles on a sphere of radius 3958.8 mi. Degree
conversions use the flat approximation of 69 miles per degree of latitude,
which degenerates near the poles; anglers do not fish there.
"""

import math
import random
from dataclasses import dataclass

EARTH_RADIUS_MILES = 3958.8
MILES_PER_DEGREE_LAT = 69.0


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lng: float


@dataclass(frozen=True)
class BoundingBox:
    min_lat: float
    min_lng: float
    max_lat: float
    max_lng: float


def to_rad(degrees: float) -> float:
    return degrees * math.pi / 180


def haversine_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points in miles.

    Symmetric, and 0 for identical points.
    """
    d_lat = to_rad(lat2 - lat1)
    d_lon = to_rad(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(to_rad(lat1)) * math.cos(to_rad(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_MILES * c


def miles_to_degrees_lat(miles: float) -> float:
    return miles / MILES_PER_DEGREE_LAT


def miles_to_degrees_lng(miles: float, at_latitude: float) -> float:
    return miles / (MILES_PER_DEGREE_LAT * math.cos(to_rad(at_latitude)))


def jitter_point(
    lat: float,
    lng: float,
    max_radius_miles: float,
    rng: random.Random | None = None,
) -> GeoPoint:
    """Offset a point by a random distance in [0, max_radius_miles).

    The distance is drawn uniformly (not sqrt-uniform), so displaced points
    cluster toward the true location. Overlays rely on that look, keep it.
    The offset is applied along a great circle, so the haversine distance to
    the result equals the drawn distance and stays strictly inside the radius.
    """
    rng = rng or random
    distance = rng.random() * max_radius_miles
    bearing = rng.random() * 2 * math.pi
    return destination_point(lat, lng, distance, bearing)


def destination_point(lat: float, lng: float, distance_miles: float, bearing: float) -> GeoPoint:
    """Point reached by travelling distance_miles from (lat, lng) on a bearing (radians)."""
    delta = distance_miles / EARTH_RADIUS_MILES
    phi1 = to_rad(lat)
    lambda1 = to_rad(lng)

    phi2 = math.asin(
        math.sin(phi1) * math.cos(delta) + math.cos(phi1) * math.sin(delta) * math.cos(bearing)
    )
    lambda2 = lambda1 + math.atan2(
        math.sin(bearing) * math.sin(delta) * math.cos(phi1),
        math.cos(delta) - math.sin(phi1) * math.sin(phi2),
    )
    return GeoPoint(lat=math.degrees(phi2), lng=(math.degrees(lambda2) + 540) % 360 - 180)


def bounding_box(lat: float, lng: float, half_side_miles: float) -> BoundingBox:
    """Axis-aligned square of side 2 * half_side_miles centered on a point."""
    d_lat = miles_to_degrees_lat(half_side_miles)
    d_lng = miles_to_degrees_lng(half_side_miles, lat)
    return BoundingBox(
        min_lat=lat - d_lat,
        min_lng=lng - d_lng,
        max_lat=lat + d_lat,
        max_lng=lng + d_lng,
    )
