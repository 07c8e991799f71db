"""Spherical geodesy helpers (no external dependencies)."""

from __future__ import annotations

import math
from typing import Final, Iterable, Sequence

from gps_heatmap.models import BoundingBox, Coordinate, Sample

EARTH_RADIUS_M: Final[float] = 6_371_000.0  # mean Earth radius in meters


def haversine_m(a: Coordinate, b: Coordinate) -> float:
    """Compute great-circle distance in meters between two points.

    Uses the half-angle/atan2 form, which stays accurate for very short distances.

    Args:
        a: First point.
        b: Second point.

    Returns:
        Distance in meters.
    """

    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    d_phi = math.radians(b.lat - a.lat)
    d_lambda = math.radians(b.lng - a.lng)

    h = math.sin(d_phi / 2.0) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    c = 2.0 * math.atan2(math.sqrt(h), math.sqrt(1.0 - h))
    return EARTH_RADIUS_M * c


def destination(origin: Coordinate, bearing_deg: float, distance_m: float) -> Coordinate:
    """Find the point reached by travelling along a great circle.

    Args:
        origin: Start point.
        bearing_deg: Initial bearing, clockwise from north, in degrees.
        distance_m: Distance to travel in meters.

    Returns:
        Destination coordinate.
    """

    ang = distance_m / EARTH_RADIUS_M
    phi1 = math.radians(origin.lat)
    theta = math.radians(bearing_deg)

    phi2 = math.asin(math.sin(phi1) * math.cos(ang) + math.cos(phi1) * math.sin(ang) * math.cos(theta))
    d_lambda = math.atan2(
        math.sin(theta) * math.sin(ang) * math.cos(phi1),
        math.cos(ang) - math.sin(phi1) * math.sin(phi2),
    )
    return Coordinate(lat=math.degrees(phi2), lng=origin.lng + math.degrees(d_lambda))


def bounding_box(track_set: Iterable[Sequence[Sample]]) -> BoundingBox:
    """Reduce all sample positions to a lat/lng bounding box.

    Args:
        track_set: Per-activity sample sequences.

    Returns:
        BoundingBox whose min/max are reduced per axis.

    Raises:
        ValueError: If there are no samples at all.
    """

    min_lat = min_lng = math.inf
    max_lat = max_lng = -math.inf
    seen = False
    for samples in track_set:
        for s in samples:
            seen = True
            lat, lng = s.position.lat, s.position.lng
            min_lat = min(min_lat, lat)
            max_lat = max(max_lat, lat)
            min_lng = min(min_lng, lng)
            max_lng = max(max_lng, lng)

    if not seen:
        raise ValueError("bounding_box() 需要至少一个采样点")
    return BoundingBox(
        min=Coordinate(lat=min_lat, lng=min_lng),
        max=Coordinate(lat=max_lat, lng=max_lng),
    )
