"""Project a bounding box onto a square pixel canvas."""

from __future__ import annotations

import logging
import math
from typing import Final

from gps_heatmap.errors import DegenerateBoundsError, EmptyTrackSetError
from gps_heatmap.geo import bounding_box, destination, haversine_m
from gps_heatmap.models import BoundingBox, Coordinate, MapProjection, TrackSet

logger = logging.getLogger(__name__)

# Keeps the extreme points ~5% away from each edge.
PADDING_FACTOR: Final[float] = 1.1
# A quarter of the equatorial circumference; with the -7 offset this is log2(C * cos(lat) / (512 * m_per_px)).
ZOOM_BASE_METERS: Final[float] = 10_018_755.0
ZOOM_OFFSET: Final[float] = 7.0


def project(pixel_size: int, bbox: BoundingBox, scale_multiplier: float = 1.0) -> MapProjection:
    """Compute center, zoom and a linear lat/lng -> pixel transform for a bounding box.

    The projection window is square regardless of the box's aspect ratio. Callers must make
    sure the box has a positive extent on both axes (see ``plan_projection``).

    Args:
        pixel_size: Requested canvas edge length in pixels.
        bbox: Area that must be visible.
        scale_multiplier: Ratio between delivered and requested image resolution
            (2.0 for a "@2x" base map).

    Returns:
        MapProjection.
    """

    pixels = float(pixel_size)
    lat = bbox.min.lat + (bbox.max.lat - bbox.min.lat) / 2.0
    lng = bbox.min.lng + (bbox.max.lng - bbox.min.lng) / 2.0
    center = Coordinate(lat=lat, lng=lng)

    # width/height measured through the center; inaccurate towards the edges of very large maps
    width_m = haversine_m(Coordinate(lat=lat, lng=bbox.min.lng), Coordinate(lat=lat, lng=bbox.max.lng))
    height_m = haversine_m(Coordinate(lat=bbox.min.lat, lng=lng), Coordinate(lat=bbox.max.lat, lng=lng))
    map_meters = max(width_m, height_m)
    meters_per_pixel = map_meters / pixels * PADDING_FACTOR

    zoom = math.log2(ZOOM_BASE_METERS * math.cos(math.radians(lat)) / meters_per_pixel) - ZOOM_OFFSET

    half = meters_per_pixel * pixels / 2.0
    diagonal = math.hypot(half, half)
    pixel_min = destination(center, 315.0, diagonal)
    pixel_max = destination(center, 135.0, diagonal)

    scale = Coordinate(
        lat=pixels / (pixel_max.lat - pixel_min.lat) * scale_multiplier,
        lng=pixels / (pixel_max.lng - pixel_min.lng) * scale_multiplier,
    )
    return MapProjection(center=center, pixel_min=pixel_min, pixel_max=pixel_max, zoom=zoom, scale=scale)


def bounds_from_values(min_lat: float, min_lng: float, max_lat: float, max_lng: float) -> BoundingBox:
    """Build an explicit bounding box override, rejecting non-positive extents."""

    bbox = BoundingBox(min=Coordinate(lat=min_lat, lng=min_lng), max=Coordinate(lat=max_lat, lng=max_lng))
    _check_extent(bbox)
    return bbox


def _check_extent(bbox: BoundingBox) -> None:
    if not (bbox.lat_extent > 0 and bbox.lng_extent > 0):
        raise DegenerateBoundsError(
            f"边界范围无效：lat=[{bbox.min.lat}, {bbox.max.lat}], lng=[{bbox.min.lng}, {bbox.max.lng}]"
            "（经纬度跨度都必须大于 0）"
        )


def plan_projection(
    track_set: TrackSet,
    pixel_size: int,
    scale_multiplier: float = 1.0,
    bounds: BoundingBox | None = None,
) -> tuple[BoundingBox, MapProjection]:
    """Run-level guards plus projection.

    Args:
        track_set: Loaded tracks.
        pixel_size: Requested canvas edge length in pixels.
        scale_multiplier: See ``project``.
        bounds: Optional explicit bounding box that replaces the one derived from the data.

    Returns:
        (bounding box used, projection)

    Raises:
        EmptyTrackSetError: If no activity survived loading/filtering.
        DegenerateBoundsError: If the box has no area.
    """

    if not track_set:
        raise EmptyTrackSetError("没有任何文件产生有效的轨迹点（检查路径与过滤条件）")
    bbox = bounds if bounds is not None else bounding_box(track_set)
    _check_extent(bbox)

    projection = project(pixel_size, bbox, scale_multiplier)
    logger.info(
        "投影：center=(%.6f, %.6f) zoom=%.3f scale=(%.3f, %.3f)",
        projection.center.lat,
        projection.center.lng,
        projection.zoom,
        projection.scale.lat,
        projection.scale.lng,
    )
    return bbox, projection
