"""Accumulate track visits per pixel and blend the heatmap onto a base map."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Final, Sequence

import numpy as np

from gps_heatmap.models import Coordinate, MapProjection, Sample, TrackSet

logger = logging.getLogger(__name__)

# Consecutive samples further apart in time are not connected by a line.
DEFAULT_MAX_GAP_SECONDS: Final[float] = 10.0
# Samples closer than this to any canvas edge are discarded.
EDGE_MARGIN_PX: Final[int] = 1

Color = tuple[int, int, int]


@dataclass(frozen=True, slots=True)
class RenderParams:
    """Parameters controlling accumulation and compositing."""

    color: Color = (0, 0, 255)
    # Pixels at the 75th percentile of density reach alpha == intensity_factor.
    intensity_factor: float = 1.0
    # Lower bound on the opacity of every touched pixel.
    min_alpha: float = 0.3
    max_gap_seconds: float = DEFAULT_MAX_GAP_SECONDS


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def pixel_index(
    projection: MapProjection, coord: Coordinate, width: int, height: int
) -> tuple[int, int] | None:
    """Convert a coordinate into (x, y) canvas indices.

    This is the only place where coordinates turn into array indices.

    Returns:
        (x, y), or None if the pixel is not finite or lies within EDGE_MARGIN_PX of an edge.
    """

    fx = (coord.lng - projection.pixel_min.lng) * projection.scale.lng
    fy = (coord.lat - projection.pixel_min.lat) * projection.scale.lat
    if not (math.isfinite(fx) and math.isfinite(fy)):
        return None
    x = _round_half_up(fx)
    y = _round_half_up(fy)
    if not EDGE_MARGIN_PX <= x <= width - 1 - EDGE_MARGIN_PX:
        return None
    if not EDGE_MARGIN_PX <= y <= height - 1 - EDGE_MARGIN_PX:
        return None
    return x, y


def _connected(prev: datetime | None, cur: datetime | None, max_gap_seconds: float) -> bool:
    if prev is None or cur is None:
        return False
    gap = (cur - prev).total_seconds()
    return 0.0 <= gap <= max_gap_seconds


def _draw_line(field: np.ndarray, start: tuple[int, int], stop: tuple[int, int]) -> None:
    """Increment the pixels strictly between two points (endpoints are counted by the caller)."""

    x0, y0 = start
    x1, y1 = stop
    dx = x1 - x0
    dy = y1 - y0
    if abs(dx) >= abs(dy):
        # |slope| <= 1: one pixel per column
        slope = dy / dx
        step = 1 if dx > 0 else -1
        for x in range(x0 + step, x1, step):
            field[_round_half_up(y0 + slope * (x - x0)), x] += 1
    else:
        slope = dx / dy
        step = 1 if dy > 0 else -1
        for y in range(y0 + step, y1, step):
            field[y, _round_half_up(x0 + slope * (y - y0))] += 1


def accumulate(
    shape: tuple[int, int],
    projection: MapProjection,
    track_set: Sequence[Sequence[Sample]],
    max_gap_seconds: float = DEFAULT_MAX_GAP_SECONDS,
) -> np.ndarray:
    """Build the per-pixel visit count field.

    Args:
        shape: (height, width) of the canvas.
        projection: Transform from coordinates to pixels.
        track_set: Per-activity samples.
        max_gap_seconds: Longest time gap that is still bridged with a line.

    Returns:
        int64 array of shape (height, width).
    """

    height, width = shape
    field = np.zeros((height, width), dtype=np.int64)
    off_canvas = 0

    for samples in track_set:
        prev: tuple[int, int] | None = None
        prev_time: datetime | None = None
        for s in samples:
            px = pixel_index(projection, s.position, width, height)
            if px is None:
                off_canvas += 1
                logger.debug("采样点 (%s, %s) 超出画布范围", s.position.lat, s.position.lng)
                # never bridge across a point we could not place
                prev = None
                prev_time = None
                continue

            if prev is not None and px != prev and _connected(prev_time, s.timestamp, max_gap_seconds):
                _draw_line(field, prev, px)
            x, y = px
            field[y, x] += 1
            prev = px
            prev_time = s.timestamp

    if off_canvas:
        logger.warning("%s 个采样点超出画布范围，已跳过", off_canvas)
    return field


def normalization_step(field: np.ndarray, intensity_factor: float) -> float:
    """Alpha increment per visit, tied to the 75th percentile of counts above 1.

    When no pixel was visited more than once, every touched pixel is treated as density 1.
    """

    dense = np.sort(field[field > 1], kind="stable")
    if dense.size == 0:
        return float(intensity_factor)
    p75 = int(dense[dense.size * 3 // 4])
    return float(intensity_factor) / p75


def composite(canvas: np.ndarray, field: np.ndarray, color: Color, step: float, min_alpha: float) -> np.ndarray:
    """Alpha-blend ``color`` into every pixel with a non-zero count. Mutates ``canvas``."""

    mask = field > 0
    if not mask.any():
        return canvas
    alpha = np.clip(field[mask].astype(np.float64) * step, min_alpha, 1.0)[:, np.newaxis]
    existing = canvas[mask].astype(np.float64)
    blended = np.asarray(color, dtype=np.float64) * alpha + existing * (1.0 - alpha)
    canvas[mask] = np.clip(np.floor(blended + 0.5), 0, 255).astype(np.uint8)
    return canvas


def render(
    canvas: np.ndarray,
    projection: MapProjection,
    track_set: TrackSet,
    color: Color,
    intensity_factor: float,
    min_alpha: float,
    max_gap_seconds: float = DEFAULT_MAX_GAP_SECONDS,
) -> np.ndarray:
    """Draw the heatmap of ``track_set`` onto an RGB canvas.

    Args:
        canvas: uint8 array of shape (height, width, 3), modified in place.
        projection: Projection whose scale matches the canvas resolution.
        track_set: Per-activity samples.
        color: Overlay RGB color.
        intensity_factor: Alpha reached at the 75th-percentile density (> 0).
        min_alpha: Floor for the opacity of any touched pixel, in [0, 1].
        max_gap_seconds: See ``accumulate``.

    Returns:
        The same canvas.
    """

    if canvas.ndim != 3 or canvas.shape[2] != 3 or canvas.dtype != np.uint8:
        raise ValueError(f"画布必须是 (H, W, 3) 的 uint8 数组，实际：{canvas.shape} {canvas.dtype}")

    field = accumulate(canvas.shape[:2], projection, track_set, max_gap_seconds)
    step = normalization_step(field, intensity_factor)
    logger.info("轨迹数=%s，归一化步长=%.6f，覆盖像素=%s", len(track_set), step, int(np.count_nonzero(field)))
    return composite(canvas, field, color, step, min_alpha)


def render_with_params(
    canvas: np.ndarray, projection: MapProjection, track_set: TrackSet, params: RenderParams
) -> np.ndarray:
    return render(
        canvas,
        projection,
        track_set,
        params.color,
        params.intensity_factor,
        params.min_alpha,
        params.max_gap_seconds,
    )
