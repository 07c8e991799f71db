"""Data models for GPS samples, bounding boxes and map projections."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Final


@dataclass(frozen=True, slots=True)
class Coordinate:
    """A latitude/longitude pair in decimal degrees.

    No range validation happens here; values come from validated numeric parsing.
    """

    lat: float
    lng: float


@dataclass(frozen=True, slots=True)
class Sample:
    """A single GPS fix.

    Attributes:
        position: Where the fix was recorded.
        timestamp: Timezone-aware UTC time of the fix, or None if the record has none.
    """

    position: Coordinate
    timestamp: datetime | None = None


class ActivityKind(Enum):
    """Activity types that can be used as a filter."""

    BIKE = "bike"
    RUN = "run"
    WALK = "walk"

    @classmethod
    def from_name(cls, name: str) -> ActivityKind:
        try:
            return cls(name.strip().lower())
        except ValueError as exc:
            choices = ", ".join(k.value for k in cls)
            raise ValueError(f"未知的运动类型：{name!r}。可选：{choices}") from exc


# One inner list per activity, in chronological (source) order. Never contains empty lists.
TrackSet = list[list[Sample]]


@dataclass(frozen=True, slots=True)
class BoundingBox:
    """Axis-aligned lat/lng box. Each axis is reduced independently."""

    min: Coordinate
    max: Coordinate

    @property
    def lat_extent(self) -> float:
        return self.max.lat - self.min.lat

    @property
    def lng_extent(self) -> float:
        return self.max.lng - self.min.lng


@dataclass(frozen=True, slots=True)
class MapProjection:
    """Linear lat/lng -> pixel transform plus the center/zoom used to fetch a base map.

    Attributes:
        center: Map center.
        pixel_min: Coordinate of canvas pixel (0, 0), i.e. the padded north-west corner.
        pixel_max: Coordinate of the opposite (south-east) canvas corner.
        zoom: Web-map zoom level matching the ground resolution at the center.
        scale: Pixels per degree for each axis (lat scale is negative: y grows southwards).
    """

    center: Coordinate
    pixel_min: Coordinate
    pixel_max: Coordinate
    zoom: float
    scale: Coordinate


@dataclass(frozen=True, slots=True)
class TimeWindow:
    """Optional inclusive [start, end] bounds for an activity's start time."""

    start: datetime | None = None
    end: datetime | None = None

    @property
    def bounded(self) -> bool:
        return self.start is not None or self.end is not None

    def contains(self, dt: datetime) -> bool:
        if self.start is not None and dt < self.start:
            return False
        if self.end is not None and dt > self.end:
            return False
        return True


DEFAULT_TZ: Final[str] = "UTC"
