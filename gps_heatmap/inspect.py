"""Summarize loaded tracks."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from gps_heatmap.models import Sample
from gps_heatmap.timeutils import DeltaStats, delta_stats, intervals_s


@dataclass(frozen=True, slots=True)
class InspectResult:
    """High-level track set inspection result."""

    tracks: int
    points: int
    points_with_time: int
    min_time: datetime | None
    max_time: datetime | None
    delta: DeltaStats | None
    min_lat: float | None
    max_lat: float | None
    min_lng: float | None
    max_lng: float | None


def inspect_tracks(track_set: Sequence[Sequence[Sample]]) -> InspectResult:
    """Inspect already-loaded tracks.

    Sampling intervals are measured within each track, never across tracks.
    """

    points = [s for samples in track_set for s in samples]
    if not points:
        return InspectResult(
            tracks=len(track_set),
            points=0,
            points_with_time=0,
            min_time=None,
            max_time=None,
            delta=None,
            min_lat=None,
            max_lat=None,
            min_lng=None,
            max_lng=None,
        )

    times = [s.timestamp for s in points if s.timestamp is not None]
    deltas: list[float] = []
    for samples in track_set:
        deltas.extend(intervals_s(sorted(s.timestamp for s in samples if s.timestamp is not None)))

    lats = [s.position.lat for s in points]
    lngs = [s.position.lng for s in points]
    return InspectResult(
        tracks=len(track_set),
        points=len(points),
        points_with_time=len(times),
        min_time=min(times) if times else None,
        max_time=max(times) if times else None,
        delta=delta_stats(deltas),
        min_lat=min(lats),
        max_lat=max(lats),
        min_lng=min(lngs),
        max_lng=max(lngs),
    )
