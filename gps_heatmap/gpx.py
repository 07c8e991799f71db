"""GPX track parser (``<gpx><trk><trkseg><trkpt>``)."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import AbstractSet

from gps_heatmap.formats import (
    ActivityState,
    ContextStack,
    PointBuilder,
    TrackFormat,
    check_root,
    iter_events,
    parse_coordinate,
    parse_time,
    report_dropped,
)
from gps_heatmap.models import ActivityKind, Sample, TimeWindow

logger = logging.getLogger(__name__)

# Strava writes numeric <type> tokens in older exports and words in newer ones.
GPX_TYPE_TOKENS: dict[str, ActivityKind] = {
    "1": ActivityKind.BIKE,
    "9": ActivityKind.RUN,
    "10": ActivityKind.WALK,
    "cycling": ActivityKind.BIKE,
    "running": ActivityKind.RUN,
    "walking": ActivityKind.WALK,
}


class GpxFormat(TrackFormat):
    """GPX 1.0/1.1 tracks. Routes and waypoints are ignored."""

    name = "gpx"
    root = "gpx"
    namespaces = ("http://www.topografix.com/GPX/",)
    type_tokens = GPX_TYPE_TOKENS


    def parse_activities(
        self,
        text: str,
        activity_filter: AbstractSet[ActivityKind] | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[list[Sample]]:
        """Each ``<trk>`` is one activity; its segments are concatenated."""

        window = TimeWindow(start=start, end=end)
        ctx = ContextStack()
        activities: list[list[Sample]] = []
        activity: ActivityState | None = None
        point: PointBuilder | None = None
        dropped = 0

        for event, elem in iter_events(text):
            name = self.local(elem)
            if event == "start":
                check_root(self, ctx, name)
                if name == "trk":
                    activity = ActivityState()
                elif name == "trkseg":
                    ctx.require_parent("trkseg", "trk")
                elif name == "trkpt":
                    ctx.require_parent("trkpt", "trkseg")
                    if activity is not None and not activity.skip:
                        point = PointBuilder(
                            lat=parse_coordinate(elem.get("lat"), "trkpt@lat"),
                            lng=parse_coordinate(elem.get("lon"), "trkpt@lon"),
                        )
                ctx.enter(name)
                continue

            ctx.leave()
            parent = ctx.parent
            if name == "trk" and activity is not None:
                samples = activity.result()
                if samples:
                    activities.append(samples)
                activity = None
            elif activity is None or activity.skip:
                continue
            elif name == "type" and parent == "trk":
                if not self.type_matches(elem.text, activity_filter):
                    logger.debug("GPX：类型 %r 不在过滤条件内，跳过该轨迹", (elem.text or "").strip())
                    activity.reject()
                    point = None
            elif name == "time" and parent == "trkpt" and point is not None:
                point.time = parse_time(elem.text, "trkpt/time")
                # no activity header in GPX: the first timed point marks the start
                activity.note_start(point.time, window, self.name)
                if activity.skip:
                    point = None
            elif name == "trkpt" and point is not None:
                sample = point.build()
                if sample is None:
                    dropped += 1
                    logger.debug("GPX：不完整的 <trkpt>：lat=%s lon=%s", point.lat, point.lng)
                else:
                    activity.samples.append(sample)
                point = None

        report_dropped(self, dropped)
        return activities
