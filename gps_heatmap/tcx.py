"""TCX activity parser (Garmin Training Center Database v2)."""

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

TCX_TYPE_TOKENS: dict[str, ActivityKind] = {
    "Biking": ActivityKind.BIKE,
    "Running": ActivityKind.RUN,
    "Other": ActivityKind.WALK,
}

# element -> required direct parent
_REQUIRED_PARENT: dict[str, str] = {
    "Activity": "Activities",
    "Lap": "Activity",
    "Track": "Lap",
    "Trackpoint": "Track",
    "Time": "Trackpoint",
    "Position": "Trackpoint",
    "LatitudeDegrees": "Position",
    "LongitudeDegrees": "Position",
}


class TcxFormat(TrackFormat):
    """TCX activities. Courses and workouts are not supported."""

    name = "tcx"
    root = "TrainingCenterDatabase"
    namespaces = ("http://www.garmin.com/xmlschemas/TrainingCenterDatabase/",)
    type_tokens = TCX_TYPE_TOKENS

    def parse_activities(
        self,
        text: str,
        activity_filter: AbstractSet[ActivityKind] | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[list[Sample]]:
        """Each ``<Activity>`` is one activity.

        The activity start is ``Id``, else the first ``Lap@StartTime``, else the first
        timed trackpoint.
        """

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
                parent = _REQUIRED_PARENT.get(name)
                if parent is not None:
                    ctx.require_parent(name, parent)
                if name == "Activity":
                    activity = ActivityState()
                    sport = elem.get("Sport")
                    if not self.type_matches(sport, activity_filter):
                        logger.debug("TCX：运动类型 %r 不在过滤条件内，跳过该活动", sport)
                        activity.reject()
                elif activity is not None and not activity.skip:
                    if name == "Lap":
                        lap_start = parse_time(elem.get("StartTime"), "Lap@StartTime")
                        activity.note_start(lap_start, window, self.name)
                    elif name == "Trackpoint":
                        point = PointBuilder()
                ctx.enter(name)
                continue

            ctx.leave()
            parent = ctx.parent
            if name == "Activity" and activity is not None:
                samples = activity.result()
                if samples:
                    activities.append(samples)
                activity = None
                point = None
            elif activity is None or activity.skip:
                continue
            elif name == "Id" and parent == "Activity":
                activity.note_start(parse_time(elem.text, "Activity/Id"), window, self.name)
            elif point is None:
                continue
            elif name == "Time":
                point.time = parse_time(elem.text, "Trackpoint/Time")
                activity.note_start(point.time, window, self.name)
                if activity.skip:
                    point = None
            elif name == "LatitudeDegrees":
                point.lat = parse_coordinate(elem.text, "LatitudeDegrees")
            elif name == "LongitudeDegrees":
                point.lng = parse_coordinate(elem.text, "LongitudeDegrees")
            elif name == "Trackpoint":
                sample = point.build()
                if sample is None:
                    # paused/indoor segments commonly carry no <Position>
                    dropped += 1
                    logger.debug("TCX：不完整的 <Trackpoint>：lat=%s lng=%s", point.lat, point.lng)
                else:
                    activity.samples.append(sample)
                point = None

        report_dropped(self, dropped)
        return activities
