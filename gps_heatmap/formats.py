"""Shared machinery for the streaming XML track parsers.

Each format is a ``TrackFormat``: it recognizes its root element and turns the document
text into per-activity lists of samples. Parsing is a single forward pass over pull-parser events;
finished elements are cleared and detached, so no document tree is kept around.
"""

from __future__ import annotations

import io
import logging
import math
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import AbstractSet, Iterator

from gps_heatmap.errors import NumericFormatError, StructureError, TruncatedError, UnexpectedRootError
from gps_heatmap.models import ActivityKind, Coordinate, Sample, TimeWindow
from gps_heatmap.timeutils import parse_timestamp

logger = logging.getLogger(__name__)


def local_name(tag: str, namespaces: tuple[str, ...] = ()) -> str:
    """Return the local name of a tag if it is un-namespaced or in one of ``namespaces``.

    Tags from foreign namespaces (extensions) are returned unchanged, e.g. "{ns}hr",
    so they never collide with the format's own element names.
    """

    if not tag.startswith("{"):
        return tag
    ns, _, local = tag[1:].partition("}")
    if namespaces and ns.startswith(namespaces):
        return local
    return tag


def iter_events(text: str) -> Iterator[tuple[str, ET.Element]]:
    """Yield ("start" | "end", element) pull events for a document.

    Input is fed line by line, so a consumer that stops early never makes the parser
    look at the rest of the document.

    Raises:
        StructureError: If the XML is not well-formed.
        TruncatedError: If input ends while an element is open.
    """

    parser = ET.XMLPullParser(events=("start", "end"))
    open_elems: list[ET.Element] = []
    try:
        for line in io.StringIO(text.lstrip("\ufeff \t\r\n")):
            parser.feed(line)
            for event, elem in parser.read_events():
                if event == "start":
                    open_elems.append(elem)
                    yield event, elem
                    continue
                yield event, elem
                open_elems.pop()
                elem.clear()
                if open_elems:
                    open_elems[-1].remove(elem)
        if open_elems:
            raise TruncatedError(f"文档在 <{open_elems[-1].tag}> 内意外结束")
        parser.close()
    except ET.ParseError as exc:
        raise StructureError(f"XML 格式错误：{exc}") from exc


def sniff_root(text: str) -> str | None:
    """Return the local name of the document's root element.

    Raises:
        StructureError: If the text is empty or not XML.
    """

    for event, elem in iter_events(text):
        if event == "start":
            return elem.tag.rpartition("}")[2]
    return None


class ContextStack:
    """Stack of open element names used to validate containment.

    Every element is pushed, so ``parent`` is always the direct parent of the element
    being looked at.
    """

    def __init__(self) -> None:
        self._names: list[str] = []

    @property
    def depth(self) -> int:
        return len(self._names)

    @property
    def parent(self) -> str | None:
        return self._names[-1] if self._names else None

    def enter(self, name: str) -> None:
        self._names.append(name)

    def leave(self) -> str:
        return self._names.pop()

    def require_parent(self, name: str, parent: str) -> None:
        """Raise StructureError unless the current top of the stack is ``parent``."""

        if self.parent != parent:
            raise StructureError(f"<{name}> 出现在 <{parent}> 之外（实际父元素：<{self.parent}>）")


def parse_coordinate(text: str | None, field: str) -> float | None:
    """Parse a coordinate token. Missing/blank -> None; garbage -> NumericFormatError."""

    if text is None or not text.strip():
        return None
    try:
        value = float(text.strip())
    except ValueError as exc:
        raise NumericFormatError(f"{field} 不是有效数字：{text!r}") from exc
    if not math.isfinite(value):
        raise NumericFormatError(f"{field} 不是有限数值：{text!r}")
    return value


def parse_time(text: str | None, field: str) -> datetime | None:
    """Parse a timestamp token. Missing/blank -> None; garbage -> NumericFormatError."""

    try:
        return parse_timestamp(text)
    except ValueError as exc:
        raise NumericFormatError(f"{field} 不是有效时间：{text!r}") from exc


@dataclass(slots=True)
class PointBuilder:
    """Scratch record filled while a point element is open."""

    lat: float | None = None
    lng: float | None = None
    time: datetime | None = None

    def build(self) -> Sample | None:
        """Return the finished sample, or None if latitude or longitude is missing."""

        if self.lat is None or self.lng is None:
            return None
        return Sample(position=Coordinate(lat=self.lat, lng=self.lng), timestamp=self.time)


@dataclass(slots=True)
class ActivityState:
    """Filter state and samples of the activity (``trk`` / ``Activity``) being read.

    Once an activity is rejected its points are no longer parsed; the rest of the
    document is still read, so later activities in the same file are unaffected.
    """

    samples: list[Sample] = field(default_factory=list)
    skip: bool = False
    start_known: bool = False

    def reject(self) -> None:
        self.skip = True
        self.samples.clear()

    def note_start(self, dt: datetime | None, window: TimeWindow, fmt_name: str) -> None:
        """Take the first timestamp seen as the activity start and check it against ``window``."""

        if dt is None or self.start_known:
            return
        self.start_known = True
        if window.bounded and not window.contains(dt):
            logger.debug("%s：活动开始时间 %s 不在时间范围内，跳过该活动", fmt_name.upper(), dt.isoformat())
            self.reject()

    def result(self) -> list[Sample]:
        return [] if self.skip else self.samples


class TrackFormat(ABC):
    """One XML track dialect.

    Subclasses set ``name``, ``root`` and ``type_tokens`` and implement ``parse_activities``.
    """

    name: str = ""
    root: str = ""
    namespaces: tuple[str, ...] = ()
    # format-specific activity type token -> ActivityKind
    type_tokens: dict[str, ActivityKind] = {}

    def sniff(self, root_name: str | None) -> bool:
        return root_name == self.root

    def local(self, elem: ET.Element) -> str:
        return local_name(elem.tag, self.namespaces)

    def type_matches(self, token: str | None, activity_filter: AbstractSet[ActivityKind] | None) -> bool:
        """Whether a declared type token passes the filter. No filter means everything passes."""

        if not activity_filter:
            return True
        kind = self.type_tokens.get((token or "").strip())
        return kind in activity_filter

    @abstractmethod
    def parse_activities(
        self,
        text: str,
        activity_filter: AbstractSet[ActivityKind] | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[list[Sample]]:
        """Parse one document into per-activity samples, honoring the type filter and time window.

        Activities that are filtered out or end up without samples are left out.

        Raises:
            ParseError: For structurally invalid, truncated or corrupt documents.
        """

    def parse(
        self,
        text: str,
        activity_filter: AbstractSet[ActivityKind] | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Sample]:
        """Samples of every matching activity in the document, in document order."""

        return [s for samples in self.parse_activities(text, activity_filter, start, end) for s in samples]


def check_root(fmt: TrackFormat, ctx: ContextStack, name: str) -> None:
    if ctx.depth == 0 and name != fmt.root:
        raise UnexpectedRootError(f"期望根元素 <{fmt.root}>，实际为 <{name}>")


def report_dropped(fmt: TrackFormat, dropped: int) -> None:
    if dropped:
        logger.warning("%s：丢弃了 %s 个缺少经纬度的轨迹点", fmt.name.upper(), dropped)
