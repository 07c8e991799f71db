"""Route input files to the matching track format and aggregate the results."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import AbstractSet, Iterable

from gps_heatmap.errors import ParseError, UnexpectedRootError
from gps_heatmap.formats import TrackFormat, sniff_root
from gps_heatmap.gpx import GpxFormat
from gps_heatmap.models import ActivityKind, Sample, TrackSet
from gps_heatmap.tcx import TcxFormat

logger = logging.getLogger(__name__)

FORMATS: list[TrackFormat] = [GpxFormat(), TcxFormat()]


def register_format(fmt: TrackFormat) -> None:
    """Make an additional track format available to the dispatcher."""

    FORMATS.append(fmt)


def format_for_root(root_name: str | None) -> TrackFormat | None:
    for fmt in FORMATS:
        if fmt.sniff(root_name):
            return fmt
    return None


def parse_document_activities(
    text: str,
    activity_filter: AbstractSet[ActivityKind] | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> TrackSet:
    """Sniff the root element and parse the document with the matching format.

    Returns:
        One sample list per matching activity in the document.

    Raises:
        UnexpectedRootError: If no registered format handles the root element.
        ParseError: Anything the format parser raises.
    """

    root = sniff_root(text)
    fmt = format_for_root(root)
    if fmt is None:
        known = ", ".join(f"<{f.root}>" for f in FORMATS)
        raise UnexpectedRootError(f"不支持的根元素 <{root}>（支持：{known}）")
    return fmt.parse_activities(text, activity_filter, start, end)


def parse_document(
    text: str,
    activity_filter: AbstractSet[ActivityKind] | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[Sample]:
    """All matching samples of one document; see ``parse_document_activities``."""

    return [s for samples in parse_document_activities(text, activity_filter, start, end) for s in samples]


def resolve_files(paths: Iterable[str | Path]) -> list[Path]:
    """Expand input paths into a list of files.

    Files are taken as given. Directories contribute their regular files one level deep,
    sorted by name; nested directories are not followed. Symlinks are skipped, both as
    arguments and inside directories.
    """

    files: list[Path] = []
    for raw in paths:
        p = Path(raw)
        if p.is_symlink():
            logger.warning("跳过符号链接：%s", p)
        elif p.is_dir():
            try:
                entries = sorted(p.iterdir())
            except OSError as exc:
                logger.warning("无法读取目录 %s：%s", p, exc)
                continue
            for entry in entries:
                if entry.is_symlink():
                    logger.warning("跳过符号链接：%s", entry)
                elif entry.is_dir():
                    logger.debug("跳过子目录：%s", entry)
                elif entry.is_file():
                    files.append(entry)
                else:
                    logger.warning("跳过非普通文件：%s", entry)
        elif p.is_file():
            files.append(p)
        else:
            logger.warning("路径不存在或不是文件/目录：%s", p)
    return files


@dataclass(slots=True)
class LoadSummary:
    """Per-run loading statistics."""

    files_total: int = 0
    files_loaded: int = 0
    files_empty: int = 0
    files_failed: int = 0
    points: int = 0
    failures: list[tuple[Path, str]] = field(default_factory=list)


def load_tracks(
    paths: Iterable[str | Path],
    activity_filter: AbstractSet[ActivityKind] | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> tuple[TrackSet, LoadSummary]:
    """Load every input file into a TrackSet.

    One file's failure never stops the batch; it is logged and counted instead.

    Returns:
        (track_set, summary)
    """

    track_set: TrackSet = []
    summary = LoadSummary()
    for path in resolve_files(paths):
        summary.files_total += 1
        try:
            text = path.read_text(encoding="utf-8")
            activities = parse_document_activities(text, activity_filter, start, end)
        except (OSError, UnicodeDecodeError, ParseError) as exc:
            summary.files_failed += 1
            summary.failures.append((path, str(exc)))
            logger.warning("读取 %s 失败：%s", path, exc)
            continue

        if not activities:
            summary.files_empty += 1
            logger.debug("%s 没有符合条件的轨迹点", path)
            continue
        track_set.extend(activities)
        summary.files_loaded += 1
        summary.points += sum(len(samples) for samples in activities)

    logger.info(
        "已加载轨迹：%s 个文件，有效 %s，空 %s，失败 %s，共 %s 个点",
        summary.files_total,
        summary.files_loaded,
        summary.files_empty,
        summary.files_failed,
        summary.points,
    )
    return track_set, summary


def dispatch(
    paths: Iterable[str | Path],
    activity_filter: AbstractSet[ActivityKind] | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> TrackSet:
    """Load tracks from files/directories; see ``load_tracks``."""

    track_set, _ = load_tracks(paths, activity_filter, start, end)
    return track_set
