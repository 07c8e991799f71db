"""Time parsing utilities."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime, time, tzinfo
from typing import Iterable

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def tzinfo_from_name(tz_name: str) -> tzinfo:
    """Resolve an IANA timezone name such as "UTC" or "Europe/Berlin".

    Raises:
        ValueError: If the name is malformed or unknown on this system.
    """

    try:
        return ZoneInfo(tz_name.strip())
    except (ZoneInfoNotFoundError, ValueError, OSError) as exc:
        raise ValueError(f"无效时区：{tz_name!r}。例如可用：UTC、America/Chicago") from exc


def parse_timestamp(text: str | None) -> datetime | None:
    """Parse an ISO 8601 timestamp as found in GPX/TCX files.

    Accepts a trailing "Z" and fractional seconds. Naive values are treated as UTC.

    Args:
        text: Raw element text.

    Returns:
        Timezone-aware datetime in UTC, or None if the text is empty.

    Raises:
        ValueError: If the text is not a valid timestamp.
    """

    if text is None:
        return None
    s = text.strip()
    if not s:
        return None
    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def parse_dt(text: str, tz_name: str, *, end_of_day: bool = False) -> datetime:
    """Parse a user-supplied time bound into an aware datetime.

    A bare date ("2024-05-01") means the start of that day, or its last microsecond
    when ``end_of_day`` is set, so ``--end 2024-05-31`` includes the whole day.
    Date-times ("2024-05-01 09:30", "2024-05-01T09:30:00+02:00", "...Z") are taken
    as written; a missing offset means ``tz_name``.

    Raises:
        ValueError: If the text or the timezone name cannot be parsed.
    """

    s = text.strip()
    tz = tzinfo_from_name(tz_name)
    try:
        day = date.fromisoformat(s)
    except ValueError:
        pass
    else:
        return datetime.combine(day, time.max if end_of_day else time.min, tzinfo=tz)

    try:
        dt = datetime.fromisoformat(s)
    except ValueError as exc:
        raise ValueError(f"无法解析时间：{text!r}。建议格式：2024-05-01 或 2024-05-01 09:30:00") from exc
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz)
    return dt.astimezone(tz)


@dataclass(frozen=True, slots=True)
class DeltaStats:
    """Sampling interval stats (seconds)."""

    count: int
    min_s: float
    median_s: float
    mean_s: float
    p95_s: float
    max_s: float


def intervals_s(times_sorted: Iterable[datetime]) -> list[float]:
    """Non-negative gaps in seconds between consecutive timestamps."""

    ts = list(times_sorted)
    return [(b - a).total_seconds() for a, b in zip(ts, ts[1:]) if b >= a]


def _nearest_rank(sorted_values: list[float], q: float) -> float:
    return sorted_values[round(q * (len(sorted_values) - 1))]


def delta_stats(deltas_s: Iterable[float]) -> DeltaStats | None:
    """Summarize sampling gaps (see ``intervals_s``); None when there are none."""

    deltas = sorted(deltas_s)
    if not deltas:
        return None
    mid, odd = divmod(len(deltas), 2)
    median = deltas[mid] if odd else (deltas[mid - 1] + deltas[mid]) / 2
    return DeltaStats(
        count=len(deltas),
        min_s=deltas[0],
        median_s=median,
        mean_s=sum(deltas) / len(deltas),
        p95_s=_nearest_rank(deltas, 0.95),
        max_s=deltas[-1],
    )
