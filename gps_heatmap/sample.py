"""Generate synthetic GPX/TCX activity files for demos and tests (privacy-safe)."""

from __future__ import annotations

import argparse
import math
import random
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Final, Sequence

from gps_heatmap.models import ActivityKind, Coordinate, Sample

GPX_TYPE_BY_KIND: Final[dict[ActivityKind, str]] = {
    ActivityKind.BIKE: "1",
    ActivityKind.RUN: "9",
    ActivityKind.WALK: "10",
}
TCX_SPORT_BY_KIND: Final[dict[ActivityKind, str]] = {
    ActivityKind.BIKE: "Biking",
    ActivityKind.RUN: "Running",
    ActivityKind.WALK: "Other",
}
# rough speeds in m/s
_SPEED_BY_KIND: Final[dict[ActivityKind, float]] = {
    ActivityKind.BIKE: 7.0,
    ActivityKind.RUN: 3.0,
    ActivityKind.WALK: 1.4,
}


@dataclass(frozen=True, slots=True)
class Origin:
    name: str
    lat: float
    lng: float


DEFAULT_ORIGINS: Final[tuple[Origin, ...]] = (
    Origin("austin_downtown", 30.2672, -97.7431),
    Origin("austin_zilker", 30.2669, -97.7729),
)


def generate_activity(
    *,
    origin: Origin,
    kind: ActivityKind,
    points: int,
    start: datetime,
    seed: int,
    interval_s: float = 1.0,
) -> list[Sample]:
    """Random walk with a slowly drifting heading, one fix every ``interval_s`` seconds."""

    rng = random.Random(seed)
    lat, lng = origin.lat, origin.lng
    heading = rng.uniform(0.0, 2.0 * math.pi)
    speed = _SPEED_BY_KIND[kind]
    cur = start if start.tzinfo is not None else start.replace(tzinfo=UTC)

    out: list[Sample] = []
    for _ in range(points):
        out.append(Sample(position=Coordinate(lat=lat, lng=lng), timestamp=cur))
        heading += rng.uniform(-0.3, 0.3)
        meters = speed * interval_s
        lat += meters * math.cos(heading) / 111_320.0
        lng += meters * math.sin(heading) / (111_320.0 * math.cos(math.radians(lat)))
        cur = cur + timedelta(seconds=interval_s)
    return out


def _iso(dt: datetime | None) -> str:
    if dt is None:
        return ""
    return dt.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def gpx_document(samples: Sequence[Sample], kind: ActivityKind | None = None, name: str = "Activity") -> str:
    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<gpx version="1.1" creator="gps-heatmap" xmlns="http://www.topografix.com/GPX/1/1">',
        " <trk>",
        f"  <name>{name}</name>",
    ]
    if kind is not None:
        lines.append(f"  <type>{GPX_TYPE_BY_KIND[kind]}</type>")
    lines.append("  <trkseg>")
    for s in samples:
        lines.append(f'   <trkpt lat="{s.position.lat:.7f}" lon="{s.position.lng:.7f}">')
        if s.timestamp is not None:
            lines.append(f"    <time>{_iso(s.timestamp)}</time>")
        lines.append("   </trkpt>")
    lines += ["  </trkseg>", " </trk>", "</gpx>", ""]
    return "\n".join(lines)


def tcx_document(samples: Sequence[Sample], kind: ActivityKind = ActivityKind.RUN) -> str:
    started = _iso(samples[0].timestamp) if samples else ""
    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<TrainingCenterDatabase xmlns="http://www.garmin.com/xmlschemas/TrainingCenterDatabase/v2">',
        " <Activities>",
        f'  <Activity Sport="{TCX_SPORT_BY_KIND[kind]}">',
        f"   <Id>{started}</Id>",
        f'   <Lap StartTime="{started}">',
        "    <Track>",
    ]
    for s in samples:
        lines.append("     <Trackpoint>")
        if s.timestamp is not None:
            lines.append(f"      <Time>{_iso(s.timestamp)}</Time>")
        lines += [
            "      <Position>",
            f"       <LatitudeDegrees>{s.position.lat:.7f}</LatitudeDegrees>",
            f"       <LongitudeDegrees>{s.position.lng:.7f}</LongitudeDegrees>",
            "      </Position>",
            "     </Trackpoint>",
        ]
    lines += ["    </Track>", "   </Lap>", "  </Activity>", " </Activities>", "</TrainingCenterDatabase>", ""]
    return "\n".join(lines)


def write_sample_dir(
    out_dir: str | Path,
    *,
    activities: int = 6,
    points: int = 600,
    seed: int = 42,
    start: datetime | None = None,
) -> list[Path]:
    """Write a mix of GPX and TCX files, one activity per file, one day apart."""

    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)
    rng = random.Random(seed)
    first = start or datetime(2024, 5, 1, 7, 0, tzinfo=UTC)
    kinds = list(ActivityKind)

    written: list[Path] = []
    for i in range(activities):
        kind = kinds[i % len(kinds)]
        samples = generate_activity(
            origin=rng.choice(DEFAULT_ORIGINS),
            kind=kind,
            points=points,
            start=first + timedelta(days=i),
            seed=rng.randrange(1 << 30),
        )
        if i % 2 == 0:
            p = out / f"activity_{i:03d}.gpx"
            p.write_text(gpx_document(samples, kind, name=f"{kind.value} {i}"), encoding="utf-8")
        else:
            p = out / f"activity_{i:03d}.tcx"
            p.write_text(tcx_document(samples, kind), encoding="utf-8")
        written.append(p)
    return written


def main() -> int:
    p = argparse.ArgumentParser(description="Generate fake GPX/TCX activities for demo/testing (privacy-safe).")
    p.add_argument("--out", type=str, default="sample_data", help="Output directory")
    p.add_argument("--activities", type=int, default=6, help="Number of activity files")
    p.add_argument("--points", type=int, default=600, help="Points per activity (1 s apart)")
    p.add_argument("--seed", type=int, default=42, help="Random seed (reproducible)")
    args = p.parse_args()

    written = write_sample_dir(args.out, activities=args.activities, points=args.points, seed=args.seed)
    print(f"Generated: {args.out} (files={len(written)}, seed={args.seed})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
