"""Command-line interface for gps_heatmap.

Run:
    python -m gps_heatmap render ~/activities --token $MAPBOX_ACCESS_TOKEN
    python -m gps_heatmap inspect ~/activities --activity bike
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from time import time

from gps_heatmap.basemap import MAPBOX_MAX_PIXELS, MapboxConfig, fetch_static_map
from gps_heatmap.dispatch import LoadSummary, load_tracks
from gps_heatmap.errors import HeatmapError
from gps_heatmap.image_io import blank_canvas, decode_canvas, open_in_viewer, save_png
from gps_heatmap.inspect import inspect_tracks
from gps_heatmap.models import DEFAULT_TZ, ActivityKind, TrackSet
from gps_heatmap.projection import bounds_from_values, plan_projection
from gps_heatmap.render import DEFAULT_MAX_GAP_SECONDS, RenderParams, render_with_params
from gps_heatmap.timeutils import parse_dt


def parse_color(text: str) -> tuple[int, int, int]:
    """Parse "r,g,b" into a color tuple.

    Raises:
        ValueError: Unless there are exactly three integers in 0..255.
    """

    try:
        parts = [int(s.strip()) for s in text.split(",")]
    except ValueError as exc:
        raise ValueError(f"颜色格式应为 r,g,b（例如 0,0,255），实际：{text!r}") from exc
    if len(parts) != 3 or any(not 0 <= c <= 255 for c in parts):
        raise ValueError(f"颜色格式应为 r,g,b（每个分量 0..255），实际：{text!r}")
    return parts[0], parts[1], parts[2]


def _load(args: argparse.Namespace) -> tuple[TrackSet, LoadSummary]:
    kinds = {ActivityKind.from_name(a) for a in args.activity} if args.activity else None
    start: datetime | None = parse_dt(args.start, args.tz) if args.start else None
    end: datetime | None = parse_dt(args.end, args.tz, end_of_day=True) if args.end else None
    if start is not None and end is not None and start > end:
        raise ValueError("开始时间不能晚于结束时间")
    return load_tracks(args.paths, kinds, start, end)


def _print_load_summary(summary: LoadSummary) -> None:
    print(
        f"文件：total={summary.files_total}, loaded={summary.files_loaded}, "
        f"empty={summary.files_empty}, failed={summary.files_failed}, points={summary.points}"
    )
    for path, reason in summary.failures:
        print(f"  [SKIP] {path}: {reason}", file=sys.stderr)


def _cmd_render(args: argparse.Namespace) -> int:
    try:
        color = parse_color(args.color)
        if args.intensity <= 0:
            raise ValueError("--intensity 必须大于 0")
        if not 0.0 <= args.min_alpha <= 1.0:
            raise ValueError("--min-alpha 必须在 0 到 1 之间")
        if args.pixels <= 0 or args.scale <= 0:
            raise ValueError("--pixels 与 --scale 必须大于 0")
        if not args.no_basemap:
            if not args.token:
                raise ValueError(
                    "需要 Mapbox access token（--token 或环境变量 MAPBOX_ACCESS_TOKEN），或使用 --no-basemap"
                )
            if args.scale not in (1.0, 2.0):
                raise ValueError("使用 Mapbox 底图时 --scale 只能是 1 或 2")
            if args.pixels > MAPBOX_MAX_PIXELS:
                raise ValueError(f"使用 Mapbox 底图时 --pixels 不能超过 {MAPBOX_MAX_PIXELS}")
        track_set, summary = _load(args)
    except ValueError as exc:
        print(f"参数错误：{exc}", file=sys.stderr)
        return 1

    _print_load_summary(summary)
    params = RenderParams(
        color=color,
        intensity_factor=args.intensity,
        min_alpha=args.min_alpha,
        max_gap_seconds=args.max_gap_seconds,
    )

    try:
        bounds = bounds_from_values(*args.bounds) if args.bounds else None
        _, projection = plan_projection(track_set, args.pixels, args.scale, bounds)
        if args.no_basemap:
            size = int(round(args.pixels * args.scale))
            canvas = blank_canvas(size, size)
        else:
            cfg = MapboxConfig(access_token=args.token, style=args.style)
            canvas = decode_canvas(fetch_static_map(cfg, projection, args.pixels, retina=args.scale == 2.0))
    except HeatmapError as exc:
        print(f"错误：{exc}", file=sys.stderr)
        return 2

    render_with_params(canvas, projection, track_set, params)
    out = save_png(canvas, args.out or f"heatmap_{int(time())}.png")
    print(f"轨迹数={len(track_set)}，zoom={projection.zoom:.3f}")
    print(f"已导出：{out}")
    if args.open:
        open_in_viewer(out)
    return 0


def _cmd_inspect(args: argparse.Namespace) -> int:
    try:
        track_set, summary = _load(args)
    except ValueError as exc:
        print(f"参数错误：{exc}", file=sys.stderr)
        return 1

    res = inspect_tracks(track_set)

    print("### 文件")
    _print_load_summary(summary)
    print()

    print("### 轨迹")
    print(f"tracks={res.tracks}, points={res.points}, with_time={res.points_with_time}")
    print()

    if res.min_time is not None and res.max_time is not None:
        print("### 时间范围（UTC）")
        print(f"start={res.min_time.isoformat(sep=' ')}, end={res.max_time.isoformat(sep=' ')}")
        print()

    if res.delta is not None:
        print("### 采样间隔（秒）")
        print(
            f"count={res.delta.count}, min={res.delta.min_s:.3f}, median={res.delta.median_s:.3f}, "
            f"mean={res.delta.mean_s:.3f}, p95={res.delta.p95_s:.3f}, max={res.delta.max_s:.3f}"
        )
        print()

    print("### 经纬度范围")
    print(f"lat=[{res.min_lat}, {res.max_lat}], lng=[{res.min_lng}, {res.max_lng}]")
    print()

    if args.json:
        import json

        payload = asdict(res) | {
            "files_total": summary.files_total,
            "files_loaded": summary.files_loaded,
            "files_empty": summary.files_empty,
            "files_failed": summary.files_failed,
        }
        print(json.dumps(payload, ensure_ascii=False, indent=2, default=str))
    return 0 if track_set else 2


def _add_input_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("paths", nargs="+", help="GPX/TCX 文件或目录（目录只读取一层）")
    p.add_argument(
        "--activity",
        action="append",
        choices=[k.value for k in ActivityKind],
        default=None,
        help="只保留该运动类型，可重复指定（默认全部）",
    )
    p.add_argument("--start", type=str, default=None, help="活动开始时间下限（例如 2024-05-01 00:00:00）")
    p.add_argument("--end", type=str, default=None, help="活动开始时间上限（例如 2024-05-31，只写日期时包含当天）")
    p.add_argument("--tz", type=str, default=DEFAULT_TZ, help="--start/--end 未带时区时使用的时区（IANA）")


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser."""

    p = argparse.ArgumentParser(prog="gps_heatmap")
    p.add_argument("-v", "--verbose", action="store_true", help="输出 INFO 级别日志")
    p.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="日志级别（默认 WARNING）",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    p_r = sub.add_parser("render", help="把所有轨迹渲染为热力图 PNG")
    _add_input_args(p_r)
    p_r.add_argument("--pixels", type=int, default=1280, help="请求的底图边长（像素）")
    p_r.add_argument("--scale", type=float, default=2.0, help="实际图片分辨率 / 请求分辨率（@2x 底图为 2）")
    p_r.add_argument("--color", type=str, default="0,0,255", help="热力图颜色 r,g,b")
    p_r.add_argument("--intensity", type=float, default=1.0, help="75 分位密度像素的不透明度（>0，越大越浓）")
    p_r.add_argument("--min-alpha", type=float, default=0.3, help="所有被经过像素的不透明度下限（0..1），稀疏轨迹也保持可见")
    p_r.add_argument(
        "--max-gap-seconds",
        type=float,
        default=DEFAULT_MAX_GAP_SECONDS,
        help="相邻采样点时间间隔超过该值时不连线（视为信号中断）",
    )
    p_r.add_argument(
        "--bounds",
        type=float,
        nargs=4,
        metavar=("MIN_LAT", "MIN_LNG", "MAX_LAT", "MAX_LNG"),
        default=None,
        help="手动指定地图范围（不再根据轨迹自动计算）",
    )
    p_r.add_argument(
        "--token",
        type=str,
        default=os.environ.get("MAPBOX_ACCESS_TOKEN"),
        help="Mapbox access token（默认读取环境变量 MAPBOX_ACCESS_TOKEN）",
    )
    p_r.add_argument("--style", type=str, default="mapbox/streets-v11", help="Mapbox 样式")
    p_r.add_argument("--no-basemap", action="store_true", help="不下载底图，使用白色画布")
    p_r.add_argument("--out", type=str, default=None, help="输出 PNG 路径（默认 heatmap_<时间戳>.png）")
    p_r.add_argument("--open", action="store_true", help="完成后用系统默认程序打开图片")
    p_r.set_defaults(func=_cmd_render)

    p_i = sub.add_parser("inspect", help="统计轨迹文件的点数/时间范围/采样间隔/经纬度范围")
    _add_input_args(p_i)
    p_i.add_argument("--json", action="store_true", help="额外输出JSON（便于后处理）")
    p_i.set_defaults(func=_cmd_inspect)

    return p


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint."""

    parser = build_parser()
    args = parser.parse_args(argv)
    level = args.log_level or ("INFO" if args.verbose else "WARNING")
    logging.basicConfig(level=getattr(logging, level), format="%(levelname)s %(name)s: %(message)s")
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
