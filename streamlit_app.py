from __future__ import annotations

from datetime import date, datetime, time, timedelta, tzinfo
from pathlib import Path

import streamlit as st

from gps_heatmap.basemap import MapboxConfig, fetch_static_map
from gps_heatmap.dispatch import load_tracks
from gps_heatmap.errors import HeatmapError
from gps_heatmap.image_io import blank_canvas, decode_canvas, encode_png
from gps_heatmap.inspect import inspect_tracks
from gps_heatmap.models import DEFAULT_TZ, ActivityKind, TrackSet
from gps_heatmap.projection import plan_projection
from gps_heatmap.render import DEFAULT_MAX_GAP_SECONDS, RenderParams, render_with_params
from gps_heatmap.timeutils import tzinfo_from_name


def _hex_to_rgb(value: str) -> tuple[int, int, int]:
    s = value.lstrip("#")
    return int(s[0:2], 16), int(s[2:4], 16), int(s[4:6], 16)


def _range_to_datetimes(start_d: date, end_d: date, tz: tzinfo) -> tuple[datetime, datetime]:
    """Convert a date range to [start 00:00, end+1 00:00) in tz."""

    start_dt = datetime.combine(start_d, time.min).replace(tzinfo=tz)
    end_dt = datetime.combine(end_d + timedelta(days=1), time.min).replace(tzinfo=tz) - timedelta(microseconds=1)
    return start_dt, end_dt


def _dir_mtime(path: str) -> float:
    p = Path(path)
    if not p.exists():
        return 0.0
    if p.is_file():
        return p.stat().st_mtime
    return max((c.stat().st_mtime for c in p.iterdir() if c.is_file()), default=p.stat().st_mtime)


@st.cache_data(show_spinner=False)
def _load(
    path: str,
    kinds: tuple[str, ...],
    start: datetime | None,
    end: datetime | None,
    mtime: float,
) -> TrackSet:
    _ = mtime  # part of cache key so updated files reload automatically
    activity_filter = {ActivityKind.from_name(k) for k in kinds} or None
    track_set, _ = load_tracks([path], activity_filter, start, end)
    return track_set


def main() -> None:
    st.set_page_config(page_title="GPS 轨迹热力图", layout="wide")
    st.title("GPS 轨迹热力图")

    with st.sidebar:
        st.subheader("数据")
        tracks_path = st.text_input("GPX/TCX 文件或目录", value="sample_data")
        kinds = st.multiselect("运动类型（留空=全部）", options=[k.value for k in ActivityKind], default=[])
        tz_name = st.text_input("时区（IANA）", value=DEFAULT_TZ)
        try:
            tz = tzinfo_from_name(tz_name)
        except ValueError as exc:
            st.error(str(exc))
            return
        use_range = st.checkbox("按日期过滤", value=False)
        today = datetime.now(tz).date()
        start_d = st.date_input("开始日期", value=today.replace(day=1), disabled=not use_range)
        end_d = st.date_input("结束日期", value=today, disabled=not use_range)

        st.subheader("渲染")
        pixels = st.number_input("边长（像素）", value=640, min_value=64, max_value=1280, step=64)
        color = st.color_picker("颜色", value="#0000FF")
        intensity = st.number_input("intensity（75 分位密度的不透明度）", value=1.0, min_value=0.01, step=0.1)
        min_alpha = st.slider("最小不透明度", min_value=0.0, max_value=1.0, value=0.3, step=0.05)
        with st.expander("高级参数（通常不用改）", expanded=False):
            max_gap_seconds = st.number_input(
                "max_gap_seconds（默认 10s）", value=DEFAULT_MAX_GAP_SECONDS, min_value=0.0, step=1.0
            )
            token = st.text_input("Mapbox access token（留空则使用白色画布）", value="", type="password")
            style = st.text_input("Mapbox 样式", value="mapbox/streets-v11")

    if not Path(tracks_path).exists():
        st.error(f"找不到路径：{tracks_path!r}。可以先运行 python -m gps_heatmap.sample 生成示例数据。")
        return
    if use_range and start_d > end_d:
        st.error("开始日期不能晚于结束日期。")
        return

    start_dt: datetime | None = None
    end_dt: datetime | None = None
    if use_range:
        start_dt, end_dt = _range_to_datetimes(start_d, end_d, tz)

    with st.spinner("正在读取轨迹文件 ..."):
        track_set = _load(tracks_path, tuple(sorted(kinds)), start_dt, end_dt, _dir_mtime(tracks_path))

    res = inspect_tracks(track_set)
    c1, c2, c3 = st.columns(3)
    c1.metric("轨迹数", str(res.tracks))
    c2.metric("采样点数", str(res.points))
    c3.metric("采样间隔中位数（秒）", f"{res.delta.median_s:.1f}" if res.delta else "-")

    scale = 2.0 if token else 1.0
    try:
        _, projection = plan_projection(track_set, int(pixels), scale)
        if token:
            cfg = MapboxConfig(access_token=token, style=style)
            canvas = decode_canvas(fetch_static_map(cfg, projection, int(pixels), retina=True))
        else:
            canvas = blank_canvas(int(pixels), int(pixels))
    except HeatmapError as exc:
        st.error(str(exc))
        return

    params = RenderParams(
        color=_hex_to_rgb(color),
        intensity_factor=float(intensity),
        min_alpha=float(min_alpha),
        max_gap_seconds=float(max_gap_seconds),
    )
    render_with_params(canvas, projection, track_set, params)

    caption = f"center=({projection.center.lat:.5f}, {projection.center.lng:.5f}) zoom={projection.zoom:.2f}"
    st.image(canvas, caption=caption)
    st.download_button("下载 PNG", data=encode_png(canvas), file_name="heatmap.png", mime="image/png")

    st.caption("说明：日期范围按所选时区计算，按活动开始时间过滤；区间为 [开始日 00:00, 结束日+1 00:00)。")


if __name__ == "__main__":
    main()
