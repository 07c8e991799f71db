"""Base map images from the Mapbox Static Images API.

Uses only the Python standard library for HTTP, like the rest of the project's network code.
"""

from __future__ import annotations

import logging
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from typing import Final

from gps_heatmap.errors import BasemapError
from gps_heatmap.models import MapProjection

logger = logging.getLogger(__name__)

MAPBOX_MAX_PIXELS: Final[int] = 1280
MAPBOX_MIN_ZOOM: Final[float] = 0.0
MAPBOX_MAX_ZOOM: Final[float] = 22.0


@dataclass(frozen=True, slots=True)
class MapboxConfig:
    """Configuration for the Mapbox static map request."""

    access_token: str
    base_url: str = "https://api.mapbox.com/styles/v1"
    style: str = "mapbox/streets-v11"
    timeout_seconds: float = 30.0
    user_agent: str = "gps-heatmap/0.1.0"


def static_map_url(cfg: MapboxConfig, projection: MapProjection, pixel_size: int, retina: bool) -> str:
    """Build the static image URL for a projection's center and zoom."""

    zoom = min(MAPBOX_MAX_ZOOM, max(MAPBOX_MIN_ZOOM, projection.zoom))
    if zoom != projection.zoom:
        logger.warning("缩放级别 %.3f 超出 Mapbox 范围，已截断为 %.3f", projection.zoom, zoom)
    size = f"{pixel_size}x{pixel_size}{'@2x' if retina else ''}"
    query = urllib.parse.urlencode({"access_token": cfg.access_token})
    return (
        f"{cfg.base_url}/{cfg.style}/static/"
        f"{projection.center.lng},{projection.center.lat},{zoom}/{size}?{query}"
    )


def fetch_static_map(cfg: MapboxConfig, projection: MapProjection, pixel_size: int, retina: bool = True) -> bytes:
    """Download the base map image (PNG bytes).

    Raises:
        BasemapError: On any HTTP or network failure, or invalid size.
    """

    if not 0 < pixel_size <= MAPBOX_MAX_PIXELS:
        raise BasemapError(f"Mapbox 图片边长必须在 1..{MAPBOX_MAX_PIXELS} 之间，实际：{pixel_size}")
    url = static_map_url(cfg, projection, pixel_size, retina)
    req = urllib.request.Request(
        url,
        headers={"User-Agent": cfg.user_agent, "Accept": "image/png"},
        method="GET",
    )
    logger.info(
        "请求底图：center=(%.6f, %.6f) zoom=%.3f", projection.center.lat, projection.center.lng, projection.zoom
    )
    try:
        with urllib.request.urlopen(req, timeout=cfg.timeout_seconds) as resp:  # noqa: S310
            return resp.read()
    except urllib.error.HTTPError as exc:
        raise BasemapError(f"Mapbox 返回 HTTP {exc.code}：{exc.reason}") from exc
    except (urllib.error.URLError, TimeoutError, OSError) as exc:
        raise BasemapError(f"请求 Mapbox 失败：{exc}") from exc
