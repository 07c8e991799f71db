"""PNG decoding/encoding and opening the result."""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from io import BytesIO
from pathlib import Path

import numpy as np
from PIL import Image, UnidentifiedImageError

from gps_heatmap.errors import BasemapError

logger = logging.getLogger(__name__)


def decode_canvas(data: bytes) -> np.ndarray:
    """Decode image bytes into a writable (H, W, 3) uint8 array."""

    try:
        with Image.open(BytesIO(data)) as img:
            rgb = img.convert("RGB")
    except (UnidentifiedImageError, OSError) as exc:
        raise BasemapError(f"无法解码底图图片：{exc}") from exc
    return np.array(rgb, dtype=np.uint8)


def blank_canvas(width: int, height: int, fill: tuple[int, int, int] = (255, 255, 255)) -> np.ndarray:
    canvas = np.empty((height, width, 3), dtype=np.uint8)
    canvas[:, :] = fill
    return canvas


def save_png(canvas: np.ndarray, out_path: str | Path) -> Path:
    p = Path(out_path)
    if p.parent and not p.parent.exists():
        p.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(canvas).save(p, format="PNG")
    return p


def encode_png(canvas: np.ndarray) -> bytes:
    buf = BytesIO()
    Image.fromarray(canvas).save(buf, format="PNG")
    return buf.getvalue()


def open_in_viewer(path: str | Path) -> None:
    """Open a file with the platform's default viewer (best effort)."""

    p = str(path)
    try:
        if sys.platform == "darwin":
            subprocess.run(["open", p], check=False)
        elif sys.platform.startswith("win"):
            os.startfile(p)  # type: ignore[attr-defined]
        else:
            subprocess.run(["xdg-open", p], check=False)
    except OSError as exc:
        logger.warning("无法打开 %s：%s", p, exc)
