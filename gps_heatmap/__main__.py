"""Module entry point: python -m gps_heatmap ..."""

from __future__ import annotations

from gps_heatmap.cli import main


if __name__ == "__main__":
    raise SystemExit(main())
