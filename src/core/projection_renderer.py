"""
Projection Renderer Module
투영 결과를 PNG 이미지로 저장

Rasterizes a ProjectedGeometry with PIL: uniform scale (aspect 1), screen Y
pointing up, gray wireframe underneath colored vertex dots.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Tuple, Union

import numpy as np
from PIL import Image, ImageDraw

from .logging_utils import log_duration
from .projector import ProjectedGeometry

_LOGGER = logging.getLogger(__name__)

RGB = Tuple[int, int, int]

WIREFRAME_COLOR: RGB = (180, 180, 180)
POINT_RADIUS = 3


def _view_transform(
    bounds: Optional[np.ndarray],
    width: int,
    height: int,
    margin: int,
) -> Tuple[float, float, float, float, float]:
    """(scale, data_cx, data_cy, img_cx, img_cy) fitting bounds into the image."""
    img_cx = width / 2.0
    img_cy = height / 2.0
    if bounds is None:
        return 1.0, 0.0, 0.0, img_cx, img_cy

    (min_x, min_y), (max_x, max_y) = bounds
    span_x = float(max_x - min_x)
    span_y = float(max_y - min_y)
    if span_x < 1e-12:
        span_x = 1.0
    if span_y < 1e-12:
        span_y = 1.0

    avail_w = max(1.0, float(width - 2 * margin))
    avail_h = max(1.0, float(height - 2 * margin))
    scale = min(avail_w / span_x, avail_h / span_y)
    return scale, float(min_x + max_x) * 0.5, float(min_y + max_y) * 0.5, img_cx, img_cy


def render_projection(
    geometry: ProjectedGeometry,
    *,
    width: int = 1024,
    height: Optional[int] = None,
    background: RGB = (255, 255, 255),
    margin: int = 20,
    line_color: RGB = WIREFRAME_COLOR,
    point_radius: int = POINT_RADIUS,
) -> Image.Image:
    """
    투영 결과 래스터화

    Args:
        geometry: projected points/polylines of one frame
        width: image width in pixels
        height: image height (defaults to width)
        background: RGB fill
        margin: empty border in pixels

    Returns:
        RGB PIL image
    """
    width = max(int(width), 1)
    height = max(int(height if height is not None else width), 1)

    img = Image.new("RGB", (width, height), color=tuple(background))
    if geometry.is_empty:
        return img

    with log_duration(_LOGGER, "Rendered %dx%d projection", width, height):
        _draw_geometry(img, geometry, margin=margin, line_color=line_color, point_radius=point_radius)
    return img


def _draw_geometry(
    img: Image.Image,
    geometry: ProjectedGeometry,
    *,
    margin: int,
    line_color: RGB,
    point_radius: int,
) -> None:
    width, height = img.size
    draw = ImageDraw.Draw(img)
    scale, data_cx, data_cy, img_cx, img_cy = _view_transform(geometry.bounds(), width, height, margin)

    def to_screen(pts: np.ndarray) -> np.ndarray:
        out = np.empty_like(pts, dtype=np.float64)
        out[:, 0] = img_cx + (pts[:, 0] - data_cx) * scale
        out[:, 1] = img_cy - (pts[:, 1] - data_cy) * scale  # 화면 Y축 뒤집기
        return out

    for line in geometry.polylines:
        pts = np.asarray(line.points, dtype=np.float64)
        pts = pts[np.all(np.isfinite(pts), axis=1)]
        if len(pts) < 2:
            continue
        screen = to_screen(pts)
        draw.line([(float(x), float(y)) for x, y in screen], fill=tuple(line_color), width=1)

    if geometry.n_points:
        screen = to_screen(np.asarray(geometry.positions, dtype=np.float64))
        r = float(point_radius)
        for (sx, sy), rgba in zip(screen, geometry.colors):
            if not (np.isfinite(sx) and np.isfinite(sy)):
                continue
            fill = (int(rgba[0]), int(rgba[1]), int(rgba[2]))
            draw.ellipse([sx - r, sy - r, sx + r, sy + r], fill=fill)


def save_projection(
    geometry: ProjectedGeometry,
    filepath: Union[str, Path],
    *,
    dpi: int = 300,
    width: int = 1024,
    height: Optional[int] = None,
) -> str:
    """
    Render and save a snapshot (format from the file suffix, PNG recommended).

    Returns:
        saved path as string
    """
    out_path = Path(filepath)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    img = render_projection(geometry, width=width, height=height)
    img.save(str(out_path), dpi=(dpi, dpi))
    _LOGGER.info("Saved projection snapshot: %s (%dx%d)", out_path, img.width, img.height)
    return str(out_path)
