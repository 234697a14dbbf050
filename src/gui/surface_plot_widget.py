"""
투영된 표면 플롯 위젯
Copyright (C) 2026 balguljang2 (lzpxilfe)
Licensed under the GNU General Public License v2.0 (GPL2)
Draws the projected wireframe and colored vertex points of one frame.
"""
import logging

from PyQt6.QtWidgets import QWidget, QFileDialog, QMenu
from PyQt6.QtCore import Qt, QPointF, QRectF
from PyQt6.QtGui import QPainter, QPen, QBrush, QColor, QFont, QPolygonF
import numpy as np

from ..core.logging_utils import log_once
from ..core.projector import ProjectedGeometry

_LOGGER = logging.getLogger(__name__)

WIREFRAME_GRAY = 180
POINT_RADIUS = 3.0
VIEW_PADDING = 0.08


class SurfacePlotWidget(QWidget):
    """2D plot of a ProjectedGeometry with equal axis scaling"""

    def __init__(self, title="3D Plot", parent=None):
        super().__init__(parent)
        self.title = title
        self.geometry_data = ProjectedGeometry()
        self._view = None  # (center_x, center_y, pixels_per_unit) or None(auto)
        self._drag_origin = None
        self.setMinimumSize(300, 240)
        self.setMouseTracking(False)

    def set_geometry(self, geometry: ProjectedGeometry):
        """
        프레임 데이터 설정
        Args:
            geometry: projected points/polylines; replaces the previous frame
        """
        self.geometry_data = geometry if geometry is not None else ProjectedGeometry()
        self.update()

    def _plot_rect(self) -> QRectF:
        margin = 12.0
        return QRectF(
            margin,
            margin,
            max(1.0, float(self.width()) - 2 * margin),
            max(1.0, float(self.height()) - 2 * margin),
        )

    def _compute_auto_view(self):
        bounds = self.geometry_data.bounds()
        if bounds is None:
            return None

        (min_x, min_y), (max_x, max_y) = bounds
        span_x = max(float(max_x - min_x), 1e-9)
        span_y = max(float(max_y - min_y), 1e-9)

        rect = self._plot_rect()
        pad = 1.0 + 2.0 * VIEW_PADDING
        scale = min(rect.width() / (span_x * pad), rect.height() / (span_y * pad))
        return (float(min_x + max_x) * 0.5, float(min_y + max_y) * 0.5, float(scale))

    def _current_view(self):
        if self._view is not None:
            return self._view
        return self._compute_auto_view()

    def reset_view(self):
        self._view = None
        self.update()

    def _save_image_dialog(self):
        default_name = "surface.png"
        try:
            safe_title = "".join(c if c.isalnum() or c in ("-", "_") else "_" for c in str(self.title))[:40]
            if safe_title:
                default_name = f"{safe_title}.png"
        except Exception:
            log_once(
                _LOGGER,
                ("surface_plot_widget", "safe_title"),
                logging.DEBUG,
                "Failed to derive safe default filename from title: %r",
                self.title,
                exc_info=True,
            )

        path, _ = QFileDialog.getSaveFileName(
            self,
            "Save plot image",
            default_name,
            "PNG Images (*.png);;JPEG Images (*.jpg *.jpeg);;All Files (*)",
        )
        if not path:
            return
        try:
            pix = self.grab()
            pix.save(path)
        except Exception:
            _LOGGER.exception("Failed to save plot image to %s", path)
            return

    def contextMenuEvent(self, a0):
        if a0 is None:
            return
        event = a0
        menu = QMenu(self)
        act_save = menu.addAction("Save image...")
        act_reset = menu.addAction("Reset zoom/view")
        chosen = menu.exec(event.globalPos())
        if chosen == act_save:
            self._save_image_dialog()
        elif chosen == act_reset:
            self.reset_view()

    def mouseDoubleClickEvent(self, a0):
        if a0 is None:
            return
        # 더블클릭: 뷰 초기화
        self.reset_view()

    def mousePressEvent(self, a0):
        if a0 is None:
            return
        if a0.button() == Qt.MouseButton.LeftButton:
            view = self._current_view()
            if view is not None:
                self._drag_origin = (a0.position(), view)

    def mouseMoveEvent(self, a0):
        if a0 is None or self._drag_origin is None:
            return
        start, (cx, cy, scale) = self._drag_origin
        delta = a0.position() - start
        self._view = (cx - float(delta.x()) / scale, cy + float(delta.y()) / scale, scale)
        self.update()

    def mouseReleaseEvent(self, a0):
        self._drag_origin = None

    def wheelEvent(self, a0):
        if a0 is None:
            return
        event = a0
        view = self._current_view()
        if view is None:
            return

        delta = event.angleDelta().y()
        if delta == 0:
            return

        cx, cy, scale = view
        steps = float(delta) / 120.0
        factor = float(np.power(1.1, steps))  # wheel up: zoom in
        new_scale = float(np.clip(scale * factor, 1e-6, 1e9))

        # 마우스 위치의 데이터 좌표를 고정한 채 확대/축소
        rect = self._plot_rect()
        mx = float(event.position().x()) - rect.center().x()
        my = float(event.position().y()) - rect.center().y()
        pivot_x = cx + mx / scale
        pivot_y = cy - my / scale

        self._view = (pivot_x - mx / new_scale, pivot_y + my / new_scale, new_scale)
        self.update()

    def paintEvent(self, a0):
        if a0 is None:
            return
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)

        palette = self.palette()
        painter.fillRect(self.rect(), palette.base())

        painter.setFont(QFont("Arial", 9, QFont.Weight.Bold))
        painter.setPen(palette.text().color())
        painter.drawText(12, 20, self.title)

        view = self._current_view()
        if view is None:
            painter.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter, "No data")
            return

        cx, cy, scale = view
        rect = self._plot_rect()
        ox = rect.center().x()
        oy = rect.center().y()

        def to_screen(pts: np.ndarray) -> np.ndarray:
            out = np.empty((len(pts), 2), dtype=np.float64)
            out[:, 0] = ox + (pts[:, 0] - cx) * scale
            out[:, 1] = oy - (pts[:, 1] - cy) * scale
            return out

        # 와이어프레임
        painter.setPen(QPen(QColor(WIREFRAME_GRAY, WIREFRAME_GRAY, WIREFRAME_GRAY), 1.0))
        for line in self.geometry_data.polylines:
            pts = np.asarray(line.points, dtype=np.float64)
            if len(pts) < 2:
                continue
            screen = to_screen(pts)
            painter.drawPolyline(QPolygonF([QPointF(float(x), float(y)) for x, y in screen]))

        # 정점
        if self.geometry_data.n_points:
            painter.setPen(Qt.PenStyle.NoPen)
            screen = to_screen(np.asarray(self.geometry_data.positions, dtype=np.float64))
            for (sx, sy), rgba in zip(screen, self.geometry_data.colors):
                painter.setBrush(QBrush(QColor(int(rgba[0]), int(rgba[1]), int(rgba[2]), int(rgba[3]))))
                painter.drawEllipse(QPointF(float(sx), float(sy)), POINT_RADIUS, POINT_RADIUS)

        painter.setPen(palette.placeholderText().color())
        painter.setFont(QFont("Arial", 8))
        painter.drawText(12, self.height() - 8, "Drag to pan, scroll to zoom the plot view")
