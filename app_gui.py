"""
SurfaceGrapher GUI - Main Window
Copyright (C) 2026 balguljang2 (lzpxilfe)
Licensed under the GNU General Public License v2.0 (GPL2)
수식 입력 → 3D 표면 → 회전/확대 가능한 정사투영 플롯

The window owns all widget-bound state (AppState) and passes it explicitly to
the core every frame. Everything runs on the UI thread: a frame timer drives
auto-rotation and a single-shot timer debounces resolution/range rebuilds.
"""

import logging
import sys
from dataclasses import dataclass
from pathlib import Path

from PyQt6.QtWidgets import (
    QApplication, QMainWindow, QWidget, QVBoxLayout, QHBoxLayout,
    QPushButton, QLabel, QFileDialog, QLineEdit, QGroupBox, QCheckBox,
    QComboBox, QMessageBox, QSlider, QDockWidget, QFormLayout,
)
from PyQt6.QtCore import Qt, QTimer, pyqtSignal
from PyQt6.QtGui import QAction, QColor, QKeySequence, QPalette

# Ensure repository root is on sys.path so "src" is importable.
ROOT_DIR = Path(__file__).resolve().parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from src.core.expression_engine import EXAMPLE_EXPRESSIONS, SUPPORTED_FUNCTIONS
from src.core.output_paths import mesh_output_path, snapshot_output_path
from src.core.projection_renderer import save_projection
from src.core.projector import RotationState
from src.core.runtime_defaults import (
    DEFAULTS,
    MAX_RANGE,
    MAX_RESOLUTION,
    MAX_ZOOM,
    MIN_RANGE,
    MIN_RESOLUTION,
    MIN_ZOOM,
)
from src.core.surface_session import SurfaceSession
from src.gui.surface_plot_widget import SurfacePlotWidget

_LOGGER = logging.getLogger(__name__)
_log_path: Path | None = None

APP_NAME = "SurfaceGrapher"
APP_VERSION = "0.1.0"
try:
    import src as _sg_src

    APP_VERSION = str(getattr(_sg_src, "__version__", APP_VERSION))
except ImportError:
    pass


@dataclass
class AppState:
    """Widget-bound view parameters; passed into the core by value."""
    expression: str = DEFAULTS.expression
    rotation_x: float = DEFAULTS.rotation_x
    rotation_y: float = DEFAULTS.rotation_y
    rotation_z: float = DEFAULTS.rotation_z
    zoom: float = DEFAULTS.zoom
    resolution: int = DEFAULTS.resolution
    range: float = DEFAULTS.range
    show_wireframe: bool = True
    show_points: bool = True
    auto_rotate: bool = False

    def rotation_state(self) -> RotationState:
        return RotationState(self.rotation_x, self.rotation_y, self.rotation_z, self.zoom)


class LabeledSlider(QWidget):
    """Horizontal slider over a float range with a value label."""
    valueChanged = pyqtSignal(float)

    def __init__(self, minimum, maximum, value, *, decimals=1, parent=None):
        super().__init__(parent)
        self._factor = 10 ** int(decimals)
        self._decimals = int(decimals)

        layout = QHBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)

        self.slider = QSlider(Qt.Orientation.Horizontal)
        self.slider.setRange(int(round(minimum * self._factor)), int(round(maximum * self._factor)))
        self.slider.setValue(int(round(value * self._factor)))
        self.slider.valueChanged.connect(self._on_slider)
        layout.addWidget(self.slider, 1)

        self.label = QLabel()
        self.label.setMinimumWidth(44)
        self.label.setAlignment(Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter)
        layout.addWidget(self.label)
        self._update_label()

    def value(self) -> float:
        return self.slider.value() / self._factor

    def set_value_silently(self, value: float):
        self.slider.blockSignals(True)
        self.slider.setValue(int(round(value * self._factor)))
        self.slider.blockSignals(False)
        self._update_label()

    def _update_label(self):
        self.label.setText(f"{self.value():.{self._decimals}f}")

    def _on_slider(self, _raw):
        self._update_label()
        self.valueChanged.emit(self.value())


def _dark_palette() -> QPalette:
    palette = QPalette()
    window = QColor(45, 45, 48)
    base = QColor(30, 30, 30)
    text = QColor(220, 220, 220)
    palette.setColor(QPalette.ColorRole.Window, window)
    palette.setColor(QPalette.ColorRole.WindowText, text)
    palette.setColor(QPalette.ColorRole.Base, base)
    palette.setColor(QPalette.ColorRole.AlternateBase, window)
    palette.setColor(QPalette.ColorRole.Text, text)
    palette.setColor(QPalette.ColorRole.Button, window)
    palette.setColor(QPalette.ColorRole.ButtonText, text)
    palette.setColor(QPalette.ColorRole.ToolTipBase, base)
    palette.setColor(QPalette.ColorRole.ToolTipText, text)
    palette.setColor(QPalette.ColorRole.PlaceholderText, QColor(140, 140, 140))
    palette.setColor(QPalette.ColorRole.Highlight, QColor(74, 144, 217))
    palette.setColor(QPalette.ColorRole.HighlightedText, QColor(255, 255, 255))
    return palette


class MainWindow(QMainWindow):
    """메인 윈도우"""

    def __init__(self):
        super().__init__()
        self.setWindowTitle(f"{APP_NAME} v{APP_VERSION} - 3D Function Grapher")
        self.resize(1000, 700)
        self.setMinimumSize(400, 300)

        self.state = AppState()
        self.session = SurfaceSession(resolution=self.state.resolution, domain_range=self.state.range)

        self._frame_timer = QTimer(self)
        self._frame_timer.setInterval(DEFAULTS.frame_interval_ms)
        self._frame_timer.timeout.connect(self._on_frame_tick)

        # resolution/range 슬라이더는 디바운스 후 한 번만 재생성
        self._rebuild_debounce_timer = QTimer(self)
        self._rebuild_debounce_timer.setSingleShot(True)
        self._rebuild_debounce_timer.setInterval(DEFAULTS.rebuild_debounce_ms)
        self._rebuild_debounce_timer.timeout.connect(self._apply_grid_settings)

        self.init_ui()
        self.init_menu()
        self.compile_expression()

    def init_ui(self):
        central = QWidget()
        self.setCentralWidget(central)
        layout = QVBoxLayout(central)
        layout.setContentsMargins(8, 8, 8, 8)

        self.plot = SurfacePlotWidget(title="3d_plot")
        layout.addWidget(self.plot, 1)

        # 수식 입력
        input_layout = QHBoxLayout()
        input_layout.addWidget(QLabel("Expression:"))
        self.expression_edit = QLineEdit(self.state.expression)
        self.expression_edit.returnPressed.connect(self.compile_expression)
        input_layout.addWidget(self.expression_edit, 1)

        self.btn_graph = QPushButton("Graph")
        self.btn_graph.clicked.connect(self.compile_expression)
        input_layout.addWidget(self.btn_graph)

        self.combo_examples = QComboBox()
        self.combo_examples.addItem("Select an example...")
        self.combo_examples.addItems(list(EXAMPLE_EXPRESSIONS))
        self.combo_examples.activated.connect(self._on_example_selected)
        input_layout.addWidget(self.combo_examples)
        layout.addLayout(input_layout)

        self.error_label = QLabel("")
        self.error_label.setStyleSheet("color: red;")
        self.error_label.setVisible(False)
        layout.addWidget(self.error_label)

        self._init_controls_dock()
        self.statusBar().showMessage("Ready")

    def _init_controls_dock(self):
        dock = QDockWidget("Controls", self)
        dock.setFeatures(QDockWidget.DockWidgetFeature.NoDockWidgetFeatures)
        panel = QWidget()
        panel_layout = QVBoxLayout(panel)

        # 회전/확대
        view_group = QGroupBox("View")
        view_form = QFormLayout(view_group)

        self.chk_auto_rotate = QCheckBox("Auto Rotate")
        self.chk_auto_rotate.setChecked(self.state.auto_rotate)
        self.chk_auto_rotate.toggled.connect(self._on_auto_rotate_toggled)
        view_form.addRow(self.chk_auto_rotate)

        self.slider_rot_x = LabeledSlider(0.0, 360.0, self.state.rotation_x)
        self.slider_rot_y = LabeledSlider(0.0, 360.0, self.state.rotation_y)
        self.slider_rot_z = LabeledSlider(0.0, 360.0, self.state.rotation_z)
        self.slider_zoom = LabeledSlider(MIN_ZOOM, MAX_ZOOM, self.state.zoom, decimals=2)
        self.slider_rot_x.valueChanged.connect(lambda v: self._set_view("rotation_x", v))
        self.slider_rot_y.valueChanged.connect(lambda v: self._set_view("rotation_y", v))
        self.slider_rot_z.valueChanged.connect(lambda v: self._set_view("rotation_z", v))
        self.slider_zoom.valueChanged.connect(lambda v: self._set_view("zoom", v))
        view_form.addRow("Rotation X", self.slider_rot_x)
        view_form.addRow("Rotation Y", self.slider_rot_y)
        view_form.addRow("Rotation Z", self.slider_rot_z)
        view_form.addRow("Zoom", self.slider_zoom)
        panel_layout.addWidget(view_group)

        # 그래프 설정
        graph_group = QGroupBox("Graph Settings")
        graph_form = QFormLayout(graph_group)

        self.chk_wireframe = QCheckBox("Show Wireframe")
        self.chk_wireframe.setChecked(self.state.show_wireframe)
        self.chk_wireframe.toggled.connect(lambda on: self._set_view("show_wireframe", bool(on)))
        graph_form.addRow(self.chk_wireframe)

        self.chk_points = QCheckBox("Show Points")
        self.chk_points.setChecked(self.state.show_points)
        self.chk_points.toggled.connect(lambda on: self._set_view("show_points", bool(on)))
        graph_form.addRow(self.chk_points)

        self.slider_resolution = LabeledSlider(MIN_RESOLUTION, MAX_RESOLUTION, self.state.resolution, decimals=0)
        self.slider_range = LabeledSlider(MIN_RANGE, MAX_RANGE, self.state.range, decimals=1)
        self.slider_resolution.valueChanged.connect(self._on_grid_setting_changed)
        self.slider_range.valueChanged.connect(self._on_grid_setting_changed)
        graph_form.addRow("Resolution", self.slider_resolution)
        graph_form.addRow("Range", self.slider_range)
        panel_layout.addWidget(graph_group)

        # 지원 함수 안내
        info_group = QGroupBox("Function Info")
        info_layout = QVBoxLayout(info_group)
        info_layout.addWidget(QLabel("Supported Functions:"))
        info_layout.addWidget(QLabel("- Basic: +, -, *, /, ^, %"))
        info_layout.addWidget(QLabel("- Trigonometric: sin, cos, tan"))
        info_layout.addWidget(QLabel("- Inverse trig: asin, acos, atan"))
        info_layout.addWidget(QLabel("- Hyperbolic: sinh, cosh, tanh"))
        other = [name for name in SUPPORTED_FUNCTIONS if name in ("exp", "ln", "log", "abs", "sqrt")]
        info_layout.addWidget(QLabel(f"- Other: {', '.join(other)}"))
        info_layout.addWidget(QLabel("Constants: π (pi), e"))
        panel_layout.addWidget(info_group)

        panel_layout.addStretch()
        dock.setWidget(panel)
        self.addDockWidget(Qt.DockWidgetArea.LeftDockWidgetArea, dock)

    def init_menu(self):
        menubar = self.menuBar()

        file_menu = menubar.addMenu("File")
        act_snapshot = QAction("Save Image...", self)
        act_snapshot.setShortcut(QKeySequence.StandardKey.Save)
        act_snapshot.triggered.connect(self.save_snapshot)
        file_menu.addAction(act_snapshot)

        act_export = QAction("Export Mesh...", self)
        act_export.triggered.connect(self.export_mesh)
        file_menu.addAction(act_export)

        file_menu.addSeparator()
        act_quit = QAction("Quit", self)
        act_quit.setShortcut(QKeySequence.StandardKey.Quit)
        act_quit.triggered.connect(self.close)
        file_menu.addAction(act_quit)

        theme_menu = menubar.addMenu("Theme")
        act_light = QAction("Light", self)
        act_light.triggered.connect(lambda: self.set_theme("light"))
        theme_menu.addAction(act_light)
        act_dark = QAction("Dark", self)
        act_dark.triggered.connect(lambda: self.set_theme("dark"))
        theme_menu.addAction(act_dark)

    # ---- expression / mesh ----

    def compile_expression(self):
        text = self.expression_edit.text()
        ok = self.session.compile(text)
        self.state.expression = text
        if ok:
            self.error_label.setVisible(False)
            self.error_label.setText("")
        else:
            self.error_label.setText(self.session.error_message or "")
            self.error_label.setVisible(True)
        self._update_status()
        self.redraw()

    def _on_example_selected(self, index: int):
        if index <= 0:
            return
        self.expression_edit.setText(self.combo_examples.itemText(index))
        self.combo_examples.setCurrentIndex(0)
        self.compile_expression()

    def _on_grid_setting_changed(self, _value):
        self.state.resolution = int(round(self.slider_resolution.value()))
        self.state.range = float(self.slider_range.value())
        self._rebuild_debounce_timer.start()

    def _apply_grid_settings(self):
        try:
            self.session.set_resolution(self.state.resolution)
            self.session.set_range(self.state.range)
        except Exception:
            _LOGGER.exception("Failed to rebuild surface (resolution=%s, range=%s)",
                              self.state.resolution, self.state.range)
            QMessageBox.critical(self, "Error", "Failed to rebuild the surface. See the log for details.")
            return
        self._update_status()
        self.redraw()

    # ---- view ----

    def _set_view(self, name: str, value):
        setattr(self.state, name, value)
        self.redraw()

    def _on_auto_rotate_toggled(self, on: bool):
        self.state.auto_rotate = bool(on)
        if self.state.auto_rotate:
            self._frame_timer.start()
        else:
            self._frame_timer.stop()

    def _on_frame_tick(self):
        if not self.state.auto_rotate:
            return
        advanced = self.state.rotation_state().advanced(DEFAULTS.auto_rotate_step)
        self.state.rotation_y = advanced.y_deg
        self.slider_rot_y.set_value_silently(advanced.y_deg)
        self.redraw()

    def redraw(self):
        geometry = self.session.frame(
            self.state.rotation_state(),
            show_wireframe=self.state.show_wireframe,
            show_points=self.state.show_points,
        )
        self.plot.set_geometry(geometry)

    def set_theme(self, name: str):
        app = QApplication.instance()
        if app is None:
            return
        if name == "dark":
            app.setPalette(_dark_palette())
        else:
            app.setPalette(app.style().standardPalette())
        self.plot.update()

    def _update_status(self):
        mesh = self.session.mesh
        if mesh is None:
            self.statusBar().showMessage("No surface")
            return
        if mesh.z_min is None:
            z_text = "z: undefined everywhere"
        else:
            z_text = f"z: [{mesh.z_min:.3g}, {mesh.z_max:.3g}]"
        self.statusBar().showMessage(
            f"{self.session.expression.text}  |  {mesh.n_vertices:,} vertices  |  "
            f"{mesh.failed_count:,} undefined  |  {z_text}"
        )

    # ---- export ----

    def save_snapshot(self):
        if not self.session.has_surface:
            return
        default = str(snapshot_output_path(self.session.expression.text))
        path, _ = QFileDialog.getSaveFileName(self, "Save image", default, "PNG Images (*.png);;All Files (*)")
        if not path:
            return
        geometry = self.session.frame(
            self.state.rotation_state(),
            show_wireframe=self.state.show_wireframe,
            show_points=self.state.show_points,
        )
        try:
            saved = save_projection(geometry, path, dpi=DEFAULTS.export_dpi, width=DEFAULTS.render_size)
        except Exception as e:
            _LOGGER.exception("Failed to save snapshot to %s", path)
            QMessageBox.critical(self, "Error", f"Failed to save image:\n\n{e}")
            return
        self.statusBar().showMessage(f"Saved: {saved}")

    def export_mesh(self):
        if not self.session.has_surface:
            return
        default = str(mesh_output_path(self.session.expression.text))
        path, _ = QFileDialog.getSaveFileName(
            self, "Export mesh", default, "Mesh Files (*.ply *.obj *.stl *.glb);;All Files (*)"
        )
        if not path:
            return
        try:
            self.session.mesh.to_trimesh().export(path)
        except Exception as e:
            _LOGGER.exception("Failed to export mesh to %s", path)
            QMessageBox.critical(self, "Error", f"Failed to export mesh:\n\n{e}")
            return
        self.statusBar().showMessage(f"Saved: {path}")


def main():
    global _log_path
    try:
        from src.core.logging_utils import setup_logging

        _log_path = setup_logging()
    except Exception:
        _log_path = None

    def _excepthook(exc_type, exc, tb):
        _LOGGER.critical("Unhandled exception", exc_info=(exc_type, exc, tb))

    sys.excepthook = _excepthook

    app = QApplication(sys.argv)
    app.setStyle('Fusion')

    try:
        window = MainWindow()
    except Exception as e:
        import traceback
        from src.core.logging_utils import format_exception_message

        _LOGGER.exception("Application crashed on startup")
        QMessageBox.critical(
            None,
            "Fatal Startup Error",
            format_exception_message(
                "Application crashed on startup:",
                f"{e}\n\n{traceback.format_exc()}",
                log_path=_log_path,
            ),
        )
        sys.exit(1)

    window.show()
    sys.exit(app.exec())


if __name__ == '__main__':
    main()
