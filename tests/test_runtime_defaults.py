from src.core.runtime_defaults import (
    DEFAULT_EXPRESSION,
    ENV_AUTO_ROTATE_STEP,
    ENV_EXPORT_DPI,
    ENV_EXPRESSION,
    ENV_FRAME_INTERVAL_MS,
    ENV_RANGE,
    ENV_REBUILD_DEBOUNCE_MS,
    ENV_RENDER_SIZE,
    ENV_RESOLUTION,
    ENV_ROTATION_X,
    ENV_ROTATION_Y,
    ENV_ROTATION_Z,
    ENV_ZOOM,
    clamp_range,
    clamp_resolution,
    clamp_zoom,
    load_runtime_defaults,
)


def _clear_runtime_env(monkeypatch):
    for key in (
        ENV_EXPRESSION,
        ENV_RESOLUTION,
        ENV_RANGE,
        ENV_ZOOM,
        ENV_ROTATION_X,
        ENV_ROTATION_Y,
        ENV_ROTATION_Z,
        ENV_AUTO_ROTATE_STEP,
        ENV_REBUILD_DEBOUNCE_MS,
        ENV_FRAME_INTERVAL_MS,
        ENV_EXPORT_DPI,
        ENV_RENDER_SIZE,
    ):
        monkeypatch.delenv(key, raising=False)


def test_runtime_defaults_without_env(monkeypatch):
    _clear_runtime_env(monkeypatch)
    defaults = load_runtime_defaults()

    assert defaults.expression == DEFAULT_EXPRESSION == "sin(x) * cos(y)"
    assert defaults.resolution == 20
    assert defaults.range == 3.0
    assert defaults.zoom == 0.8
    assert (defaults.rotation_x, defaults.rotation_y, defaults.rotation_z) == (30.0, 30.0, 0.0)
    assert defaults.auto_rotate_step == 0.5
    assert defaults.rebuild_debounce_ms == 60
    assert defaults.frame_interval_ms == 16
    assert defaults.export_dpi == 300
    assert defaults.render_size == 1024


def test_runtime_defaults_with_valid_env(monkeypatch):
    _clear_runtime_env(monkeypatch)
    monkeypatch.setenv(ENV_EXPRESSION, "  x^2 - y^2 ")
    monkeypatch.setenv(ENV_RESOLUTION, "35")
    monkeypatch.setenv(ENV_RANGE, "5.5")
    monkeypatch.setenv(ENV_ZOOM, "1.25")
    monkeypatch.setenv(ENV_ROTATION_X, "45")
    monkeypatch.setenv(ENV_AUTO_ROTATE_STEP, "2")
    monkeypatch.setenv(ENV_REBUILD_DEBOUNCE_MS, "0")
    monkeypatch.setenv(ENV_EXPORT_DPI, "600")
    monkeypatch.setenv(ENV_RENDER_SIZE, "2048")

    defaults = load_runtime_defaults()

    assert defaults.expression == "x^2 - y^2"
    assert defaults.resolution == 35
    assert defaults.range == 5.5
    assert defaults.zoom == 1.25
    assert defaults.rotation_x == 45.0
    assert defaults.auto_rotate_step == 2.0
    assert defaults.rebuild_debounce_ms == 0
    assert defaults.export_dpi == 600
    assert defaults.render_size == 2048


def test_runtime_defaults_invalid_values_fallback(monkeypatch):
    _clear_runtime_env(monkeypatch)
    monkeypatch.setenv(ENV_EXPRESSION, "   ")
    monkeypatch.setenv(ENV_RESOLUTION, "abc")
    monkeypatch.setenv(ENV_RANGE, "nan")
    monkeypatch.setenv(ENV_ZOOM, "99")
    monkeypatch.setenv(ENV_ROTATION_Y, "-10")
    monkeypatch.setenv(ENV_FRAME_INTERVAL_MS, "0")
    monkeypatch.setenv(ENV_EXPORT_DPI, "10")
    monkeypatch.setenv(ENV_RENDER_SIZE, "inf")

    defaults = load_runtime_defaults()

    assert defaults.expression == "sin(x) * cos(y)"
    assert defaults.resolution == 20
    assert defaults.range == 3.0
    assert defaults.zoom == 0.8
    assert defaults.rotation_y == 30.0
    assert defaults.frame_interval_ms == 16
    assert defaults.export_dpi == 300
    assert defaults.render_size == 1024


def test_clamp_helpers():
    assert clamp_resolution(1) == 5
    assert clamp_resolution(500) == 50
    assert clamp_resolution(12) == 12
    assert clamp_range(0.0) == 0.5
    assert clamp_range(25.0) == 10.0
    assert clamp_zoom(0.01) == 0.1
    assert clamp_zoom(7.0) == 5.0
