"""
Runtime defaults for CLI/GUI processing.

Values can be overridden via environment variables to avoid hardcoded tuning
in multiple entrypoints. Out-of-range or unparsable overrides fall back to the
built-in default instead of failing.
"""

from __future__ import annotations

from dataclasses import dataclass
import math
import os


ENV_EXPRESSION = "SURFACEGRAPHER_EXPRESSION"
ENV_RESOLUTION = "SURFACEGRAPHER_RESOLUTION"
ENV_RANGE = "SURFACEGRAPHER_RANGE"
ENV_ZOOM = "SURFACEGRAPHER_ZOOM"
ENV_ROTATION_X = "SURFACEGRAPHER_ROTATION_X"
ENV_ROTATION_Y = "SURFACEGRAPHER_ROTATION_Y"
ENV_ROTATION_Z = "SURFACEGRAPHER_ROTATION_Z"
ENV_AUTO_ROTATE_STEP = "SURFACEGRAPHER_AUTO_ROTATE_STEP"
ENV_REBUILD_DEBOUNCE_MS = "SURFACEGRAPHER_REBUILD_DEBOUNCE_MS"
ENV_FRAME_INTERVAL_MS = "SURFACEGRAPHER_FRAME_INTERVAL_MS"
ENV_EXPORT_DPI = "SURFACEGRAPHER_EXPORT_DPI"
ENV_RENDER_SIZE = "SURFACEGRAPHER_RENDER_SIZE"

DEFAULT_EXPRESSION = "sin(x) * cos(y)"

# Slider bounds of the interactive shell.
MIN_RESOLUTION = 5
MAX_RESOLUTION = 50
MIN_RANGE = 0.5
MAX_RANGE = 10.0
MIN_ZOOM = 0.1
MAX_ZOOM = 5.0


@dataclass(frozen=True)
class RuntimeDefaults:
    expression: str
    resolution: int
    range: float
    zoom: float
    rotation_x: float
    rotation_y: float
    rotation_z: float
    auto_rotate_step: float
    rebuild_debounce_ms: int
    frame_interval_ms: int
    export_dpi: int
    render_size: int


def _read_int_env(
    env_name: str,
    default: int,
    *,
    min_value: int | None = None,
    max_value: int | None = None,
) -> int:
    raw = os.environ.get(env_name)
    if raw is None:
        return default
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return default

    if min_value is not None and value < min_value:
        return default
    if max_value is not None and value > max_value:
        return default
    return value


def _read_float_env(
    env_name: str,
    default: float,
    *,
    min_value: float | None = None,
    max_value: float | None = None,
) -> float:
    raw = os.environ.get(env_name)
    if raw is None:
        return default
    try:
        value = float(str(raw).strip())
    except (TypeError, ValueError):
        return default

    if not math.isfinite(value):
        return default
    if min_value is not None and value < min_value:
        return default
    if max_value is not None and value > max_value:
        return default
    return value


def clamp_resolution(value: int) -> int:
    return int(min(max(int(value), MIN_RESOLUTION), MAX_RESOLUTION))


def clamp_range(value: float) -> float:
    return float(min(max(float(value), MIN_RANGE), MAX_RANGE))


def clamp_zoom(value: float) -> float:
    return float(min(max(float(value), MIN_ZOOM), MAX_ZOOM))


def load_runtime_defaults() -> RuntimeDefaults:
    return RuntimeDefaults(
        expression=(os.environ.get(ENV_EXPRESSION) or DEFAULT_EXPRESSION).strip()
        or DEFAULT_EXPRESSION,
        resolution=_read_int_env(ENV_RESOLUTION, 20, min_value=MIN_RESOLUTION, max_value=MAX_RESOLUTION),
        range=_read_float_env(ENV_RANGE, 3.0, min_value=MIN_RANGE, max_value=MAX_RANGE),
        zoom=_read_float_env(ENV_ZOOM, 0.8, min_value=MIN_ZOOM, max_value=MAX_ZOOM),
        rotation_x=_read_float_env(ENV_ROTATION_X, 30.0, min_value=0.0, max_value=360.0),
        rotation_y=_read_float_env(ENV_ROTATION_Y, 30.0, min_value=0.0, max_value=360.0),
        rotation_z=_read_float_env(ENV_ROTATION_Z, 0.0, min_value=0.0, max_value=360.0),
        auto_rotate_step=_read_float_env(ENV_AUTO_ROTATE_STEP, 0.5, min_value=0.0, max_value=45.0),
        rebuild_debounce_ms=_read_int_env(ENV_REBUILD_DEBOUNCE_MS, 60, min_value=0, max_value=2000),
        frame_interval_ms=_read_int_env(ENV_FRAME_INTERVAL_MS, 16, min_value=1, max_value=1000),
        export_dpi=_read_int_env(ENV_EXPORT_DPI, 300, min_value=72, max_value=2400),
        render_size=_read_int_env(ENV_RENDER_SIZE, 1024, min_value=64, max_value=8192),
    )


DEFAULTS = load_runtime_defaults()
