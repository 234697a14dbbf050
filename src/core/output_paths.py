"""
Output path helpers for common exports.

Centralizes naming conventions so CLI/GUI stay in sync. Exports are named
after the expression when no explicit path is given.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Optional, Union

PathLike = Union[str, Path]

SNAPSHOT_SUFFIX = ".surface.png"
MESH_SUFFIX = ".surface.ply"
DEFAULT_STEM = "surface"
MAX_STEM_LENGTH = 48

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9]+")


def _as_path(value: PathLike) -> Path:
    return value if isinstance(value, Path) else Path(value)


def expression_stem(expression: str) -> str:
    """Filesystem-safe stem, e.g. 'sin(x) * cos(y)' -> 'sin_x_cos_y'."""
    stem = _UNSAFE_CHARS.sub("_", str(expression or "")).strip("_")
    stem = stem[:MAX_STEM_LENGTH].rstrip("_")
    return stem or DEFAULT_STEM


def _resolve_output_path(
    expression: str,
    output_path: Optional[PathLike],
    suffix: str,
    directory: Optional[PathLike],
) -> Path:
    if output_path:
        return _as_path(output_path)
    base = _as_path(directory) if directory is not None else Path.cwd()
    return base / f"{expression_stem(expression)}{suffix}"


def snapshot_output_path(
    expression: str,
    output_path: Optional[PathLike] = None,
    *,
    directory: Optional[PathLike] = None,
) -> Path:
    return _resolve_output_path(expression, output_path, SNAPSHOT_SUFFIX, directory)


def mesh_output_path(
    expression: str,
    output_path: Optional[PathLike] = None,
    *,
    directory: Optional[PathLike] = None,
) -> Path:
    return _resolve_output_path(expression, output_path, MESH_SUFFIX, directory)
