"""
Projector Module
회전 + 확대 후 정사투영 - 표면 메쉬를 2D 화면 좌표로 변환

Rotation is built from Euler angles in degrees and composed as Rx @ Ry @ Rz
(Z is applied first, then Y, then X). The orthographic projection keeps the
rotated X axis as screen X and the rotated Z axis as screen Y; the rotated Y
axis (depth) is discarded.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import List, Optional, Sequence, Tuple

import numpy as np
from scipy.spatial.transform import Rotation as R

from .surface_mesh import SurfaceMesh

# rotated (x, y, z) -> screen (x, y)
SCREEN_AXES = (0, 2)


def rotation_matrix(x_deg: float, y_deg: float, z_deg: float) -> np.ndarray:
    """3x3 rotation Rx @ Ry @ Rz for angles in degrees."""
    rot_x = R.from_euler("x", float(x_deg), degrees=True).as_matrix()
    rot_y = R.from_euler("y", float(y_deg), degrees=True).as_matrix()
    rot_z = R.from_euler("z", float(z_deg), degrees=True).as_matrix()
    return rot_x @ rot_y @ rot_z


@dataclass(frozen=True)
class RotationState:
    """
    View parameters owned by the UI and passed in on every frame.

    Attributes:
        x_deg, y_deg, z_deg: Euler angles in degrees
        zoom: uniform scale applied after rotation
    """
    x_deg: float = 0.0
    y_deg: float = 0.0
    z_deg: float = 0.0
    zoom: float = 1.0

    def matrix(self) -> np.ndarray:
        return rotation_matrix(self.x_deg, self.y_deg, self.z_deg)

    def advanced(self, step_deg: float) -> "RotationState":
        """Auto-rotate: Y angle + step, wrapped to [0, 360)."""
        return replace(self, y_deg=float((self.y_deg + float(step_deg)) % 360.0))


def project_points(positions: np.ndarray, rotation: np.ndarray, zoom: float) -> np.ndarray:
    """(N, 3) positions -> (N, 2) screen points."""
    pts = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
    rot = np.asarray(rotation, dtype=np.float64).reshape(3, 3)
    rotated = (pts @ rot.T) * float(zoom)
    return rotated[:, list(SCREEN_AXES)]


def project_vertex(
    position: Sequence[float] | np.ndarray,
    rotation: np.ndarray,
    zoom: float,
) -> Tuple[float, float]:
    """Rotate, scale and project one position; returns (rotated.x, rotated.z)."""
    pt = project_points(np.asarray(position, dtype=np.float64).reshape(1, 3), rotation, zoom)[0]
    return float(pt[0]), float(pt[1])


def project_all(mesh: SurfaceMesh, rotation: np.ndarray, zoom: float) -> Tuple[np.ndarray, np.ndarray]:
    """
    Project every vertex in row-major order.

    Returns:
        (positions (N, 2), colors (N, 4) uint8), parallel arrays
    """
    points = project_points(mesh.flat_positions(), rotation, zoom)
    colors = np.array(mesh.flat_colors(), dtype=np.uint8)
    return points, colors


@dataclass(frozen=True, eq=False)
class Polyline:
    """Named 2D polyline (`row_<i>` or `col_<j>`)."""
    name: str
    points: np.ndarray


def wireframe(mesh: SurfaceMesh, rotation: np.ndarray, zoom: float) -> List[Polyline]:
    """
    Grid lines of the projected surface.

    One polyline per row i across all columns, then one per column j across
    all rows: 2 * (resolution + 1) polylines of resolution + 1 points each.
    """
    rows, cols = mesh.shape
    grid = project_points(mesh.flat_positions(), rotation, zoom).reshape(rows, cols, 2)

    lines: List[Polyline] = []
    for i in range(rows):
        lines.append(Polyline(name=f"row_{i}", points=grid[i, :, :].copy()))
    for j in range(cols):
        lines.append(Polyline(name=f"col_{j}", points=grid[:, j, :].copy()))
    return lines


@dataclass(eq=False)
class ProjectedGeometry:
    """
    한 프레임의 투영 결과 (저장하지 않음)

    Attributes:
        positions: (N, 2) projected vertices (empty when points are hidden)
        colors: (N, 4) uint8 colors parallel to positions
        polylines: wireframe polylines (empty when the wireframe is hidden)
    """
    positions: np.ndarray = field(default_factory=lambda: np.zeros((0, 2), dtype=np.float64))
    colors: np.ndarray = field(default_factory=lambda: np.zeros((0, 4), dtype=np.uint8))
    polylines: List[Polyline] = field(default_factory=list)

    @property
    def n_points(self) -> int:
        return int(self.positions.shape[0])

    @property
    def is_empty(self) -> bool:
        return self.n_points == 0 and not self.polylines

    def bounds(self) -> Optional[np.ndarray]:
        """[[min_x, min_y], [max_x, max_y]] over points and polylines, or None."""
        parts = [self.positions] + [line.points for line in self.polylines]
        parts = [p for p in parts if p.size]
        if not parts:
            return None
        stacked = np.vstack(parts)
        stacked = stacked[np.all(np.isfinite(stacked), axis=1)]
        if stacked.size == 0:
            return None
        return np.array([stacked.min(axis=0), stacked.max(axis=0)])


class SurfaceProjector:
    """
    정사투영기

    Turns a mesh plus the current RotationState into the point cloud and
    wireframe the renderer draws. Holds no view state of its own.
    """

    def project(
        self,
        mesh: SurfaceMesh,
        state: RotationState,
        *,
        show_wireframe: bool = True,
        show_points: bool = True,
    ) -> ProjectedGeometry:
        rot = state.matrix()
        geometry = ProjectedGeometry()
        if show_points:
            geometry.positions, geometry.colors = project_all(mesh, rot, state.zoom)
        if show_wireframe:
            geometry.polylines = wireframe(mesh, rot, state.zoom)
        return geometry
