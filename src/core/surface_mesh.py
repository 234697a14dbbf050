"""
Surface Mesh Module
함수 z = f(x, y)를 격자 위에서 샘플링한 표면 메쉬

A square grid of (resolution + 1)^2 vertices over [-range, range]^2. Meshes are
never edited in place: every change of expression, resolution or range builds a
new SurfaceMesh through `SurfaceMesh.rebuild`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import math
from typing import Callable, Iterator, Optional, Union

import numpy as np

from .expression_engine import EvalFailure
from .height_color import MIDPOINT_HEIGHT, HeightColorMapper

_LOGGER = logging.getLogger(__name__)

Evaluator = Callable[[float, float], Union[float, None, EvalFailure]]


@dataclass(frozen=True, eq=False)
class Vertex3D:
    """
    Mesh vertex.

    Attributes:
        position: (3,) float64 [x, y, z]
        color: (r, g, b, a) 8-bit channels
    """
    position: np.ndarray
    color: tuple[int, int, int, int]

    @property
    def x(self) -> float:
        return float(self.position[0])

    @property
    def y(self) -> float:
        return float(self.position[1])

    @property
    def z(self) -> float:
        return float(self.position[2])


@dataclass(eq=False)
class SurfaceMesh:
    """
    격자 표면 메쉬 (읽기 전용)

    Attributes:
        positions: (R+1, R+1, 3) vertex positions, row i = y index, column j = x index
        colors: (R+1, R+1, 4) uint8 RGBA per vertex
        resolution: grid steps per axis (R)
        range: half-width of the sampled domain
        z_min, z_max: extent of successfully evaluated heights (None if none succeeded)
        failed_count: samples that fell back to z = 0
    """
    positions: np.ndarray
    colors: np.ndarray
    resolution: int
    range: float
    z_min: Optional[float] = None
    z_max: Optional[float] = None
    failed_count: int = 0

    _bounds: Optional[np.ndarray] = field(default=None, repr=False)

    def __post_init__(self):
        self.positions = np.array(self.positions, dtype=np.float64)
        self.colors = np.array(self.colors, dtype=np.uint8)

        n = int(self.resolution) + 1
        if self.positions.shape != (n, n, 3):
            raise ValueError(f"positions must have shape {(n, n, 3)}, got {self.positions.shape}")
        if self.colors.shape != (n, n, 4):
            raise ValueError(f"colors must have shape {(n, n, 4)}, got {self.colors.shape}")

        self.positions.setflags(write=False)
        self.colors.setflags(write=False)

    @classmethod
    def rebuild(
        cls,
        resolution: int,
        domain_range: float,
        evaluator: Evaluator,
        *,
        mapper: Optional[HeightColorMapper] = None,
    ) -> "SurfaceMesh":
        """
        Sample `evaluator` over the grid and return a new mesh.

        Pass 1 fills positions and tracks the z extent of successful samples;
        failed or non-finite samples are placed at z = 0 and ignored for the
        extent. Pass 2 colors every vertex from its normalized height, or with
        the midpoint color when the extent is degenerate.

        Args:
            resolution: grid steps per axis (>= 1)
            domain_range: half-width of the domain (> 0)
            evaluator: callable (x, y) -> float | None | EvalFailure

        Raises:
            ValueError: invalid resolution or range
        """
        if isinstance(resolution, bool) or int(resolution) != resolution or int(resolution) < 1:
            raise ValueError(f"resolution must be an integer >= 1, got {resolution!r}")
        half = float(domain_range)
        if not math.isfinite(half) or half <= 0.0:
            raise ValueError(f"range must be a finite positive number, got {domain_range!r}")

        res = int(resolution)
        n = res + 1
        step = (2.0 * half) / res
        mapper = mapper or HeightColorMapper()

        positions = np.zeros((n, n, 3), dtype=np.float64)
        z_min = math.inf
        z_max = -math.inf
        failed = 0

        # 1차 패스: 좌표 계산 + z 범위 추적
        for i in range(n):
            y = -half + i * step
            for j in range(n):
                x = -half + j * step
                z = evaluator(x, y)
                if z is None or isinstance(z, EvalFailure) or not math.isfinite(z):
                    positions[i, j] = (x, y, 0.0)
                    failed += 1
                    continue
                z = float(z)
                positions[i, j] = (x, y, z)
                if z < z_min:
                    z_min = z
                if z > z_max:
                    z_max = z

        # 2차 패스: 정규화된 높이로 색상 지정
        if z_max > z_min:
            normalized = (positions[:, :, 2] - z_min) / (z_max - z_min)
        else:
            normalized = np.full((n, n), MIDPOINT_HEIGHT, dtype=np.float64)
        colors = mapper.colors_for(normalized)

        has_extent = z_min <= z_max
        mesh = cls(
            positions=positions,
            colors=colors,
            resolution=res,
            range=half,
            z_min=float(z_min) if has_extent else None,
            z_max=float(z_max) if has_extent else None,
            failed_count=failed,
        )

        _LOGGER.debug(
            "Rebuilt surface mesh: resolution=%d range=%.3f failed=%d/%d z=[%s, %s]",
            res,
            half,
            failed,
            n * n,
            mesh.z_min,
            mesh.z_max,
        )
        return mesh

    @property
    def shape(self) -> tuple[int, int]:
        return (int(self.positions.shape[0]), int(self.positions.shape[1]))

    @property
    def n_vertices(self) -> int:
        rows, cols = self.shape
        return rows * cols

    @property
    def step(self) -> float:
        return (2.0 * self.range) / self.resolution

    @property
    def is_flat(self) -> bool:
        """True when the height extent is degenerate (constant or all failed)."""
        return self.z_min is None or self.z_max is None or not (self.z_max > self.z_min)

    @property
    def bounds(self) -> np.ndarray:
        """경계 박스 [[min_x, min_y, min_z], [max_x, max_y, max_z]]"""
        if self._bounds is None:
            flat = self.flat_positions()
            self._bounds = np.array([flat.min(axis=0), flat.max(axis=0)])
        return self._bounds

    def vertex(self, i: int, j: int) -> Vertex3D:
        """Vertex at row i (y index), column j (x index)."""
        r, g, b, a = (int(c) for c in self.colors[i, j])
        return Vertex3D(position=self.positions[i, j].copy(), color=(r, g, b, a))

    def iter_vertices(self) -> Iterator[Vertex3D]:
        rows, cols = self.shape
        for i in range(rows):
            for j in range(cols):
                yield self.vertex(i, j)

    def flat_positions(self) -> np.ndarray:
        """(N, 3) positions in row-major order."""
        return self.positions.reshape(-1, 3)

    def flat_colors(self) -> np.ndarray:
        """(N, 4) colors in row-major order."""
        return self.colors.reshape(-1, 4)

    def grid_faces(self) -> np.ndarray:
        """(2 * R^2, 3) triangle indices, two per grid cell."""
        n = self.resolution + 1
        ii, jj = np.meshgrid(np.arange(self.resolution), np.arange(self.resolution), indexing="ij")
        a = (ii * n + jj).reshape(-1)
        b = a + 1
        c = a + n + 1
        d = a + n
        faces = np.empty((a.size * 2, 3), dtype=np.int64)
        faces[0::2] = np.stack([a, b, c], axis=1)
        faces[1::2] = np.stack([a, c, d], axis=1)
        return faces

    def to_trimesh(self):
        """Triangulated trimesh.Trimesh with per-vertex colors."""
        import trimesh

        return trimesh.Trimesh(
            vertices=np.array(self.flat_positions()),
            faces=self.grid_faces(),
            vertex_colors=np.array(self.flat_colors()),
            process=False,
        )


def build_surface_mesh(evaluator: Evaluator, resolution: int, domain_range: float) -> SurfaceMesh:
    """Convenience wrapper; `evaluator` is typically a parsed Expression."""
    return SurfaceMesh.rebuild(resolution, domain_range, evaluator)
