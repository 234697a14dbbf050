"""
UI-agnostic surface session.

Holds the currently displayed expression and mesh. A formula that fails to
parse only sets `error_message`; the last good expression and mesh stay in
place. Resolution and range changes rebuild the whole mesh.
"""

from __future__ import annotations

import logging
from typing import Optional

from .expression_engine import Expression, ParseError, parse
from .logging_utils import log_duration
from .projector import ProjectedGeometry, RotationState, SurfaceProjector
from .runtime_defaults import DEFAULTS, clamp_range, clamp_resolution
from .surface_mesh import SurfaceMesh

_LOGGER = logging.getLogger(__name__)


class SurfaceSession:
    def __init__(
        self,
        *,
        resolution: int = DEFAULTS.resolution,
        domain_range: float = DEFAULTS.range,
        projector: Optional[SurfaceProjector] = None,
    ):
        self.expression_text = ""
        self.expression: Optional[Expression] = None
        self.mesh: Optional[SurfaceMesh] = None
        self.error_message: Optional[str] = None
        self.resolution = clamp_resolution(resolution)
        self.range = clamp_range(domain_range)
        self.projector = projector or SurfaceProjector()

    @property
    def has_surface(self) -> bool:
        return self.mesh is not None

    def compile(self, text: str) -> bool:
        """
        Parse `text` and rebuild the mesh.

        Returns:
            True on success. On a parse error the previous expression and mesh
            are kept and `error_message` describes the problem.
        """
        self.expression_text = str(text)
        try:
            expr = parse(text)
        except ParseError as e:
            self.error_message = f"Error parsing expression: {e.reason}"
            _LOGGER.info("Rejected expression %r: %s", text, e.reason)
            return False

        with log_duration(_LOGGER, "Sampled %r on a %d-step grid", expr.text, self.resolution):
            mesh = SurfaceMesh.rebuild(self.resolution, self.range, expr)
        self.expression = expr
        self.mesh = mesh
        self.error_message = None
        _LOGGER.info("Compiled expression %r (%d failed samples)", expr.text, mesh.failed_count)
        return True

    def rebuild(self) -> Optional[SurfaceMesh]:
        """Rebuild from the current expression; no-op without one."""
        if self.expression is None:
            return None
        self.mesh = SurfaceMesh.rebuild(self.resolution, self.range, self.expression)
        return self.mesh

    def set_resolution(self, resolution: int) -> Optional[SurfaceMesh]:
        value = clamp_resolution(resolution)
        if value == self.resolution and self.mesh is not None:
            return self.mesh
        self.resolution = value
        return self.rebuild()

    def set_range(self, domain_range: float) -> Optional[SurfaceMesh]:
        value = clamp_range(domain_range)
        if value == self.range and self.mesh is not None:
            return self.mesh
        self.range = value
        return self.rebuild()

    def frame(
        self,
        state: RotationState,
        *,
        show_wireframe: bool = True,
        show_points: bool = True,
    ) -> ProjectedGeometry:
        """Projected geometry for the current mesh, empty when nothing is compiled."""
        if self.mesh is None:
            return ProjectedGeometry()
        return self.projector.project(
            self.mesh,
            state,
            show_wireframe=show_wireframe,
            show_points=show_points,
        )
