"""
Core processing modules for SurfaceGrapher
"""

from .expression_engine import Expression, EvalFailure, ParseError, parse, evaluate
from .height_color import HeightColorMapper, color_for, colors_for
from .surface_mesh import SurfaceMesh, Vertex3D, build_surface_mesh
from .projector import (
    RotationState,
    ProjectedGeometry,
    Polyline,
    SurfaceProjector,
    rotation_matrix,
    project_vertex,
    project_all,
    wireframe,
)
from .surface_session import SurfaceSession
from .projection_renderer import render_projection, save_projection

__all__ = [
    # Expression engine
    'Expression',
    'EvalFailure',
    'ParseError',
    'parse',
    'evaluate',
    # Height colors
    'HeightColorMapper',
    'color_for',
    'colors_for',
    # Surface mesh
    'SurfaceMesh',
    'Vertex3D',
    'build_surface_mesh',
    # Rotation + orthographic projection
    'RotationState',
    'ProjectedGeometry',
    'Polyline',
    'SurfaceProjector',
    'rotation_matrix',
    'project_vertex',
    'project_all',
    'wireframe',
    # Session
    'SurfaceSession',
    # Snapshot rendering
    'render_projection',
    'save_projection',
]
