"""
GUI widgets for SurfaceGrapher
"""

from .surface_plot_widget import SurfacePlotWidget

__all__ = ["SurfacePlotWidget"]
