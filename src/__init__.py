"""SurfaceGrapher - interactive 3D graphing of z = f(x, y)."""

__version__ = "0.1.0"
