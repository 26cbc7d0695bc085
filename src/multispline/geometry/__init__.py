"""Geometry module: axis-aligned domains and tensor grids."""

from .box import Box
from .sampling import grid_points

__all__ = [
    "Box",
    "grid_points",
]
