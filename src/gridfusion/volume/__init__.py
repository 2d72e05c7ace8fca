"""Regular-grid TSDF volume: fusion, raycasting and surface extraction."""

from .mesh import TriangleMesh
from .tsdf_volume import RegularGridTSDF, centered_world_from_grid, world_from_grid_for

__all__ = [
    "RegularGridTSDF",
    "TriangleMesh",
    "centered_world_from_grid",
    "world_from_grid_for",
]
