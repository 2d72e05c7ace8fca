"""Zero level-set extraction over the full voxel grid."""

from __future__ import annotations

import logging

import numpy as np

from ._mc_tables import CELL_EDGES, CORNER_OFFSETS, TRIANGLE_TABLE
from ._sampling import surface_normals

logger = logging.getLogger(__name__)

# Twice the triangle area below which a face is dropped, in voxel units.
_DEGENERATE_AREA = 1e-10

_EDGE_A = np.array([a for a, _ in CELL_EDGES], dtype=np.intp)
_EDGE_B = np.array([b for _, b in CELL_EDGES], dtype=np.intp)


def _cell_configurations(tsdf: np.ndarray, weight: np.ndarray):
    """Base voxel, corner values and sign mask of every cell the surface crosses."""
    nx, ny, nz = tsdf.shape
    cells = (nx - 1, ny - 1, nz - 1)
    observed = np.ones(cells, dtype=bool)
    mask = np.zeros(cells, dtype=np.uint8)
    for c, (dx, dy, dz) in enumerate(CORNER_OFFSETS):
        sl = (slice(dx, dx + cells[0]), slice(dy, dy + cells[1]), slice(dz, dz + cells[2]))
        observed &= weight[sl] > 0
        mask |= (tsdf[sl] < 0).astype(np.uint8) << c

    crossed = observed & (mask != 0) & (mask != 255)
    base = np.argwhere(crossed)
    masks = mask[crossed]

    corners = base[:, None, :] + CORNER_OFFSETS[None, :, :]
    values = tsdf[corners[..., 0], corners[..., 1], corners[..., 2]].astype(np.float64)
    return base, values, masks


def extract_triangles(tsdf: np.ndarray, weight: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Extract the TSDF zero level-set as a triangle soup in grid coordinates.

    A cell contributes only when all 8 corner voxels have been observed and
    their signs are mixed. Crossings are linearly interpolated along the cell
    edges by value.

    Returns:
        ``(triangles, normals)``: (F, 3, 3) grid-space corner positions and
        the matching (F, 3, 3) unit vertex normals.
    """
    if min(tsdf.shape) < 2:
        return np.zeros((0, 3, 3)), np.zeros((0, 3, 3))

    base, values, masks = _cell_configurations(tsdf, weight)
    if len(base) == 0:
        return np.zeros((0, 3, 3)), np.zeros((0, 3, 3))

    chunks = []
    for config in np.unique(masks):
        table = TRIANGLE_TABLE[int(config)]
        if not table:
            continue
        rows = masks == config
        cell_base = base[rows].astype(np.float64)
        cell_values = values[rows]

        edges = np.unique(np.asarray(table).ravel())
        va = cell_values[:, _EDGE_A[edges]]
        vb = cell_values[:, _EDGE_B[edges]]
        t = va / (va - vb)
        pa = CORNER_OFFSETS[_EDGE_A[edges]]
        pb = CORNER_OFFSETS[_EDGE_B[edges]]
        # (cells, edges, 3) crossing points.
        crossings = cell_base[:, None, :] + pa[None] + t[..., None] * (pb - pa)[None]

        slot = {int(e): i for i, e in enumerate(edges)}
        tri_slots = np.array([[slot[e] for e in tri] for tri in table], dtype=np.intp)
        chunks.append(crossings[:, tri_slots].reshape(-1, 3, 3))

    if not chunks:
        return np.zeros((0, 3, 3)), np.zeros((0, 3, 3))

    # Voxel index space -> grid coordinates (voxel centers at +0.5).
    triangles = np.concatenate(chunks) + 0.5
    doubled_area = np.linalg.norm(
        np.cross(triangles[:, 1] - triangles[:, 0], triangles[:, 2] - triangles[:, 0]), axis=1
    )
    triangles = triangles[doubled_area > _DEGENERATE_AREA]

    normals = surface_normals(tsdf, weight, triangles.reshape(-1, 3)).reshape(-1, 3, 3)
    logger.debug(f"Extracted {len(triangles)} triangles from {len(base)} surface cells")
    return triangles, normals
