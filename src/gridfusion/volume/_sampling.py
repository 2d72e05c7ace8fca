"""Trilinear sampling of the voxel grid in continuous grid coordinates.

Voxel ``(i, j, k)`` has its center at grid coordinate ``(i+0.5, j+0.5, k+0.5)``,
so samples are defined on ``[0.5, n-0.5]`` along each axis.
"""

from __future__ import annotations

import numpy as np

from ._mc_tables import CORNER_OFFSETS


def sample_bounds(resolution) -> tuple[np.ndarray, np.ndarray]:
    """Lower and upper grid coordinates where trilinear samples are defined."""
    res = np.asarray(resolution, dtype=np.float64)
    return np.full(3, 0.5), res - 0.5


def sample_trilinear(
    tsdf: np.ndarray, weight: np.ndarray, points: np.ndarray
) -> tuple[np.ndarray, np.ndarray]:
    """Interpolate the TSDF at (N, 3) grid-space points.

    Returns ``(values, valid)``. A sample is valid when it lies inside the
    sample box and all 8 contributing voxels have been observed.
    """
    points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    res = np.asarray(tsdf.shape)
    values = np.zeros(len(points))
    if np.any(res < 2) or len(points) == 0:
        return values, np.zeros(len(points), dtype=bool)

    q = points - 0.5
    valid = np.all((q >= 0) & (q <= res - 1), axis=1)
    q[~np.all(np.isfinite(q), axis=1)] = 0.0
    base = np.clip(np.floor(q), 0, res - 2).astype(np.intp)
    frac = q - base

    for c, (dx, dy, dz) in enumerate(CORNER_OFFSETS):
        ix, iy, iz = base[:, 0] + dx, base[:, 1] + dy, base[:, 2] + dz
        wx = frac[:, 0] if dx else 1.0 - frac[:, 0]
        wy = frac[:, 1] if dy else 1.0 - frac[:, 1]
        wz = frac[:, 2] if dz else 1.0 - frac[:, 2]
        values += wx * wy * wz * tsdf[ix, iy, iz]
        valid &= weight[ix, iy, iz] > 0

    values[~valid] = 0.0
    return values, valid


def tsdf_gradient(tsdf: np.ndarray, weight: np.ndarray, points: np.ndarray) -> np.ndarray:
    """Central-difference TSDF gradient at (N, 3) grid-space points.

    Uses a one voxel offset along each axis; falls back to a one-sided
    difference when a neighbour sample is invalid, and to 0 when both are.
    """
    points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    center, center_ok = sample_trilinear(tsdf, weight, points)
    grad = np.zeros_like(points)
    for axis in range(3):
        offset = np.zeros(3)
        offset[axis] = 1.0
        fwd, fwd_ok = sample_trilinear(tsdf, weight, points + offset)
        bwd, bwd_ok = sample_trilinear(tsdf, weight, points - offset)
        grad[:, axis] = np.where(
            fwd_ok & bwd_ok,
            0.5 * (fwd - bwd),
            np.where(
                fwd_ok & center_ok,
                fwd - center,
                np.where(bwd_ok & center_ok, center - bwd, 0.0),
            ),
        )
    return grad


def surface_normals(tsdf: np.ndarray, weight: np.ndarray, points: np.ndarray) -> np.ndarray:
    """Negated, normalized TSDF gradient; zero where the gradient vanishes."""
    grad = -tsdf_gradient(tsdf, weight, points)
    norm = np.linalg.norm(grad, axis=1, keepdims=True)
    return np.divide(grad, norm, out=np.zeros_like(grad), where=norm > 0)
