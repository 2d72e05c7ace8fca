"""Ray marching against the implicit surface stored in the TSDF grid."""

from __future__ import annotations

import logging

import numpy as np

from gridfusion.core.contracts import CameraIntrinsics
from ._sampling import sample_bounds, sample_trilinear, surface_normals

logger = logging.getLogger(__name__)


def pixel_rays(intrinsics: CameraIntrinsics) -> np.ndarray:
    """Camera-space ray directions through pixel centers, with z = 1. Shape (H*W, 3)."""
    fx, fy, cx, cy = intrinsics.flpp
    xs = (np.arange(intrinsics.width) + 0.5 - cx) / fx
    ys = (np.arange(intrinsics.height) + 0.5 - cy) / fy
    gx, gy = np.meshgrid(xs, ys)
    return np.stack([gx.ravel(), gy.ravel(), np.ones(gx.size)], axis=1)


def _clip_to_box(
    origin: np.ndarray, directions: np.ndarray, lo: np.ndarray, hi: np.ndarray
) -> tuple[np.ndarray, np.ndarray]:
    """Slab test: entry and exit ray parameters for an axis-aligned box."""
    with np.errstate(divide="ignore", invalid="ignore"):
        t0 = (lo - origin) / directions
        t1 = (hi - origin) / directions
    # Rays parallel to a slab: inside -> unbounded, outside -> empty.
    parallel = directions == 0
    inside = (origin >= lo) & (origin <= hi)
    t_lo = np.where(parallel, np.where(inside, -np.inf, np.inf), np.minimum(t0, t1))
    t_hi = np.where(parallel, np.where(inside, np.inf, -np.inf), np.maximum(t0, t1))
    return t_lo.max(axis=1), t_hi.min(axis=1)


def march_rays(
    tsdf: np.ndarray,
    weight: np.ndarray,
    grid_from_camera: np.ndarray,
    intrinsics: CameraIntrinsics,
    step: float,
    near: float = 0.0,
    far: float = np.inf,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Find the first positive-to-negative zero crossing along every pixel ray.

    Rays are parameterized by camera depth ``t`` (the camera-space z of the
    sample) and marched in steps of ``step`` voxels through the region of the
    grid where trilinear samples exist.

    Returns:
        ``(hit, points, normals)``: an (H*W,) bool mask and (H*W, 3) grid-space
        hit positions and unit normals (zeros where there is no hit).
    """
    rays_cam = pixel_rays(intrinsics)
    n_rays = len(rays_cam)
    origin = grid_from_camera[:3, 3]
    directions = rays_cam @ grid_from_camera[:3, :3].T

    lo, hi = sample_bounds(tsdf.shape)
    t_enter, t_exit = _clip_to_box(origin, directions, lo, hi)
    t_enter = np.maximum(t_enter, near)
    t_exit = np.minimum(t_exit, far)

    hit = np.zeros(n_rays, dtype=bool)
    points = np.zeros((n_rays, 3))
    normals = np.zeros((n_rays, 3))

    active = np.nonzero(t_enter <= t_exit)[0]
    if len(active) == 0:
        return hit, points, normals

    dt = step / np.linalg.norm(directions[active], axis=1)
    t_start = t_enter[active]
    t_end = t_exit[active]
    prev_t = np.zeros(len(active))
    prev_v = np.zeros(len(active))
    prev_ok = np.zeros(len(active), dtype=bool)
    hit_t = np.zeros(len(active))

    k = 0
    pending = np.arange(len(active))
    while len(pending):
        t = t_start[pending] + k * dt[pending]
        # Always take the exit sample so the last step is not skipped.
        t = np.minimum(t, t_end[pending])
        rays = active[pending]
        values, ok = sample_trilinear(tsdf, weight, origin + t[:, None] * directions[rays])

        crossing = prev_ok[pending] & (prev_v[pending] >= 0) & ok & (values < 0)
        if crossing.any():
            sel = pending[crossing]
            v0, v1 = prev_v[sel], values[crossing]
            t0, t1 = prev_t[sel], t[crossing]
            hit_t[sel] = t0 + (t1 - t0) * v0 / (v0 - v1)
            hit[active[sel]] = True

        prev_t[pending] = t
        prev_v[pending] = values
        prev_ok[pending] = ok
        done = crossing | (t >= t_end[pending])
        pending = pending[~done]
        k += 1

    found = np.nonzero(hit)[0]
    if len(found):
        idx = np.searchsorted(active, found)
        points[found] = origin + hit_t[idx, None] * directions[found]
        normals[found] = surface_normals(tsdf, weight, points[found])

    logger.debug(f"Raycast: {len(found)}/{n_rays} rays hit the surface")
    return hit, points, normals
