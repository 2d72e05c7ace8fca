"""Per-voxel integration of one posed depth frame into the TSDF grid."""

from __future__ import annotations

import logging

import numpy as np

from gridfusion.core.contracts import CameraIntrinsics, DepthRange

logger = logging.getLogger(__name__)


def integrate_depth_frame(
    tsdf: np.ndarray,
    weight: np.ndarray,
    camera_from_grid: np.ndarray,
    intrinsics: CameraIntrinsics,
    depth_range: DepthRange,
    depth: np.ndarray,
    max_tsdf: float,
    weight_cap: float,
) -> int:
    """Update ``tsdf``/``weight`` in place with one depth frame.

    The grid is swept one x-slab at a time; every voxel in a slab is
    independent of every other, so a slab is updated in one vectorised pass.

    Args:
        tsdf: (X, Y, Z) signed distances in meters.
        weight: (X, Y, Z) accumulated observation weights.
        camera_from_grid: 4x4 matrix taking grid coordinates to camera space.
        intrinsics: Depth camera intrinsics (flpp + resolution).
        depth_range: Voxels whose camera z falls outside are skipped.
        depth: (H, W) depth image in meters; non-positive or non-finite is invalid.
        max_tsdf: Truncation distance in meters.
        weight_cap: Saturation value of the weight.

    Returns:
        Number of voxels updated.
    """
    nx, ny, nz = tsdf.shape
    height, width = depth.shape
    fx, fy, cx, cy = intrinsics.flpp

    rotation = camera_from_grid[:3, :3]
    translation = camera_from_grid[:3, 3]

    # Camera-space position of the voxel centers of slab x = 0, minus the x term.
    jj, kk = np.meshgrid(np.arange(ny) + 0.5, np.arange(nz) + 0.5, indexing="ij")
    yz_cam = (
        rotation[:, 1, None, None] * jj
        + rotation[:, 2, None, None] * kk
        + translation[:, None, None]
    )
    x_axis = rotation[:, 0, None, None]

    updated = 0
    for i in range(nx):
        cam = yz_cam + x_axis * (i + 0.5)
        z = cam[2]
        in_front = (z > 0) & depth_range.contains(z)
        if not in_front.any():
            continue

        zs = z[in_front]
        u = np.floor(fx * cam[0][in_front] / zs + cx)
        v = np.floor(fy * cam[1][in_front] / zs + cy)
        on_image = (u >= 0) & (u < width) & (v >= 0) & (v < height)
        if not on_image.any():
            continue

        jk = np.nonzero(in_front)
        js, ks = jk[0][on_image], jk[1][on_image]
        measured = depth[v[on_image].astype(np.intp), u[on_image].astype(np.intp)]
        sdf = measured - zs[on_image]

        keep = np.isfinite(measured) & (measured > 0) & (sdf >= -max_tsdf)
        if not keep.any():
            continue
        js, ks = js[keep], ks[keep]
        sdf = np.minimum(sdf[keep], max_tsdf)

        slab_tsdf = tsdf[i]
        slab_weight = weight[i]
        new_weight = np.minimum(slab_weight[js, ks] + 1.0, weight_cap)
        old_weight = new_weight - 1.0
        slab_tsdf[js, ks] = (slab_tsdf[js, ks] * old_weight + sdf) / new_weight
        slab_weight[js, ks] = new_weight
        updated += len(js)

    logger.debug(f"Fused depth frame: {updated} voxels updated")
    return updated
