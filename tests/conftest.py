"""Shared pytest fixtures for gridfusion tests."""

import numpy as np
import pytest

from gridfusion.core.contracts import CameraIntrinsics, DepthRange
from gridfusion.utils.geometry import EuclideanTransform, SimilarityTransform
from gridfusion.volume import RegularGridTSDF

VOXEL_SIZE = 0.01
RESOLUTION = (32, 32, 32)
MAX_TSDF = 0.04
PLANE_DEPTH = 1.0


@pytest.fixture
def intrinsics() -> CameraIntrinsics:
    """40x30 depth camera, ~53 degree horizontal field of view."""
    return CameraIntrinsics(fx=40.0, fy=40.0, cx=20.0, cy=15.0, width=40, height=30)


@pytest.fixture
def depth_range() -> DepthRange:
    return DepthRange(minimum=0.2, maximum=2.0)


@pytest.fixture
def identity_pose() -> EuclideanTransform:
    """Camera at the world origin looking down +z."""
    return EuclideanTransform()


@pytest.fixture
def plane_world_from_grid() -> SimilarityTransform:
    """0.32m cube spanning x, y in [-0.16, 0.16] and z in [0.84, 1.16]."""
    return SimilarityTransform(scale=VOXEL_SIZE, translation=[-0.16, -0.16, 0.84])


@pytest.fixture
def volume(plane_world_from_grid) -> RegularGridTSDF:
    return RegularGridTSDF(
        RESOLUTION, VOXEL_SIZE, world_from_grid=plane_world_from_grid,
        max_tsdf=MAX_TSDF, weight_cap=8,
    )


@pytest.fixture
def plane_depth(intrinsics) -> np.ndarray:
    """Fronto-parallel wall at z = 1.0m filling the whole frame."""
    return np.full(intrinsics.shape, PLANE_DEPTH, dtype=np.float32)


@pytest.fixture
def expected_plane_sdf(volume) -> np.ndarray:
    """Per-voxel signed distance to the wall as seen by the identity camera."""
    return PLANE_DEPTH - volume.voxel_centers_world()[..., 2]


@pytest.fixture
def fill_sphere():
    """Write the truncated signed distance of a sphere into every voxel of a volume."""

    def _fill(volume: RegularGridTSDF, center, radius: float) -> None:
        centers = volume.voxel_centers_world()
        sdf = np.linalg.norm(centers - np.asarray(center), axis=-1) - radius
        volume._tsdf[...] = np.clip(sdf, -volume.max_tsdf, volume.max_tsdf)
        volume._weight[...] = 1.0

    return _fill
