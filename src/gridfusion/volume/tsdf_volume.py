"""Regular-grid truncated signed distance function volume."""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from gridfusion.core.config import MAX_RAYCAST_STEP, VolumeConfig
from gridfusion.core.contracts import CameraIntrinsics, DepthRange
from gridfusion.core.errors import VolumeConfigError
from gridfusion.utils.geometry import EuclideanTransform, SimilarityTransform
from ._fusion import integrate_depth_frame
from ._raycast import march_rays
from ._triangulate import extract_triangles
from .mesh import TriangleMesh

logger = logging.getLogger(__name__)

# Truncation distance when none is given, in voxels (16mm at 4mm voxels).
DEFAULT_TRUNCATION_VOXELS = 4.0


def centered_world_from_grid(resolution, voxel_size: float) -> SimilarityTransform:
    """Grid centered on the world x/y axes, spanning z in [-side_z, 0].

    With a depth camera at the origin looking down -z (or placed with
    ``look_at`` towards the origin from +z), the volume sits right in front
    of it.
    """
    rx, ry, rz = resolution
    return SimilarityTransform(
        scale=voxel_size,
        translation=voxel_size * np.array([-0.5 * rx, -0.5 * ry, -float(rz)]),
    )


def world_from_grid_for(config: VolumeConfig) -> SimilarityTransform:
    """Grid embedding described by ``config.grid_origin``."""
    if config.grid_origin == "centered":
        return centered_world_from_grid(config.resolution, config.voxel_size)
    return SimilarityTransform(scale=config.voxel_size, translation=config.grid_origin)


class RegularGridTSDF:
    """Dense TSDF voxel grid embedded in the world by a similarity transform.

    Grid coordinates span ``[0, resolution]`` with voxel ``(i, j, k)`` centered
    at ``(i+0.5, j+0.5, k+0.5)``; ``world_from_grid`` maps them to meters.

    Args:
        resolution: Number of voxels along each axis.
        voxel_size: Physical edge length of one (cubical) voxel, in meters.
        world_from_grid: Grid-to-world embedding. Its scale must equal
            ``voxel_size``. Defaults to :func:`centered_world_from_grid`.
        max_tsdf: Truncation distance in meters (default: 4 voxels).
        weight_cap: Saturation value of the per-voxel weight.
        raycast_step: Ray marching step in voxels.
    """

    def __init__(
        self,
        resolution,
        voxel_size: float,
        world_from_grid: Optional[SimilarityTransform] = None,
        max_tsdf: Optional[float] = None,
        weight_cap: float = 64.0,
        raycast_step: float = 0.5,
    ):
        res = tuple(int(n) for n in resolution)
        if len(res) != 3 or any(n <= 0 for n in res):
            raise VolumeConfigError(f"resolution must have 3 positive components, got {resolution}")
        if not voxel_size > 0:
            raise VolumeConfigError(f"voxel_size must be positive, got {voxel_size}")
        if max_tsdf is None:
            max_tsdf = DEFAULT_TRUNCATION_VOXELS * voxel_size
        if not max_tsdf > 0:
            raise VolumeConfigError(f"max_tsdf must be positive, got {max_tsdf}")
        if not weight_cap >= 1:
            raise VolumeConfigError(f"weight_cap must be at least 1, got {weight_cap}")
        if not 0 < raycast_step <= MAX_RAYCAST_STEP:
            raise VolumeConfigError(
                f"raycast_step must be in (0, {MAX_RAYCAST_STEP:.3f}] voxels, got {raycast_step}"
            )

        self._resolution = res
        self._voxel_size = float(voxel_size)
        self._max_tsdf = float(max_tsdf)
        self._weight_cap = float(weight_cap)
        self._raycast_step = float(raycast_step)

        self._tsdf = np.zeros(res, dtype=np.float32)
        self._weight = np.zeros(res, dtype=np.float32)

        self.world_from_grid = (
            world_from_grid if world_from_grid is not None
            else centered_world_from_grid(res, self._voxel_size)
        )
        logger.info(
            f"TSDF volume {res[0]}x{res[1]}x{res[2]} @ {self._voxel_size * 1000:.1f}mm, "
            f"max_tsdf={self._max_tsdf:.4f}m"
        )

    @classmethod
    def from_config(
        cls, config: VolumeConfig, world_from_grid: Optional[SimilarityTransform] = None
    ) -> RegularGridTSDF:
        """Build a volume from a :class:`VolumeConfig`.

        An explicit ``world_from_grid`` overrides ``config.grid_origin``.
        """
        if world_from_grid is None:
            world_from_grid = world_from_grid_for(config)
        return cls(
            resolution=config.resolution,
            voxel_size=config.voxel_size,
            world_from_grid=world_from_grid,
            max_tsdf=config.truncation,
            weight_cap=config.weight_cap,
            raycast_step=config.raycast_step,
        )

    # ── geometry ─────────────────────────────────────────────────────

    @property
    def world_from_grid(self) -> SimilarityTransform:
        """World coordinates (meters) from grid coordinates [0, resolution]^3."""
        return self._world_from_grid

    @world_from_grid.setter
    def world_from_grid(self, transform: SimilarityTransform) -> None:
        if not np.isclose(transform.scale, self._voxel_size, rtol=1e-6, atol=0.0):
            raise VolumeConfigError(
                f"world_from_grid scale {transform.scale} != voxel_size {self._voxel_size}"
            )
        self._world_from_grid = transform
        self._grid_from_world = transform.inverse()

    @property
    def grid_from_world(self) -> SimilarityTransform:
        """Grid coordinates [0, resolution]^3 from world coordinates (meters)."""
        return self._grid_from_world

    def bounding_box(self) -> tuple[np.ndarray, np.ndarray]:
        """(0, 0, 0) --> resolution, in grid coordinates."""
        return np.zeros(3), np.array(self._resolution, dtype=np.float64)

    @property
    def resolution(self) -> tuple[int, int, int]:
        return self._resolution

    @property
    def voxel_size(self) -> float:
        return self._voxel_size

    def side_lengths(self) -> np.ndarray:
        """Side lengths of the whole grid, in meters."""
        return self._voxel_size * np.array(self._resolution, dtype=np.float64)

    @property
    def max_tsdf(self) -> float:
        return self._max_tsdf

    @property
    def weight_cap(self) -> float:
        return self._weight_cap

    @property
    def tsdf(self) -> np.ndarray:
        """Read-only view of the signed distances (meaningless where weight == 0)."""
        view = self._tsdf.view()
        view.flags.writeable = False
        return view

    @property
    def weight(self) -> np.ndarray:
        """Read-only view of the accumulated weights."""
        view = self._weight.view()
        view.flags.writeable = False
        return view

    def voxel_centers_world(self) -> np.ndarray:
        """(X, Y, Z, 3) world positions of every voxel center."""
        axes = [np.arange(n) + 0.5 for n in self._resolution]
        grid = np.stack(np.meshgrid(*axes, indexing="ij"), axis=-1)
        return self._world_from_grid.transform_points(grid)

    # ── operations ───────────────────────────────────────────────────

    def reset(self) -> None:
        """Forget every observation."""
        self._weight.fill(0.0)
        self._tsdf.fill(0.0)

    def fuse(
        self,
        intrinsics: CameraIntrinsics,
        depth_range: DepthRange,
        camera_from_world: EuclideanTransform,
        depth: np.ndarray,
    ) -> int:
        """Integrate one depth frame (meters, non-positive = invalid).

        Voxels outside the frustum or depth range, and voxels with invalid or
        too-distant depth samples, are left untouched. A frame whose shape
        does not match ``intrinsics`` updates nothing.

        Returns:
            Number of voxels updated.
        """
        depth = np.asarray(depth)
        if depth.shape != intrinsics.shape:
            logger.warning(
                f"Depth frame shape {depth.shape} does not match intrinsics {intrinsics.shape}; "
                "skipping fusion"
            )
            return 0

        camera_from_grid = camera_from_world.as_matrix() @ self._world_from_grid.as_matrix()
        return integrate_depth_frame(
            self._tsdf,
            self._weight,
            camera_from_grid,
            intrinsics,
            depth_range,
            depth.astype(np.float64, copy=False),
            self._max_tsdf,
            self._weight_cap,
        )

    def raycast(
        self,
        intrinsics: CameraIntrinsics,
        world_from_camera: EuclideanTransform,
        depth_range: Optional[DepthRange] = None,
        positions_out: Optional[np.ndarray] = None,
        normals_out: Optional[np.ndarray] = None,
    ) -> tuple[np.ndarray, np.ndarray]:
        """Render world-space surface positions and normals, one per pixel.

        Outputs are (H, W, 4) float32: ``xyz`` plus ``w = 1`` where a ray hit
        the surface, all zeros otherwise. Rays are bounded by the grid and,
        if given, by ``depth_range``.
        """
        shape = intrinsics.shape + (4,)
        for name, buf in (("positions_out", positions_out), ("normals_out", normals_out)):
            if buf is not None and buf.shape != shape:
                raise ValueError(f"{name} has shape {buf.shape}, expected {shape}")
        if positions_out is None:
            positions_out = np.zeros(shape, dtype=np.float32)
        if normals_out is None:
            normals_out = np.zeros(shape, dtype=np.float32)

        grid_from_camera = self._grid_from_world.as_matrix() @ world_from_camera.as_matrix()
        near, far = (0.0, np.inf) if depth_range is None else (depth_range.minimum, depth_range.maximum)
        hit, points, normals = march_rays(
            self._tsdf, self._weight, grid_from_camera, intrinsics,
            step=self._raycast_step, near=near, far=far,
        )

        positions = np.zeros((len(hit), 4))
        world_normals = np.zeros((len(hit), 4))
        positions[hit, :3] = self._world_from_grid.transform_points(points[hit])
        world_normals[hit, :3] = self._world_from_grid.transform_normals(normals[hit])
        positions[hit, 3] = 1.0
        world_normals[hit, 3] = 1.0

        positions_out[...] = positions.reshape(shape)
        normals_out[...] = world_normals.reshape(shape)
        return positions_out, normals_out

    def triangulate(self) -> TriangleMesh:
        """Extract the zero level-set as a world-space triangle mesh."""
        triangles, normals = extract_triangles(self._tsdf, self._weight)
        positions = self._world_from_grid.transform_points(triangles.reshape(-1, 3))
        world_normals = self._world_from_grid.transform_normals(normals.reshape(-1, 3))
        mesh = TriangleMesh(
            positions=positions.astype(np.float32),
            normals=world_normals.astype(np.float32),
            faces=np.arange(len(positions), dtype=np.int64).reshape(-1, 3),
        )
        logger.info(f"Triangulated mesh: {mesh.num_vertices} vertices, {mesh.num_faces} faces")
        return mesh
