"""Static multi-camera rig feeding one shared TSDF volume."""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

import numpy as np

from gridfusion.core.config import VolumeConfig
from gridfusion.core.contracts import RGBDCameraParameters
from gridfusion.utils.geometry import EuclideanTransform, SimilarityTransform
from gridfusion.volume import RegularGridTSDF, TriangleMesh, world_from_grid_for
from ._rwlock import ReadWriteLock
from .camera import InputBuffer, PerspectiveCamera
from .undistort import DepthUndistorter

logger = logging.getLogger(__name__)


class StaticMultiCameraPipeline:
    """N fixed, calibrated depth cameras fused into a single TSDF volume.

    Camera parameters, poses and undistortion maps are fixed for the
    pipeline's lifetime; only the depth buffers and the volume change.
    The pipeline owns the volume. ``fuse`` and ``reset`` take it exclusively,
    ``raycast`` and ``triangulate`` may run concurrently with each other.

    Args:
        camera_params: Per-camera calibration.
        camera_poses_cfw: Per-camera camera-from-world pose.
        grid_resolution: Voxels along each axis.
        world_from_grid: Grid embedding; its scale is the voxel size.
        max_tsdf_value: Truncation distance in meters.
        weight_cap: Saturation value of the voxel weight.
        raycast_step: Ray marching step in voxels.
        only_camera: Default camera filter for :meth:`fuse` (None = all).
        undistorter_factory: Builds a per-camera undistorter from its
            (H, W, 2) offset map.
    """

    def __init__(
        self,
        camera_params: Sequence[RGBDCameraParameters],
        camera_poses_cfw: Sequence[EuclideanTransform],
        grid_resolution,
        world_from_grid: SimilarityTransform,
        max_tsdf_value: Optional[float] = None,
        weight_cap: float = 64.0,
        raycast_step: float = 0.5,
        only_camera: Optional[int] = None,
        undistorter_factory: Callable[[np.ndarray], DepthUndistorter] = DepthUndistorter,
    ):
        if len(camera_params) == 0:
            raise ValueError("At least one camera is required")
        if len(camera_params) != len(camera_poses_cfw):
            raise ValueError(
                f"{len(camera_params)} cameras but {len(camera_poses_cfw)} poses"
            )

        self._volume = RegularGridTSDF(
            grid_resolution,
            world_from_grid.scale,
            world_from_grid=world_from_grid,
            max_tsdf=max_tsdf_value,
            weight_cap=weight_cap,
            raycast_step=raycast_step,
        )
        self._lock = ReadWriteLock()

        self._camera_params = list(camera_params)
        self._poses_cfw = list(camera_poses_cfw)
        self._only_camera = self._check_index(only_camera) if only_camera is not None else None

        self._input_buffers: list[InputBuffer] = []
        self._undistorters = []
        self._undistorted_depth: list[np.ndarray] = []
        for params in self._camera_params:
            depth_shape = params.depth.intrinsics.shape
            color_shape = params.color.intrinsics.shape if params.color else None
            self._input_buffers.append(InputBuffer(depth_shape, color_shape))
            self._undistorters.append(undistorter_factory(params.depth.undistortion_offsets()))
            self._undistorted_depth.append(np.zeros(depth_shape, dtype=np.float32))

        logger.info(f"Static multi-camera pipeline with {self.num_cameras} cameras")

    @classmethod
    def from_config(
        cls,
        camera_params: Sequence[RGBDCameraParameters],
        camera_poses_cfw: Sequence[EuclideanTransform],
        config: VolumeConfig,
        **kwargs,
    ) -> StaticMultiCameraPipeline:
        """Build a pipeline whose volume follows ``config``."""
        return cls(
            camera_params,
            camera_poses_cfw,
            config.resolution,
            world_from_grid_for(config),
            max_tsdf_value=config.truncation,
            weight_cap=config.weight_cap,
            raycast_step=config.raycast_step,
            **kwargs,
        )

    def _check_index(self, camera_index: int) -> int:
        if not 0 <= camera_index < self.num_cameras:
            raise IndexError(f"camera index {camera_index} out of range [0, {self.num_cameras})")
        return camera_index

    # ── accessors ────────────────────────────────────────────────────

    @property
    def num_cameras(self) -> int:
        return len(self._camera_params)

    @property
    def volume(self) -> RegularGridTSDF:
        return self._volume

    def camera_parameters(self, camera_index: int) -> RGBDCameraParameters:
        return self._camera_params[self._check_index(camera_index)]

    def depth_camera(self, camera_index: int) -> PerspectiveCamera:
        params = self.camera_parameters(camera_index)
        return PerspectiveCamera(
            camera_from_world=self._poses_cfw[camera_index],
            intrinsics=params.depth.intrinsics,
            depth_range=params.depth.depth_range,
        )

    def input_buffer(self, camera_index: int) -> InputBuffer:
        """Writable raw input of a camera; call :meth:`notify_input_updated` after writing."""
        return self._input_buffers[self._check_index(camera_index)]

    def undistorted_depth(self, camera_index: int) -> np.ndarray:
        return self._undistorted_depth[self._check_index(camera_index)]

    def grid_bounding_box(self) -> tuple[np.ndarray, np.ndarray]:
        return self._volume.bounding_box()

    @property
    def world_from_grid(self) -> SimilarityTransform:
        return self._volume.world_from_grid

    # ── operations ───────────────────────────────────────────────────

    def reset(self) -> None:
        with self._lock.write():
            self._volume.reset()

    def notify_input_updated(
        self, camera_index: int, color_updated: bool = False, depth_updated: bool = True
    ) -> None:
        """Refresh a camera's undistorted depth after its input buffer changed."""
        self._check_index(camera_index)
        if not depth_updated:
            return
        self._undistorters[camera_index].undistort(
            self._input_buffers[camera_index].depth_meters,
            out=self._undistorted_depth[camera_index],
        )

    def fuse(self, only_camera: Optional[int] = None) -> int:
        """Fuse the latest undistorted depth of every camera, in index order.

        Args:
            only_camera: Restrict the sweep to this camera index; defaults to
                the filter given at construction.

        Returns:
            Total number of voxel updates.
        """
        only = only_camera if only_camera is not None else self._only_camera
        if only is not None:
            self._check_index(only)

        updated = 0
        with self._lock.write():
            for i in range(self.num_cameras):
                if only is not None and i != only:
                    continue
                depth = self._camera_params[i].depth
                updated += self._volume.fuse(
                    depth.intrinsics,
                    depth.depth_range,
                    self._poses_cfw[i],
                    self._undistorted_depth[i],
                )
        logger.debug(f"Fused {self.num_cameras if only is None else 1} cameras: {updated} updates")
        return updated

    def raycast(
        self,
        camera: PerspectiveCamera,
        positions_out: Optional[np.ndarray] = None,
        normals_out: Optional[np.ndarray] = None,
    ) -> tuple[np.ndarray, np.ndarray]:
        """Raycast the volume from any camera.

        When output buffers are given, the camera's intrinsics are rescaled
        to their resolution.
        """
        shape = camera.intrinsics.shape
        if positions_out is not None:
            shape = positions_out.shape[:2]
        elif normals_out is not None:
            shape = normals_out.shape[:2]
        with self._lock.read():
            return self._volume.raycast(
                camera.intrinsics_for(shape),
                camera.world_from_camera,
                depth_range=camera.depth_range,
                positions_out=positions_out,
                normals_out=normals_out,
            )

    def triangulate(self, output_from_world: Optional[np.ndarray] = None) -> TriangleMesh:
        """Extract the mesh and map it into the ``output_from_world`` frame."""
        with self._lock.read():
            mesh = self._volume.triangulate()
        logger.info(
            f"Output mesh: {mesh.num_vertices} vertices and {len(mesh.normals)} normals"
        )
        if output_from_world is None:
            return mesh
        return mesh.transformed(output_from_world)
