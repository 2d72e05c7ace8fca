"""Posed perspective cameras and per-camera input buffers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from gridfusion.core.contracts import CameraIntrinsics, DepthRange
from gridfusion.utils.geometry import EuclideanTransform


@dataclass(frozen=True)
class PerspectiveCamera:
    """A pinhole camera with a pose and a near/far depth range."""

    camera_from_world: EuclideanTransform
    intrinsics: CameraIntrinsics
    depth_range: DepthRange

    @property
    def world_from_camera(self) -> EuclideanTransform:
        return self.camera_from_world.inverse()

    @property
    def center(self) -> np.ndarray:
        """Optical center in world coordinates."""
        return self.world_from_camera.translation

    def intrinsics_for(self, shape: tuple[int, int]) -> CameraIntrinsics:
        """Intrinsics rescaled to an (H, W) output buffer."""
        height, width = shape
        if (height, width) == self.intrinsics.shape:
            return self.intrinsics
        return self.intrinsics.resized(width, height)


@dataclass
class InputBuffer:
    """Latest raw frames of one RGB-D camera.

    Color is carried for visualization only and never read by fusion.
    """

    depth_shape: tuple[int, int]
    color_shape: Optional[tuple[int, int]] = None
    depth_meters: np.ndarray = field(init=False)
    color_rgb: Optional[np.ndarray] = field(init=False)

    def __post_init__(self):
        self.depth_meters = np.zeros(self.depth_shape, dtype=np.float32)
        self.color_rgb = (
            np.zeros(self.color_shape + (3,), dtype=np.uint8) if self.color_shape else None
        )
