"""Multi-camera orchestration around the shared TSDF volume."""

from .camera import InputBuffer, PerspectiveCamera
from .static_multi_camera import StaticMultiCameraPipeline
from .undistort import DepthUndistorter

__all__ = [
    "DepthUndistorter",
    "InputBuffer",
    "PerspectiveCamera",
    "StaticMultiCameraPipeline",
]
