"""gridfusion core: shared contracts, configuration, logging and errors."""

from .config import VolumeConfig, load_volume_config
from .contracts import (
    CameraIntrinsics,
    ColorStreamParameters,
    DepthRange,
    DepthStreamParameters,
    RGBDCameraParameters,
)
from .errors import GridFusionError, VolumeConfigError
from .logging import setup_logging

__all__ = [
    "VolumeConfig",
    "load_volume_config",
    "CameraIntrinsics",
    "ColorStreamParameters",
    "DepthRange",
    "DepthStreamParameters",
    "RGBDCameraParameters",
    "GridFusionError",
    "VolumeConfigError",
    "setup_logging",
]
