"""Common Pydantic models shared across the volume and the camera pipeline."""

from __future__ import annotations

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, model_validator


class CameraIntrinsics(BaseModel):
    """Camera intrinsic parameters (pinhole model, flpp + resolution).

    Pixel (x, y) covers [x, x+1) x [y, y+1); the camera looks down +z.
    """

    fx: float = Field(..., gt=0)
    fy: float = Field(..., gt=0)
    cx: float
    cy: float
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)

    @property
    def flpp(self) -> tuple[float, float, float, float]:
        return (self.fx, self.fy, self.cx, self.cy)

    @property
    def shape(self) -> tuple[int, int]:
        """Image array shape (rows, cols)."""
        return (self.height, self.width)

    def resized(self, width: int, height: int) -> CameraIntrinsics:
        """Intrinsics for the same field of view sampled at another resolution."""
        sx = width / self.width
        sy = height / self.height
        return CameraIntrinsics(
            fx=self.fx * sx, fy=self.fy * sy,
            cx=self.cx * sx, cy=self.cy * sy,
            width=width, height=height,
        )


class DepthRange(BaseModel):
    """Valid depth interval in meters."""

    minimum: float = Field(..., ge=0)
    maximum: float

    @model_validator(mode="after")
    def _check_order(self) -> DepthRange:
        if self.maximum <= self.minimum:
            raise ValueError(f"depth range max ({self.maximum}) must exceed min ({self.minimum})")
        return self

    def contains(self, z: np.ndarray) -> np.ndarray:
        return (z >= self.minimum) & (z <= self.maximum)


class DepthStreamParameters(BaseModel):
    """Depth stream of an RGB-D camera."""

    intrinsics: CameraIntrinsics
    depth_range: DepthRange
    # H x W x 2 per-pixel (dx, dy) source offsets, None for an undistorted stream.
    undistortion_map: np.ndarray | None = Field(None, description="Per-pixel undistortion offsets")

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def undistortion_offsets(self) -> np.ndarray:
        """The undistortion map as a float32 H x W x 2 array (zeros if absent)."""
        shape = (self.intrinsics.height, self.intrinsics.width, 2)
        if self.undistortion_map is None:
            return np.zeros(shape, dtype=np.float32)
        offsets = np.asarray(self.undistortion_map, dtype=np.float32)
        if offsets.shape != shape:
            raise ValueError(f"undistortion map shape {offsets.shape} != expected {shape}")
        return offsets


class ColorStreamParameters(BaseModel):
    """Color stream of an RGB-D camera. Carried for visualization only."""

    intrinsics: CameraIntrinsics


class RGBDCameraParameters(BaseModel):
    """Calibrated parameters of one RGB-D sensor."""

    name: str = "camera"
    depth: DepthStreamParameters
    color: ColorStreamParameters | None = None
