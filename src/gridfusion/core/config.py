"""Volume configuration, loaded from YAML into a Pydantic model."""

from __future__ import annotations

import math
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

# Largest step that cannot jump over a voxel: one voxel diagonal.
MAX_RAYCAST_STEP = math.sqrt(3.0)


class VolumeConfig(BaseModel):
    """Geometry and update parameters of a regular-grid TSDF volume."""

    resolution: tuple[int, int, int] = Field(
        (256, 256, 256), description="Number of voxels along x, y, z"
    )
    voxel_size: float = Field(0.004, gt=0, description="Voxel edge length in meters (4mm default)")
    max_tsdf: Optional[float] = Field(
        None, gt=0, description="Truncation distance in meters (None = 4 voxels)"
    )
    weight_cap: float = Field(64.0, ge=1, description="Saturation value of the per-voxel weight")
    raycast_step: float = Field(
        0.5, gt=0, le=MAX_RAYCAST_STEP, description="Ray marching step in voxels"
    )
    grid_origin: Literal["centered"] | tuple[float, float, float] = Field(
        "centered",
        description="'centered' places the grid in front of a camera at the world origin; "
        "otherwise the world position (meters) of grid corner (0, 0, 0)",
    )

    @field_validator("resolution")
    @classmethod
    def _positive_resolution(cls, v: tuple[int, int, int]) -> tuple[int, int, int]:
        if any(n <= 0 for n in v):
            raise ValueError(f"resolution components must be positive, got {v}")
        return v

    @property
    def truncation(self) -> float:
        return self.max_tsdf if self.max_tsdf is not None else 4.0 * self.voxel_size


def load_volume_config(config_path: Path) -> VolumeConfig:
    """Load and validate a volume YAML config."""
    with open(config_path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    return VolumeConfig(**raw)
