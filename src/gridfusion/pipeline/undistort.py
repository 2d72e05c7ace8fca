"""Depth undistortion through a precomputed per-pixel offset map."""

from __future__ import annotations

import logging
from typing import Optional

import cv2
import numpy as np

logger = logging.getLogger(__name__)


class DepthUndistorter:
    """Resample depth frames so that ``out[y, x] = depth[y + dy, x + dx]``.

    The offset map is fixed per camera, so the absolute remap tables are
    built once. Lookup is nearest-neighbour since depth must not be blended
    across object boundaries; source pixels outside the frame read as 0.

    Args:
        offsets: (H, W, 2) float (dx, dy) source offsets per depth pixel.
    """

    def __init__(self, offsets: np.ndarray):
        offsets = np.asarray(offsets, dtype=np.float32)
        if offsets.ndim != 3 or offsets.shape[2] != 2:
            raise ValueError(f"undistortion map must be H x W x 2, got {offsets.shape}")
        height, width = offsets.shape[:2]
        xs, ys = np.meshgrid(
            np.arange(width, dtype=np.float32), np.arange(height, dtype=np.float32)
        )
        self.shape = (height, width)
        self._map_x = np.ascontiguousarray(xs + offsets[..., 0])
        self._map_y = np.ascontiguousarray(ys + offsets[..., 1])
        self._identity = not np.any(offsets)

    def undistort(self, depth: np.ndarray, out: Optional[np.ndarray] = None) -> np.ndarray:
        """Undistort one depth frame (meters), optionally into ``out``."""
        if depth.shape != self.shape:
            raise ValueError(f"depth shape {depth.shape} does not match map {self.shape}")
        if self._identity:
            result = np.array(depth, dtype=np.float32)
        else:
            result = cv2.remap(
                np.ascontiguousarray(depth, dtype=np.float32),
                self._map_x,
                self._map_y,
                interpolation=cv2.INTER_NEAREST,
                borderMode=cv2.BORDER_CONSTANT,
                borderValue=0.0,
            )
        if out is None:
            return result
        out[...] = result
        return out
