"""Tests for DepthUndistorter."""

import numpy as np
import pytest

from gridfusion.pipeline import DepthUndistorter


@pytest.fixture
def ramp() -> np.ndarray:
    return np.arange(12, dtype=np.float32).reshape(3, 4) + 1.0


class TestDepthUndistorter:
    def test_zero_map_is_identity(self, ramp):
        undistorter = DepthUndistorter(np.zeros((3, 4, 2)))
        out = undistorter.undistort(ramp)
        np.testing.assert_array_equal(out, ramp)
        assert out is not ramp

    def test_offsets_pick_source_pixels(self, ramp):
        offsets = np.zeros((3, 4, 2), dtype=np.float32)
        offsets[..., 1] = 1.0
        out = DepthUndistorter(offsets).undistort(ramp)
        np.testing.assert_array_equal(out[:2], ramp[1:])
        # Sources outside the frame read as invalid depth.
        assert np.all(out[2] == 0)

    def test_nearest_neighbour(self, ramp):
        """Fractional offsets never blend depths across pixels."""
        offsets = np.full((3, 4, 2), 0.3, dtype=np.float32)
        out = DepthUndistorter(offsets).undistort(ramp)
        assert set(np.unique(out)) <= set(np.unique(ramp)) | {0.0}

    def test_writes_into_out(self, ramp):
        out = np.empty_like(ramp)
        result = DepthUndistorter(np.zeros((3, 4, 2))).undistort(ramp, out=out)
        assert result is out
        np.testing.assert_array_equal(out, ramp)

    def test_shape_mismatch(self, ramp):
        with pytest.raises(ValueError):
            DepthUndistorter(np.zeros((4, 4, 2))).undistort(ramp)

    def test_bad_map(self):
        with pytest.raises(ValueError):
            DepthUndistorter(np.zeros((3, 4)))
