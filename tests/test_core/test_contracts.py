"""Tests for the camera parameter models."""

import numpy as np
import pytest
from pydantic import ValidationError

from gridfusion.core.contracts import (
    CameraIntrinsics,
    ColorStreamParameters,
    DepthRange,
    DepthStreamParameters,
    RGBDCameraParameters,
)
from gridfusion.core.errors import GridFusionError, VolumeConfigError


class TestCameraIntrinsics:
    def test_flpp_and_shape(self, intrinsics):
        assert intrinsics.flpp == (40.0, 40.0, 20.0, 15.0)
        assert intrinsics.shape == (30, 40)

    def test_resized(self, intrinsics):
        half = intrinsics.resized(20, 15)
        assert half.flpp == (20.0, 20.0, 10.0, 7.5)
        assert half.shape == (15, 20)

    @pytest.mark.parametrize("field", ["fx", "fy", "width", "height"])
    def test_non_positive(self, field):
        values = dict(fx=1.0, fy=1.0, cx=0.0, cy=0.0, width=4, height=4)
        values[field] = 0
        with pytest.raises(ValidationError):
            CameraIntrinsics(**values)


class TestDepthRange:
    def test_contains(self, depth_range):
        np.testing.assert_array_equal(
            depth_range.contains(np.array([0.1, 0.2, 1.0, 2.0, 2.5])),
            [False, True, True, True, False],
        )

    def test_max_must_exceed_min(self):
        with pytest.raises(ValidationError):
            DepthRange(minimum=1.0, maximum=1.0)

    def test_negative_min(self):
        with pytest.raises(ValidationError):
            DepthRange(minimum=-0.1, maximum=1.0)


class TestStreamParameters:
    def test_no_undistortion_map(self, intrinsics, depth_range):
        stream = DepthStreamParameters(intrinsics=intrinsics, depth_range=depth_range)
        offsets = stream.undistortion_offsets()
        assert offsets.shape == (30, 40, 2)
        assert offsets.dtype == np.float32
        assert not offsets.any()

    def test_undistortion_map_shape_checked(self, intrinsics, depth_range):
        stream = DepthStreamParameters(
            intrinsics=intrinsics, depth_range=depth_range, undistortion_map=np.zeros((30, 40, 3))
        )
        with pytest.raises(ValueError):
            stream.undistortion_offsets()

    def test_rgbd_defaults(self, intrinsics, depth_range):
        params = RGBDCameraParameters(
            depth=DepthStreamParameters(intrinsics=intrinsics, depth_range=depth_range)
        )
        assert params.name == "camera"
        assert params.color is None

    def test_color_stream(self, intrinsics, depth_range):
        params = RGBDCameraParameters(
            name="front",
            depth=DepthStreamParameters(intrinsics=intrinsics, depth_range=depth_range),
            color=ColorStreamParameters(intrinsics=intrinsics.resized(80, 60)),
        )
        assert params.color.intrinsics.shape == (60, 80)


class TestErrors:
    def test_hierarchy(self):
        assert issubclass(VolumeConfigError, GridFusionError)
        assert issubclass(VolumeConfigError, ValueError)
