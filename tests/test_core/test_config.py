"""Tests for VolumeConfig and YAML loading."""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from gridfusion.core.config import MAX_RAYCAST_STEP, VolumeConfig, load_volume_config

CONFIG_DIR = Path(__file__).resolve().parents[2] / "configs"


class TestVolumeConfig:
    def test_defaults(self):
        cfg = VolumeConfig()
        assert cfg.resolution == (256, 256, 256)
        assert cfg.voxel_size == 0.004
        assert cfg.weight_cap == 64.0
        assert cfg.raycast_step == 0.5
        assert cfg.grid_origin == "centered"

    def test_default_truncation_is_four_voxels(self):
        assert VolumeConfig(voxel_size=0.01).truncation == pytest.approx(0.04)

    def test_explicit_truncation(self):
        assert VolumeConfig(max_tsdf=0.02).truncation == 0.02

    @pytest.mark.parametrize(
        "overrides",
        [
            {"resolution": (0, 8, 8)},
            {"resolution": (8, 8)},
            {"voxel_size": 0.0},
            {"max_tsdf": -0.01},
            {"weight_cap": 0.5},
            {"raycast_step": 0.0},
            {"raycast_step": MAX_RAYCAST_STEP + 0.01},
            {"grid_origin": "corner"},
        ],
    )
    def test_invalid(self, overrides):
        with pytest.raises(ValidationError):
            VolumeConfig(**overrides)

    def test_explicit_origin(self):
        cfg = VolumeConfig(grid_origin=[1, 2, 3])
        assert cfg.grid_origin == (1.0, 2.0, 3.0)


class TestLoadVolumeConfig:
    def test_shipped_config(self):
        cfg = load_volume_config(CONFIG_DIR / "volume.yaml")
        assert cfg.resolution == (768, 768, 768)
        assert cfg.truncation == pytest.approx(0.016)

    def test_partial_yaml(self, tmp_path):
        path = tmp_path / "volume.yaml"
        path.write_text(yaml.safe_dump({"resolution": [16, 32, 64], "voxel_size": 0.01}))
        cfg = load_volume_config(path)
        assert cfg.resolution == (16, 32, 64)
        assert cfg.weight_cap == 64.0

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_volume_config(path) == VolumeConfig()

    def test_invalid_yaml_values(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("voxel_size: -1\n")
        with pytest.raises(ValidationError):
            load_volume_config(path)
