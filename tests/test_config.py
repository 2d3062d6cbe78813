"""
Tests for configuration loading, validation and CLI overlay.
"""
import pytest
import yaml

from blobtrack_pkg.cli import create_arg_parser
from blobtrack_pkg.config import (
    ColorConfig,
    GateConfig,
    TrackerConfig,
    click_from_string,
    load_config,
    save_config,
)


class TestDefaults:

    def test_default_values(self, default_config):
        assert default_config.color.lightness_tolerance == 50
        assert default_config.color.chroma_tolerance == 15
        assert default_config.color.dilate_radius == 2
        assert default_config.gate.max_distance_px == 30
        assert default_config.gate.max_hold_frames == 15
        assert default_config.extrinsics.matrix[1][3] == -0.09
        assert default_config.extrinsics.matrix[2][3] == -0.15

    def test_instances_do_not_share_matrix(self):
        a, b = TrackerConfig(), TrackerConfig()
        a.extrinsics.matrix[0][3] = 1.0
        assert b.extrinsics.matrix[0][3] == 0.0


class TestValidation:

    @pytest.mark.parametrize("kwargs", [
        {"lightness_tolerance": -1},
        {"chroma_tolerance": -1},
        {"dilate_radius": -2},
    ])
    def test_negative_color_values(self, kwargs):
        with pytest.raises(ValueError):
            ColorConfig(**kwargs)

    def test_negative_gate_values(self):
        with pytest.raises(ValueError):
            GateConfig(max_distance_px=-1)
        with pytest.raises(ValueError):
            GateConfig(max_hold_frames=-1)


class TestSerialization:
    """Test dict / YAML round trips."""

    def test_dict_round_trip(self, default_config):
        default_config.gate.max_hold_frames = 7
        assert TrackerConfig.from_dict(default_config.to_dict()) == default_config

    def test_partial_dict(self):
        config = TrackerConfig.from_dict({"color": {"chroma_tolerance": 4}})
        assert config.color.chroma_tolerance == 4
        assert config.color.lightness_tolerance == 50

    def test_euler_extrinsics_round_trip(self, default_config):
        default_config.extrinsics.euler_deg = [5.0, 0.0, -30.0]
        restored = TrackerConfig.from_dict(default_config.to_dict())
        assert restored.extrinsics.euler_deg == [5.0, 0.0, -30.0]
        assert restored.extrinsics.translation is None

    def test_extrinsics_vector_length(self):
        with pytest.raises(ValueError):
            TrackerConfig.from_dict({"extrinsics": {"euler_deg": [1.0, 2.0]}})

    def test_unknown_section(self):
        with pytest.raises(ValueError, match="Unknown"):
            TrackerConfig.from_dict({"colour": {}})

    def test_unknown_field(self):
        with pytest.raises(TypeError):
            TrackerConfig.from_dict({"gate": {"max_holds": 3}})

    def test_color_order_not_configurable(self):
        """Color order comes from the source's decoder, not from the camera section."""
        with pytest.raises(TypeError):
            TrackerConfig.from_dict({"camera": {"color_order": "rgb"}})

    def test_yaml_round_trip(self, tmp_path, default_config):
        path = tmp_path / "tracker.yaml"
        default_config.camera.source = "video"
        save_config(default_config, path)

        with open(path) as f:
            raw = yaml.safe_load(f)
        assert raw["camera"]["source"] == "video"
        assert load_config(path) == default_config

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path) == TrackerConfig()

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("color: [unclosed\n")
        with pytest.raises(ValueError, match="Malformed YAML"):
            load_config(path)

    def test_non_mapping_section(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("color:\n  - 1\n  - 2\n")
        with pytest.raises(ValueError, match="mapping"):
            load_config(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")


class TestFromArgs:
    """Test argparse overlay."""

    def test_overlay(self):
        args = create_arg_parser().parse_args([
            "--source", "video", "--video", "clip.mp4",
            "--lightness-tol", "40", "--max-hold", "20", "--no-window", "--no-filters",
        ])
        config = TrackerConfig.from_args(args)
        assert config.camera.source == "video"
        assert config.camera.video_path == "clip.mp4"
        assert config.color.lightness_tolerance == 40
        assert config.color.chroma_tolerance == 15
        assert config.gate.max_hold_frames == 20
        assert not config.display.enabled
        assert not config.camera.use_filters

    def test_unset_args_keep_base(self):
        base = TrackerConfig()
        base.gate.max_distance_px = 12.0
        args = create_arg_parser().parse_args([])
        assert TrackerConfig.from_args(args, base=base).gate.max_distance_px == 12.0

    def test_extrinsic_args(self):
        args = create_arg_parser().parse_args([
            "--extrinsic-euler=-10,0,90", "--extrinsic-translation", "0.1,0.2,0.3",
        ])
        config = TrackerConfig.from_args(args)
        assert config.extrinsics.euler_deg == [-10.0, 0.0, 90.0]
        assert config.extrinsics.translation == [0.1, 0.2, 0.3]

    def test_extrinsic_arg_wrong_length(self):
        args = create_arg_parser().parse_args(["--extrinsic-translation", "0.1,0.2"])
        with pytest.raises(ValueError):
            TrackerConfig.from_args(args)

    def test_invalid_arg_rejected(self):
        args = create_arg_parser().parse_args(["--chroma-tol", "-3"])
        with pytest.raises(ValueError):
            TrackerConfig.from_args(args)


class TestClickFromString:

    def test_parse(self):
        assert click_from_string("412,230") == (412, 230)
        assert click_from_string(" 3 , 4 ") == (3, 4)

    @pytest.mark.parametrize("text", ["1", "1,2,3", "a,b"])
    def test_invalid(self, text):
        with pytest.raises(ValueError):
            click_from_string(text)
