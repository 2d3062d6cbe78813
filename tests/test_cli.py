"""
Tests for command line entry points.
"""
import json

import pytest

from blobtrack_pkg.cli import create_offline_parser, main, offline_main
from blobtrack_pkg.config import load_config


class TestMain:

    def test_save_config(self, tmp_path):
        path = tmp_path / "out.yaml"
        main(["--save-config", str(path), "--max-hold", "9", "--lightness-tol", "33"])
        config = load_config(path)
        assert config.gate.max_hold_frames == 9
        assert config.color.lightness_tolerance == 33

    def test_config_file_then_overrides(self, tmp_path):
        src = tmp_path / "in.yaml"
        src.write_text("gate:\n  max_distance_px: 12.5\ncolor:\n  chroma_tolerance: 4\n")
        out = tmp_path / "out.yaml"
        main(["--config", str(src), "--chroma-tol", "6", "--save-config", str(out)])
        config = load_config(out)
        assert config.gate.max_distance_px == 12.5
        assert config.color.chroma_tolerance == 6

    def test_malformed_config_file_exits(self, tmp_path, capsys):
        path = tmp_path / "bad.yaml"
        path.write_text("color: [unclosed\n")
        with pytest.raises(SystemExit) as exc:
            main(["--config", str(path), "--no-window"])
        assert exc.value.code == 1
        assert "Traceback" not in capsys.readouterr().err

    def test_invalid_config_exits(self):
        with pytest.raises(SystemExit) as exc:
            main(["--dilate", "-1", "--no-window"])
        assert exc.value.code == 1


class TestOfflineMain:

    def test_requires_click(self):
        with pytest.raises(SystemExit):
            create_offline_parser().parse_args(["--video", "a.mp4"])

    def test_missing_video_exits(self, tmp_path):
        with pytest.raises(SystemExit) as exc:
            offline_main(["--video", str(tmp_path / "none.mp4"), "--click", "1,1"])
        assert exc.value.code == 1

    def test_writes_trajectory(self, tmp_path, scene_video):
        path, centers = scene_video
        out = tmp_path / "traj.json"
        offline_main(["--video", str(path), "--click", "%d,%d" % centers[0], "--output", str(out)])
        with open(out) as f:
            data = json.load(f)
        assert len(data["frames"]) == len(centers)
        assert data["frames"][0]["phase"] == "tracking"
