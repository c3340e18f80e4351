"""Tests for the command-line interface."""

import cv2
import numpy as np
import pytest
from typer.testing import CliRunner

from air_canvas.cli import app
from air_canvas.gestures import Gesture, GestureResult
from air_canvas.recorder import GestureRecorder

runner = CliRunner()

JOINTS = [(2, 3, 4), (5, 6, 8), (9, 10, 12), (13, 14, 16), (17, 18, 20)]


def _point(x):
    lm = np.zeros((21, 3))
    lm[0] = [0.5, 0.9, 0]
    for i, (mcp, pip, tip) in enumerate(JOINTS):
        lm[mcp] = [0.3 + 0.1 * i, 0.6, 0]
        lm[pip] = [0.3 + 0.1 * i, 0.5, 0]
        lm[tip] = [0.3 + 0.1 * i, 0.3 if i == 1 else 0.7, 0]
    lm[8, 0] = x
    return lm


@pytest.fixture
def recording(tmp_path):
    rec = GestureRecorder()
    rec.start()
    for i, x in enumerate([0.2, 0.4, 0.6]):
        rec.add_frame(_point(x), GestureResult(Gesture.POINT, 0.9), timestamp=i * 0.1)
    rec.add_frame(None, timestamp=0.3)
    rec.stop()
    return rec.save(tmp_path / "rec.json")


class TestRender:
    def test_render_png(self, recording, tmp_path):
        out = tmp_path / "out" / "drawing.png"
        result = runner.invoke(app, [
            "render", str(recording), "-o", str(out), "--width", "100", "--height", "80",
        ])
        assert result.exit_code == 0, result.output
        assert "4 frames" in result.output
        assert "1 strokes" in result.output

        image = cv2.imread(str(out), cv2.IMREAD_UNCHANGED)
        assert image.shape == (80, 100, 4)
        # Mirrored x: the stroke runs from 0.8 to 0.4 at y = 0.3
        assert tuple(image[24, 60]) == (246, 130, 59, 255)

    def test_render_with_config(self, recording, tmp_path):
        config = tmp_path / "canvas.yaml"
        config.write_text("canvas_width: 50\ncanvas_height: 50\n")
        out = tmp_path / "drawing.png"
        result = runner.invoke(app, [
            "render", str(recording), "-o", str(out), "--config", str(config),
        ])
        assert result.exit_code == 0, result.output
        assert cv2.imread(str(out), cv2.IMREAD_UNCHANGED).shape == (50, 50, 4)

    def test_bad_config(self, recording, tmp_path):
        config = tmp_path / "canvas.yaml"
        config.write_text("canvas_width: -5\n")
        result = runner.invoke(app, ["render", str(recording), "--config", str(config)])
        assert result.exit_code == 1

    def test_missing_recording(self, tmp_path):
        result = runner.invoke(app, ["render", str(tmp_path / "nope.json")])
        assert result.exit_code == 1


class TestClassify:
    def test_changes_only(self, recording):
        result = runner.invoke(app, ["classify", str(recording)])
        assert result.exit_code == 0, result.output
        lines = result.output.strip().splitlines()
        assert len(lines) == 2
        assert "point" in lines[0]
        assert "none" in lines[1]

    def test_every_frame(self, recording):
        result = runner.invoke(app, ["classify", str(recording), "--no-changes-only"])
        assert result.exit_code == 0, result.output
        assert len(result.output.strip().splitlines()) == 4


class TestSizeOverrides:
    @pytest.mark.parametrize("args", [["--width", "0"], ["--height", "-3"]])
    def test_invalid_size_exits_cleanly(self, recording, tmp_path, args):
        out = tmp_path / "drawing.png"
        result = runner.invoke(app, ["render", str(recording), "-o", str(out), *args])
        assert result.exit_code == 1
        # typer.Exit surfaces as SystemExit, not an unhandled ValueError
        assert isinstance(result.exception, SystemExit)
        assert not out.exists()

    def test_override_keeps_config_values(self, recording, tmp_path):
        config = tmp_path / "canvas.yaml"
        config.write_text("canvas_width: 50\ncanvas_height: 40\n")
        out = tmp_path / "drawing.png"
        result = runner.invoke(app, [
            "render", str(recording), "-o", str(out), "--config", str(config), "--width", "70",
        ])
        assert result.exit_code == 0, result.output
        assert cv2.imread(str(out), cv2.IMREAD_UNCHANGED).shape == (40, 70, 4)
