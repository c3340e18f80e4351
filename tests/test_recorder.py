"""Tests for landmark recording and replay."""

import json

import numpy as np
import pytest

from air_canvas.gestures import Gesture, GestureResult
from air_canvas.recorder import FORMAT_VERSION, GesturePlayer, GestureRecorder


def make_hand():
    return np.random.rand(21, 3)


def _recording(frames):
    """Recorder holding ``frames`` of (timestamp, landmarks, gesture)."""
    rec = GestureRecorder()
    rec.start()
    for t, lm, gesture in frames:
        result = GestureResult(gesture, 0.9) if gesture else None
        rec.add_frame(lm, result, timestamp=t)
    rec.stop()
    return rec


class TestRecorder:
    def test_record_and_count(self):
        rec = GestureRecorder()
        rec.start()
        for _ in range(10):
            rec.add_frame(make_hand())
        assert rec.is_recording
        assert rec.stop() == 10
        assert not rec.is_recording

    def test_not_recording_ignores_frames(self):
        rec = GestureRecorder()
        rec.add_frame(make_hand())
        assert rec.frame_count == 0

    def test_duration(self):
        rec = _recording([(0.0, make_hand(), None), (2.5, make_hand(), None)])
        assert rec.duration == 2.5

    def test_empty_duration(self):
        assert GestureRecorder().duration == 0.0

    def test_start_clears_previous(self):
        rec = _recording([(0.0, make_hand(), None)])
        rec.start()
        assert rec.frame_count == 0

    def test_save_json(self, tmp_path):
        rec = _recording([(0.0, make_hand(), Gesture.POINT)])
        path = rec.save(tmp_path / "sub" / "rec.json")
        data = json.loads(path.read_text())
        assert data["version"] == FORMAT_VERSION
        assert data["frame_count"] == 1
        assert data["frames"][0]["gesture"] == "point"


class TestPlayer:
    def test_json_roundtrip(self, tmp_path):
        hands = [make_hand(), make_hand()]
        rec = _recording([
            (0.0, hands[0], Gesture.POINT),
            (0.1, [], None),
            (0.2, hands[1], Gesture.FIST),
        ])
        player = GesturePlayer.load(rec.save(tmp_path / "rec.json"))

        frames = list(player.play())
        assert player.frame_count == 3
        assert player.duration == pytest.approx(0.2)
        np.testing.assert_allclose(frames[0].landmarks, hands[0])
        assert frames[0].landmarks.dtype == np.float64
        assert frames[1].landmarks is None
        assert [f.gesture for f in frames] == ["point", None, "fist"]

    def test_compact_roundtrip(self, tmp_path):
        hand = make_hand()
        rec = _recording([(0.0, hand, Gesture.PEACE), (0.5, None, None)])
        path = rec.save_compact(tmp_path / "rec.json")
        assert path.suffix == ".npz"

        frames = list(GesturePlayer.load(path).play())
        np.testing.assert_allclose(frames[0].landmarks, hand, atol=1e-6)
        assert frames[1].landmarks is None
        assert frames[0].gesture == "peace"
        assert frames[1].timestamp == 0.5

    def test_unsupported_version(self, tmp_path):
        path = tmp_path / "rec.json"
        path.write_text(json.dumps({"version": 99, "frames": []}))
        with pytest.raises(ValueError):
            GesturePlayer.load(path)

    def test_get_frame(self, tmp_path):
        rec = _recording([(0.0, make_hand(), None)])
        player = GesturePlayer.load(rec.save(tmp_path / "rec.json"))
        assert player.get_frame(0).landmarks.shape == (21, 3)
        assert player.get_frame(5) is None
        assert player.get_frame(-1) is None

    def test_realtime_playback_order(self, tmp_path):
        rec = _recording([(0.0, make_hand(), None), (0.01, make_hand(), None)])
        player = GesturePlayer.load(rec.save(tmp_path / "rec.json"))
        stamps = [f.timestamp for f in player.play_realtime(speed=10.0)]
        assert stamps == [0.0, 0.01]

    def test_empty_realtime(self):
        assert list(GesturePlayer([]).play_realtime()) == []
