"""Landmark recording and replay for drawing sessions.

Recordings let a session be re-rendered without a camera, e.g. to
regenerate a drawing at another resolution or to reproduce a bug.
"""

from __future__ import annotations

import json
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Iterator, Optional

import numpy as np

from air_canvas.gestures import NUM_LANDMARKS, GestureResult, to_landmark_array

FORMAT_VERSION = 1


@dataclass
class RecordedFrame:
    """A single frame in a recording."""
    timestamp: float  # seconds from recording start
    landmarks: Optional[list[list[float]]]  # (21, 3) or None when no hand
    gesture: Optional[str] = None


class GestureRecorder:
    """Records landmark frames to a file.

    Usage:
        recorder = GestureRecorder()
        recorder.start()
        # In your frame loop:
        recorder.add_frame(landmarks, result)
        # When done:
        recorder.save("session.json")
    """

    def __init__(self):
        self._frames: list[RecordedFrame] = []
        self._start_time: Optional[float] = None
        self._recording = False

    def start(self):
        """Begin a new recording session."""
        self._frames = []
        self._start_time = time.monotonic()
        self._recording = True

    def stop(self) -> int:
        """Stop recording. Returns number of frames captured."""
        self._recording = False
        return len(self._frames)

    def add_frame(
        self,
        landmarks,
        result: Optional[GestureResult] = None,
        timestamp: Optional[float] = None,
    ):
        """Append a frame. Ignored unless recording.

        Args:
            landmarks: Hand landmarks, or None/empty when no hand was seen.
            result: Optional classification to store alongside.
            timestamp: Seconds from start; measured if omitted.
        """
        if not self._recording:
            return

        if timestamp is None:
            timestamp = time.monotonic() - self._start_time

        arr = to_landmark_array(landmarks)
        self._frames.append(RecordedFrame(
            timestamp=float(timestamp),
            landmarks=arr.tolist() if arr is not None else None,
            gesture=result.gesture.value if result is not None else None,
        ))

    def save(self, path: str | Path) -> Path:
        """Save recording to JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "version": FORMAT_VERSION,
            "frame_count": len(self._frames),
            "duration": self.duration,
            "frames": [asdict(f) for f in self._frames],
        }
        with open(path, "w") as f:
            json.dump(data, f)
        return path

    def save_compact(self, path: str | Path) -> Path:
        """Save in compact numpy npz format."""
        path = Path(path).with_suffix(".npz")
        path.parent.mkdir(parents=True, exist_ok=True)

        n = len(self._frames)
        landmarks = np.zeros((n, NUM_LANDMARKS, 3), dtype=np.float32)
        present = np.zeros(n, dtype=bool)
        for i, frame in enumerate(self._frames):
            if frame.landmarks is not None:
                landmarks[i] = frame.landmarks
                present[i] = True

        np.savez_compressed(
            path,
            timestamps=np.array([f.timestamp for f in self._frames], dtype=np.float64),
            landmarks=landmarks,
            present=present,
            gestures=np.array([json.dumps([f.gesture for f in self._frames])]),
        )
        return path

    @property
    def is_recording(self) -> bool:
        return self._recording

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    @property
    def duration(self) -> float:
        if not self._frames:
            return 0.0
        return self._frames[-1].timestamp


class GesturePlayer:
    """Replays a recorded session.

    Usage:
        player = GesturePlayer.load("session.json")
        for frame in player.play():
            session.on_frame(frame.landmarks, frame.timestamp)
    """

    def __init__(self, frames: list[RecordedFrame]):
        self._frames = frames

    @classmethod
    def load(cls, path: str | Path) -> GesturePlayer:
        """Load a recording from .json or .npz."""
        path = Path(path)
        if path.suffix == ".npz":
            return cls._load_compact(path)

        with open(path) as f:
            data = json.load(f)

        version = data.get("version", FORMAT_VERSION)
        if version != FORMAT_VERSION:
            raise ValueError(f"Unsupported recording version {version} in {path}")

        frames = [
            RecordedFrame(
                timestamp=f["timestamp"],
                landmarks=f.get("landmarks"),
                gesture=f.get("gesture"),
            )
            for f in data["frames"]
        ]
        return cls(frames)

    @classmethod
    def _load_compact(cls, path: Path) -> GesturePlayer:
        data = np.load(path, allow_pickle=False)
        timestamps = data["timestamps"]
        landmarks = data["landmarks"]
        present = data["present"]
        gestures = json.loads(str(data["gestures"][0]))

        frames = [
            RecordedFrame(
                timestamp=float(timestamps[i]),
                landmarks=landmarks[i].tolist() if present[i] else None,
                gesture=gestures[i] if i < len(gestures) else None,
            )
            for i in range(len(timestamps))
        ]
        return cls(frames)

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    @property
    def duration(self) -> float:
        if not self._frames:
            return 0.0
        return self._frames[-1].timestamp

    def _as_numpy(self, frame: RecordedFrame) -> RecordedFrame:
        return RecordedFrame(
            timestamp=frame.timestamp,
            landmarks=(
                np.array(frame.landmarks, dtype=np.float64)
                if frame.landmarks is not None else None
            ),
            gesture=frame.gesture,
        )

    def play(self) -> Iterator[RecordedFrame]:
        """Iterate through all frames instantly (no timing)."""
        for frame in self._frames:
            yield self._as_numpy(frame)

    def play_realtime(self, speed: float = 1.0) -> Iterator[RecordedFrame]:
        """Replay at original timing, scaled by ``speed``."""
        if not self._frames:
            return

        start = time.monotonic()
        for frame in self.play():
            target = frame.timestamp / speed
            elapsed = time.monotonic() - start
            if target > elapsed:
                time.sleep(target - elapsed)
            yield frame

    def get_frame(self, index: int) -> Optional[RecordedFrame]:
        if 0 <= index < len(self._frames):
            return self._as_numpy(self._frames[index])
        return None
