"""Hand landmark extraction using MediaPipe, and camera frame capture."""

from __future__ import annotations

import logging
from typing import Optional

import cv2
import numpy as np

try:
    import mediapipe as mp
except ImportError:
    mp = None

from air_canvas.gestures import NUM_LANDMARKS

logger = logging.getLogger("air_canvas.detector")


class TrackingError(RuntimeError):
    """Hand tracking could not be initialized. Fatal for the session."""


class HandDetector:
    """Extracts the 21 3D landmarks of a single hand using MediaPipe Hands.

    Each landmark is (x, y, z) with x and y normalized to [0, 1] relative to
    the image. Only the first detected hand is returned.
    """

    def __init__(
        self,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
        model_complexity: int = 1,
    ):
        if mp is None:
            raise TrackingError(
                "mediapipe is required for hand tracking. Install with: pip install mediapipe"
            )

        try:
            self._hands = mp.solutions.hands.Hands(
                static_image_mode=False,
                max_num_hands=1,
                model_complexity=model_complexity,
                min_detection_confidence=min_detection_confidence,
                min_tracking_confidence=min_tracking_confidence,
            )
        except (AttributeError, RuntimeError) as e:
            raise TrackingError(f"Failed to initialize MediaPipe Hands: {e}") from e

    def detect(self, frame_rgb: np.ndarray) -> Optional[np.ndarray]:
        """Detect a hand and return its landmarks.

        Args:
            frame_rgb: RGB image as numpy array (H, W, 3), uint8.

        Returns:
            Landmark array of shape (21, 3), or None if no hand is visible.
        """
        results = self._hands.process(frame_rgb)

        if not results.multi_hand_landmarks:
            return None

        hand = results.multi_hand_landmarks[0]
        landmarks = np.array(
            [[lm.x, lm.y, lm.z] for lm in hand.landmark],
            dtype=np.float64,
        )
        if landmarks.shape[0] != NUM_LANDMARKS:
            return None
        return landmarks

    def close(self):
        """Release MediaPipe resources."""
        self._hands.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


class CameraSource:
    """OpenCV camera capture yielding RGB frames."""

    def __init__(self, index: int = 0, width: int = 640, height: int = 480):
        self.index = index
        self._capture = cv2.VideoCapture(index)
        if not self._capture.isOpened():
            self._capture.release()
            raise TrackingError(f"Could not open camera {index}")
        self._capture.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        self._capture.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
        logger.info("Camera %d opened", index)

    def read_rgb(self) -> Optional[np.ndarray]:
        """Grab one frame as RGB, or None if the camera returned nothing."""
        ok, frame = self._capture.read()
        if not ok:
            return None
        return cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)

    def close(self):
        self._capture.release()
        logger.info("Camera %d released", self.index)

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
