"""Rule-based gesture classification from a single landmark frame."""

from __future__ import annotations

from typing import Any, Optional, Sequence

import numpy as np

from air_canvas.gestures import (
    INDEX_MCP,
    INDEX_PIP,
    INDEX_TIP,
    MIDDLE_PIP,
    MIDDLE_TIP,
    NO_GESTURE,
    PINKY_PIP,
    PINKY_TIP,
    RING_PIP,
    RING_TIP,
    THUMB_IP,
    THUMB_MCP,
    THUMB_TIP,
    FingerState,
    Gesture,
    GestureResult,
    GestureRule,
    default_rules,
    to_landmark_array,
)


class GestureClassifier:
    """Classifies hand landmarks into one of the built-in gestures.

    Finger extension is read from vertical ordering in camera space (y grows
    downward): a finger is extended when its tip sits above its proximal
    joints. Thumb and index are checked against two joints, the other three
    fingers against the PIP joint only.

    The classifier holds no per-frame state; ``classify`` is a pure function
    of its input and the configured rules.
    """

    def __init__(
        self,
        rules: Optional[Sequence[GestureRule]] = None,
        ok_sign_distance: float = 0.05,
    ):
        self._rules = tuple(rules) if rules is not None else default_rules(ok_sign_distance)

    @property
    def rules(self) -> tuple[GestureRule, ...]:
        return self._rules

    @staticmethod
    def finger_states(landmarks: np.ndarray) -> tuple[FingerState, ...]:
        """Extension state of (thumb, index, middle, ring, pinky)."""
        y = landmarks[:, 1]

        extended = (
            y[THUMB_TIP] < y[THUMB_IP] and y[THUMB_TIP] < y[THUMB_MCP],
            y[INDEX_TIP] < y[INDEX_PIP] and y[INDEX_TIP] < y[INDEX_MCP],
            y[MIDDLE_TIP] < y[MIDDLE_PIP],
            y[RING_TIP] < y[RING_PIP],
            y[PINKY_TIP] < y[PINKY_PIP],
        )
        return tuple(
            FingerState.EXTENDED if e else FingerState.CURLED for e in extended
        )

    @staticmethod
    def tip_distance(landmarks: np.ndarray) -> float:
        """2-D distance between thumb tip and index tip."""
        return float(np.linalg.norm(landmarks[THUMB_TIP, :2] - landmarks[INDEX_TIP, :2]))

    def classify(self, landmarks: Any) -> GestureResult:
        """Classify one frame of 21 landmarks.

        Args:
            landmarks: 21 normalized (x, y, z) points in any form accepted by
                ``to_landmark_array``. Empty or malformed input yields
                ``Gesture.NONE``.

        Returns:
            GestureResult with the first matching rule's gesture and
            confidence, and the mirrored index fingertip for ``point``.
        """
        arr = to_landmark_array(landmarks)
        if arr is None:
            return NO_GESTURE

        states = self.finger_states(arr)
        distance = self.tip_distance(arr)

        for rule in self._rules:
            if rule.match(states, distance):
                position = None
                if rule.gesture is Gesture.POINT:
                    # Front camera image is mirrored
                    position = (1.0 - float(arr[INDEX_TIP, 0]), float(arr[INDEX_TIP, 1]))
                return GestureResult(rule.gesture, rule.confidence, position)

        return NO_GESTURE
