"""Gesture definitions: single-frame hand poses as ordered finger-state rules."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence

import numpy as np

# MediaPipe hand landmark indices
WRIST = 0
THUMB_MCP, THUMB_IP, THUMB_TIP = 2, 3, 4
INDEX_MCP, INDEX_PIP, INDEX_TIP = 5, 6, 8
MIDDLE_PIP, MIDDLE_TIP = 10, 12
RING_PIP, RING_TIP = 14, 16
PINKY_PIP, PINKY_TIP = 18, 20

NUM_LANDMARKS = 21

FINGERS = ("thumb", "index", "middle", "ring", "pinky")


class Gesture(Enum):
    NONE = "none"
    POINT = "point"
    PEACE = "peace"
    FIST = "fist"
    THUMBS_UP = "thumbs_up"
    OPEN_PALM = "open_palm"
    OK_SIGN = "ok_sign"


class FingerState(Enum):
    """Binary finger state based on landmark positions."""
    EXTENDED = "extended"
    CURLED = "curled"
    ANY = "any"  # don't care


@dataclass(frozen=True)
class GestureResult:
    """Classification of one landmark frame.

    ``position`` is only set for ``Gesture.POINT`` and holds the mirrored
    index fingertip in normalized drawing-surface coordinates.
    """

    gesture: Gesture
    confidence: float
    position: Optional[tuple[float, float]] = None

    def to_dict(self) -> dict:
        return {
            "gesture": self.gesture.value,
            "confidence": self.confidence,
            "position": (
                {"x": self.position[0], "y": self.position[1]}
                if self.position is not None else None
            ),
        }


NO_GESTURE = GestureResult(Gesture.NONE, 0.0, None)


@dataclass(frozen=True)
class GestureRule:
    """A gesture defined by the required state of each finger.

    ``max_tip_distance`` adds a strict upper bound on the 2-D distance between
    the thumb tip and the index tip.
    """

    gesture: Gesture
    confidence: float
    thumb: FingerState = FingerState.ANY
    index: FingerState = FingerState.ANY
    middle: FingerState = FingerState.ANY
    ring: FingerState = FingerState.ANY
    pinky: FingerState = FingerState.ANY
    max_tip_distance: Optional[float] = None

    @property
    def finger_states(self) -> tuple[FingerState, ...]:
        return (self.thumb, self.index, self.middle, self.ring, self.pinky)

    def match(self, states: Sequence[FingerState], tip_distance: float) -> bool:
        for expected, actual in zip(self.finger_states, states):
            if expected is not FingerState.ANY and expected is not actual:
                return False
        if self.max_tip_distance is not None:
            return tip_distance < self.max_tip_distance
        return True

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "name": self.gesture.value,
            "confidence": self.confidence,
            "fingers": {
                name: state.value
                for name, state in zip(FINGERS, self.finger_states)
            },
        }
        if self.max_tip_distance is not None:
            data["max_tip_distance"] = self.max_tip_distance
        return data


def default_rules(ok_sign_distance: float = 0.05) -> tuple[GestureRule, ...]:
    """Built-in rules in priority order. The first matching rule wins."""
    E, C, A = FingerState.EXTENDED, FingerState.CURLED, FingerState.ANY
    return (
        GestureRule(Gesture.POINT, 0.9, thumb=C, index=E, middle=C, ring=C, pinky=C),
        GestureRule(Gesture.PEACE, 0.85, thumb=C, index=E, middle=E, ring=C, pinky=C),
        GestureRule(Gesture.FIST, 0.8, thumb=C, index=C, middle=C, ring=C, pinky=C),
        GestureRule(Gesture.THUMBS_UP, 0.8, thumb=E, index=C, middle=C, ring=C, pinky=C),
        GestureRule(Gesture.OPEN_PALM, 0.7, thumb=E, index=E, middle=E, ring=E, pinky=E),
        GestureRule(
            Gesture.OK_SIGN, 0.8, thumb=A, index=A, middle=E, ring=E, pinky=E,
            max_tip_distance=ok_sign_distance,
        ),
    )


def to_landmark_array(landmarks: Any) -> Optional[np.ndarray]:
    """Coerce a landmark frame into a (21, 3) float array.

    Accepts numpy arrays, sequences of (x, y[, z]) triples, mappings with
    ``x``/``y``/``z`` keys and MediaPipe landmark objects. Returns None for
    anything that is not exactly 21 points.
    """
    if landmarks is None:
        return None

    try:
        if isinstance(landmarks, np.ndarray):
            arr = np.asarray(landmarks, dtype=np.float64)
        else:
            rows = []
            for lm in landmarks:
                if isinstance(lm, dict):
                    rows.append([lm["x"], lm["y"], lm.get("z", 0.0)])
                elif hasattr(lm, "x"):
                    rows.append([lm.x, lm.y, getattr(lm, "z", 0.0)])
                else:
                    rows.append(list(lm))
            arr = np.asarray(rows, dtype=np.float64)
    except (TypeError, ValueError, KeyError):
        return None

    if arr.ndim != 2 or arr.shape[0] != NUM_LANDMARKS or arr.shape[1] not in (2, 3):
        return None
    if arr.shape[1] == 2:
        arr = np.hstack([arr, np.zeros((NUM_LANDMARKS, 1))])
    return arr
