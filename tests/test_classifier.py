"""Tests for rule-based gesture classification."""

import numpy as np
import pytest

from air_canvas.classifier import GestureClassifier
from air_canvas.gestures import FingerState, Gesture, GestureRule, NO_GESTURE

# finger → (mcp, pip/ip, tip)
JOINTS = {
    "thumb": (2, 3, 4),
    "index": (5, 6, 8),
    "middle": (9, 10, 12),
    "ring": (13, 14, 16),
    "pinky": (17, 18, 20),
}


def make_hand(*extended):
    """Upright hand with the named fingers extended and the rest curled."""
    lm = np.zeros((21, 3))
    lm[0] = [0.5, 0.9, 0]
    for i, (finger, (mcp, pip, tip)) in enumerate(JOINTS.items()):
        x = 0.3 + 0.1 * i
        lm[mcp] = [x, 0.6, 0]
        lm[pip] = [x, 0.5, 0]
        lm[tip] = [x, 0.3 if finger in extended else 0.7, 0]
    return lm


def make_ok_sign(tip_gap):
    """Middle, ring, pinky up; thumb and index tips ``tip_gap`` apart."""
    lm = make_hand("middle", "ring", "pinky")
    lm[4] = [0.5, 0.7, 0]
    lm[8] = [0.5 + tip_gap, 0.7, 0]
    return lm


class TestNoHand:
    @pytest.mark.parametrize("n", [0, 1, 5, 20, 22, 42])
    def test_wrong_landmark_count(self, n):
        classifier = GestureClassifier()
        result = classifier.classify(np.random.rand(n, 3))
        assert result.gesture is Gesture.NONE
        assert result.confidence == 0.0
        assert result.position is None

    def test_empty_list(self):
        assert GestureClassifier().classify([]) == NO_GESTURE

    def test_none(self):
        assert GestureClassifier().classify(None) == NO_GESTURE


class TestGestures:
    def test_point(self):
        lm = make_hand("index")
        result = GestureClassifier().classify(lm)
        assert result.gesture is Gesture.POINT
        assert result.confidence == 0.9
        assert result.position is not None
        assert result.position[0] == pytest.approx(1 - lm[8][0])
        assert result.position[1] == pytest.approx(lm[8][1])

    def test_peace(self):
        result = GestureClassifier().classify(make_hand("index", "middle"))
        assert result.gesture is Gesture.PEACE
        assert result.confidence == 0.85
        assert result.position is None

    def test_fist(self):
        result = GestureClassifier().classify(make_hand())
        assert result.gesture is Gesture.FIST
        assert result.confidence == 0.8

    def test_thumbs_up(self):
        result = GestureClassifier().classify(make_hand("thumb"))
        assert result.gesture is Gesture.THUMBS_UP
        assert result.confidence == 0.8

    def test_open_palm(self):
        result = GestureClassifier().classify(
            make_hand("thumb", "index", "middle", "ring", "pinky")
        )
        assert result.gesture is Gesture.OPEN_PALM
        assert result.confidence == 0.7

    def test_unmatched_pose(self):
        result = GestureClassifier().classify(make_hand("ring", "pinky"))
        assert result == NO_GESTURE

    def test_only_point_has_position(self):
        classifier = GestureClassifier()
        for fingers in [(), ("thumb",), ("index", "middle")]:
            assert classifier.classify(make_hand(*fingers)).position is None


class TestOkSign:
    def test_just_inside_threshold(self):
        result = GestureClassifier().classify(make_ok_sign(0.049))
        assert result.gesture is Gesture.OK_SIGN
        assert result.confidence == 0.8

    def test_threshold_is_strict(self):
        result = GestureClassifier().classify(make_ok_sign(0.05))
        assert result.gesture is Gesture.NONE

    def test_needs_three_fingers_up(self):
        lm = make_ok_sign(0.01)
        lm[20] = [0.7, 0.7, 0]  # curl pinky
        assert GestureClassifier().classify(lm).gesture is Gesture.NONE

    def test_open_palm_takes_priority(self):
        lm = make_hand("thumb", "index", "middle", "ring", "pinky")
        lm[4] = [0.4, 0.3, 0]
        lm[8] = [0.41, 0.3, 0]
        assert GestureClassifier().classify(lm).gesture is Gesture.OPEN_PALM

    def test_custom_distance(self):
        classifier = GestureClassifier(ok_sign_distance=0.1)
        assert classifier.classify(make_ok_sign(0.08)).gesture is Gesture.OK_SIGN


class TestFingerStates:
    def test_index_needs_two_joints(self):
        lm = make_hand()
        # Tip above PIP but below MCP
        lm[5] = [0.4, 0.2, 0]
        lm[8] = [0.4, 0.3, 0]
        states = GestureClassifier.finger_states(lm)
        assert states[1] is FingerState.CURLED

    def test_middle_needs_one_joint(self):
        lm = make_hand()
        lm[9] = [0.5, 0.2, 0]
        lm[12] = [0.5, 0.3, 0]
        states = GestureClassifier.finger_states(lm)
        assert states[2] is FingerState.EXTENDED

    def test_thumb_needs_two_joints(self):
        lm = make_hand()
        lm[2] = [0.3, 0.2, 0]
        lm[4] = [0.3, 0.3, 0]
        states = GestureClassifier.finger_states(lm)
        assert states[0] is FingerState.CURLED


class TestClassifierProperties:
    def test_deterministic(self):
        classifier = GestureClassifier()
        lm = make_hand("index")
        assert classifier.classify(lm) == classifier.classify(lm)

    def test_input_not_modified(self):
        lm = make_hand("index")
        before = lm.copy()
        GestureClassifier().classify(lm)
        np.testing.assert_array_equal(lm, before)

    def test_rule_order(self):
        names = [r.gesture for r in GestureClassifier().rules]
        assert names == [
            Gesture.POINT, Gesture.PEACE, Gesture.FIST,
            Gesture.THUMBS_UP, Gesture.OPEN_PALM, Gesture.OK_SIGN,
        ]

    def test_custom_rules(self):
        E, C = FingerState.EXTENDED, FingerState.CURLED
        classifier = GestureClassifier(rules=[
            GestureRule(Gesture.OPEN_PALM, 0.5, index=E, middle=E, ring=C),
        ])
        result = classifier.classify(make_hand("index", "middle"))
        assert result.gesture is Gesture.OPEN_PALM
        assert result.confidence == 0.5
