import logging
import math
from types import SimpleNamespace

import pytest

from holohud.hand_types import EMPTY_STATE, Handedness, Landmark, RawHand
from holohud.normalizer import (
    build_hand,
    expansion_from_pinch,
    normalize_frame,
    parse_handedness,
    pinch_distance,
    rotation_from_center,
)


def make_landmarks(thumb=(0.4, 0.5), index=(0.5, 0.5), center=(0.5, 0.5)):
    points = [Landmark(0.5, 0.5, 0.0) for _ in range(21)]
    points[4] = Landmark(*thumb)
    points[8] = Landmark(*index)
    points[9] = Landmark(*center)
    return points


def test_pinch_threshold_is_strict() -> None:
    # Same y, so hypot(0.05, 0) is exactly 0.05.
    at_threshold = build_hand(RawHand(make_landmarks(thumb=(0.0, 0.5), index=(0.05, 0.5)), "Right"))
    assert at_threshold is not None
    assert at_threshold.pinch_distance == 0.05
    assert at_threshold.is_pinching is False

    below = build_hand(RawHand(make_landmarks(thumb=(0.0, 0.5), index=(0.049, 0.5)), "Right"))
    assert below is not None and below.is_pinching is True


def test_pinch_distance_ignores_depth() -> None:
    points = make_landmarks(thumb=(0.1, 0.1), index=(0.4, 0.5))
    points[4] = Landmark(0.1, 0.1, 5.0)
    assert math.isclose(pinch_distance(points), 0.5, rel_tol=1e-9)


def test_expansion_is_clamped_and_monotonic() -> None:
    assert expansion_from_pinch(0.0) == 0.0
    assert expansion_from_pinch(0.02) == 0.0
    assert expansion_from_pinch(0.18) == pytest.approx(1.0)
    assert expansion_from_pinch(0.5) == 1.0

    samples = [expansion_from_pinch(d / 100) for d in range(0, 25)]
    assert samples == sorted(samples)
    assert all(0.0 <= value <= 1.0 for value in samples)


def test_rotation_is_zero_at_center_and_clamped() -> None:
    centered = rotation_from_center(Landmark(0.5, 0.5))
    assert centered.x == 0.0 and centered.y == 0.0

    # Landmarks can stray slightly outside the frame.
    outside = rotation_from_center(Landmark(1.3, -0.4))
    assert outside.x == 1.0 and outside.y == -1.0


def test_handedness_roles() -> None:
    left = build_hand(RawHand(make_landmarks(thumb=(0.0, 0.5), index=(0.1, 0.5), center=(0.9, 0.9)), "Left"))
    right = build_hand(RawHand(make_landmarks(thumb=(0.0, 0.5), index=(0.1, 0.5), center=(0.75, 0.5)), "Right"))
    assert left is not None and right is not None

    assert left.handedness is Handedness.LEFT
    assert left.expansion_factor == pytest.approx(0.5)
    assert left.rotation_control.x == 0.0 and left.rotation_control.y == 0.0

    assert right.handedness is Handedness.RIGHT
    assert right.expansion_factor == 0.0
    assert right.rotation_control.x == pytest.approx(0.5)
    assert right.rotation_control.y == pytest.approx(0.0)


def test_parse_handedness() -> None:
    assert parse_handedness("Left") is Handedness.LEFT
    assert parse_handedness(" right ") is Handedness.RIGHT
    assert parse_handedness(None) is Handedness.RIGHT
    assert parse_handedness("Both") is None


def test_malformed_hands_are_discarded() -> None:
    short = RawHand(make_landmarks()[:20], "Left")
    missing_coordinate = RawHand([SimpleNamespace(x=0.5)] * 21, "Left")
    not_a_number = RawHand(make_landmarks()[:20] + [Landmark(float("nan"), 0.5)], "Left")
    unknown_side = RawHand(make_landmarks(), "Ambidextrous")

    for raw in (short, missing_coordinate, not_a_number, unknown_side):
        assert build_hand(raw) is None

    assert normalize_frame([short, unknown_side]) is EMPTY_STATE


def test_provider_landmark_objects_are_accepted() -> None:
    """Anything exposing x/y (MediaPipe's NormalizedLandmark) is copied into Landmark records."""

    raw = [SimpleNamespace(x=p.x, y=p.y, z=None) for p in make_landmarks()]
    hand = build_hand(RawHand(raw, "Right", score=0.9, gesture="Open_Palm"))
    assert hand is not None
    assert all(isinstance(point, Landmark) for point in hand.landmarks)
    assert hand.score == 0.9
    assert hand.gesture == "Open_Palm"


def test_empty_frame_has_no_hands() -> None:
    state = normalize_frame([])
    assert state.left_hand is None and state.right_hand is None
    assert state.hand_count == 0


def test_duplicate_handedness_keeps_last() -> None:
    first = RawHand(make_landmarks(center=(0.2, 0.5)), "Right")
    second = RawHand(make_landmarks(center=(0.8, 0.5)), "Right")
    state = normalize_frame([first, second])
    assert state.hand_count == 1
    assert state.right_hand is not None
    assert state.right_hand.rotation_control.x == pytest.approx(0.6)


def test_both_hands_in_one_frame() -> None:
    state = normalize_frame([RawHand(make_landmarks(), "Left"), RawHand(make_landmarks(), "Right")])
    assert state.hand_count == 2
    assert state.left_hand is not None and state.left_hand.handedness is Handedness.LEFT
    assert state.right_hand is not None and state.right_hand.handedness is Handedness.RIGHT


def test_discarded_hands_are_logged_at_debug(caplog) -> None:
    with caplog.at_level(logging.DEBUG, logger="holohud.normalizer"):
        build_hand(RawHand(make_landmarks(), "Ambidextrous"))
        build_hand(RawHand(make_landmarks()[:20], "Left"))
    assert "Discarding hand with unknown handedness 'Ambidextrous'" in caplog.text
    assert "Discarding malformed Left hand" in caplog.text
