from typing import List

import pytest

from holohud.events import Channel, Notification
from holohud.hand_types import (
    EMPTY_STATE,
    HandInteractionData,
    Handedness,
    HandTrackingState,
    Landmark,
    RawHand,
    RotationControl,
)
from holohud.normalizer import normalize_frame
from holohud.tracker import (
    Edge,
    EdgeDetector,
    EventKind,
    InteractionStateTracker,
    ThresholdCrossing,
    TrackerSettings,
    ViewMode,
)

LANDMARKS = tuple(Landmark(0.5, 0.5) for _ in range(21))


def left(expansion: float) -> HandInteractionData:
    return HandInteractionData(LANDMARKS, Handedness.LEFT, 0.1, False, expansion_factor=expansion)


def right(pinching: bool = False, x: float = 0.0, y: float = 0.0) -> HandInteractionData:
    return HandInteractionData(
        LANDMARKS,
        Handedness.RIGHT,
        0.01 if pinching else 0.1,
        pinching,
        rotation_control=RotationControl(x, y),
    )


def test_edge_detector_reports_transitions_once() -> None:
    detector = EdgeDetector()
    assert detector.update(False) is None
    assert detector.update(True) is Edge.RISING
    assert detector.update(True) is None
    assert detector.update(False) is Edge.FALLING
    assert detector.update(False) is None


def test_threshold_crossing_is_strict() -> None:
    crossing = ThresholdCrossing(0.5)
    assert crossing.update(0.5) is None
    assert crossing.update(0.51) is Edge.RISING
    assert crossing.above is True
    crossing.reset()
    assert crossing.above is False


def test_initial_snapshot_is_zeroed() -> None:
    tracker = InteractionStateTracker()
    snap = tracker.snapshot
    assert snap.frame_index == 0
    assert snap.smoothed_expansion == 0.0
    assert snap.yaw == 0.0 and snap.pitch == 0.0
    assert snap.mode is ViewMode.GLOBE
    assert snap.events == ()


def test_smoothed_expansion_follows_geometric_law() -> None:
    tracker = InteractionStateTracker()
    state = HandTrackingState(left_hand=left(1.0))
    for _ in range(50):
        tracker.update(state)
    assert tracker.smoothed_expansion == pytest.approx(1.0 - 0.92**50, rel=1e-9)

    for _ in range(6):
        tracker.update(state)
    assert tracker.smoothed_expansion > 0.99


def test_pinch_sequence_emits_one_start_and_one_end() -> None:
    tracker = InteractionStateTracker()
    sequence = [False, False, True, True, True, False, False]
    starts: List[int] = []
    ends: List[int] = []
    for index, pinching in enumerate(sequence):
        snap = tracker.update(HandTrackingState(right_hand=right(pinching)))
        if EventKind.PINCH_START in snap.events:
            starts.append(index)
        if EventKind.PINCH_END in snap.events:
            ends.append(index)
    assert starts == [2]
    assert ends == [5]


def test_losing_right_hand_mid_pinch_ends_pinch() -> None:
    tracker = InteractionStateTracker()
    tracker.update(HandTrackingState(right_hand=right(True)))
    assert tracker.was_pinching is True

    snap = tracker.update(EMPTY_STATE)
    assert snap.events == (EventKind.PINCH_END,)
    assert snap.is_pinching is False


def test_none_state_is_treated_as_no_hands() -> None:
    tracker = InteractionStateTracker()
    snap = tracker.update(None)
    assert snap.hands is EMPTY_STATE
    assert snap.frame_index == 1


def test_mode_switch_fires_once_each_way() -> None:
    settings = TrackerSettings(smoothing_factor=1.0)
    tracker = InteractionStateTracker(settings)
    values = [0.2, 0.6, 0.7, 0.8, 0.4, 0.3]
    kinds = [tracker.update(HandTrackingState(left_hand=left(v))).events for v in values]
    flat = [kind for events in kinds for kind in events]
    assert flat.count(EventKind.TERRAIN_ENTER) == 1
    assert flat.count(EventKind.TERRAIN_EXIT) == 1
    assert EventKind.TERRAIN_ENTER in kinds[1]
    assert EventKind.TERRAIN_EXIT in kinds[4]
    assert tracker.snapshot.mode is ViewMode.GLOBE


def test_saturation_follows_smoothed_expansion() -> None:
    tracker = InteractionStateTracker(TrackerSettings(smoothing_factor=1.0))
    snap = tracker.update(HandTrackingState(left_hand=left(1.0)))
    assert snap.saturated is True
    assert snap.events == (EventKind.TERRAIN_ENTER, EventKind.SATURATION_START)

    snap = tracker.update(HandTrackingState(left_hand=left(0.9)))
    assert snap.saturated is False
    assert snap.events == (EventKind.SATURATION_END,)


def test_end_to_end_expansion_from_raw_landmarks() -> None:
    points = [Landmark(0.5, 0.5) for _ in range(21)]
    points[4] = Landmark(0.0, 0.5)
    points[8] = Landmark(0.1, 0.5)
    state = normalize_frame([RawHand(points, "Left")])
    assert state.left_hand is not None
    assert state.left_hand.expansion_factor == pytest.approx(0.5)

    snap = InteractionStateTracker().update(state)
    assert snap.target_expansion == pytest.approx(0.5)
    assert snap.smoothed_expansion == pytest.approx(0.04)
    assert snap.expansion_delta == pytest.approx(0.5)


def test_end_to_end_yaw_from_hand_center() -> None:
    points = [Landmark(0.5, 0.5) for _ in range(21)]
    points[9] = Landmark(0.75, 0.5)
    state = normalize_frame([RawHand(points, "Right")])

    tracker = InteractionStateTracker()
    snap = tracker.update(state)
    assert snap.yaw_rate == pytest.approx(0.025)
    assert snap.pitch_rate == 0.0
    snap = tracker.update(state)
    assert snap.yaw == pytest.approx(0.05)


def test_dead_zone_falls_back_to_ambient_rate() -> None:
    tracker = InteractionStateTracker()
    snap = tracker.update(HandTrackingState(right_hand=right(x=0.05, y=-0.1)))
    assert snap.yaw_rate == pytest.approx(0.0005)
    assert snap.pitch_rate == 0.0

    snap = tracker.update(EMPTY_STATE)
    assert snap.yaw == pytest.approx(0.001)

    snap = tracker.update(HandTrackingState(right_hand=right(x=-0.5, y=0.4)))
    assert snap.yaw_rate == pytest.approx(-0.025)
    assert snap.pitch_rate == pytest.approx(0.02)


def test_expansion_delta_is_zero_without_left_hand() -> None:
    tracker = InteractionStateTracker(TrackerSettings(smoothing_factor=1.0))
    tracker.update(HandTrackingState(left_hand=left(0.8)))
    snap = tracker.update(EMPTY_STATE)
    assert snap.target_expansion == 0.0
    assert snap.expansion_delta == 0.0
    assert snap.smoothed_expansion == 0.0


def test_elapsed_time_scales_rates() -> None:
    """Two reference frames of elapsed time equal two single-frame updates."""

    state = HandTrackingState(left_hand=left(1.0), right_hand=right(x=0.5))

    stepped = InteractionStateTracker()
    stepped.update(state)
    stepped.update(state)

    jumped = InteractionStateTracker()
    snap = jumped.update(state, dt=2 / 60)

    assert snap.smoothed_expansion == pytest.approx(stepped.smoothed_expansion)
    assert snap.yaw == pytest.approx(stepped.snapshot.yaw)


def test_events_are_published_to_channel() -> None:
    channel: Channel[Notification] = Channel("test")
    received: List[Notification] = []
    channel.subscribe(received.append)

    tracker = InteractionStateTracker(channel=channel)
    tracker.update(HandTrackingState(right_hand=right(True)))
    tracker.update(EMPTY_STATE)

    assert [item.source for item in received] == ["pinch_start", "pinch_end"]
    assert received[0].message == "Target locked"


def test_reset_restores_initial_state() -> None:
    tracker = InteractionStateTracker()
    tracker.update(HandTrackingState(left_hand=left(1.0), right_hand=right(True, x=1.0)))
    tracker.reset()
    assert tracker.smoothed_expansion == 0.0
    assert tracker.was_pinching is False
    assert tracker.snapshot.frame_index == 0


@pytest.mark.parametrize("factor", [0.0, -0.5, 1.5, 2.5])
def test_settings_reject_unstable_smoothing(factor: float) -> None:
    with pytest.raises(ValueError):
        TrackerSettings(smoothing_factor=factor)
