"""Pure per-frame conversion from raw provider hands to ``HandTrackingState``.

Nothing here keeps history: every call is a function of the frame it is
given. Malformed hands are dropped rather than raised so a bad detection can
never stall the render loop; the next frame simply supersedes it.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable, Optional, Sequence, Tuple

from holohud import config
from holohud.hand_types import (
    EMPTY_STATE,
    ZERO_ROTATION,
    HandInteractionData,
    Handedness,
    HandTrackingState,
    Landmark,
    RawHand,
    RotationControl,
)

logger = logging.getLogger(__name__)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def pinch_distance(landmarks: Sequence[Landmark]) -> float:
    """Thumb-tip to index-tip distance in the xy plane (z is ignored)."""

    thumb_tip = landmarks[config.THUMB_TIP]
    index_tip = landmarks[config.INDEX_TIP]
    return math.hypot(thumb_tip.x - index_tip.x, thumb_tip.y - index_tip.y)


def expansion_from_pinch(distance: float) -> float:
    """Map pinch distance onto ``[0, 1]`` using the calibrated fist/palm range."""

    normalized = (distance - config.MIN_PINCH) / (config.MAX_PINCH - config.MIN_PINCH)
    return _clamp(normalized, 0.0, 1.0)


def rotation_from_center(center: Landmark) -> RotationControl:
    """Signed deflection of the hand centre relative to the middle of the frame.

    Y grows downward in video coordinates, so a hand near the top yields a
    negative ``y``.
    """

    x = _clamp((center.x - 0.5) * 2, -1.0, 1.0)
    y = _clamp((center.y - 0.5) * 2, -1.0, 1.0)
    return RotationControl(x=x, y=y)


def parse_handedness(label: Optional[str]) -> Optional[Handedness]:
    """Return the handedness for ``label``; a missing label counts as Right."""

    if label is None:
        return Handedness.RIGHT
    text = str(label).strip().lower()
    if text == "left":
        return Handedness.LEFT
    if text == "right":
        return Handedness.RIGHT
    return None


def _coerce_landmarks(raw_landmarks: Sequence[object]) -> Optional[Tuple[Landmark, ...]]:
    if raw_landmarks is None:
        return None
    try:
        points = list(raw_landmarks)
    except TypeError:
        return None
    if len(points) < config.LANDMARK_COUNT:
        return None

    landmarks = []
    for point in points[: config.LANDMARK_COUNT]:
        try:
            x = float(point.x)
            y = float(point.y)
            z = float(getattr(point, "z", 0.0) or 0.0)
        except (AttributeError, TypeError, ValueError):
            return None
        if not (math.isfinite(x) and math.isfinite(y) and math.isfinite(z)):
            return None
        landmarks.append(Landmark(x, y, z))
    return tuple(landmarks)


def build_hand(raw: RawHand) -> Optional[HandInteractionData]:
    """Derive the interaction record for one hand, or ``None`` if malformed."""

    handedness = parse_handedness(raw.handedness_label)
    if handedness is None:
        logger.debug(f"Discarding hand with unknown handedness {raw.handedness_label!r}")
        return None

    landmarks = _coerce_landmarks(raw.landmarks)
    if landmarks is None:
        logger.debug(f"Discarding malformed {handedness.value} hand")
        return None

    distance = pinch_distance(landmarks)
    expansion = 0.0
    rotation = ZERO_ROTATION
    if handedness is Handedness.LEFT:
        expansion = expansion_from_pinch(distance)
    else:
        rotation = rotation_from_center(landmarks[config.MIDDLE_MCP])

    return HandInteractionData(
        landmarks=landmarks,
        handedness=handedness,
        pinch_distance=distance,
        is_pinching=distance < config.PINCH_THRESHOLD,
        expansion_factor=expansion,
        rotation_control=rotation,
        gesture=raw.gesture,
        score=raw.score,
    )


def normalize_frame(raw_hands: Iterable[RawHand]) -> HandTrackingState:
    """Convert one frame of provider output into the shared snapshot.

    When the provider reports two hands with the same handedness, the last
    one in the list wins.
    """

    left: Optional[HandInteractionData] = None
    right: Optional[HandInteractionData] = None

    for raw in raw_hands or ():
        hand = build_hand(raw)
        if hand is None:
            continue
        if hand.handedness is Handedness.LEFT:
            if left is not None:
                logger.debug("Duplicate Left hand in frame; keeping the last one")
            left = hand
        else:
            if right is not None:
                logger.debug("Duplicate Right hand in frame; keeping the last one")
            right = hand

    if left is None and right is None:
        return EMPTY_STATE
    return HandTrackingState(left_hand=left, right_hand=right)
