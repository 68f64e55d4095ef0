"""Synthetic hands for camera-less runs and tests."""

from __future__ import annotations

from typing import List, Optional, Tuple

from holohud import config
from holohud.hand_types import HandSource, HandTrackingState, Landmark, RawHand
from holohud.normalizer import normalize_frame

# Offsets of the 21 landmarks from the middle-finger MCP for an upright,
# open hand about 0.2 frame-heights tall.
_HAND_SHAPE: Tuple[Tuple[float, float], ...] = (
    (0.0, 0.12),                                            # wrist
    (-0.04, 0.09), (-0.07, 0.06), (-0.09, 0.03), (-0.10, 0.0),  # thumb
    (-0.03, 0.0), (-0.035, -0.05), (-0.04, -0.08), (-0.045, -0.10),  # index
    (0.0, 0.0), (0.0, -0.055), (0.0, -0.09), (0.0, -0.115),  # middle
    (0.025, 0.005), (0.03, -0.045), (0.035, -0.075), (0.038, -0.10),  # ring
    (0.05, 0.015), (0.06, -0.025), (0.065, -0.05), (0.07, -0.07),  # pinky
)


def synthetic_landmarks(center: Tuple[float, float] = (0.5, 0.5), pinch_distance: float = 0.1) -> List[Landmark]:
    """Build 21 landmarks with landmark 9 at ``center``.

    The thumb tip is placed ``pinch_distance`` to the left of the index tip so
    the normalizer measures ``pinch_distance`` (up to float rounding).
    """

    cx, cy = center
    points = [Landmark(cx + dx, cy + dy, 0.0) for dx, dy in _HAND_SHAPE]
    index_tip = points[config.INDEX_TIP]
    points[config.THUMB_TIP] = Landmark(index_tip.x - pinch_distance, index_tip.y, 0.0)
    return points


class KeyboardHandSource(HandSource):
    """Keyboard-driven hands for debugging without a camera.

    Keys (as returned by ``cv2.waitKey``):
        w / s   open / close the left hand (expansion)
        i j k l move the right hand (rotation joystick)
        space   toggle the right-hand pinch
        h       show / hide the right hand
    """

    STEP = 0.01
    MOVE = 0.05

    def __init__(self) -> None:
        self.left_pinch = config.MIN_PINCH
        self.right_center = [0.5, 0.5]
        self.right_pinching = False
        self.right_visible = True

    def press(self, key: int) -> bool:
        """Apply one key press; returns ``True`` if the key was handled."""

        ch = chr(key) if 0 <= key < 256 else ""
        if ch == "w":
            self.left_pinch = min(config.MAX_PINCH + 0.02, self.left_pinch + self.STEP)
        elif ch == "s":
            self.left_pinch = max(0.0, self.left_pinch - self.STEP)
        elif ch == "j":
            self.right_center[0] = max(0.0, self.right_center[0] - self.MOVE)
        elif ch == "l":
            self.right_center[0] = min(1.0, self.right_center[0] + self.MOVE)
        elif ch == "i":
            self.right_center[1] = max(0.0, self.right_center[1] - self.MOVE)
        elif ch == "k":
            self.right_center[1] = min(1.0, self.right_center[1] + self.MOVE)
        elif ch == " ":
            self.right_pinching = not self.right_pinching
        elif ch == "h":
            self.right_visible = not self.right_visible
        else:
            return False
        return True

    def raw_hands(self) -> List[RawHand]:
        hands = [RawHand(synthetic_landmarks((0.3, 0.55), self.left_pinch), "Left", score=1.0)]
        if self.right_visible:
            pinch = 0.02 if self.right_pinching else 0.12
            center = (self.right_center[0], self.right_center[1])
            hands.append(RawHand(synthetic_landmarks(center, pinch), "Right", score=1.0))
        return hands

    def read(self) -> HandTrackingState:
        return normalize_frame(self.raw_hands())

    def latest_frame(self) -> Optional[object]:
        return None

    def close(self) -> None:
        # Nothing to clean up for keyboard-only mode.
        return
