"""Typed hand-tracking data shared between the vision layer and its consumers.

This module centralizes the per-frame data model so that the MediaPipe
provider, the interaction tracker, and the visual consumers (globe, mecha,
HUD) can evolve independently while agreeing on one immutable snapshot
shape. It also provides a tiny exponential moving average helper used to
ease noisy signals such as the expansion factor.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Protocol, Sequence, Tuple


class Handedness(str, Enum):
    """Handedness label, which also fixes the control role of a hand."""

    LEFT = "Left"
    RIGHT = "Right"


@dataclass(frozen=True)
class Landmark:
    """One tracked point in normalized camera space (``x``/``y`` in ``[0, 1]``)."""

    x: float
    y: float
    z: float = 0.0


@dataclass(frozen=True)
class RotationControl:
    """Joystick-style deflection, each axis in ``[-1, 1]``."""

    x: float
    y: float


ZERO_ROTATION = RotationControl(0.0, 0.0)


@dataclass(frozen=True)
class RawHand:
    """One detected hand exactly as the landmark provider reported it.

    ``landmarks`` may be any sequence of objects exposing ``x``/``y`` (and
    optionally ``z``); the normalizer validates it before use.
    """

    landmarks: Sequence[Any]
    handedness_label: Optional[str]
    score: Optional[float] = None
    gesture: Optional[str] = None


@dataclass(frozen=True)
class HandInteractionData:
    """Per-hand interaction record derived from a single frame.

    Attributes:
        landmarks: The 21 landmarks, index order fixed by MediaPipe.
        handedness: Left hands drive expansion, right hands drive rotation/pinch.
        pinch_distance: Thumb-tip to index-tip distance in the xy plane.
        is_pinching: ``pinch_distance`` below the pinch threshold.
        expansion_factor: ``[0, 1]`` openness proxy; always 0 for right hands.
        rotation_control: Joystick deflection; always zero for left hands.
        gesture: Optional classifier label (``"Open_Palm"``, ``"Closed_Fist"``...).
        score: Optional handedness confidence.
    """

    landmarks: Tuple[Landmark, ...]
    handedness: Handedness
    pinch_distance: float
    is_pinching: bool
    expansion_factor: float = 0.0
    rotation_control: RotationControl = ZERO_ROTATION
    gesture: Optional[str] = None
    score: Optional[float] = None


@dataclass(frozen=True)
class HandTrackingState:
    """The shared per-frame snapshot; ``None`` means the hand is not detected."""

    left_hand: Optional[HandInteractionData] = None
    right_hand: Optional[HandInteractionData] = None

    @property
    def hand_count(self) -> int:
        return int(self.left_hand is not None) + int(self.right_hand is not None)


EMPTY_STATE = HandTrackingState()


class HandSource(Protocol):
    """Interface implemented by hand providers (camera, keyboard, etc.)."""

    def read(self) -> HandTrackingState:  # pragma: no cover - protocol definition
        ...

    def latest_frame(self) -> Optional[Any]:  # pragma: no cover - protocol definition
        ...

    def close(self) -> None:  # pragma: no cover - protocol definition
        ...


@dataclass
class ExponentialSmoother:
    """Reusable exponential moving average for scalar values.

    ``update`` blends the sample in with ``value += (sample - value) * alpha``.
    Passing ``frames`` other than 1 compounds the factor as if that many
    reference frames had elapsed, which keeps the easing speed independent of
    the actual loop rate.
    """

    alpha: float
    value: float = 0.0

    def update(self, sample: float, frames: float = 1.0) -> float:
        """Blend ``sample`` into the EMA and return the smoothed value."""

        if frames == 1.0:
            factor = self.alpha
        else:
            factor = 1.0 - (1.0 - self.alpha) ** max(0.0, frames)
        self.value += (sample - self.value) * factor
        return self.value

    def reset(self, value: float = 0.0) -> None:
        self.value = value
