"""Stateful interaction tracker: smoothing, edge detection, rotation integration.

``InteractionStateTracker.update`` is called exactly once per frame, after
the frame's ``HandTrackingState`` has been produced and before any consumer
reads the derived values. Each call returns an immutable
``InteractionSnapshot`` that consumers share for the rest of the frame.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from holohud import config
from holohud.events import Channel, Notification
from holohud.hand_types import (
    EMPTY_STATE,
    ZERO_ROTATION,
    ExponentialSmoother,
    HandTrackingState,
)

logger = logging.getLogger(__name__)


class Edge(str, Enum):
    RISING = "rising"
    FALLING = "falling"


class EventKind(str, Enum):
    """Discrete, edge-triggered events emitted by the tracker."""

    PINCH_START = "pinch_start"
    PINCH_END = "pinch_end"
    TERRAIN_ENTER = "terrain_enter"
    TERRAIN_EXIT = "terrain_exit"
    SATURATION_START = "saturation_start"
    SATURATION_END = "saturation_end"


class ViewMode(str, Enum):
    GLOBE = "globe"
    TERRAIN = "terrain"


_EVENT_MESSAGES = {
    EventKind.PINCH_START: "Target locked",
    EventKind.PINCH_END: "Target released",
    EventKind.TERRAIN_ENTER: "Switching to terrain view",
    EventKind.TERRAIN_EXIT: "Returning to globe view",
    EventKind.SATURATION_START: "Maximum output",
    EventKind.SATURATION_END: "Output below maximum",
}


@dataclass
class EdgeDetector:
    """Tracks a boolean signal and reports its transitions."""

    active: bool = False

    def update(self, value: bool) -> Optional[Edge]:
        """Update with the latest value; return the edge crossed, if any."""

        edge = None
        if value and not self.active:
            edge = Edge.RISING
        elif not value and self.active:
            edge = Edge.FALLING
        self.active = bool(value)
        return edge


@dataclass
class ThresholdCrossing:
    """Edge detector over ``value > threshold``; fires once per crossing."""

    threshold: float
    detector: EdgeDetector = field(default_factory=EdgeDetector)

    @property
    def above(self) -> bool:
        return self.detector.active

    def update(self, value: float) -> Optional[Edge]:
        return self.detector.update(value > self.threshold)

    def reset(self) -> None:
        self.detector.active = False


@dataclass
class TrackerSettings:
    """Tunable tracker constants; defaults reproduce the calibrated behaviour."""

    smoothing_factor: float = config.SMOOTHING_FACTOR
    mode_threshold: float = config.MODE_THRESHOLD
    saturation_threshold: float = config.SATURATION_THRESHOLD
    dead_zone: float = config.ROTATION_DEAD_ZONE
    rotation_scale: float = config.ROTATION_SCALE
    ambient_yaw_rate: float = config.AMBIENT_YAW_RATE
    ambient_pitch_rate: float = config.AMBIENT_PITCH_RATE
    reference_fps: float = config.REFERENCE_FPS

    def __post_init__(self) -> None:
        if not 0.0 < self.smoothing_factor <= 1.0:
            raise ValueError(f"smoothing_factor must be in (0, 1], got {self.smoothing_factor}")


@dataclass(frozen=True)
class InteractionSnapshot:
    """Everything a consumer may read about the current frame.

    Attributes:
        hands: The frame's hand state, unchanged.
        frame_index: Number of updates applied so far (0 before the first).
        target_expansion: Left-hand expansion this frame, 0 if absent.
        expansion_delta: ``|target - previous smoothed|`` while the left hand
            is visible, else 0. Drives the servo sound.
        smoothed_expansion: Low-pass filtered expansion.
        is_pinching: Right-hand pinch after this frame's update.
        yaw, pitch: Accumulated rotation in radians.
        yaw_rate, pitch_rate: Increment applied this frame.
        mode: Globe or terrain, switched at the mode threshold.
        saturated: Smoothed expansion above the saturation threshold.
        events: Edge events emitted this frame, in order.
    """

    hands: HandTrackingState = EMPTY_STATE
    frame_index: int = 0
    target_expansion: float = 0.0
    expansion_delta: float = 0.0
    smoothed_expansion: float = 0.0
    is_pinching: bool = False
    yaw: float = 0.0
    pitch: float = 0.0
    yaw_rate: float = 0.0
    pitch_rate: float = 0.0
    mode: ViewMode = ViewMode.GLOBE
    saturated: bool = False
    events: Tuple[EventKind, ...] = ()


class InteractionStateTracker:
    """Turns per-frame hand snapshots into temporally coherent control signals."""

    def __init__(
        self,
        settings: Optional[TrackerSettings] = None,
        channel: Optional[Channel[Notification]] = None,
    ) -> None:
        self.settings = settings or TrackerSettings()
        self.channel = channel
        self.reset()

    def reset(self) -> None:
        """Return to the zeroed state the tracker starts with."""

        self._expansion = ExponentialSmoother(alpha=self.settings.smoothing_factor)
        self._pinch = EdgeDetector()
        self._mode = ThresholdCrossing(self.settings.mode_threshold)
        self._saturation = ThresholdCrossing(self.settings.saturation_threshold)
        self._yaw = 0.0
        self._pitch = 0.0
        self._frame_index = 0
        self._snapshot = InteractionSnapshot()

    @property
    def snapshot(self) -> InteractionSnapshot:
        return self._snapshot

    @property
    def smoothed_expansion(self) -> float:
        return self._expansion.value

    @property
    def was_pinching(self) -> bool:
        return self._pinch.active

    def _axis_rate(self, deflection: float, ambient: float) -> float:
        if abs(deflection) > self.settings.dead_zone:
            return deflection * self.settings.rotation_scale
        return ambient

    def update(self, state: Optional[HandTrackingState], dt: Optional[float] = None) -> InteractionSnapshot:
        """Advance one frame.

        Args:
            state: This frame's hand snapshot. ``None`` is treated as no hands.
            dt: Seconds since the previous update. ``None`` means exactly one
                reference frame (``1 / reference_fps``).

        Returns:
            The new ``InteractionSnapshot``; also available via ``snapshot``.
        """

        state = state or EMPTY_STATE
        frames = 1.0 if dt is None else max(0.0, dt) * self.settings.reference_fps
        left = state.left_hand
        right = state.right_hand
        events: List[EventKind] = []

        # Expansion smoothing (left hand).
        target = left.expansion_factor if left is not None else 0.0
        delta = abs(target - self._expansion.value) if left is not None else 0.0
        smoothed = self._expansion.update(target, frames)

        # Pinch edges (right hand). A missing hand reads as "not pinching",
        # so losing tracking mid-pinch produces the falling edge.
        pinching = right.is_pinching if right is not None else False
        edge = self._pinch.update(pinching)
        if edge is Edge.RISING:
            events.append(EventKind.PINCH_START)
        elif edge is Edge.FALLING:
            events.append(EventKind.PINCH_END)

        # Rotation integration (right hand joystick).
        rotation = right.rotation_control if right is not None else ZERO_ROTATION
        yaw_rate = self._axis_rate(rotation.x, self.settings.ambient_yaw_rate) * frames
        pitch_rate = self._axis_rate(rotation.y, self.settings.ambient_pitch_rate) * frames
        self._yaw += yaw_rate
        self._pitch += pitch_rate

        edge = self._mode.update(smoothed)
        if edge is Edge.RISING:
            events.append(EventKind.TERRAIN_ENTER)
        elif edge is Edge.FALLING:
            events.append(EventKind.TERRAIN_EXIT)

        edge = self._saturation.update(smoothed)
        if edge is Edge.RISING:
            events.append(EventKind.SATURATION_START)
        elif edge is Edge.FALLING:
            events.append(EventKind.SATURATION_END)

        self._frame_index += 1
        self._snapshot = InteractionSnapshot(
            hands=state,
            frame_index=self._frame_index,
            target_expansion=target,
            expansion_delta=delta,
            smoothed_expansion=smoothed,
            is_pinching=pinching,
            yaw=self._yaw,
            pitch=self._pitch,
            yaw_rate=yaw_rate,
            pitch_rate=pitch_rate,
            mode=ViewMode.TERRAIN if self._mode.above else ViewMode.GLOBE,
            saturated=self._saturation.above,
            events=tuple(events),
        )

        for kind in events:
            logger.debug(f"Tracker event {kind.value} at frame {self._frame_index}")
            if self.channel is not None:
                self.channel.publish(Notification(source=kind.value, message=_EVENT_MESSAGES[kind]))

        return self._snapshot
