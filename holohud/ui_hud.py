"""HUD drawing on OpenCV frames: hand skeletons, gauges, panels, wrapped text.

All functions accept a BGR frame (NumPy array) and draw in place. The
``HudOverlay`` class composes them from one ``InteractionSnapshot`` and the
consumer outputs; it never modifies the snapshot.
"""

from __future__ import annotations

import math
import time
from typing import Iterable, List, Optional, Sequence, Tuple

import cv2
import numpy as np

from holohud import config
from holohud.events import NotificationLog
from holohud.hand_types import HandInteractionData, Handedness, Landmark
from holohud.scene import GlobeFrame, MechaFrame
from holohud.tracker import EventKind, InteractionSnapshot
from holohud.voice import VoiceStatus

# BGR palette.
CYAN = (255, 240, 0)
AZURE = (255, 163, 0)
ALERT_RED = (42, 42, 255)
KLEIN_BLUE = (167, 47, 0)
WHITE = (255, 255, 255)
DIM = (150, 150, 150)
DEFAULT_COLOR = WHITE
DEFAULT_THICKNESS = 1

HAND_CONNECTIONS = (
    (0, 1), (1, 2), (2, 3), (3, 4),
    (0, 5), (5, 6), (6, 7), (7, 8),
    (5, 9), (9, 10), (10, 11), (11, 12),
    (9, 13), (13, 14), (14, 15), (15, 16),
    (13, 17), (17, 18), (18, 19), (19, 20),
    (0, 17),
)


def draw_panel(surface, x: int, y: int, w: int, h: int, alpha: int = 140) -> None:
    """Overlay a semi-transparent rectangular panel onto ``surface``.

    Args:
        surface: BGR frame to draw on.
        x, y: Top-left corner of the panel.
        w, h: Panel width and height.
        alpha: Opacity ``[0, 255]``; higher = more opaque.
    """

    alpha = max(0, min(255, alpha))
    overlay = surface.copy()
    cv2.rectangle(overlay, (x, y), (x + w, y + h), (0, 0, 0), -1)
    cv2.addWeighted(overlay, alpha / 255.0, surface, 1 - alpha / 255.0, 0, surface)
    cv2.rectangle(surface, (x, y), (x + w, y + h), KLEIN_BLUE, 1)


def _wrap_line(text: str, wrap_width: int, font_scale: float, thickness: int) -> List[str]:
    """Split ``text`` into multiple lines that fit within ``wrap_width`` pixels."""

    words = text.split(" ")
    wrapped: List[str] = []
    current = ""

    for word in words:
        candidate = word if not current else f"{current} {word}"
        size, _ = cv2.getTextSize(candidate, cv2.FONT_HERSHEY_SIMPLEX, font_scale, thickness)
        if size[0] <= wrap_width or not current:
            current = candidate
        else:
            wrapped.append(current)
            current = word

    if current:
        wrapped.append(current)
    return wrapped


def draw_lines(
    surface,
    lines: Iterable[str],
    x: int,
    y: int,
    line_height: int,
    wrap_width: int,
    *,
    font_scale: float = 0.5,
    color: Tuple[int, int, int] = DEFAULT_COLOR,
    thickness: int = DEFAULT_THICKNESS,
    max_lines: Optional[int] = None,
) -> int:
    """Render wrapped lines with consistent vertical spacing.

    Returns the number of rendered lines so callers can stack panels.
    """

    wrapped_lines: List[str] = []
    for line in lines:
        wrapped_lines.extend(_wrap_line(line, wrap_width, font_scale, thickness))

    if max_lines is not None:
        wrapped_lines = wrapped_lines[:max_lines]

    for idx, text in enumerate(wrapped_lines):
        y_pos = y + idx * line_height
        cv2.putText(surface, text, (x, y_pos), cv2.FONT_HERSHEY_SIMPLEX, font_scale, color, thickness, cv2.LINE_AA)
    return len(wrapped_lines)


def to_pixel(landmark: Landmark, width: int, height: int, mirror: bool) -> Tuple[int, int]:
    """Map a normalized landmark onto the (optionally mirrored) frame."""

    x = 1.0 - landmark.x if mirror else landmark.x
    return int(x * width), int(landmark.y * height)


def draw_dashed_line(surface, p1: Tuple[int, int], p2: Tuple[int, int], color, dash: int = 5) -> None:
    length = math.hypot(p2[0] - p1[0], p2[1] - p1[1])
    segments = max(1, int(length // dash))
    xs = np.linspace(p1[0], p2[0], segments + 1)
    ys = np.linspace(p1[1], p2[1], segments + 1)
    for i in range(0, segments, 2):
        cv2.line(surface, (int(xs[i]), int(ys[i])), (int(xs[i + 1]), int(ys[i + 1])), color, 1, cv2.LINE_AA)


def draw_arc(surface, center: Tuple[int, int], radius: int, start: float, end: float, color, thickness: int = 1) -> None:
    """Arc between two angles given in radians (clockwise, 0 = +x)."""

    cv2.ellipse(
        surface,
        center,
        (radius, radius),
        0,
        math.degrees(start),
        math.degrees(end),
        color,
        thickness,
        cv2.LINE_AA,
    )


def draw_hand(surface, hand: HandInteractionData, reticle_angle: float, mirror: bool) -> None:
    """Skeleton, joints, spinning fingertip reticles and an ID tag for one hand."""

    height, width = surface.shape[:2]
    is_right = hand.handedness is Handedness.RIGHT
    main_color = CYAN if is_right else AZURE
    points = [to_pixel(lm, width, height, mirror) for lm in hand.landmarks]

    for start, end in HAND_CONNECTIONS:
        draw_dashed_line(surface, points[start], points[end], main_color)

    for idx, point in enumerate(points):
        cv2.circle(surface, point, 3, (0, 0, 0), -1)
        cv2.circle(surface, point, 3, main_color, 1, cv2.LINE_AA)
        if idx in config.FINGERTIPS:
            draw_arc(surface, point, 8, reticle_angle, reticle_angle + math.pi, ALERT_RED if is_right else CYAN)

    palm = points[config.WRIST]
    draw_arc(surface, palm, 20, -reticle_angle, -reticle_angle + math.pi * 1.5, DIM)
    label = "ID: RIGHT-01" if is_right else "ID: LEFT-02"
    if hand.gesture and hand.gesture != "None":
        label = f"{label} [{hand.gesture}]"
    cv2.putText(surface, label, (palm[0] + 25, palm[1]), cv2.FONT_HERSHEY_SIMPLEX, 0.4, main_color, 1, cv2.LINE_AA)


def draw_expansion_gauge(surface, hand: HandInteractionData, expansion: float, saturated: bool, mirror: bool) -> None:
    """Circular gauge next to the left wrist; turns red when saturated."""

    height, width = surface.shape[:2]
    wrist = to_pixel(hand.landmarks[config.WRIST], width, height, mirror)
    center = (wrist[0] - 100, wrist[1])
    color = ALERT_RED if saturated else CYAN

    cv2.circle(surface, center, 40, KLEIN_BLUE, 4, cv2.LINE_AA)
    start = -math.pi / 2
    draw_arc(surface, center, 40, start, start + expansion * math.pi * 2, color, 6 if saturated else 4)

    title = "MAX OUTPUT" if saturated else "LIMITER OFF"
    scale = 0.45 if saturated else 0.4
    for text, dy in ((title, -8), (f"{round(expansion * 100)}%", 16)):
        size, _ = cv2.getTextSize(text, cv2.FONT_HERSHEY_SIMPLEX, scale, 1)
        cv2.putText(surface, text, (center[0] - size[0] // 2, center[1] + dy), cv2.FONT_HERSHEY_SIMPLEX, scale, color, 1, cv2.LINE_AA)
    cv2.line(surface, (wrist[0] - 25, wrist[1]), (center[0] + 45, center[1]), color, 1, cv2.LINE_AA)


def draw_pinch_reticle(surface, hand: HandInteractionData, mirror: bool) -> None:
    height, width = surface.shape[:2]
    index_tip = to_pixel(hand.landmarks[config.INDEX_TIP], width, height, mirror)
    thumb_tip = to_pixel(hand.landmarks[config.THUMB_TIP], width, height, mirror)
    mid = ((index_tip[0] + thumb_tip[0]) // 2, (index_tip[1] + thumb_tip[1]) // 2)
    cv2.circle(surface, mid, 15, ALERT_RED, 2, cv2.LINE_AA)
    cv2.circle(surface, mid, 5, ALERT_RED, -1, cv2.LINE_AA)


def intel_lines(globe: GlobeFrame) -> Sequence[str]:
    return (
        "TARGET INTEL",
        f"Sector: {globe.region.value}",
        f"Heading: {math.degrees(globe.earth_yaw) % 360:5.1f} deg",
        f"Terrain: {round(globe.terrain_progress * 100)}%",
    )


class HudOverlay:
    """Composes the full HUD for one frame.

    The intel panel opens on ``PINCH_START`` and closes on ``PINCH_END``;
    because the tracker treats a lost right hand as a pinch end, the panel
    can never stay open after tracking is lost.
    """

    def __init__(self, mirror: bool = True, notifications: Optional[NotificationLog] = None) -> None:
        self.mirror = mirror
        self.notifications = notifications or NotificationLog(config.NOTIFICATION_HISTORY)
        self.reticle_angle = 0.0
        self.intel_panel_open = False

    def apply_events(self, snapshot: InteractionSnapshot) -> None:
        for kind in snapshot.events:
            if kind is EventKind.PINCH_START:
                self.intel_panel_open = True
            elif kind is EventKind.PINCH_END:
                self.intel_panel_open = False

    def status_lines(
        self,
        snapshot: InteractionSnapshot,
        globe: GlobeFrame,
        mecha: Optional[MechaFrame],
        voice_status: Optional[VoiceStatus],
        fps: float,
    ) -> List[str]:
        hands = snapshot.hands
        lines = [
            f"LEFT HAND: {'ONLINE' if hands.left_hand else 'OFFLINE'}",
            f"RIGHT HAND: {'ONLINE' if hands.right_hand else 'OFFLINE'}",
            f"MODE: {snapshot.mode.value.upper()}  EXP: {snapshot.smoothed_expansion:.2f}",
            f"SECTOR: {globe.region.value}",
            f"YAW: {math.degrees(snapshot.yaw) % 360:5.1f}  PITCH: {math.degrees(snapshot.pitch):6.1f}",
        ]
        if mecha is not None:
            lines.append(f"MECHA SCALE: {mecha.scale:.2f}")
        if voice_status is not None:
            lines.append(f"VOICE: {voice_status.value.upper()}")
        lines.append(f"FPS: {fps:.1f}  {time.strftime('%H:%M:%S')}")
        return lines

    def render(
        self,
        frame: Optional[np.ndarray],
        snapshot: InteractionSnapshot,
        globe: GlobeFrame,
        mecha: Optional[MechaFrame] = None,
        voice_status: Optional[VoiceStatus] = None,
        fps: float = 0.0,
    ) -> np.ndarray:
        """Draw the HUD and return the composed frame (a new array)."""

        if frame is None:
            canvas = np.zeros((config.CAMERA_HEIGHT, config.CAMERA_WIDTH, 3), dtype=np.uint8)
        else:
            canvas = cv2.flip(frame, 1) if self.mirror else frame.copy()
            # Dim the camera feed so the overlay reads clearly.
            canvas = cv2.convertScaleAbs(canvas, alpha=0.5, beta=0)

        self.reticle_angle += 0.05
        self.apply_events(snapshot)
        hands = snapshot.hands

        for hand in (hands.left_hand, hands.right_hand):
            if hand is not None:
                draw_hand(canvas, hand, self.reticle_angle, self.mirror)

        if hands.left_hand is not None:
            draw_expansion_gauge(canvas, hands.left_hand, snapshot.smoothed_expansion, snapshot.saturated, self.mirror)

        height, width = canvas.shape[:2]
        right = hands.right_hand
        if right is not None and snapshot.is_pinching:
            draw_pinch_reticle(canvas, right, self.mirror)

        if self.intel_panel_open and right is not None:
            cursor = to_pixel(right.landmarks[config.INDEX_TIP], width, height, self.mirror)
            anchor = (min(width - 230, cursor[0] + 50), max(0, cursor[1] - 100))
            draw_dashed_line(canvas, cursor, anchor, CYAN, dash=2)
            draw_panel(canvas, anchor[0], anchor[1], 220, 90)
            draw_lines(canvas, intel_lines(globe), anchor[0] + 10, anchor[1] + 20, 18, 200, color=CYAN)

        lines = self.status_lines(snapshot, globe, mecha, voice_status, fps)
        draw_panel(canvas, 8, 8, 300, 20 + len(lines) * 20)
        draw_lines(canvas, lines, 18, 30, 20, 280, color=CYAN)

        recent = self.notifications.recent()
        if recent:
            top = height - 20 - len(recent) * 20
            draw_panel(canvas, width - 310, top - 20, 300, 20 + len(recent) * 20)
            messages = [f"> {item.message}" for item in recent]
            draw_lines(canvas, messages, width - 300, top, 20, 280, color=WHITE)

        return canvas
