"""Read-only visual consumers of ``InteractionSnapshot``.

Each view keeps its own animation state and its own multipliers; none of
them writes back into the snapshot or the tracker. The outputs are plain
frozen records a renderer (the OpenCV HUD here) can draw from.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

from holohud import config
from holohud.hand_types import ExponentialSmoother
from holohud.tracker import InteractionSnapshot


class Region(str, Enum):
    """Sector shown on the HUD for the globe's current heading."""

    AMERICAS = "Americas Sector"
    PACIFIC = "Pacific Watch Zone"
    ASIA = "Asia Theatre"
    EUROPE = "Europe Defence Zone"
    AFRICA = "Africa Resource Zone"


def region_for_yaw(yaw: float) -> Region:
    """Map an accumulated yaw (radians, any sign) onto a sector."""

    degrees = math.degrees(yaw % (2 * math.pi))
    if 30 < degrees < 100:
        return Region.AMERICAS
    if 100 <= degrees < 190:
        return Region.PACIFIC
    if 190 <= degrees < 280:
        return Region.ASIA
    if 280 <= degrees < 330:
        return Region.AFRICA
    return Region.EUROPE


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


@dataclass(frozen=True)
class GlobeFrame:
    """Derived transform/visibility values for the holographic globe."""

    earth_yaw: float
    cloud_yaw: float
    wireframe_yaw: float
    ring_roll: float
    tilt: float
    earth_opacity: float
    visible: bool
    particles_visible: bool
    core_scale: float
    cloud_scale: float
    wireframe_scale: float
    ring_scale: float
    particle_scale: float
    terrain_progress: float
    region: Region
    servo_intensity: float


class GlobeView:
    """Globe/terrain consumer.

    The earth itself follows the tracker's yaw and pitch; clouds, wireframe
    and ring spin at their own multiples of the per-frame yaw increment so the
    layers drift against each other.
    """

    def __init__(self, base_scale: float = config.GLOBE_BASE_SCALE) -> None:
        self.base_scale = base_scale
        self.cloud_yaw = 0.0
        self.wireframe_yaw = 0.0
        self.ring_roll = 0.0

    def update(self, snapshot: InteractionSnapshot) -> GlobeFrame:
        exp = snapshot.smoothed_expansion
        rate = snapshot.yaw_rate

        earth_opacity = 1.0
        if exp > config.GLOBE_FADE_START:
            span = config.GLOBE_FADE_END - config.GLOBE_FADE_START
            earth_opacity = _clamp01(1.0 - (exp - config.GLOBE_FADE_START) / span)
        visible = earth_opacity > 0.01

        self.cloud_yaw += rate * 1.1
        self.wireframe_yaw -= rate * 0.5
        self.ring_roll -= rate * 1.5
        if visible:
            # Expansion adds extra spin to the outer layers while the globe shows.
            self.cloud_yaw += exp * 0.01
            self.wireframe_yaw -= exp * 0.02

        servo = snapshot.expansion_delta if snapshot.expansion_delta > config.SERVO_MIN_DELTA else 0.0

        return GlobeFrame(
            earth_yaw=snapshot.yaw,
            cloud_yaw=self.cloud_yaw,
            wireframe_yaw=self.wireframe_yaw,
            ring_roll=self.ring_roll,
            tilt=snapshot.pitch,
            earth_opacity=earth_opacity,
            visible=visible,
            particles_visible=earth_opacity > 0.5,
            core_scale=self.base_scale * (1 - max(0.0, exp - 0.3) * 0.5),
            cloud_scale=self.base_scale * 1.02 + exp,
            wireframe_scale=self.base_scale * 1.2 + exp * 2.0,
            ring_scale=1 + exp,
            particle_scale=1 + exp * 1.5,
            terrain_progress=_clamp01((exp - config.MODE_THRESHOLD) / (1 - config.MODE_THRESHOLD)),
            region=region_for_yaw(snapshot.yaw),
            servo_intensity=servo,
        )


@dataclass(frozen=True)
class MechaFrame:
    scale: float
    manual_yaw: float
    yaw: float


class MechaView:
    """Mecha model consumer with its own scale easing and spin multiplier.

    Unlike the globe it reads the raw (unsmoothed) left-hand expansion and
    applies no dead zone to the right-hand deflection.
    """

    def __init__(
        self,
        base_scale: float = config.MECHA_BASE_SCALE,
        scale_range: float = config.MECHA_SCALE_RANGE,
        smoothing: float = config.MECHA_SCALE_SMOOTHING,
        rotation_scale: float = config.MECHA_ROTATION_SCALE,
        auto_spin: float = config.MECHA_AUTO_SPIN,
    ) -> None:
        self.base_scale = base_scale
        self.scale_range = scale_range
        self.rotation_scale = rotation_scale
        self.auto_spin = auto_spin
        self._scale = ExponentialSmoother(alpha=smoothing, value=base_scale)
        self.manual_yaw = 0.0

    def update(self, snapshot: InteractionSnapshot, elapsed: float) -> MechaFrame:
        """Advance one frame; ``elapsed`` is seconds since the session started."""

        left = snapshot.hands.left_hand
        right = snapshot.hands.right_hand
        if left is not None:
            self._scale.update(self.base_scale + left.expansion_factor * self.scale_range)
        if right is not None:
            self.manual_yaw += right.rotation_control.x * self.rotation_scale
        return MechaFrame(
            scale=self._scale.value,
            manual_yaw=self.manual_yaw,
            yaw=self.manual_yaw + elapsed * self.auto_spin,
        )
