"""Generated sound cues for HUD feedback (lock, release, map switch, servo).

Tones are synthesised with NumPy so no audio assets ship with the project.
Audio can fail in headless environments; the service then stays silent and
the HUD keeps running.
"""

from __future__ import annotations

import logging
import random
from typing import Dict, Optional

import numpy as np
import pygame

from holohud import config
from holohud.events import Channel, Notification, Subscription
from holohud.tracker import EventKind

logger = logging.getLogger(__name__)

WAVEFORMS = ("sine", "square", "sawtooth")


def synthesize(
    waveform: str,
    f_start: float,
    f_end: float,
    duration: float,
    volume: float,
    sample_rate: int = config.SAMPLE_RATE,
) -> np.ndarray:
    """Render a mono float tone with an exponential sweep and decay.

    The frequency glides from ``f_start`` to ``f_end`` and the amplitude
    decays from ``volume`` to roughly 1% of it, which avoids clicks at the
    end of short grains.
    """

    if waveform not in WAVEFORMS:
        raise ValueError(f"Unknown waveform: {waveform}")

    count = max(1, int(sample_rate * duration))
    t = np.linspace(0, duration, count, False)
    ratio = f_end / f_start
    freq = f_start * ratio ** (t / duration)
    # Integrate instantaneous frequency so the sweep stays phase-continuous.
    phase = 2 * np.pi * np.cumsum(freq) / sample_rate

    if waveform == "sine":
        tone = np.sin(phase)
    elif waveform == "square":
        tone = np.sign(np.sin(phase))
    else:
        tone = 2.0 * ((phase / (2 * np.pi)) % 1.0) - 1.0

    envelope = volume * np.geomspace(1.0, 0.01, count)
    return tone * envelope


def to_pcm(samples: np.ndarray) -> np.ndarray:
    """Convert float samples in ``[-1, 1]`` into clipped int16 PCM."""

    return np.int16(np.clip(samples, -1.0, 1.0) * 32767)


def cue_samples(name: str) -> np.ndarray:
    """Float samples for one of the fixed cues."""

    if name == "blip":
        return synthesize("sine", 1200, 2000, 0.05, 0.1)
    if name == "lock":
        return synthesize("square", 200, 50, 0.3, 0.1)
    if name == "release":
        return synthesize("square", 50, 150, 0.2, 0.05)
    if name == "map_switch":
        bass = synthesize("sawtooth", 150, 50, 0.5, 0.3)
        chirp = synthesize("sine", 2000, 500, 0.5, 0.3)
        return np.clip(bass + chirp, -1.0, 1.0)
    if name == "boot":
        return synthesize("sine", 50, 800, 2.0, 0.3)
    if name == "hum":
        return hum_samples()
    raise KeyError(name)


def lowpass(samples: np.ndarray, cutoff: float, sample_rate: int = config.SAMPLE_RATE) -> np.ndarray:
    """One-pole low-pass filter: ``y[n] = y[n-1] + a * (x[n] - y[n-1])``."""

    a = 1.0 - np.exp(-2 * np.pi * cutoff / sample_rate)
    out = np.empty_like(samples, dtype=float)
    previous = 0.0
    for idx, sample in enumerate(samples):
        previous += a * (sample - previous)
        out[idx] = previous
    return out


def servo_samples(intensity: float, jitter: float = 0.0) -> Optional[np.ndarray]:
    """Short buzzy grain whose pitch, brightness and volume follow the expansion speed.

    The low-pass cutoff rises with intensity so slow moves sound muffled,
    like a motor inside its housing.
    """

    if intensity < config.SERVO_MIN_INTENSITY:
        return None
    frequency = 60 + intensity * 1500 + jitter
    volume = min(0.2, 0.05 + intensity * 2)
    raw = synthesize("sawtooth", frequency, frequency, 0.1, volume)
    return lowpass(raw, config.SERVO_CUTOFF_BASE + intensity * config.SERVO_CUTOFF_RANGE)


def hum_samples(sample_rate: int = config.SAMPLE_RATE) -> np.ndarray:
    """One second of the constant ambient sawtooth hum, seamless when looped."""

    t = np.arange(sample_rate) / sample_rate
    cycles = config.HUM_FREQUENCY * t
    return config.HUM_VOLUME * (2.0 * (cycles % 1.0) - 1.0)


class SoundService:
    """Owns the mixer and the pre-rendered cues.

    Usage
    -----
    sound = SoundService()
    sound.start()
    sound.attach(tracker_channel)
    sound.start_hum()
    sound.play("lock")
    sound.close()
    """

    CUES = ("blip", "lock", "release", "map_switch", "boot", "hum")

    def __init__(self, enabled: bool = True, master_volume: float = config.MASTER_VOLUME) -> None:
        self.enabled = enabled
        self.master_volume = master_volume
        self.sounds: Dict[str, pygame.mixer.Sound] = {}
        self._ready = False
        self._subscription: Optional[Subscription] = None

    @property
    def ready(self) -> bool:
        return self._ready

    def start(self) -> None:
        if not self.enabled:
            logger.info("Sound disabled.")
            return
        try:
            pygame.mixer.init(frequency=config.SAMPLE_RATE, size=-16, channels=1)
            self.sounds = {name: self._make_sound(cue_samples(name)) for name in self.CUES}
        except pygame.error as exc:
            # Gameplay continues without sound when no audio device is available.
            logger.warning(f"Audio unavailable, continuing silently: {exc}")
            self.sounds = {}
            return
        self._ready = True
        logger.info("Sound service started.")

    def _make_sound(self, samples: np.ndarray) -> pygame.mixer.Sound:
        sound = pygame.mixer.Sound(buffer=to_pcm(samples).tobytes())
        sound.set_volume(self.master_volume)
        return sound

    def play(self, name: str, loops: int = 0) -> None:
        sound = self.sounds.get(name)
        if sound:
            sound.play(loops=loops)

    def start_hum(self) -> None:
        """Loop the ambient hum until ``stop_hum`` or ``close``."""

        self.play("hum", loops=-1)

    def stop_hum(self) -> None:
        hum = self.sounds.get("hum")
        if hum:
            hum.stop()

    def servo(self, intensity: float) -> None:
        if not self._ready:
            return
        samples = servo_samples(intensity, jitter=random.random() * 20)
        if samples is not None:
            self._make_sound(samples).play()

    def on_notification(self, notification: Notification) -> None:
        cue = {
            EventKind.PINCH_START.value: "lock",
            EventKind.PINCH_END.value: "release",
            EventKind.TERRAIN_ENTER.value: "map_switch",
            EventKind.SATURATION_START.value: "blip",
        }.get(notification.source)
        if cue:
            self.play(cue)

    def attach(self, channel: Channel[Notification]) -> Subscription:
        self._subscription = channel.subscribe(self.on_notification)
        return self._subscription

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
        if self._ready:
            self.stop_hum()
            pygame.mixer.quit()
            self._ready = False
        logger.info("Sound service stopped.")
