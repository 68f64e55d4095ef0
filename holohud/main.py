"""Entry point wiring together hand tracking, the interaction tracker and the HUD."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from contextlib import ExitStack
from dataclasses import dataclass
from typing import List, Optional

import cv2

from holohud import config
from holohud.events import Channel, Notification, NotificationLog
from holohud.hand_types import HandSource, HandTrackingState
from holohud.scene import GlobeFrame, GlobeView, MechaFrame, MechaView
from holohud.settings import load_settings, persist_settings
from holohud.sound import SoundService
from holohud.synthetic import KeyboardHandSource
from holohud.tracker import InteractionSnapshot, InteractionStateTracker, TrackerSettings
from holohud.ui_hud import HudOverlay
from holohud.vision import CameraTracker
from holohud.voice import VoiceChannel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrameResult:
    snapshot: InteractionSnapshot
    globe: GlobeFrame
    mecha: MechaFrame


class HudApp:
    """Owns the per-frame loop: acquire -> track -> consumers -> render.

    Every collaborator is constructed by the caller and injected, so the
    same loop runs against a camera, the keyboard source, or test fakes.
    """

    def __init__(
        self,
        source: HandSource,
        tracker: InteractionStateTracker,
        globe: GlobeView,
        mecha: MechaView,
        hud: HudOverlay,
        sound: Optional[SoundService] = None,
        voice: Optional[VoiceChannel] = None,
    ) -> None:
        self.source = source
        self.tracker = tracker
        self.globe = globe
        self.mecha = mecha
        self.hud = hud
        self.sound = sound
        self.voice = voice
        self.fps = 0.0
        self.last_result: Optional[FrameResult] = None

    def step(self, state: HandTrackingState, dt: Optional[float] = None, elapsed: float = 0.0) -> FrameResult:
        """Run one frame of the pipeline after the hand state has been acquired."""

        snapshot = self.tracker.update(state, dt)
        globe = self.globe.update(snapshot)
        mecha = self.mecha.update(snapshot, elapsed)
        if self.sound is not None and globe.servo_intensity > 0.0:
            self.sound.servo(globe.servo_intensity)
        self.last_result = FrameResult(snapshot=snapshot, globe=globe, mecha=mecha)
        return self.last_result

    def handle_key(self, key: int) -> bool:
        """React to a key from ``cv2.waitKey``; returns ``False`` to quit."""

        if key in (ord("q"), 27):
            return False
        if key == ord("m"):
            self.hud.mirror = not self.hud.mirror
        elif key == ord("v") and self.voice is not None and self.last_result is not None:
            result = self.last_result
            self.voice.speak(
                f"Sector {result.globe.region.value}. Expansion {round(result.snapshot.smoothed_expansion * 100)} percent."
            )
        elif isinstance(self.source, KeyboardHandSource):
            self.source.press(key)
        return True

    def run(self) -> None:
        """Main loop; paces to ``TARGET_FPS`` and stops when the window closes."""

        frame_budget = 1.0 / config.TARGET_FPS
        start = last = time.perf_counter()
        cv2.namedWindow(config.WINDOW_NAME, cv2.WINDOW_NORMAL)

        while True:
            now = time.perf_counter()
            dt = now - last
            last = now
            if dt > 0:
                # Smooth FPS readout to avoid flicker in the HUD.
                self.fps = 0.9 * self.fps + 0.1 * (1.0 / dt)

            state = self.source.read()
            result = self.step(state, dt, now - start)

            voice_status = self.voice.status if self.voice is not None else None
            canvas = self.hud.render(
                self.source.latest_frame(),
                result.snapshot,
                result.globe,
                result.mecha,
                voice_status,
                self.fps,
            )
            cv2.imshow(config.WINDOW_NAME, canvas)

            spent = time.perf_counter() - now
            wait_ms = max(1, int((frame_budget - spent) * 1000))
            key = cv2.waitKey(wait_ms) & 0xFF
            if key != 0xFF and not self.handle_key(key):
                break
            if cv2.getWindowProperty(config.WINDOW_NAME, cv2.WND_PROP_VISIBLE) < 1:
                logger.info("HUD window closed, exiting.")
                break


def smoothing_factor(text: str) -> float:
    """argparse type for the EMA factor; only (0, 1] keeps the filter stable."""

    try:
        value = float(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {text!r}")
    if not 0.0 < value <= 1.0:
        raise argparse.ArgumentTypeError(f"must be in (0, 1], got {value}")
    return value


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Gesture-driven holographic HUD.")
    parser.add_argument("--no-camera", action="store_true", help="Use keyboard-driven synthetic hands instead of the camera.")
    parser.add_argument("--camera", type=int, default=None, help="Camera index (overrides saved settings).")
    parser.add_argument("--mirror", dest="mirror", action="store_true", default=None, help="Mirror the camera view.")
    parser.add_argument("--no-mirror", dest="mirror", action="store_false", help="Show the camera view unmirrored.")
    parser.set_defaults(mirror=None)
    parser.add_argument(
        "--smoothing",
        type=smoothing_factor,
        default=None,
        help="Per-frame expansion smoothing factor (0-1, higher = snappier).",
    )
    parser.add_argument("--no-sound", action="store_true", help="Disable sound cues.")
    parser.add_argument("--voice", action="store_true", help="Enable microphone voice commands and speech.")
    parser.add_argument("--log-file", type=str, default=None, help="Also write logs to this file.")
    parser.add_argument("--verbose", action="store_true", help="Set log level to DEBUG.")
    parser.add_argument("--save-settings", action="store_true", help="Remember camera/mirror/smoothing/audio choices.")
    return parser.parse_args(argv)


def configure_logging(verbose: bool = False, log_file: Optional[str] = None) -> None:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(
        level=logging.DEBUG if verbose else config.LOG_LEVEL,
        format=config.LOG_FORMAT,
        handlers=handlers,
    )


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    configure_logging(args.verbose, args.log_file)

    settings = load_settings()
    camera_index = args.camera if args.camera is not None else settings.camera_index
    mirror = args.mirror if args.mirror is not None else settings.mirror
    smoothing = args.smoothing if args.smoothing is not None else settings.smoothing_factor
    sound_enabled = settings.sound_enabled and not args.no_sound
    voice_enabled = args.voice or settings.voice_enabled

    if args.save_settings:
        persist_settings(
            camera_index=camera_index,
            mirror=mirror,
            smoothing_factor=smoothing,
            sound_enabled=sound_enabled,
            voice_enabled=voice_enabled,
        )

    notifications = Channel[Notification]("hud")
    log = NotificationLog(config.NOTIFICATION_HISTORY)
    log.attach(notifications)
    tracker = InteractionStateTracker(TrackerSettings(smoothing_factor=smoothing), channel=notifications)

    logger.info("=" * 60)
    logger.info("HOLOHUD: gesture-driven heads-up display")
    logger.info(f"  Source : {'KEYBOARD' if args.no_camera else f'CAMERA {camera_index}'}")
    logger.info(f"  Sound  : {sound_enabled}   Voice: {voice_enabled}")
    logger.info("=" * 60)

    # ExitStack keeps teardown localized so every resource is released even if
    # initialisation or the loop raises.
    with ExitStack() as stack:
        stack.callback(cv2.destroyAllWindows)

        sound = SoundService(enabled=sound_enabled)
        sound.start()
        stack.callback(sound.close)
        sound.attach(notifications)

        voice: Optional[VoiceChannel] = None
        if voice_enabled:
            voice = VoiceChannel(wake_words=(settings.wake_word,))
            voice.status_changes.subscribe(
                lambda status: notifications.publish(Notification("voice", f"Voice {status.value.replace('_', ' ')}"))
            )
            voice.transcripts.subscribe(lambda text: notifications.publish(Notification("voice", f"Heard: {text}")))
            voice.start(listen=True)
            stack.callback(voice.close)

        source: HandSource
        if args.no_camera:
            source = KeyboardHandSource()
        else:
            source = CameraTracker(camera_index=camera_index)
        stack.callback(source.close)

        sound.play("boot")
        sound.start_hum()
        if voice is not None:
            voice.speak("Hello. I am Jarvis.")
        notifications.publish(Notification("system", "Systems online"))

        app = HudApp(
            source=source,
            tracker=tracker,
            globe=GlobeView(),
            mecha=MechaView(),
            hud=HudOverlay(mirror=mirror, notifications=log),
            sound=sound,
            voice=voice,
        )
        app.run()

    logger.info("HOLOHUD stopped.")


if __name__ == "__main__":
    main()
