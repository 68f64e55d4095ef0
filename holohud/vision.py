"""Camera + MediaPipe hand tracking kept separate from the HUD logic."""

from __future__ import annotations

import logging
import threading
import time
import urllib.request
from pathlib import Path
from typing import Any, List, Optional, Union

import cv2
import mediapipe as mp
import numpy as np
from mediapipe.tasks import python as mp_python
from mediapipe.tasks.python import vision as mp_vision

from holohud import config
from holohud.hand_types import EMPTY_STATE, HandSource, HandTrackingState, RawHand
from holohud.normalizer import normalize_frame

logger = logging.getLogger(__name__)


def _top_category(categories: Any) -> Optional[Any]:
    if not categories:
        return None
    return categories[0]


def results_to_raw_hands(result: Any) -> List[RawHand]:
    """Convert a MediaPipe ``GestureRecognizerResult`` into provider-neutral hands.

    Handedness and gesture lists are parallel to ``hand_landmarks``; a hand
    whose classification is missing keeps ``None`` and is resolved later by
    the normalizer.
    """

    if result is None:
        return []
    landmarks_per_hand = getattr(result, "hand_landmarks", None) or []
    handedness = getattr(result, "handedness", None) or []
    gestures = getattr(result, "gestures", None) or []

    hands: List[RawHand] = []
    for idx, landmarks in enumerate(landmarks_per_hand):
        hand_category = _top_category(handedness[idx]) if idx < len(handedness) else None
        gesture_category = _top_category(gestures[idx]) if idx < len(gestures) else None
        hands.append(
            RawHand(
                landmarks=landmarks,
                handedness_label=getattr(hand_category, "category_name", None),
                score=getattr(hand_category, "score", None),
                gesture=getattr(gesture_category, "category_name", None),
            )
        )
    return hands


def ensure_model(path: Path = config.MODEL_PATH, url: str = config.MODEL_URL) -> Path:
    """Download the gesture recognizer model on first run."""

    if not path.exists():
        logger.info("Downloading gesture_recognizer.task model (~8 MB)...")
        urllib.request.urlretrieve(url, path)
        logger.info(f"Model saved to {path}")
    return path


class LandmarkProvider:
    """Wraps the MediaPipe Tasks ``GestureRecognizer`` in VIDEO mode.

    ``recognize(frame, timestamp_ms)`` is the only call the rest of the
    system needs. VIDEO mode rejects non-increasing timestamps, so repeated
    or out-of-order values are bumped forward by one millisecond.
    """

    def __init__(self, model_path: Optional[Union[str, Path]] = None) -> None:
        path = Path(model_path) if model_path else ensure_model()
        options = mp_vision.GestureRecognizerOptions(
            base_options=mp_python.BaseOptions(model_asset_path=str(path)),
            running_mode=mp_vision.RunningMode.VIDEO,
            num_hands=config.MP_MAX_HANDS,
            min_hand_detection_confidence=config.MP_MIN_DETECTION_CONF,
            min_hand_presence_confidence=config.MP_MIN_DETECTION_CONF,
            min_tracking_confidence=config.MP_MIN_TRACKING_CONF,
        )
        self._recognizer = mp_vision.GestureRecognizer.create_from_options(options)
        self._last_timestamp = -1
        logger.info("LandmarkProvider initialised (MediaPipe Tasks GestureRecognizer).")

    def recognize(self, frame_bgr: np.ndarray, timestamp_ms: int) -> List[RawHand]:
        timestamp_ms = max(int(timestamp_ms), self._last_timestamp + 1)
        self._last_timestamp = timestamp_ms
        rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb)
        result = self._recognizer.recognize_for_video(mp_image, timestamp_ms)
        return results_to_raw_hands(result)

    def close(self) -> None:
        self._recognizer.close()


class CameraTracker(HandSource):
    """Encapsulates OpenCV capture and landmark inference on a background thread.

    The render loop polls ``read()`` and ``latest_frame()``; both return the
    last completed result immediately, so a slow inference never stalls
    rendering (the previous ``HandTrackingState`` is simply reused).

    If the camera cannot be opened or inference fails, the tracker keeps
    reporting ``EMPTY_STATE``.
    """

    def __init__(
        self,
        camera_index: int = config.CAMERA_INDEX,
        provider: Optional[LandmarkProvider] = None,
        width: int = config.CAMERA_WIDTH,
        height: int = config.CAMERA_HEIGHT,
    ) -> None:
        self.cap = cv2.VideoCapture(camera_index)
        try:
            if not self.cap.isOpened():
                logger.error(f"Failed to open camera {camera_index}; tracking will report no hands.")
            else:
                self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
                self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
                self.cap.set(cv2.CAP_PROP_FPS, config.CAMERA_FPS)
            self.provider = provider or LandmarkProvider()
        except BaseException:
            # Never leak the camera handle when initialisation fails.
            self.cap.release()
            raise

        # Shared state protected by a lock so the render loop can poll without blocking.
        self._state_lock = threading.Lock()
        self._latest_state = EMPTY_STATE
        self._latest_frame: Optional[np.ndarray] = None
        self._state_version = 0
        self._inference_fps = 0.0
        self._stop_event = threading.Event()
        self._released = False
        self._clock_origin = time.monotonic()
        # Spin up the background thread so the HUD loop stays responsive even on heavy inference frames.
        self._vision_thread = threading.Thread(target=self._vision_loop, daemon=True, name="VisionThread")
        self._vision_thread.start()
        logger.info(f"Camera tracking started for camera {camera_index}.")

    @property
    def version(self) -> int:
        with self._state_lock:
            return self._state_version

    @property
    def inference_fps(self) -> float:
        return self._inference_fps

    def _vision_loop(self) -> None:
        """Capture frames + run inference in the background to avoid HUD stalls.

        A frame that fails anywhere (capture, conversion, inference) is
        replaced by ``EMPTY_STATE`` and the loop moves on to the next one.
        The thread owns the camera and provider once started and releases
        them on the way out.
        """

        last_time = time.monotonic()
        last_position = -1.0
        try:
            while not self._stop_event.is_set():
                try:
                    if not self.cap.isOpened():
                        time.sleep(0.05)
                        continue

                    success, frame = self.cap.read()
                    if not success or frame is None:
                        time.sleep(0.01)
                        continue

                    # Webcams report 0 here; video files repeat a position when stalled.
                    position = self.cap.get(cv2.CAP_PROP_POS_MSEC)
                    if position > 0 and position == last_position:
                        continue
                    last_position = position

                    timestamp_ms = int((time.monotonic() - self._clock_origin) * 1000)
                    state = normalize_frame(self.provider.recognize(frame, timestamp_ms))
                except Exception:
                    logger.exception("Vision frame failed; reporting no hands")
                    self._publish(EMPTY_STATE)
                    time.sleep(0.01)
                    continue

                now = time.monotonic()
                dt = now - last_time
                if dt > 0:
                    self._inference_fps = 0.9 * self._inference_fps + 0.1 * (1.0 / dt)
                last_time = now
                self._publish(state, frame)
        finally:
            self._publish(EMPTY_STATE)
            self._release()

    def _publish(self, state: HandTrackingState, frame: Optional[np.ndarray] = None) -> None:
        with self._state_lock:
            self._latest_state = state
            if frame is not None:
                self._latest_frame = frame
            self._state_version += 1

    def _release(self) -> None:
        with self._state_lock:
            if self._released:
                return
            self._released = True
        if self.cap.isOpened():
            self.cap.release()
        self.provider.close()
        logger.info("Camera tracking stopped.")

    def read(self) -> HandTrackingState:
        with self._state_lock:
            return self._latest_state

    def latest_frame(self) -> Optional[np.ndarray]:
        with self._state_lock:
            return None if self._latest_frame is None else self._latest_frame.copy()

    def close(self) -> None:
        """Stop the vision thread; it releases the camera and provider when it exits."""

        self._stop_event.set()
        self._vision_thread.join(timeout=1.5)
        if self._vision_thread.is_alive():
            # Still inside a slow inference; the thread releases everything once it returns.
            logger.warning("Vision thread still busy; camera will be released when it finishes.")

    def __enter__(self) -> "CameraTracker":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
