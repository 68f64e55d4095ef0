# config.py - holohud tuning constants.
# Calibrated values live here; changing them changes how the HUD feels.

import logging
from pathlib import Path

# ---------------------------------------------------------------------------
# Hand landmarks (MediaPipe 21-point layout)
# ---------------------------------------------------------------------------
LANDMARK_COUNT = 21
WRIST = 0
THUMB_TIP = 4
INDEX_TIP = 8
MIDDLE_MCP = 9       # used as the hand centre for rotation control
FINGERTIPS = (4, 8, 12, 16, 20)

# ---------------------------------------------------------------------------
# Normalizer
# ---------------------------------------------------------------------------
PINCH_THRESHOLD = 0.05   # thumb/index distance below this is a pinch
MIN_PINCH = 0.02         # pinch distance of a closed fist  -> expansion 0
MAX_PINCH = 0.18         # pinch distance of an open palm   -> expansion 1

# ---------------------------------------------------------------------------
# Interaction state tracker
# ---------------------------------------------------------------------------
SMOOTHING_FACTOR = 0.08          # per-frame EMA factor for expansion
MODE_THRESHOLD = 0.5             # globe <-> terrain switch
SATURATION_THRESHOLD = 0.95      # "maxed out" feedback
ROTATION_DEAD_ZONE = 0.1         # joystick deflection ignored below this
ROTATION_SCALE = 0.05            # radians per frame at full deflection
AMBIENT_YAW_RATE = 0.0005        # idle spin, radians per frame
AMBIENT_PITCH_RATE = 0.0
REFERENCE_FPS = 60.0             # per-frame constants are tuned at this rate

# ---------------------------------------------------------------------------
# Visual consumers (each owns its multipliers)
# ---------------------------------------------------------------------------
GLOBE_BASE_SCALE = 1.5
GLOBE_FADE_START = 0.4
GLOBE_FADE_END = 0.6
SERVO_MIN_DELTA = 0.002          # expansion movement that triggers a servo grain

MECHA_BASE_SCALE = 1.5
MECHA_SCALE_RANGE = 2.0
MECHA_SCALE_SMOOTHING = 0.1
MECHA_ROTATION_SCALE = 0.1
MECHA_AUTO_SPIN = 1.0            # radians per second

# ---------------------------------------------------------------------------
# Camera / MediaPipe
# ---------------------------------------------------------------------------
CAMERA_INDEX = 0
CAMERA_WIDTH = 1280
CAMERA_HEIGHT = 720
CAMERA_FPS = 30
MP_MAX_HANDS = 2
MP_MIN_DETECTION_CONF = 0.5
MP_MIN_TRACKING_CONF = 0.5
MODEL_PATH = Path(__file__).resolve().parent / "gesture_recognizer.task"
MODEL_URL = (
    "https://storage.googleapis.com/mediapipe-models/"
    "gesture_recognizer/gesture_recognizer/float16/1/gesture_recognizer.task"
)

# ---------------------------------------------------------------------------
# Sound / voice
# ---------------------------------------------------------------------------
SAMPLE_RATE = 22050
MASTER_VOLUME = 0.8
SERVO_MIN_INTENSITY = 0.001
SERVO_CUTOFF_BASE = 400.0       # low-pass cutoff of the servo grain, Hz
SERVO_CUTOFF_RANGE = 2000.0     # added at full intensity
HUM_FREQUENCY = 40.0
HUM_VOLUME = 0.03
WAKE_WORDS = ("jarvis",)
TTS_RATE = 150
TTS_VOLUME = 0.9

# ---------------------------------------------------------------------------
# Window / loop
# ---------------------------------------------------------------------------
WINDOW_NAME = "HOLOHUD"
TARGET_FPS = 60
NOTIFICATION_HISTORY = 6

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
LOG_LEVEL = logging.INFO
LOG_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"
