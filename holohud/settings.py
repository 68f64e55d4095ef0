"""User settings and lightweight persistence.

CLI flags win over the values stored here; the file only remembers what the
user chose last time (camera, mirroring, smoothing, audio/voice toggles).

The functions are intentionally tiny and pure to keep them easy to unit test
without a camera running.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

from holohud import config

logger = logging.getLogger(__name__)

SETTINGS_PATH = Path.home() / ".holohud.json"


@dataclass
class HudSettings:
    """Combined on-disk settings shared by the vision, tracker and audio layers."""

    camera_index: int = config.CAMERA_INDEX
    mirror: bool = True
    smoothing_factor: float = config.SMOOTHING_FACTOR
    sound_enabled: bool = True
    voice_enabled: bool = False
    wake_word: str = config.WAKE_WORDS[0]


def _decode_settings(data: Dict[str, Any]) -> HudSettings:
    defaults = HudSettings()
    settings = HudSettings()
    for item in fields(HudSettings):
        if item.name not in data:
            continue
        default = getattr(defaults, item.name)
        try:
            if isinstance(default, bool) and not isinstance(data[item.name], bool):
                raise TypeError(item.name)
            value = type(default)(data[item.name])
        except (TypeError, ValueError):
            logger.warning(f"Ignoring invalid setting {item.name}={data[item.name]!r}")
            continue
        setattr(settings, item.name, value)
    if not 0.0 < settings.smoothing_factor <= 1.0:
        logger.warning(f"Smoothing factor {settings.smoothing_factor} out of range; using default")
        settings.smoothing_factor = defaults.smoothing_factor
    return settings


def load_settings(path: Path = SETTINGS_PATH) -> HudSettings:
    """Load persisted values from disk; missing or corrupt files fall back to defaults."""

    if not path.exists():
        return HudSettings()

    try:
        data = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError):
        logger.warning(f"Could not read settings from {path}; using defaults")
        return HudSettings()

    if not isinstance(data, dict):
        return HudSettings()

    return _decode_settings(data)


def persist_settings(*, path: Path = SETTINGS_PATH, **changes: Optional[Any]) -> HudSettings:
    """Merge the given fields with any existing file and write it back to disk.

    Fields passed as ``None`` are left untouched, so callers can forward
    optional CLI values directly.
    """

    current = load_settings(path)
    known = {item.name for item in fields(HudSettings)}
    for name, value in changes.items():
        if name not in known:
            raise TypeError(f"Unknown setting: {name}")
        if value is not None:
            setattr(current, name, value)

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(asdict(current), indent=2))
    return current
