"""Voice command channel: status machine, wake word, and queued text-to-speech.

This is only the boundary the HUD talks to. Transcripts are published as
plain text; interpreting them is left to whoever subscribes.
"""

from __future__ import annotations

import logging
import queue
import threading
from enum import Enum
from typing import Any, Iterable, Optional, Tuple

import pyttsx3
import speech_recognition as sr

from holohud import config
from holohud.events import Channel

logger = logging.getLogger(__name__)


class VoiceStatus(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    RECOGNIZING = "recognizing"
    WAKE_WORD_DETECTED = "wake_word_detected"


class VoiceChannel:
    """Owns the TTS worker and publishes status changes and transcripts.

    ``engine`` is any object with ``say``/``runAndWait``/``stop`` (a
    ``pyttsx3`` engine by default). Passing ``engine=None`` creates one on
    ``start()``; if that fails speech is disabled and only status/transcript
    handling remains.
    """

    def __init__(
        self,
        engine: Optional[Any] = None,
        wake_words: Iterable[str] = config.WAKE_WORDS,
    ) -> None:
        self.engine = engine
        self.wake_words: Tuple[str, ...] = tuple(word.lower() for word in wake_words)
        self.status = VoiceStatus.IDLE
        self.status_changes: Channel[VoiceStatus] = Channel("voice-status")
        self.transcripts: Channel[str] = Channel("voice-transcripts")
        self.last_transcript: Optional[str] = None
        self._speech_queue: "queue.Queue[str]" = queue.Queue()
        self._stop_event = threading.Event()
        self._speech_thread: Optional[threading.Thread] = None
        self._listen_thread: Optional[threading.Thread] = None

    # ------------------------------------------------------------------
    # Status / transcripts
    # ------------------------------------------------------------------

    def set_status(self, status: VoiceStatus) -> None:
        """Move to ``status`` and notify subscribers if it actually changed."""

        if status == self.status:
            return
        logger.debug(f"Voice status {self.status.value} -> {status.value}")
        self.status = status
        self.status_changes.publish(status)

    def contains_wake_word(self, text: str) -> bool:
        lowered = text.lower()
        return any(word in lowered for word in self.wake_words)

    def handle_transcript(self, text: str) -> bool:
        """Feed one recognised transcript through the status machine.

        Returns ``True`` when the transcript contained a wake word.
        """

        text = text.strip()
        if not text:
            self.set_status(VoiceStatus.LISTENING)
            return False

        self.set_status(VoiceStatus.RECOGNIZING)
        woke = self.contains_wake_word(text)
        if woke:
            self.set_status(VoiceStatus.WAKE_WORD_DETECTED)
        self.last_transcript = text
        self.transcripts.publish(text)
        self.set_status(VoiceStatus.LISTENING)
        return woke

    # ------------------------------------------------------------------
    # Text-to-speech
    # ------------------------------------------------------------------

    @property
    def can_speak(self) -> bool:
        return self.engine is not None

    def speak(self, text: str) -> None:
        """Queue ``text`` for the speech worker; newer requests wait their turn."""

        if self.engine is None:
            logger.debug(f"Speech disabled, dropping: {text}")
            return
        self._speech_queue.put(text)

    def _speech_worker(self) -> None:
        while not self._stop_event.is_set():
            try:
                text = self._speech_queue.get(timeout=0.1)
            except queue.Empty:
                continue
            try:
                self.engine.say(text)
                self.engine.runAndWait()
            except RuntimeError as exc:
                logger.error(f"Speech synthesis error: {exc}")

    # ------------------------------------------------------------------
    # Speech recognition
    # ------------------------------------------------------------------

    def listen_forever(self, recognizer: Any, microphone: Any) -> None:
        """Blocking recognition loop built on ``speech_recognition``."""

        with microphone as source:
            recognizer.adjust_for_ambient_noise(source, 1)
            self.set_status(VoiceStatus.LISTENING)
            while not self._stop_event.is_set():
                try:
                    audio = recognizer.listen(source, timeout=2, phrase_time_limit=4)
                except sr.WaitTimeoutError:
                    continue
                self.set_status(VoiceStatus.RECOGNIZING)
                try:
                    text = recognizer.recognize_google(audio)
                except sr.UnknownValueError:
                    self.set_status(VoiceStatus.LISTENING)
                    continue
                except sr.RequestError as exc:
                    logger.warning(f"Speech recognition service error: {exc}")
                    self.set_status(VoiceStatus.LISTENING)
                    continue
                self.handle_transcript(text)
        self.set_status(VoiceStatus.IDLE)

    def start(self, listen: bool = False) -> None:
        """Start the speech worker, and the microphone listener if ``listen``."""

        self._stop_event.clear()
        if self.engine is None:
            try:
                self.engine = pyttsx3.init()
                self.engine.setProperty("rate", config.TTS_RATE)
                self.engine.setProperty("volume", config.TTS_VOLUME)
            except (ImportError, RuntimeError, OSError) as exc:
                logger.warning(f"pyttsx3 engine failed to initialize: {exc}. Voice feedback disabled.")
                self.engine = None

        if self.engine is not None:
            self._speech_thread = threading.Thread(target=self._speech_worker, daemon=True, name="SpeechThread")
            self._speech_thread.start()

        if listen:
            try:
                microphone = sr.Microphone()
            except (AttributeError, OSError) as exc:
                # Microphone needs PyAudio and an input device.
                logger.warning(f"Microphone unavailable, voice commands disabled: {exc}")
                return
            self._listen_thread = threading.Thread(
                target=self.listen_forever,
                args=(sr.Recognizer(), microphone),
                daemon=True,
                name="ListenThread",
            )
            self._listen_thread.start()
        logger.info("Voice channel started.")

    def close(self) -> None:
        self._stop_event.set()
        for thread in (self._speech_thread, self._listen_thread):
            if thread is not None and thread.is_alive():
                thread.join(timeout=1.5)
        if self.engine is not None:
            try:
                self.engine.stop()
            except RuntimeError as exc:
                logger.debug(f"TTS engine stop failed: {exc}")
        # Drop anything still waiting to be spoken.
        while True:
            try:
                self._speech_queue.get_nowait()
            except queue.Empty:
                break
        self.set_status(VoiceStatus.IDLE)
        logger.info("Voice channel stopped.")
