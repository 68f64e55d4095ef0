from typing import List

import speech_recognition as sr

from holohud.voice import VoiceChannel, VoiceStatus


class FakeEngine:
    def __init__(self) -> None:
        self.said: List[str] = []
        self.stopped = False

    def say(self, text: str) -> None:
        self.said.append(text)

    def runAndWait(self) -> None:
        return

    def stop(self) -> None:
        self.stopped = True


class FakeMicrophone:
    def __enter__(self) -> "FakeMicrophone":
        return self

    def __exit__(self, *exc_info) -> None:
        return None


class FakeRecognizer:
    """Times out once, mishears once, then hears the wake word and stops the loop."""

    def __init__(self, channel: VoiceChannel) -> None:
        self.channel = channel
        self.calls = 0

    def adjust_for_ambient_noise(self, source, duration) -> None:
        return

    def listen(self, source, timeout=None, phrase_time_limit=None):
        self.calls += 1
        if self.calls == 1:
            raise sr.WaitTimeoutError("no speech")
        return self.calls

    def recognize_google(self, audio):
        if audio == 2:
            raise sr.UnknownValueError()
        self.channel._stop_event.set()
        return "Jarvis show status"


def test_transcript_with_wake_word_walks_statuses() -> None:
    voice = VoiceChannel(engine=FakeEngine())
    seen: List[VoiceStatus] = []
    heard: List[str] = []
    voice.status_changes.subscribe(seen.append)
    voice.transcripts.subscribe(heard.append)

    assert voice.handle_transcript("  hey JARVIS, zoom in ") is True
    assert seen == [VoiceStatus.RECOGNIZING, VoiceStatus.WAKE_WORD_DETECTED, VoiceStatus.LISTENING]
    assert heard == ["hey JARVIS, zoom in"]
    assert voice.last_transcript == "hey JARVIS, zoom in"


def test_transcript_without_wake_word() -> None:
    voice = VoiceChannel(engine=FakeEngine(), wake_words=("friday",))
    seen: List[VoiceStatus] = []
    voice.status_changes.subscribe(seen.append)

    assert voice.handle_transcript("jarvis") is False
    assert VoiceStatus.WAKE_WORD_DETECTED not in seen
    assert voice.status is VoiceStatus.LISTENING


def test_empty_transcript_only_returns_to_listening() -> None:
    voice = VoiceChannel(engine=FakeEngine())
    heard: List[str] = []
    voice.transcripts.subscribe(heard.append)
    assert voice.handle_transcript("   ") is False
    assert voice.status is VoiceStatus.LISTENING
    assert heard == []


def test_status_changes_publish_once() -> None:
    voice = VoiceChannel(engine=FakeEngine())
    seen: List[VoiceStatus] = []
    voice.status_changes.subscribe(seen.append)
    voice.set_status(VoiceStatus.IDLE)
    voice.set_status(VoiceStatus.LISTENING)
    voice.set_status(VoiceStatus.LISTENING)
    assert seen == [VoiceStatus.LISTENING]


def test_speak_without_engine_is_dropped() -> None:
    voice = VoiceChannel(engine=None)
    assert voice.can_speak is False
    voice.speak("hello")
    assert voice._speech_queue.empty()


def test_speech_worker_says_queued_text() -> None:
    engine = FakeEngine()
    voice = VoiceChannel(engine=engine)
    voice.start()
    voice.speak("Hello. I am Jarvis.")
    deadline = 200
    while not engine.said and deadline:
        voice._stop_event.wait(0.01)
        deadline -= 1
    voice.close()
    assert engine.said == ["Hello. I am Jarvis."]
    assert engine.stopped is True
    assert voice.status is VoiceStatus.IDLE


def test_listen_loop_handles_recognizer_errors() -> None:
    voice = VoiceChannel(engine=FakeEngine())
    heard: List[str] = []
    voice.transcripts.subscribe(heard.append)

    voice.listen_forever(FakeRecognizer(voice), FakeMicrophone())

    assert heard == ["Jarvis show status"]
    assert voice.status is VoiceStatus.IDLE
