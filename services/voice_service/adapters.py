"""
Interfaces for the platform speech capabilities the turn orchestrator drives,
plus voice selection for playback.
"""

from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Protocol

from services.chat_service.language import base_language

TranscriptHandler = Callable[[str], None]
CaptureErrorHandler = Callable[[str], None]

# Recogniser error codes that mean the user refused microphone access
PERMISSION_ERROR_CODES = frozenset({"not-allowed", "service-not-allowed", "permission-denied"})
# Codes that end a capture without anything worth reporting
SILENT_ERROR_CODES = frozenset({"no-speech", "aborted"})


class CaptureAdapter(Protocol):
    """
    Speech-to-text capability.

    Attributes:
        continuous: Keep listening after a final result instead of stopping
        auto_stop: Stop on its own after a stretch of silence
        is_listening: Whether a capture is currently running
    """
    continuous: bool
    auto_stop: bool
    is_listening: bool

    def start(self) -> None:
        """Begin listening. Results arrive through the subscribed handlers."""
        ...

    def stop(self) -> None:
        """Stop listening and drop anything not yet finalized."""
        ...

    def subscribe(self, on_transcript: TranscriptHandler, on_error: CaptureErrorHandler) -> None:
        """Register the handlers for finalized transcripts and error codes."""
        ...


class PlaybackAdapter(Protocol):
    """Text-to-speech capability."""

    async def speak(self, text: str, language: Optional[str] = None) -> None:
        """Speak ``text``; returns once playback has finished."""
        ...

    def cancel(self) -> None:
        """Stop any playback in progress."""
        ...


@dataclass(frozen=True)
class Voice:
    """A voice offered by the speech engine"""
    name: str
    lang: str
    local_service: bool = False


def select_voice(voices: Iterable[Voice], language: str) -> Optional[Voice]:
    """
    Pick the best voice for a language tag such as ``"ur-PK"`` or ``"ur"``.

    Preference: exact tag, then a voice whose tag starts with the base
    language, then any voice whose tag contains it.
    """
    voices = list(voices)
    if not voices or not language:
        return None

    wanted = language.replace("_", "-").lower()
    code = base_language(wanted)

    def tag(voice: Voice) -> str:
        return voice.lang.replace("_", "-").lower()

    for voice in voices:
        if tag(voice) == wanted:
            return voice

    for voice in voices:
        if tag(voice).startswith(code):
            return voice

    for voice in voices:
        if code in tag(voice):
            return voice

    return None
