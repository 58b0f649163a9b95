"""
Capture sessions - turn a recogniser's stream of results into finalized transcripts.

A session accumulates final result segments and emits the whole utterance
once: after ``silence_timeout`` seconds without speech (auto-stop), when the
recogniser reports the end of input, or never if it was stopped explicitly.
An utterance that ends with nothing finalized is reported as "no-speech".
Methods must be called from the event loop thread.
"""

import asyncio
import time
from typing import Callable, Optional, Protocol

from services.errors import VoiceAssistantError
from services.voice_service.adapters import CaptureErrorHandler, TranscriptHandler
from utils.logging_config import get_logger


class Recognizer(Protocol):
    """Platform recogniser controls; results are pushed back with ``feed``"""
    def start(self) -> None: ...
    def stop(self) -> None: ...


class CaptureSession:
    """Capture adapter around a push-style recogniser"""

    def __init__(self, recognizer: Optional[Recognizer] = None, silence_timeout: float = 2.0,
                 continuous: bool = False, auto_stop: bool = True,
                 clock: Callable[[], float] = time.monotonic):
        self.logger = get_logger(__name__)
        self.recognizer = recognizer
        self.silence_timeout = silence_timeout
        self.continuous = continuous
        self.auto_stop = auto_stop
        self._clock = clock

        self._on_transcript: Optional[TranscriptHandler] = None
        self._on_error: Optional[CaptureErrorHandler] = None
        self._silence_timer: Optional[asyncio.TimerHandle] = None

        self.is_listening = False
        self.transcript = ""
        self.interim_transcript = ""
        self._last_speech_time = 0.0

    def subscribe(self, on_transcript: TranscriptHandler, on_error: CaptureErrorHandler) -> None:
        self._on_transcript = on_transcript
        self._on_error = on_error

    def start(self) -> None:
        if self.is_listening:
            return

        self.transcript = ""
        self.interim_transcript = ""
        self._last_speech_time = self._clock()
        self.is_listening = True

        if self.recognizer is not None:
            try:
                self.recognizer.start()
            except Exception as e:
                self.logger.error(f"Error starting recognition: {e}")
                self.fail("audio-capture")
                return

        self.logger.debug("Capture started")

    def stop(self) -> None:
        """Stop without emitting; pending speech is discarded"""
        self._cancel_timer()
        if not self.is_listening:
            return
        self.is_listening = False
        self.transcript = ""
        self.interim_transcript = ""
        self._stop_recognizer()
        self.logger.debug("Capture stopped")

    def feed(self, text: str, is_final: bool) -> None:
        """
        Push one recogniser result

        Args:
            text: Recognised text for this segment
            is_final: Whether the recogniser committed to this segment
        """
        if not self.is_listening:
            return

        if is_final:
            self.transcript += text.strip() + " "
            self.interim_transcript = ""
        else:
            self.interim_transcript = text

        # Any result counts as speech
        self._last_speech_time = self._clock()
        if self.auto_stop:
            self._restart_timer()

    def end(self) -> None:
        """The recogniser finished on its own; emit whatever was finalized"""
        self._cancel_timer()
        if self.is_listening:
            self._finish()

    def fail(self, code: str) -> None:
        """The recogniser reported an error"""
        self.logger.warning(f"Speech recognition error: {code}")
        self._cancel_timer()
        self.is_listening = False
        self.transcript = ""
        self.interim_transcript = ""
        if self._on_error is not None:
            self._on_error(code)

    def _restart_timer(self):
        self._cancel_timer()
        loop = asyncio.get_running_loop()
        self._silence_timer = loop.call_later(self.silence_timeout, self._on_silence)

    def _cancel_timer(self):
        if self._silence_timer is not None:
            self._silence_timer.cancel()
            self._silence_timer = None

    def _on_silence(self):
        self._silence_timer = None
        if not self.is_listening:
            return
        if self._clock() - self._last_speech_time < self.silence_timeout:
            self._restart_timer()
            return
        self.logger.debug(f"No speech for {self.silence_timeout}s, stopping capture")
        self._finish()

    def _finish(self):
        text = self.transcript.strip()
        self.is_listening = False
        self.transcript = ""
        self.interim_transcript = ""
        self._stop_recognizer()

        if not text:
            # Lets the orchestrator leave the capturing state quietly
            self.logger.debug("Capture ended without speech")
            if self._on_error is not None:
                self._on_error("no-speech")
            return

        if self._on_transcript is not None:
            self._on_transcript(text)

    def _stop_recognizer(self):
        if self.recognizer is not None:
            try:
                self.recognizer.stop()
            except Exception as e:
                self.logger.warning(f"Error stopping recognition: {e}")


class TranscriptionCapture(CaptureSession):
    """
    Capture from recorded audio clips.
    Each clip is transcribed as one final segment and ends the utterance.
    """

    def __init__(self, transcribe: Callable[[bytes], str], **kwargs):
        super().__init__(**kwargs)
        self.transcribe = transcribe

    async def submit_audio(self, audio: bytes) -> None:
        """
        Transcribe one clip and end the utterance with it

        The upload runs in a worker thread so the event loop keeps serving
        timers and other turns meanwhile.
        """
        if not audio:
            return
        if not self.is_listening:
            self.start()

        try:
            text = await asyncio.to_thread(self.transcribe, audio)
        except VoiceAssistantError as e:
            self.logger.error(f"Transcription failed: {e}")
            self.fail("network")
            return
        except Exception as e:
            self.logger.error(f"Transcription failed: {e}", exc_info=True)
            self.fail("network")
            return

        # Stopped while the clip was uploading
        if not self.is_listening:
            return

        if text:
            self.feed(text, is_final=True)
        self.end()
