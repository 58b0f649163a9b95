"""
Playback adapter that speaks replies with Google Text-to-Speech.

gTTS only synthesises audio; the rendered MP3 is handed to a sink (the
Streamlit page plays it with autoplay). ``speak`` finishes once the sink
has accepted the clip.
"""

import asyncio
from io import BytesIO
from typing import Callable, List, Optional

from gtts import gTTS, gTTSError
from gtts.lang import tts_langs

from config.app_config import VoiceConfig, get_config
from services.chat_service.language import to_locale
from services.errors import PlaybackError
from services.voice_service.adapters import Voice, select_voice
from utils.logging_config import get_logger, log_execution_time

AudioSink = Callable[[bytes, str], None]


def available_voices() -> List[Voice]:
    """Languages gTTS can speak, as voices"""
    return [Voice(name=name, lang=code) for code, name in tts_langs().items()]


class GTTSPlaybackAdapter:
    """Playback adapter backed by gTTS"""

    def __init__(self, sink: AudioSink, voice_config: Optional[VoiceConfig] = None,
                 voices: Optional[List[Voice]] = None):
        self.logger = get_logger(__name__)
        self.sink = sink
        self.voice_config = voice_config or get_config().voice
        self._voices = voices
        self._task: Optional[asyncio.Future] = None
        self._cancelled = False

    @property
    def voices(self) -> List[Voice]:
        if self._voices is None:
            self._voices = available_voices()
        return self._voices

    def voice_for(self, language: Optional[str]) -> Optional[Voice]:
        tag = language or self.voice_config.default_language
        voice = select_voice(self.voices, to_locale(tag))
        if voice is None:
            self.logger.warning(f"No voice for language {tag}, using default")
            voice = select_voice(self.voices, to_locale(self.voice_config.default_language))
        return voice

    def _synthesise(self, text: str, lang: str) -> bytes:
        buffer = BytesIO()
        gTTS(text=text, lang=lang, slow=self.voice_config.slow_speech).write_to_fp(buffer)
        return buffer.getvalue()

    async def speak(self, text: str, language: Optional[str] = None) -> None:
        """
        Synthesise ``text`` and pass the clip to the sink

        Raises:
            PlaybackError: synthesis failed
            asyncio.CancelledError: ``cancel`` was called while synthesising
        """
        if not text or not text.strip():
            return

        voice = self.voice_for(language)
        lang = voice.lang if voice else "en"
        self._cancelled = False

        try:
            with log_execution_time(self.logger, "speech synthesis", language=lang, text_length=len(text)):
                self._task = asyncio.ensure_future(asyncio.to_thread(self._synthesise, text, lang))
                audio = await self._task
        except gTTSError as e:
            raise PlaybackError(details=str(e))
        finally:
            self._task = None

        if self._cancelled:
            raise asyncio.CancelledError()

        self.sink(audio, lang)

    def cancel(self) -> None:
        self._cancelled = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
            self.logger.debug("Playback cancelled")
