"""
Groq client adapter for the application.
Groq serves an OpenAI-compatible API, so the official ``openai`` SDK is pointed at it.
"""

from typing import Optional
import openai

from config.app_config import APIConfig, LLMConfig, get_config
from services.errors import ConfigurationError
from utils.logging_config import get_logger


class GroqClient:
    """
    Adapter for the Groq chat and transcription endpoints.
    Clients are created lazily so a missing API key only fails the call that needs it.
    """

    def __init__(self, api_config: Optional[APIConfig] = None, llm_config: Optional[LLMConfig] = None):
        self.logger = get_logger(__name__)
        if api_config is None or llm_config is None:
            config = get_config()
            api_config = api_config or config.api
            llm_config = llm_config or config.llm
        self.api_config = api_config
        self.llm_config = llm_config
        self._chat_client: Optional[openai.AsyncOpenAI] = None
        self._audio_client: Optional[openai.OpenAI] = None

    def _require_api_key(self) -> str:
        api_key = self.api_config.groq_api_key
        if not api_key:
            self.logger.error("API key not found in configuration")
            raise ConfigurationError()
        return api_key

    def get_chat_client(self) -> openai.AsyncOpenAI:
        """
        Get configured async chat client

        Returns:
            openai.AsyncOpenAI: client bound to the Groq base URL

        Raises:
            ConfigurationError: if no API key is configured
        """
        if self._chat_client is None:
            self._chat_client = openai.AsyncOpenAI(
                api_key=self._require_api_key(),
                base_url=self.api_config.llm_api_url,
                timeout=self.llm_config.timeout_seconds,
                # Failed turns are reported to the user, never retried
                max_retries=0,
            )
            self.logger.info(f"Groq chat client initialized: {self.api_config.llm_api_url}")

        return self._chat_client

    def get_audio_client(self) -> openai.OpenAI:
        """Synchronous client for speech-to-text uploads"""
        if self._audio_client is None:
            self._audio_client = openai.OpenAI(
                api_key=self._require_api_key(),
                base_url=self.api_config.llm_api_url,
                timeout=self.llm_config.timeout_seconds,
                max_retries=0,
            )
            self.logger.info("Groq transcription client initialized")

        return self._audio_client

    def transcribe(self, audio: bytes, filename: str = "recording.wav", language: Optional[str] = None) -> str:
        """
        Transcribe recorded audio with the configured Whisper model

        Args:
            audio: Encoded audio file contents
            filename: Name used to tell the API the container format
            language: Optional ISO-639-1 hint

        Returns:
            The transcript, stripped
        """
        kwargs = {"model": self.llm_config.transcription_model, "file": (filename, audio)}
        if language:
            kwargs["language"] = language

        result = self.get_audio_client().audio.transcriptions.create(**kwargs)
        text = (result.text or "").strip()
        self.logger.debug(f"Transcribed {len(audio)} bytes into {len(text)} characters")
        return text


# Global client instance
_groq_client: Optional[GroqClient] = None


def get_groq_client() -> GroqClient:
    """Get the global Groq client instance"""
    global _groq_client
    if _groq_client is None:
        _groq_client = GroqClient()
    return _groq_client
