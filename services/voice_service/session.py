"""
Wiring for one browser session.

Every session gets its own Groq client: the async chat client pools
connections on the event loop that first used it, and each session drives
its own loop.
"""

from typing import Optional

from config.app_config import AppConfig
from infrastructure.external.groq_client import GroqClient
from infrastructure.storage.key_value_store import create_key_value_store
from services.ai_service.model_proxy import ModelProxy
from services.chat_service.conversation_store import ConversationStore
from services.voice_service.capture import TranscriptionCapture
from services.voice_service.orchestrator import TurnOrchestrator
from services.voice_service.playback import AudioSink, GTTSPlaybackAdapter
from utils.logging_config import ErrorTracker


def build_orchestrator(config: AppConfig, audio_sink: AudioSink,
                       error_tracker: Optional[ErrorTracker] = None) -> TurnOrchestrator:
    """
    Build a loaded conversation store and a turn orchestrator with fresh adapters

    Load problems are left on ``orchestrator.store.load_errors`` for the caller to show.
    """
    groq_client = GroqClient(config.api, config.llm)

    store = ConversationStore(create_key_value_store(config.storage), config.storage, config.conversation)
    store.load()

    capture = TranscriptionCapture(
        transcribe=groq_client.transcribe,
        silence_timeout=config.voice.silence_timeout_seconds,
        continuous=config.voice.continuous,
        auto_stop=config.voice.auto_stop,
    )
    playback = GTTSPlaybackAdapter(audio_sink, config.voice)

    return TurnOrchestrator(
        store, ModelProxy(groq_client, config.llm), capture, playback,
        voice_config=config.voice, error_tracker=error_tracker,
    )
