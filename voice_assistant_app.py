import asyncio
import hashlib

import streamlit as st

from config.app_config import get_config
from services.chat_service.language import language_name
from services.voice_service.capture import TranscriptionCapture
from services.voice_service.orchestrator import TurnOrchestrator
from services.voice_service.session import build_orchestrator
from utils.logging_config import get_error_tracker, get_logger, initialize_logging, log_user_interaction
from utils.streamlit_helpers import (
    render_chat_messages,
    render_conversation_sidebar,
    render_notifications,
    render_status,
    render_welcome_message,
)

# Initialize logging and error tracking
error_tracker = initialize_logging()
logger = get_logger(__name__)

config = get_config()


def _queue_audio(audio: bytes, lang: str):
    """Playback sink: the clip is rendered with autoplay on the next run"""
    st.session_state["pending_audio"] = audio


def get_orchestrator() -> TurnOrchestrator:
    """Build the store and orchestrator once per browser session"""
    if "orchestrator" not in st.session_state:
        orchestrator = build_orchestrator(config, _queue_audio, get_error_tracker())
        for error in orchestrator.store.load_errors:
            st.warning(error.user_message)

        st.session_state["event_loop"] = asyncio.new_event_loop()
        st.session_state["capture"] = orchestrator.capture
        st.session_state["orchestrator"] = orchestrator
        logger.info("Voice assistant session started")

    return st.session_state["orchestrator"]


def run(coroutine):
    """Run a coroutine on the session's event loop"""
    return st.session_state["event_loop"].run_until_complete(coroutine)


async def process_recording(orchestrator: TurnOrchestrator, capture: TranscriptionCapture, audio: bytes):
    orchestrator.start_listening()
    await capture.submit_audio(audio)
    turn = orchestrator.active_turn
    if turn is not None:
        return await turn
    return None


def main_app():
    """Main application content"""
    st.title(f"🎙️ {config.ui.app_title}")

    config_errors = config.validate()
    for error in config_errors:
        st.error(error)

    orchestrator = get_orchestrator()
    capture = st.session_state["capture"]
    store = orchestrator.store

    render_conversation_sidebar(store, lambda: run(orchestrator.close()))

    current = store.current_conversation
    if current is not None and current.primary_language:
        st.caption(f"🌐 {language_name(current.primary_language)}")

    if current is None or not current.messages:
        render_welcome_message()
    else:
        render_chat_messages(current.messages)

    audio = st.session_state.pop("pending_audio", None)
    if audio:
        st.audio(audio, format="audio/mp3", autoplay=True)

    render_notifications(orchestrator.drain_notifications())
    render_status(orchestrator.state)

    recording = st.audio_input("🎤 Record your question")
    typed = st.chat_input("Or type your message...")

    if recording is not None:
        audio_bytes = recording.getvalue()
        digest = hashlib.sha1(audio_bytes).hexdigest()
        # The widget keeps its value across reruns
        if digest != st.session_state.get("last_recording"):
            st.session_state["last_recording"] = digest
            log_user_interaction(logger, "voice_input", audio_size=len(audio_bytes))
            with st.spinner("Thinking..."):
                run(process_recording(orchestrator, capture, audio_bytes))
            st.rerun()

    if typed:
        log_user_interaction(logger, "text_input", query_length=len(typed))
        with st.spinner("Thinking..."):
            run(orchestrator.handle_transcript(typed))
        st.rerun()


main_app()
