import html
import time
from typing import List

import streamlit as st

from config.app_config import get_config
from services.chat_service.conversation_store import ConversationStore
from services.chat_service.history import (
    display_title,
    export_filename,
    export_transcript,
    format_relative_time,
    group_by_date,
)
from services.chat_service.language import is_rtl, language_name
from services.chat_service.models import Message, MessageRole
from services.voice_service.orchestrator import Notification, TurnState
from utils.logging_config import get_logger, log_user_interaction

logger = get_logger(__name__)

STATE_LABELS = {
    TurnState.IDLE: "🟢 Ready",
    TurnState.CAPTURING: "🎤 Listening...",
    TurnState.THINKING: "🤔 Thinking...",
    TurnState.SPEAKING: "🔊 Speaking...",
}


def render_welcome_message():
    """Render the welcome message for a new conversation"""
    st.info(get_config().ui.welcome_message)


def render_chat_messages(messages: List[Message]):
    """Render the messages of the current conversation"""
    for message in messages:
        role = "user" if message.role is MessageRole.USER else "assistant"
        with st.chat_message(role):
            if is_rtl(message.language):
                st.markdown(f'<div dir="rtl">{html.escape(message.content)}</div>', unsafe_allow_html=True)
            else:
                st.markdown(message.content)
            st.caption(f"{language_name(message.language)} · {message.timestamp.strftime('%H:%M')}")


def render_notifications(notifications: List[Notification]):
    """Show orchestrator notifications; persistent ones stay until the session ends"""
    persistent = st.session_state.setdefault("persistent_notices", [])
    for notification in notifications:
        if notification.persistent:
            if notification.message not in persistent:
                persistent.append(notification.message)
        elif notification.level == "error":
            st.error(f"⚠️ {notification.message}")
        else:
            st.warning(notification.message)

    for message in persistent:
        st.error(f"🎙️ {message}")


def render_status(state: TurnState):
    st.caption(STATE_LABELS.get(state, state.value))


def render_conversation_sidebar(store: ConversationStore, on_new_conversation):
    """
    Render the conversation history sidebar

    Args:
        store: Conversation store for this session
        on_new_conversation: Callback that aborts the current turn and starts a new conversation
    """
    current = store.current_conversation
    conversations = store.conversations

    with st.sidebar:
        st.markdown("## 💬 Conversations")
        st.caption(f"📊 {len(conversations)} conversation{'s' if len(conversations) != 1 else ''}"
                   f" · {store.total_messages()} messages")

        if st.button("➕ New Conversation", use_container_width=True, type="primary"):
            on_new_conversation()
            st.rerun()

        if current is not None and current.messages:
            st.download_button(
                "📄 Download transcript",
                data=export_transcript(current),
                file_name=export_filename(current),
                mime="text/plain",
                use_container_width=True,
            )

        st.divider()

        if not conversations:
            st.write("No conversations yet")

        for group, items in group_by_date(conversations).items():
            if not items:
                continue
            st.markdown(f"**{group}**")
            for conversation in items:
                is_current = current is not None and conversation.id == current.id
                col1, col2 = st.columns([5, 1])
                with col1:
                    label = f"{display_title(conversation)} · {format_relative_time(conversation.updated_at)}"
                    if st.button(label, key=f"load_{conversation.id}", use_container_width=True,
                                 type="primary" if is_current else "secondary"):
                        store.load_conversation(conversation.id)
                        log_user_interaction(logger, "load_conversation", conversation_id=conversation.id)
                        st.rerun()
                with col2:
                    if st.button("🗑️", key=f"delete_{conversation.id}", help="Delete conversation"):
                        store.delete_conversation(conversation.id)
                        log_user_interaction(logger, "delete_conversation", conversation_id=conversation.id)
                        st.rerun()

        if conversations:
            st.divider()
            if st.button("Clear all history", type="secondary", use_container_width=True):
                if st.session_state.get("confirm_clear", False):
                    store.clear_all()
                    log_user_interaction(logger, "clear_history")
                    st.session_state["confirm_clear"] = False
                    st.success("History cleared!")
                    time.sleep(0.5)
                    st.rerun()
                else:
                    st.session_state["confirm_clear"] = True

            if st.session_state.get("confirm_clear", False):
                st.error("⚠️ Click again to confirm deleting every conversation")
