"""
Conversation store - owns the conversation history and the current conversation.

All mutations go through ``_transaction``: the transform receives the previous
state snapshot and the state it returns is written to durable storage and then
published as the new snapshot, collection and current pointer together.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Tuple
import json
import threading

from config.app_config import ConversationConfig, StorageConfig
from infrastructure.storage.key_value_store import KeyValueStore
from services.chat_service.language import detect_language
from services.chat_service.models import (
    Conversation, ConversationSummary, Message, MessageRole, utcnow
)
from services.chat_service.titles import truncate_title
from services.errors import ConversationNotFoundError, StorageParseError
from utils.logging_config import get_logger, log_conversation_event


@dataclass(frozen=True)
class StoreState:
    """Immutable snapshot of the store"""
    conversations: Tuple[Conversation, ...] = ()
    current: Optional[Conversation] = None

    def find(self, conversation_id: str) -> Optional[Conversation]:
        for conversation in self.conversations:
            if conversation.id == conversation_id:
                return conversation
        return None


def _sorted_by_activity(conversations) -> Tuple[Conversation, ...]:
    return tuple(sorted(conversations, key=lambda c: c.updated_at, reverse=True))


def _upsert(conversations: Tuple[Conversation, ...], conversation: Conversation,
            resort: bool = True) -> Tuple[Conversation, ...]:
    """Replace by id in place, or prepend when the id is new"""
    for index, existing in enumerate(conversations):
        if existing.id == conversation.id:
            updated = conversations[:index] + (conversation,) + conversations[index + 1:]
            return _sorted_by_activity(updated) if resort else updated
    return (conversation,) + conversations


class ConversationStore:
    """
    Service for conversation history and the active conversation.
    Construct one per session, call ``load()`` at start and ``close()`` at the end.
    """

    def __init__(self, storage: KeyValueStore,
                 storage_config: Optional[StorageConfig] = None,
                 conversation_config: Optional[ConversationConfig] = None,
                 clock: Callable[[], datetime] = utcnow):
        self.logger = get_logger(__name__)
        self.storage = storage
        self.storage_config = storage_config or StorageConfig()
        self.conversation_config = conversation_config or ConversationConfig()
        self._clock = clock
        self._lock = threading.RLock()
        self._state = StoreState()
        self.load_errors: List[StorageParseError] = []

    # ------------------------------------------------------------------
    # Snapshot access
    # ------------------------------------------------------------------

    @property
    def state(self) -> StoreState:
        return self._state

    @property
    def conversations(self) -> List[Conversation]:
        return list(self._state.conversations)

    @property
    def current_conversation(self) -> Optional[Conversation]:
        return self._state.current

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        return self._state.find(conversation_id)

    def require_conversation(self, conversation_id: str) -> Conversation:
        conversation = self._state.find(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)
        return conversation

    def list_summaries(self) -> List[ConversationSummary]:
        return [ConversationSummary.from_conversation(c) for c in self._state.conversations]

    def total_messages(self) -> int:
        return sum(len(c.messages) for c in self._state.conversations)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def load(self) -> StoreState:
        """Read the persisted collection and current conversation"""
        with self._lock:
            self.load_errors = []
            conversations = self._load_collection()
            current = self._load_current()

            # Keep the pointer and the collection entry identical
            if current is not None:
                for conversation in conversations:
                    if conversation.id == current.id:
                        current = conversation
                        break

            self._state = StoreState(tuple(conversations), current)

        self.logger.info(
            f"Loaded {len(conversations)} conversations"
            f" (current: {current.id if current else 'none'})"
        )
        return self._state

    def close(self):
        """Release the storage backend"""
        self.storage.close()
        self.logger.debug("Conversation store closed")

    def _decode(self, key: str):
        raw = self.storage.get_item(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            raise StorageParseError(key, f"invalid JSON: {e}")

    def _discard(self, error: StorageParseError):
        self.logger.error(f"Discarding corrupted record {error.key}: {error.details}")
        self.load_errors.append(error)

    def _load_collection(self) -> List[Conversation]:
        key = self.storage_config.conversations_key
        try:
            data = self._decode(key)
            if data is None:
                return []
            if not isinstance(data, list):
                raise StorageParseError(key, "conversation collection must be a list")
        except StorageParseError as e:
            self._discard(e)
            self.storage.remove_item(key)
            return []

        conversations = []
        seen = set()
        dropped = False
        for index, record in enumerate(data):
            try:
                conversation = Conversation.from_dict(record, key=f"{key}[{index}]")
            except StorageParseError as e:
                self._discard(e)
                dropped = True
                continue
            if conversation.id in seen:
                dropped = True
                continue
            seen.add(conversation.id)
            conversations.append(conversation)

        if dropped:
            self._write_collection(tuple(conversations))
        return conversations

    def _load_current(self) -> Optional[Conversation]:
        key = self.storage_config.current_key
        try:
            data = self._decode(key)
            if data is None:
                return None
            return Conversation.from_dict(data, key=key)
        except StorageParseError as e:
            self._discard(e)
            self.storage.remove_item(key)
            return None

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _write_collection(self, conversations: Tuple[Conversation, ...]):
        payload = json.dumps([c.to_dict() for c in conversations], ensure_ascii=False)
        self.storage.set_item(self.storage_config.conversations_key, payload)

    def _write_current(self, current: Optional[Conversation]):
        payload = json.dumps(current.to_dict() if current else None, ensure_ascii=False)
        self.storage.set_item(self.storage_config.current_key, payload)

    def _transaction(self, transform: Callable[[StoreState], StoreState]) -> StoreState:
        """
        Apply ``transform`` to the latest snapshot.
        Storage is written before the new snapshot is published; a storage
        failure leaves the in-memory state untouched.
        """
        with self._lock:
            previous = self._state
            updated = transform(previous)
            if updated is previous:
                return previous

            if updated.conversations is not previous.conversations:
                self._write_collection(updated.conversations)
            if updated.current is not previous.current:
                self._write_current(updated.current)

            self._state = updated
            return updated

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _new_conversation(self) -> Conversation:
        now = self._clock()
        return Conversation(title=self.conversation_config.default_title, created_at=now, updated_at=now)

    def _make_title(self, text: str) -> str:
        cfg = self.conversation_config
        return truncate_title(text, max_words=cfg.title_max_words, max_chars=cfg.title_max_chars,
                              ellipsis=cfg.ellipsis, default=cfg.default_title)

    def create_conversation(self) -> Conversation:
        """
        Start a new empty conversation and make it current

        Returns:
            The new conversation
        """
        conversation = self._new_conversation()

        def transform(state: StoreState) -> StoreState:
            return StoreState(_upsert(state.conversations, conversation, resort=False), conversation)

        self._transaction(transform)
        log_conversation_event(self.logger, "created", conversation.id)
        return conversation

    def append_message(self, message: Message) -> Conversation:
        """
        Append a message to the current conversation, creating one if needed

        Tags the message language when missing, and on the first user message
        fixes the conversation's primary language and title.

        Args:
            message: Message to append

        Returns:
            The updated current conversation
        """
        language = message.language or detect_language(message.content)
        tagged = message if message.language else message.with_language(language)

        def transform(state: StoreState) -> StoreState:
            base = state.current or self._new_conversation()
            now = self._clock()
            conversation = base.copy(
                messages=base.messages + [tagged],
                updated_at=max(now, base.updated_at),
            )

            if tagged.role is MessageRole.USER:
                first_user = conversation.user_messages[0]
                if not conversation.primary_language:
                    conversation.primary_language = first_user.language or detect_language(first_user.content)
                if not conversation.title_locked:
                    conversation.title = self._make_title(first_user.content)
                    conversation.title_locked = True

            return StoreState(_upsert(state.conversations, conversation), conversation)

        updated = self._transaction(transform).current
        log_conversation_event(self.logger, "message_added", updated.id,
                               role=tagged.role.value, language=tagged.language,
                               message_count=len(updated.messages))
        return updated

    def load_conversation(self, conversation_id: str) -> Optional[Conversation]:
        """
        Make a stored conversation current

        Returns:
            The conversation, or None when no conversation has that id
        """
        found: List[Conversation] = []

        def transform(state: StoreState) -> StoreState:
            conversation = state.find(conversation_id)
            if conversation is None:
                return state
            found.append(conversation)
            if state.current is conversation:
                return state
            return StoreState(state.conversations, conversation)

        self._transaction(transform)

        if not found:
            self.logger.warning(f"Conversation not found: {conversation_id}")
            return None

        log_conversation_event(self.logger, "loaded", conversation_id)
        return found[0]

    def rename_conversation(self, conversation_id: str, title: str) -> Optional[Conversation]:
        """
        Give a conversation a user-chosen title; it is never replaced automatically afterwards

        Returns:
            The renamed conversation, or None when no conversation has that id
        """
        title = " ".join((title or "").split())
        if not title:
            return None

        renamed: List[Conversation] = []

        def transform(state: StoreState) -> StoreState:
            conversation = state.find(conversation_id)
            if conversation is None and state.current is not None and state.current.id == conversation_id:
                conversation = state.current
            if conversation is None:
                return state

            updated = conversation.copy(title=title, title_locked=True,
                                        updated_at=max(self._clock(), conversation.updated_at))
            renamed.append(updated)
            current = updated if state.current is not None and state.current.id == conversation_id else state.current
            return StoreState(_upsert(state.conversations, updated), current)

        self._transaction(transform)

        if not renamed:
            self.logger.warning(f"Conversation not found for rename: {conversation_id}")
            return None

        log_conversation_event(self.logger, "renamed", conversation_id)
        return renamed[0]

    def delete_conversation(self, conversation_id: str) -> bool:
        """
        Remove a conversation; clears the current pointer when it pointed at it

        Returns:
            True if a conversation was removed
        """
        deleted: List[bool] = []

        def transform(state: StoreState) -> StoreState:
            remaining = tuple(c for c in state.conversations if c.id != conversation_id)
            was_current = state.current is not None and state.current.id == conversation_id
            if len(remaining) == len(state.conversations) and not was_current:
                return state
            deleted.append(True)
            return StoreState(remaining, None if was_current else state.current)

        self._transaction(transform)

        if not deleted:
            self.logger.warning(f"Conversation not found for deletion: {conversation_id}")
            return False

        log_conversation_event(self.logger, "deleted", conversation_id)
        return True

    def clear_all(self):
        """Remove every conversation and clear the current pointer"""
        self._transaction(lambda state: StoreState((), None))
        log_conversation_event(self.logger, "cleared", None)
