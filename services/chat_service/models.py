"""
Chat service data models for conversations and messages.

Records are persisted as JSON with the field names of the stored layout
(``createdAt``, ``updatedAt``, ``primaryLanguage``); ``from_dict`` tolerates
older records and raises ``StorageParseError`` for anything structurally wrong.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import List, Dict, Optional, Any
import uuid

from services.chat_service.titles import DEFAULT_TITLE
from services.errors import StorageParseError


class MessageRole(str, Enum):
    """Who authored a message"""
    USER = "user"
    ASSISTANT = "assistant"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Fresh opaque identifier"""
    return uuid.uuid4().hex


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Normalise a stored timestamp to an aware ``datetime``.

    Accepts ``datetime`` objects, ISO-8601 strings (including a trailing
    ``Z``) and epoch milliseconds. Returns None for missing values.

    Raises:
        ValueError: if the value is present but cannot be interpreted
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, bool):
        raise ValueError(f"Invalid timestamp: {value!r}")
    elif isinstance(value, (int, float)):
        parsed = datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    else:
        raise ValueError(f"Invalid timestamp: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat()


@dataclass(frozen=True)
class Message:
    """Individual message in a conversation"""
    role: MessageRole
    content: str
    id: str = field(default_factory=new_id)
    timestamp: datetime = field(default_factory=utcnow)
    language: Optional[str] = None

    def with_language(self, language: str) -> 'Message':
        return replace(self, language=language)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "role": self.role.value,
            "content": self.content,
            "timestamp": format_timestamp(self.timestamp),
        }
        if self.language:
            data["language"] = self.language
        return data

    def to_chat_message(self) -> Dict[str, str]:
        """Role/content pair sent to the model"""
        return {"role": self.role.value, "content": self.content}

    @classmethod
    def from_dict(cls, data: Dict[str, Any], key: str = "message") -> 'Message':
        if not isinstance(data, dict):
            raise StorageParseError(key, f"message must be an object, got {type(data).__name__}")

        try:
            role = MessageRole(data.get("role"))
        except ValueError:
            raise StorageParseError(key, f"unknown message role {data.get('role')!r}")

        content = data.get("content")
        if not isinstance(content, str):
            raise StorageParseError(key, "message content must be a string")

        try:
            timestamp = parse_timestamp(data.get("timestamp")) or utcnow()
        except ValueError as e:
            raise StorageParseError(key, str(e))

        return cls(
            role=role,
            content=content,
            id=str(data.get("id") or new_id()),
            timestamp=timestamp,
            language=data.get("language") or None,
        )


@dataclass
class Conversation:
    """Conversation containing messages and metadata"""
    id: str = field(default_factory=new_id)
    title: str = DEFAULT_TITLE
    messages: List[Message] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    primary_language: Optional[str] = None
    # Set once the title has been replaced (automatically or by the user)
    title_locked: bool = False

    @property
    def user_messages(self) -> List[Message]:
        return [m for m in self.messages if m.role is MessageRole.USER]

    def copy(self, **changes) -> 'Conversation':
        """Shallow copy with its own message list"""
        changes.setdefault("messages", list(self.messages))
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "title": self.title,
            "messages": [m.to_dict() for m in self.messages],
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
        }
        if self.primary_language:
            data["primaryLanguage"] = self.primary_language
        if self.title_locked:
            data["titleLocked"] = True
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any], key: str = "conversation") -> 'Conversation':
        """
        Rebuild a conversation from its stored form.

        ``createdAt``/``updatedAt`` fall back to the legacy ``date`` field and
        then to now. Messages are re-sorted by timestamp.
        """
        if not isinstance(data, dict):
            raise StorageParseError(key, f"conversation must be an object, got {type(data).__name__}")

        conversation_id = data.get("id")
        if not conversation_id:
            raise StorageParseError(key, "conversation has no id")

        raw_messages = data.get("messages")
        messages = [Message.from_dict(m, key) for m in raw_messages] if isinstance(raw_messages, list) else []
        messages.sort(key=lambda m: m.timestamp)

        try:
            legacy_date = parse_timestamp(data.get("date"))
            created_at = parse_timestamp(data.get("createdAt")) or legacy_date or utcnow()
            updated_at = parse_timestamp(data.get("updatedAt")) or legacy_date or utcnow()
        except ValueError as e:
            raise StorageParseError(key, str(e))

        title = data.get("title")
        if not isinstance(title, str) or not title.strip():
            title = DEFAULT_TITLE

        return cls(
            id=str(conversation_id),
            title=title,
            messages=messages,
            created_at=created_at,
            updated_at=updated_at,
            primary_language=data.get("primaryLanguage") or None,
            # Older records have no flag: any non-default title was already assigned
            title_locked=bool(data.get("titleLocked", title != DEFAULT_TITLE)),
        )


@dataclass
class ConversationSummary:
    """Summary of conversation for listing/navigation"""
    conversation_id: str
    title: str
    message_count: int
    last_activity: datetime
    created_at: datetime
    primary_language: Optional[str] = None
    preview_text: Optional[str] = None

    @classmethod
    def from_conversation(cls, conversation: Conversation) -> 'ConversationSummary':
        preview = None
        user_messages = conversation.user_messages
        if user_messages:
            content = user_messages[-1].content
            preview = content[:100] + "..." if len(content) > 100 else content

        return cls(
            conversation_id=conversation.id,
            title=conversation.title,
            message_count=len(conversation.messages),
            last_activity=conversation.updated_at,
            created_at=conversation.created_at,
            primary_language=conversation.primary_language,
            preview_text=preview,
        )
