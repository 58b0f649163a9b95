"""
Tests for conversation and message records
"""

import json
from datetime import datetime, timezone

import pytest

from services.chat_service.models import (
    Conversation,
    ConversationSummary,
    Message,
    MessageRole,
    format_timestamp,
    parse_timestamp,
)
from services.chat_service.titles import DEFAULT_TITLE
from services.errors import StorageParseError


T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
T1 = datetime(2024, 5, 1, 12, 5, tzinfo=timezone.utc)


class TestTimestamps:

    def test_iso_with_z_suffix(self):
        assert parse_timestamp("2024-05-01T12:00:00.000Z") == T0

    def test_epoch_milliseconds(self):
        assert parse_timestamp(int(T0.timestamp() * 1000)) == T0

    def test_naive_datetime_assumed_utc(self):
        assert parse_timestamp(datetime(2024, 5, 1, 12, 0)) == T0

    def test_missing_is_none(self):
        assert parse_timestamp(None) is None

    def test_garbage_raises(self):
        with pytest.raises(ValueError):
            parse_timestamp("yesterday-ish")

    def test_format_is_utc_iso(self):
        assert format_timestamp(T0) == "2024-05-01T12:00:00+00:00"


class TestMessage:

    def test_round_trip(self):
        message = Message(role=MessageRole.USER, content="آپ کیسے ہیں؟", timestamp=T0, language="ur")

        restored = Message.from_dict(json.loads(json.dumps(message.to_dict())))

        assert restored == message

    def test_language_omitted_when_absent(self):
        message = Message(role=MessageRole.ASSISTANT, content="Hi", timestamp=T0)

        assert "language" not in message.to_dict()

    def test_chat_message(self):
        message = Message(role=MessageRole.ASSISTANT, content="Hi")

        assert message.to_chat_message() == {"role": "assistant", "content": "Hi"}

    def test_unknown_role_rejected(self):
        with pytest.raises(StorageParseError):
            Message.from_dict({"role": "system", "content": "x"})

    def test_non_string_content_rejected(self):
        with pytest.raises(StorageParseError):
            Message.from_dict({"role": "user", "content": 5})

    def test_missing_timestamp_defaults_to_now(self):
        message = Message.from_dict({"role": "user", "content": "x"})

        assert message.timestamp.tzinfo is not None


class TestConversation:

    def make_conversation(self):
        return Conversation(
            id="conv-1",
            title="Hello there",
            messages=[
                Message(role=MessageRole.USER, content="Hello there", id="m1", timestamp=T0, language="en"),
                Message(role=MessageRole.ASSISTANT, content="Hi!", id="m2", timestamp=T1, language="en"),
            ],
            created_at=T0,
            updated_at=T1,
            primary_language="en",
            title_locked=True,
        )

    def test_serialized_keys(self):
        data = self.make_conversation().to_dict()

        assert set(data) == {"id", "title", "messages", "createdAt", "updatedAt", "primaryLanguage", "titleLocked"}

    def test_round_trip_is_structurally_equal(self):
        data = self.make_conversation().to_dict()

        again = Conversation.from_dict(json.loads(json.dumps(data))).to_dict()

        assert again == data

    def test_legacy_date_field(self):
        conversation = Conversation.from_dict({
            "id": "old",
            "title": "Old chat",
            "date": "2023-01-02T03:04:05Z",
            "messages": [],
        })

        expected = datetime(2023, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        assert conversation.created_at == expected
        assert conversation.updated_at == expected
        # A stored non-default title counts as already assigned
        assert conversation.title_locked is True

    def test_no_dates_defaults_to_now(self):
        before = datetime.now(timezone.utc)

        conversation = Conversation.from_dict({"id": "x", "messages": []})

        assert conversation.created_at >= before
        assert conversation.title == DEFAULT_TITLE
        assert conversation.title_locked is False

    def test_messages_sorted_by_timestamp(self):
        conversation = Conversation.from_dict({
            "id": "x",
            "messages": [
                {"id": "late", "role": "assistant", "content": "b", "timestamp": "2024-05-01T12:05:00Z"},
                {"id": "early", "role": "user", "content": "a", "timestamp": "2024-05-01T12:00:00Z"},
            ],
        })

        assert [m.id for m in conversation.messages] == ["early", "late"]

    def test_missing_id_rejected(self):
        with pytest.raises(StorageParseError):
            Conversation.from_dict({"title": "no id"})

    def test_not_an_object_rejected(self):
        with pytest.raises(StorageParseError):
            Conversation.from_dict(["not", "a", "conversation"])

    def test_copy_has_its_own_message_list(self):
        conversation = self.make_conversation()

        copy = conversation.copy()
        copy.messages.append(Message(role=MessageRole.USER, content="more"))

        assert len(conversation.messages) == 2

    def test_summary(self):
        summary = ConversationSummary.from_conversation(self.make_conversation())

        assert summary.conversation_id == "conv-1"
        assert summary.message_count == 2
        assert summary.preview_text == "Hello there"
        assert summary.last_activity == T1
