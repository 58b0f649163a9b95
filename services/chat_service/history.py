"""
Formatting helpers for the conversation history panel and transcript export.
"""

import calendar
import re
from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional

from services.chat_service.language import is_rtl, language_name
from services.chat_service.models import Conversation, MessageRole
from services.chat_service.titles import DEFAULT_TITLE, truncate_title

DATE_GROUPS = ("Today", "Yesterday", "This Week", "This Month", "Older")


def display_title(conversation: Conversation) -> str:
    """
    Title shown in the history list.

    A title other than the default wins; otherwise the first assistant reply,
    then the first user message, summarise the conversation.
    """
    if conversation.title and conversation.title != DEFAULT_TITLE:
        return truncate_title(conversation.title)

    for role in (MessageRole.ASSISTANT, MessageRole.USER):
        for message in conversation.messages:
            if message.role is role and message.content.strip():
                return truncate_title(message.content)

    return DEFAULT_TITLE


def format_relative_time(when: datetime, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    seconds = (now - when).total_seconds()
    minutes = int(seconds // 60)
    hours = int(seconds // 3600)
    days = int(seconds // 86400)

    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes}m ago"
    if hours < 24:
        return f"{hours}h ago"
    if days < 7:
        return f"{days}d ago"
    return when.astimezone(now.tzinfo).strftime("%Y-%m-%d")


def _month_before(day: datetime) -> datetime:
    year, month = (day.year, day.month - 1) if day.month > 1 else (day.year - 1, 12)
    return day.replace(year=year, month=month, day=min(day.day, calendar.monthrange(year, month)[1]))


def group_by_date(conversations: Iterable[Conversation],
                  now: Optional[datetime] = None) -> Dict[str, List[Conversation]]:
    """
    Bucket conversations by last activity, relative to ``now``'s calendar day

    Returns:
        Ordered mapping of every group name (possibly empty) to its conversations
    """
    now = now or datetime.now(timezone.utc)
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    yesterday = today - timedelta(days=1)
    week_ago = today - timedelta(days=7)
    month_ago = _month_before(today)

    groups: Dict[str, List[Conversation]] = OrderedDict((name, []) for name in DATE_GROUPS)

    for conversation in conversations:
        updated = conversation.updated_at.astimezone(now.tzinfo)
        day = updated.replace(hour=0, minute=0, second=0, microsecond=0)

        if day == today:
            groups["Today"].append(conversation)
        elif day == yesterday:
            groups["Yesterday"].append(conversation)
        elif updated >= week_ago:
            groups["This Week"].append(conversation)
        elif updated >= month_ago:
            groups["This Month"].append(conversation)
        else:
            groups["Older"].append(conversation)

    return groups


def sanitize_filename(title: str) -> str:
    """'Hello, how are you...' -> 'hello_how_are_you'"""
    cleaned = re.sub(r"\.\.\.$", "", title)
    cleaned = re.sub(r"[^a-z0-9\s-]", "", cleaned, flags=re.IGNORECASE).strip()
    cleaned = re.sub(r"\s+", "_", cleaned)
    return cleaned.lower()[:50]


def export_filename(conversation: Conversation, extension: str = "txt") -> str:
    stem = sanitize_filename(display_title(conversation)) or "conversation"
    return f"{stem}_{conversation.id[:8]}.{extension}"


def export_transcript(conversation: Conversation) -> str:
    """Plain-text transcript of a conversation, oldest message first"""
    user_count = len(conversation.user_messages)
    assistant_count = len(conversation.messages) - user_count

    lines = [
        display_title(conversation),
        f"Created: {conversation.created_at.strftime('%Y-%m-%d %H:%M')}",
        f"Language: {language_name(conversation.primary_language)}",
        f"Messages: {user_count} from you, {assistant_count} from the assistant",
        "",
    ]

    for message in sorted(conversation.messages, key=lambda m: m.timestamp):
        speaker = "You" if message.role is MessageRole.USER else "Assistant"
        header = f"[{message.timestamp.strftime('%Y-%m-%d %H:%M:%S')}] {speaker}"
        if message.language:
            header += f" ({language_name(message.language)})"
        if is_rtl(message.language):
            header += " [RTL]"
        lines.append(header)
        lines.append(message.content)
        lines.append("")

    return "\n".join(lines).rstrip() + "\n"
