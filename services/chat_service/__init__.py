"""
Chat service - conversation models, history persistence and formatting.
"""

from .conversation_store import ConversationStore, StoreState
from .language import detect_language
from .models import Conversation, ConversationSummary, Message, MessageRole
from .titles import DEFAULT_TITLE, truncate_title

__all__ = [
    'ConversationStore',
    'StoreState',
    'detect_language',
    'Conversation',
    'ConversationSummary',
    'Message',
    'MessageRole',
    'DEFAULT_TITLE',
    'truncate_title'
]
