"""
AI service - model proxy contract and HTTP route.
"""

from .model_proxy import (
    ChatMessage,
    ChatRequest,
    ChatResponse,
    ErrorResponse,
    ModelProxy,
    Usage,
    get_model_proxy
)

__all__ = [
    'ChatMessage',
    'ChatRequest',
    'ChatResponse',
    'ErrorResponse',
    'ModelProxy',
    'Usage',
    'get_model_proxy'
]
