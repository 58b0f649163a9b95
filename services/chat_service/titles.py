"""
Conversation title policy shared by the store and the history panel.
"""

DEFAULT_TITLE = "New Conversation"
TITLE_MAX_WORDS = 5
TITLE_MAX_CHARS = 50
ELLIPSIS = "..."


def truncate_title(text: str, max_words: int = TITLE_MAX_WORDS, max_chars: int = TITLE_MAX_CHARS,
                   ellipsis: str = ELLIPSIS, default: str = DEFAULT_TITLE) -> str:
    """
    Shorten a message into a conversation title.

    Keeps at most ``max_words`` whitespace-separated words joined by single
    spaces. If that is longer than ``max_chars`` it is cut to ``max_chars``
    and the ellipsis appended; otherwise the ellipsis is appended only when
    words were dropped.

    Args:
        text: Source text, usually the first user message
        max_words: Word cap
        max_chars: Character cap applied after the word cap
        ellipsis: Marker appended when anything was cut
        default: Returned for empty or whitespace-only text

    Returns:
        The title
    """
    words = (text or "").split()
    if not words:
        return default

    kept = " ".join(words[:max_words])

    if len(kept) > max_chars:
        return kept[:max_chars] + ellipsis

    if len(words) > max_words:
        return kept + ellipsis

    return kept
