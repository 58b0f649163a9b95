"""
Tests for the conversation title policy (five-word cap)
"""

from services.chat_service.titles import DEFAULT_TITLE, truncate_title


class TestTruncateTitle:

    def test_short_text_unchanged(self):
        assert truncate_title("Hello, how are you?") == "Hello, how are you?"

    def test_exactly_five_words_no_ellipsis(self):
        assert truncate_title("one two three four five") == "one two three four five"

    def test_sixth_word_dropped_with_ellipsis(self):
        assert truncate_title("one two three four five six") == "one two three four five..."

    def test_whitespace_collapsed(self):
        assert truncate_title("  hello \n\t  world  ") == "hello world"

    def test_long_words_cut_at_fifty_characters(self):
        word = "a" * 30
        title = truncate_title(f"{word} {word}")

        assert title == ("a" * 30 + " " + "a" * 19) + "..."
        assert len(title) == 53

    def test_empty_returns_default(self):
        assert truncate_title("") == DEFAULT_TITLE
        assert truncate_title("   ") == DEFAULT_TITLE
        assert truncate_title(None) == DEFAULT_TITLE

    def test_custom_caps(self):
        assert truncate_title("a b c d", max_words=2, ellipsis="…") == "a b…"
