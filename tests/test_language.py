"""
Tests for script-based language detection
"""

import pytest

from services.chat_service.language import (
    base_language,
    detect_language,
    is_rtl,
    language_name,
    to_locale,
)


class TestDetectLanguage:
    """Test the detector on each supported script"""

    @pytest.mark.parametrize("text, expected", [
        ("Hello, how are you?", "en"),
        ("Bonjour tout le monde", "en"),
        ("آپ کیسے ہیں؟", "ur"),
        ("كيف حالك؟", "ar"),
        ("नमस्ते, आप कैसे हैं?", "hi"),
        ("ਸਤ ਸ੍ਰੀ ਅਕਾਲ", "pa"),
        ("你好，你好吗？", "zh"),
        ("こんにちは", "ja"),
        ("안녕하세요", "ko"),
        ("Привет, как дела?", "ru"),
    ])
    def test_scripts(self, text, expected):
        assert detect_language(text) == expected

    def test_urdu_specific_letters_win_over_arabic(self):
        # U+06A9 KEHEH is Urdu, not standard Arabic
        assert detect_language("کتاب") == "ur"

    def test_arabic_supplement_range(self):
        assert detect_language("ݐ") == "ar"

    def test_empty_defaults_to_english(self):
        assert detect_language("") == "en"
        assert detect_language("   ") == "en"

    def test_mixed_script_uses_first_rule(self):
        # Arabic script is checked before everything else
        assert detect_language("Hello مرحبا") == "ar"

    def test_kanji_only_text_is_chinese(self):
        assert detect_language("日本") == "zh"


class TestLanguageHelpers:
    """Test tag helpers"""

    def test_base_language(self):
        assert base_language("ur-PK") == "ur"
        assert base_language("zh_CN") == "zh"
        assert base_language("") == "en"

    def test_to_locale(self):
        assert to_locale("ur") == "ur-PK"
        assert to_locale("en") == "en-US"
        assert to_locale("ar-EG") == "ar-EG"
        assert to_locale("es") == "es"

    def test_language_name(self):
        assert language_name("ur") == "Urdu"
        assert language_name("pa-IN") == "Punjabi"
        assert language_name("xx") == "English"
        assert language_name(None) == "English"

    def test_is_rtl(self):
        assert is_rtl("ur")
        assert is_rtl("ar-SA")
        assert not is_rtl("en")
        assert not is_rtl(None)
