"""
Script-based language detection.

The same detector tags stored messages and picks playback voices, so both
always agree on the language of a piece of text.
"""

import re
from typing import List, Pattern, Tuple

DEFAULT_LANGUAGE = "en"

_ARABIC_SCRIPT = re.compile(r"[\u0600-\u06FF\u0750-\u077F\u08A0-\u08FF]")
# Letters used by Urdu but not by standard Arabic
_URDU_LETTERS = re.compile(r"[\u0679\u067E\u0686\u0688\u0691\u0698\u06A9\u06AF\u06BA\u06BE\u06CC]")

# Checked in order, first match wins
_SCRIPT_PATTERNS: List[Tuple[Pattern, str]] = [
    (re.compile(r"[\u0900-\u097F]"), "hi"),  # Devanagari
    (re.compile(r"[\u0A00-\u0A7F]"), "pa"),  # Gurmukhi
    (re.compile(r"[\u4E00-\u9FFF]"), "zh"),  # CJK unified ideographs
    (re.compile(r"[\u3040-\u309F\u30A0-\u30FF]"), "ja"),  # Hiragana, Katakana
    (re.compile(r"[\uAC00-\uD7AF]"), "ko"),  # Hangul syllables
    (re.compile(r"[\u0400-\u04FF]"), "ru"),  # Cyrillic
]

_LOCALES = {
    "en": "en-US",
    "ur": "ur-PK",
    "ar": "ar-SA",
    "hi": "hi-IN",
    "pa": "pa-IN",
    "zh": "zh-CN",
    "ja": "ja-JP",
    "ko": "ko-KR",
    "ru": "ru-RU",
}

_LANGUAGE_NAMES = {
    "en": "English",
    "ur": "Urdu",
    "ar": "Arabic",
    "hi": "Hindi",
    "pa": "Punjabi",
    "zh": "Chinese",
    "ja": "Japanese",
    "ko": "Korean",
    "ru": "Russian",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
}

_RTL_LANGUAGES = {"ur", "ar"}


def detect_language(text: str) -> str:
    """
    Detect the language of ``text`` from the Unicode blocks it uses.

    Args:
        text: Any string, possibly empty

    Returns:
        A base language tag such as ``"ur"`` or ``"zh"``; ``"en"`` when no
        non-Latin script is recognised
    """
    if not text:
        return DEFAULT_LANGUAGE

    if _ARABIC_SCRIPT.search(text):
        return "ur" if _URDU_LETTERS.search(text) else "ar"

    for pattern, tag in _SCRIPT_PATTERNS:
        if pattern.search(text):
            return tag

    return DEFAULT_LANGUAGE


def base_language(tag: str) -> str:
    """'ur-PK' -> 'ur'"""
    return tag.replace("_", "-").split("-")[0].lower() if tag else DEFAULT_LANGUAGE


def to_locale(tag: str) -> str:
    """Map a base tag to the regional locale used for speech"""
    if "-" in tag:
        return tag
    return _LOCALES.get(tag, tag)


def language_name(tag: str = None) -> str:
    return _LANGUAGE_NAMES.get(base_language(tag or DEFAULT_LANGUAGE), "English")


def is_rtl(tag: str = None) -> bool:
    return base_language(tag or "") in _RTL_LANGUAGES
