# pharmsearch/domain/localization.py
from __future__ import annotations

import unicodedata
from typing import Mapping, Optional, Tuple

LANGUAGES = ("en", "nl", "fr", "de")
LANGUAGE_FALLBACK_ORDER = ("en", "nl", "fr", "de")
DEFAULT_LANGUAGE = "en"


def is_supported_language(lang: Optional[str]) -> bool:
    return lang in LANGUAGES


def localized_text(text: Optional[Mapping[str, str]], lang: str) -> str:
    """
    Requested language first, then en -> nl -> fr -> de, then whatever is there.
    """
    if not text:
        return ""
    if text.get(lang):
        return text[lang]
    for fallback in LANGUAGE_FALLBACK_ORDER:
        if text.get(fallback):
            return text[fallback]
    for v in text.values():
        if v:
            return v
    return ""


def collation_key(s: str) -> Tuple[str, str]:
    # accent/case-insensitive first, raw string keeps the order total
    folded = unicodedata.normalize("NFKD", s or "")
    folded = "".join(ch for ch in folded if not unicodedata.combining(ch)).casefold()
    return (folded, s or "")
