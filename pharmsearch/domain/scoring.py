# pharmsearch/domain/scoring.py
from __future__ import annotations

import re
from typing import Tuple

from pharmsearch.domain.entities import IndexedEntityRow, MatchedField, ScoredResult
from pharmsearch.domain.localization import localized_text

SCORE_EXACT_NAME = 1.0
SCORE_EXACT_CODE = 0.95
SCORE_PREFIX = 0.8
SCORE_WORD_PREFIX = 0.6
SCORE_MANUFACTURER = 0.5
SCORE_SUBSTRING = 0.4
SCORE_FALLBACK = 0.2
LENGTH_BONUS = 0.1

_WS = re.compile(r"\s+")


def score_row(row: IndexedEntityRow, query: str, lang: str) -> Tuple[float, MatchedField]:
    """
    Precision over recall: exact identity > prefix > word prefix > substring
    > cross-field match. First rung that matches wins; 0.2 is the floor for
    rows a searcher matched through a field not re-checked here (code prefix,
    alternate name, other languages).
    """
    q = (query or "").strip().casefold()
    if not q:
        return SCORE_FALLBACK, MatchedField.NAME

    name = localized_text(row.name, lang).casefold()

    if name == q:
        return SCORE_EXACT_NAME, MatchedField.NAME

    if row.code.casefold() == q:
        return SCORE_EXACT_CODE, MatchedField.CODE

    if row.short_code and row.short_code.casefold() == q:
        return SCORE_EXACT_CODE, MatchedField.SHORT_CODE

    if name.startswith(q):
        return SCORE_PREFIX + (len(q) / len(name)) * LENGTH_BONUS, MatchedField.NAME

    if any(word.startswith(q) for word in _WS.split(name) if word):
        return SCORE_WORD_PREFIX + (len(q) / len(name)) * LENGTH_BONUS, MatchedField.NAME

    if q in name:
        return SCORE_SUBSTRING, MatchedField.NAME

    if row.manufacturer_name and q in row.manufacturer_name.casefold():
        return SCORE_MANUFACTURER, MatchedField.MANUFACTURER_NAME

    return SCORE_FALLBACK, MatchedField.NAME


def score_candidate(row: IndexedEntityRow, query: str, lang: str) -> ScoredResult:
    score, field = score_row(row, query, lang)
    return ScoredResult(row=row, score=score, matched_field=field)
