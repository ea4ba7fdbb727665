# pharmsearch/application/suggest_use_case.py
from __future__ import annotations
from typing import Any, Dict, List

from pharmsearch.application.search_use_case import FederatedSearchUseCase
from pharmsearch.domain.errors import QueryTooShortError
from pharmsearch.domain.localization import localized_text
from pharmsearch.domain.ports import EntityIndexPort
from pharmsearch.domain.query import SearchQuery

SUGGEST_MIN_QUERY_LENGTH = 2
SUGGEST_MAX_LIMIT = 10


class SuggestUseCase:
    """Autocomplete: top-N of the federated ranking, trimmed to display fields."""

    def __init__(self, index: EntityIndexPort):
        self.index = index

    async def run(self, text: str, lang: str = "en", limit: int = 5) -> List[Dict[str, Any]]:
        limit = max(1, min(limit, SUGGEST_MAX_LIMIT))
        engine = FederatedSearchUseCase(
            self.index, cap=limit * 4, min_query_length=SUGGEST_MIN_QUERY_LENGTH,
        )
        try:
            res = await engine.execute(SearchQuery(text=text or "", lang=lang, limit=limit))
        except QueryTooShortError:
            return []

        out: List[Dict[str, Any]] = []
        for r in res.results:
            out.append({
                "entity_kind": r.row.kind.value,
                "code": r.row.code,
                "name": localized_text(r.row.name, lang),
                "parent_name": localized_text(r.row.parent_name, lang) or None,
                "short_code": r.row.short_code,
            })
        return out
