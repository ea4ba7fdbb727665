# pharmsearch/domain/ranking.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from pharmsearch.domain.entities import EntityKind, IndexedEntityRow, ScoredResult
from pharmsearch.domain.localization import collation_key, localized_text


def dedupe(rows: Iterable[IndexedEntityRow]) -> List[IndexedEntityRow]:
    """Keep the first row per (kind, code), in input order."""
    seen: Dict[Tuple[EntityKind, str], IndexedEntityRow] = {}
    for r in rows:
        if r.key not in seen:
            seen[r.key] = r
    return list(seen.values())


def rank(results: Iterable[ScoredResult], lang: str) -> List[ScoredResult]:
    """score desc, kind priority asc, localized name asc (collated), code asc."""
    def _key(r: ScoredResult):
        return (
            -r.score,
            r.row.kind.priority,
            collation_key(localized_text(r.row.name, lang)),
            r.row.code,
        )
    return sorted(results, key=_key)


def count_facets(results: Iterable[ScoredResult]) -> Dict[EntityKind, int]:
    counts = {k: 0 for k in EntityKind}
    for r in results:
        counts[r.row.kind] += 1
    return counts


@dataclass(frozen=True)
class Page:
    items: List[ScoredResult]
    limit: int
    offset: int
    has_more: bool


def paginate(ranked: List[ScoredResult], limit: int, offset: int) -> Page:
    if limit < 0 or offset < 0:
        raise ValueError("limit and offset must be non-negative")
    n = len(ranked)
    return Page(
        items=ranked[offset:min(offset + limit, n)],
        limit=limit,
        offset=offset,
        has_more=offset + limit < n,
    )


@dataclass(frozen=True)
class FilterOption:
    code: str
    name: Optional[str]
    count: int


def _options(pairs: Iterable[Tuple[Optional[str], Optional[str]]]) -> List[FilterOption]:
    counts: Dict[str, int] = {}
    names: Dict[str, Optional[str]] = {}
    for code, name in pairs:
        if not code:
            continue
        counts[code] = counts.get(code, 0) + 1
        if names.get(code) is None:
            names[code] = name
    return [
        FilterOption(code=c, name=names.get(c), count=n)
        for c, n in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    ]


def available_filters(results: Iterable[ScoredResult], lang: str) -> Dict[str, List[FilterOption]]:
    """Distinct form / route / reimbursement options present in the result set."""
    rows = [r.row for r in results]
    return {
        "forms": _options(
            (r.form_code, localized_text(r.form_name, lang) or None) for r in rows
        ),
        "routes": _options(
            (r.route_code, localized_text(r.route_name, lang) or None) for r in rows
        ),
        "reimbursement_categories": _options(
            (r.reimbursement_category, None) for r in rows
        ),
    }
