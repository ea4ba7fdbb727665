# pharmsearch/presentation/schemas.py
from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional

from pharmsearch.application.search_use_case import SearchResponse
from pharmsearch.domain.entities import ScoredResult
from pharmsearch.domain.localization import localized_text


# ── SEARCH ───────────────────────────────────────────────────────
class SearchItem(BaseModel):
    entity_kind: str
    code: str
    name: str
    parent_name: Optional[str] = None
    parent_code: Optional[str] = None
    manufacturer_name: Optional[str] = None
    pack_info: Optional[str] = None
    price: Optional[float] = None
    reimbursable: Optional[bool] = None
    short_code: Optional[str] = None
    child_count: Optional[int] = None
    enhanced_monitoring: Optional[bool] = None
    matched_field: str
    score: float

class Pagination(BaseModel):
    limit: int
    offset: int
    has_more: bool

class FilterOptionSchema(BaseModel):
    code: str
    name: Optional[str] = None
    count: int

class SearchResponseSchema(BaseModel):
    success: bool = True
    query: str
    total_count: int
    results: List[SearchItem]
    facets: Dict[str, int]
    pagination: Pagination
    incomplete: bool = False
    truncated_kinds: List[str] = []
    failed_kinds: List[str] = []
    available_filters: Dict[str, List[FilterOptionSchema]] = {}

# ── SUGGEST ──────────────────────────────────────────────────────
class SuggestionItem(BaseModel):
    entity_kind: str
    code: str
    name: str
    parent_name: Optional[str] = None
    short_code: Optional[str] = None

# ── ERRORS ───────────────────────────────────────────────────────
class ErrorBody(BaseModel):
    code: str
    message: str
    guidance: bool = False
    details: Dict[str, Any] = Field(default_factory=dict)

class ErrorEnvelope(BaseModel):
    success: bool = False
    error: ErrorBody


def to_item(r: ScoredResult, lang: str) -> SearchItem:
    row = r.row
    return SearchItem(
        entity_kind=row.kind.value,
        code=row.code,
        name=localized_text(row.name, lang),
        parent_name=localized_text(row.parent_name, lang) or None,
        parent_code=row.parent_code,
        manufacturer_name=row.manufacturer_name,
        pack_info=row.pack_info,
        price=float(row.price) if row.price is not None else None,
        reimbursable=row.reimbursable,
        short_code=row.short_code,
        child_count=row.child_count,
        enhanced_monitoring=row.enhanced_monitoring,
        matched_field=r.matched_field.value,
        score=r.score,
    )


def to_response(res: SearchResponse, lang: str) -> SearchResponseSchema:
    return SearchResponseSchema(
        query=res.query,
        total_count=res.total_count,
        results=[to_item(r, lang) for r in res.results],
        facets={k.value: n for k, n in res.facets.items()},
        pagination=Pagination(limit=res.limit, offset=res.offset, has_more=res.has_more),
        incomplete=res.incomplete,
        truncated_kinds=[k.value for k in res.truncated_kinds],
        failed_kinds=[k.value for k in res.failed_kinds],
        available_filters={
            group: [FilterOptionSchema(code=o.code, name=o.name, count=o.count) for o in opts]
            for group, opts in res.available_filters.items()
        },
    )
