# pharmsearch/application/search_use_case.py
from __future__ import annotations

import os
import time
import asyncio
import logging
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from pharmsearch.domain.entities import EntityKind, IndexedEntityRow, ScoredResult
from pharmsearch.domain.errors import (
    InvalidParamsError, QueryTooShortError, SearchBackendError, SearchError,
)
from pharmsearch.domain.localization import LANGUAGES, is_supported_language
from pharmsearch.domain.ports import EntityIndexPort, LookupResult
from pharmsearch.domain.query import SearchQuery
from pharmsearch.domain.ranking import (
    FilterOption, available_filters, count_facets, dedupe, paginate, rank,
)
from pharmsearch.domain.scoring import score_candidate
from pharmsearch.domain.searchers import SearchPlan, build_plans

SEARCH_LIMIT_PER_KIND = int(os.getenv("SEARCH_LIMIT_PER_KIND", "50"))
MIN_QUERY_LENGTH      = int(os.getenv("SEARCH_MIN_QUERY_LENGTH", "3"))
PARTIAL_RESULTS       = os.getenv("SEARCH_PARTIAL_RESULTS", "0") == "1"

logger = logging.getLogger("pharmsearch.search")


class SearchResponse(BaseModel):
    query: str
    total_count: int
    results: List[ScoredResult]
    facets: Dict[EntityKind, int]
    limit: int
    offset: int
    has_more: bool
    truncated_kinds: List[EntityKind] = Field(default_factory=list)
    failed_kinds: List[EntityKind] = Field(default_factory=list)
    available_filters: Dict[str, List[FilterOption]] = Field(default_factory=dict)

    @property
    def incomplete(self) -> bool:
        return bool(self.truncated_kinds or self.failed_kinds)


class FederatedSearchUseCase:
    """
    classify -> per-kind lookups (concurrent) -> concat -> dedupe -> score
    -> rank -> facets -> page.

    Stateless per call. With partial_results=False (default) the first failing
    lookup cancels its siblings and the call raises SearchBackendError; with
    partial_results=True failed kinds are dropped and reported.
    """

    def __init__(
        self,
        index: EntityIndexPort,
        cap: int = SEARCH_LIMIT_PER_KIND,
        min_query_length: int = MIN_QUERY_LENGTH,
        partial_results: bool = PARTIAL_RESULTS,
    ):
        self.index = index
        self.cap = cap
        self.min_query_length = min_query_length
        self.partial_results = partial_results

    # ──────────────────────────────────────────────────────────────
    #  Validation
    # ──────────────────────────────────────────────────────────────
    def validate(self, query: SearchQuery) -> None:
        if query.limit < 0 or query.offset < 0:
            raise InvalidParamsError(
                "limit and offset must be non-negative",
                {"limit": query.limit, "offset": query.offset},
            )
        if not is_supported_language(query.lang):
            raise InvalidParamsError(
                f"Unsupported language: {query.lang!r}", {"valid_languages": list(LANGUAGES)}
            )
        ext = query.extended
        if ext.price_min is not None and ext.price_max is not None and ext.price_min > ext.price_max:
            raise InvalidParamsError("price_min must not exceed price_max")
        if not query.has_filters() and len(query.text.strip()) < self.min_query_length:
            raise QueryTooShortError(self.min_query_length)

    # ──────────────────────────────────────────────────────────────
    #  Fan-out / fan-in
    # ──────────────────────────────────────────────────────────────
    async def _lookup(self, plan: SearchPlan) -> LookupResult:
        try:
            return await self.index.lookup(plan)
        except asyncio.CancelledError:
            raise
        except SearchError:
            raise
        except Exception as e:
            logger.error("lookup failed kind=%s err=%r", plan.kind.value, e)
            raise SearchBackendError(
                f"Lookup failed for {plan.kind.value}", kind=plan.kind.value, cause=e
            ) from e

    async def _gather_all_or_nothing(self, plans: List[SearchPlan]) -> List[LookupResult]:
        tasks = [asyncio.create_task(self._lookup(p)) for p in plans]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for t in tasks:
                if not t.done():
                    t.cancel()
            raise

    async def _gather_best_effort(
        self, plans: List[SearchPlan]
    ) -> Tuple[List[Optional[LookupResult]], List[EntityKind]]:
        outcomes = await asyncio.gather(*(self._lookup(p) for p in plans), return_exceptions=True)
        results: List[Optional[LookupResult]] = []
        failed: List[EntityKind] = []
        first_error: Optional[BaseException] = None
        for plan, out in zip(plans, outcomes):
            if isinstance(out, asyncio.CancelledError):
                raise out
            if isinstance(out, BaseException):
                logger.warning("dropping kind=%s from results: %s", plan.kind.value, out)
                failed.append(plan.kind)
                results.append(None)
                first_error = first_error or out
            else:
                results.append(out)
        if plans and len(failed) == len(plans):
            raise first_error  # every lookup failed
        return results, failed

    # ──────────────────────────────────────────────────────────────
    #  Execute
    # ──────────────────────────────────────────────────────────────
    async def execute(self, query: SearchQuery) -> SearchResponse:
        self.validate(query)
        t0 = time.monotonic()

        plans = build_plans(query, cap=self.cap)
        failed: List[EntityKind] = []
        if self.partial_results:
            lookups, failed = await self._gather_best_effort(plans)
        else:
            lookups = await self._gather_all_or_nothing(plans)

        candidates: List[IndexedEntityRow] = []
        truncated: List[EntityKind] = []
        for plan, res in zip(plans, lookups):
            if res is None:
                continue
            candidates.extend(res.rows)
            if res.truncated:
                truncated.append(plan.kind)

        unique = dedupe(candidates)
        scored = [score_candidate(r, query.text, query.lang) for r in unique]
        ranked = rank(scored, query.lang)
        facets = count_facets(ranked)
        page = paginate(ranked, query.limit, query.offset)

        logger.info(
            "search q=%r kinds=%s candidates=%d unique=%d truncated=%s failed=%s ms=%d",
            query.text, [p.kind.value for p in plans], len(candidates), len(unique),
            [k.value for k in truncated], [k.value for k in failed],
            int((time.monotonic() - t0) * 1000),
        )

        return SearchResponse(
            query=query.text,
            total_count=sum(facets.values()),
            results=page.items,
            facets=facets,
            limit=page.limit,
            offset=page.offset,
            has_more=page.has_more,
            truncated_kinds=truncated,
            failed_kinds=failed,
            available_filters=available_filters(ranked, query.lang),
        )
