# pharmsearch/infra/repo/memory_index.py
from __future__ import annotations

import json
import logging
import datetime as dt
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from pharmsearch.domain.entities import EntityKind, IndexedEntityRow
from pharmsearch.domain.localization import LANGUAGES
from pharmsearch.domain.ports import EntityIndexPort, LookupResult
from pharmsearch.domain.query import AXIS_FIELD, ExtendedFilters
from pharmsearch.domain.searchers import SearchPlan, TextMode

logger = logging.getLogger("pharmsearch.index")


def _text_matches(row: IndexedEntityRow, plan: SearchPlan) -> bool:
    defn, q = plan.definition, plan.text
    if plan.mode is TextMode.NONE:
        return True
    if plan.mode is TextMode.SHORT_CODE_EXACT:
        return row.short_code == q
    if plan.mode is TextMode.CODE_PREFIX:
        return row.code.casefold().startswith(q)

    for nf in defn.name_fields:
        text = getattr(row, nf) or {}
        if any(q in (text.get(lang) or "").casefold() for lang in LANGUAGES):
            return True
    for tf in defn.text_fields:
        if q in (getattr(row, tf) or "").casefold():
            return True
    return defn.code_prefix and row.code.casefold().startswith(q)


def _relations_match(row: IndexedEntityRow, plan: SearchPlan) -> bool:
    for axis, code in plan.relations.items():
        value = getattr(row, AXIS_FIELD[axis])
        if isinstance(value, list):
            if code not in value:
                return False
        elif value != code:
            return False
    return True


def _extended_match(row: IndexedEntityRow, ext: ExtendedFilters) -> bool:
    if ext.form_codes and row.form_code not in ext.form_codes:
        return False
    if ext.route_codes and row.route_code not in ext.route_codes:
        return False
    if ext.reimbursement_categories and row.reimbursement_category not in ext.reimbursement_categories:
        return False
    if ext.price_min is not None and (row.price is None or row.price < ext.price_min):
        return False
    if ext.price_max is not None and (row.price is None or row.price > ext.price_max):
        return False
    if ext.reimbursable_only and row.reimbursable is not True:
        return False
    if ext.enhanced_monitoring_only and row.enhanced_monitoring is not True:
        return False
    if ext.prior_authorization_only and row.prior_authorization is not True:
        return False
    if ext.delivery_channel is not None and row.delivery_channel != ext.delivery_channel:
        return False
    if ext.medicine_type is not None and row.medicine_type != ext.medicine_type:
        return False
    return True


def matches(row: IndexedEntityRow, plan: SearchPlan, today: dt.date) -> bool:
    if row.kind is not plan.kind or row.is_expired(today):
        return False
    if not _text_matches(row, plan) or not _relations_match(row, plan):
        return False
    return plan.extended is None or _extended_match(row, plan.extended)


class InMemoryEntityIndex(EntityIndexPort):
    """
    Same matching semantics as MongoEntityIndex, evaluated in Python over a
    fixed snapshot. For local development (INDEX_BACKEND=memory) and tests.
    """

    def __init__(self, rows: Iterable[IndexedEntityRow] = (), today: Optional[dt.date] = None):
        self._by_kind: Dict[EntityKind, List[IndexedEntityRow]] = {k: [] for k in EntityKind}
        for r in rows:
            self._by_kind[r.kind].append(r)
        for bucket in self._by_kind.values():
            bucket.sort(key=lambda r: r.code)
        self._today = today

    @classmethod
    def from_json(cls, path: str | Path, today: Optional[dt.date] = None) -> "InMemoryEntityIndex":
        """Fixture file: a JSON list of row objects, each with a `kind`."""
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        rows = [IndexedEntityRow(**d) for d in raw]
        logger.info("loaded %d index rows from %s", len(rows), path)
        return cls(rows, today=today)

    def __len__(self) -> int:
        return sum(len(b) for b in self._by_kind.values())

    async def ensure_indexes(self) -> None:
        return None

    async def ping(self) -> bool:
        return True

    async def lookup(self, plan: SearchPlan) -> LookupResult:
        today = self._today or dt.date.today()
        hits: List[IndexedEntityRow] = []
        for row in self._by_kind[plan.kind]:
            if matches(row, plan, today):
                hits.append(row)
                if len(hits) > plan.cap:
                    break
        return LookupResult(rows=hits[: plan.cap], truncated=len(hits) > plan.cap)
