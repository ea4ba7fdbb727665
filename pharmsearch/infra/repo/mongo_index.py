# pharmsearch/infra/repo/mongo_index.py
from __future__ import annotations

import os
import re
import logging
import datetime as dt
from decimal import Decimal
from typing import Any, Dict, List, Optional

from bson.decimal128 import Decimal128
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection
from pymongo import ASCENDING
from pymongo.errors import OperationFailure

from pharmsearch.domain.entities import EntityKind, IndexedEntityRow
from pharmsearch.domain.localization import LANGUAGES
from pharmsearch.domain.ports import EntityIndexPort, LookupResult
from pharmsearch.domain.query import AXIS_FIELD, ExtendedFilters
from pharmsearch.domain.searchers import SEARCHERS, SearchPlan, TextMode

MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
DB_NAME   = os.getenv("MONGO_DB", "pharmsearch")

logger = logging.getLogger("pharmsearch.index")


def _not_expired(today: dt.date) -> Dict[str, Any]:
    # expires_on is stored as an ISO date string; None also matches a missing field
    return {"$or": [{"expires_on": None}, {"expires_on": {"$gte": today.isoformat()}}]}


def _text_clause(plan: SearchPlan) -> Optional[Dict[str, Any]]:
    defn, q = plan.definition, plan.text
    if plan.mode is TextMode.NONE:
        return None
    if plan.mode is TextMode.SHORT_CODE_EXACT:
        return {"short_code": q}

    prefix = re.compile("^" + re.escape(q), re.IGNORECASE)
    if plan.mode is TextMode.CODE_PREFIX:
        return {"code": {"$regex": prefix}}

    rx = re.compile(re.escape(q), re.IGNORECASE)
    ors: List[Dict[str, Any]] = [
        {f"{nf}.{lang}": {"$regex": rx}} for nf in defn.name_fields for lang in LANGUAGES
    ]
    ors += [{tf: {"$regex": rx}} for tf in defn.text_fields]
    if defn.code_prefix:
        ors.append({"code": {"$regex": prefix}})
    return {"$or": ors}


def _extended_clauses(ext: ExtendedFilters) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    if ext.form_codes:
        out.append({"form_code": {"$in": sorted(ext.form_codes)}})
    if ext.route_codes:
        out.append({"route_code": {"$in": sorted(ext.route_codes)}})
    if ext.reimbursement_categories:
        out.append({"reimbursement_category": {"$in": sorted(ext.reimbursement_categories)}})
    price: Dict[str, float] = {}
    if ext.price_min is not None:
        price["$gte"] = float(ext.price_min)
    if ext.price_max is not None:
        price["$lte"] = float(ext.price_max)
    if price:
        out.append({"price": price})
    if ext.reimbursable_only:
        out.append({"reimbursable": True})
    if ext.enhanced_monitoring_only:
        out.append({"enhanced_monitoring": True})
    if ext.prior_authorization_only:
        out.append({"prior_authorization": True})
    if ext.delivery_channel is not None:
        out.append({"delivery_channel": ext.delivery_channel.value})
    if ext.medicine_type is not None:
        out.append({"medicine_type": ext.medicine_type.value})
    return out


def build_filter(plan: SearchPlan, today: Optional[dt.date] = None) -> Dict[str, Any]:
    """Compile a SearchPlan into a MongoDB filter document."""
    clauses: List[Dict[str, Any]] = [_not_expired(today or dt.date.today())]

    text = _text_clause(plan)
    if text:
        clauses.append(text)

    for axis, code in sorted(plan.relations.items(), key=lambda kv: kv[0].value):
        # raw_substance_codes is an array; equality matches membership
        clauses.append({AXIS_FIELD[axis]: code})

    if plan.extended is not None:
        clauses.extend(_extended_clauses(plan.extended))

    return clauses[0] if len(clauses) == 1 else {"$and": clauses}


def row_from_doc(kind: EntityKind, doc: Dict[str, Any]) -> IndexedEntityRow:
    doc = {k: v for k, v in doc.items() if k != "_id"}
    if isinstance(doc.get("price"), Decimal128):
        doc["price"] = doc["price"].to_decimal()
    elif isinstance(doc.get("price"), float):
        doc["price"] = Decimal(str(doc["price"]))
    doc["kind"] = kind
    return IndexedEntityRow(**doc)


class MongoEntityIndex(EntityIndexPort):
    """
    Async repository over one MongoDB collection per EntityKind.

    Collections are populated by the sync pipeline; this adapter only reads
    (ensure_indexes aside).
    """

    def __init__(self, client: Optional[AsyncIOMotorClient] = None, db_name: str = DB_NAME) -> None:
        self.client = client or AsyncIOMotorClient(MONGO_URI)
        self.db = self.client[db_name]

    def collection(self, kind: EntityKind) -> AsyncIOMotorCollection:
        return self.db[SEARCHERS[kind].collection]

    # ──────────────────────────────────────────────────────────────
    #  Indexing
    # ──────────────────────────────────────────────────────────────
    async def ensure_indexes(self) -> None:
        """
        - code: unique per collection
        - short_code: packages only, sparse
        - one sparse index per relationship field the kind is filtered on
        """
        for kind, defn in SEARCHERS.items():
            coll = self.collection(kind)
            specs: List[tuple] = [([("code", ASCENDING)], {"unique": True})]
            if kind is EntityKind.PACKAGE:
                specs.append(([("short_code", ASCENDING)], {"sparse": True}))
            for axis in sorted(defn.relation_axes, key=lambda a: a.value):
                specs.append(([(AXIS_FIELD[axis], ASCENDING)], {"sparse": True}))
            for keys, opts in specs:
                try:
                    await coll.create_index(keys, **opts)
                except OperationFailure as e:
                    # an index with the same keys but other options already exists
                    logger.warning("create_index %s on %s failed: %s", keys, defn.collection, e)

    async def ping(self) -> bool:
        res = await self.db.command("ping")
        return bool(res.get("ok"))

    # ──────────────────────────────────────────────────────────────
    #  Lookup
    # ──────────────────────────────────────────────────────────────
    async def lookup(self, plan: SearchPlan) -> LookupResult:
        flt = build_filter(plan)
        cursor = (
            self.collection(plan.kind)
            .find(flt, {"_id": 0})
            .sort("code", ASCENDING)
            .limit(plan.cap + 1)
        )
        rows = [row_from_doc(plan.kind, doc) async for doc in cursor]
        truncated = len(rows) > plan.cap
        return LookupResult(rows=rows[: plan.cap], truncated=truncated)
