# pharmsearch/application/cached_search.py
from __future__ import annotations

import os
import json
import hashlib
import logging
from typing import Any, Dict

from pharmsearch.application.search_use_case import FederatedSearchUseCase, SearchResponse
from pharmsearch.domain.ports import CachePort
from pharmsearch.domain.query import SearchQuery

CACHE_TTL = int(os.getenv("SEARCH_CACHE_TTL_SECONDS", "300"))
KEY_PREFIX = "search:v1:"

logger = logging.getLogger("pharmsearch.cache")


def normalized_query(query: SearchQuery) -> Dict[str, Any]:
    ext = query.extended
    return {
        "q": query.normalized_text,
        "lang": query.lang,
        "kinds": sorted(k.value for k in query.kinds) if query.kinds else None,
        "rel": {a.value: v for a, v in sorted(query.relations.active().items(), key=lambda kv: kv[0].value)},
        "ext": {
            "forms": sorted(ext.form_codes),
            "routes": sorted(ext.route_codes),
            "reimb": sorted(ext.reimbursement_categories),
            "price_min": str(ext.price_min) if ext.price_min is not None else None,
            "price_max": str(ext.price_max) if ext.price_max is not None else None,
            "reimbursable": ext.reimbursable_only,
            "monitoring": ext.enhanced_monitoring_only,
            "prior_auth": ext.prior_authorization_only,
            "delivery": ext.delivery_channel.value if ext.delivery_channel else None,
            "medicine_type": ext.medicine_type.value if ext.medicine_type else None,
        },
        "limit": query.limit,
        "offset": query.offset,
    }


def cache_key(query: SearchQuery) -> str:
    raw = json.dumps(normalized_query(query), sort_keys=True, ensure_ascii=False)
    return KEY_PREFIX + hashlib.sha1(raw.encode("utf-8")).hexdigest()


class CachedSearchService:
    """
    Short-TTL read-through cache in front of the (stateless) engine.
    Errors and responses with failed kinds are never cached; cache outages
    degrade to a direct engine call.
    """

    def __init__(self, engine: FederatedSearchUseCase, cache: CachePort, ttl: int = CACHE_TTL):
        self.engine = engine
        self.cache = cache
        self.ttl = ttl

    async def execute(self, query: SearchQuery) -> SearchResponse:
        self.engine.validate(query)
        key = cache_key(query)

        try:
            hit = await self.cache.get_json(key)
        except Exception as e:
            logger.warning("cache read failed key=%s err=%r", key, e)
            hit = None
        if hit is not None:
            logger.info("cache hit key=%s", key)
            return SearchResponse.model_validate(hit)

        res = await self.engine.execute(query)
        if res.failed_kinds:
            # degraded best-effort answer, recompute once the backend is back
            logger.info("not caching partial response key=%s failed=%s",
                        key, [k.value for k in res.failed_kinds])
            return res
        try:
            await self.cache.set_json(key, res.model_dump(mode="json"), ttl=self.ttl)
        except Exception as e:
            logger.warning("cache write failed key=%s err=%r", key, e)
        return res
