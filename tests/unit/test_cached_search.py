import asyncio

import pytest

from pharmsearch.application.cached_search import CachedSearchService, cache_key
from pharmsearch.application.search_use_case import FederatedSearchUseCase
from pharmsearch.domain.entities import EntityKind
from pharmsearch.domain.errors import QueryTooShortError
from pharmsearch.domain.ports import CachePort, EntityIndexPort
from pharmsearch.domain.query import ExtendedFilters, RelationshipFilters, SearchQuery


class DictCache(CachePort):
    def __init__(self, broken=False):
        self.store = {}
        self.broken = broken
        self.gets = 0

    async def get_json(self, key):
        self.gets += 1
        if self.broken:
            raise ConnectionError("redis down")
        return self.store.get(key)

    async def set_json(self, key, value, ttl=300):
        if self.broken:
            raise ConnectionError("redis down")
        self.store[key] = value


class CountingEngine(FederatedSearchUseCase):
    calls = 0

    async def execute(self, query):
        self.calls += 1
        return await super().execute(query)


@pytest.fixture
def engine(index):
    return CountingEngine(index)


def test_cache_key_ignores_case_whitespace_and_kind_order():
    a = SearchQuery(text="  Paracetamol ", kinds=[EntityKind.PACKAGE, EntityKind.BRANDED_PRODUCT])
    b = SearchQuery(text="paracetamol", kinds=[EntityKind.BRANDED_PRODUCT, EntityKind.PACKAGE])
    assert cache_key(a) == cache_key(b)
    assert cache_key(a).startswith("search:v1:")

def test_cache_key_distinguishes_filters_and_paging():
    base = SearchQuery(text="paracetamol")
    others = [
        SearchQuery(text="paracetamol", lang="fr"),
        SearchQuery(text="paracetamol", offset=20),
        SearchQuery(text="paracetamol", relations=RelationshipFilters(manufacturer="M001")),
        SearchQuery(text="paracetamol", extended=ExtendedFilters(reimbursable_only=True)),
    ]
    keys = {cache_key(q) for q in others}
    assert cache_key(base) not in keys
    assert len(keys) == len(others)

def test_miss_then_hit(engine):
    cache = DictCache()
    svc = CachedSearchService(engine, cache, ttl=60)
    q = SearchQuery(text="paracetamol")

    first = asyncio.run(svc.execute(q))
    second = asyncio.run(svc.execute(q))

    assert engine.calls == 1
    assert len(cache.store) == 1
    assert second.model_dump() == first.model_dump()
    assert second.facets[EntityKind.GENERIC_PRODUCT] == 2

def test_errors_are_not_cached(engine):
    cache = DictCache()
    svc = CachedSearchService(engine, cache)
    with pytest.raises(QueryTooShortError):
        asyncio.run(svc.execute(SearchQuery(text="pa")))
    assert cache.store == {}
    assert cache.gets == 0
    assert engine.calls == 0

def test_partial_responses_are_not_cached(index):
    class FlakyIndex(EntityIndexPort):
        """Package lookup fails on the first call only."""

        def __init__(self, inner):
            self.inner = inner
            self.package_calls = 0

        async def lookup(self, plan):
            if plan.kind is EntityKind.PACKAGE:
                self.package_calls += 1
                if self.package_calls == 1:
                    raise ConnectionError("packages collection unavailable")
            return await self.inner.lookup(plan)

        async def ensure_indexes(self):
            return None

        async def ping(self):
            return True

    cache = DictCache()
    svc = CachedSearchService(FederatedSearchUseCase(FlakyIndex(index), partial_results=True), cache)
    q = SearchQuery(text="paracetamol")

    first = asyncio.run(svc.execute(q))
    assert first.failed_kinds == [EntityKind.PACKAGE]
    assert cache.store == {}

    second = asyncio.run(svc.execute(q))
    assert second.failed_kinds == []
    assert second.facets[EntityKind.PACKAGE] == 2
    assert len(cache.store) == 1

def test_cache_outage_falls_through_to_engine(engine):
    svc = CachedSearchService(engine, DictCache(broken=True))
    res = asyncio.run(svc.execute(SearchQuery(text="paracetamol")))
    assert res.total_count == 10
    assert engine.calls == 1
