# pharmsearch/container.py
import os
from functools import lru_cache
from typing import Optional, Union

from pharmsearch.domain.ports import EntityIndexPort
from pharmsearch.infra.cache.redis_cache import RedisCache
from pharmsearch.infra.repo.memory_index import InMemoryEntityIndex
from pharmsearch.infra.repo.mongo_index import MongoEntityIndex

from pharmsearch.application.search_use_case import FederatedSearchUseCase
from pharmsearch.application.cached_search import CachedSearchService
from pharmsearch.application.suggest_use_case import SuggestUseCase

INDEX_BACKEND      = os.getenv("INDEX_BACKEND", "mongo").lower()
INDEX_FIXTURE_PATH = os.getenv("INDEX_FIXTURE_PATH")
CACHE_ENABLED      = os.getenv("CACHE_ENABLED", "0") == "1"


@lru_cache
def _index() -> EntityIndexPort:
    if INDEX_BACKEND == "memory":
        if INDEX_FIXTURE_PATH:
            return InMemoryEntityIndex.from_json(INDEX_FIXTURE_PATH)
        return InMemoryEntityIndex()
    return MongoEntityIndex()

@lru_cache
def _cache() -> RedisCache: return RedisCache.from_env()


def get_index() -> EntityIndexPort:
    return _index()

def get_cache() -> Optional[RedisCache]:
    return _cache() if CACHE_ENABLED else None

def get_search_use_case() -> Union[FederatedSearchUseCase, CachedSearchService]:
    engine = FederatedSearchUseCase(_index())
    if CACHE_ENABLED:
        return CachedSearchService(engine, _cache())
    return engine

def get_suggest_use_case() -> SuggestUseCase:
    return SuggestUseCase(_index())
