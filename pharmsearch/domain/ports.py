# pharmsearch/domain/ports.py
from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, List

from pharmsearch.domain.entities import IndexedEntityRow
from pharmsearch.domain.searchers import SearchPlan


@dataclass
class LookupResult:
    rows: List[IndexedEntityRow] = field(default_factory=list)
    truncated: bool = False   # the per-kind cap cut the result short


class EntityIndexPort(ABC):
    """Read-only access to the eight entity index collections."""

    @abstractmethod
    async def lookup(self, plan: SearchPlan) -> LookupResult: ...

    @abstractmethod
    async def ensure_indexes(self) -> None: ...

    @abstractmethod
    async def ping(self) -> bool: ...


class CachePort(ABC):
    @abstractmethod
    async def get_json(self, key: str) -> Any: ...
    @abstractmethod
    async def set_json(self, key: str, value: Any, ttl: int = 300) -> None: ...
