# pharmsearch/domain/searchers.py
"""
Declarative per-kind searcher definitions.

Each EntityKind has exactly one SearcherDef. `build_plans` turns a SearchQuery
into the list of SearchPlan objects to dispatch (one per kind, in priority
order); index adapters compile a SearchPlan into their own lookup (a MongoDB
filter, a Python predicate) so every backend matches the same rows.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple

from pharmsearch.domain.entities import EntityKind
from pharmsearch.domain.query import (
    ExtendedFilters, QueryShape, RelationAxis, SearchQuery, classify_query,
)

A = RelationAxis


class TextMode(str, Enum):
    NONE = "none"                 # filter-only query
    SUBSTRING = "substring"       # names/text fields contain q, or code starts with q
    CODE_PREFIX = "code_prefix"   # code starts with q
    SHORT_CODE_EXACT = "short_code_exact"


@dataclass(frozen=True)
class SearcherDef:
    kind: EntityKind
    collection: str
    name_fields: Tuple[str, ...] = ("name",)      # multilingual, every language matched
    text_fields: Tuple[str, ...] = ()             # plain strings
    code_prefix: bool = True
    relation_axes: FrozenSet[RelationAxis] = frozenset()
    extended: bool = False


SEARCHERS: Dict[EntityKind, SearcherDef] = {
    EntityKind.SUBSTANCE_ROOT: SearcherDef(
        EntityKind.SUBSTANCE_ROOT, "substance_roots",
    ),
    EntityKind.GENERIC_PRODUCT: SearcherDef(
        EntityKind.GENERIC_PRODUCT, "generic_products",
        name_fields=("name", "alt_name"),
        relation_axes=frozenset({A.SUBSTANCE_ROOT, A.THERAPEUTIC_GROUP, A.RAW_SUBSTANCE}),
    ),
    EntityKind.BRANDED_PRODUCT: SearcherDef(
        EntityKind.BRANDED_PRODUCT, "branded_products",
        name_fields=("name", "alt_name"),
        text_fields=("official_name", "manufacturer_name"),
        relation_axes=frozenset({A.SUBSTANCE_ROOT, A.GENERIC_PRODUCT, A.MANUFACTURER, A.RAW_SUBSTANCE}),
        extended=True,
    ),
    EntityKind.PACKAGE: SearcherDef(
        EntityKind.PACKAGE, "packages",
        text_fields=("manufacturer_name",),
        relation_axes=frozenset({
            A.SUBSTANCE_ROOT, A.GENERIC_PRODUCT, A.BRANDED_PRODUCT,
            A.CLASSIFICATION, A.MANUFACTURER, A.RAW_SUBSTANCE,
        }),
        extended=True,
    ),
    EntityKind.MANUFACTURER: SearcherDef(
        EntityKind.MANUFACTURER, "manufacturers",
        code_prefix=False,
    ),
    EntityKind.THERAPEUTIC_GROUP: SearcherDef(
        EntityKind.THERAPEUTIC_GROUP, "therapeutic_groups",
    ),
    EntityKind.RAW_SUBSTANCE: SearcherDef(
        EntityKind.RAW_SUBSTANCE, "raw_substances",
    ),
    EntityKind.CLASSIFICATION: SearcherDef(
        EntityKind.CLASSIFICATION, "classifications",
    ),
}

assert set(SEARCHERS) == set(EntityKind), "every EntityKind needs a searcher"


@dataclass(frozen=True)
class SearchPlan:
    definition: SearcherDef
    text: str
    mode: TextMode
    relations: Dict[RelationAxis, str] = field(default_factory=dict)
    extended: Optional[ExtendedFilters] = None
    cap: int = 50

    @property
    def kind(self) -> EntityKind:
        return self.definition.kind


def text_mode(defn: SearcherDef, text: str, shape: QueryShape) -> TextMode:
    if not text:
        return TextMode.NONE
    if defn.kind is EntityKind.PACKAGE and shape is QueryShape.NUMERIC_7_DIGIT:
        return TextMode.SHORT_CODE_EXACT
    if defn.kind is EntityKind.CLASSIFICATION and shape is QueryShape.CLASSIFICATION_CODE:
        return TextMode.CODE_PREFIX
    return TextMode.SUBSTRING


def _relevant_without_text(defn: SearcherDef, relations: Dict[RelationAxis, str], ext_active: bool) -> bool:
    # Without text a kind untouched by any filter would match every row.
    if any(axis in defn.relation_axes for axis in relations):
        return True
    return ext_active and defn.extended


def build_plans(query: SearchQuery, cap: int = 50) -> List[SearchPlan]:
    text = query.normalized_text
    shape = classify_query(text)
    relations = query.relations.active()
    ext_active = query.extended.is_active()

    plans: List[SearchPlan] = []
    for kind in EntityKind:
        if not query.wants(kind):
            continue
        defn = SEARCHERS[kind]
        if not text and not _relevant_without_text(defn, relations, ext_active):
            continue
        plans.append(SearchPlan(
            definition=defn,
            text=text,
            mode=text_mode(defn, text, shape),
            relations={a: v for a, v in relations.items() if a in defn.relation_axes},
            extended=query.extended if (defn.extended and ext_active) else None,
            cap=cap,
        ))
    return plans
