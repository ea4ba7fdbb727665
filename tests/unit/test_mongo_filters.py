import re
import datetime as dt
from decimal import Decimal

from bson.decimal128 import Decimal128

from pharmsearch.domain.entities import DeliveryChannel, EntityKind
from pharmsearch.domain.query import ExtendedFilters, RelationshipFilters, SearchQuery
from pharmsearch.domain.searchers import build_plans
from pharmsearch.infra.repo.mongo_index import build_filter, row_from_doc

TODAY = dt.date(2026, 3, 1)


def _plan(kind, **query):
    return {p.kind: p for p in build_plans(SearchQuery(**query))}[kind]

def _clauses(flt):
    return flt["$and"]


def test_expiry_guard_is_first_clause():
    flt = build_filter(_plan(EntityKind.SUBSTANCE_ROOT, text="para"), TODAY)
    assert _clauses(flt)[0] == {"$or": [{"expires_on": None}, {"expires_on": {"$gte": "2026-03-01"}}]}

def test_substring_clause_covers_languages_and_code_prefix():
    flt = build_filter(_plan(EntityKind.GENERIC_PRODUCT, text="para"), TODAY)
    ors = _clauses(flt)[1]["$or"]
    fields = [next(iter(c)) for c in ors]
    assert fields == [
        "name.en", "name.nl", "name.fr", "name.de",
        "alt_name.en", "alt_name.nl", "alt_name.fr", "alt_name.de",
        "code",
    ]
    rx = ors[0]["name.en"]["$regex"]
    assert rx.pattern == "para" and rx.flags & re.IGNORECASE
    assert ors[-1]["code"]["$regex"].pattern == "^para"

def test_branded_product_also_matches_official_and_manufacturer_name():
    ors = _clauses(build_filter(_plan(EntityKind.BRANDED_PRODUCT, text="upsa"), TODAY))[1]["$or"]
    fields = [next(iter(c)) for c in ors]
    assert "official_name" in fields and "manufacturer_name" in fields

def test_manufacturer_has_no_code_prefix():
    ors = _clauses(build_filter(_plan(EntityKind.MANUFACTURER, text="teva"), TODAY))[1]["$or"]
    assert "code" not in [next(iter(c)) for c in ors]

def test_query_text_is_escaped():
    ors = _clauses(build_filter(_plan(EntityKind.SUBSTANCE_ROOT, text="a+b (x)"), TODAY))[1]["$or"]
    assert ors[0]["name.en"]["$regex"].pattern == re.escape("a+b (x)")

def test_short_code_exact_for_package():
    flt = build_filter(_plan(EntityKind.PACKAGE, text="1234567"), TODAY)
    assert _clauses(flt)[1] == {"short_code": "1234567"}

def test_classification_code_prefix():
    flt = build_filter(_plan(EntityKind.CLASSIFICATION, text="C10AA05"), TODAY)
    clause = _clauses(flt)[1]
    assert list(clause) == ["code"]
    assert clause["code"]["$regex"].pattern == "^c10aa05"

def test_relationship_and_extended_clauses():
    plan = _plan(
        EntityKind.PACKAGE,
        text="para",
        relations=RelationshipFilters(manufacturer="M001", raw_substance="RS001"),
        extended=ExtendedFilters(
            form_codes=frozenset({"TAB", "CAP"}),
            price_min=Decimal("2.5"),
            price_max=Decimal("10"),
            reimbursable_only=True,
            delivery_channel=DeliveryChannel.PUBLIC,
        ),
    )
    clauses = _clauses(build_filter(plan, TODAY))
    assert {"manufacturer_code": "M001"} in clauses
    assert {"raw_substance_codes": "RS001"} in clauses
    assert {"form_code": {"$in": ["CAP", "TAB"]}} in clauses
    assert {"price": {"$gte": 2.5, "$lte": 10.0}} in clauses
    assert {"reimbursable": True} in clauses
    assert {"delivery_channel": "P"} in clauses

def test_filter_only_plan_has_no_text_clause():
    plan = _plan(EntityKind.BRANDED_PRODUCT, relations=RelationshipFilters(generic_product="GP001"))
    clauses = _clauses(build_filter(plan, TODAY))
    assert len(clauses) == 2
    assert clauses[1] == {"generic_product_code": "GP001"}

def test_row_from_doc_converts_bson_types():
    row = row_from_doc(EntityKind.PACKAGE, {
        "_id": "abc", "code": "PK1", "name": {"en": "Pack"},
        "price": Decimal128("3.50"), "expires_on": "2030-01-01", "synced_at": dt.datetime(2026, 1, 1),
    })
    assert row.kind is EntityKind.PACKAGE
    assert row.price == Decimal("3.50")
    assert row.expires_on == dt.date(2030, 1, 1)

def test_row_from_doc_float_price():
    row = row_from_doc(EntityKind.PACKAGE, {"code": "PK1", "price": 6.2})
    assert row.price == Decimal("6.2")
