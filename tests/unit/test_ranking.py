import random
from decimal import Decimal

import pytest

from pharmsearch.domain.entities import EntityKind, IndexedEntityRow, MatchedField, ScoredResult
from pharmsearch.domain.ranking import available_filters, count_facets, dedupe, paginate, rank


def _row(kind, code, name="n", **kw):
    return IndexedEntityRow(kind=kind, code=code, name={"en": name}, **kw)

def _scored(kind, code, name, score):
    return ScoredResult(row=_row(kind, code, name), score=score, matched_field=MatchedField.NAME)


# ── dedupe ─────────────────────────────────────────────────────────
def test_dedupe_first_occurrence_wins():
    a1 = _row(EntityKind.PACKAGE, "P1", "first")
    a2 = _row(EntityKind.PACKAGE, "P1", "second")
    b = _row(EntityKind.BRANDED_PRODUCT, "P1", "same code, other kind")
    out = dedupe([a1, b, a2])
    assert [r.name["en"] for r in out] == ["first", "same code, other kind"]

def test_dedupe_key_set_is_order_independent_and_idempotent():
    rows = [_row(k, f"C{i % 3}") for i in range(12) for k in (EntityKind.PACKAGE, EntityKind.MANUFACTURER)]
    shuffled = rows[:]
    random.Random(7).shuffle(shuffled)
    keys = {r.key for r in dedupe(rows)}
    assert keys == {r.key for r in dedupe(shuffled)}
    assert {r.key for r in dedupe(dedupe(rows))} == keys
    assert len(keys) == 6


# ── rank ───────────────────────────────────────────────────────────
def test_rank_score_then_priority_then_name():
    items = [
        _scored(EntityKind.CLASSIFICATION, "N02BE01", "paracetamol", 1.0),
        _scored(EntityKind.PACKAGE, "P2", "beta", 0.4),
        _scored(EntityKind.SUBSTANCE_ROOT, "S1", "Paracetamol", 1.0),
        _scored(EntityKind.PACKAGE, "P1", "Alpha", 0.4),
        _scored(EntityKind.GENERIC_PRODUCT, "G1", "zeta", 0.4),
    ]
    out = rank(items, "en")
    assert [r.row.code for r in out] == ["S1", "N02BE01", "G1", "P1", "P2"]

def test_rank_name_comparison_ignores_case_and_accents():
    items = [
        _scored(EntityKind.PACKAGE, "P1", "Zinc", 0.4),
        _scored(EntityKind.PACKAGE, "P2", "éthanol", 0.4),
        _scored(EntityKind.PACKAGE, "P3", "Acide", 0.4),
    ]
    assert [r.row.code for r in rank(items, "en")] == ["P3", "P2", "P1"]

def test_rank_is_deterministic_across_input_orders():
    items = [_scored(EntityKind.PACKAGE, f"P{i}", "same name", 0.4) for i in range(6)]
    expected = [r.row.code for r in rank(items, "en")]
    for seed in range(5):
        shuffled = items[:]
        random.Random(seed).shuffle(shuffled)
        assert [r.row.code for r in rank(shuffled, "en")] == expected


# ── facets ─────────────────────────────────────────────────────────
def test_facets_cover_every_kind():
    items = [
        _scored(EntityKind.PACKAGE, "P1", "a", 0.4),
        _scored(EntityKind.PACKAGE, "P2", "b", 0.4),
        _scored(EntityKind.MANUFACTURER, "M1", "c", 0.4),
    ]
    facets = count_facets(items)
    assert set(facets) == set(EntityKind)
    assert facets[EntityKind.PACKAGE] == 2
    assert facets[EntityKind.MANUFACTURER] == 1
    assert sum(facets.values()) == 3


# ── pagination ─────────────────────────────────────────────────────
@pytest.fixture
def ranked():
    return [_scored(EntityKind.PACKAGE, f"P{i:02d}", f"n{i:02d}", 0.4) for i in range(25)]

def test_first_page(ranked):
    page = paginate(ranked, 10, 0)
    assert [r.row.code for r in page.items] == [f"P{i:02d}" for i in range(10)]
    assert page.has_more

def test_last_partial_page(ranked):
    page = paginate(ranked, 10, 20)
    assert len(page.items) == 5
    assert not page.has_more

def test_exact_boundary_has_no_more(ranked):
    assert not paginate(ranked, 5, 20).has_more

@pytest.mark.parametrize("offset", [25, 26, 1000])
def test_offset_past_end_is_empty(ranked, offset):
    page = paginate(ranked, 10, offset)
    assert page.items == []
    assert page.has_more is False

def test_negative_values_rejected(ranked):
    with pytest.raises(ValueError):
        paginate(ranked, -1, 0)
    with pytest.raises(ValueError):
        paginate(ranked, 10, -3)


# ── available filters ──────────────────────────────────────────────
def test_available_filters_counts_and_order():
    rows = [
        _row(EntityKind.PACKAGE, "P1", form_code="TAB", form_name={"en": "Tablet"}, reimbursement_category="C", price=Decimal("1")),
        _row(EntityKind.PACKAGE, "P2", form_code="TAB", form_name={"en": "Tablet"}, reimbursement_category="B"),
        _row(EntityKind.BRANDED_PRODUCT, "B1", form_code="CAP", route_code="ORAL"),
        _row(EntityKind.SUBSTANCE_ROOT, "S1"),
    ]
    scored = [ScoredResult(row=r, score=0.4, matched_field=MatchedField.NAME) for r in rows]
    out = available_filters(scored, "en")
    assert [(o.code, o.name, o.count) for o in out["forms"]] == [("TAB", "Tablet", 2), ("CAP", None, 1)]
    assert [(o.code, o.count) for o in out["routes"]] == [("ORAL", 1)]
    assert [o.code for o in out["reimbursement_categories"]] == ["B", "C"]
