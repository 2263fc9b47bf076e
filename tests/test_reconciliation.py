"""
Tests for physical count reconciliation.
"""

import pytest

from stockroom.core.aggregation import consolidate
from stockroom.core.models import DocumentType
from stockroom.core.reconciliation import (
    MatchType,
    ReconciliationEngine,
    StockStatus,
    reconcile,
)

PC = DocumentType.PHYSICAL_COUNT


@pytest.fixture
def count_item(make_item):
    def _make(**kwargs):
        kwargs.setdefault("doc_type", PC)
        return make_item(**kwargs)

    return _make


@pytest.fixture
def inventory(make_item, make_doc):
    return consolidate(
        [
            make_doc([make_item(sku="A1", name="Olio", quantity=10, total_price=50)]),
            make_doc([make_item(sku="A1", name="Olio", quantity=5, total_price=20)]),
            make_doc([make_item(name="Farina", unit="PZ", quantity=8)]),
            make_doc([make_item(name="Zucchero", unit="KG", quantity=4)]),
        ]
    )


class TestScenarios:
    def test_shortage_on_sku(self, inventory, count_item, make_doc):
        count = make_doc([count_item(sku="A1", name="Olio", quantity=12)], doc_type=PC)
        [row] = reconcile(count, inventory)

        assert row.system_quantity == 15
        assert row.difference == -3
        assert row.status == StockStatus.SHORTAGE
        assert row.match_type == MatchType.SKU

    def test_unknown_product_is_surplus(self, inventory, count_item, make_doc):
        count = make_doc([count_item(sku="ZZ9", name="Caffè", quantity=6)], doc_type=PC)
        [row] = reconcile(count, inventory)

        assert row.system_quantity == 0
        assert row.difference == 6
        assert row.status == StockStatus.SURPLUS
        assert row.match_type == MatchType.UNMATCHED
        assert row.system_key is None

    def test_unknown_product_counted_zero_is_ok(self, inventory, count_item, make_doc):
        count = make_doc([count_item(name="Caffè", quantity=0)], doc_type=PC)
        [row] = reconcile(count, inventory)
        assert row.status == StockStatus.OK


class TestClassification:
    @pytest.mark.parametrize(
        "physical,status",
        [(4, StockStatus.OK), (5, StockStatus.SURPLUS), (3.5, StockStatus.SHORTAGE)],
    )
    def test_status_follows_difference(self, inventory, count_item, make_doc, physical, status):
        count = make_doc([count_item(name="Zucchero", unit="KG", quantity=physical)], doc_type=PC)
        [row] = reconcile(count, inventory)

        assert row.difference == physical - 4
        assert row.status == status

    def test_every_line_gets_exactly_one_row(self, inventory, count_item, make_doc):
        items = [
            count_item(name="Zucchero", unit="KG", quantity=1),
            count_item(name="Unknown", quantity=2),
            count_item(sku="a1", name="x", quantity=15),
        ]
        rows = reconcile(make_doc(items, doc_type=PC), inventory)

        assert [r.name for r in rows] == ["Zucchero", "Unknown", "x"]
        assert [r.status for r in rows] == [StockStatus.SHORTAGE, StockStatus.SURPLUS, StockStatus.OK]

    def test_system_only_products_are_not_reported(self, inventory, count_item, make_doc):
        rows = reconcile(make_doc([count_item(sku="A1", quantity=15)], doc_type=PC), inventory)
        assert len(rows) == 1


class TestLookup:
    def test_name_and_unit_match_is_case_insensitive(self, inventory, count_item, make_doc):
        count = make_doc([count_item(name="ZUCCHERO", unit="kg", quantity=4)], doc_type=PC)
        [row] = reconcile(count, inventory)

        assert row.match_type == MatchType.NAME_UNIT
        assert row.system_key == "name:zucchero:KG"

    def test_counted_unit_is_compared_as_written(self, inventory, count_item, make_doc):
        # System stores the canonical UD; a count written as PZ does not match by name
        count = make_doc([count_item(name="Farina", unit="PZ", quantity=8)], doc_type=PC)
        [row] = reconcile(count, inventory)

        assert row.match_type == MatchType.UNMATCHED
        assert row.system_quantity == 0

    def test_name_match_used_when_sku_differs(self, inventory, count_item, make_doc):
        count = make_doc([count_item(sku="OTHER", name="olio", unit="UD", quantity=15)], doc_type=PC)
        [row] = reconcile(count, inventory)

        assert row.match_type == MatchType.NAME_UNIT
        assert row.system_quantity == 15

    def test_first_entry_in_inventory_order_wins(self, make_item, make_doc, count_item):
        inventory = consolidate(
            [
                make_doc([make_item(name="Sale", unit="KG", quantity=1)]),
                make_doc([make_item(sku="S1", name="Sale grosso", unit="KG", quantity=9)]),
            ]
        )
        count = make_doc([count_item(sku="S1", name="Sale", unit="KG", quantity=1)], doc_type=PC)
        [row] = reconcile(count, inventory)

        assert row.system_key == "name:sale:KG"
        assert row.status == StockStatus.OK

    def test_inventory_is_not_mutated(self, inventory, count_item, make_doc):
        before = {k: e.quantity for k, e in inventory.items()}
        reconcile(make_doc([count_item(sku="A1", quantity=1)], doc_type=PC), inventory)
        assert {k: e.quantity for k, e in inventory.items()} == before


class TestReconciliationResult:
    def test_summary(self, inventory, count_item, make_doc):
        count = make_doc(
            [
                count_item(sku="A1", quantity=15),
                count_item(name="Zucchero", unit="KG", quantity=1),
                count_item(name="Nuovo", quantity=3),
                count_item(name="Altro", quantity=2),
            ],
            doc_type=PC,
            number="INV-1",
        )
        result = ReconciliationEngine(inventory).reconcile_document(count)

        assert result.summary() == {
            "document": "INV-1",
            "total": 4,
            "matched": 2,
            "unmatched": 2,
            "ok": 1,
            "surplus": 2,
            "shortage": 1,
            "match_rate": "50.0%",
        }

    def test_to_frame(self, inventory, count_item, make_doc):
        count = make_doc([count_item(sku="A1", quantity=12)], doc_type=PC)
        df = ReconciliationEngine(inventory).reconcile_document(count).to_frame()

        assert df.loc[0, "status"] == "shortage"
        assert df.loc[0, "difference"] == -3

    def test_empty_count(self, inventory, make_doc):
        result = ReconciliationEngine(inventory).reconcile_document(make_doc([], doc_type=PC))
        assert result.rows == []
        assert result.match_rate == 0
