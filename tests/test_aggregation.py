"""
Tests for inventory consolidation.
"""

from datetime import date
from itertools import permutations

import pytest

from stockroom.core.aggregation import consolidate, consolidated_to_frame, stock_documents
from stockroom.core.models import DocumentType


class TestScenarios:
    def test_single_invoice(self, make_item, make_doc):
        doc = make_doc([make_item(sku="A1", name="Olio", quantity=10, unit="UD", total_price=50)])
        inventory = consolidate([doc])

        entry = inventory["sku:a1"]
        assert entry.quantity == 10
        assert entry.total_price == 50
        assert entry.unit_price == 5

    def test_two_invoices_same_sku(self, make_item, make_doc):
        first = make_doc([make_item(sku="A1", quantity=10, unit_price=5, total_price=50)])
        second = make_doc([make_item(sku="A1", quantity=5, unit_price=4, total_price=20)])
        entry = consolidate([first, second])["sku:a1"]

        assert entry.quantity == 15
        assert entry.total_price == 70
        assert entry.unit_price == pytest.approx(70 / 15)

    def test_piece_units_merge_by_name(self, make_item, make_doc):
        doc = make_doc(
            [
                make_item(name="Farina", unit="PZ", quantity=3),
                make_item(name="farina", unit="UD", quantity=2),
            ]
        )
        inventory = consolidate([doc])

        assert list(inventory) == ["name:farina:UD"]
        assert inventory["name:farina:UD"].quantity == 5


class TestAggregationArithmetic:
    def test_sums_are_order_independent(self, make_item, make_doc):
        quantities = [(4, 10.0), (-1, -2.5), (7, 14.0)]
        totals = set()
        for order in permutations(quantities):
            docs = [make_doc([make_item(sku="X", quantity=q, total_price=t)]) for q, t in order]
            entry = consolidate(docs)["sku:x"]
            totals.add((entry.quantity, round(entry.total_price, 9)))

        assert totals == {(10, 21.5)}

    def test_zero_quantity_keeps_last_unit_price(self, make_item, make_doc):
        docs = [
            make_doc([make_item(sku="X", quantity=4, unit_price=2.5, total_price=10)]),
            make_doc([make_item(sku="X", quantity=2, unit_price=4, total_price=8)]),
            make_doc([make_item(sku="X", quantity=-6, unit_price=3, total_price=-18)]),
        ]
        entry = consolidate(docs)["sku:x"]

        assert entry.quantity == 0
        assert entry.total_price == 0
        assert entry.unit_price == 3  # 18 / 6 from the second fold

    def test_negative_quantity_keeps_last_unit_price(self, make_item, make_doc):
        docs = [
            make_doc([make_item(sku="X", quantity=2, unit_price=5, total_price=10)]),
            make_doc([make_item(sku="X", quantity=-5, unit_price=5, total_price=-25)]),
        ]
        entry = consolidate(docs)["sku:x"]

        assert entry.quantity == -3
        assert entry.unit_price == 5

    def test_seed_keeps_its_own_unit_price(self, make_item, make_doc):
        doc = make_doc([make_item(sku="X", quantity=0, unit_price=9, total_price=0)])
        assert consolidate([doc])["sku:x"].unit_price == 9

    def test_seed_price_comes_from_its_total(self, make_item, make_doc):
        doc = make_doc([make_item(sku="X", quantity=4, unit_price=9, total_price=10)])
        assert consolidate([doc])["sku:x"].unit_price == 2.5


class TestConsolidationRules:
    def test_physical_counts_are_excluded(self, make_item, make_doc):
        invoice = make_doc([make_item(sku="A1", quantity=10, total_price=50)])
        count = make_doc(
            [make_item(sku="A1", quantity=99, doc_type=DocumentType.PHYSICAL_COUNT)],
            doc_type=DocumentType.PHYSICAL_COUNT,
        )
        assert consolidate([invoice, count])["sku:a1"].quantity == 10

    def test_first_item_seeds_metadata(self, make_item, make_doc):
        first = make_doc(
            [make_item(sku="A1", name="Olio EVO", unit="pz", category="Oils")],
            supplier="Frantoio",
            doc_date=date(2024, 6, 1),
        )
        second = make_doc(
            [make_item(sku="a1", name="Olio", unit="CJ", category="Other")],
            supplier="Grossista",
            doc_date=date(2024, 1, 1),
        )
        entry = consolidate([first, second])["sku:a1"]

        assert entry.name == "Olio EVO"
        assert entry.category == "Oils"
        assert entry.supplier == "Frantoio"
        assert entry.document_date == date(2024, 6, 1)
        assert entry.document_id == first.id
        assert entry.unit_of_measure == "UD"
        assert entry.raw_unit == "pz"
        assert entry.contributing_items == 2

    def test_iteration_follows_seeding_order(self, make_item, make_doc):
        doc = make_doc(
            [
                make_item(name="B"),
                make_item(name="A"),
                make_item(name="B"),
                make_item(name="C"),
            ]
        )
        assert list(consolidate([doc])) == ["name:b:UD", "name:a:UD", "name:c:UD"]

    def test_empty_input(self):
        assert consolidate([]) == {}

    def test_inputs_are_not_mutated(self, make_item, make_doc):
        item = make_item(sku="A1", quantity=3, total_price=6)
        docs = [make_doc([item]), make_doc([item])]
        consolidate(docs)
        assert docs[0].line_items[0].quantity == 3


class TestStockDocuments:
    def test_invoices_first_then_delivery_notes(self, make_doc):
        note = make_doc(doc_type=DocumentType.DELIVERY_NOTE)
        invoice_new = make_doc()
        count = make_doc(doc_type=DocumentType.PHYSICAL_COUNT)
        invoice_old = make_doc()

        ordered = stock_documents([note, invoice_new, count, invoice_old])
        assert ordered == [invoice_new, invoice_old, note]


class TestConsolidatedFrame:
    def test_one_row_per_entry(self, make_item, make_doc):
        doc = make_doc([make_item(sku="A1", quantity=2, total_price=4), make_item(name="Sale", unit="KG")])
        df = consolidated_to_frame(consolidate([doc]))

        assert df["key"].tolist() == ["sku:a1", "name:sale:KG"]
        assert df.loc[0, "quantity"] == 2

    def test_empty_frame_has_columns(self):
        df = consolidated_to_frame({})
        assert len(df) == 0
        assert "total_price" in df.columns
