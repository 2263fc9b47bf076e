"""
Tests for merge key derivation.
"""

from stockroom.core.merge_keys import build_key


class TestBuildKey:
    def test_sku_key(self, make_item):
        assert build_key(make_item(sku="A1")) == "sku:a1"

    def test_sku_case_and_whitespace_insensitive(self, make_item):
        assert build_key(make_item(sku=" a1 ")) == build_key(make_item(sku="A1"))

    def test_sku_ignores_unit(self, make_item):
        assert build_key(make_item(sku="A1", unit="KG")) == build_key(make_item(sku="A1", unit="CJ"))

    def test_name_fallback(self, make_item):
        assert build_key(make_item(name="Farina", unit="PZ")) == "name:farina:UD"

    def test_name_fallback_case_and_whitespace_insensitive(self, make_item):
        a = make_item(name="Olio EVO ", unit="ud")
        b = make_item(name="olio evo", unit="UN")
        assert build_key(a) == build_key(b)

    def test_different_units_give_different_keys(self, make_item):
        bulk = make_item(name="Farina", unit="KG")
        boxed = make_item(name="Farina", unit="CJ")
        assert build_key(bulk) != build_key(boxed)

    def test_blank_sku_falls_back_to_name(self, make_item):
        assert build_key(make_item(sku="   ", name="Sale", unit="KG")) == "name:sale:KG"
