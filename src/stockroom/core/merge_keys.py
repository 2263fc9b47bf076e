"""
Identity keys for folding line items into stock entries.

A product code is the strongest signal and is unit-independent: a product
keeps its identity even when a later document misreports its unit. Without a
code, name plus canonical unit is the fallback, so bulk KG and boxed CJ of the
same product stay separate stock lines.
"""

from .models import LineItem
from .parsers import ProductNameNormalizer, SKUNormalizer, normalize_unit

SKU_PREFIX = "sku:"
NAME_PREFIX = "name:"

_sku_normalizer = SKUNormalizer()
_name_normalizer = ProductNameNormalizer()


def build_key(item: LineItem) -> str:
    """Return the merge key for a line item."""
    sku = _sku_normalizer.normalize(item.sku)
    if sku:
        return f"{SKU_PREFIX}{sku}"

    name = _name_normalizer.normalize(item.name)
    return f"{NAME_PREFIX}{name}:{normalize_unit(item.unit_of_measure)}"
