"""
Reusable parsers for the messy fields found on supplier documents.

These parsers handle what the extraction service hands back:
- Dates in whatever layout the supplier prints
- Free-text units of measure (PZ, UN, UD, kg, ...)
- Product codes and names with stray case and whitespace
- Numbers that arrive as strings, blanks or garbage
"""

from datetime import date, datetime
import pandas as pd


class DateParser:
    """
    Date parser that tries the layouts suppliers commonly print.

    To extend: add new format patterns to DATE_FORMATS.
    """

    # ISO first since the extraction prompt asks for it
    DATE_FORMATS = [
        "%Y-%m-%d",      # ISO: 2024-07-25
        "%d/%m/%Y",      # EU slash: 25/07/2024
        "%d-%m-%Y",      # EU dash: 25-07-2024
        "%d.%m.%Y",      # EU dot: 25.07.2024
        "%d/%m/%y",      # EU short: 25/07/24
        "%Y/%m/%d",      # ISO slash: 2024/07/25
        "%m/%d/%Y",      # US: 07/25/2024
    ]

    def __init__(self, custom_formats: list[str] | None = None):
        """
        Args:
            custom_formats: Additional date formats to try (prepended to defaults)
        """
        self.formats = (custom_formats or []) + self.DATE_FORMATS
        self._cache: dict[str, date | None] = {}

    def parse(self, date_str: str | None) -> date | None:
        """Parse a date string, trying multiple formats."""
        if date_str is None or pd.isna(date_str) or not str(date_str).strip():
            return None

        date_str = str(date_str).strip()

        if date_str in self._cache:
            return self._cache[date_str]

        for fmt in self.formats:
            try:
                result = datetime.strptime(date_str, fmt).date()
                self._cache[date_str] = result
                return result
            except ValueError:
                continue

        self._cache[date_str] = None
        return None

    def parse_series(self, series: pd.Series) -> pd.Series:
        """Parse an entire pandas Series of dates."""
        return series.apply(self.parse)


class UnitNormalizer:
    """
    Canonicalizes units of measure.

    UN, PZ and UD all mean "one piece" and collapse onto UD. Anything else
    (KG, CJ, or a unit we have never seen) passes through uppercased, so the
    vocabulary stays open-ended.
    """

    DEFAULT_UNIT = "UD"
    STANDARD_UNITS = ("UD", "KG", "CJ")
    PIECE_SYNONYMS = frozenset({"UN", "PZ", "UD"})

    def normalize(self, unit: str | None) -> str:
        """Normalize a single unit. Never fails."""
        if unit is None or pd.isna(unit):
            return self.DEFAULT_UNIT

        result = str(unit).strip().upper()
        if not result:
            return self.DEFAULT_UNIT
        if result in self.PIECE_SYNONYMS:
            return self.DEFAULT_UNIT
        return result

    def normalize_series(self, series: pd.Series) -> pd.Series:
        """Normalize an entire pandas Series of units."""
        return series.apply(self.normalize)


class SKUNormalizer:
    """
    Normalizes product codes for identity comparison.

    Codes are compared case-insensitively and without surrounding whitespace;
    an all-blank code counts as no code at all.
    """

    def normalize(self, sku: str | None) -> str:
        if sku is None or pd.isna(sku):
            return ""
        return str(sku).strip().lower()

    def normalize_series(self, series: pd.Series) -> pd.Series:
        return series.apply(self.normalize)


class ProductNameNormalizer:
    """Normalizes product names: trimmed and lowercased."""

    def normalize(self, name: str | None) -> str:
        if name is None or pd.isna(name):
            return ""
        return str(name).strip().lower()

    def normalize_series(self, series: pd.Series) -> pd.Series:
        return series.apply(self.normalize)


_unit_normalizer = UnitNormalizer()


def normalize_unit(unit: str | None) -> str:
    """Module-level shortcut for UnitNormalizer().normalize."""
    return _unit_normalizer.normalize(unit)


def coerce_number(value) -> float:
    """
    Coerce an extracted numeric field to float, defaulting to 0.

    Accepts numbers, numeric strings (including a decimal comma, as printed on
    Italian documents) and anything else, which becomes 0.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return 0.0 if pd.isna(value) else float(value)

    text = str(value).strip().replace("€", "").replace(" ", "")
    if "," in text and "." in text:
        if text.rfind(",") > text.rfind("."):
            # 1.234,56 -> 1234.56
            text = text.replace(".", "").replace(",", ".")
        else:
            # 1,234.56 -> 1234.56
            text = text.replace(",", "")
    else:
        text = text.replace(",", ".")
    try:
        result = float(text)
    except ValueError:
        return 0.0
    return 0.0 if pd.isna(result) else result
