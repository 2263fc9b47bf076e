"""
Turns uploaded files into SourceDocuments.

THIS IS WHERE LOOSE DATA BECOMES TYPED DATA:
- Extraction payloads carry strings, blanks and garbage in numeric fields;
  everything is coerced to float (0 on failure) exactly once, here
- Missing supplier / number / date get placeholder values
- Line totals missing from the document are derived from quantity * unit price
- Unit prices missing from the document are derived from the line total
- Physical count sheets may come in as spreadsheets with Italian or English
  column headers

The core never re-validates what this module produces.
"""

import logging
import uuid
from datetime import date
from io import BytesIO
from pathlib import Path
from zipfile import BadZipFile

import pandas as pd
from openpyxl.utils.exceptions import InvalidFileException

from ..core.models import DEFAULT_CATEGORY, DocumentType, LineItem, SourceDocument
from ..core.parsers import DateParser, coerce_number
from ..errors import ExtractionError
from .extraction import DocumentExtractor, ExtractedDocument

logger = logging.getLogger(__name__)

SPREADSHEET_SUFFIXES = {".xlsx", ".csv"}

DEFAULT_UNIT = "UD"
UNKNOWN_SUPPLIER = "Unknown Supplier"
EXTRACTED_COUNT_SUPPLIER = "Extracted Count"
MANUAL_COUNT_SUPPLIER = "Manual Count"
UNNAMED_PRODUCT = "Unnamed Product"


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12].upper()}"


class DocumentIngestor:
    """
    Builds documents from extraction results and count spreadsheets.

    Count sheet column aliases (case-insensitive; per row, the first
    non-blank cell among the matching columns wins):
    - code: SKU, Codice, Code
    - name: Nome, Descrizione, Prodotto, Name, Description, Product
    - quantity: Quantità, Quantita, Giacenza, Conteggio, Quantity, Qty, Count
    - unit: Unità, Unita, Unit, UM
    """

    COLUMN_ALIASES = {
        "sku": ["sku", "codice", "code"],
        "name": ["nome", "descrizione", "prodotto", "name", "description", "product"],
        "quantity": ["quantità", "quantita", "giacenza", "conteggio", "quantity", "qty", "count"],
        "unit": ["unità", "unita", "unit", "um"],
    }

    def __init__(self, date_parser: DateParser | None = None):
        self.date_parser = date_parser or DateParser()

    def ingest(
        self,
        data: bytes,
        mime_type: str,
        file_name: str,
        doc_type: DocumentType,
        extractor: DocumentExtractor | None = None,
    ) -> SourceDocument:
        """
        Ingest one uploaded file.

        Spreadsheets are only accepted as physical count sheets; everything
        else goes through the extraction service.
        """
        if Path(file_name).suffix.lower() in SPREADSHEET_SUFFIXES:
            if doc_type is not DocumentType.PHYSICAL_COUNT:
                raise ExtractionError(
                    f"Spreadsheets can only be loaded as physical counts, not as {doc_type.label.lower()}s."
                )
            return self.physical_count_from_spreadsheet(data, file_name)

        if extractor is None:
            raise ExtractionError("No extraction service is configured.")

        extracted = extractor.extract(data, mime_type)
        return self.from_extraction(extracted, doc_type, file_name)

    def from_extraction(
        self,
        extracted: ExtractedDocument | dict,
        doc_type: DocumentType,
        file_name: str = "",
    ) -> SourceDocument:
        """Build a document from an extraction result (model or raw dict)."""
        if isinstance(extracted, ExtractedDocument):
            payload = extracted.model_dump()
        else:
            payload = dict(extracted or {})

        products = payload.get("products")
        if products is None:
            raise ExtractionError("The extraction result contains no products.")

        doc_id = new_id(doc_type.id_prefix)
        is_count = doc_type is DocumentType.PHYSICAL_COUNT
        default_supplier = EXTRACTED_COUNT_SUPPLIER if is_count else UNKNOWN_SUPPLIER

        supplier = self._text(payload.get("supplier")) or default_supplier
        document_number = self._text(payload.get("document_number")) or new_id("DOC")
        doc_date = self.date_parser.parse(payload.get("date")) or date.today()

        items = []
        for index, product in enumerate(products):
            if product is None:
                continue
            product = dict(product)
            quantity = coerce_number(product.get("quantity"))
            unit_price = 0.0 if is_count else coerce_number(product.get("unit_price"))
            total_price = 0.0 if is_count else coerce_number(product.get("total_price"))
            if not total_price:
                total_price = quantity * unit_price
            elif not unit_price and quantity:
                unit_price = total_price / quantity

            items.append(
                LineItem(
                    id=f"{doc_id}-{index}",
                    sku=self._text(product.get("code")),
                    name=self._text(product.get("name")) or UNNAMED_PRODUCT,
                    quantity=quantity,
                    unit_of_measure=(self._text(product.get("unit")) or DEFAULT_UNIT).upper(),
                    unit_price=unit_price,
                    total_price=total_price,
                    category=self._text(product.get("category")) or DEFAULT_CATEGORY,
                    document_date=doc_date,
                    document_id=doc_id,
                    document_number=document_number,
                    supplier=supplier,
                    doc_type=doc_type,
                )
            )

        doc = SourceDocument(
            id=doc_id,
            document_number=document_number,
            date=doc_date,
            supplier=supplier,
            doc_type=doc_type,
            line_items=tuple(items),
            total_amount=0.0 if is_count else sum(i.total_price for i in items),
            file_name=file_name,
        )
        logger.info(
            "Ingested %s %s from %s: %d line items",
            doc_type.value,
            doc.document_number,
            file_name or "(no file)",
            len(items),
        )
        return doc

    def physical_count_from_spreadsheet(
        self, source: bytes | str | Path, file_name: str = ""
    ) -> SourceDocument:
        """Build a physical count document from the first sheet of a spreadsheet."""
        df = self._read_sheet(source, file_name)
        df = df.dropna(how="all")

        columns = {
            field: self._find_columns(df.columns, aliases)
            for field, aliases in self.COLUMN_ALIASES.items()
        }
        if not columns["name"] and not columns["sku"]:
            raise ExtractionError("The count sheet has no product code or name column.")
        if not columns["quantity"]:
            raise ExtractionError("The count sheet has no quantity column.")

        doc_id = new_id(DocumentType.PHYSICAL_COUNT.id_prefix)
        document_number = new_id("INV")
        today = date.today()

        items = []
        for index, (_, row) in enumerate(df.iterrows()):
            items.append(
                LineItem(
                    id=f"{doc_id}-{index}",
                    sku=self._cell(row, columns["sku"]),
                    name=self._cell(row, columns["name"]) or UNNAMED_PRODUCT,
                    quantity=coerce_number(self._first_value(row, columns["quantity"])),
                    unit_of_measure=(self._cell(row, columns["unit"]) or DEFAULT_UNIT).upper(),
                    unit_price=0.0,
                    total_price=0.0,
                    category=DEFAULT_CATEGORY,
                    document_date=today,
                    document_id=doc_id,
                    document_number=document_number,
                    supplier=MANUAL_COUNT_SUPPLIER,
                    doc_type=DocumentType.PHYSICAL_COUNT,
                )
            )

        logger.info("Read %d counted lines from %s", len(items), file_name or source)
        return SourceDocument(
            id=doc_id,
            document_number=document_number,
            date=today,
            supplier=MANUAL_COUNT_SUPPLIER,
            doc_type=DocumentType.PHYSICAL_COUNT,
            line_items=tuple(items),
            total_amount=0.0,
            file_name=file_name,
        )

    def _read_sheet(self, source: bytes | str | Path, file_name: str) -> pd.DataFrame:
        name = file_name or str(source)
        handle = BytesIO(source) if isinstance(source, bytes) else source
        try:
            if Path(name).suffix.lower() == ".csv":
                return pd.read_csv(handle, dtype=object)
            return pd.read_excel(handle, dtype=object)
        except (ValueError, OSError, BadZipFile, InvalidFileException) as e:
            raise ExtractionError(f"Could not read the count sheet: {e}") from e

    @staticmethod
    def _find_columns(columns, aliases: list[str]) -> list:
        """Every column matching an alias, in alias order."""
        lookup = {str(c).strip().lower(): c for c in columns}
        return [lookup[alias] for alias in aliases if alias in lookup]

    @staticmethod
    def _first_value(row: pd.Series, columns: list):
        # First non-blank value across the alias columns
        for column in columns:
            value = row[column]
            if pd.isna(value) or not str(value).strip():
                continue
            return value
        return None

    def _cell(self, row: pd.Series, columns: list) -> str:
        value = self._first_value(row, columns)
        return "" if value is None else str(value).strip()

    @staticmethod
    def _text(value) -> str:
        if value is None or (not isinstance(value, str) and pd.isna(value)):
            return ""
        return str(value).strip()
