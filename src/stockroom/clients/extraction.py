"""
Document extraction using an LLM with structured output.

Uses Pydantic models so the model's answer arrives as a validated record
(supplier, number, date, products) instead of free text we have to scrape.
"""

import base64
import logging

from openai import OpenAI, OpenAIError
from pydantic import BaseModel, Field, ValidationError

from ..errors import ExtractionError

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"
IMAGE_MIME_TYPES = {"image/png", "image/jpeg", "image/jpg", "image/webp", "image/gif"}


class ExtractedProduct(BaseModel):
    """One article line as read off the document."""

    code: str | None = Field(description="SKU or supplier article code, if printed")
    name: str = Field(description="Article description")
    quantity: float | None = Field(description="Quantity")
    unit: str | None = Field(
        description="Unit of measure. Use 'UD' for pieces/units or no unit, 'KG' for weight, 'CJ' for cases/boxes"
    )
    unit_price: float | None = Field(description="Net unit price, 0 if missing")
    total_price: float | None = Field(description="Line total, 0 if missing")
    category: str | None = Field(description="Suggested product category")


class ExtractedDocument(BaseModel):
    """Structured content of an invoice, delivery note or count sheet."""

    supplier: str | None = Field(description="Supplier company name")
    document_number: str | None = Field(description="Document identifier as printed")
    date: str | None = Field(description="Document date (YYYY-MM-DD)")
    products: list[ExtractedProduct] = Field(description="Every article line on the document")


SYSTEM_PROMPT = """You are a logistics expert reading supplier documents (invoices and delivery notes) and stock count sheets.

Extract the supplier, document number, date and every article line.

Unit of measure rules:
- Pieces (PZ), units (UN, UNITA) or no specific unit: always use 'UD'.
- Sold by weight: use 'KG'.
- Packs, cases or boxes: use 'CJ'.

Return only data that appears on the document. Use 0 for prices that are not printed."""


class DocumentExtractor:
    """
    Extracts structured line items from document bytes.

    What to trust vs verify:
    - TRUST: field reading and unit classification
    - VERIFY: numbers are re-coerced by ingestion, totals recomputed when missing
    """

    def __init__(self, model: str = "gpt-4o-mini", client: OpenAI | None = None):
        self._client = client
        self.model = model

    @property
    def client(self) -> OpenAI:
        """The OpenAI client, created on first use."""
        if self._client is None:
            try:
                self._client = OpenAI()
            except OpenAIError as e:
                logger.error("OpenAI client unavailable: %s", e)
                raise ExtractionError(
                    "The extraction service is not configured. Set OPENAI_API_KEY and try again."
                ) from e
        return self._client

    def extract(self, data: bytes, mime_type: str) -> ExtractedDocument:
        """
        Extract a document. Raises ExtractionError when nothing usable comes back.
        """
        if not data:
            raise ExtractionError("The file is empty.")

        try:
            response = self.client.chat.completions.parse(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": [
                            self._document_part(data, mime_type),
                            {"type": "text", "text": "Extract this document."},
                        ],
                    },
                ],
                response_format=ExtractedDocument,
            )
        except (OpenAIError, ValidationError) as e:
            logger.error("Extraction request failed: %s", e, exc_info=True)
            raise ExtractionError(
                "Could not read the document. Check that the file is legible and try again."
            ) from e

        message = response.choices[0].message
        parsed = message.parsed
        if parsed is None:
            logger.error("Extraction returned no structured result (refusal: %s)", message.refusal)
            raise ExtractionError("The extraction service returned no data for this document.")

        logger.info(
            "Extracted %d products from %s document %s",
            len(parsed.products),
            mime_type,
            parsed.document_number or "(no number)",
        )
        return parsed

    def _document_part(self, data: bytes, mime_type: str) -> dict:
        """Build the message part that carries the file."""
        encoded = base64.b64encode(data).decode("ascii")
        data_url = f"data:{mime_type};base64,{encoded}"

        if mime_type == PDF_MIME_TYPE:
            return {
                "type": "file",
                "file": {"filename": "document.pdf", "file_data": data_url},
            }
        if mime_type in IMAGE_MIME_TYPES:
            return {"type": "image_url", "image_url": {"url": data_url}}

        raise ExtractionError(f"Unsupported file type: {mime_type}")
