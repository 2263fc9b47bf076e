"""
Errors raised at the collaborator boundary.

The consolidation core never raises; everything that can fail (the extraction
service, the document store) surfaces one of these.
"""


class StockroomError(Exception):
    """Base class for all stockroom errors."""


class ExtractionError(StockroomError):
    """The extraction service returned no usable structured data."""


class PersistenceError(StockroomError):
    """A document store operation failed."""
