from invoice_ingest.extraction.base import BaseInvoiceExtractor
from invoice_ingest.extraction.extractor import InvoiceExtractor
from invoice_ingest.extraction.factory import ExtractorFactory
from invoice_ingest.extraction.models import ExtractedInvoiceData, InvoiceItem

__all__ = [
    "BaseInvoiceExtractor",
    "ExtractedInvoiceData",
    "ExtractorFactory",
    "InvoiceExtractor",
    "InvoiceItem",
]
