from invoice_ingest.errors import ErrorCode, IngestError


class PdfRasterizationError(IngestError):
    """Raised by renderer adapters when a PDF cannot be opened or rendered."""

    default_code = ErrorCode.PDF_PROCESSING_FAILED
