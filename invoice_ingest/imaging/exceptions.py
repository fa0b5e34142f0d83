from invoice_ingest.errors import ErrorCode, IngestError


class ImageCompressionError(IngestError):
    """Raised when an image cannot be decoded or re-encoded."""

    default_code = ErrorCode.IMAGE_COMPRESSION_FAILED
