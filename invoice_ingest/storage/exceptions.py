from invoice_ingest.errors import ErrorCode, IngestError


class StorageError(IngestError):
    """Raised when object storage rejects or loses an upload."""

    default_code = ErrorCode.UPLOAD_FAILED
