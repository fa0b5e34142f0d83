from invoice_ingest.errors import ErrorCode, IngestError


class PersistenceError(IngestError):
    """Raised when the final invoice record cannot be stored."""

    default_code = ErrorCode.PERSISTENCE_FAILED
