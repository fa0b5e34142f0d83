import re

from invoice_ingest.errors import ErrorCode, IngestError

RETRYABLE_CODES = frozenset(
    {
        ErrorCode.AI_RATE_LIMIT,
        ErrorCode.AI_PROCESSING_TIMEOUT,
        ErrorCode.AI_SERVICE_UNAVAILABLE,
        ErrorCode.AI_NO_RESPONSE,
    }
)

_SERVER_ERROR_STATUS = re.compile(r"\b5\d\d\b")


class ExtractionError(IngestError):
    """Raised when the vision model call or its response handling fails."""

    default_code = ErrorCode.AI_EXTRACTION_FAILED

    @property
    def retryable(self) -> bool:
        return self.code in RETRYABLE_CODES


class InvalidAIResponseError(ExtractionError):
    """Raised when the model reply is not JSON or has fields of the wrong type."""

    default_code = ErrorCode.AI_INVALID_RESPONSE


def classify_provider_error(message: str, status_code: int | None = None) -> ErrorCode:
    """Map a provider error to an error code from its message and HTTP status."""
    text = message.lower()
    if status_code == 429 or "rate_limit" in text or "rate limit" in text or "429" in text:
        return ErrorCode.AI_RATE_LIMIT
    if "invalid_file" in text or "unsupported" in text:
        return ErrorCode.AI_INVALID_FILE
    if status_code == 404 or "file_not_found" in text or "404" in text:
        return ErrorCode.AI_FILE_NOT_FOUND
    if status_code == 408 or "timeout" in text or "timed out" in text:
        return ErrorCode.AI_PROCESSING_TIMEOUT
    if "no response" in text:
        return ErrorCode.AI_NO_RESPONSE
    if (
        (status_code is not None and status_code >= 500)
        or _SERVER_ERROR_STATUS.search(text)
        or "server_error" in text
        or "overloaded" in text
    ):
        return ErrorCode.AI_SERVICE_UNAVAILABLE
    return ErrorCode.AI_EXTRACTION_FAILED
