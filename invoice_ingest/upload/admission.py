"""File admission checks run before a job leaves NOT_UPLOADED."""

from invoice_ingest.errors import ErrorCode, IngestError
from invoice_ingest.upload.models import SourceFile

MAX_FILE_SIZE_BYTES = 10 * 1024 * 1024

ALLOWED_MIME_TYPES = frozenset(
    {
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/gif",
        "image/bmp",
        "image/webp",
        "application/pdf",
    }
)
ALLOWED_EXTENSIONS = frozenset({"pdf", "jpg", "jpeg", "png", "gif", "bmp", "webp"})


class FileValidationError(IngestError):
    """Raised when an uploaded file is rejected before processing."""

    default_code = ErrorCode.INVALID_FILE_TYPE


def validate_source_file(
    source: SourceFile,
    max_size_bytes: int = MAX_FILE_SIZE_BYTES,
) -> None:
    """Reject empty, oversized or unsupported files.

    Raises:
        FileValidationError: with FILE_TOO_LARGE or INVALID_FILE_TYPE.
    """
    if source.size > max_size_bytes:
        raise FileValidationError(
            f"{source.file_name} is {source.size} bytes (limit {max_size_bytes})",
            ErrorCode.FILE_TOO_LARGE,
        )
    if source.extension not in ALLOWED_EXTENSIONS:
        raise FileValidationError(
            f"{source.file_name} has unsupported extension '{source.extension}'",
            ErrorCode.INVALID_FILE_TYPE,
        )
    if source.mime_type.lower() not in ALLOWED_MIME_TYPES:
        raise FileValidationError(
            f"{source.file_name} has unsupported MIME type '{source.mime_type}'",
            ErrorCode.INVALID_FILE_TYPE,
        )
    if source.size == 0:
        raise FileValidationError(f"{source.file_name} is empty", ErrorCode.INVALID_FILE_TYPE)
