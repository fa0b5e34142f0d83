"""Error taxonomy shared by every ingestion stage.

Every failure that can end an upload job carries an ``ErrorCode``. The code
decides the job-level category shown next to a failed upload and the
plain-language message a user sees; provider bodies and tracebacks only ever
reach the logs.
"""

from enum import StrEnum


class ErrorCode(StrEnum):
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    INVALID_FILE_TYPE = "INVALID_FILE_TYPE"
    PDF_PROCESSING_FAILED = "PDF_PROCESSING_FAILED"
    IMAGE_COMPRESSION_FAILED = "IMAGE_COMPRESSION_FAILED"
    UPLOAD_FAILED = "UPLOAD_FAILED"
    AI_EXTRACTION_FAILED = "AI_EXTRACTION_FAILED"
    AI_RATE_LIMIT = "AI_RATE_LIMIT"
    AI_INVALID_FILE = "AI_INVALID_FILE"
    AI_FILE_NOT_FOUND = "AI_FILE_NOT_FOUND"
    AI_PROCESSING_TIMEOUT = "AI_PROCESSING_TIMEOUT"
    AI_NO_RESPONSE = "AI_NO_RESPONSE"
    AI_SERVICE_UNAVAILABLE = "AI_SERVICE_UNAVAILABLE"
    AI_INVALID_RESPONSE = "AI_INVALID_RESPONSE"
    PERSISTENCE_FAILED = "PERSISTENCE_FAILED"
    ABORTED = "ABORTED"


class UploadErrorCategory(StrEnum):
    """Job-level error category attached to a FAILED upload."""

    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    INVALID_TYPE = "INVALID_TYPE"
    UPLOAD_FAILED = "UPLOAD_FAILED"
    PROCESSING_FAILED = "PROCESSING_FAILED"
    AI_EXTRACTION_FAILED = "AI_EXTRACTION_FAILED"
    ABORTED = "ABORTED"


USER_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.FILE_TOO_LARGE: "File size exceeds the maximum limit of 10MB",
    ErrorCode.INVALID_FILE_TYPE: "Invalid file type. Only PDF, JPG, and PNG files are allowed",
    ErrorCode.PDF_PROCESSING_FAILED: (
        "We couldn't convert your PDF. Please check the file isn't damaged and try again"
    ),
    ErrorCode.IMAGE_COMPRESSION_FAILED: "Failed to compress image",
    ErrorCode.UPLOAD_FAILED: "Failed to upload file to cloud storage. Please try again",
    ErrorCode.AI_EXTRACTION_FAILED: (
        "We couldn't read your invoice automatically. "
        "Please check if the image is clear and try again"
    ),
    ErrorCode.AI_RATE_LIMIT: "You're doing that too quickly. Please wait a moment and try again",
    ErrorCode.AI_INVALID_FILE: (
        "The invoice image couldn't be read. Please upload a clearer PDF, JPG, or PNG file"
    ),
    ErrorCode.AI_FILE_NOT_FOUND: "The uploaded file could not be found. Please upload it again",
    ErrorCode.AI_PROCESSING_TIMEOUT: "Reading your invoice took too long. Please try again",
    ErrorCode.AI_NO_RESPONSE: (
        "We couldn't read your invoice automatically. "
        "Please check if the image is clear and try again"
    ),
    ErrorCode.AI_SERVICE_UNAVAILABLE: (
        "The invoice reader is temporarily unavailable. Please try again shortly"
    ),
    ErrorCode.AI_INVALID_RESPONSE: "We couldn't process the invoice analysis. Please try again",
    ErrorCode.PERSISTENCE_FAILED: "We couldn't save your invoice. Please try again",
    ErrorCode.ABORTED: "File upload aborted",
}

_CATEGORY_BY_CODE: dict[ErrorCode, UploadErrorCategory] = {
    ErrorCode.FILE_TOO_LARGE: UploadErrorCategory.FILE_TOO_LARGE,
    ErrorCode.INVALID_FILE_TYPE: UploadErrorCategory.INVALID_TYPE,
    ErrorCode.PDF_PROCESSING_FAILED: UploadErrorCategory.PROCESSING_FAILED,
    ErrorCode.IMAGE_COMPRESSION_FAILED: UploadErrorCategory.PROCESSING_FAILED,
    ErrorCode.UPLOAD_FAILED: UploadErrorCategory.UPLOAD_FAILED,
    ErrorCode.PERSISTENCE_FAILED: UploadErrorCategory.PROCESSING_FAILED,
    ErrorCode.ABORTED: UploadErrorCategory.ABORTED,
}

# Codes that the job runner may retry from NOT_UPLOADED without user action.
TRANSIENT_CODES = frozenset(
    {
        ErrorCode.UPLOAD_FAILED,
        ErrorCode.AI_RATE_LIMIT,
        ErrorCode.AI_PROCESSING_TIMEOUT,
        ErrorCode.AI_NO_RESPONSE,
        ErrorCode.AI_SERVICE_UNAVAILABLE,
        ErrorCode.PERSISTENCE_FAILED,
    }
)


def user_message_for(code: ErrorCode) -> str:
    return USER_MESSAGES[code]


def category_for(code: ErrorCode) -> UploadErrorCategory:
    """Map a stage error code to the job-level category.

    All AI_* codes collapse into AI_EXTRACTION_FAILED.
    """
    if code.startswith("AI_"):
        return UploadErrorCategory.AI_EXTRACTION_FAILED
    return _CATEGORY_BY_CODE[code]


class IngestError(Exception):
    """Base exception for recoverable ingestion failures."""

    default_code: ErrorCode = ErrorCode.PDF_PROCESSING_FAILED

    def __init__(self, message: str, code: ErrorCode | None = None) -> None:
        super().__init__(message)
        self.code = code or self.default_code

    @property
    def user_message(self) -> str:
        return user_message_for(self.code)
