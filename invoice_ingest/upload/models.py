from dataclasses import dataclass
from enum import StrEnum
from pathlib import PurePath

from invoice_ingest.errors import ErrorCode, UploadErrorCategory, category_for


class UploadStatus(StrEnum):
    NOT_UPLOADED = "NOT_UPLOADED"
    PROCESSING_PDF = "PROCESSING_PDF"
    COMPRESSING_IMAGE = "COMPRESSING_IMAGE"
    UPLOADING_TO_S3 = "UPLOADING_TO_S3"
    AI_PROCESSING = "AI_PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


@dataclass(frozen=True)
class SourceFile:
    """Original upload as selected by the user."""

    file_name: str
    mime_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        return PurePath(self.file_name).suffix.lower().lstrip(".")

    @property
    def is_pdf(self) -> bool:
        return self.mime_type == "application/pdf" or self.extension == "pdf"


@dataclass(frozen=True)
class UploadError:
    """Tagged error attached to a FAILED job."""

    code: ErrorCode
    message: str

    @property
    def category(self) -> UploadErrorCategory:
        return category_for(self.code)
