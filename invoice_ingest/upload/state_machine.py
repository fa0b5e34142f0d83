"""Upload status transition table and its guards."""

from invoice_ingest.upload.models import UploadStatus

VALID_STATUS_TRANSITIONS: dict[UploadStatus, frozenset[UploadStatus]] = {
    UploadStatus.NOT_UPLOADED: frozenset(
        {
            UploadStatus.PROCESSING_PDF,
            UploadStatus.COMPRESSING_IMAGE,
            UploadStatus.UPLOADING_TO_S3,
            UploadStatus.FAILED,
        }
    ),
    UploadStatus.PROCESSING_PDF: frozenset(
        {UploadStatus.COMPRESSING_IMAGE, UploadStatus.FAILED}
    ),
    UploadStatus.COMPRESSING_IMAGE: frozenset(
        {UploadStatus.UPLOADING_TO_S3, UploadStatus.FAILED}
    ),
    UploadStatus.UPLOADING_TO_S3: frozenset(
        {UploadStatus.AI_PROCESSING, UploadStatus.FAILED}
    ),
    UploadStatus.AI_PROCESSING: frozenset({UploadStatus.COMPLETED, UploadStatus.FAILED}),
    UploadStatus.COMPLETED: frozenset(),
    UploadStatus.FAILED: frozenset({UploadStatus.NOT_UPLOADED}),
}

_PROCESSING_STATUSES = frozenset(
    {
        UploadStatus.PROCESSING_PDF,
        UploadStatus.COMPRESSING_IMAGE,
        UploadStatus.UPLOADING_TO_S3,
        UploadStatus.AI_PROCESSING,
    }
)


class InvalidStatusTransitionError(Exception):
    """Raised when code attempts a transition missing from the table."""

    def __init__(self, current: UploadStatus, target: UploadStatus) -> None:
        super().__init__(f"Invalid upload status transition: {current} -> {target}")
        self.current = current
        self.target = target


def is_valid_transition(current: UploadStatus, target: UploadStatus) -> bool:
    return target in VALID_STATUS_TRANSITIONS.get(current, frozenset())


def next_statuses(current: UploadStatus) -> frozenset[UploadStatus]:
    return VALID_STATUS_TRANSITIONS.get(current, frozenset())


def ensure_transition(current: UploadStatus, target: UploadStatus) -> None:
    """Raise InvalidStatusTransitionError unless current -> target is allowed."""
    if not is_valid_transition(current, target):
        raise InvalidStatusTransitionError(current, target)


def is_processing(status: UploadStatus) -> bool:
    return status in _PROCESSING_STATUSES


def is_terminal(status: UploadStatus) -> bool:
    return status in (UploadStatus.COMPLETED, UploadStatus.FAILED)


def can_retry(status: UploadStatus) -> bool:
    return status in (UploadStatus.FAILED, UploadStatus.NOT_UPLOADED)
