from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Protocol

from invoice_ingest.upload.models import UploadStatus
from invoice_ingest.upload.state_machine import is_processing

# (base, span) of the overall 0-100 progress owned by each status.
STATUS_PROGRESS_BANDS: dict[UploadStatus, tuple[int, int]] = {
    UploadStatus.NOT_UPLOADED: (0, 0),
    UploadStatus.PROCESSING_PDF: (0, 20),
    UploadStatus.COMPRESSING_IMAGE: (20, 15),
    UploadStatus.UPLOADING_TO_S3: (35, 35),
    UploadStatus.AI_PROCESSING: (70, 30),
    UploadStatus.COMPLETED: (100, 0),
    UploadStatus.FAILED: (0, 0),
}


class HasProgress(Protocol):
    status: UploadStatus
    progress: int


@dataclass(frozen=True)
class BulkProgress:
    overall_progress: float
    total: int
    completed_count: int
    failed_count: int
    processing_count: int
    idle_count: int
    by_status: dict[UploadStatus, int] = field(default_factory=dict)


def progress_for_status(status: UploadStatus, stage_progress: float = 0) -> int:
    """Map a 0-100 progress within one stage into the overall 0-100 range."""
    base, span = STATUS_PROGRESS_BANDS[status]
    stage = max(0.0, min(100.0, float(stage_progress)))
    return int(min(100, base + round(span * stage / 100)))


def calculate_bulk_progress(jobs: Iterable[HasProgress]) -> BulkProgress:
    items = list(jobs)
    if not items:
        return BulkProgress(
            overall_progress=0.0,
            total=0,
            completed_count=0,
            failed_count=0,
            processing_count=0,
            idle_count=0,
        )
    counts = Counter(job.status for job in items)
    return BulkProgress(
        overall_progress=sum(job.progress for job in items) / len(items),
        total=len(items),
        completed_count=counts[UploadStatus.COMPLETED],
        failed_count=counts[UploadStatus.FAILED],
        processing_count=sum(n for status, n in counts.items() if is_processing(status)),
        idle_count=counts[UploadStatus.NOT_UPLOADED],
        by_status=dict(counts),
    )
