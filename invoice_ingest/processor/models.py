from dataclasses import dataclass
from enum import StrEnum

from invoice_ingest.anomaly.models import AnomalyDetectionResult
from invoice_ingest.categories.models import CategorySuggestion
from invoice_ingest.extraction.models import ExtractedInvoiceData
from invoice_ingest.validation.models import ValidationResult


class InvoiceStatus(StrEnum):
    COMPLETED = "COMPLETED"
    NEEDS_REVIEW = "NEEDS_REVIEW"


@dataclass(frozen=True)
class InvoiceRecord:
    """Final combined result handed to the persistence layer."""

    user_id: str
    upload_job_id: str
    object_key: str
    file_name: str
    mime_type: str
    processing_strategy: str
    page_count: int
    extracted: ExtractedInvoiceData
    validation: ValidationResult
    anomalies: AnomalyDetectionResult
    category: CategorySuggestion
    status: InvoiceStatus
