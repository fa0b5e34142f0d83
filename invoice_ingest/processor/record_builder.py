"""Builds the persisted invoice record and its JSON payloads."""

from dataclasses import asdict
from typing import Any

from invoice_ingest.anomaly.models import AnomalyDetectionResult, AnomalySeverity
from invoice_ingest.categories.models import CategorySuggestion
from invoice_ingest.extraction.models import ExtractedInvoiceData
from invoice_ingest.processor.models import InvoiceRecord, InvoiceStatus
from invoice_ingest.upload.job import UploadJob
from invoice_ingest.validation.models import ValidationResult

_REVIEW_SEVERITIES = frozenset({AnomalySeverity.MEDIUM, AnomalySeverity.HIGH})


class RecordBuilder:
    """Combines the AI stage outputs of a job into one InvoiceRecord."""

    def build(
        self,
        job: UploadJob,
        extracted: ExtractedInvoiceData,
        validation: ValidationResult,
        anomalies: AnomalyDetectionResult,
        category: CategorySuggestion,
    ) -> InvoiceRecord:
        if job.object_key is None:
            raise ValueError("UploadJob.object_key must be set before building a record")
        image = job.compressed_image.image if job.compressed_image else None
        raster = job.raster_result
        return InvoiceRecord(
            user_id=job.user_id,
            upload_job_id=job.id,
            object_key=job.object_key,
            file_name=job.source_file.file_name,
            mime_type=image.mime_type if image else job.source_file.mime_type,
            processing_strategy=raster.strategy if raster else "",
            page_count=raster.page_count if raster else 1,
            extracted=extracted,
            validation=validation,
            anomalies=anomalies,
            category=category,
            status=self.status_for(validation, anomalies),
        )

    @staticmethod
    def status_for(
        validation: ValidationResult, anomalies: AnomalyDetectionResult
    ) -> InvoiceStatus:
        needs_review = not validation.is_valid or any(
            detail.severity in _REVIEW_SEVERITIES for detail in anomalies.details
        )
        return InvoiceStatus.NEEDS_REVIEW if needs_review else InvoiceStatus.COMPLETED


def extracted_payload(extracted: ExtractedInvoiceData) -> dict[str, Any]:
    payload = asdict(extracted)
    payload["items"] = [dict(item) for item in payload["items"]]
    return payload


def record_payload(record: InvoiceRecord) -> dict[str, Any]:
    """JSON-serializable view of a record, as stored in JSONB columns."""
    return {
        "user_id": record.user_id,
        "upload_job_id": record.upload_job_id,
        "object_key": record.object_key,
        "file_name": record.file_name,
        "mime_type": record.mime_type,
        "processing_strategy": record.processing_strategy,
        "page_count": record.page_count,
        "status": record.status.value,
        "extracted": extracted_payload(record.extracted),
        "validation": record.validation.to_dict(),
        "anomalies": record.anomalies.to_dict(),
        "category": record.category.to_dict(),
    }
