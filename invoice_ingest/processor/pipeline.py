from abc import ABC, abstractmethod
from dataclasses import dataclass

from invoice_ingest.anomaly.history import InvoiceHistory
from invoice_ingest.anomaly.models import AnomalyDetectionResult
from invoice_ingest.categories.models import CategorySuggestion
from invoice_ingest.extraction.models import ExtractedInvoiceData
from invoice_ingest.processor.models import InvoiceRecord
from invoice_ingest.upload.job import UploadJob
from invoice_ingest.validation.models import ValidationResult


@dataclass(slots=True)
class PipelineContext:
    job: UploadJob
    history: InvoiceHistory | None = None
    extracted: ExtractedInvoiceData | None = None
    validation: ValidationResult | None = None
    anomalies: AnomalyDetectionResult | None = None
    category: CategorySuggestion | None = None
    record: InvoiceRecord | None = None


class PipelineStep(ABC):
    name: str = "step"

    @abstractmethod
    async def run(self, context: PipelineContext) -> PipelineContext:
        raise NotImplementedError
