from pathlib import Path

import pytest
from PIL import Image

from invoice_ingest.config.settings import Settings
from invoice_ingest.database.repositories.memory_repository import InMemoryInvoiceStore
from invoice_ingest.processor.processor import build_processor
from invoice_ingest.upload.job import UploadJob
from invoice_ingest.upload.models import SourceFile, UploadStatus


def _stored_files(settings: Settings) -> list[Path]:
    return sorted(Path(settings.storage_local_root).rglob("*.*"))


class TestPdfPipeline:
    @pytest.mark.asyncio
    async def test_multi_page_pdf_becomes_one_stored_image_and_record(
        self,
        local_settings: Settings,
        three_page_pdf_bytes: bytes,
    ) -> None:
        store = InMemoryInvoiceStore()
        processor = build_processor(local_settings, store=store)
        statuses: list[UploadStatus] = []
        job = UploadJob(
            "user-1",
            SourceFile("invoice.pdf", "application/pdf", three_page_pdf_bytes),
            listener=lambda j: statuses.append(j.status),
        )

        context = await processor.process(job)

        assert job.status is UploadStatus.COMPLETED
        assert job.progress == 100
        assert UploadStatus.PROCESSING_PDF in statuses
        assert job.raster_result is not None
        assert job.raster_result.strategy == "long-image-3-pages"
        assert job.object_key is not None
        assert job.object_key.startswith("invoices/user-1/")

        stored = _stored_files(local_settings)
        assert len(stored) == 1
        with Image.open(stored[0]) as image:
            assert image.format == "JPEG"
            assert image.height > image.width

        record = store.records[job.invoice_id]
        assert context.record is record
        assert record.page_count == 3
        assert record.extracted.total_amount == 110.0
        assert record.validation.is_valid
        assert record.category.suggested_category == "OFFICE_SUPPLIES"


class TestRasterPipeline:
    @pytest.mark.asyncio
    async def test_png_is_compressed_to_jpeg(
        self,
        local_settings: Settings,
        noisy_png_bytes: bytes,
    ) -> None:
        processor = build_processor(local_settings)
        job = UploadJob("user-1", SourceFile("receipt.png", "image/png", noisy_png_bytes))

        await processor.process(job)

        assert job.status is UploadStatus.COMPLETED
        assert job.compressed_image is not None
        assert job.compressed_image.image.mime_type == "image/jpeg"
        assert job.object_key is not None
        assert job.object_key.endswith(".jpg")

    @pytest.mark.asyncio
    async def test_tiny_png_is_stored_unchanged(
        self,
        local_settings: Settings,
        small_png_bytes: bytes,
    ) -> None:
        processor = build_processor(local_settings)
        job = UploadJob("user-1", SourceFile("receipt.png", "image/png", small_png_bytes))

        await processor.process(job)

        assert job.status is UploadStatus.COMPLETED
        stored = _stored_files(local_settings)
        assert len(stored) == 1
        assert stored[0].suffix == ".png"
        assert stored[0].read_bytes() == small_png_bytes

    @pytest.mark.asyncio
    async def test_corrupt_image_fails_without_stored_object(self, local_settings: Settings) -> None:
        processor = build_processor(local_settings)
        job = UploadJob("user-1", SourceFile("broken.png", "image/png", b"not an image"))

        await processor.process(job)

        assert job.status is UploadStatus.FAILED
        assert job.error is not None
        assert job.error.code in {"PDF_PROCESSING_FAILED", "IMAGE_COMPRESSION_FAILED"}
        assert _stored_files(local_settings) == []


class TestHistoryAcrossJobs:
    @pytest.mark.asyncio
    async def test_second_identical_invoice_is_a_duplicate(
        self,
        local_settings: Settings,
        sample_pdf_bytes: bytes,
    ) -> None:
        store = InMemoryInvoiceStore()
        processor = build_processor(local_settings, store=store)
        first = UploadJob("user-1", SourceFile("a.pdf", "application/pdf", sample_pdf_bytes))
        second = UploadJob("user-1", SourceFile("b.pdf", "application/pdf", sample_pdf_bytes))

        await processor.process(first)
        await processor.process(second)

        first_record = store.records[first.invoice_id]
        second_record = store.records[second.invoice_id]
        assert not first_record.anomalies.is_duplicate
        assert first_record.anomalies.is_supplier_anomaly
        assert second_record.anomalies.is_duplicate
        assert second_record.status == "NEEDS_REVIEW"

    @pytest.mark.asyncio
    async def test_history_is_per_user(
        self,
        local_settings: Settings,
        sample_pdf_bytes: bytes,
    ) -> None:
        store = InMemoryInvoiceStore()
        processor = build_processor(local_settings, store=store)
        first = UploadJob("user-1", SourceFile("a.pdf", "application/pdf", sample_pdf_bytes))
        other = UploadJob("user-2", SourceFile("a.pdf", "application/pdf", sample_pdf_bytes))

        await processor.process(first)
        await processor.process(other)

        assert not store.records[other.invoice_id].anomalies.is_duplicate
