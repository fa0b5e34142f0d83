from invoice_ingest.config.settings import Settings
from invoice_ingest.pdf.base import BasePdfRenderer
from invoice_ingest.pdf.pdfplumber_adapter import PdfPlumberRenderer
from invoice_ingest.pdf.pymupdf_adapter import PyMuPdfRenderer


class PdfRendererFactory:
    """Creates the correct PDF page renderer based on settings."""

    ADAPTERS: dict[str, type[BasePdfRenderer]] = {
        "pdfplumber": PdfPlumberRenderer,
        "pymupdf": PyMuPdfRenderer,
    }

    @classmethod
    def create(cls, settings: Settings) -> BasePdfRenderer:
        engine = settings.pdf_engine.lower()
        adapter_cls = cls.ADAPTERS.get(engine)
        if adapter_cls is None:
            raise ValueError(
                f"Unknown PDF engine '{engine}'. Choose from: {list(cls.ADAPTERS)}"
            )
        return adapter_cls()
