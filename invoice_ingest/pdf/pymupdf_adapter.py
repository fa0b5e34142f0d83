import pymupdf
from PIL import Image

from invoice_ingest.pdf.base import BasePdfRenderer
from invoice_ingest.pdf.exceptions import PdfRasterizationError


class PyMuPdfRenderer(BasePdfRenderer):
    """Renders PDF pages using PyMuPDF."""

    def page_count(self, pdf_bytes: bytes) -> int:
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                return int(doc.page_count)
        except Exception as exc:
            raise PdfRasterizationError(f"pymupdf could not open document: {exc}") from exc

    def render_page(self, pdf_bytes: bytes, page_index: int, scale: float) -> Image.Image:
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                page = doc.load_page(page_index)
                pixmap = page.get_pixmap(matrix=pymupdf.Matrix(scale, scale), alpha=False)
                return Image.frombytes("RGB", (pixmap.width, pixmap.height), pixmap.samples)
        except Exception as exc:
            raise PdfRasterizationError(
                f"pymupdf failed to render page {page_index + 1}: {exc}"
            ) from exc
