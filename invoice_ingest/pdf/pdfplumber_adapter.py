import io

import pdfplumber
from PIL import Image

from invoice_ingest.pdf.base import BasePdfRenderer
from invoice_ingest.pdf.exceptions import PdfRasterizationError

_BASE_DPI = 72


class PdfPlumberRenderer(BasePdfRenderer):
    """Renders PDF pages using pdfplumber."""

    def page_count(self, pdf_bytes: bytes) -> int:
        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                return len(pdf.pages)
        except Exception as exc:
            raise PdfRasterizationError(f"pdfplumber could not open document: {exc}") from exc

    def render_page(self, pdf_bytes: bytes, page_index: int, scale: float) -> Image.Image:
        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                page = pdf.pages[page_index]
                page_image = page.to_image(resolution=round(_BASE_DPI * scale))
                return page_image.original.convert("RGB")
        except Exception as exc:
            raise PdfRasterizationError(
                f"pdfplumber failed to render page {page_index + 1}: {exc}"
            ) from exc
