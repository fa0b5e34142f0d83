from abc import ABC, abstractmethod

from PIL import Image


class BasePdfRenderer(ABC):
    """Contract for all PDF page rendering adapters."""

    @abstractmethod
    def page_count(self, pdf_bytes: bytes) -> int:
        """Return the number of pages in the document.

        Raises:
            PdfRasterizationError: if the document cannot be opened.
        """

    @abstractmethod
    def render_page(self, pdf_bytes: bytes, page_index: int, scale: float) -> Image.Image:
        """Render one zero-based page to an RGB Pillow image.

        Args:
            pdf_bytes: Raw PDF file content.
            page_index: Zero-based page index.
            scale: Render scale, 1.0 being 72 DPI.

        Raises:
            PdfRasterizationError: if rendering fails for any reason.
        """
