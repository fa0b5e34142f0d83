from abc import ABC, abstractmethod
from collections.abc import Sequence

from invoice_ingest.extraction.models import ExtractedInvoiceData
from invoice_ingest.pdf.models import RasterImage


class BaseInvoiceExtractor(ABC):
    """Contract for turning prepared invoice images into structured data."""

    @abstractmethod
    async def extract(self, images: Sequence[RasterImage]) -> ExtractedInvoiceData:
        """Read invoice fields from one or more images.

        Raises:
            ExtractionError: when the provider fails after retries.
            InvalidAIResponseError: when the reply is not usable JSON.
        """
