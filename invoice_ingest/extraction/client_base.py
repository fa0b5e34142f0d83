from abc import ABC, abstractmethod
from collections.abc import Sequence

from invoice_ingest.pdf.models import RasterImage


class BaseVisionClient(ABC):
    """Contract for provider-specific vision model clients."""

    @abstractmethod
    async def create_vision_completion(
        self,
        *,
        model: str,
        temperature: float,
        max_tokens: int,
        system_prompt: str,
        user_prompt: str,
        images: Sequence[RasterImage],
        json_schema: dict[str, object],
    ) -> str:
        """Return the provider response as plain text.

        Raises:
            ExtractionError: with a classified code when the provider call fails.
        """
