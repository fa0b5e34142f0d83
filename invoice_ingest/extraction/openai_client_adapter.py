import base64
from collections.abc import Sequence

import httpx
import openai

from invoice_ingest.errors import ErrorCode
from invoice_ingest.extraction.client_base import BaseVisionClient
from invoice_ingest.extraction.exceptions import ExtractionError, classify_provider_error
from invoice_ingest.logging.logger import Log
from invoice_ingest.pdf.models import RasterImage


def to_data_url(image: RasterImage) -> str:
    encoded = base64.b64encode(image.data).decode("ascii")
    return f"data:{image.mime_type};base64,{encoded}"


class OpenAIVisionClient(BaseVisionClient):
    """Vision client built on the OpenAI-compatible chat completions API."""

    def __init__(
        self,
        *,
        api_key: str,
        timeout_seconds: int,
        base_url: str | None = None,
    ) -> None:
        # InvoiceExtractor owns retries.
        self._client = openai.AsyncOpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
            max_retries=0,
        )

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
        user_content: list[dict[str, object]] = [{"type": "text", "text": user_prompt}]
        user_content.extend(
            {"type": "image_url", "image_url": {"url": to_data_url(image), "detail": "high"}}
            for image in images
        )
        try:
            response = await self._client.chat.completions.create(
                model=model,
                temperature=temperature,
                max_tokens=max_tokens,
                response_format={
                    "type": "json_schema",
                    "json_schema": {
                        "name": "invoice_extraction",
                        "strict": True,
                        "schema": json_schema,
                    },
                },
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_content},
                ],
            )
        except (openai.APITimeoutError, httpx.TimeoutException) as exc:
            raise ExtractionError(
                f"AI provider timeout: {exc}", ErrorCode.AI_PROCESSING_TIMEOUT
            ) from exc
        except (openai.APIConnectionError, httpx.ConnectError) as exc:
            raise ExtractionError(
                f"AI provider network error: {exc}", ErrorCode.AI_SERVICE_UNAVAILABLE
            ) from exc
        except openai.APIStatusError as exc:
            Log.error(f"AI provider returned {exc.status_code}: {exc}")
            raise ExtractionError(
                f"AI provider API error: {exc}",
                classify_provider_error(str(exc), exc.status_code),
            ) from exc
        except openai.APIError as exc:
            raise ExtractionError(
                f"AI provider API error: {exc}", classify_provider_error(str(exc))
            ) from exc

        if not response.choices:
            raise ExtractionError("AI returned no response choices", ErrorCode.AI_NO_RESPONSE)
        content = response.choices[0].message.content
        if not content:
            raise ExtractionError("AI returned no response content", ErrorCode.AI_NO_RESPONSE)
        return content
