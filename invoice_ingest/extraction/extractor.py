"""Vision-model invoice extractor."""

import asyncio
import json
import re
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path
from typing import Any

from invoice_ingest.errors import ErrorCode
from invoice_ingest.extraction.base import BaseInvoiceExtractor
from invoice_ingest.extraction.client_base import BaseVisionClient
from invoice_ingest.extraction.exceptions import ExtractionError, InvalidAIResponseError
from invoice_ingest.extraction.models import ExtractedInvoiceData
from invoice_ingest.extraction.parser import build_extracted_data
from invoice_ingest.extraction.prompt_loader import (
    load_json_schema,
    load_system_prompt,
    load_user_prompt,
)
from invoice_ingest.logging.logger import Log
from invoice_ingest.pdf.models import RasterImage

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


class InvoiceExtractor(BaseInvoiceExtractor):
    """Extracts invoice fields from images using a vision-capable AI provider.

    Transient provider errors are retried one attempt at a time, waiting
    ``retry_delay_seconds`` between attempts. Other errors surface on the
    first failure.
    """

    def __init__(
        self,
        *,
        client: BaseVisionClient,
        model: str,
        temperature: float = 0.1,
        max_tokens: int = 4000,
        max_attempts: int = 3,
        retry_delay_seconds: float = 1.0,
        system_prompt_path: Path | None = None,
        user_prompt_path: Path | None = None,
        json_schema_path: Path | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self._model = model
        self._temperature = max(0.0, min(0.2, temperature))
        self._max_tokens = max_tokens
        self._max_attempts = max(1, max_attempts)
        self._retry_delay_seconds = retry_delay_seconds
        self._system_prompt = load_system_prompt(system_prompt_path)
        self._user_prompt = load_user_prompt(user_prompt_path)
        self._json_schema = json.loads(load_json_schema(json_schema_path))
        self._sleep = sleep

    async def extract(self, images: Sequence[RasterImage]) -> ExtractedInvoiceData:
        if not images:
            raise ExtractionError("No images to extract from", ErrorCode.AI_INVALID_FILE)

        raw_response = await self._call_with_retry(images)
        Log.debug(f"AI raw response:\n{raw_response}")

        parsed = self._parse_json(raw_response)
        result = build_extracted_data(parsed)

        Log.info(
            f"Extraction complete: supplier={result.supplier_name!r} "
            f"total={result.total_amount} items={len(result.items)}"
        )
        return result

    async def _call_with_retry(self, images: Sequence[RasterImage]) -> str:
        attempt = 0
        while True:
            attempt += 1
            try:
                return await self._client.create_vision_completion(
                    model=self._model,
                    temperature=self._temperature,
                    max_tokens=self._max_tokens,
                    system_prompt=self._system_prompt,
                    user_prompt=self._user_prompt,
                    images=images,
                    json_schema=self._json_schema,
                )
            except ExtractionError as exc:
                if not exc.retryable or attempt >= self._max_attempts:
                    Log.error(f"Extraction failed after {attempt} attempt(s) [{exc.code}]: {exc}")
                    raise
                Log.warning(
                    f"Extraction attempt {attempt}/{self._max_attempts} failed [{exc.code}], "
                    f"retrying in {self._retry_delay_seconds}s"
                )
                await self._sleep(self._retry_delay_seconds)

    @staticmethod
    def _parse_json(raw: str) -> dict[str, Any]:
        cleaned = raw.strip()
        if cleaned.startswith("```"):
            lines = cleaned.splitlines()
            if lines and lines[0].startswith("```"):
                lines = lines[1:]
            if lines and lines[-1].strip() == "```":
                lines = lines[:-1]
            cleaned = "\n".join(lines)

        try:
            parsed = json.loads(cleaned)
        except json.JSONDecodeError:
            match = _JSON_OBJECT.search(cleaned)
            if match is None:
                raise InvalidAIResponseError("AI response contains no JSON object") from None
            try:
                parsed = json.loads(match.group(0))
            except json.JSONDecodeError as exc:
                raise InvalidAIResponseError(f"Invalid JSON response: {exc}") from exc

        if not isinstance(parsed, dict):
            raise InvalidAIResponseError("JSON response must be an object")
        return parsed
