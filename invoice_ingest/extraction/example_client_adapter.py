"""Example vision client adapter.

Use this module as a reference when implementing new provider adapters.
Implement BaseVisionClient and register the provider in ExtractorFactory.
"""

import json
from collections.abc import Sequence
from typing import ClassVar

from invoice_ingest.extraction.client_base import BaseVisionClient
from invoice_ingest.pdf.models import RasterImage


class ExampleVisionClient(BaseVisionClient):
    """Example adapter that returns a fixed, internally consistent invoice.

    No network calls. Useful for local development and pipeline tests.
    """

    DEFAULT_RESPONSE: ClassVar[dict[str, object]] = {
        "invoice_number": "INV-0001",
        "supplier_name": "Example Office Supplies Pty Ltd",
        "supplier_address": "1 Example Street, Sydney NSW 2000",
        "supplier_tax_id": "12 345 678 901",
        "description": "Printer paper and stationery",
        "subtotal": 100.0,
        "tax_amount": 10.0,
        "tax_rate": 10,
        "total_amount": 110.0,
        "currency": "AUD",
        "invoice_date": "01/07/2024",
        "due_date": "31/07/2024",
        "items": [
            {
                "description": "A4 printer paper, 5 reams",
                "quantity": 5,
                "unit_price": 20.0,
                "total": 100.0,
                "tax_rate": 10,
            }
        ],
        "suggested_category": "OFFICE_SUPPLIES",
        "category_confidence": 0.85,
        "category_reasoning": "Stationery purchase from an office supplies vendor.",
    }

    def __init__(self, response: dict[str, object] | None = None) -> None:
        self._response = response if response is not None else self.DEFAULT_RESPONSE

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
        _ = model, temperature, max_tokens, system_prompt, user_prompt, images, json_schema
        return json.dumps(self._response)
