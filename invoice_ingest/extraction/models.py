from dataclasses import dataclass, field
from datetime import date
from typing import Any

from invoice_ingest.extraction.dates import parse_display_date


@dataclass(frozen=True)
class InvoiceItem:
    description: str
    quantity: float | None = None
    unit_price: float | None = None
    total: float | None = None
    tax_rate: float | None = None


@dataclass(frozen=True)
class ExtractedInvoiceData:
    """Structured invoice fields read by the vision model.

    Monetary fields are plain numbers rounded to cents. Dates are strings in
    DD/MM/YYYY form; use the ``*_value`` properties for ``date`` objects.
    """

    invoice_number: str | None = None
    supplier_name: str | None = None
    supplier_address: str | None = None
    supplier_tax_id: str | None = None
    description: str | None = None
    subtotal: float | None = None
    tax_amount: float | None = None
    tax_rate: float | None = None
    total_amount: float | None = None
    currency: str | None = None
    invoice_date: str | None = None
    due_date: str | None = None
    items: tuple[InvoiceItem, ...] = ()
    suggested_category: str | None = None
    category_confidence: float | None = None
    category_reasoning: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False, hash=False, repr=False)

    @property
    def invoice_date_value(self) -> date | None:
        return parse_display_date(self.invoice_date)

    @property
    def due_date_value(self) -> date | None:
        return parse_display_date(self.due_date)
