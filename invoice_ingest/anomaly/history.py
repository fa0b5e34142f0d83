from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date

from invoice_ingest.anomaly.suppliers import normalize_supplier_name


@dataclass(frozen=True)
class HistoricalInvoice:
    """Read-only view of a previously stored invoice."""

    id: str
    user_id: str
    supplier_name: str | None
    total_amount: float | None
    invoice_date: date | None
    invoice_number: str | None = None
    category: str | None = None


class InvoiceHistory(ABC):
    """Read-only queries over a user's stored invoices."""

    @abstractmethod
    def for_user(self, user_id: str) -> Sequence[HistoricalInvoice]:
        """All invoices of a user."""

    @abstractmethod
    def for_supplier(self, user_id: str, supplier_name: str) -> Sequence[HistoricalInvoice]:
        """Invoices of a user whose normalized supplier name matches."""

    @abstractmethod
    def in_date_range(self, user_id: str, start: date, end: date) -> Sequence[HistoricalInvoice]:
        """Invoices of a user dated within [start, end]."""


class InMemoryInvoiceHistory(InvoiceHistory):
    """History backed by a fixed list, also used as a per-pass snapshot."""

    def __init__(self, invoices: Iterable[HistoricalInvoice] = ()) -> None:
        self._invoices = tuple(invoices)

    def for_user(self, user_id: str) -> Sequence[HistoricalInvoice]:
        return tuple(invoice for invoice in self._invoices if invoice.user_id == user_id)

    def for_supplier(self, user_id: str, supplier_name: str) -> Sequence[HistoricalInvoice]:
        target = normalize_supplier_name(supplier_name)
        return tuple(
            invoice
            for invoice in self.for_user(user_id)
            if target and normalize_supplier_name(invoice.supplier_name) == target
        )

    def in_date_range(self, user_id: str, start: date, end: date) -> Sequence[HistoricalInvoice]:
        return tuple(
            invoice
            for invoice in self.for_user(user_id)
            if invoice.invoice_date is not None and start <= invoice.invoice_date <= end
        )
