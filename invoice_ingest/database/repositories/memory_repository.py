import threading
import uuid
from collections.abc import Iterable, Sequence
from datetime import date

from invoice_ingest.anomaly.history import HistoricalInvoice, InMemoryInvoiceHistory
from invoice_ingest.database.store import InvoiceStore
from invoice_ingest.processor.models import InvoiceRecord


class InMemoryInvoiceStore(InvoiceStore):
    """Process-local store for local runs and tests (persistence_backend=memory)."""

    def __init__(self, history: Iterable[HistoricalInvoice] = ()) -> None:
        self._lock = threading.Lock()
        self._history: list[HistoricalInvoice] = list(history)
        self.records: dict[str, InvoiceRecord] = {}

    def save(self, record: InvoiceRecord) -> str:
        invoice_id = str(uuid.uuid4())
        extracted = record.extracted
        with self._lock:
            self.records[invoice_id] = record
            self._history.append(
                HistoricalInvoice(
                    id=invoice_id,
                    user_id=record.user_id,
                    supplier_name=extracted.supplier_name,
                    total_amount=extracted.total_amount,
                    invoice_date=extracted.invoice_date_value,
                    invoice_number=extracted.invoice_number,
                    category=record.category.suggested_category.value,
                )
            )
        return invoice_id

    def _snapshot(self) -> InMemoryInvoiceHistory:
        with self._lock:
            return InMemoryInvoiceHistory(self._history)

    def for_user(self, user_id: str) -> Sequence[HistoricalInvoice]:
        return self._snapshot().for_user(user_id)

    def for_supplier(self, user_id: str, supplier_name: str) -> Sequence[HistoricalInvoice]:
        return self._snapshot().for_supplier(user_id, supplier_name)

    def in_date_range(self, user_id: str, start: date, end: date) -> Sequence[HistoricalInvoice]:
        return self._snapshot().in_date_range(user_id, start, end)
