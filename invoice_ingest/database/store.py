from abc import abstractmethod

from invoice_ingest.anomaly.history import InvoiceHistory
from invoice_ingest.processor.models import InvoiceRecord


class InvoiceStore(InvoiceHistory):
    """Persists final invoice records and serves the user's history."""

    @abstractmethod
    def save(self, record: InvoiceRecord) -> str:
        """Store the record and return its invoice id.

        Raises:
            PersistenceError: if the record was not stored.
        """
