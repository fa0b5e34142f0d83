from collections.abc import Sequence
from datetime import date
from typing import Any

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from invoice_ingest.anomaly.history import HistoricalInvoice
from invoice_ingest.anomaly.suppliers import normalize_supplier_name
from invoice_ingest.database.connection import get_connection
from invoice_ingest.database.exceptions import PersistenceError
from invoice_ingest.database.store import InvoiceStore
from invoice_ingest.processor.models import InvoiceRecord
from invoice_ingest.processor.record_builder import extracted_payload

_HISTORY_COLUMNS = "id, user_id, supplier_name, total_amount, invoice_date, invoice_number, category"


class InvoiceRepository(InvoiceStore):
    """Database operations for the invoices table."""

    def save(self, record: InvoiceRecord) -> str:
        """Insert a completed invoice and return its id."""
        extracted = record.extracted
        try:
            with get_connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(
                        """
                        INSERT INTO invoices
                        (user_id, upload_job_id, object_key, file_name, mime_type,
                         processing_strategy, page_count, invoice_number, supplier_name,
                         total_amount, currency, invoice_date, category, status, is_valid,
                         extracted_data, validation, anomalies, category_suggestion)
                        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s,
                                %s, %s, %s, %s)
                        RETURNING id
                        """,
                        (
                            record.user_id,
                            record.upload_job_id,
                            record.object_key,
                            record.file_name,
                            record.mime_type,
                            record.processing_strategy,
                            record.page_count,
                            extracted.invoice_number,
                            extracted.supplier_name,
                            extracted.total_amount,
                            extracted.currency,
                            extracted.invoice_date_value,
                            record.category.suggested_category.value,
                            record.status.value,
                            record.validation.is_valid,
                            Jsonb(extracted_payload(extracted)),
                            Jsonb(record.validation.to_dict()),
                            Jsonb(record.anomalies.to_dict()),
                            Jsonb(record.category.to_dict()),
                        ),
                    )
                    row = cur.fetchone()
                conn.commit()
        except psycopg.Error as exc:
            raise PersistenceError(f"Failed to store invoice for job {record.upload_job_id}: {exc}") from exc

        if row is None:
            raise PersistenceError(f"Insert returned no id for job {record.upload_job_id}")
        return str(row["id"])

    def for_user(self, user_id: str) -> Sequence[HistoricalInvoice]:
        return self._query(
            f"SELECT {_HISTORY_COLUMNS} FROM invoices WHERE user_id = %s ORDER BY invoice_date",
            (user_id,),
        )

    def for_supplier(self, user_id: str, supplier_name: str) -> Sequence[HistoricalInvoice]:
        target = normalize_supplier_name(supplier_name)
        if not target:
            return ()
        return tuple(
            invoice
            for invoice in self.for_user(user_id)
            if normalize_supplier_name(invoice.supplier_name) == target
        )

    def in_date_range(self, user_id: str, start: date, end: date) -> Sequence[HistoricalInvoice]:
        return self._query(
            f"""
            SELECT {_HISTORY_COLUMNS} FROM invoices
            WHERE user_id = %s AND invoice_date BETWEEN %s AND %s
            ORDER BY invoice_date
            """,
            (user_id, start, end),
        )

    def _query(self, sql: str, params: tuple[Any, ...]) -> tuple[HistoricalInvoice, ...]:
        try:
            with get_connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(sql, params)
                    rows = cur.fetchall()
        except psycopg.Error as exc:
            raise PersistenceError(f"Failed to read invoice history: {exc}") from exc
        return tuple(_to_historical(row) for row in rows)


def _to_historical(row: dict[str, Any]) -> HistoricalInvoice:
    total = row["total_amount"]
    return HistoricalInvoice(
        id=str(row["id"]),
        user_id=row["user_id"],
        supplier_name=row["supplier_name"],
        total_amount=float(total) if total is not None else None,
        invoice_date=row["invoice_date"],
        invoice_number=row["invoice_number"],
        category=row["category"],
    )
