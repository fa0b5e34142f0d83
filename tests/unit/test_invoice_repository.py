from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock, patch

import psycopg
import pytest

from invoice_ingest.anomaly.models import AnomalyDetectionResult
from invoice_ingest.categories.catalog import InvoiceCategory
from invoice_ingest.categories.models import CategorySuggestion
from invoice_ingest.database.exceptions import PersistenceError
from invoice_ingest.database.repositories.invoice_repository import InvoiceRepository
from invoice_ingest.errors import ErrorCode
from invoice_ingest.extraction.models import ExtractedInvoiceData
from invoice_ingest.processor.models import InvoiceRecord, InvoiceStatus
from invoice_ingest.validation.models import ValidationResult

_GET_CONNECTION = "invoice_ingest.database.repositories.invoice_repository.get_connection"


def _make_record() -> InvoiceRecord:
    return InvoiceRecord(
        user_id="user-1",
        upload_job_id="job-1",
        object_key="invoices/user-1/a.jpg",
        file_name="a.pdf",
        mime_type="image/jpeg",
        processing_strategy="single-page",
        page_count=1,
        extracted=ExtractedInvoiceData(
            invoice_number="INV-1",
            supplier_name="Acme",
            total_amount=110.0,
            currency="AUD",
            invoice_date="01/07/2024",
        ),
        validation=ValidationResult(),
        anomalies=AnomalyDetectionResult(),
        category=CategorySuggestion(InvoiceCategory.OTHER, 0.3, "default"),
        status=InvoiceStatus.COMPLETED,
    )


def _make_row(**overrides: object) -> dict:
    row = {
        "id": 7,
        "user_id": "user-1",
        "supplier_name": "Acme Pty Ltd",
        "total_amount": Decimal("110.00"),
        "invoice_date": date(2024, 7, 1),
        "invoice_number": "INV-1",
        "category": "OTHER",
    }
    row.update(overrides)
    return row


def _mock_connection(mock_get_conn: MagicMock) -> tuple[MagicMock, MagicMock]:
    """Wire up a mock connection + cursor and return (mock_conn, mock_cursor)."""
    mock_cursor = MagicMock()
    mock_conn = MagicMock()
    mock_conn.cursor.return_value.__enter__ = MagicMock(return_value=mock_cursor)
    mock_conn.cursor.return_value.__exit__ = MagicMock(return_value=False)
    mock_get_conn.return_value.__enter__ = MagicMock(return_value=mock_conn)
    mock_get_conn.return_value.__exit__ = MagicMock(return_value=False)
    return mock_conn, mock_cursor


class TestSave:
    @patch(_GET_CONNECTION)
    def test_inserts_and_returns_id(self, mock_get_conn: MagicMock) -> None:
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = {"id": 42}

        invoice_id = InvoiceRepository().save(_make_record())

        assert invoice_id == "42"
        mock_conn.commit.assert_called_once()
        sql, params = mock_cursor.execute.call_args.args
        assert "INSERT INTO invoices" in sql
        assert params[0] == "user-1"
        assert params[11] == date(2024, 7, 1)
        assert params[12] == "OTHER"
        assert params[13] == "COMPLETED"
        assert params[14] is True

    @patch(_GET_CONNECTION)
    def test_database_error_is_persistence_error(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.execute.side_effect = psycopg.OperationalError("connection lost")

        with pytest.raises(PersistenceError, match="job-1") as exc_info:
            InvoiceRepository().save(_make_record())

        assert exc_info.value.code is ErrorCode.PERSISTENCE_FAILED

    @patch(_GET_CONNECTION)
    def test_missing_id_is_persistence_error(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = None

        with pytest.raises(PersistenceError, match="no id"):
            InvoiceRepository().save(_make_record())


class TestHistory:
    @patch(_GET_CONNECTION)
    def test_for_user_maps_rows(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchall.return_value = [_make_row()]

        history = InvoiceRepository().for_user("user-1")

        assert len(history) == 1
        invoice = history[0]
        assert invoice.id == "7"
        assert invoice.total_amount == 110.0
        assert isinstance(invoice.total_amount, float)
        assert invoice.invoice_date == date(2024, 7, 1)
        assert mock_cursor.execute.call_args.args[1] == ("user-1",)

    @patch(_GET_CONNECTION)
    def test_for_supplier_matches_normalized_name(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchall.return_value = [
            _make_row(),
            _make_row(id=8, supplier_name="Other Co"),
            _make_row(id=9, total_amount=None),
        ]

        history = InvoiceRepository().for_supplier("user-1", "ACME")

        assert [invoice.id for invoice in history] == ["7", "9"]
        assert history[1].total_amount is None

    def test_for_supplier_blank_name(self) -> None:
        assert InvoiceRepository().for_supplier("user-1", "  ") == ()

    @patch(_GET_CONNECTION)
    def test_in_date_range_passes_bounds(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchall.return_value = []

        InvoiceRepository().in_date_range("user-1", date(2024, 1, 1), date(2024, 6, 30))

        sql, params = mock_cursor.execute.call_args.args
        assert "BETWEEN" in sql
        assert params == ("user-1", date(2024, 1, 1), date(2024, 6, 30))

    @patch(_GET_CONNECTION)
    def test_read_error_is_persistence_error(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.execute.side_effect = psycopg.Error("boom")

        with pytest.raises(PersistenceError, match="history"):
            InvoiceRepository().for_user("user-1")
