from datetime import date

import pytest

from invoice_ingest.extraction.dates import (
    format_display_date,
    normalize_date,
    parse_date,
    parse_display_date,
)
from invoice_ingest.extraction.exceptions import InvalidAIResponseError
from invoice_ingest.extraction.parser import build_extracted_data


class TestDates:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("2024-07-01", date(2024, 7, 1)),
            ("2024-07-01T10:30:00Z", date(2024, 7, 1)),
            ("01/07/2024", date(2024, 7, 1)),
            ("1.7.2024", date(2024, 7, 1)),
            ("1st July 2024", date(2024, 7, 1)),
            ("Jul 1, 2024", date(2024, 7, 1)),
        ],
    )
    def test_parse_date_formats(self, raw: str, expected: date) -> None:
        assert parse_date(raw) == expected

    def test_parse_date_day_first(self) -> None:
        assert parse_date("03/04/2024") == date(2024, 4, 3)

    def test_unparseable_date(self) -> None:
        assert parse_date("next Tuesday") is None

    def test_normalize_date(self) -> None:
        assert normalize_date("2024-12-25") == "25/12/2024"

    def test_display_round_trip(self) -> None:
        assert parse_display_date(format_display_date(date(2024, 2, 29))) == date(2024, 2, 29)

    def test_parse_display_date_rejects_other_formats(self) -> None:
        assert parse_display_date("2024-02-29") is None
        assert parse_display_date(None) is None


class TestBuildExtractedData:
    def test_full_payload(self) -> None:
        data = build_extracted_data(
            {
                "invoice_number": "INV-42",
                "supplier_name": "  Telstra  ",
                "subtotal": "$1,000.00",
                "tax_amount": 100,
                "total_amount": 1100.004,
                "currency": "aud",
                "invoice_date": "2024-07-01",
                "due_date": "31/07/2024",
                "items": [{"description": "Mobile plan", "quantity": 1, "unit_price": "1000", "total": 1000}],
                "suggested_category": "Communications",
                "category_confidence": 0.9,
            }
        )
        assert data.invoice_number == "INV-42"
        assert data.supplier_name == "Telstra"
        assert data.subtotal == 1000.0
        assert data.total_amount == 1100.0
        assert data.currency == "AUD"
        assert data.invoice_date == "01/07/2024"
        assert data.invoice_date_value == date(2024, 7, 1)
        assert data.due_date == "31/07/2024"
        assert data.items[0].unit_price == 1000.0
        assert data.suggested_category == "COMMUNICATIONS"

    def test_empty_payload_gives_all_none(self) -> None:
        data = build_extracted_data({})
        assert data.total_amount is None
        assert data.supplier_name is None
        assert data.items == ()

    def test_accepts_camel_case_keys(self) -> None:
        data = build_extracted_data({"totalAmount": 55.5, "supplierName": "Acme"})
        assert data.total_amount == 55.5
        assert data.supplier_name == "Acme"

    def test_numeric_text_fields_become_strings(self) -> None:
        assert build_extracted_data({"invoice_number": 1234}).invoice_number == "1234"

    def test_rejects_object_as_text(self) -> None:
        with pytest.raises(InvalidAIResponseError, match="supplier_name"):
            build_extracted_data({"supplier_name": {"name": "x"}})

    def test_rejects_boolean_amount(self) -> None:
        with pytest.raises(InvalidAIResponseError, match="total_amount"):
            build_extracted_data({"total_amount": True})

    def test_rejects_unparseable_amount(self) -> None:
        with pytest.raises(InvalidAIResponseError, match="not a number"):
            build_extracted_data({"total_amount": "1.2.3"})

    def test_blank_amount_is_none(self) -> None:
        assert build_extracted_data({"subtotal": "N/A"}).subtotal is None

    def test_unparseable_date_dropped(self) -> None:
        assert build_extracted_data({"invoice_date": "soon"}).invoice_date is None

    def test_items_must_be_list(self) -> None:
        with pytest.raises(InvalidAIResponseError, match="'items' must be a list"):
            build_extracted_data({"items": "lots"})

    def test_item_must_be_object(self) -> None:
        with pytest.raises(InvalidAIResponseError, match="Item at index 1 must be an object"):
            build_extracted_data({"items": [{"description": "a"}, "b"]})

    def test_item_field_errors_name_index(self) -> None:
        with pytest.raises(InvalidAIResponseError, match=r"items\[0\]\.quantity"):
            build_extracted_data({"items": [{"quantity": [1]}]})

    def test_confidence_clamped(self) -> None:
        assert build_extracted_data({"category_confidence": 1.7}).category_confidence == 1.0
        assert build_extracted_data({"category_confidence": -1}).category_confidence == 0.0

    def test_category_normalized(self) -> None:
        data = build_extracted_data({"suggested_category": "office supplies"})
        assert data.suggested_category == "OFFICE_SUPPLIES"

    def test_keeps_raw_payload(self) -> None:
        payload = {"total_amount": 5, "extra": "x"}
        assert build_extracted_data(payload).raw == payload
