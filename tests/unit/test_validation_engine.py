from datetime import date

from invoice_ingest.extraction.models import ExtractedInvoiceData, InvoiceItem
from invoice_ingest.validation.engine import ValidationEngine
from invoice_ingest.validation.models import SuggestionType, ValidationCode, WarningCode

_TODAY = date(2024, 7, 15)

def _make_data(**overrides: object) -> ExtractedInvoiceData:
    defaults: dict[str, object] = {
        "supplier_name": "Telstra",
        "subtotal": 100.0,
        "tax_amount": 10.0,
        "total_amount": 110.0,
        "currency": "AUD",
        "invoice_date": "01/07/2024",
    }
    defaults.update(overrides)
    return ExtractedInvoiceData(**defaults)  # type: ignore[arg-type]


class TestRequiredFields:
    def test_consistent_invoice_is_valid(self) -> None:
        result = ValidationEngine().validate(_make_data(), today=_TODAY)
        assert result.is_valid
        assert result.errors == ()

    def test_missing_total(self) -> None:
        result = ValidationEngine().validate(_make_data(total_amount=None), today=_TODAY)
        assert not result.is_valid
        assert result.error_codes() == [ValidationCode.MISSING_TOTAL]

    def test_missing_supplier(self) -> None:
        result = ValidationEngine().validate(_make_data(supplier_name=None), today=_TODAY)
        assert result.error_codes() == [ValidationCode.MISSING_SUPPLIER]

    def test_blank_supplier_counts_as_missing(self) -> None:
        result = ValidationEngine().validate(_make_data(supplier_name="   "), today=_TODAY)
        assert ValidationCode.MISSING_SUPPLIER in result.error_codes()

class TestArithmetic:
    def test_calculation_error_carries_expected_and_actual(self) -> None:
        result = ValidationEngine().validate(
            _make_data(subtotal=100.0, tax_amount=10.0, total_amount=120.0), today=_TODAY
        )
        assert result.error_codes() == [ValidationCode.CALCULATION_ERROR]
        assert result.errors[0].data == {"expected": 110.0, "actual": 120.0}

    def test_within_tolerance_is_valid(self) -> None:
        result = ValidationEngine().validate(_make_data(total_amount=110.01), today=_TODAY)
        assert result.is_valid

    def test_just_outside_tolerance(self) -> None:
        result = ValidationEngine().validate(_make_data(total_amount=110.02), today=_TODAY)
        assert result.error_codes() == [ValidationCode.CALCULATION_ERROR]

    def test_skipped_when_tax_missing(self) -> None:
        result = ValidationEngine().validate(
            _make_data(tax_amount=None, total_amount=150.0), today=_TODAY
        )
        assert result.is_valid

class TestWarnings:
    def test_missing_invoice_date(self) -> None:
        result = ValidationEngine().validate(_make_data(invoice_date=None), today=_TODAY)
        assert [w.code for w in result.warnings] == [WarningCode.MISSING_INVOICE_DATE]
        assert result.is_valid

    def test_due_before_invoice_date(self) -> None:
        result = ValidationEngine().validate(_make_data(due_date="30/06/2024"), today=_TODAY)
        assert WarningCode.DUE_DATE_BEFORE_INVOICE_DATE in [w.code for w in result.warnings]

    def test_missing_tax_suggests_difference(self) -> None:
        result = ValidationEngine().validate(_make_data(tax_amount=None), today=_TODAY)
        warning = next(w for w in result.warnings if w.code is WarningCode.MISSING_TAX)
        assert warning.suggested_value == 10.0

    def test_tax_rate_mismatch(self) -> None:
        result = ValidationEngine().validate(_make_data(tax_rate=15), today=_TODAY)
        warning = next(w for w in result.warnings if w.code is WarningCode.TAX_RATE_MISMATCH)
        assert warning.suggested_value == 15.0

    def test_items_sum_mismatch(self) -> None:
        data = _make_data(items=(InvoiceItem("a", total=40.0), InvoiceItem("b", total=40.0)))
        result = ValidationEngine().validate(data, today=_TODAY)
        warning = next(w for w in result.warnings if w.code is WarningCode.ITEMS_TOTAL_MISMATCH)
        assert warning.suggested_value == 80.0
        assert result.is_valid

class TestSuggestions:
    def _types(self, data: ExtractedInvoiceData, known: tuple[str, ...] = ()) -> list[SuggestionType]:
        result = ValidationEngine().validate(data, known_suppliers=known, today=_TODAY)
        return [s.type for s in result.suggestions]

    def test_uncertain_category_asks_for_review(self) -> None:
        types = self._types(_make_data(suggested_category="UTILITIES", category_confidence=0.5))
        assert SuggestionType.CATEGORY in types

    def test_confident_category_needs_no_review(self) -> None:
        types = self._types(_make_data(suggested_category="UTILITIES", category_confidence=0.85))
        assert SuggestionType.CATEGORY not in types

    def test_very_low_confidence_gives_no_category_suggestion(self) -> None:
        types = self._types(_make_data(category_confidence=0.2))
        assert SuggestionType.CATEGORY not in types

    def test_supplier_correction_for_close_name(self) -> None:
        result = ValidationEngine().validate(
            _make_data(supplier_name="Telstraa"), known_suppliers=("Telstra",), today=_TODAY
        )
        suggestion = next(s for s in result.suggestions if s.type is SuggestionType.SUPPLIER_CORRECTION)
        assert suggestion.data["suggested"] == "Telstra"

    def test_no_supplier_correction_for_exact_match(self) -> None:
        types = self._types(_make_data(supplier_name="TELSTRA PTY LTD"), known=("Telstra",))
        assert SuggestionType.SUPPLIER_CORRECTION not in types

    def test_tax_deduction_when_tax_present(self) -> None:
        assert SuggestionType.TAX_DEDUCTION in self._types(_make_data())
        assert SuggestionType.TAX_DEDUCTION not in self._types(_make_data(tax_amount=0.0, total_amount=100.0))

    def test_payment_reminder_for_upcoming_due_date(self) -> None:
        result = ValidationEngine().validate(_make_data(due_date="25/07/2024"), today=_TODAY)
        reminder = next(s for s in result.suggestions if s.type is SuggestionType.PAYMENT_REMINDER)
        assert reminder.data["days_until_due"] == 10

    def test_no_reminder_for_past_due_date(self) -> None:
        assert SuggestionType.PAYMENT_REMINDER not in self._types(_make_data(due_date="10/07/2024"))

    def test_suggestions_never_affect_validity(self) -> None:
        result = ValidationEngine().validate(
            _make_data(category_confidence=0.4, due_date="25/07/2024"), today=_TODAY
        )
        assert result.suggestions
        assert result.is_valid

class TestToDict:
    def test_serializes_codes_as_strings(self) -> None:
        result = ValidationEngine().validate(_make_data(total_amount=None), today=_TODAY)
        payload = result.to_dict()
        assert payload["is_valid"] is False
        assert payload["errors"][0]["code"] == "MISSING_TOTAL"
        assert payload["errors"][0]["severity"] == "ERROR"
