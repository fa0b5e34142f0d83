"""Field and arithmetic checks for extracted invoices.

Errors block the "valid" verdict and send the record to review. Warnings and
suggestions are advisory and never change the verdict.
"""

from collections.abc import Iterable
from datetime import date

from invoice_ingest.anomaly.suppliers import closest_supplier
from invoice_ingest.categories.catalog import DEFAULT_CONFIDENCE, GOOD_SUGGESTION_THRESHOLD
from invoice_ingest.extraction.dates import format_display_date
from invoice_ingest.extraction.models import ExtractedInvoiceData
from invoice_ingest.validation.models import (
    SuggestionType,
    ValidationCode,
    ValidationIssue,
    ValidationResult,
    ValidationSuggestion,
    ValidationWarning,
    WarningCode,
)

AMOUNT_TOLERANCE = 0.01
TAX_RATE_TOLERANCE = 0.05
SUPPLIER_MATCH_THRESHOLD = 0.85

MESSAGES = {
    ValidationCode.MISSING_TOTAL: "Please enter the total amount for this invoice",
    ValidationCode.MISSING_SUPPLIER: "Please enter the supplier name",
    ValidationCode.CALCULATION_ERROR: (
        "The total amount doesn't match the subtotal plus tax. Please double-check your numbers"
    ),
}


class ValidationEngine:
    """Checks required fields and amounts of an ExtractedInvoiceData."""

    def __init__(self, supplier_match_threshold: float = SUPPLIER_MATCH_THRESHOLD) -> None:
        self._supplier_match_threshold = supplier_match_threshold

    def validate(
        self,
        data: ExtractedInvoiceData,
        *,
        known_suppliers: Iterable[str] = (),
        today: date | None = None,
    ) -> ValidationResult:
        today = today or date.today()
        return ValidationResult(
            errors=tuple(self._errors(data)),
            warnings=tuple(self._warnings(data)),
            suggestions=tuple(self._suggestions(data, known_suppliers, today)),
        )

    def _errors(self, data: ExtractedInvoiceData) -> list[ValidationIssue]:
        errors: list[ValidationIssue] = []
        if data.total_amount is None:
            errors.append(_issue("total_amount", ValidationCode.MISSING_TOTAL))
        if not (data.supplier_name or "").strip():
            errors.append(_issue("supplier_name", ValidationCode.MISSING_SUPPLIER))
        if (
            data.subtotal is not None
            and data.tax_amount is not None
            and data.total_amount is not None
        ):
            expected = round(data.subtotal + data.tax_amount, 2)
            if abs(expected - data.total_amount) > AMOUNT_TOLERANCE + 1e-9:
                errors.append(
                    _issue(
                        "total_amount",
                        ValidationCode.CALCULATION_ERROR,
                        {"expected": expected, "actual": data.total_amount},
                    )
                )
        return errors

    def _warnings(self, data: ExtractedInvoiceData) -> list[ValidationWarning]:
        warnings: list[ValidationWarning] = []
        invoice_date = data.invoice_date_value
        due_date = data.due_date_value

        if invoice_date is None:
            warnings.append(
                ValidationWarning(
                    field="invoice_date",
                    code=WarningCode.MISSING_INVOICE_DATE,
                    message="Invoice date is missing. Please add the date shown on the invoice",
                )
            )
        if invoice_date is not None and due_date is not None and due_date < invoice_date:
            warnings.append(
                ValidationWarning(
                    field="due_date",
                    code=WarningCode.DUE_DATE_BEFORE_INVOICE_DATE,
                    message="Due date is before the invoice date",
                )
            )

        if data.tax_amount is None and data.subtotal is not None and data.total_amount is not None:
            implied_tax = round(data.total_amount - data.subtotal, 2)
            if implied_tax >= 0:
                warnings.append(
                    ValidationWarning(
                        field="tax_amount",
                        code=WarningCode.MISSING_TAX,
                        message="Tax amount is missing; it can be derived from total minus subtotal",
                        suggested_value=implied_tax,
                    )
                )

        if data.tax_rate is not None and data.subtotal is not None and data.tax_amount is not None:
            expected_tax = round(data.subtotal * data.tax_rate / 100, 2)
            if abs(expected_tax - data.tax_amount) > TAX_RATE_TOLERANCE:
                warnings.append(
                    ValidationWarning(
                        field="tax_amount",
                        code=WarningCode.TAX_RATE_MISMATCH,
                        message=(
                            f"Tax amount doesn't match {data.tax_rate:g}% of the subtotal"
                        ),
                        suggested_value=expected_tax,
                    )
                )

        item_totals = [item.total for item in data.items]
        if data.subtotal is not None and item_totals and all(t is not None for t in item_totals):
            items_sum = round(sum(t for t in item_totals if t is not None), 2)
            if abs(items_sum - data.subtotal) > AMOUNT_TOLERANCE + 1e-9:
                warnings.append(
                    ValidationWarning(
                        field="subtotal",
                        code=WarningCode.ITEMS_TOTAL_MISMATCH,
                        message="Line items don't add up to the subtotal",
                        suggested_value=items_sum,
                    )
                )
        return warnings

    def _suggestions(
        self,
        data: ExtractedInvoiceData,
        known_suppliers: Iterable[str],
        today: date,
    ) -> list[ValidationSuggestion]:
        suggestions: list[ValidationSuggestion] = []

        confidence = data.category_confidence
        if confidence is not None and DEFAULT_CONFIDENCE < confidence < GOOD_SUGGESTION_THRESHOLD:
            suggestions.append(
                ValidationSuggestion(
                    type=SuggestionType.CATEGORY,
                    message="The suggested category is uncertain. Please review the category",
                    data={"suggested_category": data.suggested_category},
                    confidence=confidence,
                )
            )

        match = closest_supplier(data.supplier_name, known_suppliers, self._supplier_match_threshold)
        if match is not None:
            name, score = match
            suggestions.append(
                ValidationSuggestion(
                    type=SuggestionType.SUPPLIER_CORRECTION,
                    message=f'Did you mean "{name}"?',
                    data={"extracted": data.supplier_name, "suggested": name},
                    confidence=round(score, 2),
                )
            )

        if data.tax_amount is not None and data.tax_amount > 0:
            suggestions.append(
                ValidationSuggestion(
                    type=SuggestionType.TAX_DEDUCTION,
                    message="This invoice includes tax that may be claimable",
                    data={"tax_amount": data.tax_amount, "currency": data.currency},
                )
            )

        due_date = data.due_date_value
        if due_date is not None and due_date >= today:
            days = (due_date - today).days
            suggestions.append(
                ValidationSuggestion(
                    type=SuggestionType.PAYMENT_REMINDER,
                    message=f"Payment is due on {format_display_date(due_date)}",
                    data={"due_date": data.due_date, "days_until_due": days},
                )
            )
        return suggestions


def _issue(
    field: str,
    code: ValidationCode,
    data: dict[str, object] | None = None,
) -> ValidationIssue:
    return ValidationIssue(field=field, code=code, message=MESSAGES[code], data=data or {})
