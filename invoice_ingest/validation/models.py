from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class ValidationCode(StrEnum):
    MISSING_TOTAL = "MISSING_TOTAL"
    MISSING_SUPPLIER = "MISSING_SUPPLIER"
    CALCULATION_ERROR = "CALCULATION_ERROR"


class WarningCode(StrEnum):
    MISSING_INVOICE_DATE = "MISSING_INVOICE_DATE"
    DUE_DATE_BEFORE_INVOICE_DATE = "DUE_DATE_BEFORE_INVOICE_DATE"
    MISSING_TAX = "MISSING_TAX"
    TAX_RATE_MISMATCH = "TAX_RATE_MISMATCH"
    ITEMS_TOTAL_MISMATCH = "ITEMS_TOTAL_MISMATCH"


class SuggestionType(StrEnum):
    CATEGORY = "CATEGORY"
    SUPPLIER_CORRECTION = "SUPPLIER_CORRECTION"
    TAX_DEDUCTION = "TAX_DEDUCTION"
    PAYMENT_REMINDER = "PAYMENT_REMINDER"


@dataclass(frozen=True)
class ValidationIssue:
    field: str
    code: ValidationCode
    message: str
    severity: str = "ERROR"
    data: dict[str, Any] = field(default_factory=dict, hash=False)


@dataclass(frozen=True)
class ValidationWarning:
    field: str
    code: WarningCode
    message: str
    suggested_value: Any = None


@dataclass(frozen=True)
class ValidationSuggestion:
    type: SuggestionType
    message: str
    data: dict[str, Any] = field(default_factory=dict, hash=False)
    confidence: float | None = None


@dataclass(frozen=True)
class ValidationResult:
    """Verdict for one extraction. Valid exactly when there are no errors."""

    errors: tuple[ValidationIssue, ...] = ()
    warnings: tuple[ValidationWarning, ...] = ()
    suggestions: tuple[ValidationSuggestion, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def error_codes(self) -> list[ValidationCode]:
        return [error.code for error in self.errors]

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "errors": [
                {
                    "field": e.field,
                    "code": e.code.value,
                    "message": e.message,
                    "severity": e.severity,
                    "data": e.data,
                }
                for e in self.errors
            ],
            "warnings": [
                {
                    "field": w.field,
                    "code": w.code.value,
                    "message": w.message,
                    "suggested_value": w.suggested_value,
                }
                for w in self.warnings
            ],
            "suggestions": [
                {
                    "type": s.type.value,
                    "message": s.message,
                    "data": s.data,
                    "confidence": s.confidence,
                }
                for s in self.suggestions
            ],
        }
