"""Flags irregular invoices against the user's stored history.

Thresholds:
    duplicate      same supplier and total (within 0.01) dated within
                   ``duplicate_window_days``, or same supplier and invoice number.
    amount spike   total >= ``spike_factor`` x median of the supplier's past
                   totals (at least 2), else of all the user's totals (at least
                   ``min_history``). HIGH from twice the factor.
    old date       older than ``old_date_days``; MEDIUM beyond twice that.
"""

from collections.abc import Sequence
from datetime import date, timedelta
from statistics import median

from invoice_ingest.anomaly.history import HistoricalInvoice, InMemoryInvoiceHistory, InvoiceHistory
from invoice_ingest.anomaly.models import (
    AnomalyDetail,
    AnomalyDetectionResult,
    AnomalySeverity,
    AnomalyType,
)
from invoice_ingest.anomaly.suppliers import closest_supplier, normalize_supplier_name
from invoice_ingest.extraction.dates import format_display_date
from invoice_ingest.extraction.models import ExtractedInvoiceData
from invoice_ingest.logging.logger import Log

AMOUNT_TOLERANCE = 0.01
SUPPLIER_BASELINE_MIN = 2


class AnomalyDetector:
    def __init__(
        self,
        *,
        duplicate_window_days: int = 7,
        spike_factor: float = 3.0,
        min_history: int = 3,
        old_date_days: int = 365,
        supplier_similarity: float = 0.85,
    ) -> None:
        self._duplicate_window = timedelta(days=duplicate_window_days)
        self._spike_factor = spike_factor
        self._min_history = min_history
        self._old_date_days = old_date_days
        self._supplier_similarity = supplier_similarity

    def detect(
        self,
        invoice: ExtractedInvoiceData,
        history: InvoiceHistory,
        user_id: str,
        today: date | None = None,
    ) -> AnomalyDetectionResult:
        today = today or date.today()
        snapshot = InMemoryInvoiceHistory(history.for_user(user_id))
        supplier_history = (
            snapshot.for_supplier(user_id, invoice.supplier_name) if invoice.supplier_name else ()
        )

        details: list[AnomalyDetail] = []
        for check in (
            self._check_duplicate(invoice, supplier_history),
            self._check_amount(invoice, supplier_history, snapshot.for_user(user_id)),
            self._check_date(invoice, today),
            self._check_supplier(invoice, snapshot.for_user(user_id), supplier_history),
        ):
            if check is not None:
                details.append(check)

        result = AnomalyDetectionResult(details=tuple(details))
        if details:
            Log.info(
                f"Detected {len(details)} anomalies for user {user_id}: "
                f"{', '.join(detail.type for detail in details)}"
            )
        return result

    def _check_duplicate(
        self,
        invoice: ExtractedInvoiceData,
        supplier_history: Sequence[HistoricalInvoice],
    ) -> AnomalyDetail | None:
        invoice_date = invoice.invoice_date_value
        number = _normalize_number(invoice.invoice_number)
        for previous in supplier_history:
            same_number = number is not None and number == _normalize_number(previous.invoice_number)
            same_amount_and_date = (
                invoice.total_amount is not None
                and previous.total_amount is not None
                and abs(invoice.total_amount - previous.total_amount) <= AMOUNT_TOLERANCE
                and invoice_date is not None
                and previous.invoice_date is not None
                and abs(invoice_date - previous.invoice_date) <= self._duplicate_window
            )
            if same_number or same_amount_and_date:
                return AnomalyDetail(
                    type=AnomalyType.DUPLICATE_INVOICE,
                    severity=AnomalySeverity.HIGH,
                    message=(
                        f"This looks like a duplicate of an existing invoice from "
                        f"{previous.supplier_name}"
                    ),
                    suggested_action="Check whether this invoice has already been recorded",
                    data={
                        "matching_invoice_id": previous.id,
                        "matched_on": "invoice_number" if same_number else "amount_and_date",
                    },
                )
        return None

    def _check_amount(
        self,
        invoice: ExtractedInvoiceData,
        supplier_history: Sequence[HistoricalInvoice],
        user_history: Sequence[HistoricalInvoice],
    ) -> AnomalyDetail | None:
        if invoice.total_amount is None:
            return None
        supplier_totals = _totals(supplier_history)
        if len(supplier_totals) >= SUPPLIER_BASELINE_MIN:
            baseline, scope = median(supplier_totals), "supplier"
        else:
            user_totals = _totals(user_history)
            if len(user_totals) < self._min_history:
                return None
            baseline, scope = median(user_totals), "overall"
        if baseline <= 0:
            return None

        ratio = invoice.total_amount / baseline
        if ratio < self._spike_factor:
            return None
        severity = (
            AnomalySeverity.HIGH if ratio >= self._spike_factor * 2 else AnomalySeverity.MEDIUM
        )
        return AnomalyDetail(
            type=AnomalyType.AMOUNT_SPIKE,
            severity=severity,
            message=(
                f"Amount {invoice.total_amount:.2f} is {ratio:.1f}x the usual "
                f"{scope} amount of {baseline:.2f}"
            ),
            suggested_action="Verify the total amount on the invoice",
            data={"baseline": round(baseline, 2), "ratio": round(ratio, 2), "scope": scope},
        )

    def _check_date(self, invoice: ExtractedInvoiceData, today: date) -> AnomalyDetail | None:
        invoice_date = invoice.invoice_date_value
        if invoice_date is None:
            return None
        if invoice_date > today:
            return AnomalyDetail(
                type=AnomalyType.FUTURE_DATE,
                severity=AnomalySeverity.MEDIUM,
                message=f"Invoice date {format_display_date(invoice_date)} is in the future",
                suggested_action="Check the invoice date",
            )
        age_days = (today - invoice_date).days
        if age_days > self._old_date_days:
            severity = (
                AnomalySeverity.MEDIUM
                if age_days > self._old_date_days * 2
                else AnomalySeverity.LOW
            )
            return AnomalyDetail(
                type=AnomalyType.OLD_DATE,
                severity=severity,
                message=f"Invoice date {format_display_date(invoice_date)} is {age_days} days old",
                suggested_action="Check the invoice date",
                data={"age_days": age_days},
            )
        return None

    def _check_supplier(
        self,
        invoice: ExtractedInvoiceData,
        user_history: Sequence[HistoricalInvoice],
        supplier_history: Sequence[HistoricalInvoice],
    ) -> AnomalyDetail | None:
        if not normalize_supplier_name(invoice.supplier_name) or supplier_history:
            return None
        known_names = {h.supplier_name for h in user_history if h.supplier_name}
        match = closest_supplier(invoice.supplier_name, sorted(known_names), self._supplier_similarity)
        if match is not None:
            name, score = match
            return AnomalyDetail(
                type=AnomalyType.SUPPLIER_MISMATCH,
                severity=AnomalySeverity.MEDIUM,
                message=f'Supplier "{invoice.supplier_name}" is very similar to "{name}"',
                suggested_action=f'Reconcile with existing supplier "{name}"',
                data={"existing_supplier": name, "similarity": round(score, 2)},
            )
        return AnomalyDetail(
            type=AnomalyType.NEW_SUPPLIER,
            severity=AnomalySeverity.LOW,
            message=f'First invoice from "{invoice.supplier_name}"',
        )


def _totals(invoices: Sequence[HistoricalInvoice]) -> list[float]:
    return [invoice.total_amount for invoice in invoices if invoice.total_amount is not None]


def _normalize_number(value: str | None) -> str | None:
    if not value:
        return None
    cleaned = "".join(ch for ch in value.lower() if ch.isalnum())
    return cleaned or None
