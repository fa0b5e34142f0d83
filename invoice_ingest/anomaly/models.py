from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class AnomalyType(StrEnum):
    DUPLICATE_INVOICE = "DUPLICATE_INVOICE"
    AMOUNT_SPIKE = "AMOUNT_SPIKE"
    FUTURE_DATE = "FUTURE_DATE"
    OLD_DATE = "OLD_DATE"
    NEW_SUPPLIER = "NEW_SUPPLIER"
    SUPPLIER_MISMATCH = "SUPPLIER_MISMATCH"


class AnomalySeverity(StrEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


@dataclass(frozen=True)
class AnomalyDetail:
    type: AnomalyType
    severity: AnomalySeverity
    message: str
    suggested_action: str | None = None
    data: dict[str, Any] = field(default_factory=dict, hash=False)


@dataclass(frozen=True)
class AnomalyDetectionResult:
    """Anomalies found for one invoice. The flags are derived from ``details``."""

    details: tuple[AnomalyDetail, ...] = ()

    def _has(self, *types: AnomalyType) -> bool:
        return any(detail.type in types for detail in self.details)

    @property
    def is_duplicate(self) -> bool:
        return self._has(AnomalyType.DUPLICATE_INVOICE)

    @property
    def is_amount_anomaly(self) -> bool:
        return self._has(AnomalyType.AMOUNT_SPIKE)

    @property
    def is_date_anomaly(self) -> bool:
        return self._has(AnomalyType.FUTURE_DATE, AnomalyType.OLD_DATE)

    @property
    def is_supplier_anomaly(self) -> bool:
        return self._has(AnomalyType.NEW_SUPPLIER, AnomalyType.SUPPLIER_MISMATCH)

    @property
    def has_anomalies(self) -> bool:
        return bool(self.details)

    @property
    def highest_severity(self) -> AnomalySeverity | None:
        order = [AnomalySeverity.LOW, AnomalySeverity.MEDIUM, AnomalySeverity.HIGH]
        if not self.details:
            return None
        return max((detail.severity for detail in self.details), key=order.index)

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_duplicate": self.is_duplicate,
            "is_amount_anomaly": self.is_amount_anomaly,
            "is_date_anomaly": self.is_date_anomaly,
            "is_supplier_anomaly": self.is_supplier_anomaly,
            "details": [
                {
                    "type": detail.type.value,
                    "severity": detail.severity.value,
                    "message": detail.message,
                    "suggested_action": detail.suggested_action,
                    "data": detail.data,
                }
                for detail in self.details
            ],
        }
