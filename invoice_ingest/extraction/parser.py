"""Builds ExtractedInvoiceData from the model's parsed JSON object.

Missing keys and nulls are accepted everywhere. Values of the wrong type are
rejected with InvalidAIResponseError so a malformed reply never reaches
validation.
"""

import re
from typing import Any

from invoice_ingest.extraction.dates import normalize_date
from invoice_ingest.extraction.exceptions import InvalidAIResponseError
from invoice_ingest.extraction.models import ExtractedInvoiceData, InvoiceItem
from invoice_ingest.logging.logger import Log

_MAX_ITEMS = 200
_NUMERIC_NOISE = re.compile(r"[^\d.\-]")
_CAMEL_BOUNDARY = re.compile(r"_([a-z])")


def build_extracted_data(data: dict[str, Any]) -> ExtractedInvoiceData:
    """Validate raw parsed JSON and build an ExtractedInvoiceData.

    Raises:
        InvalidAIResponseError: when a present field has the wrong type.
    """
    return ExtractedInvoiceData(
        invoice_number=_text(data, "invoice_number"),
        supplier_name=_text(data, "supplier_name"),
        supplier_address=_text(data, "supplier_address"),
        supplier_tax_id=_text(data, "supplier_tax_id"),
        description=_text(data, "description"),
        subtotal=_money(data, "subtotal"),
        tax_amount=_money(data, "tax_amount"),
        tax_rate=_money(data, "tax_rate"),
        total_amount=_money(data, "total_amount"),
        currency=_currency(data),
        invoice_date=_date(data, "invoice_date"),
        due_date=_date(data, "due_date"),
        items=_items(_get(data, "items")),
        suggested_category=_category(data),
        category_confidence=_confidence(data),
        category_reasoning=_text(data, "category_reasoning"),
        raw=dict(data),
    )


def _get(data: dict[str, Any], key: str) -> Any:
    if key in data:
        return data[key]
    return data.get(_CAMEL_BOUNDARY.sub(lambda m: m.group(1).upper(), key))


def _text(data: dict[str, Any], key: str, where: str = "") -> str | None:
    return _coerce_text(_get(data, key), f"{where}{key}")


def _coerce_text(raw: Any, label: str) -> str | None:
    if raw is None:
        return None
    if isinstance(raw, bool) or not isinstance(raw, (str, int, float)):
        raise InvalidAIResponseError(f"'{label}' must be a string or null")
    text = str(raw).strip()
    return text or None


def _money(data: dict[str, Any], key: str, where: str = "") -> float | None:
    return _coerce_number(_get(data, key), f"{where}{key}")


def _coerce_number(raw: Any, label: str) -> float | None:
    if raw is None:
        return None
    if isinstance(raw, bool):
        raise InvalidAIResponseError(f"'{label}' must be a number or null")
    if isinstance(raw, (int, float)):
        return round(float(raw), 2)
    if isinstance(raw, str):
        cleaned = _NUMERIC_NOISE.sub("", raw)
        if not cleaned:
            return None
        try:
            return round(float(cleaned), 2)
        except ValueError as exc:
            raise InvalidAIResponseError(f"'{label}' is not a number: {raw!r}") from exc
    raise InvalidAIResponseError(f"'{label}' must be a number or null")


def _currency(data: dict[str, Any]) -> str | None:
    currency = _text(data, "currency")
    return currency.upper() if currency else None


def _date(data: dict[str, Any], key: str) -> str | None:
    raw = _get(data, key)
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise InvalidAIResponseError(f"'{key}' must be a date string or null")
    if not raw.strip():
        return None
    normalized = normalize_date(raw)
    if normalized is None:
        Log.debug(f"Dropping unparseable {key}: {raw!r}")
    return normalized


def _items(raw: Any) -> tuple[InvoiceItem, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise InvalidAIResponseError("'items' must be a list or null")
    if len(raw) > _MAX_ITEMS:
        raise InvalidAIResponseError(f"Too many items: {len(raw)} (max {_MAX_ITEMS})")
    return tuple(_item(entry, index) for index, entry in enumerate(raw))


def _item(raw: Any, index: int) -> InvoiceItem:
    if not isinstance(raw, dict):
        raise InvalidAIResponseError(f"Item at index {index} must be an object")
    where = f"items[{index}]."
    return InvoiceItem(
        description=_text(raw, "description", where) or "",
        quantity=_money(raw, "quantity", where),
        unit_price=_money(raw, "unit_price", where),
        total=_money(raw, "total", where),
        tax_rate=_money(raw, "tax_rate", where),
    )


def _category(data: dict[str, Any]) -> str | None:
    category = _text(data, "suggested_category")
    if category is None:
        return None
    return re.sub(r"[^A-Z0-9]+", "_", category.upper()).strip("_") or None


def _confidence(data: dict[str, Any]) -> float | None:
    value = _coerce_number(_get(data, "category_confidence"), "category_confidence")
    if value is None:
        return None
    return max(0.0, min(1.0, value))
