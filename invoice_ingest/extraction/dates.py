import re
from datetime import date, datetime

DISPLAY_DATE_FORMAT = "%d/%m/%Y"

_INPUT_FORMATS = (
    "%Y-%m-%d",
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%d.%m.%Y",
    "%Y/%m/%d",
    "%d/%m/%y",
    "%d %B %Y",
    "%d %b %Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%b %d %Y",
)
_ISO_DATETIME = re.compile(r"^(\d{4}-\d{2}-\d{2})[T ]")
_ORDINAL_SUFFIX = re.compile(r"(\d{1,2})(st|nd|rd|th)\b", re.IGNORECASE)


def parse_date(value: str) -> date | None:
    """Parse the date formats invoices commonly use; day-first when ambiguous."""
    text = value.strip()
    iso = _ISO_DATETIME.match(text)
    if iso:
        text = iso.group(1)
    text = _ORDINAL_SUFFIX.sub(r"\1", text)
    for fmt in _INPUT_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def normalize_date(value: str) -> str | None:
    parsed = parse_date(value)
    return format_display_date(parsed) if parsed else None


def format_display_date(value: date) -> str:
    return value.strftime(DISPLAY_DATE_FORMAT)


def parse_display_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return datetime.strptime(value, DISPLAY_DATE_FORMAT).date()
    except ValueError:
        return None
