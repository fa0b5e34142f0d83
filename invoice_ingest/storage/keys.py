import re
import secrets
import string
from datetime import datetime, timezone
from pathlib import PurePath

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]")
_REPEATED_UNDERSCORES = re.compile(r"_+")
_TOKEN_ALPHABET = string.ascii_lowercase + string.digits


def sanitize_file_name(name: str) -> str:
    cleaned = _UNSAFE_CHARS.sub("_", name)
    return _REPEATED_UNDERSCORES.sub("_", cleaned)


def generate_object_key(
    user_id: str,
    file_name: str,
    *,
    now: datetime | None = None,
    token: str | None = None,
) -> str:
    """Build ``invoices/{user}/{yyyy}/{mm}/{base}_{timestamp}_{token}.{ext}``."""
    now = now or datetime.now(timezone.utc)
    token = token or "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(6))
    path = PurePath(file_name)
    base = sanitize_file_name(path.stem) or "invoice"
    extension = sanitize_file_name(path.suffix.lstrip(".").lower()) or "bin"
    timestamp = int(now.timestamp() * 1000)
    return (
        f"invoices/{sanitize_file_name(str(user_id))}/{now:%Y}/{now:%m}/"
        f"{base}_{timestamp}_{token}.{extension}"
    )
