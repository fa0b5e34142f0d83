from pathlib import Path

from invoice_ingest.extraction.exceptions import ExtractionError

_DEFAULT_PROMPT_DIR = Path(__file__).parent / "prompts"


def _read(path: Path, what: str) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ExtractionError(f"Failed to load {what}: {exc}") from exc


def load_system_prompt(path: Path | None = None) -> str:
    """Load the system prompt. Defaults to the bundled system_prompt.txt.

    Raises:
        ExtractionError: if the file cannot be read.
    """
    return _read(path or _DEFAULT_PROMPT_DIR / "system_prompt.txt", "system prompt")


def load_user_prompt(path: Path | None = None) -> str:
    return _read(path or _DEFAULT_PROMPT_DIR / "user_prompt.txt", "user prompt")


def load_json_schema(path: Path | None = None) -> str:
    """Load the response JSON schema. Defaults to the bundled extraction_schema.json.

    Raises:
        ExtractionError: if the file cannot be read.
    """
    return _read(path or _DEFAULT_PROMPT_DIR / "extraction_schema.json", "JSON schema")
