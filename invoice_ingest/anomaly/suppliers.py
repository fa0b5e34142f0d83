"""Supplier name normalization and fuzzy matching."""

import re
from collections.abc import Iterable
from difflib import SequenceMatcher

_LEGAL_SUFFIXES = frozenset(
    {"pty", "ltd", "limited", "inc", "incorporated", "llc", "co", "corp", "corporation", "plc", "gmbh"}
)
_NON_WORD = re.compile(r"[^a-z0-9]+")


def normalize_supplier_name(name: str | None) -> str:
    """Lowercase, strip punctuation and trailing company-form words."""
    if not name:
        return ""
    words = _NON_WORD.sub(" ", name.lower()).split()
    while len(words) > 1 and words[-1] in _LEGAL_SUFFIXES:
        words.pop()
    return " ".join(words)


def supplier_similarity(a: str | None, b: str | None) -> float:
    left, right = normalize_supplier_name(a), normalize_supplier_name(b)
    if not left or not right:
        return 0.0
    return SequenceMatcher(None, left, right).ratio()


def closest_supplier(
    name: str | None,
    known: Iterable[str],
    threshold: float,
) -> tuple[str, float] | None:
    """Best known name with similarity >= threshold that is not an exact match."""
    target = normalize_supplier_name(name)
    if not target:
        return None
    best: tuple[str, float] | None = None
    for candidate in known:
        if normalize_supplier_name(candidate) == target:
            return None
        score = supplier_similarity(name, candidate)
        if score >= threshold and (best is None or score > best[1]):
            best = (candidate, score)
    return best
