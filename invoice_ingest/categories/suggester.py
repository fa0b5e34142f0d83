"""Keyword and model blended spending-category suggestion."""

from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass

from invoice_ingest.categories.catalog import (
    CATEGORY_CATALOG,
    DEFAULT_CONFIDENCE,
    HIGH_CONFIDENCE_THRESHOLD,
    InvoiceCategory,
    category_name,
    resolve_category,
)
from invoice_ingest.categories.models import AlternativeCategory, CategorySuggestion
from invoice_ingest.logging.logger import Log

KEYWORD_BASE_CONFIDENCE = 0.5
KEYWORD_HIT_BONUS = 0.1
SUPPLIER_MATCH_BONUS = 0.1
KEYWORD_CONFIDENCE_CAP = 0.9
AGREEMENT_BONUS = 0.1
BLENDED_CONFIDENCE_CAP = 0.95
HISTORY_MIN_INVOICES = 2
MAX_ALTERNATIVES = 3

SUPPLIER_REASONING = 'Suggested "{name}" based on supplier name "{supplier}".'
DEFAULT_REASONING = 'Suggested "{name}" as default category.'


@dataclass(frozen=True)
class KeywordScore:
    category: InvoiceCategory
    hits: int
    supplier_hits: int

    @property
    def confidence(self) -> float:
        bonus = SUPPLIER_MATCH_BONUS if self.supplier_hits else 0.0
        value = KEYWORD_BASE_CONFIDENCE + KEYWORD_HIT_BONUS * (self.hits - 1) + bonus
        return round(min(KEYWORD_CONFIDENCE_CAP, value), 2)


def score_keywords(supplier_name: str | None, description: str | None) -> list[KeywordScore]:
    """Count case-insensitive keyword occurrences per category, best first."""
    supplier_text = (supplier_name or "").lower()
    description_text = (description or "").lower()
    scores: list[KeywordScore] = []
    for category, info in CATEGORY_CATALOG.items():
        supplier_hits = sum(supplier_text.count(keyword) for keyword in info.keywords)
        description_hits = sum(description_text.count(keyword) for keyword in info.keywords)
        if supplier_hits + description_hits:
            scores.append(KeywordScore(category, supplier_hits + description_hits, supplier_hits))
    scores.sort(key=lambda score: (score.hits, score.supplier_hits), reverse=True)
    return scores


class CategorySuggester:
    """Proposes a category for an invoice.

    A model suggestion above 0.8 confidence wins outright. Otherwise keyword
    evidence, the model's guess and the supplier's past categories are blended
    and the most confident candidate is chosen.
    """

    def suggest(
        self,
        supplier_name: str | None,
        description: str | None,
        ai_category: str | None = None,
        ai_confidence: float | None = None,
        historical_categories: Sequence[str | None] = (),
    ) -> CategorySuggestion:
        keyword_scores = score_keywords(supplier_name, description)
        supplier_matches = {s.category for s in keyword_scores if s.supplier_hits}
        model_category = resolve_category(ai_category)
        model_confidence = max(0.0, min(1.0, ai_confidence or 0.0))

        candidates: dict[InvoiceCategory, float] = {
            score.category: score.confidence for score in keyword_scores
        }

        if model_category is not None and model_confidence > HIGH_CONFIDENCE_THRESHOLD:
            chosen, confidence = model_category, round(model_confidence, 2)
        else:
            if model_category is not None and model_confidence > DEFAULT_CONFIDENCE:
                self._merge(candidates, model_category, model_confidence)
            history = self._history_candidate(historical_categories)
            if history is not None:
                self._merge(candidates, *history)
            if not candidates:
                return CategorySuggestion(
                    suggested_category=InvoiceCategory.OTHER,
                    confidence=DEFAULT_CONFIDENCE,
                    reasoning=DEFAULT_REASONING.format(name=category_name(InvoiceCategory.OTHER)),
                )
            chosen = max(candidates, key=lambda category: candidates[category])
            confidence = candidates[chosen]

        alternatives = sorted(
            (
                AlternativeCategory(category, value)
                for category, value in candidates.items()
                if category != chosen
            ),
            key=lambda alt: alt.confidence,
            reverse=True,
        )[:MAX_ALTERNATIVES]

        suggestion = CategorySuggestion(
            suggested_category=chosen,
            confidence=confidence,
            reasoning=self._reasoning(chosen, supplier_name, chosen in supplier_matches),
            alternative_categories=tuple(alternatives),
        )
        Log.debug(f"Category suggestion: {chosen} ({confidence})")
        return suggestion

    @staticmethod
    def _merge(
        candidates: dict[InvoiceCategory, float],
        category: InvoiceCategory,
        confidence: float,
    ) -> None:
        existing = candidates.get(category)
        if existing is None:
            candidates[category] = round(confidence, 2)
        else:
            blended = max(existing, confidence) + AGREEMENT_BONUS
            candidates[category] = round(min(BLENDED_CONFIDENCE_CAP, blended), 2)

    @staticmethod
    def _history_candidate(
        historical_categories: Sequence[str | None],
    ) -> tuple[InvoiceCategory, float] | None:
        resolved = [resolve_category(value) for value in historical_categories]
        known = [category for category in resolved if category is not None]
        if len(known) < HISTORY_MIN_INVOICES:
            return None
        category, count = Counter(known).most_common(1)[0]
        share = count / len(known)
        return category, min(0.9, 0.6 + share * 0.3)

    @staticmethod
    def _reasoning(category: InvoiceCategory, supplier_name: str | None, supplier_based: bool) -> str:
        name = category_name(category)
        if supplier_based and supplier_name:
            return SUPPLIER_REASONING.format(name=name, supplier=supplier_name.strip())
        return DEFAULT_REASONING.format(name=name)
