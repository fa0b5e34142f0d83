from dataclasses import dataclass, field

from invoice_ingest.categories.catalog import InvoiceCategory


@dataclass(frozen=True)
class AlternativeCategory:
    category: InvoiceCategory
    confidence: float


@dataclass(frozen=True)
class CategorySuggestion:
    suggested_category: InvoiceCategory
    confidence: float
    reasoning: str
    alternative_categories: tuple[AlternativeCategory, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, object]:
        return {
            "suggested_category": self.suggested_category.value,
            "confidence": self.confidence,
            "reasoning": self.reasoning,
            "alternative_categories": [
                {"category": alt.category.value, "confidence": alt.confidence}
                for alt in self.alternative_categories
            ],
        }
