from dataclasses import dataclass
from enum import StrEnum


class InvoiceCategory(StrEnum):
    OFFICE_SUPPLIES = "OFFICE_SUPPLIES"
    TRAVEL_TRANSPORT = "TRAVEL_TRANSPORT"
    MEALS_ENTERTAINMENT = "MEALS_ENTERTAINMENT"
    SOFTWARE_TECH = "SOFTWARE_TECH"
    RENT_UTILITIES = "RENT_UTILITIES"
    UTILITIES = "UTILITIES"
    COMMUNICATIONS = "COMMUNICATIONS"
    REPAIRS_MAINTENANCE = "REPAIRS_MAINTENANCE"
    TRAINING_EDUCATION = "TRAINING_EDUCATION"
    FINANCIAL_SERVICES = "FINANCIAL_SERVICES"
    MARKETING_ADVERTISING = "MARKETING_ADVERTISING"
    LEGAL_CONSULTING = "LEGAL_CONSULTING"
    OTHER = "OTHER"


@dataclass(frozen=True)
class CategoryInfo:
    name: str
    keywords: tuple[str, ...]


CATEGORY_CATALOG: dict[InvoiceCategory, CategoryInfo] = {
    InvoiceCategory.OFFICE_SUPPLIES: CategoryInfo(
        "Office Supplies", ("office", "supplies", "equipment", "stationery")
    ),
    InvoiceCategory.TRAVEL_TRANSPORT: CategoryInfo(
        "Travel & Transport", ("travel", "transport", "hotel", "flight", "taxi", "uber")
    ),
    InvoiceCategory.MEALS_ENTERTAINMENT: CategoryInfo(
        "Meals & Entertainment", ("meal", "restaurant", "entertainment", "dining", "catering")
    ),
    InvoiceCategory.SOFTWARE_TECH: CategoryInfo(
        "Software & Technology",
        ("software", "tech", "technology", "license", "saas", "subscription"),
    ),
    InvoiceCategory.RENT_UTILITIES: CategoryInfo(
        "Rent & Utilities", ("rent", "lease", "office", "workspace")
    ),
    InvoiceCategory.UTILITIES: CategoryInfo(
        "Utilities", ("electric", "electricity", "gas", "water", "utility", "power")
    ),
    InvoiceCategory.COMMUNICATIONS: CategoryInfo(
        "Communications",
        ("phone", "internet", "communication", "mobile", "broadband", "wifi"),
    ),
    InvoiceCategory.REPAIRS_MAINTENANCE: CategoryInfo(
        "Repairs & Maintenance", ("repair", "maintenance", "service", "fix", "upgrade")
    ),
    InvoiceCategory.TRAINING_EDUCATION: CategoryInfo(
        "Training & Education",
        ("training", "education", "course", "certification", "learning", "development"),
    ),
    InvoiceCategory.FINANCIAL_SERVICES: CategoryInfo(
        "Financial Services",
        ("bank", "banking", "financial", "fee", "interest", "loan", "insurance"),
    ),
    InvoiceCategory.MARKETING_ADVERTISING: CategoryInfo(
        "Marketing & Advertising",
        ("marketing", "advertising", "promotion", "ads", "campaign", "social"),
    ),
    InvoiceCategory.LEGAL_CONSULTING: CategoryInfo(
        "Legal & Consulting",
        ("legal", "lawyer", "consulting", "consultant", "advice", "professional"),
    ),
    InvoiceCategory.OTHER: CategoryInfo("Other", ("other", "miscellaneous", "general")),
}

GOOD_SUGGESTION_THRESHOLD = 0.6
HIGH_CONFIDENCE_THRESHOLD = 0.8
DEFAULT_CONFIDENCE = 0.3


def category_name(category: InvoiceCategory) -> str:
    return CATEGORY_CATALOG[category].name


def resolve_category(value: str | None) -> InvoiceCategory | None:
    """Match a model-provided key or display name to a category."""
    if not value:
        return None
    key = value.strip().upper()
    try:
        return InvoiceCategory(key)
    except ValueError:
        pass
    lowered = value.strip().lower()
    for category, info in CATEGORY_CATALOG.items():
        if info.name.lower() == lowered or category.replace("_", " ").lower() == lowered:
            return category
    return None
