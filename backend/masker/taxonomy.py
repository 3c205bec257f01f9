from __future__ import annotations

import re
from enum import Enum


class EntityCategory(str, Enum):
    """Closed set of sensitive-entity categories the masker knows about."""

    PERSON_NAME = "PERSON_NAME"
    ORGANIZATION = "ORGANIZATION"
    ADDRESS = "ADDRESS"
    LAND_DETAIL = "LAND_DETAIL"
    PHONE_NUMBER = "PHONE_NUMBER"
    EMAIL = "EMAIL"
    ID_NUMBER = "ID_NUMBER"
    FINANCIAL = "FINANCIAL"
    DATE_OF_BIRTH = "DATE_OF_BIRTH"
    SIGNATURE = "SIGNATURE"


class FinancialSubtype(str, Enum):
    ACCOUNT_NUMBER = "ACCOUNT_NUMBER"
    AMOUNT = "AMOUNT"


# ---------------------------------------------------------------------------
# Placeholder prefixes
# ---------------------------------------------------------------------------

PLACEHOLDER_PREFIXES: dict[EntityCategory, str] = {
    EntityCategory.PERSON_NAME: "PERSON_NAME",
    EntityCategory.ORGANIZATION: "ORGANIZATION",
    EntityCategory.ADDRESS: "ADDRESS",
    EntityCategory.LAND_DETAIL: "LAND_DETAIL",
    EntityCategory.PHONE_NUMBER: "PHONE_NUMBER",
    EntityCategory.EMAIL: "EMAIL",
    EntityCategory.ID_NUMBER: "ID_NUMBER",
    EntityCategory.FINANCIAL: "FINANCIAL",
    EntityCategory.DATE_OF_BIRTH: "DOB",
    EntityCategory.SIGNATURE: "SIGNATURE",
}

SUBTYPE_PREFIXES: dict[FinancialSubtype, str] = {
    FinancialSubtype.ACCOUNT_NUMBER: "ACCOUNT_NUMBER",
    FinancialSubtype.AMOUNT: "AMOUNT",
}

# Labels other tools (and older prompts) use for the same categories.
CATEGORY_ALIASES: dict[str, tuple[EntityCategory, FinancialSubtype | None]] = {
    "PERSON": (EntityCategory.PERSON_NAME, None),
    "NAME": (EntityCategory.PERSON_NAME, None),
    "ORG": (EntityCategory.ORGANIZATION, None),
    "LAND_DETAILS": (EntityCategory.LAND_DETAIL, None),
    "PHONE": (EntityCategory.PHONE_NUMBER, None),
    "ID": (EntityCategory.ID_NUMBER, None),
    "DOB": (EntityCategory.DATE_OF_BIRTH, None),
    "ACCOUNT_NUMBER": (EntityCategory.FINANCIAL, FinancialSubtype.ACCOUNT_NUMBER),
    "AMOUNT": (EntityCategory.FINANCIAL, FinancialSubtype.AMOUNT),
}

# Order used to break ties between equally long overlapping detections.
CATEGORY_ORDER: dict[EntityCategory, int] = {
    category: index for index, category in enumerate(EntityCategory)
}

# Matches placeholder tokens such as [PERSON_NAME_1] or [DOB_12].
PLACEHOLDER_RE = re.compile(r"\[[A-Z][A-Z_]*_\d+\]")


def placeholder_prefix(
    category: EntityCategory,
    subtype: FinancialSubtype | None = None,
) -> str:
    """Return the token prefix for *category* (and financial *subtype*)."""
    if category is EntityCategory.FINANCIAL and subtype is not None:
        return SUBTYPE_PREFIXES[subtype]
    return PLACEHOLDER_PREFIXES[category]


def placeholder_token(prefix: str, ordinal: int) -> str:
    return f"[{prefix}_{ordinal}]"


def parse_category(label: str) -> tuple[EntityCategory, FinancialSubtype | None]:
    """Map a classifier label onto the taxonomy.

    Raises ``ValueError`` for labels outside the closed taxonomy.
    """
    key = label.strip().upper().replace(" ", "_").replace("-", "_")
    if key in EntityCategory.__members__:
        return EntityCategory[key], None
    if key in CATEGORY_ALIASES:
        return CATEGORY_ALIASES[key]
    raise ValueError(f"Unknown entity category: {label!r}")


# ---------------------------------------------------------------------------
# Exclusions
# ---------------------------------------------------------------------------

# Generic party roles. Capitalised in contracts but never identifying.
ROLE_LABELS: frozenset[str] = frozenset({
    "landlord", "tenant", "lessor", "lessee", "licensor", "licensee",
    "buyer", "seller", "vendor", "vendee", "purchaser", "owner",
    "plaintiff", "defendant", "petitioner", "respondent", "appellant",
    "employer", "employee", "borrower", "lender", "guarantor", "surety",
    "mortgagor", "mortgagee", "assignor", "assignee", "grantor", "grantee",
    "party", "parties", "first party", "second party", "witness",
    "witnesses", "agent", "principal", "contractor", "client", "company",
    "consultant", "developer", "builder", "donor", "donee", "executor",
    "trustee", "beneficiary", "attorney", "advocate", "notary",
})

BOILERPLATE_TERMS: frozenset[str] = frozenset({
    "agreement", "this agreement", "deed", "lease deed", "sale deed",
    "whereas", "witnesseth", "now therefore", "in witness whereof",
    "schedule", "recitals", "definitions", "term", "termination",
    "indemnity", "governing law", "jurisdiction", "force majeure",
    "confidentiality", "arbitration", "notices", "effective date",
})

_HEADING_RE = re.compile(
    r"^(article|section|clause|schedule|annexure|annex|exhibit|appendix|part)"
    r"\s+[\w.()-]+$",
    re.IGNORECASE,
)

_LEADING_ARTICLE_RE = re.compile(r"^(the|said|such)\s+", re.IGNORECASE)


def is_excluded(text: str) -> bool:
    """True when *text* is a role label, heading or legal boilerplate."""
    normalized = " ".join(text.split()).strip(" .,;:'\"")
    if not normalized:
        return True
    lowered = _LEADING_ARTICLE_RE.sub("", normalized.lower())
    if lowered in ROLE_LABELS or lowered in BOILERPLATE_TERMS:
        return True
    return bool(_HEADING_RE.match(normalized))


# ---------------------------------------------------------------------------
# Taxonomy description (sent to the classification capability)
# ---------------------------------------------------------------------------

CATEGORY_DESCRIPTIONS: dict[EntityCategory, str] = {
    EntityCategory.PERSON_NAME: "Personal names: full names, first names, last names, initials",
    EntityCategory.ORGANIZATION: "Company, business and partnership firm names",
    EntityCategory.ADDRESS: "Addresses: street, house number, building, city, state, PIN/ZIP code",
    EntityCategory.LAND_DETAIL: "Survey, plot, property and cadastral numbers; extent/area measurements",
    EntityCategory.PHONE_NUMBER: "Phone, mobile and landline numbers, with or without country code",
    EntityCategory.EMAIL: "Email addresses",
    EntityCategory.ID_NUMBER: (
        "National ID, tax ID, passport, driving licence, voter ID and business "
        "registration numbers (e.g. Aadhaar, PAN, GST, SSN)"
    ),
    EntityCategory.FINANCIAL: (
        "Bank account numbers, routing/sort/IFSC codes (subtype ACCOUNT_NUMBER) "
        "and monetary amounts or salary figures (subtype AMOUNT)"
    ),
    EntityCategory.DATE_OF_BIRTH: "Dates that are birth dates (never contract or effective dates)",
    EntityCategory.SIGNATURE: "References to signatures or thumbprints",
}


def describe_taxonomy() -> list[dict[str, str]]:
    """Category name, placeholder prefix and description for each category."""
    return [
        {
            "entityType": category.value,
            "prefix": PLACEHOLDER_PREFIXES[category],
            "description": CATEGORY_DESCRIPTIONS[category],
        }
        for category in EntityCategory
    ]
