"""Prompt templates for sensitive-entity classification.

``build_taxonomy_prompt()`` renders the closed taxonomy into a system
instruction; ``build_user_prompt()`` wraps the document. The model only
labels spans. Placeholder numbering and substitution happen locally.
"""

from __future__ import annotations

from masker.taxonomy import CATEGORY_DESCRIPTIONS, EntityCategory

CLASSIFIER_PREAMBLE = (
    "You are a data privacy expert. Your task is to identify ALL sensitive "
    "personal information in a legal document.\n\n"
    "ENTITY TYPES:\n"
)

CLASSIFIER_RULES = (
    "\nRULES:\n"
    "- Report every occurrence's exact text, copied character for character "
    "from the document. Do not paraphrase, reformat or correct values.\n"
    "- Report a value once per distinct surface form; repeated identical "
    "mentions are found automatically.\n"
    "- For FINANCIAL, set \"subtype\" to ACCOUNT_NUMBER for account numbers "
    "and routing/sort/IFSC codes, or AMOUNT for monetary figures.\n"
    "- Do NOT report generic roles such as \"Landlord\", \"Tenant\", "
    "\"Lessee\", \"Lessor\" used as titles.\n"
    "- Do NOT report legal terminology, clause or section headings, or "
    "standard legal language.\n"
    "- Do NOT report contract, execution or effective dates; only birth dates.\n"
    "- Do NOT report bracketed placeholders such as [PERSON_NAME_1]; they are "
    "already masked.\n\n"
    "Respond with a JSON object only, in exactly this shape:\n"
    '{"entities": [{"entityType": "PERSON_NAME", "text": "John Smith", '
    '"subtype": null}]}\n'
    'If nothing is sensitive respond with {"entities": []}.'
)

USER_PROMPT_TEMPLATE = (
    "Identify all sensitive information in the following document:\n\n"
    "<document>\n{document}\n</document>"
)


def build_taxonomy_prompt() -> str:
    """Render the taxonomy and labelling rules as a system instruction."""
    lines = [
        f"{index}. {category.value}: {CATEGORY_DESCRIPTIONS[category]}"
        for index, category in enumerate(EntityCategory, start=1)
    ]
    return CLASSIFIER_PREAMBLE + "\n".join(lines) + "\n" + CLASSIFIER_RULES


def build_user_prompt(document: str) -> str:
    return USER_PROMPT_TEMPLATE.format(document=document)
