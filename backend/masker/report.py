from __future__ import annotations

from schemas.api import MaskedEntityRecord, MaskingResult
from schemas.entities import EntityGroup


def build_report(masked_text: str, groups: list[EntityGroup]) -> MaskingResult:
    """Assemble the final result.

    One record per replaced span, in document order. Repeated mentions of
    the same entity produce repeated records carrying the same token.
    """
    placements = sorted(
        (
            (span.start, group.category.value, span.original_text, group.placeholder_token)
            for group in groups
            for span in group.members
        ),
        key=lambda p: p[0],
    )
    records = [
        MaskedEntityRecord(entity_type=entity_type, original_text=original, masked_text=token)
        for _, entity_type, original, token in placements
    ]
    return MaskingResult(masked_text=masked_text, masked_entities=records)


def summarize_counts(result: MaskingResult) -> dict[str, int]:
    """entity_type -> number of masked spans."""
    counts: dict[str, int] = {}
    for record in result.masked_entities:
        counts[record.entity_type] = counts.get(record.entity_type, 0) + 1
    return counts
