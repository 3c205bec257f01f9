from __future__ import annotations

from dataclasses import dataclass, field

from masker.taxonomy import (
    EntityCategory,
    FinancialSubtype,
    placeholder_prefix,
    placeholder_token,
)


@dataclass(frozen=True)
class DetectedSpan:
    """A single occurrence of sensitive content in the source text."""
    category: EntityCategory
    original_text: str
    start: int
    end: int
    subtype: FinancialSubtype | None = None
    confidence: float = 1.0
    source: str = "classifier"

    @property
    def length(self) -> int:
        return self.end - self.start

    @property
    def prefix(self) -> str:
        return placeholder_prefix(self.category, self.subtype)

    def overlaps(self, other: DetectedSpan) -> bool:
        return self.start < other.end and other.start < self.end


@dataclass
class EntityGroup:
    """All spans judged to refer to one real-world entity."""
    category: EntityCategory
    ordinal: int
    prefix: str
    members: list[DetectedSpan] = field(default_factory=list)

    @property
    def placeholder_token(self) -> str:
        return placeholder_token(self.prefix, self.ordinal)

    @property
    def first_offset(self) -> int:
        return self.members[0].start
