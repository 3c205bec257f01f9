from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from schemas.entities import DetectedSpan


class MaskingError(Exception):
    """Base class for every failure of a masking run."""


class InvalidInputError(MaskingError):
    """Raised when the caller supplies empty or unusable document text."""


class DetectionUnavailableError(MaskingError):
    """Raised when the classification capability fails or returns output
    that cannot be parsed. Retrying is left to the caller."""


class OverlapConflictError(MaskingError):
    """Raised when two detected spans claim overlapping character ranges."""

    def __init__(self, first: DetectedSpan, second: DetectedSpan) -> None:
        self.first = first
        self.second = second
        super().__init__(
            f"Spans overlap: {first.category.value} [{first.start}:{first.end}] "
            f"and {second.category.value} [{second.start}:{second.end}]"
        )
