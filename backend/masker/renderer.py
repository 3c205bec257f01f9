from __future__ import annotations

from masker.errors import OverlapConflictError
from schemas.entities import DetectedSpan, EntityGroup


class PlaceholderRenderer:
    """Splices placeholder tokens into the source text by offset."""

    def render(self, text: str, groups: list[EntityGroup]) -> str:
        """Replace each member span of *groups* with its group's token.

        Spans are applied from the end of the string so that earlier offsets
        remain valid as replacements change the string length. Text outside
        the spans is copied unchanged.

        Raises
        ------
        OverlapConflictError
            If any two spans share a character.
        ValueError
            If a span's offsets do not point at its original text.
        """
        placements: list[tuple[DetectedSpan, str]] = [
            (span, group.placeholder_token)
            for group in groups
            for span in group.members
        ]
        placements.sort(key=lambda p: (p[0].start, p[0].end))

        previous: DetectedSpan | None = None
        for span, _ in placements:
            if not (0 <= span.start < span.end <= len(text)):
                raise ValueError(
                    f"Span [{span.start}:{span.end}] is outside the document"
                )
            if text[span.start : span.end] != span.original_text:
                raise ValueError(
                    f"Span [{span.start}:{span.end}] does not match its original text"
                )
            if previous is not None and span.start < previous.end:
                raise OverlapConflictError(previous, span)
            previous = span

        pieces: list[str] = []
        cursor = len(text)
        for span, token in reversed(placements):
            pieces.append(text[span.end : cursor])
            pieces.append(token)
            cursor = span.start
        pieces.append(text[:cursor])
        return "".join(reversed(pieces))
