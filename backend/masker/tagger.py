"""Entity tagging: turn classifier findings into positioned spans."""

from __future__ import annotations

import logging
import re

from llm.prompts import build_taxonomy_prompt
from masker.classifiers import EntityClassifier
from masker.errors import DetectionUnavailableError, InvalidInputError
from masker.taxonomy import CATEGORY_ORDER, PLACEHOLDER_RE, is_excluded
from schemas.api import ClassificationOutput, ClassifiedEntity
from schemas.entities import DetectedSpan

logger = logging.getLogger(__name__)


def validate_document(text: str, max_chars: int | None = None) -> None:
    """Raise ``InvalidInputError`` for empty, whitespace-only or oversize text."""
    if not isinstance(text, str):
        raise InvalidInputError("Document text must be a string")
    if not text.strip():
        raise InvalidInputError("Document text is empty")
    if max_chars is not None and len(text) > max_chars:
        raise InvalidInputError(
            f"Document is too long ({len(text)} characters, maximum {max_chars})"
        )


class EntityTagger:
    """Detects sensitive spans in a document.

    One call to the classification capability per document; the findings
    are then located in the text, filtered against the exclusion lists and
    de-overlapped so that every character belongs to at most one span.
    """

    def __init__(self, classifier: EntityClassifier) -> None:
        self._classifier = classifier
        self._taxonomy_prompt = build_taxonomy_prompt()

    async def tag(self, text: str) -> list[DetectedSpan]:
        """Return non-overlapping spans sorted by start offset.

        Raises
        ------
        InvalidInputError
            If *text* is empty or whitespace-only.
        DetectionUnavailableError
            If the classifier fails or its output cannot be used.
        """
        validate_document(text)
        output = await self._classify(text)

        protected = [(m.start(), m.end()) for m in PLACEHOLDER_RE.finditer(text)]
        candidates: list[DetectedSpan] = []
        for finding in output.entities:
            if is_excluded(finding.text):
                logger.debug("Skipping excluded %s finding", finding.entity_type.value)
                continue
            spans = self._locate(text, finding)
            if not spans:
                logger.warning(
                    "%s finding not present in document text; ignored",
                    finding.entity_type.value,
                )
                continue
            candidates.extend(
                span for span in spans if not _inside_any(span, protected)
            )

        spans = resolve_overlaps(candidates)
        logger.info(
            "Tagger: %d findings -> %d spans (%s)",
            len(output.entities),
            len(spans),
            self._classifier.name,
        )
        return spans

    async def _classify(self, text: str) -> ClassificationOutput:
        try:
            output = await self._classifier.classify(text, self._taxonomy_prompt)
        except Exception as exc:
            logger.error("Entity classification failed: %s", type(exc).__name__)
            raise DetectionUnavailableError(
                f"Entity classification failed: {exc}"
            ) from exc
        if not isinstance(output, ClassificationOutput):
            raise DetectionUnavailableError(
                f"Classifier returned {type(output).__name__}, expected ClassificationOutput"
            )
        return output

    # ------------------------------------------------------------------
    # Locating findings
    # ------------------------------------------------------------------

    def _locate(self, text: str, finding: ClassifiedEntity) -> list[DetectedSpan]:
        """Map one finding onto concrete spans.

        Every whole-token occurrence of the finding's text is used, plus the
        reported offsets when they point at that text. Duplicates are
        collapsed later by :func:`resolve_overlaps`.
        """
        spans: list[DetectedSpan] = []
        if finding.start is not None and finding.end is not None:
            if finding.end <= len(text) and text[finding.start : finding.end] == finding.text:
                spans.append(self._make_span(finding, finding.start, finding.end))
            else:
                logger.debug("Offsets for %s finding do not match", finding.entity_type.value)

        spans.extend(
            self._make_span(finding, m.start(), m.end())
            for m in _occurrence_pattern(finding.text).finditer(text)
        )
        return spans

    def _make_span(self, finding: ClassifiedEntity, start: int, end: int) -> DetectedSpan:
        return DetectedSpan(
            category=finding.entity_type,
            original_text=finding.text,
            start=start,
            end=end,
            subtype=finding.subtype,
            confidence=finding.score,
            source=self._classifier.name,
        )


def _occurrence_pattern(value: str) -> re.Pattern[str]:
    # Word characters at either edge must not continue into a longer token.
    escaped = re.escape(value)
    prefix = r"(?<!\w)" if re.match(r"\w", value) else ""
    suffix = r"(?!\w)" if re.search(r"\w$", value) else ""
    return re.compile(prefix + escaped + suffix)


def _inside_any(span: DetectedSpan, ranges: list[tuple[int, int]]) -> bool:
    return any(span.start < end and start < span.end for start, end in ranges)


def resolve_overlaps(spans: list[DetectedSpan]) -> list[DetectedSpan]:
    """Keep a deterministic, non-overlapping subset of *spans*.

    The longest span wins; ties go to the higher confidence, then the earlier
    start, then taxonomy order. Identical duplicates collapse to one.
    """
    ranked = sorted(
        set(spans),
        key=lambda s: (
            -s.length,
            -s.confidence,
            s.start,
            CATEGORY_ORDER[s.category],
            s.subtype.value if s.subtype else "",
            s.source,
        ),
    )

    kept: list[DetectedSpan] = []
    for span in ranked:
        if any(span.overlaps(other) for other in kept):
            continue
        kept.append(span)

    kept.sort(key=lambda s: s.start)
    return kept
