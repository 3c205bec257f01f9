from __future__ import annotations

import logging

from config import Settings, get_settings
from llm.client import get_llm_client
from masker.classifiers import EntityClassifier, LLMEntityClassifier, PatternEntityClassifier
from masker.renderer import PlaceholderRenderer
from masker.report import build_report, summarize_counts
from masker.resolver import IdentityResolver
from masker.tagger import EntityTagger, validate_document
from schemas.api import MaskingResult

logger = logging.getLogger(__name__)


def build_classifier(settings: Settings | None = None) -> EntityClassifier:
    """Create the classifier selected by ``settings.classifier_backend``."""
    settings = settings or get_settings()
    backend = settings.classifier_backend

    if backend == "llm":
        return LLMEntityClassifier(get_llm_client(settings=settings))
    elif backend == "pattern":
        return PatternEntityClassifier()
    elif backend == "presidio":
        from masker.presidio_classifier import PresidioEntityClassifier

        return PresidioEntityClassifier(score_threshold=settings.pii_confidence_threshold)
    else:
        raise ValueError(f"Unknown classifier backend: {backend}")


class MaskingPipeline:
    """Top-level orchestrator for sensitive-data masking.

    Typical flow
    ------------
    1. **Tag** -- one classification call, findings located as spans.
    2. **Resolve** -- spans grouped per real-world entity, numbered in
       order of first appearance.
    3. **Render** -- each span replaced by its group's placeholder token.
    4. **Report** -- masked text plus one record per replaced span.

    Any failure aborts the whole run; a partially masked document is never
    returned.
    """

    def __init__(
        self,
        classifier: EntityClassifier,
        max_document_chars: int | None = None,
    ) -> None:
        self.max_document_chars = max_document_chars
        self._tagger = EntityTagger(classifier)
        self._resolver = IdentityResolver()
        self._renderer = PlaceholderRenderer()

    async def mask(self, document_text: str) -> MaskingResult:
        """Mask *document_text*.

        Raises
        ------
        InvalidInputError
            If the text is empty, whitespace-only or too long.
        DetectionUnavailableError
            If the classification capability fails or returns unusable output.
        OverlapConflictError
            If two detected spans overlap.
        """
        validate_document(document_text, self.max_document_chars)

        spans = await self._tagger.tag(document_text)
        groups = self._resolver.resolve(spans, document_text)
        masked_text = self._renderer.render(document_text, groups)
        result = build_report(masked_text, groups)

        logger.info(
            "Document masked: %d spans in %d entities %s",
            len(result.masked_entities),
            len(groups),
            summarize_counts(result),
        )
        return result


async def mask(
    document_text: str,
    classifier: EntityClassifier | None = None,
) -> MaskingResult:
    """Mask one document with a fresh pipeline."""
    settings = get_settings()
    pipeline = MaskingPipeline(
        classifier or build_classifier(settings),
        max_document_chars=settings.max_document_chars,
    )
    return await pipeline.mask(document_text)
