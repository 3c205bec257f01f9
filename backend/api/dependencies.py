import logging
from functools import lru_cache

from fastapi import HTTPException

from config import get_settings
from masker.pipeline import MaskingPipeline, build_classifier

logger = logging.getLogger(__name__)


@lru_cache
def _build_pipeline() -> MaskingPipeline:
    settings = get_settings()
    return MaskingPipeline(
        build_classifier(settings),
        max_document_chars=settings.max_document_chars,
    )


def get_pipeline() -> MaskingPipeline:
    # The pipeline holds no per-document state, so one instance serves all requests.
    try:
        return _build_pipeline()
    except ValueError as exc:
        logger.error("Classifier is not configured: %s", exc)
        raise HTTPException(
            status_code=503,
            detail="Sensitive-data detection is unavailable. Please try again later.",
        )
