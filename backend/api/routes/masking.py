from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_pipeline
from masker.errors import (
    DetectionUnavailableError,
    InvalidInputError,
    OverlapConflictError,
)
from masker.pipeline import MaskingPipeline
from masker.taxonomy import describe_taxonomy
from schemas.api import MaskingResult, MaskRequest, TaxonomyEntry

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post(
    "",
    response_model=MaskingResult,
    response_model_by_alias=True,
)
async def mask_document(
    body: MaskRequest,
    pipeline: MaskingPipeline = Depends(get_pipeline),
):
    """Mask sensitive information in a document.

    The raw text is only held for the duration of this request. Any failure
    returns an error instead of a partially masked document.
    """
    try:
        return await pipeline.mask(body.document_text)
    except InvalidInputError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except DetectionUnavailableError:
        logger.warning("Masking aborted: entity detection unavailable")
        raise HTTPException(
            status_code=503,
            detail="Sensitive-data detection is unavailable. Please try again later.",
        )
    except OverlapConflictError:
        logger.exception("Masking aborted: overlapping spans")
        raise HTTPException(status_code=500, detail="Masking failed.")


@router.get(
    "/taxonomy",
    response_model=list[TaxonomyEntry],
    response_model_by_alias=True,
)
async def get_taxonomy():
    """List the entity categories and their placeholder prefixes."""
    return [TaxonomyEntry.model_validate(entry) for entry in describe_taxonomy()]
