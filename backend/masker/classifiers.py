"""Entity classification capability.

A classifier takes raw document text plus the taxonomy prompt and returns
category-labelled findings. The tagger treats every implementation as a
black box: findings may carry offsets (pattern matchers do) or just the
surface text (LLMs do), and any exception counts as the capability being
unavailable.
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod

from llm.prompts import build_user_prompt
from llm.providers import LLMProvider
from masker.taxonomy import EntityCategory, FinancialSubtype
from schemas.api import ClassificationOutput, ClassifiedEntity

logger = logging.getLogger(__name__)

_CODE_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class EntityClassifier(ABC):
    """Abstract base class for classification backends."""

    name: str = "base"

    @abstractmethod
    async def classify(self, text: str, taxonomy_prompt: str) -> ClassificationOutput:
        """Return labelled findings for *text*. Raise on any failure."""
        ...


def parse_classification(raw: str) -> ClassificationOutput:
    """Parse untrusted model output into a ``ClassificationOutput``.

    Accepts an optional Markdown code fence and a bare JSON list. Raises
    ``ValueError`` (including ``json.JSONDecodeError`` and pydantic's
    ``ValidationError``) when the payload does not have the expected shape.
    """
    cleaned = _CODE_FENCE_RE.sub("", raw.strip()).strip()
    if not cleaned:
        raise ValueError("Classifier returned an empty response")
    payload = json.loads(cleaned)
    if isinstance(payload, list):
        payload = {"entities": payload}
    elif isinstance(payload, dict) and "entities" not in payload:
        # The older masking prompt answered with "maskedEntities".
        if "maskedEntities" in payload:
            payload = {"entities": payload["maskedEntities"]}
        else:
            raise ValueError("Classifier response has no 'entities' field")
    return ClassificationOutput.model_validate(payload)


# ---------------------------------------------------------------------------
# LLM-backed classifier
# ---------------------------------------------------------------------------


class LLMEntityClassifier(EntityClassifier):
    """Delegates classification to a text-generation provider."""

    name = "llm"

    def __init__(self, provider: LLMProvider) -> None:
        self._provider = provider

    async def classify(self, text: str, taxonomy_prompt: str) -> ClassificationOutput:
        messages = [
            {"role": "system", "content": taxonomy_prompt},
            {"role": "user", "content": build_user_prompt(text)},
        ]
        raw = await self._provider.complete(messages, json_output=True)
        output = parse_classification(raw)
        logger.info(
            "LLM classifier (%s/%s) returned %d findings",
            self._provider.provider_name,
            self._provider.model_name,
            len(output.entities),
        )
        return output


# ---------------------------------------------------------------------------
# Deterministic pattern classifier
# ---------------------------------------------------------------------------

_DATE = (
    r"\d{1,2}[/.-]\d{1,2}[/.-]\d{2,4}"
    r"|\d{4}-\d{2}-\d{2}"
    r"|\d{1,2}(?:st|nd|rd|th)?\s+(?:of\s+)?[A-Z][a-z]+,?\s+\d{4}"
    r"|[A-Z][a-z]+\s+\d{1,2}(?:st|nd|rd|th)?,?\s+\d{4}"
)

_NAME = r"[A-Z][a-z]+(?: [A-Z]\.)?(?: [A-Z][a-z]+){0,3}"

# (category, subtype, pattern, score, emit_offsets). When the pattern has a
# group named "value" only that group is reported.
_PATTERNS: list[tuple[EntityCategory, FinancialSubtype | None, re.Pattern[str], float, bool]] = [
    (
        EntityCategory.EMAIL,
        None,
        re.compile(r"\b[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}\b"),
        1.0,
        True,
    ),
    (
        EntityCategory.PHONE_NUMBER,
        None,
        re.compile(
            r"(?<![\w-])"
            r"(?:\+\d{1,3}[\s.-]?)?"
            r"(?:\(\d{2,4}\)\s?|\d{2,4}[\s.-])?"
            r"\d{3,4}[\s.-]\d{4}"
            r"(?![\w-])"
        ),
        0.85,
        True,
    ),
    (
        EntityCategory.PHONE_NUMBER,
        None,
        # Indian mobile numbers: +91 98765 43210, 9876543210
        re.compile(r"(?<![\w-])(?:\+91[\s-]?)?[6-9]\d{4}[\s-]?\d{5}(?![\w-])"),
        0.85,
        True,
    ),
    (
        EntityCategory.ID_NUMBER,
        None,
        # Aadhaar
        re.compile(r"\b\d{4}\s\d{4}\s\d{4}\b"),
        0.9,
        True,
    ),
    (
        EntityCategory.ID_NUMBER,
        None,
        # GSTIN, then PAN
        re.compile(r"\b\d{2}[A-Z]{5}\d{4}[A-Z][1-9A-Z]Z[0-9A-Z]\b"),
        0.95,
        True,
    ),
    (
        EntityCategory.ID_NUMBER,
        None,
        re.compile(r"\b[A-Z]{5}\d{4}[A-Z]\b"),
        0.9,
        True,
    ),
    (
        EntityCategory.ID_NUMBER,
        None,
        # US SSN
        re.compile(r"\b\d{3}-\d{2}-\d{4}\b"),
        0.9,
        True,
    ),
    (
        EntityCategory.ID_NUMBER,
        None,
        re.compile(
            r"(?i:passport|licen[cs]e|voter\s+id|epic)\s*(?i:no\.?|number|#)?\s*[:\-]?\s*"
            r"(?P<value>[A-Z]{1,3}[\-\s]?\d{6,14})\b"
        ),
        0.95,
        True,
    ),
    (
        EntityCategory.FINANCIAL,
        FinancialSubtype.ACCOUNT_NUMBER,
        # IFSC code
        re.compile(r"\b[A-Z]{4}0[A-Z0-9]{6}\b"),
        0.9,
        True,
    ),
    (
        EntityCategory.FINANCIAL,
        FinancialSubtype.ACCOUNT_NUMBER,
        re.compile(
            r"(?i:a/c|account|acct\.?)\s*(?i:no\.?|number|#)?\s*[:\-]?\s*"
            r"(?P<value>\d[\d -]{7,20}\d)\b"
        ),
        0.95,
        True,
    ),
    (
        EntityCategory.FINANCIAL,
        FinancialSubtype.AMOUNT,
        re.compile(
            r"(?:Rs\.?|INR|USD|EUR|GBP|₹|\$|€|£)\s?\d{1,3}(?:,\d{2,3})*(?:\.\d+)?(?:/-)?"
            r"|\b\d[\d,]*(?:\.\d+)?\s?(?i:rupees|dollars|lakhs?|crores?)\b"
        ),
        0.9,
        True,
    ),
    (
        EntityCategory.LAND_DETAIL,
        None,
        re.compile(
            r"\b(?i:survey|plot|khasra|khata|patta|cts|property)\s*"
            r"(?i:no\.?|number|#)\s*[:\-]?\s*\d+[\w/-]*"
        ),
        0.9,
        True,
    ),
    (
        EntityCategory.LAND_DETAIL,
        None,
        re.compile(
            r"\b\d+(?:\.\d+)?\s?(?i:sq\.?\s?(?:ft|feet|m|mtrs?|yds|yards)"
            r"|square\s+(?:feet|metres|meters|yards)|acres?|hectares?|guntas?|cents)\b"
        ),
        0.8,
        True,
    ),
    (
        EntityCategory.ADDRESS,
        None,
        re.compile(
            r"\b\d{1,5}(?:/\d+)?,?\s+(?:[A-Z][a-z]+\s+){1,3}"
            r"(?:St|Street|Ave|Avenue|Rd|Road|Blvd|Boulevard|Lane|Ln|Drive|Dr|Way|Court|Ct"
            r"|Nagar|Marg|Colony|Layout|Cross|Main|Place|Pl)\b"
        ),
        0.75,
        True,
    ),
    (
        EntityCategory.DATE_OF_BIRTH,
        None,
        re.compile(
            r"\b(?i:born\s+on|date\s+of\s+birth|d\.o\.b\.?|dob)\s*[:\-]?\s*"
            rf"(?P<value>{_DATE})"
        ),
        0.95,
        True,
    ),
    (
        EntityCategory.SIGNATURE,
        None,
        re.compile(
            r"\bSd/-|\((?i:signed)\)|/s/\s+" + _NAME
            + r"|\b(?i:thumb\s?print|thumb\s+impression|L\.T\.I\.)"
        ),
        0.9,
        True,
    ),
    (
        EntityCategory.PERSON_NAME,
        None,
        # Honorifics and relation markers; the bare name is searched
        # document-wide by the tagger.
        re.compile(
            r"\b(?:Mr|Mrs|Ms|Miss|Dr|Shri|Sri|Smt|Kumari|Km)\.?\s+"
            rf"(?P<value>{_NAME})"
            r"|\b(?:S/o|D/o|W/o|C/o|son of|daughter of|wife of)\s+"
            rf"(?:(?:Mr|Mrs|Shri|Sri|Smt|Late)\.?\s+)?(?P<relative>{_NAME})"
        ),
        0.8,
        False,
    ),
    (
        EntityCategory.ORGANIZATION,
        None,
        re.compile(
            r"\b(?:[A-Z][\w&'-]* +){1,4}"
            r"(?:Private\s+Limited|Pvt\.?\s+Ltd\.?|Limited|Ltd\.?|LLP|LLC|Inc\.?"
            r"|Corporation|Corp\.?|Bank|Associates|& Co\.?)(?!\w)"
        ),
        0.75,
        False,
    ),
]


class PatternEntityClassifier(EntityClassifier):
    """Regex classifier for offline use and structured identifiers.

    It cannot judge context the way a language model does, so names and
    organisations are only found when introduced by an honorific, a
    relation marker or a legal suffix.
    """

    name = "pattern"

    async def classify(self, text: str, taxonomy_prompt: str) -> ClassificationOutput:
        return ClassificationOutput(entities=self.scan(text))

    def scan(self, text: str) -> list[ClassifiedEntity]:
        findings: list[ClassifiedEntity] = []
        seen_texts: set[tuple[EntityCategory, str]] = set()
        for category, subtype, pattern, score, emit_offsets in _PATTERNS:
            for match in pattern.finditer(text):
                group = self._value_group(match)
                value = match.group(group).strip()
                if not value:
                    continue
                if emit_offsets:
                    start = match.start(group)
                    start += len(match.group(group)) - len(match.group(group).lstrip())
                    findings.append(
                        ClassifiedEntity(
                            entity_type=category,
                            text=value,
                            subtype=subtype,
                            start=start,
                            end=start + len(value),
                            score=score,
                        )
                    )
                elif (category, value) not in seen_texts:
                    seen_texts.add((category, value))
                    findings.append(
                        ClassifiedEntity(
                            entity_type=category, text=value, subtype=subtype, score=score
                        )
                    )
        return findings

    @staticmethod
    def _value_group(match: re.Match[str]) -> int | str:
        for name in ("value", "relative"):
            if name in match.re.groupindex and match.group(name) is not None:
                return name
        return 0
