from __future__ import annotations

import asyncio
import logging

from presidio_analyzer import AnalyzerEngine, Pattern, PatternRecognizer
from presidio_analyzer.nlp_engine import NlpEngineProvider
import spacy

from masker.classifiers import EntityClassifier
from masker.taxonomy import EntityCategory, FinancialSubtype
from schemas.api import ClassificationOutput, ClassifiedEntity

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Mapping tables
# ---------------------------------------------------------------------------

_ACCOUNT = (EntityCategory.FINANCIAL, FinancialSubtype.ACCOUNT_NUMBER)

PRESIDIO_LABEL_MAP: dict[str, tuple[EntityCategory, FinancialSubtype | None]] = {
    "PERSON": (EntityCategory.PERSON_NAME, None),
    "EMAIL_ADDRESS": (EntityCategory.EMAIL, None),
    "PHONE_NUMBER": (EntityCategory.PHONE_NUMBER, None),
    "US_SSN": (EntityCategory.ID_NUMBER, None),
    "US_ITIN": (EntityCategory.ID_NUMBER, None),
    "US_DRIVER_LICENSE": (EntityCategory.ID_NUMBER, None),
    "US_PASSPORT": (EntityCategory.ID_NUMBER, None),
    "IN_PAN": (EntityCategory.ID_NUMBER, None),
    "IN_AADHAAR": (EntityCategory.ID_NUMBER, None),
    "IN_PASSPORT": (EntityCategory.ID_NUMBER, None),
    "IN_VOTER": (EntityCategory.ID_NUMBER, None),
    "US_BANK_NUMBER": _ACCOUNT,
    "IBAN_CODE": _ACCOUNT,
    "CREDIT_CARD": _ACCOUNT,
    "IFSC_CODE": _ACCOUNT,
    "LAND_RECORD": (EntityCategory.LAND_DETAIL, None),
    "LOCATION": (EntityCategory.ADDRESS, None),
}

SPACY_LABEL_MAP: dict[str, tuple[EntityCategory, FinancialSubtype | None]] = {
    "PERSON": (EntityCategory.PERSON_NAME, None),
    "ORG": (EntityCategory.ORGANIZATION, None),
    "FAC": (EntityCategory.ADDRESS, None),
    "GPE": (EntityCategory.ADDRESS, None),
    "MONEY": (EntityCategory.FINANCIAL, FinancialSubtype.AMOUNT),
}

REQUESTED_PRESIDIO_ENTITIES: list[str] = sorted(PRESIDIO_LABEL_MAP)


class PresidioEntityClassifier(EntityClassifier):
    """Dual-gate classifier combining Microsoft Presidio and spaCy NER.

    Presidio covers the structured identifiers; spaCy contributes names,
    organisations, places and money amounts. Both run in the default
    executor so the event loop is not blocked.
    """

    name = "presidio"

    _instance: "PresidioEntityClassifier | None" = None

    def __new__(cls, score_threshold: float = 0.7) -> "PresidioEntityClassifier":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, score_threshold: float = 0.7) -> None:
        self.score_threshold = score_threshold
        if self._initialized:
            return
        self._initialized = True

        # --- Gate A: Presidio (configured to use en_core_web_sm) ---
        ifsc_recognizer = PatternRecognizer(
            supported_entity="IFSC_CODE",
            name="IfscRecognizer",
            patterns=[Pattern(name="ifsc", regex=r"\b[A-Z]{4}0[A-Z0-9]{6}\b", score=0.85)],
        )
        land_recognizer = PatternRecognizer(
            supported_entity="LAND_RECORD",
            name="LandRecordRecognizer",
            patterns=[
                Pattern(
                    name="survey_number",
                    regex=r"(?i)\b(?:survey|plot|khasra|khata)\s*(?:no\.?|number)\s*[:\-]?\s*\d+[\w/-]*",
                    score=0.85,
                )
            ],
        )

        provider = NlpEngineProvider(nlp_configuration={
            "nlp_engine_name": "spacy",
            "models": [{"lang_code": "en", "model_name": "en_core_web_sm"}],
        })
        nlp_engine = provider.create_engine()
        self._analyzer = AnalyzerEngine(nlp_engine=nlp_engine)
        self._analyzer.registry.add_recognizer(ifsc_recognizer)
        self._analyzer.registry.add_recognizer(land_recognizer)

        # --- Gate B: spaCy NER (lazy-loaded on first use) ---
        self._nlp = None

        logger.info("PresidioEntityClassifier initialized (singleton)")

    # -- public API ----------------------------------------------------------

    async def classify(self, text: str, taxonomy_prompt: str) -> ClassificationOutput:
        loop = asyncio.get_running_loop()
        gate_a, gate_b = await asyncio.gather(
            loop.run_in_executor(None, self._gate_a_presidio, text),
            loop.run_in_executor(None, self._gate_b_ner, text),
        )
        return ClassificationOutput(entities=gate_a + gate_b)

    # -- Gate A: Presidio ----------------------------------------------------

    _CHUNK_SIZE = 5000  # characters per chunk; keeps Presidio fast on long deeds

    def _gate_a_presidio(self, text: str) -> list[ClassifiedEntity]:
        if len(text) <= self._CHUNK_SIZE:
            return self._gate_a_presidio_single(text, 0)

        # Chunk by line boundaries so entities aren't split
        findings: list[ClassifiedEntity] = []
        chunk_lines: list[str] = []
        chunk_len = 0
        offset = 0

        for line in text.splitlines(keepends=True):
            if chunk_len + len(line) > self._CHUNK_SIZE and chunk_lines:
                chunk_text = "".join(chunk_lines)
                findings.extend(self._gate_a_presidio_single(chunk_text, offset))
                offset += len(chunk_text)
                chunk_lines = []
                chunk_len = 0
            chunk_lines.append(line)
            chunk_len += len(line)

        if chunk_lines:
            findings.extend(self._gate_a_presidio_single("".join(chunk_lines), offset))

        return findings

    def _gate_a_presidio_single(self, text: str, offset: int) -> list[ClassifiedEntity]:
        results = self._analyzer.analyze(
            text=text,
            language="en",
            entities=REQUESTED_PRESIDIO_ENTITIES,
            score_threshold=self.score_threshold,
        )
        findings: list[ClassifiedEntity] = []
        for r in results:
            category, subtype = PRESIDIO_LABEL_MAP[r.entity_type]
            findings.append(
                ClassifiedEntity(
                    entity_type=category,
                    subtype=subtype,
                    text=text[r.start : r.end],
                    start=r.start + offset,
                    end=r.end + offset,
                    score=min(max(r.score, 0.0), 1.0),
                )
            )
        return findings

    # -- Gate B: spaCy NER ---------------------------------------------------

    def _load_ner_model(self) -> None:
        """Lazy-load the transformer NER model on first Gate B call."""
        if self._nlp is not None:
            return
        try:
            self._nlp = spacy.load("en_core_web_trf")
            logger.info("Loaded spaCy model: en_core_web_trf (lazy)")
        except OSError:
            logger.warning(
                "en_core_web_trf not available, falling back to en_core_web_sm"
            )
            self._nlp = spacy.load("en_core_web_sm")

    def _gate_b_ner(self, text: str) -> list[ClassifiedEntity]:
        self._load_ner_model()
        doc = self._nlp(text)
        findings: list[ClassifiedEntity] = []
        for ent in doc.ents:
            if ent.label_ not in SPACY_LABEL_MAP:
                continue
            category, subtype = SPACY_LABEL_MAP[ent.label_]
            findings.append(
                ClassifiedEntity(
                    entity_type=category,
                    subtype=subtype,
                    text=ent.text,
                    start=ent.start_char,
                    end=ent.end_char,
                    score=0.80,  # spaCy does not provide per-entity scores
                )
            )
        return findings
