"""Tests for masker.presidio_classifier with the NLP engines stubbed out."""

from __future__ import annotations

import re
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

import masker.presidio_classifier as presidio_module
from masker.presidio_classifier import (
    PRESIDIO_LABEL_MAP,
    SPACY_LABEL_MAP,
    PresidioEntityClassifier,
)
from masker.taxonomy import EntityCategory, FinancialSubtype

TEXT = "Ramesh Kumar paid Rs. 500 to SBIN0001234."


@pytest.fixture
def classifier(monkeypatch: pytest.MonkeyPatch) -> PresidioEntityClassifier:
    monkeypatch.setattr(PresidioEntityClassifier, "_instance", None)
    monkeypatch.setattr(presidio_module, "NlpEngineProvider", MagicMock())
    analyzer = MagicMock()
    analyzer.analyze.return_value = [
        SimpleNamespace(entity_type="IFSC_CODE", start=29, end=40, score=0.85),
    ]
    monkeypatch.setattr(presidio_module, "AnalyzerEngine", MagicMock(return_value=analyzer))

    instance = PresidioEntityClassifier(score_threshold=0.5)
    instance._nlp = lambda text: SimpleNamespace(
        ents=[
            SimpleNamespace(label_="PERSON", text="Ramesh Kumar", start_char=0, end_char=12),
            SimpleNamespace(label_="MONEY", text="Rs. 500", start_char=18, end_char=25),
            SimpleNamespace(label_="DATE", text="ignored", start_char=0, end_char=7),
        ]
    )
    return instance


class TestPresidioEntityClassifier:

    def test_is_singleton(self, classifier: PresidioEntityClassifier):
        assert PresidioEntityClassifier() is classifier

    def test_threshold_passed_to_analyzer(self, classifier: PresidioEntityClassifier):
        classifier._gate_a_presidio(TEXT)
        assert classifier._analyzer.analyze.call_args.kwargs["score_threshold"] == 0.5

    @pytest.mark.asyncio
    async def test_merges_both_gates(self, classifier: PresidioEntityClassifier):
        output = await classifier.classify(TEXT, "unused")
        found = {(f.entity_type, f.subtype, f.text) for f in output.entities}
        assert found == {
            (EntityCategory.FINANCIAL, FinancialSubtype.ACCOUNT_NUMBER, "SBIN0001234"),
            (EntityCategory.PERSON_NAME, None, "Ramesh Kumar"),
            (EntityCategory.FINANCIAL, FinancialSubtype.AMOUNT, "Rs. 500"),
        }
        assert all(TEXT[f.start : f.end] == f.text for f in output.entities)


class TestChunking:

    def test_long_text_analysed_in_line_chunks(self, classifier: PresidioEntityClassifier):
        def find_ifsc(text: str, **kwargs):
            return [
                SimpleNamespace(entity_type="IFSC_CODE", start=m.start(), end=m.end(), score=0.85)
                for m in re.finditer(r"SBIN\d{7}", text)
            ]

        classifier._analyzer.analyze.side_effect = find_ifsc
        classifier._CHUNK_SIZE = 40
        lines = [f"Line {i}: branch code SBIN000{i:04d} here.\n" for i in range(6)]
        text = "".join(lines)

        findings = classifier._gate_a_presidio(text)

        assert classifier._analyzer.analyze.call_count == len(lines)
        assert [f.start for f in findings] == [m.start() for m in re.finditer(r"SBIN\d{7}", text)]
        assert all(text[f.start : f.end] == f.text for f in findings)

    def test_short_text_analysed_once(self, classifier: PresidioEntityClassifier):
        classifier._gate_a_presidio(TEXT)
        assert classifier._analyzer.analyze.call_count == 1


def test_label_maps_only_target_taxonomy():
    for category, subtype in [*PRESIDIO_LABEL_MAP.values(), *SPACY_LABEL_MAP.values()]:
        assert isinstance(category, EntityCategory)
        assert subtype is None or category is EntityCategory.FINANCIAL
