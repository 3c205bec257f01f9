from __future__ import annotations

import os
from unittest.mock import AsyncMock

import pytest

# Keep tests independent of any local .env provider configuration
os.environ.setdefault("CLASSIFIER_BACKEND", "pattern")

from masker.classifiers import EntityClassifier
from schemas.api import ClassificationOutput, ClassifiedEntity


@pytest.fixture
def scenario_text():
    """The reference masking scenario."""
    return (
        "John Smith lives at 123 Main St. Contact John at john@example.com "
        "or 555-1234. Jane Doe co-signed."
    )


@pytest.fixture
def scenario_findings():
    """What a well-behaved classifier reports for ``scenario_text``."""
    return ClassificationOutput(
        entities=[
            ClassifiedEntity(entity_type="PERSON_NAME", text="John Smith"),
            ClassifiedEntity(entity_type="ADDRESS", text="123 Main St"),
            ClassifiedEntity(entity_type="PERSON_NAME", text="John"),
            ClassifiedEntity(entity_type="EMAIL", text="john@example.com"),
            ClassifiedEntity(entity_type="PHONE_NUMBER", text="555-1234"),
            ClassifiedEntity(entity_type="PERSON_NAME", text="Jane Doe"),
        ]
    )


@pytest.fixture
def sample_sale_deed():
    """A realistic Indian sale deed snippet with PII."""
    return (
        "SALE DEED\n\n"
        "This Sale Deed is executed by Mr. Ramesh Kumar, S/o Shri Suresh Kumar, "
        "residing at 12 Gandhi Nagar, PAN ABCDE1234F, Aadhaar 1234 5678 9012, "
        "mobile +91 98765 43210, email ramesh.kumar@example.in "
        "(hereinafter the Vendor), in favour of Ms. Priya Sharma (the Purchaser).\n"
        "1. The sale consideration is Rs. 25,00,000/- paid to A/c No. 123456789012, "
        "IFSC SBIN0001234.\n"
        "2. The property bears Survey No. 45/2A measuring 1200 sq ft.\n"
        "3. Vendor's date of birth: 15/08/1975.\n"
        "4. Ramesh Kumar shall hand over possession to the Purchaser.\n\n"
        "Sd/-"
    )


@pytest.fixture
def mock_classifier() -> AsyncMock:
    """A mock EntityClassifier whose classify method returns predictable findings."""
    classifier = AsyncMock(spec=EntityClassifier)
    classifier.name = "mock"
    classifier.classify.return_value = ClassificationOutput()
    return classifier
