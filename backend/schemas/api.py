from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from masker.taxonomy import EntityCategory, FinancialSubtype, parse_category


# --- Masking Schemas ---

class MaskRequest(BaseModel):
    document_text: str = Field(..., alias="documentText")

    model_config = ConfigDict(populate_by_name=True)


class MaskedEntityRecord(BaseModel):
    entity_type: str = Field(..., alias="entityType")
    original_text: str = Field(..., alias="originalText")
    masked_text: str = Field(..., alias="maskedText")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class MaskingResult(BaseModel):
    masked_text: str = Field(..., alias="maskedText")
    masked_entities: list[MaskedEntityRecord] = Field(
        default_factory=list, alias="maskedEntities"
    )

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class TaxonomyEntry(BaseModel):
    entity_type: str = Field(..., alias="entityType")
    prefix: str
    description: str

    model_config = ConfigDict(populate_by_name=True)


# --- Classifier Output Schemas ---

class ClassifiedEntity(BaseModel):
    """One finding returned by the classification capability."""
    entity_type: EntityCategory = Field(..., alias="entityType")
    text: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("text", "originalText")
    )
    subtype: FinancialSubtype | None = None
    start: int | None = Field(None, ge=0)
    end: int | None = Field(None, ge=0)
    score: float = Field(1.0, ge=0.0, le=1.0)

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _coerce_labels(cls, data: Any) -> Any:
        # Accept alias labels such as "PHONE" or "AMOUNT" (which implies
        # the financial subtype).
        if not isinstance(data, dict):
            return data
        data = dict(data)
        key = "entityType" if "entityType" in data else "entity_type"
        label = data.get(key)
        if isinstance(label, str):
            category, implied_subtype = parse_category(label)
            data[key] = category
            subtype = data.get("subtype")
            if isinstance(subtype, str):
                subtype = subtype.strip().upper().replace(" ", "_") or None
            data["subtype"] = subtype or implied_subtype
        return data

    @model_validator(mode="after")
    def _check_offsets(self) -> "ClassifiedEntity":
        if (self.start is None) != (self.end is None):
            raise ValueError("start and end must be given together")
        if self.start is not None and self.end <= self.start:
            raise ValueError("end must be greater than start")
        if self.entity_type is not EntityCategory.FINANCIAL:
            self.subtype = None
        return self


class ClassificationOutput(BaseModel):
    """Structured findings for one document."""
    entities: list[ClassifiedEntity] = Field(default_factory=list)
