"""Pydantic model for well-formed classifier JSON responses."""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from scanledger.domain.carbon import clamp_kg

CARBON_KEYS = (
    "carbonSavedKg",
    "carbon_saved_kg",
    "carbon_kg",
    "co2_saved_kg",
    "co2e_saved_kg",
    "carbon",
    "co2_saved",
)


class ClassificationPayload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    item: str
    material: str
    recyclable: bool
    bin: str
    notes: str = ""
    carbon_saved_kg: float = Field(default=0.0, validation_alias=AliasChoices(*CARBON_KEYS))

    @field_validator("item", "material", "bin", "notes", mode="before")
    @classmethod
    def _strip(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @field_validator("carbon_saved_kg", mode="after")
    @classmethod
    def _clamp(cls, value: float) -> float:
        return clamp_kg(value)
