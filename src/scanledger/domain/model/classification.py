"""Structured output of the external classifier service."""

from __future__ import annotations

from dataclasses import dataclass

from scanledger.domain.carbon import clamp_kg


@dataclass(frozen=True, slots=True)
class ClassificationResult:
    item: str
    material: str
    recyclable: bool
    bin: str
    notes: str = ""
    carbon_saved_kg: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "carbon_saved_kg", clamp_kg(self.carbon_saved_kg))
