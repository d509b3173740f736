"""Carbon accounting policy: leaderboard points <-> kilograms of CO2e saved."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

DEFAULT_KG_PER_POINT = 0.001


def clamp_kg(value: float) -> float:
    """Carbon estimates are finite and never negative; anything else counts as zero."""

    value = float(value)
    if not math.isfinite(value) or value < 0:
        return 0.0
    return value


@runtime_checkable
class CarbonPolicy(Protocol):
    """Swappable conversion between leaderboard points and carbon estimates."""

    def points_to_kg(self, points: int) -> float: ...

    def kg_to_points(self, kg: float) -> int: ...


@dataclass(frozen=True, slots=True)
class LinearCarbonPolicy:
    kg_per_point: float = DEFAULT_KG_PER_POINT

    def points_to_kg(self, points: int) -> float:
        return max(0, points) * self.kg_per_point

    def kg_to_points(self, kg: float) -> int:
        kg = clamp_kg(kg)
        if kg == 0 or self.kg_per_point <= 0:
            return 0
        return round(kg / self.kg_per_point)


DEFAULT_CARBON_POLICY: CarbonPolicy = LinearCarbonPolicy()
