"""Classifier response decoding."""

from __future__ import annotations

from .parser import (
    DEFAULT_STRATEGIES,
    StrategyParser,
    infer_recyclable,
    is_meaningful,
    parse_classification,
)
from .schema import ClassificationPayload

__all__ = [
    "DEFAULT_STRATEGIES",
    "ClassificationPayload",
    "StrategyParser",
    "infer_recyclable",
    "is_meaningful",
    "parse_classification",
]
