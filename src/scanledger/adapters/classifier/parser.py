"""Best-effort decoding of free-form classifier output.

Strategies run in order and the first one producing a meaningful result
wins:

1. ``strict_json``: the whole text is a JSON object with the canonical keys
2. ``embedded_json``: same, after stripping markdown fences and slicing out
   the outermost ``{...}`` or ``[...]``
3. ``flexible_json``: any decoded JSON object, reading aliased keys
4. ``key_value``: ``KEY: value`` style text

A result whose item, material, bin and notes are all empty or unknown counts
as a failure. Nothing here raises; callers get :class:`ParseFailed` instead.
"""

from __future__ import annotations

import json
import logging
import math
import re
from collections.abc import Callable, Mapping
from typing import Final, cast

from pydantic import ValidationError

from scanledger.domain.model import ClassificationResult
from scanledger.domain.ports import ParsedClassification, ParseFailed, ParseOutcome

from .schema import CARBON_KEYS, ClassificationPayload

log = logging.getLogger(__name__)

type Strategy = Callable[[str], ClassificationResult | None]

ITEM_KEYS: Final = ("item", "item_name", "product", "name", "object", "category")
MATERIAL_KEYS: Final = ("material", "primary_material", "composition")
BIN_KEYS: Final = ("bin", "disposal", "destination", "where_to_put", "container")
NOTES_KEYS: Final = ("notes", "prep", "preparation", "instructions")
RECYCLABLE_KEYS: Final = ("recyclable", "is_recyclable", "accepted")

_UNKNOWN: Final = "unknown"
_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)
_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")
_LINE = re.compile(r"\s*([^:=]+?)\s*[:=]\s*(.*)$")
_LINE_FIELDS: Final = tuple(
    key.upper() for key in (*NOTES_KEYS, *ITEM_KEYS, *MATERIAL_KEYS, "recyclable", *BIN_KEYS)
) + tuple(key.upper() for key in CARBON_KEYS if key != "carbonSavedKg")


def infer_recyclable(bin_text: str) -> bool:
    lower = bin_text.lower()
    if any(word in lower for word in ("trash", "landfill", "garbage")):
        return False
    return any(word in lower for word in ("recycle", "curbside"))


def parse_recyclable_text(value: str) -> bool | None:
    lower = value.lower()
    if "not recyclable" in lower or "false" in lower or re.search(r"\bno\b", lower):
        return False
    if any(word in lower for word in ("yes", "true", "recyclable")):
        return True
    return None


def parse_carbon_text(value: str | None) -> float | None:
    if value is None or not value.strip():
        return None
    match = _NUMBER.search(value)
    if match is None:
        return None
    return max(0.0, float(match.group()))


def is_meaningful(result: ClassificationResult) -> bool:
    def informative(value: str) -> bool:
        return bool(value.strip()) and value.strip().lower() != _UNKNOWN

    return any(informative(value) for value in (result.item, result.material, result.bin, result.notes))


def _json_candidate(text: str) -> str | None:
    cleaned = _FENCE.sub("", text).strip()
    for opener, closer in (("{", "}"), ("[", "]")):
        start, end = cleaned.find(opener), cleaned.rfind(closer)
        if start != -1 and end > start:
            return cleaned[start : end + 1]
    return None


def _load_json(text: str | None) -> object | None:
    if text is None:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return None


def _as_object(decoded: object) -> dict[str, object] | None:
    if isinstance(decoded, list) and decoded:
        decoded = cast(list[object], decoded)[0]
    if not isinstance(decoded, Mapping):
        return None
    flattened: dict[str, object] = {}
    for key, value in cast(Mapping[str, object], decoded).items():
        if isinstance(value, Mapping):
            for inner_key, inner_value in cast(Mapping[str, object], value).items():
                flattened.setdefault(str(inner_key), inner_value)
        else:
            flattened[str(key)] = value
    return flattened


def _from_payload(decoded: object) -> ClassificationResult | None:
    if not isinstance(decoded, Mapping):
        return None
    try:
        payload = ClassificationPayload.model_validate(decoded)
    except ValidationError:
        return None
    return ClassificationResult(
        item=payload.item,
        material=payload.material,
        recyclable=payload.recyclable,
        bin=payload.bin,
        notes=payload.notes,
        carbon_saved_kg=payload.carbon_saved_kg,
    )


def strict_json(text: str) -> ClassificationResult | None:
    return _from_payload(_load_json(text.strip()))


def embedded_json(text: str) -> ClassificationResult | None:
    decoded = _load_json(_json_candidate(text))
    if isinstance(decoded, list) and decoded:
        decoded = cast(list[object], decoded)[0]
    return _from_payload(decoded)


def _lookup(source: Mapping[str, object], keys: tuple[str, ...]) -> object | None:
    for key in keys:
        for variant in (key, key.lower(), key.upper()):
            value = source.get(variant)
            if value is None:
                continue
            if isinstance(value, str) and not value.strip():
                continue
            return value
    return None


def _string(source: Mapping[str, object], keys: tuple[str, ...]) -> str | None:
    value = _lookup(source, keys)
    if value is None or isinstance(value, Mapping | list):
        return None
    return str(value).strip()


def flexible_json(text: str) -> ClassificationResult | None:
    source = _as_object(_load_json(text.strip())) or _as_object(_load_json(_json_candidate(text)))
    if source is None:
        return None

    bin_text = _string(source, BIN_KEYS) or _UNKNOWN
    raw_flag = _lookup(source, RECYCLABLE_KEYS)
    if isinstance(raw_flag, bool):
        recyclable: bool | None = raw_flag
    elif isinstance(raw_flag, int | float):
        recyclable = bool(raw_flag)
    elif isinstance(raw_flag, str):
        recyclable = parse_recyclable_text(raw_flag)
    else:
        recyclable = None

    raw_carbon = _lookup(source, CARBON_KEYS)
    carbon = 0.0
    if isinstance(raw_carbon, int | float) and not isinstance(raw_carbon, bool):
        carbon = float(raw_carbon)
    elif isinstance(raw_carbon, str):
        carbon = parse_carbon_text(raw_carbon) or 0.0
    if not math.isfinite(carbon):
        carbon = 0.0

    return ClassificationResult(
        item=_string(source, ITEM_KEYS) or _UNKNOWN,
        material=_string(source, MATERIAL_KEYS) or _UNKNOWN,
        recyclable=infer_recyclable(bin_text) if recyclable is None else recyclable,
        bin=bin_text,
        notes=_string(source, NOTES_KEYS) or "",
        carbon_saved_kg=carbon,
    )


def _key_value_map(text: str) -> dict[str, str]:
    normalized = text.replace("\r", "\n")
    alternatives = "|".join(_LINE_FIELDS)
    found: dict[str, str] = {}
    for name in _LINE_FIELDS:
        pattern = re.compile(
            rf"\b{name}\b\s*[:=\-]\s*(.+?)(?=\b(?:{alternatives})\b\s*[:=\-]|$)",
            re.IGNORECASE | re.DOTALL,
        )
        match = pattern.search(normalized)
        if match is None:
            continue
        value = match.group(1).strip().strip("-•*").strip()
        if value:
            found[name] = value
    if found:
        return found

    for line in normalized.splitlines():
        match = _LINE.match(line)
        if match is None:
            continue
        key, value = match.group(1).strip().upper(), match.group(2).strip()
        if key and value:
            found[key] = value
    return found


def _first(found: Mapping[str, str], keys: tuple[str, ...]) -> str | None:
    for key in keys:
        value = found.get(key.upper())
        if value:
            return value
    return None


def key_value(text: str) -> ClassificationResult | None:
    found = _key_value_map(text)
    if not found:
        return None
    bin_text = _first(found, BIN_KEYS) or _UNKNOWN
    recyclable_raw = found.get("RECYCLABLE")
    recyclable = parse_recyclable_text(recyclable_raw) if recyclable_raw else None
    return ClassificationResult(
        item=_first(found, ITEM_KEYS) or _UNKNOWN,
        material=_first(found, MATERIAL_KEYS) or _UNKNOWN,
        recyclable=infer_recyclable(bin_text) if recyclable is None else recyclable,
        bin=bin_text,
        notes=_first(found, NOTES_KEYS) or "",
        carbon_saved_kg=parse_carbon_text(_first(found, CARBON_KEYS)) or 0.0,
    )


DEFAULT_STRATEGIES: Final[tuple[tuple[str, Strategy], ...]] = (
    ("strict_json", strict_json),
    ("embedded_json", embedded_json),
    ("flexible_json", flexible_json),
    ("key_value", key_value),
)


class StrategyParser:
    def __init__(self, strategies: tuple[tuple[str, Strategy], ...] = DEFAULT_STRATEGIES) -> None:
        self._strategies = strategies

    def __call__(self, raw: str) -> ParseOutcome:
        if not raw or not raw.strip():
            return ParseFailed("empty response", raw)
        for name, strategy in self._strategies:
            result = strategy(raw)
            if result is None:
                continue
            if not is_meaningful(result):
                log.debug("Strategy %s produced an empty classification", name)
                continue
            log.debug("Classifier response decoded by %s", name)
            return ParsedClassification(result=result, strategy=name, raw=raw)
        log.warning("No strategy could decode classifier response (%s chars)", len(raw))
        return ParseFailed("no strategy produced a classification", raw)


def parse_classification(raw: str) -> ParseOutcome:
    return StrategyParser()(raw)
