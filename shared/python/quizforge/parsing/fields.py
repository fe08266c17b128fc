"""Tolerant field access for loosely shaped model output."""

from __future__ import annotations

import json
import re
from typing import Any, Mapping
import unicodedata

ANSWER_TEXT_KEYS: tuple[str, ...] = ("text", "answer", "content", "value", "description")
ORDERING_TEXT_KEYS: tuple[str, ...] = ("text", "value", "answer", "item", "description")


def normalize_identifier(value: str) -> str:
    normalized = unicodedata.normalize("NFKD", value.strip().lower())
    normalized = normalized.encode("ascii", "ignore").decode("ascii")
    normalized = re.sub(r"[^a-z0-9]+", "", normalized)
    return normalized


def pick_first_key(payload: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    """Read first available value from key aliases in a mapping payload.

    Exact keys win; otherwise keys are compared case- and separator-insensitively,
    so `matching_pairs`, `MatchingPairs` and `matchingPairs` all resolve.
    """

    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]

    normalized_map: dict[str, Any] = {}
    for key, value in payload.items():
        if isinstance(key, str) and value is not None:
            normalized_map.setdefault(normalize_identifier(key), value)

    for key in keys:
        normalized = normalize_identifier(key)
        if normalized in normalized_map:
            return normalized_map[normalized]
    return None


def coerce_text(raw_value: Any, keys: tuple[str, ...] = ANSWER_TEXT_KEYS) -> str:
    """Flatten a scalar or object-shaped value into trimmed text.

    Objects are read through `keys` in priority order; an object with none of them
    is kept as its JSON text rather than dropped.
    """

    if raw_value is None:
        return ""
    if isinstance(raw_value, str):
        return raw_value.strip()
    if isinstance(raw_value, bool):
        return "true" if raw_value else "false"
    if isinstance(raw_value, (int, float)):
        return str(raw_value)
    if isinstance(raw_value, Mapping):
        if not raw_value:
            return ""
        for key in keys:
            candidate = raw_value.get(key)
            if isinstance(candidate, str) and candidate.strip():
                return candidate.strip()
            if isinstance(candidate, (int, float)) and not isinstance(candidate, bool):
                return str(candidate)
        return json.dumps(raw_value, ensure_ascii=False)
    if isinstance(raw_value, list):
        return ", ".join(text for text in (coerce_text(entry, keys) for entry in raw_value) if text)
    return str(raw_value).strip()
