"""Recover a JSON object from near-JSON model output.

Models often wrap JSON in prose or markdown fences, leave trailing commas, forget
to quote keys or double-escape quotes. Recovery runs an ordered list of pure
string rewrites over the outer-brace candidate and re-parses after each one,
stopping at the first success. Nothing here raises: a total failure is `None`.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
import logging
import re
from typing import Any, Callable

from quizforge.enums import RecoveryStrategy
from quizforge.parsing.fields import pick_first_key
from quizforge.schemas import RawParsedQuestion

logger = logging.getLogger(__name__)

QUESTION_LIST_KEYS: tuple[str, ...] = ("questions", "items", "results", "data", "quiz")
SINGLE_QUESTION_KEYS: tuple[str, ...] = ("prompt", "question")

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f-\x9f]")
_OUTER_BRACES = re.compile(r"\{.*\}", re.DOTALL)
_LEADING_NOISE = re.compile(r"^[^{]*")
_TRAILING_NOISE = re.compile(r"[^}]*$")
_MULTI_ESCAPED_QUOTE = re.compile(r'\\\\+"')
_INVALID_ESCAPE = re.compile(r'\\([^"\\/bfnrtu])')
_TRAILING_COMMA = re.compile(r",\s*([}\]])")
_BARE_KEY = re.compile(r"([{,]\s*)([A-Za-z_][A-Za-z0-9_]*)\s*:")
_ESCAPED_OBJECT = re.compile(r'^\{\s*\\"')
_BARE_VALUE = re.compile(r":\s*([A-Za-z][A-Za-z0-9\s\-_.,!?]*)\s*([,}])")
_FENCED_BLOCK = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL | re.IGNORECASE)
_BACKTICK_BLOCK = re.compile(r"`(\{.*?\})`", re.DOTALL)

_JSON_LITERALS = frozenset({"true", "false", "null"})


@dataclass(slots=True)
class JsonRecovery:
    """Recovered object and the strategy that produced it."""

    value: dict[str, Any]
    strategy: RecoveryStrategy


def strip_control_characters(text: str) -> str:
    return _CONTROL_CHARS.sub("", text)


def basic_trim(text: str) -> str:
    """Drop everything before the first `{` and after the last `}`."""

    return _TRAILING_NOISE.sub("", _LEADING_NOISE.sub("", text.strip()))


def normalize_escapes(text: str) -> str:
    """Repair escape sequences, trailing commas and bare keys."""

    repaired = _MULTI_ESCAPED_QUOTE.sub(r'\\"', text)
    repaired = _INVALID_ESCAPE.sub(r"\1", repaired)
    repaired = repaired.replace("\\n", "\n").replace("\\r", "\r").replace("\\t", "\t")
    repaired = _TRAILING_COMMA.sub(r"\1", repaired)
    return _BARE_KEY.sub(r'\1"\2":', repaired)


def _quote_bare_value(match: re.Match[str]) -> str:
    value = match.group(1).rstrip()
    if value in _JSON_LITERALS:
        return match.group(0)
    return f': "{value}"{match.group(2)}'


def aggressive_clean(text: str) -> str:
    """Escape normalization plus quoting of bare-word string values.

    Best effort only: a bare value containing punctuation can be split wrongly.
    """

    cleaned = basic_trim(text)
    if _ESCAPED_OBJECT.match(cleaned):
        # The whole object arrived string-encoded: {\"questions\": ...}
        cleaned = cleaned.replace('\\"', '"')
    cleaned = normalize_escapes(cleaned)
    cleaned = _BARE_VALUE.sub(_quote_bare_value, cleaned)
    return _TRAILING_COMMA.sub(r"\1", cleaned)


def extract_markdown_block(text: str) -> str | None:
    """Return the first fenced (or backtick-wrapped) JSON object, if any."""

    match = _FENCED_BLOCK.search(text) or _BACKTICK_BLOCK.search(text)
    if match is None:
        return None
    return match.group(1)


REPAIR_STRATEGIES: tuple[tuple[RecoveryStrategy, Callable[[str], str]], ...] = (
    (RecoveryStrategy.BASIC_TRIM, basic_trim),
    (RecoveryStrategy.ESCAPE_NORMALIZATION, normalize_escapes),
    (RecoveryStrategy.AGGRESSIVE_CLEAN, aggressive_clean),
)


def _try_parse(candidate: str) -> dict[str, Any] | None:
    try:
        payload = json.loads(candidate, strict=False)
    except (json.JSONDecodeError, RecursionError):
        return None
    return payload if isinstance(payload, dict) else None


def _recover(cleaned: str, allow_markdown: bool) -> JsonRecovery | None:
    match = _OUTER_BRACES.search(cleaned)
    if match is not None:
        candidate = match.group(0)
        payload = _try_parse(candidate)
        if payload is not None:
            return JsonRecovery(payload, RecoveryStrategy.DIRECT)

        for strategy, repair in REPAIR_STRATEGIES:
            payload = _try_parse(repair(candidate))
            if payload is not None:
                return JsonRecovery(payload, strategy)

    if not allow_markdown:
        return None

    block = extract_markdown_block(cleaned)
    if block is None:
        return None
    nested = _recover(block, allow_markdown=False)
    if nested is None:
        return None
    return JsonRecovery(nested.value, RecoveryStrategy.MARKDOWN_EXTRACTION)


def recover_json_with_trace(raw_text: str | None) -> JsonRecovery | None:
    """Recover a JSON object and report which strategy succeeded."""

    if not raw_text or not raw_text.strip():
        return None
    recovered = _recover(strip_control_characters(raw_text), allow_markdown=True)
    if recovered is None:
        logger.debug("json recovery failed")
    elif recovered.strategy != RecoveryStrategy.DIRECT:
        logger.info("json recovered after repair", extra={"strategy": recovered.strategy.value})
    return recovered


def recover_json(raw_text: str | None) -> dict[str, Any] | None:
    """Recover a JSON object from arbitrary text, or None."""

    recovered = recover_json_with_trace(raw_text)
    return recovered.value if recovered is not None else None


def extract_questions(payload: Any) -> list[RawParsedQuestion]:
    """Read the per-question records out of a recovered payload."""

    if isinstance(payload, list):
        return [entry for entry in payload if isinstance(entry, dict)]
    if not isinstance(payload, dict):
        return []

    candidate = pick_first_key(payload, QUESTION_LIST_KEYS)
    if isinstance(candidate, dict):
        nested = pick_first_key(candidate, QUESTION_LIST_KEYS)
        candidate = nested if isinstance(nested, list) else [candidate]
    if isinstance(candidate, list):
        return [entry for entry in candidate if isinstance(entry, dict)]

    if any(key in payload for key in SINGLE_QUESTION_KEYS):
        return [payload]
    return []
