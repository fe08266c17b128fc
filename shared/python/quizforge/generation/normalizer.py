"""Map loosely shaped raw questions onto the canonical question union.

`normalize` is total: any mapping (even `{}`) produces a question of the requested
type with its variant fields present. Whether the result is complete enough to use
is decided afterwards by the validation gate.
"""

from __future__ import annotations

import re
from typing import Any, Mapping

from quizforge.enums import FREE_TEXT_TYPES, QuestionType
from quizforge.generation.grammars import FALSE_LABEL, FALSE_TOKENS, TRUE_LABEL, TRUE_TOKENS
from quizforge.parsing.fields import ORDERING_TEXT_KEYS, coerce_text, pick_first_key
from quizforge.parsing.text_fallback import split_ordering_text
from quizforge.schemas import (
    MAX_ORDERING_ITEMS,
    QUESTION_MODELS,
    Choice,
    MatchingPair,
    Question,
    RawParsedQuestion,
)

PROMPT_KEYS: tuple[str, ...] = ("prompt", "question", "statement", "text")
CORRECT_KEYS: tuple[str, ...] = ("correct", "correctAnswer", "correct_index", "answer_index")
CHOICE_KEYS: tuple[str, ...] = ("choices", "options", "answer_options")
PAIR_KEYS: tuple[str, ...] = ("matchingPairs", "pairs")
LEFT_KEYS: tuple[str, ...] = ("leftItem", "left", "term")
RIGHT_KEYS: tuple[str, ...] = ("rightItem", "right", "definition")
ORDERING_LIST_KEYS: tuple[str, ...] = ("orderingItems", "items", "sequence")
ANSWER_KEYS: tuple[str, ...] = ("answer", "correct_answer", "expected_answer", "resposta")

_PAIR_ARROW = re.compile(r"\s*(?:->|→|=>|:)\s*")


def make_question_id(index: int, batch_stamp: str | None = None) -> str:
    return f"{batch_stamp}-{index}" if batch_stamp else str(index)


def _as_index(value: Any, size: int) -> int | None:
    """Read a correct-choice reference as a 0-based index; booleans are never indices."""

    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        token = value.strip().rstrip(").").strip()
        if re.fullmatch(r"-?\d+", token):
            return int(token)
        if len(token) == 1 and token.isalpha():
            index = ord(token.upper()) - ord("A")
            return index if 0 <= index < max(size, 1) else None
    return None


def _as_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        token = value.strip().lower().rstrip(".")
        if token in TRUE_TOKENS:
            return True
        if token in FALSE_TOKENS:
            return False
    return None


def _normalize_choices(raw: Mapping[str, Any]) -> list[Choice]:
    entries = pick_first_key(raw, CHOICE_KEYS)
    if not isinstance(entries, list):
        entries = []
    correct_index = _as_index(pick_first_key(raw, CORRECT_KEYS), len(entries))

    choices: list[Choice] = []
    for position, entry in enumerate(entries):
        flagged = False
        if isinstance(entry, Mapping):
            flagged = _as_bool(entry.get("correct")) is True
        choices.append(
            Choice(
                id=str(position),
                text=coerce_text(entry),
                correct=flagged or position == correct_index,
            )
        )
    return choices


def _normalize_truefalse(raw: Mapping[str, Any]) -> list[Choice]:
    verdict = _as_bool(pick_first_key(raw, CORRECT_KEYS))
    return [
        Choice(id="0", text=TRUE_LABEL, correct=verdict is True),
        Choice(id="1", text=FALSE_LABEL, correct=verdict is False),
    ]


def _normalize_pair(entry: Any, position: int) -> MatchingPair:
    pair_id = str(position)
    if isinstance(entry, Mapping):
        own_id = entry.get("id")
        if isinstance(own_id, (str, int)) and not isinstance(own_id, bool) and str(own_id).strip():
            pair_id = str(own_id).strip()
        return MatchingPair(
            id=pair_id,
            left_item=coerce_text(pick_first_key(entry, LEFT_KEYS)),
            right_item=coerce_text(pick_first_key(entry, RIGHT_KEYS)),
        )
    if isinstance(entry, str):
        parts = _PAIR_ARROW.split(entry.strip(), maxsplit=1)
        if len(parts) == 2:
            return MatchingPair(id=pair_id, left_item=parts[0].strip(), right_item=parts[1].strip())
    return MatchingPair(id=pair_id)


def _normalize_pairs(raw: Mapping[str, Any]) -> list[MatchingPair]:
    entries = pick_first_key(raw, PAIR_KEYS)
    if not isinstance(entries, list):
        return []
    return [_normalize_pair(entry, position) for position, entry in enumerate(entries)]


def _normalize_ordering(raw: Mapping[str, Any]) -> list[str]:
    source = pick_first_key(raw, ORDERING_LIST_KEYS)
    if isinstance(source, list):
        entries = [coerce_text(entry, ORDERING_TEXT_KEYS) for entry in source]
    elif isinstance(source, str):
        entries = split_ordering_text(source)
    elif isinstance(raw.get("answer"), str):
        entries = split_ordering_text(raw["answer"])
    else:
        entries = []
    return [entry for entry in entries if entry][:MAX_ORDERING_ITEMS]


def normalize(
    raw: RawParsedQuestion | Any,
    question_type: QuestionType,
    index: int,
    batch_stamp: str | None = None,
) -> Question:
    """Build the canonical question for `question_type` from a raw record."""

    question_type = QuestionType(question_type)
    if not isinstance(raw, Mapping):
        raw = {}

    fields: dict[str, Any] = {
        "id": make_question_id(index, batch_stamp),
        "prompt": coerce_text(pick_first_key(raw, PROMPT_KEYS)),
    }
    if question_type == QuestionType.MCQ:
        fields["choices"] = _normalize_choices(raw)
    elif question_type == QuestionType.TRUE_FALSE:
        fields["choices"] = _normalize_truefalse(raw)
    elif question_type in FREE_TEXT_TYPES:
        fields["answer"] = coerce_text(pick_first_key(raw, ANSWER_KEYS))
    elif question_type == QuestionType.MATCHING:
        fields["matching_pairs"] = _normalize_pairs(raw)
    elif question_type == QuestionType.ORDERING:
        fields["ordering_items"] = _normalize_ordering(raw)

    return QUESTION_MODELS[question_type](**fields)


def normalize_all(
    raw_questions: list[RawParsedQuestion],
    question_type: QuestionType,
    batch_stamp: str | None = None,
) -> list[Question]:
    return [
        normalize(raw, question_type, index, batch_stamp)
        for index, raw in enumerate(raw_questions)
    ]
