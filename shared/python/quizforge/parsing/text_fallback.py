"""Labeled-line parser for model answers that carry no usable JSON.

Text is split into blank-line separated paragraphs and each paragraph is matched
against the line grammar of the requested question type. A paragraph that does
not match yields a rejection reason instead of raising, so the whole call can
legitimately return nothing.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import re
from typing import Callable

from quizforge.enums import QuestionType, RejectionReason
from quizforge.generation.grammars import (
    ANSWER_LABEL,
    FREE_TEXT_ANSWER_LABELS,
    FREE_TEXT_QUESTION_LABELS,
    LEFT_LABEL,
    MATCHES_LABEL,
    MCQ_OPTION_LETTERS,
    ORDER_LABELS,
    QUESTION_LABEL,
    RIGHT_LABEL,
    STATEMENT_LABEL,
    TRUE_TOKENS,
    strip_label,
)
from quizforge.schemas import MIN_ORDERING_ITEMS, RawParsedQuestion

logger = logging.getLogger(__name__)

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
_MCQ_OPTION = re.compile(r"^([A-D])\)\s*")
# Letter alone or closed by ")", "." or ":".
_ANSWER_LETTER = re.compile(r"^\(?([A-Da-d])(?:[).:]|\s*$)")
# "->" must be tried before ">" so arrows never leave a dangling dash.
ORDERING_SPLIT = re.compile(r"->|>|→|➔|,|;")
_ENUMERATION_MARKER = re.compile(r"^\d+[\).]?\s*")
_BRACKETS = "[]"


@dataclass(slots=True)
class ParagraphResult:
    """Outcome of one paragraph: a raw question, or why it was dropped."""

    index: int
    raw: RawParsedQuestion | None = None
    reason: RejectionReason | None = None

    @property
    def accepted(self) -> bool:
        return self.raw is not None


def split_paragraphs(text: str) -> list[str]:
    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    return [section for section in _PARAGRAPH_BREAK.split(normalized) if section.strip()]


def split_ordering_text(text: str) -> list[str]:
    """Split a sequence line on arrows, `>`, `,` or `;` and drop enumeration markers."""

    items = (_ENUMERATION_MARKER.sub("", part.strip()).strip() for part in ORDERING_SPLIT.split(text))
    return [item for item in items if item]


def _lines(paragraph: str) -> list[str]:
    return [line.strip() for line in paragraph.split("\n") if line.strip()]


def _find_value(lines: list[str], labels: tuple[str, ...]) -> str | None:
    for line in lines:
        value = strip_label(line, labels)
        if value is not None:
            return value
    return None


def _split_csv(value: str) -> list[str]:
    return [part.strip().strip(_BRACKETS).strip() for part in value.split(",")]


def _resolve_index(token: str) -> int | None:
    """Map `1`/`A` style references onto a 0-based index."""

    token = token.strip().strip(_BRACKETS).strip()
    digits = re.search(r"\d+", token)
    if digits:
        return int(digits.group(0)) - 1
    if len(token) == 1 and token.isalpha():
        return ord(token.upper()) - ord("A")
    return None


def _parse_mcq(lines: list[str]) -> RawParsedQuestion | RejectionReason:
    prompt = _find_value(lines, (QUESTION_LABEL,))
    answer = _find_value(lines, (ANSWER_LABEL,))
    if prompt is None or answer is None:
        return RejectionReason.MISSING_LABELS

    options = [line for line in lines if _MCQ_OPTION.match(line)]
    if len(options) != len(MCQ_OPTION_LETTERS):
        return RejectionReason.WRONG_OPTION_COUNT

    letter = _ANSWER_LETTER.match(answer.strip())
    if letter is None:
        return RejectionReason.UNKNOWN_ANSWER_LETTER
    return {
        "prompt": prompt,
        "choices": [_MCQ_OPTION.sub("", option).strip() for option in options],
        "correct": MCQ_OPTION_LETTERS.index(letter.group(1).upper()),
        "explanation": "",
    }


def _parse_truefalse(lines: list[str]) -> RawParsedQuestion | RejectionReason:
    prompt = _find_value(lines, (STATEMENT_LABEL,))
    answer = _find_value(lines, (ANSWER_LABEL,))
    if prompt is None or answer is None:
        return RejectionReason.MISSING_LABELS

    answer = answer.lower().rstrip(".")
    correct = "verdade" in answer or answer in TRUE_TOKENS
    return {"prompt": prompt, "correct": correct, "explanation": ""}


def _parse_free_text(lines: list[str]) -> RawParsedQuestion | RejectionReason:
    prompt = _find_value(lines, FREE_TEXT_QUESTION_LABELS)
    answer = _find_value(lines, FREE_TEXT_ANSWER_LABELS)
    if prompt is None or answer is None:
        return RejectionReason.MISSING_LABELS
    return {"prompt": prompt, "answer": answer, "explanation": ""}


def _parse_matching(lines: list[str]) -> RawParsedQuestion | RejectionReason:
    prompt = _find_value(lines, (QUESTION_LABEL,))
    left = _find_value(lines, (LEFT_LABEL,))
    right = _find_value(lines, (RIGHT_LABEL,))
    answers = _find_value(lines, (MATCHES_LABEL,))
    if prompt is None or left is None or right is None or answers is None:
        return RejectionReason.MISSING_LABELS

    left_items = _split_csv(left)
    right_items = _split_csv(right)
    pairs: list[dict[str, str]] = []
    for entry in _split_csv(answers):
        if "-" not in entry:
            continue
        left_ref, right_ref = entry.split("-", 1)
        left_index = _resolve_index(left_ref)
        right_index = _resolve_index(right_ref)
        if left_index is None or right_index is None:
            continue
        if not (0 <= left_index < len(left_items) and 0 <= right_index < len(right_items)):
            continue
        if left_items[left_index] and right_items[right_index]:
            pairs.append({"leftItem": left_items[left_index], "rightItem": right_items[right_index]})

    if not pairs:
        return RejectionReason.NO_PAIRS
    return {"prompt": prompt, "matchingPairs": pairs, "explanation": ""}


def _parse_ordering(lines: list[str]) -> RawParsedQuestion | RejectionReason:
    prompt = _find_value(lines, (QUESTION_LABEL,))
    order_line = next(
        (line for line in lines if line.lower().startswith(ORDER_LABELS)),
        None,
    )
    if order_line is not None:
        sequence = order_line.split(":", 1)[1]
    else:
        sequence = _find_value(lines, (ANSWER_LABEL,))
    if prompt is None or sequence is None:
        return RejectionReason.MISSING_LABELS

    items = split_ordering_text(sequence)
    if len(items) < MIN_ORDERING_ITEMS:
        return RejectionReason.TOO_FEW_ITEMS
    return {"prompt": prompt, "orderingItems": items, "explanation": ""}


_PARSERS: dict[QuestionType, Callable[[list[str]], RawParsedQuestion | RejectionReason]] = {
    QuestionType.MCQ: _parse_mcq,
    QuestionType.TRUE_FALSE: _parse_truefalse,
    QuestionType.SHORT: _parse_free_text,
    QuestionType.GAP_FILL: _parse_free_text,
    QuestionType.ESSAY: _parse_free_text,
    QuestionType.MATCHING: _parse_matching,
    QuestionType.ORDERING: _parse_ordering,
}


def parse_text_with_report(text: str | None, question_type: QuestionType) -> list[ParagraphResult]:
    """Parse every paragraph and keep the reason for each one that was dropped."""

    if not text:
        return []
    parser = _PARSERS[QuestionType(question_type)]
    results: list[ParagraphResult] = []
    for index, paragraph in enumerate(split_paragraphs(text)):
        outcome = parser(_lines(paragraph))
        if isinstance(outcome, RejectionReason):
            results.append(ParagraphResult(index=index, reason=outcome))
        else:
            results.append(ParagraphResult(index=index, raw=outcome))

    dropped = [result for result in results if not result.accepted]
    if dropped:
        logger.debug(
            "text paragraphs dropped",
            extra={"question_type": str(question_type), "rejected": len(dropped)},
        )
    return results


def parse_text(text: str | None, question_type: QuestionType) -> list[RawParsedQuestion]:
    """Raw questions recognised in labeled-line text; empty when nothing matches."""

    return [result.raw for result in parse_text_with_report(text, question_type) if result.raw is not None]
