"""Acceptance rules for normalized questions.

The same predicate set serves two call sites: reviewing a freshly generated batch
and committing questions into an existing quiz.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Sequence

from quizforge.enums import RejectionReason
from quizforge.schemas import (
    MAX_ORDERING_ITEMS,
    MIN_ORDERING_ITEMS,
    EssayQuestion,
    GapFillQuestion,
    MatchingQuestion,
    McqQuestion,
    OrderingQuestion,
    Question,
    ShortQuestion,
    TrueFalseQuestion,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RejectedQuestion:
    question: Question
    reason: RejectionReason


@dataclass(slots=True)
class BatchReview:
    """Partial-success summary of a batch."""

    accepted: list[Question] = field(default_factory=list)
    rejected: list[RejectedQuestion] = field(default_factory=list)
    message: str = ""

    @property
    def total(self) -> int:
        return len(self.accepted) + len(self.rejected)


@dataclass(slots=True)
class MergeResult:
    questions: list[Question]
    review: BatchReview


def rejection_reason(question: Question) -> RejectionReason | None:
    """Why `question` is not usable, or None when it is."""

    if not question.prompt.strip():
        return RejectionReason.MISSING_PROMPT

    if isinstance(question, (McqQuestion, TrueFalseQuestion)):
        if not question.choices:
            return RejectionReason.NO_CHOICES
        if not any(choice.correct for choice in question.choices):
            return RejectionReason.NO_CORRECT_CHOICE
        return None

    if isinstance(question, (ShortQuestion, GapFillQuestion, EssayQuestion)):
        return None if question.answer.strip() else RejectionReason.EMPTY_ANSWER

    if isinstance(question, MatchingQuestion):
        if not question.matching_pairs:
            return RejectionReason.NO_PAIRS
        for pair in question.matching_pairs:
            if not pair.left_item.strip() or not pair.right_item.strip():
                return RejectionReason.INCOMPLETE_PAIR
        return None

    if isinstance(question, OrderingQuestion):
        count = len(question.ordering_items)
        if count < MIN_ORDERING_ITEMS:
            return RejectionReason.TOO_FEW_ITEMS
        if count > MAX_ORDERING_ITEMS:
            return RejectionReason.TOO_MANY_ITEMS
        if any(not item.strip() for item in question.ordering_items):
            return RejectionReason.EMPTY_ITEM
        return None

    return None


def is_acceptable(question: Question) -> bool:
    return rejection_reason(question) is None


def review_batch(questions: Sequence[Question]) -> BatchReview:
    """Split a batch into accepted and rejected questions without failing it."""

    review = BatchReview()
    for question in questions:
        reason = rejection_reason(question)
        if reason is None:
            review.accepted.append(question)
        else:
            review.rejected.append(RejectedQuestion(question=question, reason=reason))
    review.message = f"{len(review.accepted)} of {review.total} accepted"

    if review.rejected:
        logger.info(
            "questions rejected by validation",
            extra={"accepted": len(review.accepted), "rejected": len(review.rejected)},
        )
    return review


def _trimmed(question: Question) -> Question:
    update: dict = {"prompt": question.prompt.strip()}
    if isinstance(question, (McqQuestion, TrueFalseQuestion)):
        update["choices"] = [
            choice.model_copy(update={"text": choice.text.strip()}) for choice in question.choices
        ]
    elif isinstance(question, (ShortQuestion, GapFillQuestion, EssayQuestion)):
        update["answer"] = question.answer.strip()
    elif isinstance(question, MatchingQuestion):
        update["matching_pairs"] = [
            pair.model_copy(
                update={"left_item": pair.left_item.strip(), "right_item": pair.right_item.strip()}
            )
            for pair in question.matching_pairs
        ]
    elif isinstance(question, OrderingQuestion):
        items = [item.strip() for item in question.ordering_items]
        # model_copy skips validators, so the joined answer is rebuilt here.
        return OrderingQuestion(
            id=question.id,
            prompt=update["prompt"],
            image_url=question.image_url,
            ordering_items=items,
        )
    return question.model_copy(update=update)


def _unique_id(candidate: str, taken: set[str]) -> str:
    if candidate not in taken:
        return candidate
    suffix = 1
    while f"{candidate}-{suffix}" in taken:
        suffix += 1
    return f"{candidate}-{suffix}"


def merge_into_quiz(existing: Sequence[Question], incoming: Sequence[Question]) -> MergeResult:
    """Append acceptable incoming questions to a quiz, trimming values and de-duplicating ids."""

    review = review_batch(incoming)
    taken = {question.id for question in existing}
    merged: list[Question] = list(existing)
    for question in review.accepted:
        cleaned = _trimmed(question)
        new_id = _unique_id(cleaned.id, taken)
        if new_id != cleaned.id:
            cleaned = cleaned.model_copy(update={"id": new_id})
        taken.add(new_id)
        merged.append(cleaned)
    return MergeResult(questions=merged, review=review)
