from quizforge.enums import RejectionReason
from quizforge.generation.grammars import GRAMMARS
from quizforge.generation.normalizer import normalize
from quizforge.generation.validation import (
    is_acceptable,
    merge_into_quiz,
    rejection_reason,
    review_batch,
)
from quizforge.schemas import (
    Choice,
    EssayQuestion,
    GapFillQuestion,
    MatchingPair,
    MatchingQuestion,
    McqQuestion,
    OrderingQuestion,
    ShortQuestion,
    TrueFalseQuestion,
)


def _mcq(question_id: str = "1", prompt: str = "Quanto é 2+2?", correct: int | None = 1) -> McqQuestion:
    return McqQuestion(
        id=question_id,
        prompt=prompt,
        choices=[Choice(id=str(index), text=text, correct=index == correct) for index, text in enumerate(["3", "4", "5", "6"])],
    )


def _ordering(count: int) -> OrderingQuestion:
    return OrderingQuestion(id="o", prompt="Ordene", ordering_items=[f"passo {index}" for index in range(count)])


def test_complete_questions_of_every_type_are_accepted() -> None:
    questions = [
        _mcq(),
        TrueFalseQuestion(
            id="2",
            prompt="O sol é uma estrela",
            choices=[Choice(id="0", text="Verdadeiro", correct=True), Choice(id="1", text="Falso")],
        ),
        ShortQuestion(id="3", prompt="Capital da França?", answer="Paris"),
        GapFillQuestion(id="4", prompt="O ___ é azul", answer="céu"),
        EssayQuestion(id="5", prompt="Explique a fotossíntese", answer="As plantas..."),
        MatchingQuestion(
            id="6",
            prompt="Associe",
            matching_pairs=[MatchingPair(id="0", left_item="Brasil", right_item="Brasília")],
        ),
        _ordering(3),
    ]

    assert all(is_acceptable(question) for question in questions)


def test_missing_fields_are_rejected_with_a_reason() -> None:
    assert rejection_reason(_mcq(prompt="   ")) == RejectionReason.MISSING_PROMPT
    assert rejection_reason(McqQuestion(id="1", prompt="Q")) == RejectionReason.NO_CHOICES
    assert rejection_reason(_mcq(correct=None)) == RejectionReason.NO_CORRECT_CHOICE
    assert rejection_reason(ShortQuestion(id="1", prompt="Q", answer="  ")) == RejectionReason.EMPTY_ANSWER
    assert rejection_reason(MatchingQuestion(id="1", prompt="Q")) == RejectionReason.NO_PAIRS
    assert (
        rejection_reason(
            MatchingQuestion(
                id="1",
                prompt="Q",
                matching_pairs=[MatchingPair(id="0", left_item="Brasil", right_item="")],
            )
        )
        == RejectionReason.INCOMPLETE_PAIR
    )
    assert (
        rejection_reason(OrderingQuestion(id="1", prompt="Q", ordering_items=["a", " ", "c"]))
        == RejectionReason.EMPTY_ITEM
    )


def test_ordering_bounds() -> None:
    assert rejection_reason(_ordering(2)) == RejectionReason.TOO_FEW_ITEMS
    assert rejection_reason(_ordering(3)) is None
    assert rejection_reason(_ordering(8)) is None
    assert rejection_reason(_ordering(9)) == RejectionReason.TOO_MANY_ITEMS


def test_partial_batch_keeps_valid_questions() -> None:
    batch = [_mcq("a"), _mcq("b", correct=None), _mcq("c")]

    review = review_batch(batch)

    assert [question.id for question in review.accepted] == ["a", "c"]
    assert [(item.question.id, item.reason) for item in review.rejected] == [
        ("b", RejectionReason.NO_CORRECT_CHOICE)
    ]
    assert review.total == 3
    assert review.message == "2 of 3 accepted"


def test_empty_batch_review() -> None:
    review = review_batch([])

    assert review.accepted == []
    assert review.message == "0 of 0 accepted"


def test_merge_trims_values_and_deduplicates_ids() -> None:
    existing = [_mcq("1"), ShortQuestion(id="1-1", prompt="Antiga", answer="x")]
    incoming = [
        ShortQuestion(id="1", prompt="  Capital da Itália?  ", answer="  Roma "),
        OrderingQuestion(id="2", prompt="Ordene", ordering_items=[" a ", "b ", " c"]),
        ShortQuestion(id="3", prompt="Sem resposta", answer=""),
    ]

    result = merge_into_quiz(existing, incoming)

    assert [question.id for question in result.questions] == ["1", "1-1", "1-2", "2"]
    added_short, added_ordering = result.questions[2], result.questions[3]
    assert added_short.prompt == "Capital da Itália?"
    assert added_short.answer == "Roma"
    assert added_ordering.ordering_items == ["a", "b", "c"]
    assert added_ordering.answer == "a -> b -> c"
    assert result.review.message == "2 of 3 accepted"
    assert result.review.rejected[0].reason == RejectionReason.EMPTY_ANSWER


def test_merge_keeps_existing_questions_untouched() -> None:
    existing = [_mcq("1", prompt="  com espaços  ")]

    result = merge_into_quiz(existing, [])

    assert result.questions == existing
    assert result.questions[0].prompt == "  com espaços  "


def test_every_grammar_names_fields_the_gate_checks() -> None:
    for question_type, grammar in GRAMMARS.items():
        empty = normalize({}, question_type, 0)

        for field_name in grammar.required_fields:
            assert hasattr(empty, field_name)
        assert not is_acceptable(empty)


def test_mixed_batch_rejects_only_the_incomplete_matching_question() -> None:
    batch = [
        _mcq("1"),
        MatchingQuestion(
            id="2",
            prompt="Associe",
            matching_pairs=[
                MatchingPair(id="0", left_item="Brasil", right_item="Brasília"),
                MatchingPair(id="1", left_item="França", right_item=""),
            ],
        ),
        ShortQuestion(id="3", prompt="Capital da Itália?", answer="Roma"),
    ]

    review = review_batch(batch)

    assert [question.id for question in review.accepted] == ["1", "3"]
    assert review.rejected[0].question.id == "2"
    assert review.rejected[0].reason == RejectionReason.INCOMPLETE_PAIR
    assert review.message == "2 of 3 accepted"
