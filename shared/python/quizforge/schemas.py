"""Pydantic schemas for canonical questions, provider payloads and API contracts."""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from quizforge.enums import AiProvider, FailureKind, FallbackTier, ParseSource, QuestionType

ORDERING_JOINER = " -> "
MIN_ORDERING_ITEMS = 3
MAX_ORDERING_ITEMS = 8

# Loosely shaped record straight out of a parser; any field may be missing or mistyped.
RawParsedQuestion = dict[str, Any]


class CamelModel(BaseModel):
    """Snake-case fields, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Choice(CamelModel):
    id: str
    text: str = ""
    correct: bool = False


class MatchingPair(CamelModel):
    id: str
    left_item: str = ""
    right_item: str = ""


class QuestionBase(CamelModel):
    id: str
    prompt: str = ""
    image_url: str | None = None


class McqQuestion(QuestionBase):
    type: Literal[QuestionType.MCQ] = QuestionType.MCQ
    choices: list[Choice] = Field(default_factory=list)


class TrueFalseQuestion(QuestionBase):
    type: Literal[QuestionType.TRUE_FALSE] = QuestionType.TRUE_FALSE
    choices: list[Choice] = Field(default_factory=list)


class ShortQuestion(QuestionBase):
    type: Literal[QuestionType.SHORT] = QuestionType.SHORT
    answer: str = ""


class GapFillQuestion(QuestionBase):
    type: Literal[QuestionType.GAP_FILL] = QuestionType.GAP_FILL
    answer: str = ""


class EssayQuestion(QuestionBase):
    type: Literal[QuestionType.ESSAY] = QuestionType.ESSAY
    answer: str = ""


class MatchingQuestion(QuestionBase):
    type: Literal[QuestionType.MATCHING] = QuestionType.MATCHING
    matching_pairs: list[MatchingPair] = Field(default_factory=list)


class OrderingQuestion(QuestionBase):
    type: Literal[QuestionType.ORDERING] = QuestionType.ORDERING
    ordering_items: list[str] = Field(default_factory=list)
    answer: str = ""

    @model_validator(mode="after")
    def _derive_answer(self) -> "OrderingQuestion":
        self.answer = ORDERING_JOINER.join(self.ordering_items)
        return self


Question = Annotated[
    Union[
        McqQuestion,
        TrueFalseQuestion,
        ShortQuestion,
        GapFillQuestion,
        EssayQuestion,
        MatchingQuestion,
        OrderingQuestion,
    ],
    Field(discriminator="type"),
]

QUESTION_MODELS: dict[QuestionType, type[QuestionBase]] = {
    QuestionType.MCQ: McqQuestion,
    QuestionType.TRUE_FALSE: TrueFalseQuestion,
    QuestionType.SHORT: ShortQuestion,
    QuestionType.GAP_FILL: GapFillQuestion,
    QuestionType.ESSAY: EssayQuestion,
    QuestionType.MATCHING: MatchingQuestion,
    QuestionType.ORDERING: OrderingQuestion,
}


class FallbackTierConfig(BaseModel):
    """One model entry of a provider fallback chain."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    model_id: str
    max_questions: int | None = None
    temperature: float | None = None
    max_tokens: int = 1000
    tokens_per_question: int | None = None
    cost_rank: int = 0
    extra: dict[str, Any] = Field(default_factory=dict)

    def request_count(self, requested: int) -> int:
        if self.max_questions is None:
            return requested
        return min(requested, self.max_questions)

    def token_budget(self, count: int) -> int:
        if self.tokens_per_question is None:
            return self.max_tokens
        return min(self.max_tokens, count * self.tokens_per_question)


class ProviderCallResult(BaseModel):
    """Outcome of a single tier attempt; never stored beyond the orchestrator."""

    success: bool
    generated_text: str | None = None
    failure: FailureKind | None = None
    status_code: int | None = None
    detail: str | None = None


class GenerationRequest(BaseModel):
    topic: str
    question_type: QuestionType
    count: int = Field(default=5, ge=1)
    grade: str | None = None
    language: str = "português"
    token: str | None = None


class ImageRequest(BaseModel):
    provider: AiProvider
    prompt: str
    width: int = 512
    height: int = 512
    steps: int | None = None
    token: str | None = None


class ProviderInfo(BaseModel):
    name: str
    description: str
    requires_token: bool
    token_label: str = ""
    token_help: str = ""
    rate_limit: str = ""


class GenerateQuestionsRequest(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    provider: AiProvider
    topic: str = Field(min_length=1, max_length=500)
    question_type: QuestionType
    count: int = Field(default=5, ge=1, le=50)
    grade: str | None = None
    language: str = "português"
    token: str | None = None


class GenerateQuestionsResponse(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    provider: AiProvider
    tier: FallbackTier
    model_id: str
    questions: list[Question]
    accepted: int
    rejected: int
    message: str


class ParseQuestionsRequest(BaseModel):
    text: str = Field(min_length=1)
    question_type: QuestionType


class ParseQuestionsResponse(BaseModel):
    source: ParseSource
    strategy: str | None = None
    questions: list[Question]
    accepted: int
    rejected: int
    message: str


class SupportTextRequest(BaseModel):
    provider: AiProvider
    topic: str = Field(min_length=1, max_length=500)
    grade: str | None = None
    language: str = "português"
    token: str | None = None
    questions: list[Question] = Field(default_factory=list)


class SupportTextResponse(BaseModel):
    text: str
