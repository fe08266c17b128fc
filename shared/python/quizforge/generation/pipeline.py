"""Caller-facing generation surface.

Raw model text goes through JSON recovery first and the labeled-line parser only
when no question list can be recovered. Parsed records are normalized, then
reviewed by the validation gate; only accepted questions reach the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import time
from typing import Sequence

from quizforge.enums import (
    AiProvider,
    FailureKind,
    FallbackTier,
    ParseSource,
    QuestionType,
    RecoveryStrategy,
)
from quizforge.errors import SUPPORT_TEXT_MESSAGE, GenerationError
from quizforge.generation.normalizer import normalize_all
from quizforge.generation.prompts import build_support_text_prompt
from quizforge.generation.validation import BatchReview, review_batch
from quizforge.images.batch import ImageBatchReport, ImageGenerator, attach_images
from quizforge.llm.orchestrator import FallbackOrchestrator, TierAttempt
from quizforge.llm.transport import HttpTransport
from quizforge.parsing.json_recovery import extract_questions, recover_json_with_trace
from quizforge.parsing.text_fallback import parse_text
from quizforge.schemas import GenerationRequest, ProviderInfo, Question, RawParsedQuestion

logger = logging.getLogger(__name__)

SUPPORT_TEXT_MAX_TOKENS = 1500
CONNECTION_TEST_TOPIC = "teste"

PROVIDER_INFO: dict[AiProvider, ProviderInfo] = {
    AiProvider.POLLINATIONS: ProviderInfo(
        name="Pollinations",
        description="Serviço gratuito sem necessidade de registro ou chave de API",
        requires_token=False,
        rate_limit="Limites públicos podem aplicar-se em horários de pico",
    ),
    AiProvider.HUGGINGFACE: ProviderInfo(
        name="Hugging Face",
        description="Modelos de IA avançados com token gratuito",
        requires_token=True,
        token_label="Token Hugging Face",
        token_help="Obtenha seu token gratuito em: huggingface.co/settings/tokens",
        rate_limit="Limite de taxa aplicável para usuários gratuitos",
    ),
    AiProvider.MISTRAL: ProviderInfo(
        name="Mistral",
        description="API direta do Mistral com modelos de alta qualidade",
        requires_token=True,
        token_label="Chave de API Mistral",
        token_help="Obtenha sua chave de API em: console.mistral.ai/api-keys",
        rate_limit="Limite de taxa conforme plano contratado",
    ),
}


@dataclass(slots=True)
class ParsedResponse:
    raw_questions: list[RawParsedQuestion]
    source: ParseSource
    strategy: RecoveryStrategy | None = None


@dataclass(slots=True)
class GenerationOutcome:
    questions: list[Question]
    review: BatchReview
    provider: AiProvider
    tier: FallbackTier
    model_id: str
    source: ParseSource
    strategy: RecoveryStrategy | None = None
    attempts: list[TierAttempt] = field(default_factory=list)


@dataclass(slots=True)
class ConnectionCheck:
    success: bool
    message: str


def parse_response(text: str | None, question_type: QuestionType) -> ParsedResponse:
    """Recover raw question records from model text."""

    recovered = recover_json_with_trace(text)
    if recovered is not None:
        raw_questions = extract_questions(recovered.value)
        if raw_questions:
            return ParsedResponse(raw_questions, ParseSource.JSON, recovered.strategy)

    raw_questions = parse_text(text, question_type)
    if raw_questions:
        return ParsedResponse(raw_questions, ParseSource.TEXT)
    return ParsedResponse([], ParseSource.NONE)


def build_questions(
    text: str | None,
    question_type: QuestionType,
    batch_stamp: str | None = None,
) -> list[Question]:
    """Parse and normalize; the result still has to pass the validation gate."""

    return normalize_all(parse_response(text, question_type).raw_questions, question_type, batch_stamp)


def _batch_stamp() -> str:
    return str(int(time.time() * 1000))


async def run_generation(
    provider: AiProvider,
    request: GenerationRequest,
    orchestrator: FallbackOrchestrator | None = None,
    transport: HttpTransport | None = None,
) -> GenerationOutcome:
    """Generate, parse, normalize and review one batch, keeping the full trace."""

    orchestrator = orchestrator or FallbackOrchestrator(transport=transport)
    result = await orchestrator.run(
        provider,
        request,
        accept=lambda text: bool(parse_response(text, request.question_type).raw_questions),
    )

    parsed = parse_response(result.text, request.question_type)
    questions = normalize_all(parsed.raw_questions, request.question_type, _batch_stamp())
    review = review_batch(questions)
    logger.info(
        "questions generated",
        extra={
            "provider": result.provider.value,
            "tier": result.tier.value,
            "model_id": result.config.model_id,
            "question_type": request.question_type.value,
            "requested": request.count,
            "accepted": len(review.accepted),
            "rejected": len(review.rejected),
            "source": parsed.source.value,
            "strategy": parsed.strategy.value if parsed.strategy else None,
        },
    )
    return GenerationOutcome(
        questions=review.accepted[: request.count],
        review=review,
        provider=result.provider,
        tier=result.tier,
        model_id=result.config.model_id,
        source=parsed.source,
        strategy=parsed.strategy,
        attempts=result.attempts,
    )


async def generate_questions(
    provider: AiProvider,
    topic: str,
    grade: str | None,
    question_type: QuestionType,
    count: int,
    token: str | None = None,
    language: str = "português",
    orchestrator: FallbackOrchestrator | None = None,
) -> list[Question]:
    """Accepted questions only; raises `GenerationError` when every tier failed."""

    request = GenerationRequest(
        topic=topic,
        question_type=question_type,
        count=count,
        grade=grade,
        language=language,
        token=token,
    )
    outcome = await run_generation(provider, request, orchestrator=orchestrator)
    return outcome.questions


async def generate_questions_with_images(
    provider: AiProvider,
    topic: str,
    grade: str | None,
    question_type: QuestionType,
    count: int,
    image_generator: ImageGenerator,
    token: str | None = None,
    language: str = "português",
    image_provider: AiProvider | None = None,
    image_token: str | None = None,
    orchestrator: FallbackOrchestrator | None = None,
) -> ImageBatchReport:
    """Generate questions, then illustrate them; image failures never fail the call."""

    questions = await generate_questions(
        provider,
        topic,
        grade,
        question_type,
        count,
        token=token,
        language=language,
        orchestrator=orchestrator,
    )
    return await attach_images(
        questions,
        image_generator,
        subject=topic,
        provider=image_provider or AiProvider.POLLINATIONS,
        token=image_token,
    )


async def generate_support_text(
    provider: AiProvider,
    topic: str,
    grade: str | None = None,
    language: str | None = None,
    token: str | None = None,
    questions: Sequence[Question] = (),
    orchestrator: FallbackOrchestrator | None = None,
) -> str:
    """Free-text study guide for a quiz, through the same fallback chain."""

    orchestrator = orchestrator or FallbackOrchestrator()
    prompt = build_support_text_prompt(topic, grade, language, questions)
    # A single "item" keeps every tier on the same prompt and token budget.
    request = GenerationRequest(
        topic=topic,
        question_type=QuestionType.ESSAY,
        count=1,
        grade=grade,
        language=language or "português",
        token=token,
    )
    try:
        result = await orchestrator.run(
            provider,
            request,
            prompt_builder=lambda _count: prompt,
            max_tokens=SUPPORT_TEXT_MAX_TOKENS,
        )
    except GenerationError as exc:
        if exc.kind in (FailureKind.AUTH_ERROR, FailureKind.RATE_LIMITED):
            raise
        raise GenerationError(exc.kind, SUPPORT_TEXT_MESSAGE) from exc
    return result.text


async def check_provider_connection(
    provider: AiProvider,
    token: str | None = None,
    orchestrator: FallbackOrchestrator | None = None,
) -> ConnectionCheck:
    """Run a one-question generation and report whether the provider answered."""

    provider = AiProvider(provider)
    try:
        await generate_questions(
            provider,
            CONNECTION_TEST_TOPIC,
            None,
            QuestionType.MCQ,
            1,
            token=token,
            orchestrator=orchestrator,
        )
    except GenerationError as exc:
        return ConnectionCheck(success=False, message=f"Falha na conexão: {exc.user_message}")
    name = PROVIDER_INFO[provider].name
    return ConnectionCheck(success=True, message=f"Conexão com {name} estabelecida com sucesso")
