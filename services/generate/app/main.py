"""Generation service: quiz questions and support text from AI providers."""

from __future__ import annotations

import logging

from fastapi import Depends, FastAPI, HTTPException, status
from quizforge.config import get_settings
from quizforge.correlation import CorrelationIdMiddleware
from quizforge.enums import FailureKind
from quizforge.errors import GenerationError
from quizforge.generation.pipeline import (
    PROVIDER_INFO,
    generate_support_text,
    parse_response,
    run_generation,
)
from quizforge.generation.normalizer import normalize_all
from quizforge.generation.validation import review_batch
from quizforge.llm.orchestrator import FallbackOrchestrator
from quizforge.llm.transport import HttpTransport, HttpxTransport
from quizforge.logging import configure_logging
from quizforge.otel import init_otel
from quizforge.rate_limit import rate_limit_dependency
from quizforge.schemas import (
    GenerateQuestionsRequest,
    GenerateQuestionsResponse,
    GenerationRequest,
    ParseQuestionsRequest,
    ParseQuestionsResponse,
    ProviderInfo,
    SupportTextRequest,
    SupportTextResponse,
)

configure_logging(get_settings().log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="QuizForge Generate Service", version="0.1.0")
app.add_middleware(CorrelationIdMiddleware)

FAILURE_STATUS: dict[FailureKind, int] = {
    FailureKind.AUTH_ERROR: status.HTTP_401_UNAUTHORIZED,
    FailureKind.RATE_LIMITED: status.HTTP_429_TOO_MANY_REQUESTS,
}


@app.on_event("startup")
def startup() -> None:
    init_otel("generate-service")


def get_transport() -> HttpTransport:
    return HttpxTransport()


def _http_error(exc: GenerationError) -> HTTPException:
    logger.info("generation request failed", extra={"failure": exc.kind.value})
    return HTTPException(
        status_code=FAILURE_STATUS.get(exc.kind, status.HTTP_503_SERVICE_UNAVAILABLE),
        detail=exc.user_message,
    )


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok", "service": "generate"}


@app.get("/v1/providers", response_model=dict[str, ProviderInfo])
def list_providers() -> dict[str, ProviderInfo]:
    return {provider.value: info for provider, info in PROVIDER_INFO.items()}


@app.post(
    "/v1/questions/generate",
    response_model=GenerateQuestionsResponse,
    dependencies=[Depends(rate_limit_dependency)],
)
async def generate_questions_endpoint(
    payload: GenerateQuestionsRequest,
    transport: HttpTransport = Depends(get_transport),
) -> GenerateQuestionsResponse:
    request = GenerationRequest(
        topic=payload.topic,
        question_type=payload.question_type,
        count=payload.count,
        grade=payload.grade,
        language=payload.language,
        token=payload.token,
    )
    try:
        outcome = await run_generation(
            payload.provider,
            request,
            orchestrator=FallbackOrchestrator(transport=transport),
        )
    except GenerationError as exc:
        raise _http_error(exc) from exc

    return GenerateQuestionsResponse(
        provider=outcome.provider,
        tier=outcome.tier,
        model_id=outcome.model_id,
        questions=outcome.questions,
        accepted=len(outcome.review.accepted),
        rejected=len(outcome.review.rejected),
        message=outcome.review.message,
    )


@app.post(
    "/v1/questions/parse",
    response_model=ParseQuestionsResponse,
    dependencies=[Depends(rate_limit_dependency)],
)
def parse_questions_endpoint(payload: ParseQuestionsRequest) -> ParseQuestionsResponse:
    """Run recovery, normalization and review over text the caller already has."""

    parsed = parse_response(payload.text, payload.question_type)
    review = review_batch(normalize_all(parsed.raw_questions, payload.question_type))
    return ParseQuestionsResponse(
        source=parsed.source,
        strategy=parsed.strategy.value if parsed.strategy else None,
        questions=review.accepted,
        accepted=len(review.accepted),
        rejected=len(review.rejected),
        message=review.message,
    )


@app.post(
    "/v1/support-text",
    response_model=SupportTextResponse,
    dependencies=[Depends(rate_limit_dependency)],
)
async def support_text_endpoint(
    payload: SupportTextRequest,
    transport: HttpTransport = Depends(get_transport),
) -> SupportTextResponse:
    try:
        text = await generate_support_text(
            payload.provider,
            payload.topic,
            grade=payload.grade,
            language=payload.language,
            token=payload.token,
            questions=payload.questions,
            orchestrator=FallbackOrchestrator(transport=transport),
        )
    except GenerationError as exc:
        raise _http_error(exc) from exc
    return SupportTextResponse(text=text)
