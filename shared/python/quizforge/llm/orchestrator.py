"""Provider fallback orchestration: call, classify, step down a tier.

Tiers run strictly in sequence. A failed tier is classified and the orchestrator
either advances to the next tier or stops with a `GenerationError` carrying a
user-safe message. Provider error bodies only reach the logs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Callable, Sequence

from quizforge.config import Settings, get_settings
from quizforge.correlation import bind_correlation_id
from quizforge.enums import AiProvider, FailureKind, FallbackTier
from quizforge.errors import MISSING_TOKEN_MESSAGE, GenerationError
from quizforge.generation.prompts import build_generation_prompt
from quizforge.llm.chains import build_fallback_chains, tier_name
from quizforge.llm.providers import ProviderAdapter, get_adapter
from quizforge.llm.transport import HttpTransport, HttpxTransport, TransportResponse
from quizforge.logging import truncate_for_log
from quizforge.otel import get_tracer
from quizforge.schemas import FallbackTierConfig, GenerationRequest, ProviderCallResult

logger = logging.getLogger(__name__)

# Receives the tier-reduced question count, returns the prompt.
PromptBuilder = Callable[[int], str]
# Returns False for text that cannot be used, e.g. no recognisable questions.
AcceptPredicate = Callable[[str], bool]


@dataclass(slots=True)
class TierAttempt:
    tier: FallbackTier
    model_id: str
    requested_count: int
    failure: FailureKind | None = None
    status_code: int | None = None


@dataclass(slots=True)
class OrchestratorResult:
    text: str
    provider: AiProvider
    tier: FallbackTier
    config: FallbackTierConfig
    count: int
    attempts: list[TierAttempt] = field(default_factory=list)


def classify_response(adapter: ProviderAdapter, response: TransportResponse) -> ProviderCallResult:
    """Turn one HTTP reply into a success or a classified failure."""

    status_code = response.status_code
    if status_code in (401, 403):
        kind = FailureKind.AUTH_ERROR
    elif status_code == 429:
        kind = FailureKind.RATE_LIMITED
    elif status_code == 503 or adapter.is_unavailable(response):
        kind = FailureKind.MODEL_UNAVAILABLE
    elif not response.ok:
        kind = FailureKind.UNKNOWN
    else:
        text = adapter.extract_text(response.body)
        if text:
            return ProviderCallResult(success=True, generated_text=text, status_code=status_code)
        kind = FailureKind.MALFORMED_RESPONSE
    return ProviderCallResult(
        success=False,
        failure=kind,
        status_code=status_code,
        detail=truncate_for_log(response.text),
    )


def can_step_down(current: FallbackTierConfig, following: FallbackTierConfig | None) -> bool:
    """A rate-limited tier may only hand over to a cheaper, different tier."""

    if following is None:
        return False
    return following != current and following.cost_rank < current.cost_rank


class FallbackOrchestrator:
    """Drives PRIMARY -> SECONDARY -> LEGACY for one provider request."""

    def __init__(
        self,
        transport: HttpTransport | None = None,
        settings: Settings | None = None,
        chains: dict[AiProvider, Sequence[FallbackTierConfig]] | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.transport = transport or HttpxTransport()
        self.chains = chains or build_fallback_chains(self.settings)

    async def run(
        self,
        provider: AiProvider,
        request: GenerationRequest,
        accept: AcceptPredicate | None = None,
        prompt_builder: PromptBuilder | None = None,
        max_tokens: int | None = None,
    ) -> OrchestratorResult:
        provider = AiProvider(provider)
        adapter = get_adapter(provider, self.settings)
        token = adapter.resolve_token(request.token)
        if adapter.requires_token and not token:
            logger.warning("provider token missing", extra={"provider": provider.value})
            raise GenerationError(FailureKind.AUTH_ERROR, MISSING_TOKEN_MESSAGE)

        build_prompt = prompt_builder or (
            lambda count: build_generation_prompt(provider, request, count)
        )
        chain = list(self.chains[provider])
        attempts: list[TierAttempt] = []
        unknown_seen = False
        kind = FailureKind.UNKNOWN

        with bind_correlation_id():
            for position, config in enumerate(chain):
                tier = tier_name(position)
                count = config.request_count(request.count)
                result = await self._attempt(
                    adapter=adapter,
                    config=config,
                    tier=tier,
                    token=token,
                    prompt=build_prompt(count),
                    max_tokens=max_tokens or config.token_budget(count),
                    accept=accept,
                )
                attempts.append(
                    TierAttempt(
                        tier=tier,
                        model_id=config.model_id,
                        requested_count=count,
                        failure=result.failure,
                        status_code=result.status_code,
                    )
                )
                if result.success and result.generated_text:
                    return OrchestratorResult(
                        text=result.generated_text,
                        provider=provider,
                        tier=tier,
                        config=config,
                        count=count,
                        attempts=attempts,
                    )

                kind = result.failure or FailureKind.UNKNOWN
                following = chain[position + 1] if position + 1 < len(chain) else None
                if kind == FailureKind.AUTH_ERROR:
                    break
                if kind == FailureKind.RATE_LIMITED and not can_step_down(config, following):
                    break
                if kind == FailureKind.UNKNOWN:
                    if unknown_seen:
                        break
                    unknown_seen = True
                if following is None:
                    break

        logger.warning(
            "provider chain exhausted",
            extra={"provider": provider.value, "failure": kind.value, "attempt": len(attempts)},
        )
        raise GenerationError(kind)

    async def _attempt(
        self,
        *,
        adapter: ProviderAdapter,
        config: FallbackTierConfig,
        tier: FallbackTier,
        token: str | None,
        prompt: str,
        max_tokens: int,
        accept: AcceptPredicate | None,
    ) -> ProviderCallResult:
        tracer = get_tracer()
        with tracer.start_as_current_span(
            "llm.tier",
            attributes={
                "llm.provider": adapter.provider.value,
                "llm.tier": tier.value,
                "llm.model_id": config.model_id,
            },
        ) as span:
            try:
                response = await self.transport.post_json(
                    adapter.endpoint(config),
                    headers=adapter.headers(token),
                    payload=adapter.payload(config, prompt, max_tokens),
                )
            except Exception as exc:
                result = ProviderCallResult(
                    success=False,
                    failure=FailureKind.MALFORMED_RESPONSE,
                    detail=truncate_for_log(str(exc)),
                )
            else:
                result = classify_response(adapter, response)

            if result.success and accept is not None and not accept(result.generated_text or ""):
                result = ProviderCallResult(
                    success=False,
                    failure=FailureKind.MALFORMED_RESPONSE,
                    status_code=result.status_code,
                    detail=truncate_for_log(result.generated_text),
                )

            if result.status_code is not None:
                span.set_attribute("http.status_code", result.status_code)
            if result.failure is not None:
                span.set_attribute("llm.failure", result.failure.value)

        log_extra = {
            "provider": adapter.provider.value,
            "tier": tier.value,
            "model_id": config.model_id,
            "status_code": result.status_code,
        }
        if result.success:
            logger.info("provider tier succeeded", extra=log_extra)
        else:
            logger.warning(
                "provider tier failed: %s",
                result.detail or "",
                extra={**log_extra, "failure": result.failure.value if result.failure else None},
            )
        return result
