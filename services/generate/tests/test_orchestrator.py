from __future__ import annotations

import asyncio

import httpx
import pytest

from quizforge.config import Settings
from quizforge.enums import AiProvider, FailureKind, FallbackTier, QuestionType
from quizforge.errors import MISSING_TOKEN_MESSAGE, USER_MESSAGES, GenerationError
from quizforge.llm.orchestrator import FallbackOrchestrator, can_step_down
from quizforge.llm.transport import HttpTransport, TransportResponse
from quizforge.schemas import FallbackTierConfig, GenerationRequest


class ScriptedTransport(HttpTransport):
    """Replays one scripted reply (or exception) per call and records the calls."""

    def __init__(self, replies: list) -> None:
        self.replies = list(replies)
        self.calls: list[dict] = []

    async def post_json(self, endpoint: str, *, headers: dict, payload: dict) -> TransportResponse:
        self.calls.append({"endpoint": endpoint, "headers": headers, "payload": payload})
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


def _chat(content: str, status_code: int = 200) -> TransportResponse:
    return TransportResponse(
        status_code=status_code,
        body={"choices": [{"message": {"content": content}}]},
        text=content,
    )


def _status(status_code: int, body: dict | None = None) -> TransportResponse:
    return TransportResponse(status_code=status_code, body=body, text=str(body or ""))


def _settings(**overrides) -> Settings:
    values = {"mistral_api_key": None, "huggingface_token": None}
    values.update(overrides)
    return Settings(**values)


def _request(count: int = 10, token: str | None = "test-key") -> GenerationRequest:
    return GenerationRequest(topic="Fotossíntese", question_type=QuestionType.SHORT, count=count, token=token)


def _run(orchestrator: FallbackOrchestrator, provider: AiProvider, request: GenerationRequest, **kwargs):
    return asyncio.run(orchestrator.run(provider, request, **kwargs))


def test_mistral_chain_steps_down_monotonically() -> None:
    transport = ScriptedTransport([_status(429), _status(503), _chat("Pergunta: a\nResposta: b")])
    orchestrator = FallbackOrchestrator(transport=transport, settings=_settings())
    counts: list[int] = []

    def prompt_builder(count: int) -> str:
        counts.append(count)
        return f"gere {count}"

    result = _run(orchestrator, AiProvider.MISTRAL, _request(), prompt_builder=prompt_builder)

    assert result.tier == FallbackTier.LEGACY
    assert result.config.model_id == "mistral-tiny"
    assert result.count == 3
    assert counts == [10, 5, 3]
    assert [call["payload"]["model"] for call in transport.calls] == [
        "mistral-large-2411",
        "mistral-small-2411",
        "mistral-tiny",
    ]
    assert [call["payload"]["max_tokens"] for call in transport.calls] == [4000, 2000, 1500]
    assert [attempt.failure for attempt in result.attempts] == [
        FailureKind.RATE_LIMITED,
        FailureKind.MODEL_UNAVAILABLE,
        None,
    ]


def test_primary_success_never_touches_lower_tiers() -> None:
    transport = ScriptedTransport([_chat("ok")])
    orchestrator = FallbackOrchestrator(transport=transport, settings=_settings())

    result = _run(orchestrator, AiProvider.MISTRAL, _request(count=2))

    assert result.tier == FallbackTier.PRIMARY
    assert result.text == "ok"
    assert len(transport.calls) == 1
    assert transport.calls[0]["payload"]["max_tokens"] == 800
    assert transport.calls[0]["headers"]["Authorization"] == "Bearer test-key"


def test_auth_error_stops_at_primary() -> None:
    transport = ScriptedTransport([_status(401, {"message": "Unauthorized"}), _chat("never")])
    orchestrator = FallbackOrchestrator(transport=transport, settings=_settings())

    with pytest.raises(GenerationError) as exc_info:
        _run(orchestrator, AiProvider.MISTRAL, _request())

    assert exc_info.value.kind == FailureKind.AUTH_ERROR
    assert exc_info.value.user_message == USER_MESSAGES[FailureKind.AUTH_ERROR]
    assert "Unauthorized" not in exc_info.value.user_message
    assert len(transport.calls) == 1


def test_missing_token_fails_before_any_call() -> None:
    transport = ScriptedTransport([])
    orchestrator = FallbackOrchestrator(transport=transport, settings=_settings())

    with pytest.raises(GenerationError) as exc_info:
        _run(orchestrator, AiProvider.MISTRAL, _request(token="   "))

    assert exc_info.value.kind == FailureKind.AUTH_ERROR
    assert exc_info.value.user_message == MISSING_TOKEN_MESSAGE
    assert transport.calls == []


def test_configured_key_is_used_when_request_has_no_token() -> None:
    transport = ScriptedTransport([_chat("ok")])
    orchestrator = FallbackOrchestrator(transport=transport, settings=_settings(mistral_api_key="env-key"))

    _run(orchestrator, AiProvider.MISTRAL, _request(token=None))

    assert transport.calls[0]["headers"]["Authorization"] == "Bearer env-key"


def test_unknown_failure_advances_only_once() -> None:
    transport = ScriptedTransport([_status(500), _status(500), _chat("never")])
    orchestrator = FallbackOrchestrator(transport=transport, settings=_settings())

    with pytest.raises(GenerationError) as exc_info:
        _run(orchestrator, AiProvider.MISTRAL, _request())

    assert exc_info.value.kind == FailureKind.UNKNOWN
    assert len(transport.calls) == 2


def test_rate_limit_on_last_tier_is_terminal() -> None:
    transport = ScriptedTransport([_status(503), _status(503), _status(429)])
    orchestrator = FallbackOrchestrator(transport=transport, settings=_settings())

    with pytest.raises(GenerationError) as exc_info:
        _run(orchestrator, AiProvider.MISTRAL, _request())

    assert exc_info.value.kind == FailureKind.RATE_LIMITED
    assert exc_info.value.user_message == USER_MESSAGES[FailureKind.RATE_LIMITED]
    assert len(transport.calls) == 3


def test_rate_limit_without_cheaper_tier_stops() -> None:
    same_cost = FallbackTierConfig(model_id="a", cost_rank=1)
    chains = {AiProvider.POLLINATIONS: (same_cost, FallbackTierConfig(model_id="b", cost_rank=1))}
    transport = ScriptedTransport([_status(429), _chat("never")])
    orchestrator = FallbackOrchestrator(transport=transport, settings=_settings(), chains=chains)

    with pytest.raises(GenerationError) as exc_info:
        _run(orchestrator, AiProvider.POLLINATIONS, _request(token=None))

    assert exc_info.value.kind == FailureKind.RATE_LIMITED
    assert len(transport.calls) == 1


def test_can_step_down_requires_a_cheaper_distinct_tier() -> None:
    primary = FallbackTierConfig(model_id="openai", cost_rank=1, extra={"seed": -1})
    reduced = FallbackTierConfig(model_id="openai", max_questions=3, cost_rank=0, extra={"seed": 42})

    assert can_step_down(primary, reduced)
    assert not can_step_down(reduced, primary)
    assert not can_step_down(primary, primary)
    assert not can_step_down(primary, None)


def test_pollinations_rate_limit_falls_back_to_reduced_tier() -> None:
    transport = ScriptedTransport([_status(429), _chat("Pergunta: a\nResposta: b")])
    orchestrator = FallbackOrchestrator(transport=transport, settings=_settings())

    result = _run(orchestrator, AiProvider.POLLINATIONS, _request(count=6, token=None))

    assert result.tier == FallbackTier.SECONDARY
    assert result.count == 3
    assert "Authorization" not in transport.calls[0]["headers"]
    assert [call["payload"]["seed"] for call in transport.calls] == [-1, 42]


def test_transport_errors_and_empty_replies_advance() -> None:
    transport = ScriptedTransport(
        [httpx.ConnectError("connection refused"), _chat("   "), _chat("finalmente")]
    )
    orchestrator = FallbackOrchestrator(transport=transport, settings=_settings())

    result = _run(orchestrator, AiProvider.MISTRAL, _request())

    assert result.tier == FallbackTier.LEGACY
    assert [attempt.failure for attempt in result.attempts] == [
        FailureKind.MALFORMED_RESPONSE,
        FailureKind.MALFORMED_RESPONSE,
        None,
    ]


def test_rejected_text_counts_as_malformed() -> None:
    transport = ScriptedTransport([_chat("Desculpe, não posso ajudar."), _chat("Pergunta: a\nResposta: b")])
    orchestrator = FallbackOrchestrator(transport=transport, settings=_settings())

    result = _run(
        orchestrator,
        AiProvider.MISTRAL,
        _request(),
        accept=lambda text: "Pergunta:" in text,
    )

    assert result.tier == FallbackTier.SECONDARY
    assert result.attempts[0].failure == FailureKind.MALFORMED_RESPONSE
    assert result.attempts[0].status_code == 200


def test_huggingface_loading_model_is_unavailable() -> None:
    loading = TransportResponse(
        status_code=500,
        body={"error": "Model mistralai/Mistral-7B-Instruct-v0.1 is currently loading", "estimated_time": 20.0},
        text="loading",
    )
    transport = ScriptedTransport(
        [loading, TransportResponse(status_code=200, body=[{"generated_text": " texto "}], text="")]
    )
    orchestrator = FallbackOrchestrator(transport=transport, settings=_settings())

    result = _run(orchestrator, AiProvider.HUGGINGFACE, _request(token="hf_test"))

    assert result.attempts[0].failure == FailureKind.MODEL_UNAVAILABLE
    assert result.text == "texto"
    assert transport.calls[1]["endpoint"].endswith("/TinyLlama/TinyLlama-1.1B-Chat-v1.0")


def test_exhausted_chain_reports_last_failure() -> None:
    transport = ScriptedTransport([_status(503), _status(503), _status(503)])
    orchestrator = FallbackOrchestrator(transport=transport, settings=_settings())

    with pytest.raises(GenerationError) as exc_info:
        _run(orchestrator, AiProvider.MISTRAL, _request())

    assert exc_info.value.kind == FailureKind.MODEL_UNAVAILABLE
    assert len(transport.calls) == 3
