from __future__ import annotations

import json

from app.main import app, get_transport
from fastapi.testclient import TestClient

from quizforge.config import get_settings
from quizforge.llm.transport import HttpTransport, TransportResponse
from quizforge.rate_limit import reset_rate_limits


class ScriptedTransport(HttpTransport):
    def __init__(self, replies: list[TransportResponse]) -> None:
        self.replies = list(replies)
        self.calls = 0

    async def post_json(self, endpoint: str, *, headers: dict, payload: dict) -> TransportResponse:
        self.calls += 1
        return self.replies.pop(0)


def _chat(content: str) -> TransportResponse:
    return TransportResponse(status_code=200, body={"choices": [{"message": {"content": content}}]}, text=content)


def _client_with(*replies: TransportResponse) -> tuple[TestClient, ScriptedTransport]:
    reset_rate_limits()
    transport = ScriptedTransport(list(replies))
    app.dependency_overrides[get_transport] = lambda: transport
    return TestClient(app), transport


def test_generate_endpoint_returns_accepted_questions() -> None:
    content = json.dumps(
        {
            "questions": [
                {"prompt": "Capital da França?", "answer": "Paris"},
                {"prompt": "", "answer": "sem pergunta"},
            ]
        }
    )
    client, _ = _client_with(_chat(content))

    response = client.post(
        "/v1/questions/generate",
        json={
            "provider": "mistral",
            "topic": "Geografia",
            "question_type": "short",
            "count": 2,
            "token": "test-key",
        },
    )

    app.dependency_overrides.clear()
    assert response.status_code == 200
    body = response.json()
    assert body["tier"] == "primary"
    assert body["accepted"] == 1
    assert body["rejected"] == 1
    assert body["message"] == "1 of 2 accepted"
    assert body["questions"][0]["type"] == "short"
    assert body["questions"][0]["answer"] == "Paris"


def test_generate_endpoint_maps_failures_to_status_codes() -> None:
    cases = [
        ([TransportResponse(status_code=401, text="invalid api key sk-123")], 401),
        ([TransportResponse(status_code=503)] * 2 + [TransportResponse(status_code=429)], 429),
        ([TransportResponse(status_code=503)] * 3, 503),
    ]
    for replies, expected_status in cases:
        client, _ = _client_with(*replies)

        response = client.post(
            "/v1/questions/generate",
            json={"provider": "mistral", "topic": "X", "question_type": "mcq", "token": "k"},
        )

        assert response.status_code == expected_status
        assert "sk-123" not in response.text
    app.dependency_overrides.clear()


def test_generate_endpoint_without_token_never_calls_provider(monkeypatch) -> None:
    monkeypatch.delenv("MISTRAL_API_KEY", raising=False)
    get_settings.cache_clear()
    client, transport = _client_with()

    response = client.post(
        "/v1/questions/generate",
        json={"provider": "mistral", "topic": "X", "question_type": "mcq"},
    )

    app.dependency_overrides.clear()
    get_settings.cache_clear()
    assert response.status_code == 401
    assert transport.calls == 0


def test_parse_endpoint_runs_text_fallback() -> None:
    client, _ = _client_with()

    response = client.post(
        "/v1/questions/parse",
        json={
            "text": "Afirmação: O sol é uma estrela.\nResposta: Verdadeiro",
            "question_type": "truefalse",
        },
    )

    app.dependency_overrides.clear()
    assert response.status_code == 200
    body = response.json()
    assert body["source"] == "text"
    assert body["strategy"] is None
    assert body["questions"][0]["choices"][0] == {"id": "0", "text": "Verdadeiro", "correct": True}


def test_parse_endpoint_reports_recovery_strategy() -> None:
    client, _ = _client_with()

    response = client.post(
        "/v1/questions/parse",
        json={"text": '{"questions": [{"prompt": "a", "answer": "b",},]}', "question_type": "essay"},
    )

    app.dependency_overrides.clear()
    assert response.json()["strategy"] == "escape_normalization"
    assert response.json()["accepted"] == 1


def test_support_text_endpoint() -> None:
    client, _ = _client_with(_chat("Texto de apoio."))

    response = client.post(
        "/v1/support-text",
        json={"provider": "pollinations", "topic": "Frações"},
    )

    app.dependency_overrides.clear()
    assert response.status_code == 200
    assert response.json() == {"text": "Texto de apoio."}


def test_providers_endpoint_lists_token_requirements() -> None:
    client = TestClient(app)

    body = client.get("/v1/providers").json()

    assert set(body) == {"pollinations", "huggingface", "mistral"}
    assert body["pollinations"]["requires_token"] is False
    assert body["mistral"]["requires_token"] is True


def test_rate_limit_rejects_excess_requests(monkeypatch) -> None:
    monkeypatch.setenv("RATE_LIMIT_PER_MINUTE", "2")
    get_settings.cache_clear()
    client, _ = _client_with()
    payload = {"text": "Pergunta: a\nResposta: b", "question_type": "short"}

    statuses = [client.post("/v1/questions/parse", json=payload).status_code for _ in range(3)]

    app.dependency_overrides.clear()
    reset_rate_limits()
    get_settings.cache_clear()
    assert statuses == [200, 200, 429]
