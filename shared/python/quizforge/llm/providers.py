"""Provider adapters: request building and response reading per text API."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from quizforge.config import Settings, get_settings
from quizforge.enums import AiProvider
from quizforge.llm.transport import TransportResponse
from quizforge.schemas import FallbackTierConfig

UNAVAILABLE_MARKERS: tuple[str, ...] = ("loading", "unavailable", "overloaded")


class ProviderAdapter(ABC):
    """Builds the (endpoint, headers, payload) triple for one tier and reads the reply."""

    provider: AiProvider
    requires_token: bool = False

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    def resolve_token(self, token: str | None) -> str | None:
        return token.strip() if token and token.strip() else None

    def headers(self, token: str | None) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    @abstractmethod
    def endpoint(self, tier: FallbackTierConfig) -> str:
        """URL for `tier`."""

    @abstractmethod
    def payload(self, tier: FallbackTierConfig, prompt: str, max_tokens: int) -> dict[str, Any]:
        """Request body for `tier`."""

    @abstractmethod
    def extract_text(self, body: Any) -> str | None:
        """Generated text of a successful reply, or None."""

    def is_unavailable(self, response: TransportResponse) -> bool:
        """Whether the reply signals a loading or unavailable model."""

        message = _error_message(response.body)
        if message is None:
            return False
        lowered = message.lower()
        return any(marker in lowered for marker in UNAVAILABLE_MARKERS)


class ChatCompletionsAdapter(ProviderAdapter):
    """OpenAI-style chat completions body shared by Pollinations and Mistral."""

    def payload(self, tier: FallbackTierConfig, prompt: str, max_tokens: int) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": tier.model_id,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": max_tokens,
        }
        if tier.temperature is not None:
            payload["temperature"] = tier.temperature
        payload.update(tier.extra)
        return payload

    def extract_text(self, body: Any) -> str | None:
        if not isinstance(body, dict):
            return None
        return _extract_chat_completion_content(body)


class PollinationsAdapter(ChatCompletionsAdapter):
    provider = AiProvider.POLLINATIONS

    def resolve_token(self, token: str | None) -> str | None:
        return None

    def endpoint(self, tier: FallbackTierConfig) -> str:
        return self.settings.pollinations_text_url


class MistralAdapter(ChatCompletionsAdapter):
    provider = AiProvider.MISTRAL
    requires_token = True

    def resolve_token(self, token: str | None) -> str | None:
        return super().resolve_token(token) or super().resolve_token(self.settings.mistral_api_key)

    def endpoint(self, tier: FallbackTierConfig) -> str:
        return f"{self.settings.mistral_base_url.rstrip('/')}/chat/completions"


class HuggingFaceAdapter(ProviderAdapter):
    """Hosted inference API; replies are `[{"generated_text": ...}]`."""

    provider = AiProvider.HUGGINGFACE
    requires_token = True

    def resolve_token(self, token: str | None) -> str | None:
        return super().resolve_token(token) or super().resolve_token(self.settings.huggingface_token)

    def endpoint(self, tier: FallbackTierConfig) -> str:
        return f"{self.settings.huggingface_inference_url.rstrip('/')}/{tier.model_id}"

    def payload(self, tier: FallbackTierConfig, prompt: str, max_tokens: int) -> dict[str, Any]:
        parameters: dict[str, Any] = {"max_new_tokens": max_tokens, "return_full_text": False}
        if tier.temperature is not None:
            parameters["temperature"] = tier.temperature
        parameters.update(tier.extra)
        return {"inputs": prompt, "parameters": parameters}

    def extract_text(self, body: Any) -> str | None:
        if isinstance(body, list) and body:
            body = body[0]
        if not isinstance(body, dict):
            return None
        text = body.get("generated_text")
        if isinstance(text, str):
            return text.strip() or None
        return None

    def is_unavailable(self, response: TransportResponse) -> bool:
        if isinstance(response.body, dict) and "estimated_time" in response.body:
            return True
        return super().is_unavailable(response)


ADAPTERS: dict[AiProvider, type[ProviderAdapter]] = {
    AiProvider.POLLINATIONS: PollinationsAdapter,
    AiProvider.HUGGINGFACE: HuggingFaceAdapter,
    AiProvider.MISTRAL: MistralAdapter,
}


def get_adapter(provider: AiProvider, settings: Settings | None = None) -> ProviderAdapter:
    """Select adapter implementation for `provider`."""

    return ADAPTERS[AiProvider(provider)](settings)


def _error_message(body: Any) -> str | None:
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if isinstance(error, dict):
        error = error.get("message")
    if isinstance(error, str) and error.strip():
        return error
    return None


def _extract_chat_completion_content(payload: dict) -> str | None:
    """Extract text content from chat completion response payload."""

    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        return None

    first = choices[0]
    message = first.get("message") if isinstance(first, dict) else None
    if not isinstance(message, dict):
        return None

    content = message.get("content")
    if isinstance(content, str):
        return content.strip() or None
    if isinstance(content, list):
        chunks: list[str] = []
        for part in content:
            if isinstance(part, dict):
                text = part.get("text")
                if isinstance(text, str) and text.strip():
                    chunks.append(text.strip())
            elif isinstance(part, str) and part.strip():
                chunks.append(part.strip())
        combined = "\n".join(chunks).strip()
        return combined or None
    return None
