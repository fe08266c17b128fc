"""User-facing generation errors."""

from __future__ import annotations

from quizforge.enums import FailureKind

DEFAULT_USER_MESSAGE = (
    "Não foi possível gerar perguntas no momento. Tente novamente ou use outro provedor."
)

USER_MESSAGES: dict[FailureKind, str] = {
    FailureKind.AUTH_ERROR: "Token inválido. Verifique seu token nas configurações.",
    FailureKind.RATE_LIMITED: "Muitas solicitações. Aguarde alguns minutos antes de tentar novamente.",
    FailureKind.MODEL_UNAVAILABLE: (
        "Serviço temporariamente indisponível. Tente novamente em alguns minutos."
    ),
    FailureKind.MALFORMED_RESPONSE: DEFAULT_USER_MESSAGE,
    FailureKind.UNKNOWN: DEFAULT_USER_MESSAGE,
}

MISSING_TOKEN_MESSAGE = "Token necessário para este provedor. Configure seu token nas configurações."
SUPPORT_TEXT_MESSAGE = "Não foi possível gerar texto de suporte. Tente novamente."


class GenerationError(Exception):
    """Raised once a fallback chain is exhausted or stopped by a terminal failure.

    `user_message` is safe to show; provider error bodies never reach it.
    """

    def __init__(self, kind: FailureKind, user_message: str | None = None) -> None:
        self.kind = kind
        self.user_message = user_message or USER_MESSAGES.get(kind, DEFAULT_USER_MESSAGE)
        super().__init__(self.user_message)
