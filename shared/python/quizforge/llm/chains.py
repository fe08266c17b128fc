"""Provider fallback chains expressed as data.

Each chain is consumed top-down. Lower tiers ask for fewer questions with more
conservative parameters, and carry a lower `cost_rank`.
"""

from __future__ import annotations

from quizforge.config import Settings
from quizforge.enums import AiProvider, FallbackTier
from quizforge.schemas import FallbackTierConfig

TIER_ORDER: tuple[FallbackTier, ...] = (
    FallbackTier.PRIMARY,
    FallbackTier.SECONDARY,
    FallbackTier.LEGACY,
)

FALLBACK_CHAINS: dict[AiProvider, tuple[FallbackTierConfig, ...]] = {
    AiProvider.POLLINATIONS: (
        FallbackTierConfig(
            model_id="openai",
            max_tokens=2000,
            tokens_per_question=300,
            cost_rank=1,
            extra={"seed": -1},
        ),
        FallbackTierConfig(
            model_id="openai",
            max_questions=3,
            max_tokens=1000,
            cost_rank=0,
            extra={"seed": 42},
        ),
    ),
    AiProvider.HUGGINGFACE: (
        FallbackTierConfig(
            model_id="mistralai/Mistral-7B-Instruct-v0.1",
            temperature=0.7,
            max_tokens=2000,
            tokens_per_question=300,
            cost_rank=1,
            extra={"do_sample": True, "top_p": 0.9, "top_k": 50},
        ),
        FallbackTierConfig(
            model_id="TinyLlama/TinyLlama-1.1B-Chat-v1.0",
            max_questions=3,
            temperature=0.6,
            max_tokens=1000,
            cost_rank=0,
            extra={"do_sample": True},
        ),
    ),
    AiProvider.MISTRAL: (
        FallbackTierConfig(
            model_id="mistral-large-2411",
            temperature=0.7,
            max_tokens=4000,
            tokens_per_question=400,
            cost_rank=2,
            extra={"top_p": 0.9},
        ),
        FallbackTierConfig(
            model_id="mistral-small-2411",
            max_questions=5,
            temperature=0.6,
            max_tokens=2000,
            cost_rank=1,
        ),
        FallbackTierConfig(
            model_id="mistral-tiny",
            max_questions=3,
            temperature=0.5,
            max_tokens=1500,
            cost_rank=0,
        ),
    ),
}


def tier_name(position: int) -> FallbackTier:
    return TIER_ORDER[min(position, len(TIER_ORDER) - 1)]


def build_fallback_chains(settings: Settings) -> dict[AiProvider, tuple[FallbackTierConfig, ...]]:
    """Default chains with model ids taken from settings."""

    model_ids: dict[AiProvider, tuple[str, ...]] = {
        AiProvider.POLLINATIONS: (settings.pollinations_model, settings.pollinations_model),
        AiProvider.HUGGINGFACE: (
            settings.huggingface_primary_model,
            settings.huggingface_secondary_model,
        ),
        AiProvider.MISTRAL: (
            settings.mistral_primary_model,
            settings.mistral_secondary_model,
            settings.mistral_legacy_model,
        ),
    }
    return {
        provider: tuple(
            tier.model_copy(update={"model_id": model_id})
            for tier, model_id in zip(chain, model_ids[provider])
        )
        for provider, chain in FALLBACK_CHAINS.items()
    }
