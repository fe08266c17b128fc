"""Domain enumerations."""

from enum import StrEnum


class QuestionType(StrEnum):
    MCQ = "mcq"
    TRUE_FALSE = "truefalse"
    SHORT = "short"
    GAP_FILL = "gapfill"
    ESSAY = "essay"
    MATCHING = "matching"
    ORDERING = "ordering"


FREE_TEXT_TYPES: frozenset[QuestionType] = frozenset(
    {QuestionType.SHORT, QuestionType.GAP_FILL, QuestionType.ESSAY}
)


class AiProvider(StrEnum):
    POLLINATIONS = "pollinations"
    HUGGINGFACE = "huggingface"
    MISTRAL = "mistral"


class FallbackTier(StrEnum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    LEGACY = "legacy"


class FailureKind(StrEnum):
    AUTH_ERROR = "auth_error"
    RATE_LIMITED = "rate_limited"
    MODEL_UNAVAILABLE = "model_unavailable"
    MALFORMED_RESPONSE = "malformed_response"
    UNKNOWN = "unknown"


class RecoveryStrategy(StrEnum):
    DIRECT = "direct"
    BASIC_TRIM = "basic_trim"
    ESCAPE_NORMALIZATION = "escape_normalization"
    AGGRESSIVE_CLEAN = "aggressive_clean"
    MARKDOWN_EXTRACTION = "markdown_extraction"


class ParseSource(StrEnum):
    JSON = "json"
    TEXT = "text"
    NONE = "none"


class RejectionReason(StrEnum):
    MISSING_PROMPT = "missing_prompt"
    NO_CHOICES = "no_choices"
    NO_CORRECT_CHOICE = "no_correct_choice"
    EMPTY_ANSWER = "empty_answer"
    NO_PAIRS = "no_pairs"
    INCOMPLETE_PAIR = "incomplete_pair"
    TOO_FEW_ITEMS = "too_few_items"
    TOO_MANY_ITEMS = "too_many_items"
    EMPTY_ITEM = "empty_item"
    MISSING_LABELS = "missing_labels"
    WRONG_OPTION_COUNT = "wrong_option_count"
    UNKNOWN_ANSWER_LETTER = "unknown_answer_letter"
