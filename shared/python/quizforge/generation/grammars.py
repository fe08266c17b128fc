"""Per-type field shapes and the labeled-line grammar of prose answers."""

from __future__ import annotations

from dataclasses import dataclass

from quizforge.enums import QuestionType

QUESTION_LABEL = "Pergunta:"
STATEMENT_LABEL = "Afirmação:"
ANSWER_LABEL = "Resposta:"
LEFT_LABEL = "Esquerda:"
RIGHT_LABEL = "Direita:"
MATCHES_LABEL = "Respostas:"

MCQ_OPTION_LETTERS: tuple[str, ...] = ("A", "B", "C", "D")

# Longest label first so "Frase incompleta:" is not read as "Frase:".
FREE_TEXT_QUESTION_LABELS: tuple[str, ...] = (
    "Frase incompleta:",
    "Pergunta aberta:",
    "Pergunta:",
    "Frase:",
)
FREE_TEXT_ANSWER_LABELS: tuple[str, ...] = (
    "Resposta modelo:",
    "Resposta:",
    "Preenchimento:",
    "Completa:",
)
# Compared against the lowercased line.
ORDER_LABELS: tuple[str, ...] = ("ordem:", "sequência:", "sequencia:", "passos:")

TRUE_TOKENS: frozenset[str] = frozenset({"v", "true", "t", "verdadeiro"})
FALSE_TOKENS: frozenset[str] = frozenset({"f", "false", "falso"})

TRUE_LABEL = "Verdadeiro"
FALSE_LABEL = "Falso"


@dataclass(frozen=True)
class Grammar:
    """Canonical fields a type requires and the prose layout models are asked for."""

    question_type: QuestionType
    required_fields: tuple[str, ...]
    line_format: str
    json_example: str
    description: str
    short_description: str


GRAMMARS: dict[QuestionType, Grammar] = {
    QuestionType.MCQ: Grammar(
        question_type=QuestionType.MCQ,
        required_fields=("prompt", "choices"),
        line_format=(
            "Pergunta: [texto]\nA) [opção]\nB) [opção]\nC) [opção]\nD) [opção]\n"
            "Resposta: [letra correta]"
        ),
        json_example=(
            '{"prompt": "texto", "choices": ["A", "B", "C", "D"], "correct": 0, '
            '"explanation": "explicação"}'
        ),
        description="múltipla escolha com 4 opções",
        short_description="múltipla escolha",
    ),
    QuestionType.TRUE_FALSE: Grammar(
        question_type=QuestionType.TRUE_FALSE,
        required_fields=("prompt", "choices"),
        line_format=(
            "Afirmação: [texto]\nResposta: [Verdadeiro/Falso]\nExplicação: [motivo em 1 frase]"
        ),
        json_example='{"prompt": "afirmação", "correct": true, "explanation": "explicação"}',
        description="verdadeiro ou falso",
        short_description="verdadeiro ou falso",
    ),
    QuestionType.SHORT: Grammar(
        question_type=QuestionType.SHORT,
        required_fields=("prompt", "answer"),
        line_format="Pergunta: [texto]\nResposta: [resposta curta]\nExplicação: [motivo em 1 frase]",
        json_example='{"prompt": "pergunta", "answer": "resposta curta", "explanation": "explicação"}',
        description="resposta curta",
        short_description="resposta curta",
    ),
    QuestionType.GAP_FILL: Grammar(
        question_type=QuestionType.GAP_FILL,
        required_fields=("prompt", "answer"),
        line_format=(
            "Frase incompleta: [texto com ___]\n"
            "Resposta: [palavra ou expressão que completa a lacuna]\n"
            "Explicação: [porque esta palavra é correta]"
        ),
        json_example=(
            '{"prompt": "Frase com ___ lacuna", "answer": "palavra correta", '
            '"explanation": "motivo da escolha"}'
        ),
        description="frases com lacunas para preencher",
        short_description="preencher lacunas",
    ),
    QuestionType.ESSAY: Grammar(
        question_type=QuestionType.ESSAY,
        required_fields=("prompt", "answer"),
        line_format=(
            "Pergunta aberta: [texto]\nResposta modelo: [resposta com 2-3 frases]\n"
            "Critério: [principal ponto que deve aparecer]"
        ),
        json_example=(
            '{"prompt": "pergunta aberta", "answer": "resposta modelo com 2-3 frases", '
            '"explanation": "critérios principais"}'
        ),
        description="resposta discursiva de 2-3 frases",
        short_description="resposta discursiva",
    ),
    QuestionType.MATCHING: Grammar(
        question_type=QuestionType.MATCHING,
        required_fields=("prompt", "matching_pairs"),
        line_format=(
            "Pergunta: [texto]\nEsquerda: [item1], [item2], [item3]\n"
            "Direita: [itemA], [itemB], [itemC]\nRespostas: [1-A], [2-B], [3-C]"
        ),
        json_example=(
            '{"prompt": "pergunta", "matchingPairs": [{"leftItem": "esquerda1", '
            '"rightItem": "direita1"}, {"leftItem": "esquerda2", "rightItem": "direita2"}], '
            '"explanation": "explicação"}'
        ),
        description="associação (colunas)",
        short_description="associação",
    ),
    QuestionType.ORDERING: Grammar(
        question_type=QuestionType.ORDERING,
        required_fields=("prompt", "ordering_items"),
        line_format=(
            "Pergunta: [texto]\nPassos: [item 1] > [item 2] > [item 3]\n"
            "Resposta: [item 1 -> item 2 -> item 3]"
        ),
        json_example=(
            '{"prompt": "pergunta", "orderingItems": ["passo 1", "passo 2", "passo 3"], '
            '"answer": "passo 1 -> passo 2 -> passo 3", "explanation": "explicação"}'
        ),
        description="ordenação (sequência cronológica ou lógica com resposta final)",
        short_description="ordenação sequencial",
    ),
}


def grammar_for(question_type: QuestionType) -> Grammar:
    return GRAMMARS[question_type]


def strip_label(line: str, labels: tuple[str, ...]) -> str | None:
    """Return the value after the first matching label, or None when no label matches."""

    for label in labels:
        if line.startswith(label):
            return line[len(label) :].strip()
    return None
