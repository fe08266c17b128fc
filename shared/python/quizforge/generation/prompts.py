"""Prompt builders for question generation and the support text."""

from __future__ import annotations

from textwrap import dedent
from typing import Sequence

from quizforge.enums import AiProvider, QuestionType
from quizforge.generation.grammars import grammar_for
from quizforge.schemas import (
    ORDERING_JOINER,
    GenerationRequest,
    MatchingQuestion,
    McqQuestion,
    OrderingQuestion,
    Question,
)

PAIR_SEPARATOR = " -> "


def _grade_suffix(grade: str | None, prefix: str = "para alunos de") -> str:
    return f" {prefix} {grade}" if grade and grade.strip() else ""


def build_line_format_prompt(request: GenerationRequest, count: int | None = None) -> str:
    """Prose prompt for providers that answer more reliably in labeled lines."""

    total = count if count is not None else request.count
    grammar = grammar_for(request.question_type)
    return (
        f'Crie {total} perguntas de {grammar.description} sobre "{request.topic}"'
        f"{_grade_suffix(request.grade)} em {request.language}.\n\n"
        f"Responda no seguinte formato:\n{grammar.line_format}\n\n"
        "Separe cada pergunta com uma linha em branco."
    )


def build_instruct_prompt(request: GenerationRequest, count: int | None = None) -> str:
    """Instruction-wrapped JSON prompt for instruct-tuned chat models."""

    total = count if count is not None else request.count
    grammar = grammar_for(request.question_type)
    return dedent(
        f"""
        <s>[INST] Você é um professor experiente que cria perguntas educativas de alta qualidade.

        Crie {total} perguntas de {grammar.short_description} sobre o tema "{request.topic}"{_grade_suffix(request.grade, "para nível")} em {request.language}.

        Instruções:
        - As perguntas devem ser adequadas para o nível especificado
        - Sejam claras, objetivas e educativamente valiosas
        - Para múltipla escolha: 4 opções com apenas uma correta
        - Inclua explicações breves para as respostas

        Formato de saída JSON:
        {{
          "questions": [
            {grammar.json_example}
          ]
        }}

        Retorne APENAS o JSON válido. [/INST]</s>
        """
    ).strip()


def build_generation_prompt(
    provider: AiProvider, request: GenerationRequest, count: int | None = None
) -> str:
    """Pick the prompt layout each provider answers best."""

    if provider == AiProvider.POLLINATIONS:
        return build_line_format_prompt(request, count)
    return build_instruct_prompt(request, count)


def _describe_question(question: Question) -> str:
    if isinstance(question, McqQuestion):
        return f" (Opções: {', '.join(choice.text for choice in question.choices)})"
    if question.type == QuestionType.TRUE_FALSE:
        return " (Verdadeiro ou Falso)"
    if isinstance(question, MatchingQuestion):
        pairs = ", ".join(
            f"{pair.left_item}{PAIR_SEPARATOR}{pair.right_item}" for pair in question.matching_pairs
        )
        return f" (Associar: {pairs})"
    if isinstance(question, OrderingQuestion):
        return f" (Ordenar: {ORDERING_JOINER.join(question.ordering_items)})"
    return " (Resposta aberta)"


def build_support_text_prompt(
    topic: str,
    grade: str | None = None,
    language: str | None = None,
    questions: Sequence[Question] = (),
) -> str:
    """Study-guide prompt, optionally grounded on the quiz questions."""

    context = ""
    if questions:
        lines = [
            f"{index}. {question.prompt}{_describe_question(question)}"
            for index, question in enumerate(questions, start=1)
        ]
        context = "\n\nPerguntas do quiz:\n" + "\n".join(lines) + "\n"

    language_note = f" ({language})" if language and language not in {"pt", "português"} else ""
    header = (
        f'Gere um texto de suporte educacional completo e detalhado para um quiz sobre "{topic}"'
        f"{_grade_suffix(grade)}{context}."
    )
    return header + "\n\n" + dedent(
        f"""
        O texto deve:
        1. Fornecer contexto e informações relevantes sobre o tema
        2. Incluir dicas úteis que ajudem os estudantes a responder melhor às perguntas específicas
        3. Fazer referência aos tipos de perguntas e fornecer orientações específicas
        4. Ser escrito em português{language_note}
        5. Ter entre 400-600 palavras para ser completo e detalhado
        6. Ser claro, objetivo e educativo
        7. Não dar as respostas diretamente, mas sim orientações sobre como abordar cada tipo de pergunta
        8. Incluir exemplos práticos quando relevante
        9. Estruturar o conteúdo com parágrafos bem definidos para melhor leitura

        IMPORTANTE: O texto deve ser completo e não cortado. Desenvolva todos os pontos mencionados acima de forma detalhada.

        Responda apenas com o texto de suporte completo, sem explicações adicionais.
        """
    ).strip()
