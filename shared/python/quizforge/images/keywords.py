"""Keyword extraction and image prompts for question illustrations."""

from __future__ import annotations

import re

from quizforge.enums import QuestionType
from quizforge.schemas import Question

STOP_WORDS: frozenset[str] = frozenset(
    """
    o a os as um uma uns umas e ou mas se por para com sem em de do da dos das no na nos nas
    pelo pela pelos pelas que quem qual quais cujo cuja cujos cujas como quando onde porque
    porquê assim também não sim mais menos muito pouco é são está estão foi foram ser será
    serão estar estará este esta esteve estiver haver há houve houver ter tem teve terá terão
    eu tu ele ela nós vós eles elas me te lhe lhes vos my your his her its our their isto esse
    essa isso aquele aquela aquilo outro outra outros outras todo toda todos todas quanto
    quanta quantos quantas aonde donde pois portanto então logo apenas tão somente só acima
    abaixo dentro fora junto longe perto aquém além através sobre sob ainda já agora antes
    depois durante enquanto até desde contra entre trás frente primeiro segundo terceiro
    último próximo anterior posterior grande pequeno maior menor melhor pior bom ruim alto
    baixo demais bastante tanto quase pode poder deve dever quer precisa precisar vai ir vem
    vir fica ficar dá dar faz fazer
    """.split()
)

DEFAULT_STYLE = "simple educational diagram"
STYLE_MODIFIERS: dict[QuestionType, str] = {
    QuestionType.MCQ: "simple educational diagram, clear, minimal",
    QuestionType.TRUE_FALSE: "simple educational diagram, clear, minimal",
    QuestionType.SHORT: "educational concept, simple illustration",
    QuestionType.GAP_FILL: "educational concept, simple illustration",
    QuestionType.ESSAY: "educational concept, simple illustration",
    QuestionType.MATCHING: "educational chart, simple comparison",
    QuestionType.ORDERING: "process diagram, sequential steps, clean arrows",
}
MAX_PROMPT_KEYWORDS = 3

_PUNCTUATION = re.compile(r"[.,;:!?'\"()\[\]{}]")


def extract_keywords(text: str) -> list[str]:
    """Distinct lowercase words of 3+ letters that are neither stop words nor numbers."""

    words = _PUNCTUATION.sub(" ", text.lower()).split()
    keywords: list[str] = []
    for word in words:
        if len(word) < 3 or word in STOP_WORDS or word.isdigit() or word in keywords:
            continue
        keywords.append(word)
    return keywords


def build_image_prompt(keywords: list[str], question_type: QuestionType | None = None) -> str:
    if not keywords:
        return DEFAULT_STYLE
    style = STYLE_MODIFIERS.get(question_type, DEFAULT_STYLE) if question_type else DEFAULT_STYLE
    return f"{' '.join(keywords[:MAX_PROMPT_KEYWORDS])}, {style}, white background, simple, clear"


def image_prompt_for_question(question: Question, subject: str | None = None) -> str:
    """Image prompt from the question text; the subject only fills in when the prompt has no keywords."""

    keywords = extract_keywords(question.prompt)
    if not keywords and subject:
        keywords = extract_keywords(subject)
    return build_image_prompt(keywords, question.type)
