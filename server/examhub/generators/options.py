"""
MCQ Option Generators.

Each generator picks a prompt template for its input and delegates the LLM
round-trip and output validation to BaseOptionsGenerator.
"""
from examhub.errors import AppError
from examhub.generators import (
    CONTEXT_TEMPLATE,
    SIMILAR_TEMPLATES,
    DistractorType,
    Language,
    get_distractor_template,
)
from examhub.generators.base import BaseOptionsGenerator


class ContextOptionsGenerator(BaseOptionsGenerator):
    """Distractors that fit the sentence around the blank. Urdu only."""

    kind = "context"

    def build_prompt(self, question: str, correct_answer: str, language: Language = Language.URDU, **kwargs) -> str:
        if language == Language.ARABIC:
            raise AppError.validation("Arabic language is not supported for this endpoint")
        return self.prompts.render(CONTEXT_TEMPLATE, question=question, correct_answer=correct_answer)


class SimilarOptionsGenerator(BaseOptionsGenerator):
    """Distractors from the same category as the correct answer."""

    kind = "similar"

    def build_prompt(self, question: str, correct_answer: str, language: Language = Language.URDU, **kwargs) -> str:
        template = SIMILAR_TEMPLATES.get(language)
        if template is None:
            raise AppError.validation(f"Unsupported language: {language}")
        return self.prompts.render(template, question=question, correct_answer=correct_answer)


class QuranicVerseOptionsGenerator(BaseOptionsGenerator):
    """Arabic verse distractors of one distractor type."""

    kind = "quranic"

    def build_prompt(
        self,
        question: str,
        correct_answer: str,
        distractor_type: DistractorType = DistractorType.COLLECTION,
        **kwargs,
    ) -> str:
        template = get_distractor_template(distractor_type)
        return self.prompts.render(template, question=question, correct_answer=correct_answer)
