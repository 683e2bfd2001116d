"""
Base Generator Class.

Provides the prompt -> LLM -> validated options pipeline shared by all option
generators.
"""
import json
import logging
import re
from abc import ABC, abstractmethod

from pydantic import ValidationError

from examhub.errors import AppError
from examhub.generators import OPTIONS_PER_QUESTION
from examhub.schemas import McqOptionsResponse
from examhub.services.llm_service import LLMService
from examhub.services.prompt_management import PromptLibrary

logger = logging.getLogger(__name__)

_FENCED = re.compile(r"^```[a-zA-Z]*\s*(.*?)\s*```$", re.DOTALL)


def clean_llm_json_output(raw: str) -> str:
    """Strip markdown code fences and any text around the JSON object."""
    text = raw.strip()
    match = _FENCED.match(text)
    if match:
        text = match.group(1).strip()

    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end < start:
        raise AppError.upstream("LLM output contains no JSON object", raw[:200])
    return text[start:end + 1]


def parse_options(raw: str) -> McqOptionsResponse:
    """
    Parse `{"responses": [...]}` from LLM output.

    Exactly OPTIONS_PER_QUESTION strings are required; any other count is
    rejected rather than truncated or padded.
    """
    cleaned = clean_llm_json_output(raw)
    try:
        payload = json.loads(cleaned)
    except ValueError as exc:
        raise AppError.upstream("Failed to parse MCQ options from LLM output", str(exc)) from exc

    try:
        options = McqOptionsResponse.model_validate(payload)
    except ValidationError as exc:
        raise AppError.validation(f"LLM output does not match the options shape: {exc.error_count()} errors") from exc

    if len(options.responses) != OPTIONS_PER_QUESTION:
        raise AppError.validation(
            f"Expected exactly {OPTIONS_PER_QUESTION} options from the LLM, got {len(options.responses)}"
        )
    return options


class BaseOptionsGenerator(ABC):
    """Abstract base class for MCQ option generators."""

    # Generator identifier - must be overridden
    kind: str = "base"

    def __init__(self, llm: LLMService, prompts: PromptLibrary):
        self.llm = llm
        self.prompts = prompts

    @abstractmethod
    def build_prompt(self, question: str, correct_answer: str, **kwargs) -> str:
        """Return the prompt text, or raise AppError for unsupported input."""

    async def generate(self, question: str, correct_answer: str, **kwargs) -> McqOptionsResponse:
        prompt = self.build_prompt(question, correct_answer, **kwargs)
        raw_output = await self.llm.generate_text(prompt)
        try:
            return parse_options(raw_output)
        except AppError as exc:
            logger.error("%s generator got unusable LLM output: %s", self.kind, exc)
            raise
