"""
Generator Factory.

Builds the option generators once per application and provides lookup by kind.
"""
from typing import Dict, Optional

from examhub.generators.base import BaseOptionsGenerator
from examhub.generators.options import (
    ContextOptionsGenerator,
    QuranicVerseOptionsGenerator,
    SimilarOptionsGenerator,
)
from examhub.services.llm_service import LLMService
from examhub.services.prompt_management import PromptLibrary

GENERATOR_CLASSES = (
    ContextOptionsGenerator,
    SimilarOptionsGenerator,
    QuranicVerseOptionsGenerator,
)


def build_generators(llm: LLMService, prompts: PromptLibrary) -> Dict[str, BaseOptionsGenerator]:
    """Map generator kind to a generator instance sharing one LLM client."""
    return {cls.kind: cls(llm, prompts) for cls in GENERATOR_CLASSES}


def get_generator(generators: Dict[str, BaseOptionsGenerator], kind: str) -> Optional[BaseOptionsGenerator]:
    """Get the generator for a kind."""
    return generators.get(kind)
